"""Job publication: pending_business -> approved | rejected_business."""

from typing import List, Optional

from hirelink.core.auth import Capability, Principal, authorize, require_owner
from hirelink.core.errors import PreconditionFailed, ValidationError
from hirelink.core.models import Job, JobApprovalStatus, JobDraft, Round
from hirelink.core.transitions import Transition, TransitionTable
from hirelink.machines.base import StateMachine, clean_reason, clean_text
from hirelink.storage.repositories import BusinessRepository, JobRepository, RecruiterLinkRepository
from hirelink.storage.tables import JobTable, new_id, utcnow

JOB_TRANSITIONS = TransitionTable(
    "job",
    [
        Transition("approve", frozenset({JobApprovalStatus.PENDING_BUSINESS}), JobApprovalStatus.APPROVED),
        Transition("reject", frozenset({JobApprovalStatus.PENDING_BUSINESS}), JobApprovalStatus.REJECTED_BUSINESS),
        # Open/closed toggles keep the approval status
        Transition("close", frozenset({JobApprovalStatus.APPROVED})),
        Transition("reopen", frozenset({JobApprovalStatus.APPROVED})),
    ],
    terminal={JobApprovalStatus.REJECTED_BUSINESS},
)

MIN_TITLE_LENGTH = 3
MIN_DESCRIPTION_LENGTH = 50


def validate_draft(draft: JobDraft) -> JobDraft:
    """Normalise a draft, raising ``ValidationError`` on the first bad field."""
    title = (draft.title or "").strip()
    if len(title) < MIN_TITLE_LENGTH:
        raise ValidationError("title", f"must be at least {MIN_TITLE_LENGTH} characters")

    description = (draft.description or "").strip()
    if len(description) < MIN_DESCRIPTION_LENGTH:
        raise ValidationError("description", f"must be at least {MIN_DESCRIPTION_LENGTH} characters")

    location = (draft.location or "").strip()
    if not location:
        raise ValidationError("location", "is required")

    rounds = sorted(draft.rounds, key=lambda r: r.order)
    if [r.order for r in rounds] != list(range(1, len(rounds) + 1)):
        raise ValidationError("rounds", "round order must run 1..n without gaps or repeats")

    skills = [s.strip() for s in draft.skills if s and s.strip()]

    return JobDraft(
        title=title,
        description=description,
        location=location,
        salary=clean_text(draft.salary, "salary", 100),
        employment_type=draft.employment_type,
        skills=skills,
        rounds=[Round(order=r.order, type=r.type, title=r.title.strip(), description=r.description.strip()) for r in rounds],
    )


class JobApprovalMachine(StateMachine):
    """
    Owns a job posting's publication status.

    Only a recruiter with an approved link to the business can post; only the
    business owner decides. Rejection is terminal. Rounds are fixed at
    creation and there is no operation that edits them.
    """

    entity = "job"

    async def create(self, recruiter: Principal, business_id: str, draft: JobDraft) -> Job:
        authorize(recruiter, Capability.POST_JOB)
        draft = validate_draft(draft)

        async with self.database.transaction() as session:
            link = await RecruiterLinkRepository(session).approved_link(recruiter.account_id, business_id)
            if link is None:
                raise PreconditionFailed(
                    "Recruiter has no approved link with this business",
                    details={"business_id": business_id},
                )
            business = await BusinessRepository(session).get_or_raise(business_id)

            model = await JobRepository(session).add(JobTable(
                id=new_id(),
                business_id=business_id,
                posted_by_recruiter_id=recruiter.account_id,
                title=draft.title,
                description=draft.description,
                location=draft.location,
                salary=draft.salary,
                employment_type=draft.employment_type.value,
                skills=draft.skills,
                rounds=[r.model_dump(mode="json") for r in draft.rounds],
                approval_status=JobApprovalStatus.PENDING_BUSINESS.value,
                is_open=True,
                version=1,
                created_at=utcnow(),
            ))
            job = Job.model_validate(model)

        self.logger.info(
            "Job created", job_id=job.id, business_id=business_id,
            recruiter=recruiter.account_id, rounds=len(job.rounds),
        )
        self._notify("submitted", job.id, [business.owner_account_id])
        return job

    async def approve(
        self, job_id: str, business_owner: Principal, expected_version: Optional[int] = None
    ) -> Job:
        """Publish the job to the public listing."""
        return await self._owner_decision("approve", job_id, business_owner, None, expected_version)

    async def reject(
        self,
        job_id: str,
        business_owner: Principal,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Job:
        return await self._owner_decision("reject", job_id, business_owner, reason, expected_version)

    async def _owner_decision(
        self,
        action: str,
        job_id: str,
        business_owner: Principal,
        reason: Optional[str],
        expected_version: Optional[int],
    ) -> Job:
        authorize(business_owner, Capability.DECIDE_JOB)
        reason = clean_reason(reason)

        async with self.database.transaction() as session:
            jobs = JobRepository(session)
            model = await jobs.get_or_raise(job_id)
            business = await BusinessRepository(session).get_or_raise(model.business_id)
            require_owner(business_owner, business.owner_account_id, "business")

            previous = JobApprovalStatus(model.approval_status)
            transition = JOB_TRANSITIONS.check(
                action, previous, expected_version=expected_version, actual_version=model.version
            )

            now = utcnow()
            values = {"approval_status": transition.target.value}
            if action == "approve":
                values["approved_at"] = now
            else:
                values.update(rejected_at=now, rejected_reason=reason)

            model = await jobs.guarded_update(job_id, model.version, **values)
            job = Job.model_validate(model)

        self._log_transition(job_id, previous, job.approval_status, business_owner=business_owner.account_id)
        self._notify(job.approval_status.value, job_id, [job.posted_by_recruiter_id], {"reason": reason})
        return job

    async def close(self, job_id: str, recruiter: Principal, expected_version: Optional[int] = None) -> Job:
        """Stop accepting applications; existing ones carry on."""
        return await self._toggle("close", job_id, recruiter, expected_version)

    async def reopen(self, job_id: str, recruiter: Principal, expected_version: Optional[int] = None) -> Job:
        return await self._toggle("reopen", job_id, recruiter, expected_version)

    async def _toggle(
        self, action: str, job_id: str, recruiter: Principal, expected_version: Optional[int]
    ) -> Job:
        authorize(recruiter, Capability.TOGGLE_JOB)
        opening = action == "reopen"

        async with self.database.transaction() as session:
            jobs = JobRepository(session)
            model = await jobs.get_or_raise(job_id)
            require_owner(recruiter, model.posted_by_recruiter_id, "job")

            JOB_TRANSITIONS.check(
                action,
                JobApprovalStatus(model.approval_status),
                expected_version=expected_version,
                actual_version=model.version,
            )
            if model.is_open == opening:
                raise PreconditionFailed(f"Job is already {'open' if opening else 'closed'}")

            model = await jobs.guarded_update(
                job_id, model.version, is_open=opening, closed_at=None if opening else utcnow()
            )
            job = Job.model_validate(model)

        self.logger.info("Job toggled", job_id=job_id, is_open=job.is_open, recruiter=recruiter.account_id)
        return job

    async def get(self, job_id: str) -> Job:
        async with self.database.transaction() as session:
            model = await JobRepository(session).get_or_raise(job_id)
            return Job.model_validate(model)

    async def list_public(self) -> List[Job]:
        """Approved, open jobs: the public listing."""
        async with self.database.transaction() as session:
            return [Job.model_validate(m) for m in await JobRepository(session).list_public()]

    async def list_pending_for_business(self, business_owner: Principal) -> List[Job]:
        authorize(business_owner, Capability.DECIDE_JOB)
        async with self.database.transaction() as session:
            business = await BusinessRepository(session).get_by_owner(business_owner.account_id)
            if business is None:
                return []
            models = await JobRepository(session).list_for_business(
                business.id, JobApprovalStatus.PENDING_BUSINESS
            )
            return [Job.model_validate(m) for m in models]

    async def list_for_recruiter(self, recruiter: Principal) -> List[Job]:
        authorize(recruiter, Capability.POST_JOB)
        async with self.database.transaction() as session:
            models = await JobRepository(session).list_for_recruiter(recruiter.account_id)
            return [Job.model_validate(m) for m in models]
