"""Application pipeline: applied -> under_review -> shortlisted -> round_update* -> hired | rejected."""

from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from hirelink.config import settings
from hirelink.core.auth import Capability, Principal, authorize, require_owner
from hirelink.core.errors import (
    AuthorizationError,
    Conflict,
    DuplicateError,
    PreconditionFailed,
    StaleRound,
    ValidationError,
)
from hirelink.core.models import (
    Account,
    Application,
    ApplicationStatus,
    JobApprovalStatus,
    RoundResult,
)
from hirelink.core.transitions import Transition, TransitionTable
from hirelink.directory import Directory
from hirelink.machines.base import StateMachine, clean_reason, clean_text
from hirelink.storage.repositories import AccountRepository, ApplicationRepository, JobRepository
from hirelink.storage.tables import ApplicationTable, new_id, utcnow

OPEN_STATUSES = frozenset({
    ApplicationStatus.APPLIED,
    ApplicationStatus.UNDER_REVIEW,
    ApplicationStatus.SHORTLISTED,
    ApplicationStatus.ROUND_UPDATE,
})

APPLICATION_TRANSITIONS = TransitionTable(
    "application",
    [
        Transition("mark_under_review", frozenset({ApplicationStatus.APPLIED}), ApplicationStatus.UNDER_REVIEW),
        Transition(
            "shortlist",
            frozenset({ApplicationStatus.APPLIED, ApplicationStatus.UNDER_REVIEW}),
            ApplicationStatus.SHORTLISTED,
        ),
        # Target depends on the round result
        Transition("update_round", frozenset({ApplicationStatus.SHORTLISTED, ApplicationStatus.ROUND_UPDATE})),
        Transition("reject", OPEN_STATUSES, ApplicationStatus.REJECTED),
        Transition("withdraw", OPEN_STATUSES, ApplicationStatus.WITHDRAWN),
    ],
    terminal={ApplicationStatus.HIRED, ApplicationStatus.REJECTED, ApplicationStatus.WITHDRAWN},
)


def round_outcome(
    status: ApplicationStatus,
    round_number: int,
    total_rounds: int,
    result: RoundResult,
    advance_to_next: bool,
):
    """
    Decide ``(status, current_round)`` after a round result is recorded.

    The final round is ``round_number == total_rounds``, which also covers a
    job without rounds (both zero).
    """
    if result == RoundResult.FAILED:
        return ApplicationStatus.REJECTED, round_number

    if result == RoundResult.PASSED:
        if round_number >= total_rounds:
            return ApplicationStatus.HIRED, round_number
        if advance_to_next:
            return ApplicationStatus.ROUND_UPDATE, round_number + 1
        return ApplicationStatus.ROUND_UPDATE, round_number

    # scheduled / pending only add to the log
    return status, round_number


class ApplicationPipeline(StateMachine):
    """
    Owns a candidate's application and its round-by-round progress.

    ``current_round`` doubles as the optimistic guard for ``update_round``:
    a caller naming any other round gets ``StaleRound``. The round log is
    append-only and the applicant snapshot is frozen at submit time.
    """

    entity = "application"

    async def apply(
        self,
        jobseeker: Principal,
        job_id: str,
        cover_letter: str,
        selected_skills: Optional[List[str]] = None,
    ) -> Application:
        authorize(jobseeker, Capability.APPLY)
        cover_letter = self._validate_cover_letter(cover_letter)
        skills = self._validate_skills(selected_skills)

        try:
            async with self.database.transaction() as session:
                job = await JobRepository(session).get_or_raise(job_id)
                if job.approval_status != JobApprovalStatus.APPROVED.value:
                    raise PreconditionFailed(
                        "Job is not approved",
                        details={"job_id": job_id, "status": job.approval_status},
                    )
                if not job.is_open:
                    raise PreconditionFailed("Job is closed to new applications", details={"job_id": job_id})

                applications = ApplicationRepository(session)
                if await applications.find_for_pair(jobseeker.account_id, job_id) is not None:
                    raise DuplicateError("Already applied to this job", details={"job_id": job_id})

                account = await AccountRepository(session).get(jobseeker.account_id)
                snapshot = Directory.snapshot_fields(Account.model_validate(account)) if account else {}

                model = await applications.add(ApplicationTable(
                    id=new_id(),
                    job_id=job_id,
                    jobseeker_account_id=jobseeker.account_id,
                    recruiter_id=job.posted_by_recruiter_id,
                    business_id=job.business_id,
                    status=ApplicationStatus.APPLIED.value,
                    current_round=1 if job.rounds else 0,
                    cover_letter=cover_letter,
                    selected_skills=skills,
                    applicant_snapshot=snapshot,
                    round_updates=[],
                    version=1,
                    created_at=utcnow(),
                ))
                application = Application.model_validate(model)
        except IntegrityError:
            # Lost a race against a concurrent apply for the same pair
            raise DuplicateError("Already applied to this job", details={"job_id": job_id})

        self.logger.info(
            "Application submitted",
            application_id=application.id, job_id=job_id, jobseeker=jobseeker.account_id,
        )
        self._notify("applied", application.id, [application.recruiter_id, jobseeker.account_id])
        return application

    @staticmethod
    def _validate_cover_letter(cover_letter: Optional[str]) -> str:
        text = (cover_letter or "").strip()
        if len(text) < settings.cover_letter_min_length:
            raise ValidationError(
                "cover_letter", f"must be at least {settings.cover_letter_min_length} characters"
            )
        if len(text) > settings.cover_letter_max_length:
            raise ValidationError(
                "cover_letter", f"must be at most {settings.cover_letter_max_length} characters"
            )
        return text

    @staticmethod
    def _validate_skills(selected_skills: Optional[List[str]]) -> List[str]:
        skills = []
        for skill in selected_skills or []:
            if not isinstance(skill, str) or not skill.strip():
                raise ValidationError("selected_skills", "must be a list of non-empty strings")
            skills.append(skill.strip())
        return skills

    async def mark_under_review(
        self, application_id: str, recruiter: Principal, expected_version: Optional[int] = None
    ) -> Application:
        """Recruiter has opened the application."""
        return await self._recruiter_step(
            "mark_under_review", application_id, recruiter, expected_version, reviewed_at=utcnow()
        )

    async def shortlist(
        self,
        application_id: str,
        recruiter: Principal,
        note: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Application:
        note = clean_text(note, "note", settings.reason_max_length)
        return await self._recruiter_step(
            "shortlist", application_id, recruiter, expected_version,
            payload={"note": note}, shortlisted_at=utcnow(),
        )

    async def reject(
        self,
        application_id: str,
        recruiter: Principal,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> Application:
        reason = clean_reason(reason)
        return await self._recruiter_step(
            "reject", application_id, recruiter, expected_version,
            payload={"reason": reason}, rejection_reason=reason, rejected_at=utcnow(),
        )

    async def _recruiter_step(
        self,
        action: str,
        application_id: str,
        recruiter: Principal,
        expected_version: Optional[int],
        payload: Optional[Dict[str, Any]] = None,
        **values: Any,
    ) -> Application:
        authorize(recruiter, Capability.DRIVE_PIPELINE)

        async with self.database.transaction() as session:
            applications = ApplicationRepository(session)
            model = await applications.get_or_raise(application_id)
            require_owner(recruiter, model.recruiter_id, "application")

            previous = ApplicationStatus(model.status)
            transition = APPLICATION_TRANSITIONS.check(
                action, previous, expected_version=expected_version, actual_version=model.version
            )
            model = await applications.guarded_update(
                application_id, model.version, status=transition.target.value, **values
            )
            application = Application.model_validate(model)

        self._log_transition(application_id, previous, application.status, recruiter=recruiter.account_id)
        self._notify(application.status.value, application_id, [application.jobseeker_account_id], payload)
        return application

    async def update_round(
        self,
        application_id: str,
        recruiter: Principal,
        round_number: int,
        result: RoundResult,
        note: Optional[str] = None,
        advance_to_next: bool = False,
        expected_version: Optional[int] = None,
    ) -> Application:
        """
        Record a round result and move the application accordingly.

        Every call appends one round log entry, whatever the result.
        """
        authorize(recruiter, Capability.DRIVE_PIPELINE)
        result = RoundResult(result)
        note = clean_text(note, "note", settings.reason_max_length)

        async with self.database.transaction() as session:
            applications = ApplicationRepository(session)
            model = await applications.get_or_raise(application_id)
            require_owner(recruiter, model.recruiter_id, "application")

            previous = ApplicationStatus(model.status)
            APPLICATION_TRANSITIONS.check(
                "update_round", previous, expected_version=expected_version, actual_version=model.version
            )
            if round_number != model.current_round:
                raise StaleRound(round_number, model.current_round)

            job = await JobRepository(session).get_or_raise(model.job_id)
            rounds = job.rounds or []
            status, current_round = round_outcome(
                previous, round_number, len(rounds), result, advance_to_next
            )

            now = utcnow()
            values: Dict[str, Any] = {"status": status.value, "current_round": current_round}
            if status == ApplicationStatus.REJECTED:
                values["rejected_at"] = now
            elif status == ApplicationStatus.HIRED:
                values["hired_at"] = now

            model = await applications.guarded_update(application_id, model.version, **values)

            round_info = rounds[round_number - 1] if 1 <= round_number <= len(rounds) else {}
            await applications.append_round_update(
                model,
                round_number=round_number,
                result=result.value,
                recorded_by=recruiter.account_id,
                note=note,
                round_title=round_info.get("title"),
                round_type=round_info.get("type"),
            )
            await session.refresh(model, attribute_names=["round_updates"])
            application = Application.model_validate(model)

        self._log_transition(
            application_id, previous, application.status,
            recruiter=recruiter.account_id, round_number=round_number,
            result=result.value, current_round=application.current_round,
        )
        self._notify(
            "round_updated",
            application_id,
            [application.jobseeker_account_id],
            {"round_number": round_number, "result": result.value, "status": application.status.value},
        )
        return application

    async def annotate(
        self,
        application_id: str,
        recruiter: Principal,
        internal_notes: Optional[str] = None,
        rating: Optional[int] = None,
        expected_version: Optional[int] = None,
    ) -> Application:
        """
        Set the recruiter's private notes and/or 1-5 rating.

        Status is untouched, so this works in any status. An empty
        ``internal_notes`` string clears the notes; ``None`` leaves a field
        as it is.
        """
        authorize(recruiter, Capability.DRIVE_PIPELINE)

        values: Dict[str, Any] = {}
        if internal_notes is not None:
            values["internal_notes"] = clean_text(
                internal_notes, "internal_notes", settings.internal_notes_max_length
            )
        if rating is not None:
            if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
                raise ValidationError("rating", "must be an integer from 1 to 5")
            values["recruiter_rating"] = rating
        if not values:
            raise ValidationError("internal_notes", "provide internal_notes or rating")

        async with self.database.transaction() as session:
            applications = ApplicationRepository(session)
            model = await applications.get_or_raise(application_id)
            require_owner(recruiter, model.recruiter_id, "application")

            if expected_version is not None and expected_version != model.version:
                raise Conflict(
                    f"application version mismatch: expected {expected_version}, found {model.version}",
                    details={"expected_version": expected_version, "actual_version": model.version},
                )
            model = await applications.guarded_update(application_id, model.version, **values)
            application = Application.model_validate(model)

        self.logger.info(
            "Application annotated",
            application_id=application_id,
            recruiter=recruiter.account_id,
            rating=application.recruiter_rating,
            has_notes=application.internal_notes is not None,
        )
        return application

    async def withdraw(
        self, application_id: str, jobseeker: Principal, expected_version: Optional[int] = None
    ) -> Application:
        """Applicant pulls out; valid from any non-terminal status."""
        authorize(jobseeker, Capability.WITHDRAW)

        async with self.database.transaction() as session:
            applications = ApplicationRepository(session)
            model = await applications.get_or_raise(application_id)
            require_owner(jobseeker, model.jobseeker_account_id, "application")

            previous = ApplicationStatus(model.status)
            transition = APPLICATION_TRANSITIONS.check(
                "withdraw", previous, expected_version=expected_version, actual_version=model.version
            )
            model = await applications.guarded_update(
                application_id, model.version, status=transition.target.value, withdrawn_at=utcnow()
            )
            application = Application.model_validate(model).applicant_view()

        self._log_transition(application_id, previous, application.status, jobseeker=jobseeker.account_id)
        self._notify("withdrawn", application_id, [application.recruiter_id])
        return application

    async def get(self, application_id: str, viewer: Principal) -> Application:
        """Visible to the applicant and to the recruiter who owns the job."""
        authorize(viewer, Capability.VIEW_APPLICATION)
        async with self.database.transaction() as session:
            model = await ApplicationRepository(session).get_or_raise(application_id)
            if viewer.account_id not in (model.jobseeker_account_id, model.recruiter_id):
                raise AuthorizationError("Account may not view this application")
            application = Application.model_validate(model)

        if viewer.account_id == application.recruiter_id:
            return application
        return application.applicant_view()

    async def list_for_job(self, job_id: str, recruiter: Principal) -> List[Application]:
        authorize(recruiter, Capability.DRIVE_PIPELINE)
        async with self.database.transaction() as session:
            job = await JobRepository(session).get_or_raise(job_id)
            require_owner(recruiter, job.posted_by_recruiter_id, "job")
            models = await ApplicationRepository(session).list_for_job(job_id)
            return [Application.model_validate(m) for m in models]

    async def list_for_jobseeker(self, jobseeker: Principal) -> List[Application]:
        authorize(jobseeker, Capability.APPLY)
        async with self.database.transaction() as session:
            models = await ApplicationRepository(session).list_for_jobseeker(jobseeker.account_id)
            return [Application.model_validate(m).applicant_view() for m in models]
