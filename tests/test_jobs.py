"""Tests for job posting approval."""

import pytest

from hirelink.core.errors import (
    AuthorizationError,
    Conflict,
    PreconditionFailed,
    TerminalStateError,
    ValidationError,
)
from hirelink.core.models import EmploymentType, JobApprovalStatus, Role, Round, RoundType, VerificationStatus


class TestJobApproval:
    """Test suite for JobApprovalMachine."""

    @pytest.mark.asyncio
    async def test_scenario_a_end_to_end(self, driver, marketplace):
        cast = await driver.cast()

        business = await marketplace.businesses.register(cast.owner, "Acme")
        assert business.verification_status == VerificationStatus.PENDING
        business = await marketplace.businesses.approve(business.id, cast.admin)
        assert business.verification_status == VerificationStatus.APPROVED

        link = await marketplace.links.request(cast.recruiter, business.id)
        link = await marketplace.links.approve(link.id, cast.owner)

        job = await marketplace.jobs.create(cast.recruiter, business.id, driver.draft())
        assert job.approval_status == JobApprovalStatus.PENDING_BUSINESS
        assert await marketplace.jobs.list_public() == []

        job = await marketplace.jobs.approve(job.id, cast.owner)
        assert job.approval_status == JobApprovalStatus.APPROVED
        assert job.approved_at is not None
        assert [j.id for j in await marketplace.jobs.list_public()] == [job.id]

        kinds = await driver.drain()
        assert kinds[-2:] == ["job.submitted", "job.approved"]

    @pytest.mark.asyncio
    async def test_create_requires_approved_link(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)
        await marketplace.links.request(cast.recruiter, business.id)

        with pytest.raises(PreconditionFailed):
            await marketplace.jobs.create(cast.recruiter, business.id, driver.draft())

    @pytest.mark.asyncio
    async def test_create_only_for_the_linked_business(self, driver, marketplace):
        setup = await driver.ready()
        other_owner = await driver.account(Role.BUSINESS)
        other = await driver.approved_business(setup.cast, owner=other_owner)

        with pytest.raises(PreconditionFailed):
            await marketplace.jobs.create(setup.cast.recruiter, other.id, driver.draft())

    @pytest.mark.asyncio
    async def test_only_recruiters_post(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)

        with pytest.raises(AuthorizationError):
            await marketplace.jobs.create(cast.owner, business.id, driver.draft())

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"title": "QA"}, "title"),
            ({"description": "Too short to describe anything."}, "description"),
            ({"location": "   "}, "location"),
            ({"rounds": [Round(order=1), Round(order=3)]}, "rounds"),
            ({"rounds": [Round(order=1), Round(order=1)]}, "rounds"),
        ],
    )
    async def test_create_validates_fields(self, driver, marketplace, overrides, field):
        setup = await driver.ready()

        with pytest.raises(ValidationError) as exc_info:
            await marketplace.jobs.create(setup.cast.recruiter, setup.business.id, driver.draft(**overrides))
        assert exc_info.value.field == field

    @pytest.mark.asyncio
    async def test_rounds_are_sorted_and_kept(self, driver, marketplace):
        setup = await driver.ready()
        draft = driver.draft(
            rounds=[
                Round(order=2, type=RoundType.HR_INTERVIEW, title="HR"),
                Round(order=1, type=RoundType.ONLINE_TEST, title="Test"),
            ],
            employment_type=EmploymentType.CONTRACT,
        )

        job = await marketplace.jobs.create(setup.cast.recruiter, setup.business.id, draft)

        assert [r.title for r in job.rounds] == ["Test", "HR"]
        assert job.employment_type == EmploymentType.CONTRACT
        assert (await marketplace.jobs.get(job.id)).rounds == job.rounds

    @pytest.mark.asyncio
    async def test_rejection_is_terminal(self, driver, marketplace):
        setup = await driver.ready()
        job = await marketplace.jobs.create(setup.cast.recruiter, setup.business.id, driver.draft())

        rejected = await marketplace.jobs.reject(job.id, setup.cast.owner, reason="Salary missing")
        assert rejected.approval_status == JobApprovalStatus.REJECTED_BUSINESS
        assert rejected.rejected_reason == "Salary missing"

        with pytest.raises(TerminalStateError):
            await marketplace.jobs.approve(job.id, setup.cast.owner)

    @pytest.mark.asyncio
    async def test_only_the_business_owner_decides(self, driver, marketplace):
        setup = await driver.ready()
        job = await marketplace.jobs.create(setup.cast.recruiter, setup.business.id, driver.draft())
        stranger = await driver.account(Role.BUSINESS)

        with pytest.raises(AuthorizationError):
            await marketplace.jobs.approve(job.id, stranger)
        with pytest.raises(AuthorizationError):
            await marketplace.jobs.approve(job.id, setup.cast.recruiter)

    @pytest.mark.asyncio
    async def test_pending_queue_for_owner(self, driver, marketplace):
        setup = await driver.ready()
        job = await marketplace.jobs.create(setup.cast.recruiter, setup.business.id, driver.draft())

        pending = await marketplace.jobs.list_pending_for_business(setup.cast.owner)
        mine = await marketplace.jobs.list_for_recruiter(setup.cast.recruiter)

        assert [j.id for j in pending] == [job.id]
        assert {j.id for j in mine} == {job.id, setup.job.id}

    @pytest.mark.asyncio
    async def test_stale_version(self, driver, marketplace):
        setup = await driver.ready()
        job = await marketplace.jobs.create(setup.cast.recruiter, setup.business.id, driver.draft())

        with pytest.raises(Conflict):
            await marketplace.jobs.approve(job.id, setup.cast.owner, expected_version=job.version + 1)


class TestJobOpenToggle:
    """close/reopen by the posting recruiter."""

    @pytest.mark.asyncio
    async def test_close_hides_job_and_blocks_applications(self, driver, marketplace):
        setup = await driver.ready()

        closed = await marketplace.jobs.close(setup.job.id, setup.cast.recruiter)
        assert not closed.is_open
        assert closed.closed_at is not None
        assert closed.approval_status == JobApprovalStatus.APPROVED
        assert await marketplace.jobs.list_public() == []

        with pytest.raises(PreconditionFailed):
            await driver.apply(setup)

        reopened = await marketplace.jobs.reopen(setup.job.id, setup.cast.recruiter)
        assert reopened.is_open
        assert reopened.closed_at is None
        assert (await driver.apply(setup)).job_id == setup.job.id

    @pytest.mark.asyncio
    async def test_close_existing_applications_continue(self, driver, marketplace):
        setup = await driver.ready()
        application = await driver.apply(setup)

        await marketplace.jobs.close(setup.job.id, setup.cast.recruiter)
        shortlisted = await marketplace.applications.shortlist(application.id, setup.cast.recruiter)

        assert shortlisted.status.value == "shortlisted"

    @pytest.mark.asyncio
    async def test_toggle_rules(self, driver, marketplace):
        setup = await driver.ready()
        pending = await marketplace.jobs.create(setup.cast.recruiter, setup.business.id, driver.draft())
        other = await driver.account(Role.RECRUITER)

        with pytest.raises(PreconditionFailed):
            await marketplace.jobs.close(pending.id, setup.cast.recruiter)
        with pytest.raises(PreconditionFailed):
            await marketplace.jobs.reopen(setup.job.id, setup.cast.recruiter)
        with pytest.raises(AuthorizationError):
            await marketplace.jobs.close(setup.job.id, other)
