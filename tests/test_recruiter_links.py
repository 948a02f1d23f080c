"""Tests for recruiter-to-business links."""

import asyncio

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from hirelink.core.errors import (
    AuthorizationError,
    Conflict,
    DuplicateError,
    NotFoundError,
    PreconditionFailed,
    TerminalStateError,
)
from hirelink.core.models import LinkStatus, Role


class TestRecruiterLinks:
    """Test suite for RecruiterLinkMachine."""

    @pytest.mark.asyncio
    async def test_request_and_approve(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)

        link = await marketplace.links.request(cast.recruiter, business.id)
        assert link.link_status == LinkStatus.PENDING
        assert link.is_active

        approved = await marketplace.links.approve(link.id, cast.owner)
        assert approved.link_status == LinkStatus.APPROVED
        assert approved.approved_at is not None

        kinds = await driver.drain()
        assert "recruiter_link.requested" in kinds
        assert "recruiter_link.approved" in kinds

    @pytest.mark.asyncio
    async def test_request_requires_approved_business(self, driver, marketplace):
        cast = await driver.cast()
        business = await marketplace.businesses.register(cast.owner, "Acme")

        with pytest.raises(PreconditionFailed):
            await marketplace.links.request(cast.recruiter, business.id)

    @pytest.mark.asyncio
    async def test_request_unknown_business(self, driver, marketplace):
        cast = await driver.cast()
        with pytest.raises(NotFoundError):
            await marketplace.links.request(cast.recruiter, "no-such-business")

    @pytest.mark.asyncio
    async def test_request_is_idempotent(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)

        first = await marketplace.links.request(cast.recruiter, business.id)
        again = await marketplace.links.request(cast.recruiter, business.id)

        assert again.id == first.id
        assert again.version == first.version
        assert len(await marketplace.links.history_for_recruiter(cast.recruiter)) == 1

    @pytest.mark.asyncio
    async def test_one_active_link_per_recruiter(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)
        other_owner = await driver.account(Role.BUSINESS)
        other = await driver.approved_business(cast, owner=other_owner)

        await marketplace.links.request(cast.recruiter, business.id)

        with pytest.raises(DuplicateError):
            await marketplace.links.request(cast.recruiter, other.id)

    @pytest.mark.asyncio
    async def test_concurrent_requests_to_two_businesses(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)
        other_owner = await driver.account(Role.BUSINESS)
        other = await driver.approved_business(cast, owner=other_owner)

        results = await asyncio.gather(
            marketplace.links.request(cast.recruiter, business.id),
            marketplace.links.request(cast.recruiter, other.id),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, DuplicateError)) == 1
        active = await marketplace.links.active_for_recruiter(cast.recruiter)
        assert active is not None
        assert len(await marketplace.links.history_for_recruiter(cast.recruiter)) == 1

    @pytest.mark.asyncio
    async def test_only_the_owner_decides(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)
        stranger = await driver.account(Role.BUSINESS)
        link = await marketplace.links.request(cast.recruiter, business.id)

        with pytest.raises(AuthorizationError):
            await marketplace.links.approve(link.id, stranger)
        with pytest.raises(AuthorizationError):
            await marketplace.links.approve(link.id, cast.admin)

        assert (await marketplace.links.get(link.id, cast.recruiter)).link_status == LinkStatus.PENDING

    @pytest.mark.asyncio
    async def test_rejection_is_terminal_but_a_new_request_is_allowed(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)
        link = await marketplace.links.request(cast.recruiter, business.id)

        rejected = await marketplace.links.reject(link.id, cast.owner, reason="Not hiring")
        assert rejected.link_status == LinkStatus.REJECTED
        assert rejected.rejected_reason == "Not hiring"

        with pytest.raises(TerminalStateError):
            await marketplace.links.approve(link.id, cast.owner)

        fresh = await marketplace.links.request(cast.recruiter, business.id)
        assert fresh.id != link.id
        assert fresh.link_status == LinkStatus.PENDING

    @pytest.mark.asyncio
    async def test_approve_twice_is_conflict(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)
        link = await driver.approved_link(cast, business)

        with pytest.raises(Conflict):
            await marketplace.links.approve(link.id, cast.owner)

    @pytest.mark.asyncio
    async def test_approve_requires_business_still_approved(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)
        link = await driver.approved_link(cast, business)
        await marketplace.businesses.revoke(business.id, cast.admin)

        with pytest.raises(PreconditionFailed):
            await marketplace.links.approve(link.id, cast.owner)

        await marketplace.businesses.approve(business.id, cast.admin)
        relinked = await marketplace.links.approve(link.id, cast.owner)
        assert relinked.link_status == LinkStatus.APPROVED

    @pytest.mark.asyncio
    async def test_unlink_requires_approved(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)
        link = await marketplace.links.request(cast.recruiter, business.id)

        with pytest.raises(PreconditionFailed):
            await marketplace.links.unlink(link.id, cast.recruiter)

    @pytest.mark.asyncio
    async def test_only_the_recruiter_unlinks(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)
        link = await driver.approved_link(cast, business)
        other = await driver.account(Role.RECRUITER)

        with pytest.raises(AuthorizationError):
            await marketplace.links.unlink(link.id, other)

    @pytest.mark.asyncio
    async def test_owner_removes_recruiter(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)
        link = await driver.approved_link(cast, business)

        removed = await marketplace.links.remove(link.id, cast.owner, reason="Left the agency")

        assert removed.link_status == LinkStatus.REMOVED_BY_BUSINESS
        assert removed.closed_at is not None
        assert await marketplace.links.active_for_recruiter(cast.recruiter) is None

        with pytest.raises(PreconditionFailed):
            await marketplace.jobs.create(cast.recruiter, business.id, driver.draft())

    @pytest.mark.asyncio
    async def test_owner_views(self, driver, marketplace):
        cast = await driver.cast()
        business = await driver.approved_business(cast)
        approved = await driver.approved_link(cast, business)
        waiting_recruiter = await driver.account(Role.RECRUITER)
        waiting = await marketplace.links.request(waiting_recruiter, business.id)

        assert [item.id for item in await marketplace.links.list_pending_for_business(cast.owner)] == [waiting.id]
        assert [item.id for item in await marketplace.links.list_for_business(cast.owner)] == [approved.id]

        with pytest.raises(AuthorizationError):
            await marketplace.links.get(waiting.id, cast.recruiter)


class TestLinkRoundTrip:
    """request -> approve -> unlink -> request looks like a first request."""

    @given(cycles=st.integers(min_value=1, max_value=3))
    @settings(max_examples=5, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_unlink_then_request_is_fresh(self, marketplace_factory, cycles):
        async def run_test():
            async with marketplace_factory() as driver:
                marketplace = driver.marketplace
                cast = await driver.cast()
                business = await driver.approved_business(cast)
                first = await marketplace.links.request(cast.recruiter, business.id)

                link = first
                for _ in range(cycles):
                    await marketplace.links.approve(link.id, cast.owner)
                    unlinked = await marketplace.links.unlink(link.id, cast.recruiter)
                    assert unlinked.link_status == LinkStatus.UNLINKED
                    link = await marketplace.links.request(cast.recruiter, business.id)

                    assert link.id != unlinked.id
                    assert link.link_status == first.link_status == LinkStatus.PENDING
                    assert link.approved_at is None
                    assert link.rejected_at is None
                    assert link.closed_at is None
                    assert link.version == first.version
                    assert link.business_id == first.business_id

                history = await marketplace.links.history_for_recruiter(cast.recruiter)
                assert len(history) == cycles + 1
                assert sum(1 for item in history if item.is_active) == 1

        asyncio.run(run_test())
