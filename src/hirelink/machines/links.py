"""Recruiter-to-business links: request, decide, unlink."""

from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from hirelink.core.auth import Capability, Principal, authorize, require_owner
from hirelink.core.errors import Conflict, DuplicateError, PreconditionFailed
from hirelink.core.models import LinkStatus, RecruiterLink, VerificationStatus
from hirelink.core.transitions import Transition, TransitionTable
from hirelink.machines.base import StateMachine, clean_reason
from hirelink.storage.repositories import BusinessRepository, RecruiterLinkRepository
from hirelink.storage.tables import RecruiterLinkTable, new_id, utcnow

LINK_TRANSITIONS = TransitionTable(
    "recruiter_link",
    [
        Transition("approve", frozenset({LinkStatus.PENDING}), LinkStatus.APPROVED),
        Transition("reject", frozenset({LinkStatus.PENDING}), LinkStatus.REJECTED),
        Transition("unlink", frozenset({LinkStatus.APPROVED}), LinkStatus.UNLINKED),
        Transition("remove", frozenset({LinkStatus.APPROVED}), LinkStatus.REMOVED_BY_BUSINESS),
    ],
    terminal={LinkStatus.REJECTED, LinkStatus.UNLINKED, LinkStatus.REMOVED_BY_BUSINESS},
)


class RecruiterLinkMachine(StateMachine):
    """
    Owns the approval relationship between a recruiter and a business.

    A recruiter holds at most one pending/approved link; storage enforces it
    with a partial unique index. Rejected, unlinked and removed rows are kept
    as history and a fresh ``request`` always inserts a new row.
    """

    entity = "recruiter_link"

    async def request(self, recruiter: Principal, business_id: str) -> RecruiterLink:
        """
        Ask to link with an approved business.

        Idempotent: if the recruiter already has an active link to this
        business, that link is returned unchanged.
        """
        authorize(recruiter, Capability.REQUEST_LINK)

        try:
            link, owner_id, created = await self._request(recruiter, business_id)
        except IntegrityError:
            # A concurrent request from the same recruiter inserted first
            async with self.database.transaction() as session:
                existing = await RecruiterLinkRepository(session).active_for_recruiter(recruiter.account_id)
                if existing is None:
                    raise Conflict("Link request raced with a concurrent change; retry")
                link = self._existing(existing, business_id)
            return link

        if created:
            self.logger.info(
                "Link requested", link_id=link.id, recruiter=recruiter.account_id, business_id=business_id
            )
            self._notify("requested", link.id, [owner_id, recruiter.account_id])
        return link

    async def _request(self, recruiter: Principal, business_id: str) -> Tuple[RecruiterLink, Optional[str], bool]:
        async with self.database.transaction() as session:
            links = RecruiterLinkRepository(session)

            existing = await links.active_for_recruiter(recruiter.account_id)
            if existing is not None:
                return self._existing(existing, business_id), None, False

            business = await BusinessRepository(session).get_or_raise(business_id, lock=True)
            if business.verification_status != VerificationStatus.APPROVED.value:
                raise PreconditionFailed(
                    "Business is not approved",
                    details={"business_id": business_id, "status": business.verification_status},
                )

            model = await links.add(RecruiterLinkTable(
                id=new_id(),
                recruiter_account_id=recruiter.account_id,
                business_id=business_id,
                link_status=LinkStatus.PENDING.value,
                requested_at=utcnow(),
                version=1,
            ))
            return RecruiterLink.model_validate(model), business.owner_account_id, True

    @staticmethod
    def _existing(model: RecruiterLinkTable, business_id: str) -> RecruiterLink:
        if model.business_id != business_id:
            raise DuplicateError(
                "Recruiter already has an active link with another business; unlink first",
                details={"link_id": model.id, "status": model.link_status},
            )
        return RecruiterLink.model_validate(model)

    async def approve(
        self, link_id: str, business_owner: Principal, expected_version: Optional[int] = None
    ) -> RecruiterLink:
        return await self._owner_decision("approve", link_id, business_owner, None, expected_version)

    async def reject(
        self,
        link_id: str,
        business_owner: Principal,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> RecruiterLink:
        return await self._owner_decision("reject", link_id, business_owner, reason, expected_version)

    async def remove(
        self,
        link_id: str,
        business_owner: Principal,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> RecruiterLink:
        """Business owner drops an approved recruiter."""
        return await self._owner_decision("remove", link_id, business_owner, reason, expected_version)

    async def _owner_decision(
        self,
        action: str,
        link_id: str,
        business_owner: Principal,
        reason: Optional[str],
        expected_version: Optional[int],
    ) -> RecruiterLink:
        authorize(business_owner, Capability.DECIDE_LINK)
        reason = clean_reason(reason)

        async with self.database.transaction() as session:
            links = RecruiterLinkRepository(session)
            model = await links.get_or_raise(link_id)
            business = await BusinessRepository(session).get_or_raise(model.business_id, lock=True)
            require_owner(business_owner, business.owner_account_id, "business")

            previous = LinkStatus(model.link_status)
            transition = LINK_TRANSITIONS.check(
                action, previous, expected_version=expected_version, actual_version=model.version
            )

            now = utcnow()
            values = {"link_status": transition.target.value}
            if action == "approve":
                if business.verification_status != VerificationStatus.APPROVED.value:
                    raise PreconditionFailed(
                        "Business is not approved",
                        details={"business_id": business.id, "status": business.verification_status},
                    )
                values["approved_at"] = now
            elif action == "reject":
                values.update(rejected_at=now, rejected_reason=reason)
            else:
                values["closed_at"] = now

            model = await links.guarded_update(link_id, model.version, **values)
            link = RecruiterLink.model_validate(model)

        self._log_transition(link_id, previous, link.link_status, business_owner=business_owner.account_id)
        self._notify(link.link_status.value, link_id, [link.recruiter_account_id], {"reason": reason})
        return link

    async def unlink(
        self, link_id: str, recruiter: Principal, expected_version: Optional[int] = None
    ) -> RecruiterLink:
        """Recruiter leaves an approved link; a new ``request`` may follow."""
        authorize(recruiter, Capability.UNLINK)

        async with self.database.transaction() as session:
            links = RecruiterLinkRepository(session)
            model = await links.get_or_raise(link_id)
            require_owner(recruiter, model.recruiter_account_id, "recruiter link")

            previous = LinkStatus(model.link_status)
            transition = LINK_TRANSITIONS.check(
                "unlink", previous, expected_version=expected_version, actual_version=model.version
            )
            model = await links.guarded_update(
                link_id, model.version, link_status=transition.target.value, closed_at=utcnow()
            )
            link = RecruiterLink.model_validate(model)
            owner_id = (await BusinessRepository(session).get_or_raise(link.business_id)).owner_account_id

        self._log_transition(link_id, previous, link.link_status, recruiter=recruiter.account_id)
        self._notify("unlinked", link_id, [owner_id])
        return link

    async def get(self, link_id: str, viewer: Principal) -> RecruiterLink:
        async with self.database.transaction() as session:
            model = await RecruiterLinkRepository(session).get_or_raise(link_id)
            if viewer.account_id != model.recruiter_account_id:
                business = await BusinessRepository(session).get_or_raise(model.business_id)
                require_owner(viewer, business.owner_account_id, "recruiter link")
            return RecruiterLink.model_validate(model)

    async def active_for_recruiter(self, recruiter: Principal) -> Optional[RecruiterLink]:
        authorize(recruiter, Capability.REQUEST_LINK)
        async with self.database.transaction() as session:
            model = await RecruiterLinkRepository(session).active_for_recruiter(recruiter.account_id)
            return RecruiterLink.model_validate(model) if model else None

    async def history_for_recruiter(self, recruiter: Principal) -> List[RecruiterLink]:
        authorize(recruiter, Capability.REQUEST_LINK)
        async with self.database.transaction() as session:
            models = await RecruiterLinkRepository(session).list_for_recruiter(recruiter.account_id)
            return [RecruiterLink.model_validate(m) for m in models]

    async def list_pending_for_business(self, business_owner: Principal) -> List[RecruiterLink]:
        """Incoming requests awaiting the owner's decision."""
        return await self._list_for_owner(business_owner, (LinkStatus.PENDING,))

    async def list_for_business(self, business_owner: Principal) -> List[RecruiterLink]:
        """Recruiters currently approved to post for the owner's business."""
        return await self._list_for_owner(business_owner, (LinkStatus.APPROVED,))

    async def _list_for_owner(self, business_owner: Principal, statuses) -> List[RecruiterLink]:
        authorize(business_owner, Capability.DECIDE_LINK)
        async with self.database.transaction() as session:
            business = await BusinessRepository(session).get_by_owner(business_owner.account_id)
            if business is None:
                return []
            models = await RecruiterLinkRepository(session).list_for_business(business.id, statuses)
            return [RecruiterLink.model_validate(m) for m in models]
