"""Business verification: pending -> approved | rejected, approved -> pending."""

from typing import List, Optional

from sqlalchemy.exc import IntegrityError

from hirelink.core.auth import Capability, Principal, authorize
from hirelink.core.errors import DuplicateError, ValidationError
from hirelink.core.models import BusinessProfile, VerificationStatus
from hirelink.core.transitions import Transition, TransitionTable
from hirelink.machines.base import StateMachine, clean_reason, clean_text
from hirelink.notifications import NotificationEvent
from hirelink.storage.repositories import BusinessRepository, RecruiterLinkRepository
from hirelink.storage.tables import BusinessTable, new_id, utcnow

BUSINESS_TRANSITIONS = TransitionTable(
    "business",
    [
        Transition("approve", frozenset({VerificationStatus.PENDING}), VerificationStatus.APPROVED),
        Transition("reject", frozenset({VerificationStatus.PENDING}), VerificationStatus.REJECTED),
        # A never-approved business is also pending; that is a precondition failure
        Transition(
            "revoke",
            frozenset({VerificationStatus.APPROVED}),
            VerificationStatus.PENDING,
            repeat_is_conflict=False,
        ),
    ],
    terminal={VerificationStatus.REJECTED},
)


class BusinessVerificationMachine(StateMachine):
    """
    Owns a business's verification status.

    Only admins drive transitions. Revoking an approved business sends every
    approved recruiter link on it back to pending in the same transaction as
    the status write. Approved jobs under the business stay live.
    """

    entity = "business"

    async def register(
        self,
        owner: Principal,
        business_name: str,
        category: Optional[str] = None,
        address: Optional[str] = None,
        description: Optional[str] = None,
    ) -> BusinessProfile:
        """Create the (single) profile of a business account, pending review."""
        authorize(owner, Capability.REGISTER_BUSINESS)

        name = clean_text(business_name, "business_name", 100)
        if not name:
            raise ValidationError("business_name", "must not be empty")

        try:
            async with self.database.transaction() as session:
                repo = BusinessRepository(session)
                if await repo.get_by_owner(owner.account_id) is not None:
                    raise DuplicateError("This account already has a business profile")

                now = utcnow()
                model = await repo.add(BusinessTable(
                    id=new_id(),
                    owner_account_id=owner.account_id,
                    business_name=name,
                    category=clean_text(category, "category", 50),
                    address=clean_text(address, "address", 500),
                    description=clean_text(description, "description", 1000),
                    verification_status=VerificationStatus.PENDING.value,
                    version=1,
                    created_at=now,
                    last_transition_at=now,
                ))
                profile = BusinessProfile.model_validate(model)
        except IntegrityError:
            raise DuplicateError("This account already has a business profile")

        self.logger.info("Business registered", business_id=profile.id, owner=owner.account_id)
        self._notify("registered", profile.id, [owner.account_id])
        return profile

    async def approve(
        self, business_id: str, admin: Principal, expected_version: Optional[int] = None
    ) -> BusinessProfile:
        profile, _ = await self._transition("approve", business_id, admin, None, expected_version)
        return profile

    async def reject(
        self,
        business_id: str,
        admin: Principal,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> BusinessProfile:
        profile, _ = await self._transition("reject", business_id, admin, reason, expected_version)
        return profile

    async def revoke(
        self,
        business_id: str,
        admin: Principal,
        reason: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> BusinessProfile:
        profile, reset = await self._transition("revoke", business_id, admin, reason, expected_version)
        for link_id, recruiter_id in reset:
            self.notifications.publish(self._link_reset_event(link_id, recruiter_id, business_id))
        return profile

    async def _transition(
        self,
        action: str,
        business_id: str,
        admin: Principal,
        reason: Optional[str],
        expected_version: Optional[int],
    ):
        authorize(admin, Capability.VERIFY_BUSINESS)
        reason = clean_reason(reason)

        async with self.database.transaction() as session:
            repo = BusinessRepository(session)
            model = await repo.get_or_raise(business_id)
            previous = VerificationStatus(model.verification_status)
            transition = BUSINESS_TRANSITIONS.check(
                action, previous, expected_version=expected_version, actual_version=model.version
            )

            model = await repo.guarded_update(
                business_id,
                model.version,
                verification_status=transition.target.value,
                status_reason=reason,
                reviewed_by=admin.account_id,
                last_transition_at=utcnow(),
            )

            reset = []
            if action == "revoke":
                reset = await RecruiterLinkRepository(session).reset_approved_for_business(business_id)

            profile = BusinessProfile.model_validate(model)

        self._log_transition(
            business_id, previous, profile.verification_status,
            admin=admin.account_id, links_reset=len(reset),
        )
        self._notify(
            transition.target.value if action != "revoke" else "revoked",
            business_id,
            [profile.owner_account_id],
            {"reason": reason, "links_reset": len(reset)},
        )
        return profile, reset

    def _link_reset_event(self, link_id: str, recruiter_id: str, business_id: str) -> NotificationEvent:
        return NotificationEvent(
            kind="recruiter_link.reset_by_revocation",
            entity_type="recruiter_link",
            entity_id=link_id,
            recipients=[recruiter_id],
            payload={"business_id": business_id},
        )

    async def get(self, business_id: str) -> BusinessProfile:
        async with self.database.transaction() as session:
            model = await BusinessRepository(session).get_or_raise(business_id)
            return BusinessProfile.model_validate(model)

    async def get_for_owner(self, owner: Principal) -> Optional[BusinessProfile]:
        async with self.database.transaction() as session:
            model = await BusinessRepository(session).get_by_owner(owner.account_id)
            return BusinessProfile.model_validate(model) if model else None

    async def list_pending(self, admin: Principal) -> List[BusinessProfile]:
        """Admin review queue."""
        authorize(admin, Capability.VERIFY_BUSINESS)
        return await self._list(VerificationStatus.PENDING)

    async def list_approved(self) -> List[BusinessProfile]:
        """Businesses recruiters may request to link with."""
        return await self._list(VerificationStatus.APPROVED)

    async def _list(self, status: VerificationStatus) -> List[BusinessProfile]:
        async with self.database.transaction() as session:
            models = await BusinessRepository(session).list_by_status(status)
            return [BusinessProfile.model_validate(m) for m in models]
