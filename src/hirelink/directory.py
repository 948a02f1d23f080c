"""Account directory: who exists and which role they hold."""

from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError

from hirelink.core.auth import Principal
from hirelink.core.errors import DuplicateError, NotFoundError, ValidationError
from hirelink.core.models import Account, Role
from hirelink.storage.database import Database
from hirelink.storage.repositories import AccountRepository
from hirelink.storage.tables import AccountTable, new_id, utcnow
from hirelink.utils.logging import get_logger

logger = get_logger(__name__)

# Jobseeker fields copied into an application snapshot
PROFILE_FIELDS = (
    "full_name",
    "email",
    "mobile",
    "city",
    "education",
    "experience",
    "linkedin",
    "portfolio",
    "resume_url",
    "skills",
)


class Directory:
    """
    Account records keyed by id.

    Accounts are provisioned here and only ever read by the state machines.
    There is deliberately no operation that changes an account's role.
    """

    def __init__(self, database: Database):
        self.database = database
        self.logger = logger.bind(component="directory")

    async def create_account(
        self,
        role: Role,
        name: str,
        email: str,
        profile: Optional[Dict[str, Any]] = None,
    ) -> Account:
        if not name or not name.strip():
            raise ValidationError("name", "must not be empty")
        if not email or "@" not in email:
            raise ValidationError("email", "must be a valid email address")

        model = AccountTable(
            id=new_id(),
            role=Role(role).value,
            name=name.strip(),
            email=email.strip().lower(),
            profile=dict(profile or {}),
            created_at=utcnow(),
        )
        try:
            async with self.database.transaction() as session:
                await AccountRepository(session).add(model)
        except IntegrityError:
            raise DuplicateError(f"An account with email '{model.email}' already exists")

        self.logger.info("Account created", account_id=model.id, role=model.role)
        return Account.model_validate(model)

    async def get_account(self, account_id: str) -> Account:
        async with self.database.transaction() as session:
            model = await AccountRepository(session).get(account_id)
            if model is None:
                raise NotFoundError("Account", account_id)
            return Account.model_validate(model)

    async def resolve_principal(self, account_id: str) -> Principal:
        """Build the session principal from the stored role."""
        account = await self.get_account(account_id)
        return Principal(account_id=account.id, role=account.role)

    @staticmethod
    def snapshot_fields(account: Account) -> Dict[str, Any]:
        """Copy of the profile fields an application freezes at submit time."""
        profile = account.profile or {}
        snapshot = {field: profile.get(field) for field in PROFILE_FIELDS}
        snapshot["full_name"] = snapshot["full_name"] or account.name
        snapshot["email"] = snapshot["email"] or account.email
        snapshot["skills"] = list(snapshot["skills"] or [])
        return snapshot
