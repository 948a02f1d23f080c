"""Wires storage, directory, notifications and the four machines together."""

from typing import Optional

from hirelink.core.auth import Principal, TokenPair, TokenService
from hirelink.core.errors import AuthenticationError, NotFoundError
from hirelink.directory import Directory
from hirelink.machines import (
    ApplicationPipeline,
    BusinessVerificationMachine,
    JobApprovalMachine,
    RecruiterLinkMachine,
)
from hirelink.notifications import NotificationDispatcher, NotificationSink
from hirelink.storage.database import Database
from hirelink.utils.logging import get_logger

logger = get_logger(__name__)


class Marketplace:
    """
    One object holding every collaborator an operation needs.

    The API and CLI build exactly one of these; tests build one per
    database.
    """

    def __init__(
        self,
        database: Optional[Database] = None,
        sink: Optional[NotificationSink] = None,
        tokens: Optional[TokenService] = None,
    ):
        self.database = database or Database()
        self.notifications = NotificationDispatcher(sink)
        self.tokens = tokens or TokenService()
        self.directory = Directory(self.database)

        self.businesses = BusinessVerificationMachine(self.database, self.notifications)
        self.links = RecruiterLinkMachine(self.database, self.notifications)
        self.jobs = JobApprovalMachine(self.database, self.notifications)
        self.applications = ApplicationPipeline(self.database, self.notifications)

    async def start(self) -> None:
        await self.database.create_all()
        logger.info("Marketplace started")

    async def close(self) -> None:
        """Flush pending notifications and release connections."""
        await self.notifications.drain()
        await self.database.dispose()
        logger.info("Marketplace stopped")

    async def authenticate(self, token: str) -> Principal:
        """Resolve a bearer access token to the caller's principal."""
        account_id = self.tokens.verify(token)
        try:
            return await self.directory.resolve_principal(account_id)
        except NotFoundError:
            raise AuthenticationError("Token subject no longer exists")

    async def login(self, account_id: str) -> TokenPair:
        """Issue a token pair for an existing account."""
        account = await self.directory.get_account(account_id)
        return self.tokens.issue(account.id)

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Explicit refresh step; the account must still exist."""
        account_id = self.tokens.verify(refresh_token, token_type=TokenService.REFRESH)
        await self.directory.get_account(account_id)
        return self.tokens.issue(account_id)
