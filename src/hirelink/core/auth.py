"""
Authorization gate and bearer-token handling.

Roles form a closed set; every operation names the single ``Capability`` it
needs and calls ``authorize`` once. The role is always taken from the
Directory record behind the token subject, never from a claim the caller
supplies.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, FrozenSet, Optional

from jose import JWTError, jwt

from hirelink.config import settings
from hirelink.core.errors import AuthenticationError, AuthorizationError
from hirelink.core.models import Role
from hirelink.utils.logging import get_logger

logger = get_logger(__name__)


class Capability(str, Enum):
    """Things a principal may be allowed to do."""
    REGISTER_BUSINESS = "register_business"
    VERIFY_BUSINESS = "verify_business"
    REQUEST_LINK = "request_link"
    DECIDE_LINK = "decide_link"
    UNLINK = "unlink"
    POST_JOB = "post_job"
    DECIDE_JOB = "decide_job"
    TOGGLE_JOB = "toggle_job"
    APPLY = "apply"
    DRIVE_PIPELINE = "drive_pipeline"
    WITHDRAW = "withdraw"
    VIEW_APPLICATION = "view_application"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.ADMIN: frozenset({Capability.VERIFY_BUSINESS}),
    Role.BUSINESS: frozenset({
        Capability.REGISTER_BUSINESS,
        Capability.DECIDE_LINK,
        Capability.DECIDE_JOB,
    }),
    Role.RECRUITER: frozenset({
        Capability.REQUEST_LINK,
        Capability.UNLINK,
        Capability.POST_JOB,
        Capability.TOGGLE_JOB,
        Capability.DRIVE_PIPELINE,
        Capability.VIEW_APPLICATION,
    }),
    Role.JOBSEEKER: frozenset({
        Capability.APPLY,
        Capability.WITHDRAW,
        Capability.VIEW_APPLICATION,
    }),
}


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, threaded explicitly through every operation."""
    account_id: str
    role: Role

    def can(self, capability: Capability) -> bool:
        return capability in ROLE_CAPABILITIES[self.role]


def authorize(principal: Principal, capability: Capability) -> Principal:
    """Raise ``AuthorizationError`` unless ``principal`` holds ``capability``."""
    if not principal.can(capability):
        logger.warning(
            "Authorization denied",
            account_id=principal.account_id,
            role=principal.role.value,
            capability=capability.value,
        )
        raise AuthorizationError(
            f"Role '{principal.role.value}' may not {capability.value.replace('_', ' ')}",
            details={"capability": capability.value},
        )
    return principal


def require_owner(principal: Principal, owner_id: Optional[str], resource: str) -> None:
    """Raise ``AuthorizationError`` unless ``principal`` owns the resource."""
    if owner_id != principal.account_id:
        raise AuthorizationError(f"Account does not own this {resource}")


@dataclass(frozen=True)
class TokenPair:
    """Access/refresh token pair."""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = 0


class TokenService:
    """Issues, verifies and refreshes JWT bearer credentials."""

    ACCESS = "access"
    REFRESH = "refresh"

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_ttl: Optional[timedelta] = None,
        refresh_ttl: Optional[timedelta] = None,
    ):
        self.secret_key = secret_key or settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm
        self.access_ttl = access_ttl or timedelta(minutes=settings.access_token_expire_minutes)
        self.refresh_ttl = refresh_ttl or timedelta(days=settings.refresh_token_expire_days)

    def _encode(self, account_id: str, token_type: str, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": account_id,
            "type": token_type,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def issue(self, account_id: str) -> TokenPair:
        """Issue a fresh access/refresh pair for an account."""
        return TokenPair(
            access_token=self._encode(account_id, self.ACCESS, self.access_ttl),
            refresh_token=self._encode(account_id, self.REFRESH, self.refresh_ttl),
            expires_in=int(self.access_ttl.total_seconds()),
        )

    def verify(self, token: str, token_type: str = ACCESS) -> str:
        """Return the account id the token was issued to."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning("JWT verification failed", error=str(e))
            raise AuthenticationError("Invalid or expired token")

        if payload.get("type") != token_type:
            raise AuthenticationError(f"Expected a {token_type} token")

        subject = payload.get("sub")
        if not subject:
            raise AuthenticationError("Token has no subject")
        return subject

    def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a valid refresh token for a new pair."""
        account_id = self.verify(refresh_token, token_type=self.REFRESH)
        logger.info("Token refreshed", account_id=account_id)
        return self.issue(account_id)
