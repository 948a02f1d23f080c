"""Domain models, errors, transition rules and the authorization gate."""

from .auth import Capability, Principal, TokenPair, TokenService, authorize
from .errors import (
    AuthenticationError,
    AuthorizationError,
    Conflict,
    DuplicateError,
    HireLinkError,
    NotFoundError,
    PreconditionFailed,
    StaleRound,
    TerminalStateError,
    ValidationError,
)
from .models import (
    Account,
    Application,
    ApplicationStatus,
    BusinessProfile,
    Job,
    JobApprovalStatus,
    JobDraft,
    LinkStatus,
    RecruiterLink,
    Role,
    Round,
    RoundResult,
    RoundType,
    RoundUpdate,
    VerificationStatus,
)

__all__ = [
    "Capability",
    "Principal",
    "TokenPair",
    "TokenService",
    "authorize",
    "AuthenticationError",
    "AuthorizationError",
    "Conflict",
    "DuplicateError",
    "HireLinkError",
    "NotFoundError",
    "PreconditionFailed",
    "StaleRound",
    "TerminalStateError",
    "ValidationError",
    "Account",
    "Application",
    "ApplicationStatus",
    "BusinessProfile",
    "Job",
    "JobApprovalStatus",
    "JobDraft",
    "LinkStatus",
    "RecruiterLink",
    "Role",
    "Round",
    "RoundResult",
    "RoundType",
    "RoundUpdate",
    "VerificationStatus",
]
