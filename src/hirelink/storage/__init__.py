"""Persistence layer: engine, tables and repositories."""

from .database import Base, Database
from .repositories import (
    AccountRepository,
    ApplicationRepository,
    BusinessRepository,
    JobRepository,
    RecruiterLinkRepository,
)

__all__ = [
    "Base",
    "Database",
    "AccountRepository",
    "ApplicationRepository",
    "BusinessRepository",
    "JobRepository",
    "RecruiterLinkRepository",
]
