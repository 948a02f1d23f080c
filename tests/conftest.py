"""Shared fixtures: a throwaway file-backed marketplace and a driver for common setups."""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from hirelink.api.main import create_app
from hirelink.core.auth import Principal, TokenService
from hirelink.core.models import (
    Application,
    BusinessProfile,
    Job,
    JobDraft,
    RecruiterLink,
    Role,
    Round,
    RoundType,
)
from hirelink.notifications import RecordingNotificationSink
from hirelink.service import Marketplace
from hirelink.storage.database import Database

TEST_SECRET = "test-secret-key"

JOB_DESCRIPTION = (
    "Build and operate the payment services that move money for thousands of small shops."
)
COVER_LETTER = "I have five years of Python experience and have shipped payment systems."

ROUND_TYPES = [
    RoundType.RESUME_SCREENING,
    RoundType.TECHNICAL_INTERVIEW,
    RoundType.HR_INTERVIEW,
    RoundType.FINAL_INTERVIEW,
    RoundType.OFFER,
]


def make_marketplace(path) -> Marketplace:
    return Marketplace(
        database=Database(f"sqlite+aiosqlite:///{path}"),
        sink=RecordingNotificationSink(),
        tokens=TokenService(secret_key=TEST_SECRET),
    )


def job_draft(round_count: int = 3, **overrides: Any) -> JobDraft:
    fields: Dict[str, Any] = {
        "title": "Backend Engineer",
        "description": JOB_DESCRIPTION,
        "location": "Chennai",
        "salary": "12-18 LPA",
        "skills": ["python", "sql"],
        "rounds": [
            Round(order=i + 1, type=ROUND_TYPES[i % len(ROUND_TYPES)], title=f"Round {i + 1}")
            for i in range(round_count)
        ],
    }
    fields.update(overrides)
    return JobDraft(**fields)


@dataclass
class Cast:
    """One account per role."""
    admin: Principal
    owner: Principal
    recruiter: Principal
    jobseeker: Principal


@dataclass
class Setup:
    """A business, a linked recruiter and a live job."""
    cast: Cast
    business: BusinessProfile
    link: RecruiterLink
    job: Job


class MarketplaceDriver:
    """Builds the common preconditions so tests can focus on one transition."""

    def __init__(self, marketplace: Marketplace):
        self.marketplace = marketplace

    @property
    def events(self) -> RecordingNotificationSink:
        return self.marketplace.notifications.sink

    def draft(self, round_count: int = 3, **overrides: Any) -> JobDraft:
        return job_draft(round_count, **overrides)

    async def account(self, role: Role, name: Optional[str] = None, profile=None) -> Principal:
        suffix = uuid4().hex[:8]
        account = await self.marketplace.directory.create_account(
            role, name or f"{role.value} {suffix}", f"{role.value}-{suffix}@example.com", profile
        )
        return Principal(account_id=account.id, role=account.role)

    async def cast(self) -> Cast:
        return Cast(
            admin=await self.account(Role.ADMIN),
            owner=await self.account(Role.BUSINESS),
            recruiter=await self.account(Role.RECRUITER),
            jobseeker=await self.account(
                Role.JOBSEEKER, profile={"full_name": "Priya Raman", "city": "Madurai", "skills": ["python", "sql"]}
            ),
        )

    async def approved_business(self, cast: Cast, owner: Optional[Principal] = None) -> BusinessProfile:
        owner = owner or cast.owner
        business = await self.marketplace.businesses.register(owner, f"Acme {uuid4().hex[:6]}")
        return await self.marketplace.businesses.approve(business.id, cast.admin)

    async def approved_link(
        self, cast: Cast, business: BusinessProfile, recruiter: Optional[Principal] = None
    ) -> RecruiterLink:
        recruiter = recruiter or cast.recruiter
        link = await self.marketplace.links.request(recruiter, business.id)
        return await self.marketplace.links.approve(link.id, cast.owner)

    async def live_job(self, cast: Cast, business: BusinessProfile, rounds: int = 3) -> Job:
        job = await self.marketplace.jobs.create(cast.recruiter, business.id, job_draft(rounds))
        return await self.marketplace.jobs.approve(job.id, cast.owner)

    async def ready(self, rounds: int = 3) -> Setup:
        cast = await self.cast()
        business = await self.approved_business(cast)
        link = await self.approved_link(cast, business)
        job = await self.live_job(cast, business, rounds)
        return Setup(cast=cast, business=business, link=link, job=job)

    async def apply(self, setup: Setup, jobseeker: Optional[Principal] = None) -> Application:
        return await self.marketplace.applications.apply(
            jobseeker or setup.cast.jobseeker, setup.job.id, COVER_LETTER, ["python"]
        )

    async def shortlisted(self, setup: Setup) -> Application:
        application = await self.apply(setup)
        return await self.marketplace.applications.shortlist(application.id, setup.cast.recruiter)

    async def drain(self) -> List[str]:
        await self.marketplace.notifications.drain()
        return self.events.kinds()


@pytest.fixture
def marketplace_factory(tmp_path):
    """Async context manager yielding a driver over a brand-new database."""

    @asynccontextmanager
    async def factory():
        marketplace = make_marketplace(tmp_path / f"{uuid4().hex}.db")
        await marketplace.start()
        try:
            yield MarketplaceDriver(marketplace)
        finally:
            await marketplace.close()

    return factory


@pytest_asyncio.fixture
async def driver(marketplace_factory):
    async with marketplace_factory() as d:
        yield d


@pytest.fixture
def marketplace(driver) -> Marketplace:
    return driver.marketplace


@pytest.fixture
def api_database(tmp_path):
    return tmp_path / "api.db"


@pytest.fixture
def seeded_cast(api_database) -> Cast:
    """Accounts written through their own event loop before the app starts."""

    async def seed() -> Cast:
        marketplace = make_marketplace(api_database)
        await marketplace.start()
        try:
            return await MarketplaceDriver(marketplace).cast()
        finally:
            await marketplace.close()

    return asyncio.run(seed())


@pytest.fixture
def client(api_database, seeded_cast):
    app = create_app(make_marketplace(api_database))
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    """Build request headers carrying a bearer token for a principal."""
    tokens = TokenService(secret_key=TEST_SECRET)

    def build(principal: Principal, version: Optional[int] = None) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {tokens.issue(principal.account_id).access_token}"}
        if version is not None:
            headers["If-Match"] = f'"{version}"'
        return headers

    return build
