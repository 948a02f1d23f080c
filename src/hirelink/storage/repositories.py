"""
Repository Implementations
One repository per table, all sharing the version-guarded update.
"""
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hirelink.core.errors import Conflict, NotFoundError
from hirelink.core.models import (
    ACTIVE_LINK_STATUSES,
    JobApprovalStatus,
    LinkStatus,
    VerificationStatus,
)
from hirelink.storage.tables import (
    AccountTable,
    ApplicationTable,
    BusinessTable,
    JobTable,
    RecruiterLinkTable,
    RoundUpdateTable,
    utcnow,
)


class VersionedRepository:
    """Base repository for tables with an optimistic ``version`` column"""

    table: Any = None
    resource: str = "Record"

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, model):
        self.session.add(model)
        await self.session.flush()
        return model

    async def get(self, record_id: str, lock: bool = False):
        """Get a record by id, always re-reading the row

        ``lock`` adds FOR UPDATE where the backend supports row locks.
        """
        query = select(self.table).where(self.table.id == record_id)
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def get_or_raise(self, record_id: str, lock: bool = False):
        model = await self.get(record_id, lock=lock)
        if model is None:
            raise NotFoundError(self.resource, record_id)
        return model

    async def guarded_update(self, record_id: str, read_version: int, **values: Any):
        """
        Apply ``values`` only if the row still has ``read_version``.

        Bumps the version and returns the re-read row; raises ``Conflict``
        when another writer got there first.
        """
        result = await self.session.execute(
            update(self.table)
            .where(self.table.id == record_id, self.table.version == read_version)
            .values(version=self.table.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise Conflict(
                f"{self.resource} {record_id} was modified concurrently",
                details={"id": record_id, "read_version": read_version},
            )
        return await self.get(record_id)

    async def _all(self, query) -> List[Any]:
        result = await self.session.execute(query)
        return list(result.scalars().all())


class AccountRepository:
    """Repository for Directory accounts"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, model: AccountTable) -> AccountTable:
        self.session.add(model)
        await self.session.flush()
        return model

    async def get(self, account_id: str) -> Optional[AccountTable]:
        return await self.session.get(AccountTable, account_id)

    async def get_by_email(self, email: str) -> Optional[AccountTable]:
        result = await self.session.execute(
            select(AccountTable).where(AccountTable.email == email)
        )
        return result.scalar_one_or_none()


class BusinessRepository(VersionedRepository):
    """Repository for business profiles"""

    table = BusinessTable
    resource = "Business"

    async def get_by_owner(self, owner_account_id: str) -> Optional[BusinessTable]:
        result = await self.session.execute(
            select(BusinessTable).where(BusinessTable.owner_account_id == owner_account_id)
        )
        return result.scalar_one_or_none()

    async def list_by_status(self, status: VerificationStatus) -> List[BusinessTable]:
        return await self._all(
            select(BusinessTable)
            .where(BusinessTable.verification_status == status.value)
            .order_by(BusinessTable.created_at.asc())
        )


class RecruiterLinkRepository(VersionedRepository):
    """Repository for recruiter-to-business links"""

    table = RecruiterLinkTable
    resource = "RecruiterLink"

    async def active_for_recruiter(self, recruiter_id: str) -> Optional[RecruiterLinkTable]:
        result = await self.session.execute(
            select(RecruiterLinkTable)
            .where(
                RecruiterLinkTable.recruiter_account_id == recruiter_id,
                RecruiterLinkTable.link_status.in_([s.value for s in ACTIVE_LINK_STATUSES]),
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def approved_link(self, recruiter_id: str, business_id: str) -> Optional[RecruiterLinkTable]:
        result = await self.session.execute(
            select(RecruiterLinkTable)
            .where(
                RecruiterLinkTable.recruiter_account_id == recruiter_id,
                RecruiterLinkTable.business_id == business_id,
                RecruiterLinkTable.link_status == LinkStatus.APPROVED.value,
            )
            .with_for_update()
        )
        return result.scalar_one_or_none()

    async def list_for_business(
        self, business_id: str, statuses: Sequence[LinkStatus]
    ) -> List[RecruiterLinkTable]:
        return await self._all(
            select(RecruiterLinkTable)
            .where(
                RecruiterLinkTable.business_id == business_id,
                RecruiterLinkTable.link_status.in_([s.value for s in statuses]),
            )
            .order_by(RecruiterLinkTable.requested_at.asc())
        )

    async def list_for_recruiter(self, recruiter_id: str) -> List[RecruiterLinkTable]:
        return await self._all(
            select(RecruiterLinkTable)
            .where(RecruiterLinkTable.recruiter_account_id == recruiter_id)
            .order_by(RecruiterLinkTable.requested_at.asc())
        )

    async def reset_approved_for_business(self, business_id: str) -> List[Tuple[str, str]]:
        """
        Move every approved link on a business back to pending.

        Runs as one statement inside the caller's transaction and returns
        ``(link_id, recruiter_account_id)`` for each row actually reset.
        """
        result = await self.session.execute(
            update(RecruiterLinkTable)
            .where(
                RecruiterLinkTable.business_id == business_id,
                RecruiterLinkTable.link_status == LinkStatus.APPROVED.value,
            )
            .values(
                link_status=LinkStatus.PENDING.value,
                approved_at=None,
                version=RecruiterLinkTable.version + 1,
            )
            .returning(RecruiterLinkTable.id, RecruiterLinkTable.recruiter_account_id)
            .execution_options(synchronize_session=False)
        )
        return [(row[0], row[1]) for row in result.all()]


class JobRepository(VersionedRepository):
    """Repository for job postings"""

    table = JobTable
    resource = "Job"

    async def list_public(self) -> List[JobTable]:
        return await self._all(
            select(JobTable)
            .where(
                JobTable.approval_status == JobApprovalStatus.APPROVED.value,
                JobTable.is_open.is_(True),
            )
            .order_by(JobTable.created_at.desc())
        )

    async def list_for_business(self, business_id: str, status: JobApprovalStatus) -> List[JobTable]:
        return await self._all(
            select(JobTable)
            .where(JobTable.business_id == business_id, JobTable.approval_status == status.value)
            .order_by(JobTable.created_at.desc())
        )

    async def list_for_recruiter(self, recruiter_id: str) -> List[JobTable]:
        return await self._all(
            select(JobTable)
            .where(JobTable.posted_by_recruiter_id == recruiter_id)
            .order_by(JobTable.created_at.desc())
        )


class ApplicationRepository(VersionedRepository):
    """Repository for applications and their round log"""

    table = ApplicationTable
    resource = "Application"

    async def list_for_job(self, job_id: str) -> List[ApplicationTable]:
        return await self._all(
            select(ApplicationTable)
            .where(ApplicationTable.job_id == job_id)
            .order_by(ApplicationTable.created_at.asc())
        )

    async def find_for_pair(self, jobseeker_id: str, job_id: str) -> Optional[ApplicationTable]:
        result = await self.session.execute(
            select(ApplicationTable).where(
                ApplicationTable.jobseeker_account_id == jobseeker_id,
                ApplicationTable.job_id == job_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_jobseeker(self, jobseeker_id: str) -> List[ApplicationTable]:
        return await self._all(
            select(ApplicationTable)
            .where(ApplicationTable.jobseeker_account_id == jobseeker_id)
            .order_by(ApplicationTable.created_at.desc())
        )

    async def append_round_update(
        self,
        application: ApplicationTable,
        round_number: int,
        result: str,
        recorded_by: str,
        note: Optional[str] = None,
        round_title: Optional[str] = None,
        round_type: Optional[str] = None,
    ) -> RoundUpdateTable:
        """Append one entry to the round log; earlier entries are never touched"""
        entry = RoundUpdateTable(
            application_id=application.id,
            sequence=len(application.round_updates) + 1,
            round_number=round_number,
            round_title=round_title,
            round_type=round_type,
            result=result,
            note=note,
            recorded_by=recorded_by,
            recorded_at=utcnow(),
        )
        self.session.add(entry)
        await self.session.flush()
        return entry
