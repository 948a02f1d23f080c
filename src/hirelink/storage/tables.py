"""
ORM tables.

Every mutable record carries a ``version`` column; writers update it with a
``WHERE version = :read_version`` predicate so a concurrent writer is detected
rather than overwritten.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from hirelink.storage.database import Base


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


_ACTIVE_LINK = text("link_status IN ('pending', 'approved')")


class AccountTable(Base):
    """Directory accounts"""

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=new_id)
    role = Column(String(20), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    profile = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<AccountTable {self.id} - {self.role}>"


class BusinessTable(Base):
    """Business profiles and their verification status"""

    __tablename__ = "businesses"

    id = Column(String(36), primary_key=True, default=new_id)
    owner_account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, unique=True)

    business_name = Column(String(100), nullable=False)
    category = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)

    verification_status = Column(String(20), nullable=False, default="pending", index=True)
    status_reason = Column(Text, nullable=True)
    reviewed_by = Column(String(36), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_transition_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<BusinessTable {self.id} - {self.verification_status}>"


class RecruiterLinkTable(Base):
    """Recruiter-to-business links"""

    __tablename__ = "recruiter_links"
    __table_args__ = (
        # At most one pending/approved link per recruiter
        Index(
            "uq_recruiter_links_active",
            "recruiter_account_id",
            unique=True,
            sqlite_where=_ACTIVE_LINK,
            postgresql_where=_ACTIVE_LINK,
        ),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    recruiter_account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    business_id = Column(String(36), ForeignKey("businesses.id"), nullable=False, index=True)

    link_status = Column(String(30), nullable=False, default="pending", index=True)
    requested_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejected_reason = Column(Text, nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)

    def __repr__(self):
        return f"<RecruiterLinkTable {self.id} - {self.link_status}>"


class JobTable(Base):
    """Job postings"""

    __tablename__ = "jobs"

    id = Column(String(36), primary_key=True, default=new_id)
    business_id = Column(String(36), ForeignKey("businesses.id"), nullable=False, index=True)
    posted_by_recruiter_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)

    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False)
    location = Column(String(200), nullable=False)
    salary = Column(String(100), nullable=True)
    employment_type = Column(String(20), nullable=False, default="full_time")
    skills = Column(JSON, nullable=False, default=list)
    rounds = Column(JSON, nullable=False, default=list)

    approval_status = Column(String(30), nullable=False, default="pending_business", index=True)
    is_open = Column(Boolean, nullable=False, default=True)
    rejected_reason = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    closed_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<JobTable {self.id} - {self.approval_status}>"


class ApplicationTable(Base):
    """Applications"""

    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("jobseeker_account_id", "job_id", name="uq_application_per_jobseeker_job"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False, index=True)
    jobseeker_account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    recruiter_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    business_id = Column(String(36), ForeignKey("businesses.id"), nullable=False)

    status = Column(String(20), nullable=False, default="applied", index=True)
    current_round = Column(Integer, nullable=False, default=0)

    cover_letter = Column(Text, nullable=False)
    selected_skills = Column(JSON, nullable=False, default=list)
    applicant_snapshot = Column(JSON, nullable=False, default=dict)
    rejection_reason = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    recruiter_rating = Column(Integer, nullable=True)

    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    shortlisted_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    hired_at = Column(DateTime(timezone=True), nullable=True)
    withdrawn_at = Column(DateTime(timezone=True), nullable=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    round_updates = relationship(
        "RoundUpdateTable",
        order_by="RoundUpdateTable.sequence",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<ApplicationTable {self.id} - {self.status}>"


class RoundUpdateTable(Base):
    """Append-only round log, never addressed on its own"""

    __tablename__ = "round_updates"
    __table_args__ = (
        UniqueConstraint("application_id", "sequence", name="uq_round_update_sequence"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(String(36), ForeignKey("applications.id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)

    round_number = Column(Integer, nullable=False)
    round_title = Column(String(200), nullable=True)
    round_type = Column(String(50), nullable=True)
    result = Column(String(20), nullable=False)
    note = Column(Text, nullable=True)
    recorded_by = Column(String(36), nullable=False)
    recorded_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<RoundUpdateTable {self.application_id}#{self.sequence} - {self.result}>"
