"""Core data models for HireLink."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Closed set of account roles. A role never changes after signup."""
    JOBSEEKER = "jobseeker"
    RECRUITER = "recruiter"
    BUSINESS = "business"
    ADMIN = "admin"


class VerificationStatus(str, Enum):
    """Business verification status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LinkStatus(str, Enum):
    """Recruiter-to-business link status."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    UNLINKED = "unlinked"
    REMOVED_BY_BUSINESS = "removed_by_business"


ACTIVE_LINK_STATUSES = (LinkStatus.PENDING, LinkStatus.APPROVED)


class JobApprovalStatus(str, Enum):
    """Job publication status."""
    PENDING_BUSINESS = "pending_business"
    APPROVED = "approved"
    REJECTED_BUSINESS = "rejected_business"


class EmploymentType(str, Enum):
    """Job employment types."""
    FULL_TIME = "full_time"
    PART_TIME = "part_time"
    CONTRACT = "contract"
    INTERNSHIP = "internship"
    REMOTE = "remote"
    FREELANCE = "freelance"


class RoundType(str, Enum):
    """Kinds of hiring rounds."""
    RESUME_SCREENING = "resume_screening"
    ONLINE_TEST = "online_test"
    APTITUDE_TEST = "aptitude_test"
    TECHNICAL_INTERVIEW = "technical_interview"
    HR_INTERVIEW = "hr_interview"
    GROUP_DISCUSSION = "group_discussion"
    ASSIGNMENT = "assignment"
    FINAL_INTERVIEW = "final_interview"
    OFFER = "offer"
    OTHER = "other"


class ApplicationStatus(str, Enum):
    """Jobseeker-facing application status."""
    APPLIED = "applied"
    UNDER_REVIEW = "under_review"
    SHORTLISTED = "shortlisted"
    ROUND_UPDATE = "round_update"
    HIRED = "hired"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class RoundResult(str, Enum):
    """Outcome recorded against a single round."""
    SCHEDULED = "scheduled"
    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"


class Account(BaseModel):
    """Directory account."""
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Account identifier")
    role: Role = Field(..., description="Immutable account role")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")
    profile: Dict[str, Any] = Field(default_factory=dict, description="Role-specific display fields")
    created_at: Optional[datetime] = Field(None, description="Account creation time")


class BusinessProfile(BaseModel):
    """A business and its verification status."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_account_id: str
    business_name: str
    category: Optional[str] = None
    address: Optional[str] = None
    description: Optional[str] = None
    verification_status: VerificationStatus
    status_reason: Optional[str] = None
    reviewed_by: Optional[str] = None
    version: int
    created_at: Optional[datetime] = None
    last_transition_at: Optional[datetime] = None


class RecruiterLink(BaseModel):
    """Approval relationship between a recruiter and a business."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    recruiter_account_id: str
    business_id: str
    link_status: LinkStatus
    requested_at: datetime
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    rejected_reason: Optional[str] = None
    closed_at: Optional[datetime] = None
    version: int

    @property
    def is_active(self) -> bool:
        return self.link_status in ACTIVE_LINK_STATUSES


class Round(BaseModel):
    """One stage of a job's hiring process."""
    order: int = Field(..., description="1-based position of the round")
    type: RoundType = Field(RoundType.OTHER, description="Round type")
    title: str = Field("", description="Round title")
    description: str = Field("", description="What happens in this round")


class JobDraft(BaseModel):
    """Fields a recruiter supplies when posting a job."""
    title: str
    description: str
    location: str
    salary: Optional[str] = None
    employment_type: EmploymentType = EmploymentType.FULL_TIME
    skills: List[str] = Field(default_factory=list)
    rounds: List[Round] = Field(default_factory=list)


class Job(BaseModel):
    """A job posting and its publication status."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    business_id: str
    posted_by_recruiter_id: str
    title: str
    description: str
    location: str
    salary: Optional[str] = None
    employment_type: EmploymentType
    skills: List[str] = Field(default_factory=list)
    rounds: List[Round] = Field(default_factory=list)
    approval_status: JobApprovalStatus
    is_open: bool = True
    rejected_reason: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    version: int
    created_at: Optional[datetime] = None

    @property
    def is_live(self) -> bool:
        """Approved and accepting applications."""
        return self.approval_status == JobApprovalStatus.APPROVED and self.is_open


class ApplicantSnapshot(BaseModel):
    """Applicant profile frozen at submit time."""
    full_name: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None
    city: Optional[str] = None
    education: Optional[str] = None
    experience: Optional[str] = None
    linkedin: Optional[str] = None
    portfolio: Optional[str] = None
    resume_url: Optional[str] = None
    skills: List[str] = Field(default_factory=list)


class RoundUpdate(BaseModel):
    """Append-only audit entry for a round decision."""
    model_config = ConfigDict(from_attributes=True)

    sequence: int
    round_number: int
    round_title: Optional[str] = None
    round_type: Optional[str] = None
    result: RoundResult
    note: Optional[str] = None
    recorded_by: str
    recorded_at: datetime


class Application(BaseModel):
    """A candidate's application and its round-by-round progress."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    job_id: str
    jobseeker_account_id: str
    recruiter_id: str
    business_id: str
    status: ApplicationStatus
    current_round: int
    cover_letter: str
    selected_skills: List[str] = Field(default_factory=list)
    applicant_snapshot: ApplicantSnapshot = Field(default_factory=ApplicantSnapshot)
    rejection_reason: Optional[str] = None
    # Recruiter-only; blanked in the applicant's views
    internal_notes: Optional[str] = None
    recruiter_rating: Optional[int] = None
    round_updates: List[RoundUpdate] = Field(default_factory=list)
    reviewed_at: Optional[datetime] = None
    shortlisted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    hired_at: Optional[datetime] = None
    withdrawn_at: Optional[datetime] = None
    version: int
    created_at: Optional[datetime] = None

    def applicant_view(self) -> "Application":
        """Copy with the recruiter-only fields blanked."""
        return self.model_copy(update={"internal_notes": None, "recruiter_rating": None})
