"""API models for request/response schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from hirelink.core.models import EmploymentType, Round, RoundResult


class RequestModel(BaseModel):
    """Request bodies accept both camelCase and snake_case keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterBusinessRequest(RequestModel):
    """Business profile submitted for verification."""
    business_name: str = Field(..., description="Business name")
    category: Optional[str] = Field(None, description="Business category")
    address: Optional[str] = Field(None, description="Postal address")
    description: Optional[str] = Field(None, description="About the business")


class ReasonRequest(RequestModel):
    """Optional reason attached to a rejection, revocation or removal."""
    reason: Optional[str] = Field(None, description="Human-readable reason")


class NoteRequest(RequestModel):
    note: Optional[str] = Field(None, description="Recruiter note")


class LinkRequest(RequestModel):
    """Recruiter asks to link with a business."""
    business_id: str = Field(..., description="Target business")


class CreateJobRequest(RequestModel):
    """Job fields posted by a linked recruiter."""
    business_id: str = Field(..., description="Business the job is posted for")
    title: str = Field(..., description="Job title")
    description: str = Field(..., description="Job description")
    location: str = Field(..., description="Job location")
    salary: Optional[str] = Field(None, description="Salary text")
    employment_type: EmploymentType = Field(EmploymentType.FULL_TIME, description="Employment type")
    skills: List[str] = Field(default_factory=list, description="Required skills")
    rounds: List[Round] = Field(default_factory=list, description="Ordered hiring rounds")


class ApplyRequest(RequestModel):
    """Jobseeker applies to a job."""
    job_id: str = Field(..., description="Job to apply to")
    cover_letter: str = Field(..., description="Cover letter")
    selected_skills: List[str] = Field(default_factory=list, description="Skills the applicant claims")


class RoundResultRequest(RequestModel):
    """Result recorded against the application's current round."""
    round_number: int = Field(..., ge=0, description="Round the caller believes is current")
    result: RoundResult = Field(..., description="Round outcome")
    note: Optional[str] = Field(None, description="Recruiter note")
    advance_to_next: bool = Field(False, description="Move to the next round on a pass")


class AnnotateApplicationRequest(RequestModel):
    """Recruiter's private notes and rating; omitted fields stay as they are."""
    internal_notes: Optional[str] = Field(None, description="Private notes, blank clears them")
    rating: Optional[int] = Field(None, description="Rating from 1 to 5")


class RefreshRequest(RequestModel):
    refresh_token: str = Field(..., description="Refresh token from a previous issue")


class TokenResponse(BaseModel):
    """Bearer token pair."""
    access_token: str = Field(..., description="Short-lived access token")
    refresh_token: str = Field(..., description="Refresh token")
    token_type: str = Field("bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class HealthCheck(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Check timestamp")
    version: str = Field(..., description="Service version")
    components: Dict[str, str] = Field(..., description="Component status")


class ErrorResponse(BaseModel):
    """Error envelope returned for every failed request."""
    kind: str = Field(..., description="Error kind")
    message: str = Field(..., description="Error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
    timestamp: datetime = Field(..., description="Error timestamp")
