"""API routes for HireLink."""

from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Response

from hirelink import __version__
from hirelink.api.dependencies import etag, expected_version, get_marketplace, get_principal
from hirelink.api.models import (
    AnnotateApplicationRequest,
    ApplyRequest,
    CreateJobRequest,
    HealthCheck,
    LinkRequest,
    NoteRequest,
    ReasonRequest,
    RefreshRequest,
    RegisterBusinessRequest,
    RoundResultRequest,
    TokenResponse,
)
from hirelink.core.auth import Principal
from hirelink.core.models import Application, BusinessProfile, Job, JobDraft, RecruiterLink
from hirelink.service import Marketplace
from hirelink.utils.logging import get_logger

logger = get_logger(__name__)

# Create routers
auth_router = APIRouter(prefix="/auth", tags=["auth"])
business_router = APIRouter(prefix="/businesses", tags=["businesses"])
link_router = APIRouter(prefix="/recruiter-links", tags=["recruiter-links"])
jobs_router = APIRouter(prefix="/jobs", tags=["jobs"])
application_router = APIRouter(prefix="/applications", tags=["applications"])
health_router = APIRouter(prefix="/health", tags=["health"])


def _versioned(response: Response, entity):
    """Expose the entity version as its ETag."""
    response.headers["ETag"] = etag(entity.version)
    return entity


def _reason(body: Optional[ReasonRequest]) -> Optional[str]:
    return body.reason if body else None


# Auth

@auth_router.post("/refresh", response_model=TokenResponse)
async def refresh_token(body: RefreshRequest, marketplace: Marketplace = Depends(get_marketplace)):
    """Exchange a refresh token for a new token pair."""
    pair = await marketplace.refresh(body.refresh_token)
    return TokenResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type,
        expires_in=pair.expires_in,
    )


# Businesses

@business_router.post("", response_model=BusinessProfile, status_code=201)
async def register_business(
    body: RegisterBusinessRequest,
    response: Response,
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    profile = await marketplace.businesses.register(
        principal,
        body.business_name,
        category=body.category,
        address=body.address,
        description=body.description,
    )
    return _versioned(response, profile)


@business_router.get("/pending", response_model=List[BusinessProfile])
async def pending_businesses(
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    """Admin review queue."""
    return await marketplace.businesses.list_pending(principal)


@business_router.get("/approved", response_model=List[BusinessProfile])
async def approved_businesses(marketplace: Marketplace = Depends(get_marketplace)):
    return await marketplace.businesses.list_approved()


@business_router.get("/{business_id}", response_model=BusinessProfile)
async def get_business(
    business_id: str, response: Response, marketplace: Marketplace = Depends(get_marketplace)
):
    return _versioned(response, await marketplace.businesses.get(business_id))


@business_router.post("/{business_id}/approve", response_model=BusinessProfile)
async def approve_business(
    business_id: str,
    response: Response,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    profile = await marketplace.businesses.approve(business_id, principal, expected_version=version)
    return _versioned(response, profile)


@business_router.post("/{business_id}/reject", response_model=BusinessProfile)
async def reject_business(
    business_id: str,
    response: Response,
    body: Optional[ReasonRequest] = None,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    profile = await marketplace.businesses.reject(
        business_id, principal, reason=_reason(body), expected_version=version
    )
    return _versioned(response, profile)


@business_router.post("/{business_id}/revoke", response_model=BusinessProfile)
async def revoke_business(
    business_id: str,
    response: Response,
    body: Optional[ReasonRequest] = None,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    """Send an approved business back to review; its approved links reset to pending."""
    profile = await marketplace.businesses.revoke(
        business_id, principal, reason=_reason(body), expected_version=version
    )
    return _versioned(response, profile)


# Recruiter links

@link_router.post("", response_model=RecruiterLink)
async def request_link(
    body: LinkRequest,
    response: Response,
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    """Idempotent: repeating the request returns the existing link."""
    return _versioned(response, await marketplace.links.request(principal, body.business_id))


@link_router.get("/pending", response_model=List[RecruiterLink])
async def pending_links(
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    return await marketplace.links.list_pending_for_business(principal)


@link_router.get("/approved", response_model=List[RecruiterLink])
async def approved_links(
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    return await marketplace.links.list_for_business(principal)


@link_router.get("/mine", response_model=List[RecruiterLink])
async def my_links(
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    """Every link the recruiter has held, oldest first."""
    return await marketplace.links.history_for_recruiter(principal)


@link_router.get("/{link_id}", response_model=RecruiterLink)
async def get_link(
    link_id: str,
    response: Response,
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    return _versioned(response, await marketplace.links.get(link_id, principal))


@link_router.post("/{link_id}/approve", response_model=RecruiterLink)
async def approve_link(
    link_id: str,
    response: Response,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    link = await marketplace.links.approve(link_id, principal, expected_version=version)
    return _versioned(response, link)


@link_router.post("/{link_id}/reject", response_model=RecruiterLink)
async def reject_link(
    link_id: str,
    response: Response,
    body: Optional[ReasonRequest] = None,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    link = await marketplace.links.reject(link_id, principal, reason=_reason(body), expected_version=version)
    return _versioned(response, link)


@link_router.post("/{link_id}/remove", response_model=RecruiterLink)
async def remove_link(
    link_id: str,
    response: Response,
    body: Optional[ReasonRequest] = None,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    link = await marketplace.links.remove(link_id, principal, reason=_reason(body), expected_version=version)
    return _versioned(response, link)


@link_router.post("/{link_id}/unlink", response_model=RecruiterLink)
async def unlink(
    link_id: str,
    response: Response,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    link = await marketplace.links.unlink(link_id, principal, expected_version=version)
    return _versioned(response, link)


# Jobs

@jobs_router.post("", response_model=Job, status_code=201)
async def create_job(
    body: CreateJobRequest,
    response: Response,
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    draft = JobDraft(**body.model_dump(exclude={"business_id"}))
    return _versioned(response, await marketplace.jobs.create(principal, body.business_id, draft))


@jobs_router.get("", response_model=List[Job])
async def list_jobs(marketplace: Marketplace = Depends(get_marketplace)):
    """Public listing: approved, open jobs."""
    return await marketplace.jobs.list_public()


@jobs_router.get("/pending", response_model=List[Job])
async def pending_jobs(
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    return await marketplace.jobs.list_pending_for_business(principal)


@jobs_router.get("/mine", response_model=List[Job])
async def my_jobs(
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    return await marketplace.jobs.list_for_recruiter(principal)


@jobs_router.get("/{job_id}", response_model=Job)
async def get_job(job_id: str, response: Response, marketplace: Marketplace = Depends(get_marketplace)):
    return _versioned(response, await marketplace.jobs.get(job_id))


@jobs_router.get("/{job_id}/applications", response_model=List[Application])
async def job_applications(
    job_id: str,
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    return await marketplace.applications.list_for_job(job_id, principal)


@jobs_router.post("/{job_id}/approve", response_model=Job)
async def approve_job(
    job_id: str,
    response: Response,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    return _versioned(response, await marketplace.jobs.approve(job_id, principal, expected_version=version))


@jobs_router.post("/{job_id}/reject", response_model=Job)
async def reject_job(
    job_id: str,
    response: Response,
    body: Optional[ReasonRequest] = None,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    job = await marketplace.jobs.reject(job_id, principal, reason=_reason(body), expected_version=version)
    return _versioned(response, job)


@jobs_router.post("/{job_id}/close", response_model=Job)
async def close_job(
    job_id: str,
    response: Response,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    return _versioned(response, await marketplace.jobs.close(job_id, principal, expected_version=version))


@jobs_router.post("/{job_id}/reopen", response_model=Job)
async def reopen_job(
    job_id: str,
    response: Response,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    return _versioned(response, await marketplace.jobs.reopen(job_id, principal, expected_version=version))


# Applications

@application_router.post("", response_model=Application, status_code=201)
async def apply(
    body: ApplyRequest,
    response: Response,
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    application = await marketplace.applications.apply(
        principal, body.job_id, body.cover_letter, body.selected_skills
    )
    return _versioned(response, application)


@application_router.get("/mine", response_model=List[Application])
async def my_applications(
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    return await marketplace.applications.list_for_jobseeker(principal)


@application_router.get("/{application_id}", response_model=Application)
async def get_application(
    application_id: str,
    response: Response,
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    return _versioned(response, await marketplace.applications.get(application_id, principal))


@application_router.post("/{application_id}/review", response_model=Application)
async def review_application(
    application_id: str,
    response: Response,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    """Mark an application as opened by the recruiter."""
    application = await marketplace.applications.mark_under_review(
        application_id, principal, expected_version=version
    )
    return _versioned(response, application)


@application_router.post("/{application_id}/shortlist", response_model=Application)
async def shortlist_application(
    application_id: str,
    response: Response,
    body: Optional[NoteRequest] = None,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    application = await marketplace.applications.shortlist(
        application_id, principal, note=body.note if body else None, expected_version=version
    )
    return _versioned(response, application)


@application_router.patch("/{application_id}/round-result", response_model=Application)
async def record_round_result(
    application_id: str,
    body: RoundResultRequest,
    response: Response,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    application = await marketplace.applications.update_round(
        application_id,
        principal,
        round_number=body.round_number,
        result=body.result,
        note=body.note,
        advance_to_next=body.advance_to_next,
        expected_version=version,
    )
    return _versioned(response, application)


@application_router.post("/{application_id}/reject", response_model=Application)
async def reject_application(
    application_id: str,
    response: Response,
    body: Optional[ReasonRequest] = None,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    application = await marketplace.applications.reject(
        application_id, principal, reason=_reason(body), expected_version=version
    )
    return _versioned(response, application)


@application_router.patch("/{application_id}/notes", response_model=Application)
async def annotate_application(
    application_id: str,
    body: AnnotateApplicationRequest,
    response: Response,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    """Recruiter-only notes and rating; the applicant never sees them."""
    application = await marketplace.applications.annotate(
        application_id,
        principal,
        internal_notes=body.internal_notes,
        rating=body.rating,
        expected_version=version,
    )
    return _versioned(response, application)


@application_router.patch("/{application_id}/withdraw", response_model=Application)
async def withdraw_application(
    application_id: str,
    response: Response,
    version: Optional[int] = Depends(expected_version),
    principal: Principal = Depends(get_principal),
    marketplace: Marketplace = Depends(get_marketplace),
):
    application = await marketplace.applications.withdraw(application_id, principal, expected_version=version)
    return _versioned(response, application)


# Health

@health_router.get("", response_model=HealthCheck)
async def health_check(marketplace: Marketplace = Depends(get_marketplace)):
    """Service and database health."""
    database_ok = await marketplace.database.health_check()
    return HealthCheck(
        status="healthy" if database_ok else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        components={"database": "ok" if database_ok else "unavailable"},
    )


# Export all routers
all_routers = [
    auth_router,
    business_router,
    link_router,
    jobs_router,
    application_router,
    health_router,
]
