from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Query, Request, status
from pydantic import BaseModel, Field

from talento_local.api.deps import CurrentPrincipal, DbSession
from talento_local.api.v1.schemas import ApplicationResponse, Envelope, JobResponse, RequestModel, envelope
from talento_local.commands.accept_application import accept_application
from talento_local.commands.cancel_application import cancel_application
from talento_local.commands.reject_application import reject_application
from talento_local.commands.submit_application import submit_application
from talento_local.domain.states import ApplicationStatus
from talento_local.queries.applications import (
    application_stats, get_application, has_applied, list_job_applications, list_worker_applications,
)

router = APIRouter()

class ApplicationCreate(RequestModel):
    job_id: UUID
    message: str = Field(min_length=20, max_length=1000)
    proposed_budget: Optional[Decimal] = Field(default=None, ge=0)

class AcceptResult(BaseModel):
    application: ApplicationResponse
    job: JobResponse
    rejected_application_ids: list[UUID]

class AppliedCheck(BaseModel):
    job_id: UUID
    has_applied: bool

@router.post(
    "",
    response_model=Envelope[ApplicationResponse],
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def submit_application_endpoint(body: ApplicationCreate, session: DbSession, principal: CurrentPrincipal):
    application = await submit_application(
        session,
        job_id=body.job_id,
        worker=principal,
        message=body.message,
        proposed_budget=body.proposed_budget,
    )
    await session.commit()
    return envelope(ApplicationResponse.model_validate(application), message="Application submitted")

@router.get("/my", response_model=Envelope[list[ApplicationResponse]], response_model_exclude_unset=True)
async def my_applications(
    session: DbSession,
    principal: CurrentPrincipal,
    status: Optional[ApplicationStatus] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
):
    result = await list_worker_applications(session, principal, status, page, limit)
    return envelope([ApplicationResponse.model_validate(a) for a in result.items], page=result)

@router.get("/stats", response_model=Envelope[dict[str, Any]], response_model_exclude_unset=True)
async def stats(session: DbSession, principal: CurrentPrincipal):
    return envelope(await application_stats(session, principal))

@router.get("/check/{job_id}", response_model=Envelope[AppliedCheck], response_model_exclude_unset=True)
async def check_applied(job_id: UUID, session: DbSession, principal: CurrentPrincipal):
    applied = await has_applied(session, principal, job_id)
    return envelope(AppliedCheck(job_id=job_id, has_applied=applied))

@router.get("/job/{job_id}", response_model=Envelope[list[ApplicationResponse]], response_model_exclude_unset=True)
async def job_applications(
    job_id: UUID,
    session: DbSession,
    principal: CurrentPrincipal,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
):
    result = await list_job_applications(session, job_id, principal, page, limit)
    return envelope([ApplicationResponse.model_validate(a) for a in result.items], page=result)

@router.get("/{application_id}", response_model=Envelope[ApplicationResponse], response_model_exclude_unset=True)
async def get_application_endpoint(application_id: UUID, session: DbSession, principal: CurrentPrincipal):
    application = await get_application(session, application_id, principal)
    return envelope(ApplicationResponse.model_validate(application))

@router.post("/{application_id}/accept", response_model=Envelope[AcceptResult], response_model_exclude_unset=True)
async def accept_application_endpoint(
    application_id: UUID,
    request: Request,
    session: DbSession,
    principal: CurrentPrincipal,
):
    job, application, rejected_ids = await accept_application(
        session,
        application_id,
        principal,
        notify_rejected=request.app.state.settings.NOTIFY_REJECTED_WORKERS,
    )
    await session.commit()
    return envelope(
        AcceptResult(
            application=ApplicationResponse.model_validate(application),
            job=JobResponse.model_validate(job),
            rejected_application_ids=rejected_ids,
        ),
        message="Application accepted",
    )

@router.post("/{application_id}/reject", response_model=Envelope[ApplicationResponse], response_model_exclude_unset=True)
async def reject_application_endpoint(application_id: UUID, session: DbSession, principal: CurrentPrincipal):
    application = await reject_application(session, application_id, principal)
    await session.commit()
    return envelope(ApplicationResponse.model_validate(application), message="Application rejected")

@router.post("/{application_id}/cancel", response_model=Envelope[ApplicationResponse], response_model_exclude_unset=True)
async def cancel_application_endpoint(application_id: UUID, session: DbSession, principal: CurrentPrincipal):
    application = await cancel_application(session, application_id, principal)
    await session.commit()
    return envelope(ApplicationResponse.model_validate(application), message="Application cancelled")
