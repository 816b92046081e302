from datetime import date
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import Field, field_validator

from talento_local.api.deps import CurrentPrincipal, DbSession
from talento_local.api.v1.schemas import Envelope, JobResponse, RequestModel, envelope
from talento_local.commands.create_job import create_job
from talento_local.commands.update_job import delete_job, update_job
from talento_local.commands.update_job_status import update_job_status
from talento_local.domain.states import BudgetType, JobStatus, Urgency
from talento_local.queries.jobs import JobFilters, get_job, list_active_jobs, list_assigned_jobs, list_client_jobs

router = APIRouter()

def _not_in_past(value: Optional[date]) -> Optional[date]:
    if value is not None and value < date.today():
        raise ValueError("needed_date cannot be in the past")
    return value

class JobCreate(RequestModel):
    title: str = Field(min_length=5, max_length=200)
    description: str = Field(min_length=20, max_length=2000)
    category: str = Field(min_length=2, max_length=100)
    budget_amount: Optional[Decimal] = Field(default=None, ge=0)
    budget_type: BudgetType = BudgetType.NEGOTIABLE
    address: str = Field(min_length=5, max_length=500)
    address_details: Optional[str] = Field(default=None, max_length=500)
    city: str = Field(min_length=2, max_length=100)
    department: str = Field(min_length=2, max_length=100)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    urgency: Urgency = Urgency.MEDIUM
    needed_date: Optional[date] = None
    status: JobStatus = JobStatus.ACTIVE

    _check_needed_date = field_validator("needed_date")(_not_in_past)

class JobUpdate(RequestModel):
    title: Optional[str] = Field(default=None, min_length=5, max_length=200)
    description: Optional[str] = Field(default=None, min_length=20, max_length=2000)
    category: Optional[str] = Field(default=None, min_length=2, max_length=100)
    budget_amount: Optional[Decimal] = Field(default=None, ge=0)
    budget_type: Optional[BudgetType] = None
    address: Optional[str] = Field(default=None, min_length=5, max_length=500)
    address_details: Optional[str] = Field(default=None, max_length=500)
    city: Optional[str] = Field(default=None, min_length=2, max_length=100)
    department: Optional[str] = Field(default=None, min_length=2, max_length=100)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    urgency: Optional[Urgency] = None
    needed_date: Optional[date] = None

    _check_needed_date = field_validator("needed_date")(_not_in_past)

class StatusUpdate(RequestModel):
    status: JobStatus

@router.post(
    "",
    response_model=Envelope[JobResponse],
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_job_endpoint(body: JobCreate, session: DbSession, principal: CurrentPrincipal):
    job = await create_job(session, principal, body.model_dump())
    await session.commit()
    return envelope(JobResponse.model_validate(job), message="Job created")

@router.get("", response_model=Envelope[list[JobResponse]], response_model_exclude_unset=True)
async def list_jobs(
    session: DbSession,
    category: Optional[str] = None,
    city: Optional[str] = None,
    department: Optional[str] = None,
    urgency: Optional[Urgency] = None,
    budget_min: Optional[Decimal] = Query(default=None, ge=0),
    budget_max: Optional[Decimal] = Query(default=None, ge=0),
    sort_by: Literal["created_at", "budget_amount", "needed_date"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
):
    filters = JobFilters(
        category=category,
        city=city,
        department=department,
        urgency=urgency,
        budget_min=budget_min,
        budget_max=budget_max,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )
    result = await list_active_jobs(session, filters)
    return envelope([JobResponse.model_validate(j) for j in result.items], page=result)

@router.get("/my/all", response_model=Envelope[list[JobResponse]], response_model_exclude_unset=True)
async def my_jobs(
    session: DbSession,
    principal: CurrentPrincipal,
    status: Optional[JobStatus] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
):
    result = await list_client_jobs(session, principal, status, page, limit)
    return envelope([JobResponse.model_validate(j) for j in result.items], page=result)

@router.get("/my/assigned", response_model=Envelope[list[JobResponse]], response_model_exclude_unset=True)
async def my_assigned_jobs(
    session: DbSession,
    principal: CurrentPrincipal,
    status: Optional[JobStatus] = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=50),
):
    result = await list_assigned_jobs(session, principal, status, page, limit)
    return envelope([JobResponse.model_validate(j) for j in result.items], page=result)

@router.get("/{job_id}", response_model=Envelope[JobResponse], response_model_exclude_unset=True)
async def get_job_endpoint(job_id: UUID, session: DbSession):
    job = await get_job(session, job_id)
    await session.commit()
    return envelope(JobResponse.model_validate(job))

@router.put("/{job_id}", response_model=Envelope[JobResponse], response_model_exclude_unset=True)
async def update_job_endpoint(job_id: UUID, body: JobUpdate, session: DbSession, principal: CurrentPrincipal):
    job = await update_job(session, job_id, principal, body.model_dump(exclude_unset=True))
    await session.commit()
    return envelope(JobResponse.model_validate(job), message="Job updated")

@router.patch("/{job_id}/status", response_model=Envelope[JobResponse], response_model_exclude_unset=True)
async def update_job_status_endpoint(
    job_id: UUID,
    body: StatusUpdate,
    session: DbSession,
    principal: CurrentPrincipal,
):
    job = await update_job_status(session, job_id, principal, body.status)
    await session.commit()
    return envelope(JobResponse.model_validate(job), message=f"Job is now {job.status}")

@router.delete("/{job_id}", response_model=Envelope[None], response_model_exclude_unset=True)
async def delete_job_endpoint(job_id: UUID, session: DbSession, principal: CurrentPrincipal):
    await delete_job(session, job_id, principal)
    await session.commit()
    return envelope(message="Job deleted")
