from dataclasses import dataclass
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from talento_local.db.models import Job
from talento_local.domain.errors import JobNotFoundError
from talento_local.domain.models import Principal
from talento_local.domain.policy import Operation, require_role
from talento_local.domain.states import JobStatus, Urgency
from talento_local.queries.pagination import Page, paginate

SORTABLE_COLUMNS = {
    "created_at": Job.created_at,
    "budget_amount": Job.budget_amount,
    "needed_date": Job.needed_date,
}

@dataclass
class JobFilters:
    category: Optional[str] = None
    city: Optional[str] = None
    department: Optional[str] = None
    urgency: Optional[Urgency] = None
    budget_min: Optional[Decimal] = None
    budget_max: Optional[Decimal] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    limit: int = 20

async def get_job(session: AsyncSession, job_id: UUID, count_view: bool = True) -> Job:
    if count_view:
        await session.execute(
            update(Job)
            .where(Job.id == job_id)
            .values(views_count=Job.views_count + 1, updated_at=Job.updated_at)
            .execution_options(synchronize_session=False)
        )

    job = await session.scalar(
        select(Job).where(Job.id == job_id).execution_options(populate_existing=True)
    )
    if not job:
        raise JobNotFoundError(job_id)
    return job

async def list_active_jobs(session: AsyncSession, filters: JobFilters) -> Page[Job]:
    stmt = select(Job).where(Job.status == JobStatus.ACTIVE)

    if filters.category:
        stmt = stmt.where(Job.category == filters.category)
    if filters.city:
        stmt = stmt.where(func.lower(Job.city) == filters.city.lower())
    if filters.department:
        stmt = stmt.where(func.lower(Job.department) == filters.department.lower())
    if filters.urgency:
        stmt = stmt.where(Job.urgency == filters.urgency)
    if filters.budget_min is not None:
        stmt = stmt.where(Job.budget_amount >= filters.budget_min)
    if filters.budget_max is not None:
        stmt = stmt.where(Job.budget_amount <= filters.budget_max)

    column = SORTABLE_COLUMNS.get(filters.sort_by, Job.created_at)
    order = column.asc() if filters.sort_order == "asc" else column.desc()
    stmt = stmt.order_by(order, Job.id)

    return await paginate(session, stmt, filters.page, filters.limit)

async def list_client_jobs(
    session: AsyncSession,
    client: Principal,
    status: Optional[JobStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> Page[Job]:
    require_role(client, Operation.LIST_OWN_JOBS)

    stmt = select(Job).where(Job.client_id == client.user_id)
    if status:
        stmt = stmt.where(Job.status == status)
    stmt = stmt.order_by(Job.created_at.desc(), Job.id)
    return await paginate(session, stmt, page, limit)

async def list_assigned_jobs(
    session: AsyncSession,
    worker: Principal,
    status: Optional[JobStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> Page[Job]:
    require_role(worker, Operation.LIST_ASSIGNED_JOBS)

    stmt = select(Job).where(Job.assigned_worker_id == worker.user_id)
    if status:
        stmt = stmt.where(Job.status == status)
    stmt = stmt.order_by(Job.assigned_at.desc(), Job.id)
    return await paginate(session, stmt, page, limit)
