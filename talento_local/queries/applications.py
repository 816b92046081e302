from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from talento_local.db.models import Job, JobApplication
from talento_local.domain.errors import ApplicationNotFoundError, AuthorizationError, JobNotFoundError
from talento_local.domain.models import Principal
from talento_local.domain.policy import Operation, require_role
from talento_local.domain.states import ApplicationStatus, Role
from talento_local.queries.pagination import Page, paginate

async def get_application(session: AsyncSession, application_id: UUID, user: Principal) -> JobApplication:
    """Visible to the applicant, the client who owns the job, and admins."""
    require_role(user, Operation.VIEW_APPLICATION)

    application = await session.get(JobApplication, application_id)
    if not application:
        raise ApplicationNotFoundError(application_id)

    if user.is_admin or application.worker_id == user.user_id:
        return application

    client_id = await session.scalar(select(Job.client_id).where(Job.id == application.job_id))
    if client_id != user.user_id:
        raise AuthorizationError(f"You cannot view application {application_id}")
    return application

async def list_worker_applications(
    session: AsyncSession,
    worker: Principal,
    status: Optional[ApplicationStatus] = None,
    page: int = 1,
    limit: int = 20,
) -> Page[JobApplication]:
    require_role(worker, Operation.LIST_OWN_APPLICATIONS)

    stmt = select(JobApplication).where(JobApplication.worker_id == worker.user_id)
    if status:
        stmt = stmt.where(JobApplication.status == status)
    stmt = stmt.order_by(JobApplication.created_at.desc(), JobApplication.id)
    return await paginate(session, stmt, page, limit)

async def list_job_applications(
    session: AsyncSession,
    job_id: UUID,
    client: Principal,
    page: int = 1,
    limit: int = 20,
) -> Page[JobApplication]:
    require_role(client, Operation.LIST_JOB_APPLICATIONS)

    client_id = await session.scalar(select(Job.client_id).where(Job.id == job_id))
    if client_id is None:
        raise JobNotFoundError(job_id)
    if client_id != client.user_id:
        raise AuthorizationError(f"Job {job_id} does not belong to you")

    stmt = (
        select(JobApplication)
        .where(JobApplication.job_id == job_id)
        .order_by(JobApplication.created_at.desc(), JobApplication.id)
    )
    return await paginate(session, stmt, page, limit)

async def has_applied(session: AsyncSession, worker: Principal, job_id: UUID) -> bool:
    require_role(worker, Operation.CHECK_APPLIED)

    stmt = select(JobApplication.id).where(
        JobApplication.job_id == job_id,
        JobApplication.worker_id == worker.user_id,
    )
    return (await session.scalar(stmt)) is not None

async def application_stats(session: AsyncSession, user: Principal) -> dict[str, Any]:
    """
    Workers get counts over their own applications plus the share accepted.
    Clients get counts over applications to their jobs; admins over all jobs.
    """
    require_role(user, Operation.APPLICATION_STATS)

    stmt = select(JobApplication.status, func.count()).group_by(JobApplication.status)
    if user.role == Role.WORKER:
        stmt = stmt.where(JobApplication.worker_id == user.user_id)
    elif user.role == Role.CLIENT:
        stmt = stmt.join(Job, Job.id == JobApplication.job_id).where(Job.client_id == user.user_id)

    counts = {status: count for status, count in (await session.execute(stmt)).all()}
    total = sum(counts.values())

    stats = {
        "total_applications": total,
        "pending_applications": counts.get(ApplicationStatus.PENDING, 0),
        "accepted_applications": counts.get(ApplicationStatus.ACCEPTED, 0),
        "rejected_applications": counts.get(ApplicationStatus.REJECTED, 0),
    }
    if user.role == Role.WORKER:
        stats["cancelled_applications"] = counts.get(ApplicationStatus.CANCELLED, 0)
        stats["success_rate"] = round(stats["accepted_applications"] * 100 / total, 2) if total else 0.0
    return stats
