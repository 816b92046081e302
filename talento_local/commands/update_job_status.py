import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from talento_local.db.models import Job, JobApplication, JobEventLog
from talento_local.domain.errors import InvalidTransitionError, JobNotFoundError
from talento_local.domain.models import Principal
from talento_local.domain.policy import Operation, authorize_transition, check_transition, require_role
from talento_local.domain.states import ApplicationStatus, JobEvent, JobStatus, NotificationEvent, Role
from talento_local.services.notifications import enqueue_notification
from talento_local.api.v1.metrics import JOB_TRANSITIONS

logger = logging.getLogger(__name__)

async def update_job_status(
    session: AsyncSession,
    job_id: UUID,
    actor: Principal,
    new_status: JobStatus,
) -> Job:
    """
    Moves a job along the lifecycle table (see domain.policy.JOB_TRANSITIONS).

    Legality of the transition is checked before who is asking, so an illegal
    change is reported as such to every caller.
    """
    require_role(actor, Operation.UPDATE_JOB_STATUS)

    stmt = select(Job).where(Job.id == job_id).with_for_update()
    job = (await session.execute(stmt)).scalar_one_or_none()
    if not job:
        raise JobNotFoundError(job_id)

    current = JobStatus(job.status)
    check_transition(current, new_status)

    worker_id = job.assigned_worker_id
    if new_status == JobStatus.IN_PROGRESS:
        worker_id = await _accepted_worker(session, job.id)
        if worker_id is None:
            raise InvalidTransitionError(current, new_status, "no application has been accepted")

    authorize_transition(actor, new_status, job.client_id, worker_id)

    now = datetime.now(timezone.utc)
    job.status = new_status
    job.updated_at = now

    if new_status == JobStatus.ACTIVE:
        job.published_at = now
    elif new_status == JobStatus.IN_PROGRESS:
        job.assigned_worker_id = worker_id
        job.assigned_at = job.assigned_at or now
        job.started_at = now
    elif new_status == JobStatus.COMPLETED:
        job.completed_at = now
    elif new_status == JobStatus.CANCELLED:
        job.cancelled_at = now
        job.assigned_worker_id = None

    session.add(JobEventLog(
        job_id=job.id,
        actor_id=actor.user_id,
        event_type=JobEvent.JOB_STATUS_CHANGED,
        timestamp=now,
        meta={
            "from": current,
            "to": new_status,
            "actor_role": actor.role,
            "worker_id": str(worker_id) if worker_id else None,
        },
    ))

    for recipient in _counterparties(actor, job.client_id, worker_id):
        enqueue_notification(session, recipient, NotificationEvent.JOB_STATUS_CHANGED, {
            "job_id": str(job.id),
            "job_title": job.title,
            "from": current,
            "to": new_status,
        })

    await session.flush()

    JOB_TRANSITIONS.labels(from_status=current, to_status=new_status).inc()
    logger.info(f"Job {job_id} moved from {current} to {new_status} by {actor.role} {actor.user_id}")
    return job

async def _accepted_worker(session: AsyncSession, job_id: UUID) -> Optional[UUID]:
    stmt = select(JobApplication.worker_id).where(
        JobApplication.job_id == job_id,
        JobApplication.status == ApplicationStatus.ACCEPTED,
    )
    return await session.scalar(stmt)

def _counterparties(actor: Principal, client_id: UUID, worker_id: Optional[UUID]) -> list[UUID]:
    if actor.role == Role.WORKER:
        return [client_id]
    if actor.role == Role.ADMIN:
        return [client_id] + ([worker_id] if worker_id else [])
    return [worker_id] if worker_id else []
