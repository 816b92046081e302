import logging
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from talento_local.db.models import Job, JobApplication, JobEventLog
from talento_local.domain.errors import DuplicateApplicationError, JobNotFoundError, ValidationError
from talento_local.domain.models import Principal
from talento_local.domain.policy import Operation, require_role
from talento_local.domain.states import ApplicationStatus, JobEvent, JobStatus, NotificationEvent
from talento_local.services.notifications import enqueue_notification
from talento_local.api.v1.metrics import APPLICATIONS_SUBMITTED

logger = logging.getLogger(__name__)

async def submit_application(
    session: AsyncSession,
    job_id: UUID,
    worker: Principal,
    message: str,
    proposed_budget: Optional[Decimal] = None,
) -> JobApplication:
    """
    Creates a PENDING application of `worker` to an ACTIVE job and queues a
    `new_application` notification for the job's client.
    """
    require_role(worker, Operation.SUBMIT_APPLICATION)

    job = await session.get(Job, job_id)
    if not job:
        raise JobNotFoundError(job_id)

    if job.status != JobStatus.ACTIVE:
        raise ValidationError(f"Job {job_id} is not active (status: {job.status})")

    # Duplicate check; the unique constraint below covers concurrent submissions
    stmt = select(JobApplication.id).where(
        JobApplication.job_id == job_id,
        JobApplication.worker_id == worker.user_id,
    )
    if await session.scalar(stmt):
        raise DuplicateApplicationError(job_id, worker.user_id)

    application = JobApplication(
        job_id=job_id,
        worker_id=worker.user_id,
        message=message,
        proposed_budget=proposed_budget,
        status=ApplicationStatus.PENDING,
    )
    session.add(application)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise DuplicateApplicationError(job_id, worker.user_id)

    session.add(JobEventLog(
        job_id=job_id,
        application_id=application.id,
        actor_id=worker.user_id,
        event_type=JobEvent.APPLICATION_SUBMITTED,
        meta={"proposed_budget": str(proposed_budget) if proposed_budget is not None else None},
    ))

    enqueue_notification(session, job.client_id, NotificationEvent.NEW_APPLICATION, {
        "job_id": str(job.id),
        "job_title": job.title,
        "application_id": str(application.id),
        "worker_id": str(worker.user_id),
    })

    await session.flush()

    APPLICATIONS_SUBMITTED.inc()
    logger.info(f"Application {application.id} submitted to job {job_id} by worker {worker.user_id}")
    return application
