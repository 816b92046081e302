import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from talento_local.db.models import Job, JobApplication, JobEventLog
from talento_local.domain.errors import ApplicationNotFoundError, AuthorizationError, ConflictError
from talento_local.domain.models import Principal
from talento_local.domain.policy import Operation, require_role
from talento_local.domain.states import ApplicationStatus, JobEvent, JobStatus, NotificationEvent
from talento_local.services.notifications import enqueue_notification
from talento_local.settings import settings
from talento_local.api.v1.metrics import ACCEPT_CONFLICTS, APPLICATIONS_DECIDED, JOB_TRANSITIONS

logger = logging.getLogger(__name__)

# lock_not_available (lock_timeout hit), serialization_failure, deadlock_detected
LOCK_CONFLICT_SQLSTATES = {"55P03", "40001", "40P01"}

async def accept_application(
    session: AsyncSession,
    application_id: UUID,
    client: Principal,
    notify_rejected: bool | None = None,
) -> tuple[Job, JobApplication, list[UUID]]:
    """
    Accepts one application and assigns its worker to the job.

    Within the caller's transaction:
      1. the application becomes ACCEPTED,
      2. every other PENDING application of the job becomes REJECTED,
      3. the job moves to IN_PROGRESS with the worker assigned.

    Concurrent accepts on the same job serialize on a FOR UPDATE lock of the
    job row; whoever gets the lock second re-reads the rows and gets a
    ConflictError. The partial unique index on accepted applications is the
    backstop. Nothing is committed here: if any step raises, the caller's
    rollback discards all three.

    Returns (job, accepted application, ids of rejected applications).
    """
    require_role(client, Operation.ACCEPT_APPLICATION)
    if notify_rejected is None:
        notify_rejected = settings.NOTIFY_REJECTED_WORKERS

    application = await session.get(JobApplication, application_id)
    if not application:
        raise ApplicationNotFoundError(application_id)

    job = await _lock_job(session, application.job_id)
    if job is None:
        # Job deleted after the application was read; its applications went with it
        raise ApplicationNotFoundError(application_id)

    if job.client_id != client.user_id:
        raise AuthorizationError(f"Application {application_id} does not belong to one of your jobs")

    # Re-read under the job lock; another accept may have committed meanwhile.
    application = await session.scalar(
        select(JobApplication)
        .where(JobApplication.id == application_id)
        .execution_options(populate_existing=True)
    )
    if application is None:
        raise ApplicationNotFoundError(application_id)

    if application.status != ApplicationStatus.PENDING:
        ACCEPT_CONFLICTS.inc()
        raise ConflictError(f"Application {application_id} is no longer pending (status: {application.status})")

    if job.status != JobStatus.ACTIVE:
        ACCEPT_CONFLICTS.inc()
        raise ConflictError(f"Job {job.id} is no longer accepting applications (status: {job.status})")

    now = datetime.now(timezone.utc)
    previous_status = job.status

    try:
        await _mark_accepted(session, application, now)
        rejected = await _reject_siblings(session, application, now)
        job = await _assign_worker(session, job, application.worker_id, now)
    except IntegrityError:
        ACCEPT_CONFLICTS.inc()
        raise ConflictError(f"Job {job.id} already has an accepted application")

    session.add(JobEventLog(
        job_id=job.id,
        application_id=application.id,
        actor_id=client.user_id,
        event_type=JobEvent.APPLICATION_ACCEPTED,
        timestamp=now,
        meta={
            "worker_id": str(application.worker_id),
            "rejected_application_ids": [str(app_id) for app_id, _ in rejected],
        },
    ))
    session.add(JobEventLog(
        job_id=job.id,
        actor_id=client.user_id,
        event_type=JobEvent.JOB_STATUS_CHANGED,
        timestamp=now,
        meta={"from": previous_status, "to": job.status, "assigned_worker_id": str(application.worker_id)},
    ))

    enqueue_notification(session, application.worker_id, NotificationEvent.APPLICATION_ACCEPTED, {
        "job_id": str(job.id),
        "job_title": job.title,
        "application_id": str(application.id),
    })
    if notify_rejected:
        for rejected_id, worker_id in rejected:
            enqueue_notification(session, worker_id, NotificationEvent.APPLICATION_REJECTED, {
                "job_id": str(job.id),
                "job_title": job.title,
                "application_id": str(rejected_id),
            })

    await session.flush()

    APPLICATIONS_DECIDED.labels(outcome="accepted").inc()
    if rejected:
        APPLICATIONS_DECIDED.labels(outcome="rejected").inc(len(rejected))
    JOB_TRANSITIONS.labels(from_status=previous_status, to_status=job.status).inc()

    logger.info(
        f"Application {application.id} accepted by client {client.user_id}: "
        f"job {job.id} assigned to worker {application.worker_id}, {len(rejected)} rejected"
    )
    return job, application, [app_id for app_id, _ in rejected]

async def _lock_job(session: AsyncSession, job_id: UUID) -> Job | None:
    stmt = (
        select(Job)
        .where(Job.id == job_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    try:
        return (await session.execute(stmt)).scalar_one_or_none()
    except DBAPIError as e:
        sqlstate = getattr(e.orig, "sqlstate", None) or getattr(e.orig, "pgcode", None)
        if sqlstate in LOCK_CONFLICT_SQLSTATES:
            ACCEPT_CONFLICTS.inc()
            raise ConflictError(f"Job {job_id} is being assigned by another request, try again") from e
        raise

async def _mark_accepted(session: AsyncSession, application: JobApplication, now: datetime) -> None:
    application.status = ApplicationStatus.ACCEPTED
    application.reviewed_at = now
    application.updated_at = now
    # Surfaces a unique-index violation here rather than at commit time
    await session.flush()

async def _reject_siblings(
    session: AsyncSession, application: JobApplication, now: datetime
) -> list[tuple[UUID, UUID]]:
    stmt = (
        update(JobApplication)
        .where(
            JobApplication.job_id == application.job_id,
            JobApplication.id != application.id,
            JobApplication.status == ApplicationStatus.PENDING,
        )
        .values(status=ApplicationStatus.REJECTED, reviewed_at=now, updated_at=now)
        .returning(JobApplication.id, JobApplication.worker_id)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    return [(row.id, row.worker_id) for row in result.all()]

async def _assign_worker(session: AsyncSession, job: Job, worker_id: UUID, now: datetime) -> Job:
    job.status = JobStatus.IN_PROGRESS
    job.assigned_worker_id = worker_id
    job.assigned_at = now
    job.started_at = now
    job.updated_at = now
    await session.flush()
    return job
