import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from talento_local.db.models import Job, JobApplication, JobEventLog
from talento_local.domain.errors import ApplicationNotFoundError, AuthorizationError, ConflictError
from talento_local.domain.models import Principal
from talento_local.domain.policy import Operation, require_role
from talento_local.domain.states import ApplicationStatus, JobEvent, NotificationEvent
from talento_local.services.notifications import enqueue_notification
from talento_local.api.v1.metrics import APPLICATIONS_DECIDED

logger = logging.getLogger(__name__)

async def reject_application(
    session: AsyncSession,
    application_id: UUID,
    client: Principal,
) -> JobApplication:
    """
    Marks a single PENDING application as REJECTED.
    Unlike accept, the job and the other applications are left untouched.
    """
    require_role(client, Operation.REJECT_APPLICATION)

    application = await session.get(JobApplication, application_id)
    if not application:
        raise ApplicationNotFoundError(application_id)

    # The row lock accept takes; a reject and an accept on one job run one after the other
    job = await session.scalar(
        select(Job)
        .where(Job.id == application.job_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if job is None:
        raise ApplicationNotFoundError(application_id)
    if job.client_id != client.user_id:
        raise AuthorizationError(f"Application {application_id} does not belong to one of your jobs")

    if application.status != ApplicationStatus.PENDING:
        raise ConflictError(f"Application {application_id} is no longer pending (status: {application.status})")

    now = datetime.now(timezone.utc)
    # The application above may have been read before the lock; only a row
    # still pending in the database may change.
    decided = await session.scalar(
        update(JobApplication)
        .where(
            JobApplication.id == application_id,
            JobApplication.status == ApplicationStatus.PENDING,
        )
        .values(status=ApplicationStatus.REJECTED, reviewed_at=now, updated_at=now)
        .returning(JobApplication.id)
        .execution_options(synchronize_session=False)
    )
    if decided is None:
        raise ConflictError(f"Application {application_id} is no longer pending")
    await session.refresh(application)

    session.add(JobEventLog(
        job_id=job.id,
        application_id=application.id,
        actor_id=client.user_id,
        event_type=JobEvent.APPLICATION_REJECTED,
        timestamp=now,
        meta={"worker_id": str(application.worker_id)},
    ))
    enqueue_notification(session, application.worker_id, NotificationEvent.APPLICATION_REJECTED, {
        "job_id": str(job.id),
        "job_title": job.title,
        "application_id": str(application.id),
    })

    await session.flush()

    APPLICATIONS_DECIDED.labels(outcome="rejected").inc()
    logger.info(f"Application {application_id} rejected by client {client.user_id}")
    return application
