import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from talento_local.db.models import Job, JobApplication, JobEventLog
from talento_local.domain.errors import ApplicationNotFoundError, AuthorizationError, ConflictError
from talento_local.domain.models import Principal
from talento_local.domain.policy import Operation, require_role
from talento_local.domain.states import ApplicationStatus, JobEvent
from talento_local.api.v1.metrics import APPLICATIONS_DECIDED

logger = logging.getLogger(__name__)

async def cancel_application(
    session: AsyncSession,
    application_id: UUID,
    worker: Principal,
) -> JobApplication:
    """Worker withdraws their own application while it is still PENDING."""
    require_role(worker, Operation.CANCEL_APPLICATION)

    application = await session.get(JobApplication, application_id)
    if not application:
        raise ApplicationNotFoundError(application_id)

    if application.worker_id != worker.user_id:
        raise AuthorizationError(f"Application {application_id} is not yours")

    # Serializes with accept_application on the same job
    job = await session.scalar(
        select(Job)
        .where(Job.id == application.job_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if job is None:
        raise ApplicationNotFoundError(application_id)

    if application.status != ApplicationStatus.PENDING:
        raise ConflictError(f"Only pending applications can be cancelled (status: {application.status})")

    now = datetime.now(timezone.utc)
    decided = await session.scalar(
        update(JobApplication)
        .where(
            JobApplication.id == application_id,
            JobApplication.status == ApplicationStatus.PENDING,
        )
        .values(status=ApplicationStatus.CANCELLED, updated_at=now)
        .returning(JobApplication.id)
        .execution_options(synchronize_session=False)
    )
    if decided is None:
        raise ConflictError(f"Application {application_id} is no longer pending")
    await session.refresh(application)

    session.add(JobEventLog(
        job_id=application.job_id,
        application_id=application.id,
        actor_id=worker.user_id,
        event_type=JobEvent.APPLICATION_CANCELLED,
        timestamp=now,
    ))

    await session.flush()

    APPLICATIONS_DECIDED.labels(outcome="cancelled").inc()
    logger.info(f"Application {application_id} cancelled by worker {worker.user_id}")
    return application
