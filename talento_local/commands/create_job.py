import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from talento_local.db.models import Job, JobEventLog
from talento_local.domain.errors import ValidationError
from talento_local.domain.models import Principal
from talento_local.domain.policy import Operation, require_role
from talento_local.domain.states import JobEvent, JobStatus

logger = logging.getLogger(__name__)

INITIAL_STATUSES = (JobStatus.DRAFT, JobStatus.ACTIVE)

async def create_job(session: AsyncSession, client: Principal, data: dict[str, Any]) -> Job:
    """
    Creates a job owned by `client`.
    `data` holds the validated job fields; `status` may be draft or active (default).
    """
    require_role(client, Operation.CREATE_JOB)

    fields = dict(data)
    status = JobStatus(fields.pop("status", None) or JobStatus.ACTIVE)
    if status not in INITIAL_STATUSES:
        raise ValidationError(f"A job can only be created as {' or '.join(INITIAL_STATUSES)}")

    now = datetime.now(timezone.utc)
    job = Job(
        client_id=client.user_id,
        status=status,
        published_at=now if status == JobStatus.ACTIVE else None,
        **fields,
    )
    session.add(job)
    await session.flush()

    session.add(JobEventLog(
        job_id=job.id,
        actor_id=client.user_id,
        event_type=JobEvent.JOB_CREATED,
        timestamp=now,
        meta={"status": status},
    ))
    await session.flush()

    logger.info(f"Job {job.id} created by client {client.user_id} ({status})")
    return job
