import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from talento_local.db.models import Job, JobApplication, JobEventLog
from talento_local.domain.errors import AuthorizationError, JobNotFoundError, ValidationError
from talento_local.domain.models import Principal
from talento_local.domain.policy import Operation, require_role
from talento_local.domain.states import ApplicationStatus, JobEvent, JobStatus

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = (JobStatus.DRAFT, JobStatus.ACTIVE)

EDITABLE_FIELDS = frozenset({
    "title", "description", "category",
    "budget_amount", "budget_type",
    "address", "address_details", "city", "department",
    "latitude", "longitude", "urgency", "needed_date",
})

async def _owned_job(session: AsyncSession, job_id: UUID, client: Principal) -> Job:
    stmt = select(Job).where(Job.id == job_id).with_for_update()
    job = (await session.execute(stmt)).scalar_one_or_none()
    if not job:
        raise JobNotFoundError(job_id)
    if job.client_id != client.user_id:
        raise AuthorizationError(f"Job {job_id} does not belong to you")
    return job

async def update_job(
    session: AsyncSession,
    job_id: UUID,
    client: Principal,
    changes: dict[str, Any],
) -> Job:
    """Edits the descriptive fields of a draft or active job."""
    require_role(client, Operation.UPDATE_JOB)

    updates = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
    if not updates:
        raise ValidationError("No editable fields were provided")

    job = await _owned_job(session, job_id, client)
    if job.status not in EDITABLE_STATUSES:
        raise ValidationError(f"Job {job_id} can no longer be edited (status: {job.status})")

    for field, value in updates.items():
        setattr(job, field, value)
    job.updated_at = datetime.now(timezone.utc)

    session.add(JobEventLog(
        job_id=job.id,
        actor_id=client.user_id,
        event_type=JobEvent.JOB_UPDATED,
        meta={"fields": sorted(updates)},
    ))
    await session.flush()

    logger.info(f"Job {job_id} updated by client {client.user_id}: {sorted(updates)}")
    return job

async def delete_job(session: AsyncSession, job_id: UUID, client: Principal) -> None:
    """
    Hard-deletes a draft or active job that has no accepted application.
    Its applications and audit events are removed with it.
    """
    require_role(client, Operation.DELETE_JOB)

    job = await _owned_job(session, job_id, client)
    if job.status not in EDITABLE_STATUSES:
        raise ValidationError(f"Job {job_id} cannot be deleted (status: {job.status})")

    accepted = await session.scalar(
        select(func.count()).select_from(JobApplication).where(
            JobApplication.job_id == job_id,
            JobApplication.status == ApplicationStatus.ACCEPTED,
        )
    )
    if accepted:
        raise ValidationError(f"Job {job_id} has an accepted application and cannot be deleted")

    await session.delete(job)
    await session.flush()

    logger.info(f"Job {job_id} deleted by client {client.user_id}")
