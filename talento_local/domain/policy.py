"""
Authorization and job lifecycle tables.

Two lookups drive every permission decision in the marketplace:

* ROLE_PERMISSIONS answers "may this kind of user attempt the operation at all?"
* JOB_TRANSITIONS / TRANSITION_ACTORS answer "is this status change legal, and
  which party of the job is allowed to make it?"

Ownership (is this *the* client of the job, *the* applicant) is checked by the
commands against the rows they load; the tables only name which party must match.
"""
from enum import StrEnum, auto
from typing import Optional
from uuid import UUID

from talento_local.domain.errors import AuthorizationError, InvalidTransitionError
from talento_local.domain.models import Principal
from talento_local.domain.states import JobStatus, Role

class Operation(StrEnum):
    CREATE_JOB = auto()
    UPDATE_JOB = auto()
    DELETE_JOB = auto()
    LIST_OWN_JOBS = auto()
    LIST_ASSIGNED_JOBS = auto()
    UPDATE_JOB_STATUS = auto()
    SUBMIT_APPLICATION = auto()
    CANCEL_APPLICATION = auto()
    LIST_OWN_APPLICATIONS = auto()
    CHECK_APPLIED = auto()
    ACCEPT_APPLICATION = auto()
    REJECT_APPLICATION = auto()
    LIST_JOB_APPLICATIONS = auto()
    VIEW_APPLICATION = auto()
    APPLICATION_STATS = auto()

_CLIENT = frozenset({Role.CLIENT})
_WORKER = frozenset({Role.WORKER})
_ANY = frozenset(Role)

ROLE_PERMISSIONS: dict[Operation, frozenset[Role]] = {
    Operation.CREATE_JOB: _CLIENT,
    Operation.UPDATE_JOB: _CLIENT,
    Operation.DELETE_JOB: _CLIENT,
    Operation.LIST_OWN_JOBS: _CLIENT,
    Operation.LIST_ASSIGNED_JOBS: _WORKER,
    Operation.UPDATE_JOB_STATUS: _ANY,
    Operation.SUBMIT_APPLICATION: _WORKER,
    Operation.CANCEL_APPLICATION: _WORKER,
    Operation.LIST_OWN_APPLICATIONS: _WORKER,
    Operation.CHECK_APPLIED: _WORKER,
    Operation.ACCEPT_APPLICATION: _CLIENT,
    Operation.REJECT_APPLICATION: _CLIENT,
    Operation.LIST_JOB_APPLICATIONS: _CLIENT,
    Operation.VIEW_APPLICATION: _ANY,
    Operation.APPLICATION_STATS: _ANY,
}

def require_role(principal: Principal, operation: Operation) -> None:
    allowed = ROLE_PERMISSIONS.get(operation, frozenset())
    if principal.role not in allowed:
        raise AuthorizationError(
            f"Role '{principal.role}' is not allowed to {operation.replace('_', ' ')}"
        )

JOB_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.DRAFT: frozenset({JobStatus.ACTIVE, JobStatus.CANCELLED}),
    JobStatus.ACTIVE: frozenset({JobStatus.IN_PROGRESS, JobStatus.CANCELLED}),
    JobStatus.IN_PROGRESS: frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.CANCELLED: frozenset(),
}

class Party(StrEnum):
    JOB_CLIENT = auto()
    ASSIGNED_WORKER = auto()

# Keyed by target status; every legal source leads to the same party.
TRANSITION_ACTORS: dict[JobStatus, Party] = {
    JobStatus.ACTIVE: Party.JOB_CLIENT,
    JobStatus.IN_PROGRESS: Party.ASSIGNED_WORKER,
    JobStatus.COMPLETED: Party.JOB_CLIENT,
    JobStatus.CANCELLED: Party.JOB_CLIENT,
}

ADMIN_OVERRIDES = frozenset({JobStatus.CANCELLED})

def check_transition(current: JobStatus, target: JobStatus) -> None:
    if target not in JOB_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransitionError(current, target)

def authorize_transition(
    principal: Principal,
    target: JobStatus,
    client_id: UUID,
    worker_id: Optional[UUID],
) -> None:
    """
    Raises AuthorizationError unless the principal is the party the
    transition table names for `target`.
    `worker_id` is the worker holding the accepted application, if any.
    """
    if principal.is_admin and target in ADMIN_OVERRIDES:
        return

    party = TRANSITION_ACTORS[target]
    if party == Party.JOB_CLIENT:
        if principal.role == Role.CLIENT and principal.user_id == client_id:
            return
        raise AuthorizationError(f"Only the job's client can move it to {target}")

    if principal.role == Role.WORKER and worker_id is not None and principal.user_id == worker_id:
        return
    raise AuthorizationError(f"Only the assigned worker can move the job to {target}")
