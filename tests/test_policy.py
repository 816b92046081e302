"""Role permissions and the job transition table."""

from uuid import uuid4

import pytest

from talento_local.domain.errors import AuthorizationError, InvalidTransitionError
from talento_local.domain.models import Principal
from talento_local.domain.policy import (
    JOB_TRANSITIONS, ROLE_PERMISSIONS, Operation, authorize_transition, check_transition, require_role,
)
from talento_local.domain.states import TERMINAL_JOB_STATUSES, JobStatus, Role


def test_every_operation_has_a_permission_entry():
    assert set(ROLE_PERMISSIONS) == set(Operation)


def test_every_status_has_a_transition_entry():
    assert set(JOB_TRANSITIONS) == set(JobStatus)
    for status in TERMINAL_JOB_STATUSES:
        assert JOB_TRANSITIONS[status] == frozenset()


@pytest.mark.parametrize("operation,role,allowed", [
    (Operation.CREATE_JOB, Role.CLIENT, True),
    (Operation.CREATE_JOB, Role.WORKER, False),
    (Operation.CREATE_JOB, Role.ADMIN, False),
    (Operation.SUBMIT_APPLICATION, Role.WORKER, True),
    (Operation.SUBMIT_APPLICATION, Role.CLIENT, False),
    (Operation.ACCEPT_APPLICATION, Role.CLIENT, True),
    (Operation.ACCEPT_APPLICATION, Role.WORKER, False),
    (Operation.VIEW_APPLICATION, Role.ADMIN, True),
    (Operation.UPDATE_JOB_STATUS, Role.WORKER, True),
])
def test_require_role(operation, role, allowed):
    principal = Principal(user_id=uuid4(), role=role)
    if allowed:
        require_role(principal, operation)
    else:
        with pytest.raises(AuthorizationError):
            require_role(principal, operation)


@pytest.mark.parametrize("current,target", [
    (JobStatus.DRAFT, JobStatus.ACTIVE),
    (JobStatus.DRAFT, JobStatus.CANCELLED),
    (JobStatus.ACTIVE, JobStatus.IN_PROGRESS),
    (JobStatus.ACTIVE, JobStatus.CANCELLED),
    (JobStatus.IN_PROGRESS, JobStatus.COMPLETED),
    (JobStatus.IN_PROGRESS, JobStatus.CANCELLED),
])
def test_legal_transitions(current, target):
    check_transition(current, target)


@pytest.mark.parametrize("current,target", [
    (JobStatus.COMPLETED, JobStatus.ACTIVE),
    (JobStatus.CANCELLED, JobStatus.ACTIVE),
    (JobStatus.DRAFT, JobStatus.COMPLETED),
    (JobStatus.ACTIVE, JobStatus.ACTIVE),
    (JobStatus.IN_PROGRESS, JobStatus.ACTIVE),
])
def test_illegal_transitions(current, target):
    with pytest.raises(InvalidTransitionError, match=f"Cannot transition job from {current} to {target}"):
        check_transition(current, target)


def test_authorize_transition_parties():
    client_id, worker_id = uuid4(), uuid4()
    owner = Principal(client_id, Role.CLIENT)
    worker = Principal(worker_id, Role.WORKER)
    admin = Principal(uuid4(), Role.ADMIN)

    authorize_transition(owner, JobStatus.COMPLETED, client_id, worker_id)
    authorize_transition(worker, JobStatus.IN_PROGRESS, client_id, worker_id)
    authorize_transition(admin, JobStatus.CANCELLED, client_id, worker_id)

    with pytest.raises(AuthorizationError):
        authorize_transition(worker, JobStatus.COMPLETED, client_id, worker_id)
    with pytest.raises(AuthorizationError):
        authorize_transition(admin, JobStatus.ACTIVE, client_id, None)
    with pytest.raises(AuthorizationError):
        authorize_transition(Principal(uuid4(), Role.WORKER), JobStatus.IN_PROGRESS, client_id, worker_id)
    with pytest.raises(AuthorizationError):
        authorize_transition(Principal(uuid4(), Role.CLIENT), JobStatus.CANCELLED, client_id, worker_id)
