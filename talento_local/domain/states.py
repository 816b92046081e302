from enum import StrEnum, auto

class JobStatus(StrEnum):
    DRAFT = auto()            # Saved by the client, not visible to workers
    ACTIVE = auto()           # Published, accepting applications
    IN_PROGRESS = auto()      # A worker has been assigned
    COMPLETED = auto()        # Client confirmed the work is done
    CANCELLED = auto()        # Withdrawn by the client (or an admin)

class ApplicationStatus(StrEnum):
    PENDING = auto()
    ACCEPTED = auto()
    REJECTED = auto()
    CANCELLED = auto()        # Withdrawn by the worker while pending
    WITHDRAWN = auto()

class BudgetType(StrEnum):
    FIXED = auto()
    HOURLY = auto()
    NEGOTIABLE = auto()

class Urgency(StrEnum):
    LOW = auto()
    MEDIUM = auto()
    HIGH = auto()
    URGENT = auto()

class Role(StrEnum):
    CLIENT = auto()
    WORKER = auto()
    ADMIN = auto()

class JobEvent(StrEnum):
    JOB_CREATED = auto()
    JOB_UPDATED = auto()
    JOB_STATUS_CHANGED = auto()
    APPLICATION_SUBMITTED = auto()
    APPLICATION_ACCEPTED = auto()
    APPLICATION_REJECTED = auto()
    APPLICATION_CANCELLED = auto()

class NotificationEvent(StrEnum):
    NEW_APPLICATION = auto()
    APPLICATION_ACCEPTED = auto()
    APPLICATION_REJECTED = auto()
    JOB_STATUS_CHANGED = auto()

class OutboxStatus(StrEnum):
    PENDING = "PENDING"
    PUBLISHED = "PUBLISHED"
    FAILED = "FAILED"

TERMINAL_JOB_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED})
ASSIGNED_JOB_STATUSES = frozenset({JobStatus.IN_PROGRESS, JobStatus.COMPLETED})
