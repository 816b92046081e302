from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON, Date, DateTime, Float, ForeignKey, Index, Integer, Numeric, String, Text,
    UniqueConstraint, Uuid, func, text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from talento_local.db.session import Base
from talento_local.domain.states import (
    ApplicationStatus, BudgetType, JobEvent, JobStatus, OutboxStatus, Urgency,
)

JsonType = JSON().with_variant(JSONB(), "postgresql")

class Job(Base):
    __tablename__ = "jobs"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    client_id: Mapped[UUID] = mapped_column(Uuid, index=True, nullable=False)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(100), index=True, nullable=False)

    budget_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    budget_type: Mapped[BudgetType] = mapped_column(String(20), default=BudgetType.NEGOTIABLE)

    # Location
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    address_details: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    department: Mapped[str] = mapped_column(String(100), nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    urgency: Mapped[Urgency] = mapped_column(String(20), default=Urgency.MEDIUM)
    needed_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    # Lifecycle
    status: Mapped[JobStatus] = mapped_column(String(20), default=JobStatus.ACTIVE, index=True)
    assigned_worker_id: Mapped[Optional[UUID]] = mapped_column(Uuid, index=True, nullable=True)
    views_count: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    assigned_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    applications: Mapped[list["JobApplication"]] = relationship(
        "JobApplication", back_populates="job", cascade="all, delete-orphan", passive_deletes=True
    )
    events: Mapped[list["JobEventLog"]] = relationship(
        "JobEventLog", back_populates="job", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        # Listing query: status='active' ordered by recency
        Index("ix_jobs_active_created", "status", "created_at", postgresql_where=text("status = 'active'")),
    )

class JobApplication(Base):
    __tablename__ = "job_applications"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    job_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), index=True, nullable=False)
    worker_id: Mapped[UUID] = mapped_column(Uuid, index=True, nullable=False)

    message: Mapped[str] = mapped_column(Text, nullable=False)
    proposed_budget: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    status: Mapped[ApplicationStatus] = mapped_column(String(20), default=ApplicationStatus.PENDING, index=True)

    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    job: Mapped["Job"] = relationship("Job", back_populates="applications")

    __table_args__ = (
        UniqueConstraint("job_id", "worker_id", name="uq_job_applications_job_worker"),
        # At most one accepted application per job, even if a lock is bypassed
        Index(
            "uq_job_applications_one_accepted",
            "job_id",
            unique=True,
            postgresql_where=text("status = 'accepted'"),
            sqlite_where=text("status = 'accepted'"),
        ),
    )

class JobEventLog(Base):
    __tablename__ = "job_events"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), index=True)
    application_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)
    actor_id: Mapped[Optional[UUID]] = mapped_column(Uuid, nullable=True)

    event_type: Mapped[JobEvent] = mapped_column(String(40), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Context (e.g. from/to status, rejected application ids)
    meta: Mapped[dict[str, Any]] = mapped_column(JsonType, default=dict)

    job: Mapped["Job"] = relationship("Job", back_populates="events")

class OutboxEvent(Base):
    __tablename__ = "outbox_events"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipient_id: Mapped[UUID] = mapped_column(Uuid, index=True, nullable=False)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JsonType, default=dict)

    status: Mapped[OutboxStatus] = mapped_column(String(20), default=OutboxStatus.PENDING, index=True)
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Set after a failed delivery; the row is not claimed again before then
    next_attempt_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
