from datetime import date, datetime
from decimal import Decimal
from typing import Generic, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from talento_local.domain.states import ApplicationStatus, BudgetType, JobStatus, Urgency

T = TypeVar("T")

class RequestModel(BaseModel):
    """Request bodies accept both snake_case and camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class PaginationMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

class Envelope(BaseModel, Generic[T]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    pagination: Optional[PaginationMeta] = None

class JobResponse(BaseModel):
    id: UUID
    client_id: UUID
    title: str
    description: str
    category: str
    budget_amount: Optional[Decimal] = None
    budget_type: BudgetType
    address: str
    address_details: Optional[str] = None
    city: str
    department: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    urgency: Urgency
    needed_date: Optional[date] = None
    status: JobStatus
    assigned_worker_id: Optional[UUID] = None
    views_count: int
    created_at: datetime
    updated_at: datetime
    published_at: Optional[datetime] = None
    assigned_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)

class ApplicationResponse(BaseModel):
    id: UUID
    job_id: UUID
    worker_id: UUID
    message: str
    proposed_budget: Optional[Decimal] = None
    status: ApplicationStatus
    reviewed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)

def envelope(data=None, message: Optional[str] = None, page=None) -> Envelope:
    """
    Builds a success envelope carrying only the parts that were given.
    Routes declare `response_model_exclude_unset=True` so absent parts are omitted.
    """
    fields = {"success": True}
    if message is not None:
        fields["message"] = message
    if data is not None:
        fields["data"] = data
    if page is not None:
        fields["pagination"] = PaginationMeta(**page.meta())
    return Envelope(**fields)
