from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from campus_exchange.domain.enums.dispute_status import DisputeEvent, DisputeStatus, DisputeType


class DisputeResponse(BaseModel):
    id: UUID
    request_id: UUID | None = None
    listing_id: UUID | None = None
    initiator_id: UUID
    target_id: UUID
    type: DisputeType
    description: str
    status: DisputeStatus
    resolution_note: str | None = None
    filed_at: datetime
    review_started_at: datetime | None = None
    resolved_at: datetime | None = None
    rejected_at: datetime | None = None
    escalated_at: datetime | None = None

    model_config = {"from_attributes": True}


class FileDisputeBody(BaseModel):
    target_id: UUID
    type: DisputeType
    description: str = Field(min_length=1, max_length=4000)
    request_id: UUID | None = None
    listing_id: UUID | None = None


class DisputeTransitionBody(BaseModel):
    event: DisputeEvent
    resolution_note: str | None = None


class PaginatedDisputesResponse(BaseModel):
    disputes: list[DisputeResponse]
    total: int
    limit: int
    offset: int
