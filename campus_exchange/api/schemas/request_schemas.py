from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from campus_exchange.domain.enums.listing_status import ListingStatus
from campus_exchange.domain.enums.request_status import RequestEvent, RequestStatus


class RequestResponse(BaseModel):
    id: UUID
    listing_id: UUID
    buyer_id: UUID
    seller_id: UUID
    status: RequestStatus
    version: int
    message: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ListingChangeResponse(BaseModel):
    listing_id: UUID
    from_status: ListingStatus
    to_status: ListingStatus

    model_config = {"from_attributes": True}


class RequestTransitionResponse(BaseModel):
    request: RequestResponse
    from_status: RequestStatus
    to_status: RequestStatus
    listing_change: ListingChangeResponse | None = None


class PaginatedRequestsResponse(BaseModel):
    requests: list[RequestResponse]
    total: int
    limit: int
    offset: int


class CreateRequestBody(BaseModel):
    listing_id: UUID
    message: str | None = Field(default=None, max_length=1000)


class RequestEventBody(BaseModel):
    event: RequestEvent
    # Version the client last saw; omitted means "apply to whatever is current"
    version: int | None = Field(default=None, ge=0)
