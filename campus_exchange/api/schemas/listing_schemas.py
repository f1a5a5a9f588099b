from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from campus_exchange.domain.enums.listing_status import ListingEvent, ListingStatus


class ListingResponse(BaseModel):
    id: UUID
    owner_id: UUID
    title: str
    description: str | None = None
    category: str | None = None
    price: Decimal
    status: ListingStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaginatedListingsResponse(BaseModel):
    listings: list[ListingResponse]
    total: int
    limit: int
    offset: int


class CreateListingBody(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    price: Decimal = Field(ge=0)
    description: str | None = None
    category: str | None = Field(default=None, max_length=64)


class ListingTransitionBody(BaseModel):
    event: ListingEvent
    reason: str | None = None
