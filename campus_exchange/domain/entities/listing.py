from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from campus_exchange.domain.enums.listing_status import ListingStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Listing:
    """
    An item offered on the campus marketplace.

    Status changes are never made on this object directly: they go through
    the listing machine and a conditional update in the repository so that
    concurrent writers cannot leave the listing in an impossible status.
    """

    id: UUID = field(default_factory=uuid4)
    owner_id: UUID = field(default_factory=uuid4)

    title: str = ""
    description: str | None = None
    category: str | None = None
    price: Decimal = Decimal("0")

    status: ListingStatus = ListingStatus.DRAFT

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.owner_id == user_id
