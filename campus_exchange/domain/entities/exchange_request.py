from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID, uuid4

from campus_exchange.domain.enums.request_status import RequestStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RequestParty(str, Enum):
    BUYER = "BUYER"
    SELLER = "SELLER"


@dataclass
class ExchangeRequest:
    """A buyer's request to exchange for a listing owned by the seller.

    ``version`` increases by one on every applied event and is never reset.
    """

    id: UUID = field(default_factory=uuid4)
    listing_id: UUID = field(default_factory=uuid4)
    buyer_id: UUID = field(default_factory=uuid4)
    seller_id: UUID = field(default_factory=uuid4)

    status: RequestStatus = RequestStatus.SENT
    version: int = 0
    message: str | None = None

    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    def party_of(self, user_id: UUID) -> RequestParty | None:
        if user_id == self.buyer_id:
            return RequestParty.BUYER
        if user_id == self.seller_id:
            return RequestParty.SELLER
        return None

    def apply_status(self, new_status: RequestStatus) -> None:
        self.status = new_status
        self.version += 1
        self.updated_at = _utcnow()
