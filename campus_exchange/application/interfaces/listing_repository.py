from abc import ABC, abstractmethod
from uuid import UUID

from campus_exchange.domain.entities.listing import Listing
from campus_exchange.domain.enums.listing_status import ListingStatus


class ListingRepository(ABC):
    """Port for persisting and querying Listing aggregates."""

    @abstractmethod
    async def add(self, listing: Listing) -> None:
        ...

    @abstractmethod
    async def get_by_id(self, listing_id: UUID) -> Listing | None:
        ...

    @abstractmethod
    async def get_for_update(self, listing_id: UUID) -> Listing | None:
        """Read the listing and hold its row lock until the unit of work ends."""

    @abstractmethod
    async def update_status_if(
        self, listing_id: UUID, *, expected: ListingStatus, new: ListingStatus
    ) -> int:
        """Set status to ``new`` only where it is currently ``expected``.

        Returns the number of affected rows (0 or 1).
        """
        ...

    @abstractmethod
    async def list_all(
        self,
        *,
        status: ListingStatus | None = None,
        owner_id: UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Listing], int]:
        """Return (listings, total_count)."""
        ...
