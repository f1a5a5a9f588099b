from abc import ABC, abstractmethod
from uuid import UUID

from campus_exchange.domain.entities.exchange_request import ExchangeRequest
from campus_exchange.domain.enums.request_status import RequestStatus


class RequestRepository(ABC):
    """Port for persisting and querying ExchangeRequest aggregates."""

    @abstractmethod
    async def get_by_id(self, request_id: UUID) -> ExchangeRequest | None:
        ...

    @abstractmethod
    async def get_for_update(self, request_id: UUID) -> ExchangeRequest | None:
        """Read the request and hold an exclusive row lock until the unit of work ends."""
        ...

    @abstractmethod
    async def add(self, request: ExchangeRequest) -> None:
        ...

    @abstractmethod
    async def save(self, request: ExchangeRequest) -> None:
        """Persist status, version and updated_at of a request read with get_for_update."""
        ...

    @abstractmethod
    async def find_open_for_buyer(
        self,
        listing_id: UUID,
        buyer_id: UUID,
        *,
        exclude_id: UUID | None = None,
    ) -> ExchangeRequest | None:
        ...

    @abstractmethod
    async def count_open_for_listing(
        self, listing_id: UUID, *, exclude_id: UUID | None = None
    ) -> int:
        ...

    @abstractmethod
    async def list_for_actor(
        self,
        actor_id: UUID | None,
        *,
        status: RequestStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ExchangeRequest], int]:
        """Return (requests, total_count) where the actor is buyer or seller.

        ``actor_id=None`` lists every request.
        """
        ...
