from abc import ABC, abstractmethod
from uuid import UUID

from campus_exchange.domain.entities.dispute import Dispute
from campus_exchange.domain.enums.dispute_status import DisputeStatus


class DisputeRepository(ABC):
    @abstractmethod
    async def add(self, dispute: Dispute) -> None:
        ...

    @abstractmethod
    async def get_by_id(self, dispute_id: UUID) -> Dispute | None:
        ...

    @abstractmethod
    async def get_for_update(self, dispute_id: UUID) -> Dispute | None:
        ...

    @abstractmethod
    async def save(self, dispute: Dispute) -> None:
        ...

    @abstractmethod
    async def find_active(
        self,
        *,
        initiator_id: UUID,
        target_id: UUID,
        request_id: UUID | None,
        listing_id: UUID | None,
    ) -> Dispute | None:
        """Return an OPEN or UNDER_REVIEW dispute with the same parties and subject."""
        ...

    @abstractmethod
    async def count_against(self, user_id: UUID, *, active_only: bool = False) -> int:
        ...

    @abstractmethod
    async def list_for_actor(
        self,
        actor_id: UUID | None,
        *,
        status: DisputeStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Dispute], int]:
        """Return (disputes, total_count), newest first.

        ``actor_id`` of None lists every dispute; otherwise only disputes the
        actor filed or is the target of.
        """
        ...
