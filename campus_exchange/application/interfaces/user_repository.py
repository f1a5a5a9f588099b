from abc import ABC, abstractmethod
from collections.abc import Iterable
from uuid import UUID

from campus_exchange.domain.entities.user_account import UserAccount


class UserRepository(ABC):
    @abstractmethod
    async def add(self, user: UserAccount) -> None:
        ...

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> UserAccount | None:
        ...

    @abstractmethod
    async def increment_completed_exchanges(self, user_ids: Iterable[UUID]) -> None:
        ...

    @abstractmethod
    async def increment_cancelled_requests(self, user_id: UUID) -> None:
        ...
