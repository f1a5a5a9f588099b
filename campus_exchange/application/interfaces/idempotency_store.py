from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID


@dataclass(frozen=True)
class IdempotencyRecord:
    user_id: UUID
    key: str
    scope: str
    expires_at: datetime
    response: dict[str, Any] | None = None

    @property
    def is_completed(self) -> bool:
        return self.response is not None


class IdempotencyStore(ABC):
    """Port for storing (user, key) reservations and their recorded responses."""

    @abstractmethod
    async def get(self, user_id: UUID, key: str) -> IdempotencyRecord | None:
        ...

    @abstractmethod
    async def reserve(self, user_id: UUID, key: str, *, scope: str, expires_at: datetime) -> bool:
        """Insert an in-flight record. Returns False if one already exists."""
        ...

    @abstractmethod
    async def complete(self, user_id: UUID, key: str, response: dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def delete(self, user_id: UUID, key: str) -> None:
        ...
