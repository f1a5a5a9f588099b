from dataclasses import replace
from datetime import datetime
from typing import Any
from uuid import UUID

from campus_exchange.application.interfaces.idempotency_store import (
    IdempotencyRecord,
    IdempotencyStore,
)


class InMemoryIdempotencyStore(IdempotencyStore):
    """Per-process idempotency records keyed by (user id, client key)."""

    def __init__(self) -> None:
        self._records: dict[tuple[UUID, str], IdempotencyRecord] = {}

    async def get(self, user_id: UUID, key: str) -> IdempotencyRecord | None:
        return self._records.get((user_id, key))

    async def reserve(self, user_id: UUID, key: str, *, scope: str, expires_at: datetime) -> bool:
        if (user_id, key) in self._records:
            return False
        self._records[(user_id, key)] = IdempotencyRecord(
            user_id=user_id, key=key, scope=scope, expires_at=expires_at
        )
        return True

    async def complete(self, user_id: UUID, key: str, response: dict[str, Any]) -> None:
        record = self._records.get((user_id, key))
        if record is not None:
            self._records[(user_id, key)] = replace(record, response=response)

    async def delete(self, user_id: UUID, key: str) -> None:
        self._records.pop((user_id, key), None)
