"""
The single idempotency boundary for mutating entry points.

A client key is scoped to the acting user. The first submission reserves
the key, runs the operation once and records its serialised response; a
repeat inside the TTL replays that response instead of re-executing. A
failed operation releases its reservation so the client can retry.
"""
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import structlog

from campus_exchange.application.errors import IdempotencyConflictError
from campus_exchange.application.interfaces.idempotency_store import (
    IdempotencyRecord,
    IdempotencyStore,
)

logger = structlog.get_logger(__name__)

Payload = dict[str, Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IdempotentResult:
    payload: Payload
    replayed: bool = False


class IdempotencyBoundary:
    def __init__(self, store: IdempotencyStore, ttl: timedelta = timedelta(hours=24)) -> None:
        self._store = store
        self._ttl = ttl

    async def execute(
        self,
        *,
        user_id: UUID,
        key: str | None,
        scope: str,
        operation: Callable[[], Awaitable[Payload]],
    ) -> IdempotentResult:
        """Run ``operation`` at most once per (user_id, key).

        ``scope`` names the operation the key was first used for; reusing a
        key for a different operation is rejected. Without a key the
        operation simply runs.
        """
        if not key:
            return IdempotentResult(payload=await operation())

        replay = await self._lookup(user_id, key, scope)
        if replay is not None:
            return replay

        now = _utcnow()
        if not await self._store.reserve(user_id, key, scope=scope, expires_at=now + self._ttl):
            # Lost a race with a concurrent submission of the same key
            replay = await self._lookup(user_id, key, scope)
            if replay is not None:
                return replay
            raise IdempotencyConflictError("A request with this idempotency key is already in progress.")

        try:
            payload = await operation()
        except Exception:
            await self._store.delete(user_id, key)
            raise

        await self._store.complete(user_id, key, payload)
        return IdempotentResult(payload=payload)

    async def _lookup(self, user_id: UUID, key: str, scope: str) -> IdempotentResult | None:
        record = await self._store.get(user_id, key)
        if record is None:
            return None

        if record.expires_at <= _utcnow():
            await self._store.delete(user_id, key)
            return None

        self._check_scope(record, scope)
        if not record.is_completed:
            raise IdempotencyConflictError("A request with this idempotency key is already in progress.")

        logger.info("idempotent_replay", user_id=str(user_id), key=key, scope=scope)
        return IdempotentResult(payload=dict(record.response or {}), replayed=True)

    @staticmethod
    def _check_scope(record: IdempotencyRecord, scope: str) -> None:
        if record.scope != scope:
            raise IdempotencyConflictError(
                "This idempotency key was already used for a different operation."
            )
