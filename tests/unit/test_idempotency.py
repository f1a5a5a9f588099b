"""Unit tests for the idempotency boundary."""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from campus_exchange.application.errors import ConflictError, IdempotencyConflictError
from campus_exchange.application.idempotency import IdempotencyBoundary
from campus_exchange.infrastructure.memory.idempotency_store import InMemoryIdempotencyStore


@pytest.fixture()
def store() -> InMemoryIdempotencyStore:
    return InMemoryIdempotencyStore()


class TestIdempotencyBoundary:
    @pytest.mark.asyncio
    async def test_without_key_always_runs(self, store: InMemoryIdempotencyStore) -> None:
        operation = AsyncMock(return_value={"id": "r1"})
        boundary = IdempotencyBoundary(store)

        for _ in range(2):
            result = await boundary.execute(user_id=uuid4(), key=None, scope="POST /requests", operation=operation)
            assert result.replayed is False

        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_repeat_replays_stored_response(self, store: InMemoryIdempotencyStore) -> None:
        operation = AsyncMock(return_value={"id": "r1", "status": "sent"})
        boundary = IdempotencyBoundary(store)
        user_id = uuid4()

        first = await boundary.execute(user_id=user_id, key="k-1", scope="POST /requests", operation=operation)
        second = await boundary.execute(user_id=user_id, key="k-1", scope="POST /requests", operation=operation)

        assert operation.await_count == 1
        assert first.replayed is False
        assert second.replayed is True
        assert second.payload == first.payload

    @pytest.mark.asyncio
    async def test_key_is_scoped_to_user(self, store: InMemoryIdempotencyStore) -> None:
        operation = AsyncMock(return_value={"ok": True})
        boundary = IdempotencyBoundary(store)

        await boundary.execute(user_id=uuid4(), key="shared", scope="POST /requests", operation=operation)
        result = await boundary.execute(user_id=uuid4(), key="shared", scope="POST /requests", operation=operation)

        assert result.replayed is False
        assert operation.await_count == 2

    @pytest.mark.asyncio
    async def test_reuse_for_another_operation_is_rejected(self, store: InMemoryIdempotencyStore) -> None:
        boundary = IdempotencyBoundary(store)
        user_id = uuid4()
        await boundary.execute(
            user_id=user_id, key="k-1", scope="POST /requests", operation=AsyncMock(return_value={})
        )

        other = AsyncMock(return_value={})
        with pytest.raises(IdempotencyConflictError) as exc_info:
            await boundary.execute(user_id=user_id, key="k-1", scope="POST /disputes", operation=other)

        assert isinstance(exc_info.value, ConflictError)
        other.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_operation_releases_key(self, store: InMemoryIdempotencyStore) -> None:
        boundary = IdempotencyBoundary(store)
        user_id = uuid4()

        with pytest.raises(ConflictError):
            await boundary.execute(
                user_id=user_id,
                key="k-1",
                scope="POST /requests",
                operation=AsyncMock(side_effect=ConflictError("taken")),
            )
        assert await store.get(user_id, "k-1") is None

        retry = AsyncMock(return_value={"id": "r2"})
        result = await boundary.execute(user_id=user_id, key="k-1", scope="POST /requests", operation=retry)
        assert result.replayed is False
        retry.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_in_flight_key_is_rejected(self, store: InMemoryIdempotencyStore) -> None:
        user_id = uuid4()
        await store.reserve(
            user_id,
            "k-1",
            scope="POST /requests",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )
        operation = AsyncMock(return_value={})

        with pytest.raises(IdempotencyConflictError, match="in progress"):
            await IdempotencyBoundary(store).execute(
                user_id=user_id, key="k-1", scope="POST /requests", operation=operation
            )
        operation.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_expired_record_runs_again(self, store: InMemoryIdempotencyStore) -> None:
        user_id = uuid4()
        await store.reserve(
            user_id,
            "k-1",
            scope="POST /requests",
            expires_at=datetime.now(timezone.utc) - timedelta(seconds=1),
        )
        await store.complete(user_id, "k-1", {"id": "old"})
        operation = AsyncMock(return_value={"id": "new"})

        result = await IdempotencyBoundary(store).execute(
            user_id=user_id, key="k-1", scope="POST /requests", operation=operation
        )

        assert result.replayed is False
        assert result.payload == {"id": "new"}
        record = await store.get(user_id, "k-1")
        assert record is not None
        assert record.response == {"id": "new"}
