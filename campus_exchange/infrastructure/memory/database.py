"""
In-process marketplace store.

One ``InMemoryDatabase`` belongs to one application instance; it is created
in the app lifespan (or by a test) and never shared through module state.

Semantics mirror the relational contract closely enough for the transition
service: every write takes an exclusive per-row lock held until the unit of
work ends, ``get_for_update`` takes the same lock before reading, and a
rollback replays an undo log. A row lock exists only while some unit of
work holds or waits on it, so the lock table stays as small as the set of
rows in flight. Plain reads are not isolated from in-flight writes of
other units of work.
"""
import asyncio
import copy
from collections.abc import Callable
from typing import Any
from uuid import UUID

from campus_exchange.domain.entities.audit_entry import AuditEntry
from campus_exchange.domain.entities.dispute import Dispute
from campus_exchange.domain.entities.exchange_request import ExchangeRequest
from campus_exchange.domain.entities.listing import Listing
from campus_exchange.domain.entities.user_account import UserAccount

RowKey = tuple[str, UUID]


class InMemoryDatabase:
    def __init__(self) -> None:
        self.users: dict[UUID, UserAccount] = {}
        self.listings: dict[UUID, Listing] = {}
        self.requests: dict[UUID, ExchangeRequest] = {}
        self.disputes: dict[UUID, Dispute] = {}
        self.audit_log: list[AuditEntry] = []
        self._locks: dict[RowKey, asyncio.Lock] = {}
        self._lock_users: dict[RowKey, int] = {}

    @property
    def active_lock_count(self) -> int:
        """Row locks currently held or waited on."""
        return len(self._locks)

    def checkout_lock(self, key: RowKey) -> asyncio.Lock:
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        return self._locks.setdefault(key, asyncio.Lock())

    def return_lock(self, key: RowKey) -> None:
        remaining = self._lock_users[key] - 1
        if remaining:
            self._lock_users[key] = remaining
            return
        # Nobody holds or waits on the row any more
        del self._lock_users[key]
        del self._locks[key]

    def load(self, *rows: Any) -> None:
        """Insert rows directly, bypassing locks. For bootstrapping a fresh store."""
        for row in rows:
            if isinstance(row, UserAccount):
                self.users[row.id] = copy.deepcopy(row)
            elif isinstance(row, Listing):
                self.listings[row.id] = copy.deepcopy(row)
            elif isinstance(row, ExchangeRequest):
                self.requests[row.id] = copy.deepcopy(row)
            elif isinstance(row, Dispute):
                self.disputes[row.id] = copy.deepcopy(row)
            else:
                raise TypeError(f"Cannot load {type(row).__name__} into the in-memory store")


class RowLockSet:
    """Row locks and undo records owned by one unit of work."""

    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db
        self._held: dict[RowKey, asyncio.Lock] = {}
        self._undo: list[Callable[[], None]] = []

    async def acquire(self, table: str, row_id: UUID) -> None:
        key = (table, row_id)
        if key in self._held:
            return
        lock = self._db.checkout_lock(key)
        try:
            await lock.acquire()
        except asyncio.CancelledError:
            self._db.return_lock(key)
            raise
        self._held[key] = lock

    def record_undo(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def forget_undo(self) -> None:
        self._undo.clear()

    def undo_all(self) -> None:
        for undo in reversed(self._undo):
            undo()
        self._undo.clear()

    def release_all(self) -> None:
        for key, lock in self._held.items():
            lock.release()
            self._db.return_lock(key)
        self._held.clear()
