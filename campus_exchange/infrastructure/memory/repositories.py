"""In-memory repository implementations backed by ``InMemoryDatabase``.

Rows are copied on the way in and out, so callers never alias stored state.
Each operation yields to the event loop once before touching the store,
letting concurrent units of work interleave the way they would against a
real database.
"""
import asyncio
import copy
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone
from typing import TypeVar
from uuid import UUID

from campus_exchange.application.interfaces.audit_log_repository import AuditLogRepository
from campus_exchange.application.interfaces.dispute_repository import DisputeRepository
from campus_exchange.application.interfaces.listing_repository import ListingRepository
from campus_exchange.application.interfaces.request_repository import RequestRepository
from campus_exchange.application.interfaces.user_repository import UserRepository
from campus_exchange.domain.entities.audit_entry import AuditEntry
from campus_exchange.domain.entities.dispute import Dispute
from campus_exchange.domain.entities.exchange_request import ExchangeRequest
from campus_exchange.domain.entities.listing import Listing
from campus_exchange.domain.entities.user_account import UserAccount
from campus_exchange.domain.enums.dispute_status import DisputeStatus
from campus_exchange.domain.enums.listing_status import ListingStatus
from campus_exchange.domain.enums.request_status import RequestStatus
from campus_exchange.infrastructure.memory.database import InMemoryDatabase, RowLockSet

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _InMemoryRepository:
    _table_name: str

    def __init__(self, db: InMemoryDatabase, locks: RowLockSet) -> None:
        self._db = db
        self._locks = locks

    @staticmethod
    async def _yield() -> None:
        await asyncio.sleep(0)

    def _put(self, table: dict[UUID, T], row_id: UUID, value: T) -> None:
        previous = table.get(row_id)
        table[row_id] = copy.deepcopy(value)
        if previous is None:
            self._locks.record_undo(lambda: table.pop(row_id, None))
        else:
            self._locks.record_undo(lambda: table.__setitem__(row_id, previous))

    async def _write(self, table: dict[UUID, T], row_id: UUID, value: T) -> None:
        await self._locks.acquire(self._table_name, row_id)
        self._put(table, row_id, value)


class InMemoryRequestRepository(_InMemoryRepository, RequestRepository):
    _table_name = "requests"

    async def get_by_id(self, request_id: UUID) -> ExchangeRequest | None:
        await self._yield()
        row = self._db.requests.get(request_id)
        return copy.deepcopy(row) if row is not None else None

    async def get_for_update(self, request_id: UUID) -> ExchangeRequest | None:
        await self._yield()
        await self._locks.acquire(self._table_name, request_id)
        row = self._db.requests.get(request_id)
        return copy.deepcopy(row) if row is not None else None

    async def add(self, request: ExchangeRequest) -> None:
        await self._yield()
        await self._write(self._db.requests, request.id, request)

    async def save(self, request: ExchangeRequest) -> None:
        await self._yield()
        await self._write(self._db.requests, request.id, request)

    async def find_open_for_buyer(
        self,
        listing_id: UUID,
        buyer_id: UUID,
        *,
        exclude_id: UUID | None = None,
    ) -> ExchangeRequest | None:
        await self._yield()
        for row in self._db.requests.values():
            if (
                row.listing_id == listing_id
                and row.buyer_id == buyer_id
                and row.id != exclude_id
                and row.status.is_open
            ):
                return copy.deepcopy(row)
        return None

    async def count_open_for_listing(
        self, listing_id: UUID, *, exclude_id: UUID | None = None
    ) -> int:
        await self._yield()
        return sum(
            1
            for row in self._db.requests.values()
            if row.listing_id == listing_id and row.id != exclude_id and row.status.is_open
        )

    async def list_for_actor(
        self,
        actor_id: UUID | None,
        *,
        status: RequestStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ExchangeRequest], int]:
        await self._yield()
        rows = [
            row
            for row in self._db.requests.values()
            if (actor_id is None or actor_id in (row.buyer_id, row.seller_id))
            and (status is None or row.status is status)
        ]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return [copy.deepcopy(r) for r in rows[offset : offset + limit]], len(rows)


class InMemoryListingRepository(_InMemoryRepository, ListingRepository):
    _table_name = "listings"

    async def add(self, listing: Listing) -> None:
        await self._yield()
        await self._write(self._db.listings, listing.id, listing)

    async def get_by_id(self, listing_id: UUID) -> Listing | None:
        await self._yield()
        row = self._db.listings.get(listing_id)
        return copy.deepcopy(row) if row is not None else None

    async def get_for_update(self, listing_id: UUID) -> Listing | None:
        await self._yield()
        await self._locks.acquire(self._table_name, listing_id)
        row = self._db.listings.get(listing_id)
        return copy.deepcopy(row) if row is not None else None

    async def update_status_if(
        self, listing_id: UUID, *, expected: ListingStatus, new: ListingStatus
    ) -> int:
        await self._yield()
        await self._locks.acquire(self._table_name, listing_id)
        row = self._db.listings.get(listing_id)
        if row is None or row.status is not expected:
            return 0
        self._put(self._db.listings, listing_id, replace(row, status=new, updated_at=_utcnow()))
        return 1

    async def list_all(
        self,
        *,
        status: ListingStatus | None = None,
        owner_id: UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Listing], int]:
        await self._yield()
        rows = [
            row
            for row in self._db.listings.values()
            if (status is None or row.status is status)
            and (owner_id is None or row.owner_id == owner_id)
        ]
        rows.sort(key=lambda r: r.created_at, reverse=True)
        return [copy.deepcopy(r) for r in rows[offset : offset + limit]], len(rows)


class InMemoryUserRepository(_InMemoryRepository, UserRepository):
    _table_name = "users"

    async def add(self, user: UserAccount) -> None:
        await self._yield()
        await self._write(self._db.users, user.id, user)

    async def get_by_id(self, user_id: UUID) -> UserAccount | None:
        await self._yield()
        row = self._db.users.get(user_id)
        return copy.deepcopy(row) if row is not None else None

    async def increment_completed_exchanges(self, user_ids: Iterable[UUID]) -> None:
        await self._yield()
        # Sorted so two units of work never lock the same users in opposite order
        for user_id in sorted(set(user_ids)):
            await self._locks.acquire(self._table_name, user_id)
            row = self._db.users.get(user_id)
            if row is not None:
                self._put(
                    self._db.users,
                    user_id,
                    replace(row, completed_exchanges=row.completed_exchanges + 1),
                )

    async def increment_cancelled_requests(self, user_id: UUID) -> None:
        await self._yield()
        await self._locks.acquire(self._table_name, user_id)
        row = self._db.users.get(user_id)
        if row is not None:
            self._put(
                self._db.users,
                user_id,
                replace(row, cancelled_requests=row.cancelled_requests + 1),
            )


class InMemoryDisputeRepository(_InMemoryRepository, DisputeRepository):
    _table_name = "disputes"

    async def add(self, dispute: Dispute) -> None:
        await self._yield()
        await self._write(self._db.disputes, dispute.id, dispute)

    async def get_by_id(self, dispute_id: UUID) -> Dispute | None:
        await self._yield()
        row = self._db.disputes.get(dispute_id)
        return copy.deepcopy(row) if row is not None else None

    async def get_for_update(self, dispute_id: UUID) -> Dispute | None:
        await self._yield()
        await self._locks.acquire(self._table_name, dispute_id)
        row = self._db.disputes.get(dispute_id)
        return copy.deepcopy(row) if row is not None else None

    async def save(self, dispute: Dispute) -> None:
        await self._yield()
        await self._write(self._db.disputes, dispute.id, dispute)

    async def find_active(
        self,
        *,
        initiator_id: UUID,
        target_id: UUID,
        request_id: UUID | None,
        listing_id: UUID | None,
    ) -> Dispute | None:
        await self._yield()
        for row in self._db.disputes.values():
            if (
                row.initiator_id == initiator_id
                and row.target_id == target_id
                and row.request_id == request_id
                and row.listing_id == listing_id
                and row.status.is_active
            ):
                return copy.deepcopy(row)
        return None

    async def count_against(self, user_id: UUID, *, active_only: bool = False) -> int:
        await self._yield()
        return sum(
            1
            for row in self._db.disputes.values()
            if row.target_id == user_id and (not active_only or row.status.is_active)
        )

    async def list_for_actor(
        self,
        actor_id: UUID | None,
        *,
        status: DisputeStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Dispute], int]:
        await self._yield()
        rows = [
            row
            for row in self._db.disputes.values()
            if (actor_id is None or actor_id in (row.initiator_id, row.target_id))
            and (status is None or row.status is status)
        ]
        rows.sort(key=lambda r: r.filed_at, reverse=True)
        return [copy.deepcopy(r) for r in rows[offset : offset + limit]], len(rows)


class InMemoryAuditLogRepository(_InMemoryRepository, AuditLogRepository):
    _table_name = "audit_logs"

    async def append(self, entry: AuditEntry) -> None:
        await self._yield()
        stored = copy.deepcopy(entry)
        self._db.audit_log.append(stored)
        self._locks.record_undo(lambda: self._db.audit_log.remove(stored))

    async def list_for_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEntry]:
        await self._yield()
        return [
            copy.deepcopy(entry)
            for entry in self._db.audit_log
            if entry.entity_type == entity_type and entry.entity_id == entity_id
        ]
