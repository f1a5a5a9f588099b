"""
Integration tests for the SQLAlchemy persistence layer.

Runs the transition service against a file-backed SQLite database through
aiosqlite. SQLite ignores FOR UPDATE, so these tests cover mapping, the
conditional listing update, atomic rollback and the idempotency store,
not lock contention.
"""
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from uuid import uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_exchange.application.errors import ConflictError
from campus_exchange.application.interfaces.unit_of_work import UnitOfWorkFactory
from campus_exchange.application.use_cases.apply_request_event import (
    ApplyRequestEvent,
    ApplyRequestEventInput,
)
from campus_exchange.application.use_cases.create_request import CreateRequest, CreateRequestInput
from campus_exchange.config import Settings
from campus_exchange.domain.entities.dispute import Dispute
from campus_exchange.domain.entities.listing import Listing
from campus_exchange.domain.entities.user_account import UserAccount
from campus_exchange.domain.enums.audit_action import AuditAction
from campus_exchange.domain.enums.dispute_status import DisputeStatus
from campus_exchange.domain.enums.listing_status import ListingStatus
from campus_exchange.domain.enums.request_status import RequestEvent, RequestStatus
from campus_exchange.infrastructure.database.connection import (
    Base,
    build_engine,
    build_session_factory,
)
from campus_exchange.infrastructure.database.idempotency_store import SqlAlchemyIdempotencyStore
from campus_exchange.infrastructure.database.unit_of_work import SqlAlchemyUnitOfWork
from campus_exchange.infrastructure.trust.admin_flag_policy import AdminFlagTrustPolicy

SessionFactory = async_sessionmaker[AsyncSession]


@pytest_asyncio.fixture()
async def session_factory(tmp_path: Path) -> AsyncIterator[SessionFactory]:
    engine = build_engine(Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'exchange.db'}"))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield build_session_factory(engine)
    await engine.dispose()


@dataclass
class Seed:
    seller: UserAccount
    buyer: UserAccount
    listing: Listing


@pytest_asyncio.fixture()
async def seeded(session_factory: SessionFactory) -> Seed:
    seller = UserAccount(display_name="Sam Seller")
    buyer = UserAccount(display_name="Bo Buyer")
    listing = Listing(
        owner_id=seller.id,
        title="Bike helmet",
        price=Decimal("12.50"),
        status=ListingStatus.APPROVED,
    )
    async with SqlAlchemyUnitOfWork(session_factory) as uow:
        await uow.users.add(seller)
        await uow.users.add(buyer)
        await uow.listings.add(listing)
    return Seed(seller=seller, buyer=buyer, listing=listing)


def _uow_factory(session_factory: SessionFactory) -> UnitOfWorkFactory:
    return lambda: SqlAlchemyUnitOfWork(session_factory)


class TestTransitionsOnSql:
    @pytest.mark.asyncio
    async def test_create_then_complete_exchange(
        self, session_factory: SessionFactory, seeded: Seed
    ) -> None:
        uow_factory = _uow_factory(session_factory)
        seller, buyer, listing = seeded.seller, seeded.buyer, seeded.listing

        created = await CreateRequest(uow_factory, AdminFlagTrustPolicy()).execute(
            CreateRequestInput(listing_id=listing.id, buyer_id=buyer.id)
        )
        use_case = ApplyRequestEvent(uow_factory)
        for actor, event in ((seller, RequestEvent.ACCEPT), (buyer, RequestEvent.SCHEDULE), (buyer, RequestEvent.CONFIRM)):
            await use_case.execute(
                ApplyRequestEventInput(
                    request_id=created.request.id,
                    event=event,
                    actor_id=actor.id,
                    actor_role=actor.role,
                )
            )

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            request = await uow.requests.get_by_id(created.request.id)
            stored_listing = await uow.listings.get_by_id(listing.id)
            stored_seller = await uow.users.get_by_id(seller.id)
            stored_buyer = await uow.users.get_by_id(buyer.id)
            trail = await uow.audit_log.list_for_entity("request", created.request.id)

        assert request is not None
        assert request.status is RequestStatus.COMPLETED
        assert request.version == 3
        assert request.updated_at.tzinfo is not None
        assert stored_listing is not None
        assert stored_listing.status is ListingStatus.COMPLETED
        assert stored_listing.price == Decimal("12.50")
        assert stored_seller is not None and stored_seller.completed_exchanges == 1
        assert stored_buyer is not None and stored_buyer.completed_exchanges == 1
        assert [e.action for e in trail] == [AuditAction.REQUEST_CREATE] + [AuditAction.REQUEST_EVENT] * 3
        assert trail[-1].metadata["listing"] == {"from": "in_transaction", "to": "completed"}

    @pytest.mark.asyncio
    async def test_failed_cascade_rolls_back_request(
        self, session_factory: SessionFactory, seeded: Seed
    ) -> None:
        uow_factory = _uow_factory(session_factory)
        seller, buyer, listing = seeded.seller, seeded.buyer, seeded.listing
        created = await CreateRequest(uow_factory, AdminFlagTrustPolicy()).execute(
            CreateRequestInput(listing_id=listing.id, buyer_id=buyer.id)
        )
        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            updated = await uow.listings.update_status_if(
                listing.id, expected=ListingStatus.INTEREST_RECEIVED, new=ListingStatus.FLAGGED
            )
        assert updated == 1

        with pytest.raises(ConflictError):
            await ApplyRequestEvent(uow_factory).execute(
                ApplyRequestEventInput(
                    request_id=created.request.id,
                    event=RequestEvent.ACCEPT,
                    actor_id=seller.id,
                    actor_role=seller.role,
                )
            )

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            request = await uow.requests.get_by_id(created.request.id)
            stored_listing = await uow.listings.get_by_id(listing.id)
            trail = await uow.audit_log.list_for_entity("request", created.request.id)

        assert request is not None
        assert request.status is RequestStatus.SENT
        assert request.version == 0
        assert stored_listing is not None
        assert stored_listing.status is ListingStatus.FLAGGED
        assert len(trail) == 1

    @pytest.mark.asyncio
    async def test_conditional_update_reports_stale_status(
        self, session_factory: SessionFactory, seeded: Seed
    ) -> None:
        listing = seeded.listing
        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            first = await uow.listings.update_status_if(
                listing.id, expected=ListingStatus.APPROVED, new=ListingStatus.INTEREST_RECEIVED
            )
            second = await uow.listings.update_status_if(
                listing.id, expected=ListingStatus.APPROVED, new=ListingStatus.INTEREST_RECEIVED
            )
        assert (first, second) == (1, 0)

    @pytest.mark.asyncio
    async def test_open_request_queries(
        self, session_factory: SessionFactory, seeded: Seed
    ) -> None:
        uow_factory = _uow_factory(session_factory)
        buyer, listing = seeded.buyer, seeded.listing
        created = await CreateRequest(uow_factory, AdminFlagTrustPolicy()).execute(
            CreateRequestInput(listing_id=listing.id, buyer_id=buyer.id)
        )

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            found = await uow.requests.find_open_for_buyer(listing.id, buyer.id)
            excluded = await uow.requests.find_open_for_buyer(
                listing.id, buyer.id, exclude_id=created.request.id
            )
            open_count = await uow.requests.count_open_for_listing(listing.id)
            page, total = await uow.requests.list_for_actor(buyer.id, status=RequestStatus.SENT)

        assert found is not None and found.id == created.request.id
        assert excluded is None
        assert open_count == 1
        assert total == 1 and page[0].id == created.request.id

    @pytest.mark.asyncio
    async def test_listing_read_for_update(
        self, session_factory: SessionFactory, seeded: Seed
    ) -> None:
        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            locked = await uow.listings.get_for_update(seeded.listing.id)
            missing = await uow.listings.get_for_update(uuid4())

        assert locked is not None
        assert locked.status is ListingStatus.APPROVED
        assert locked.price == Decimal("12.50")
        assert missing is None

    @pytest.mark.asyncio
    async def test_disputes_listed_for_involved_users(
        self, session_factory: SessionFactory, seeded: Seed
    ) -> None:
        older = Dispute(
            listing_id=seeded.listing.id,
            initiator_id=seeded.buyer.id,
            target_id=seeded.seller.id,
            description="Item was damaged.",
            filed_at=datetime.now(timezone.utc) - timedelta(days=1),
        )
        newer = Dispute(
            listing_id=seeded.listing.id,
            initiator_id=seeded.seller.id,
            target_id=seeded.buyer.id,
            description="Buyer never paid.",
            status=DisputeStatus.RESOLVED,
        )
        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            await uow.disputes.add(older)
            await uow.disputes.add(newer)

        async with SqlAlchemyUnitOfWork(session_factory) as uow:
            everything, total = await uow.disputes.list_for_actor(None)
            for_buyer, buyer_total = await uow.disputes.list_for_actor(seeded.buyer.id)
            resolved, resolved_total = await uow.disputes.list_for_actor(
                seeded.buyer.id, status=DisputeStatus.RESOLVED
            )
            for_stranger, stranger_total = await uow.disputes.list_for_actor(uuid4())
            second_page, _ = await uow.disputes.list_for_actor(None, limit=1, offset=1)

        assert total == buyer_total == 2
        assert [d.id for d in everything] == [newer.id, older.id]
        assert [d.id for d in for_buyer] == [newer.id, older.id]
        assert resolved_total == 1 and resolved[0].id == newer.id
        assert (for_stranger, stranger_total) == ([], 0)
        assert [d.id for d in second_page] == [older.id]


class TestSqlIdempotencyStore:
    @pytest.mark.asyncio
    async def test_reserve_complete_delete(self, session_factory: SessionFactory) -> None:
        store = SqlAlchemyIdempotencyStore(session_factory)
        user_id = uuid4()
        expires_at = datetime.now(timezone.utc) + timedelta(hours=1)

        assert await store.reserve(user_id, "k-1", scope="POST /requests", expires_at=expires_at)
        assert not await store.reserve(user_id, "k-1", scope="POST /requests", expires_at=expires_at)

        pending = await store.get(user_id, "k-1")
        assert pending is not None and not pending.is_completed

        await store.complete(user_id, "k-1", {"id": "r1"})
        record = await store.get(user_id, "k-1")
        assert record is not None
        assert record.response == {"id": "r1"}
        assert record.scope == "POST /requests"
        assert record.expires_at.tzinfo is not None

        await store.delete(user_id, "k-1")
        assert await store.get(user_id, "k-1") is None
