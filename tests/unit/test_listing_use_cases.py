"""Unit tests for listing creation, moderation transitions and audit history."""
from decimal import Decimal

import pytest

from campus_exchange.application.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from campus_exchange.application.use_cases.create_listing import CreateListing, CreateListingInput
from campus_exchange.application.use_cases.get_entity_history import (
    GetEntityHistory,
    GetEntityHistoryInput,
)
from campus_exchange.application.use_cases.transition_listing_state import (
    TransitionListingState,
    TransitionListingStateInput,
)
from campus_exchange.domain.entities.user_account import UserAccount
from campus_exchange.domain.enums.audit_action import AuditAction
from campus_exchange.domain.enums.listing_status import ListingEvent, ListingStatus
from campus_exchange.domain.state_machine.transition_table import InvalidTransitionError
from tests.conftest import Marketplace


def _transition_input(
    market: Marketplace, event: ListingEvent, actor: UserAccount, reason: str | None = None
) -> TransitionListingStateInput:
    return TransitionListingStateInput(
        listing_id=market.listing.id,
        event=event,
        actor_id=actor.id,
        actor_role=actor.role,
        reason=reason,
    )


class TestCreateListing:
    @pytest.mark.asyncio
    async def test_creates_draft_and_audits(self, market: Marketplace) -> None:
        listing = await CreateListing(market.uow_factory).execute(
            CreateListingInput(owner_id=market.seller.id, title="  Mini fridge ", price=Decimal("40"))
        )

        assert listing.status is ListingStatus.DRAFT
        assert listing.title == "Mini fridge"
        assert market.db.listings[listing.id].owner_id == market.seller.id
        (entry,) = market.db.audit_log
        assert entry.action is AuditAction.LISTING_CREATE
        assert entry.metadata == {"title": "Mini fridge", "status": "draft"}

    @pytest.mark.asyncio
    async def test_rejects_blank_title_and_negative_price(self, market: Marketplace) -> None:
        use_case = CreateListing(market.uow_factory)
        with pytest.raises(ValidationError):
            await use_case.execute(CreateListingInput(owner_id=market.seller.id, title=" ", price=Decimal("1")))
        with pytest.raises(ValidationError):
            await use_case.execute(CreateListingInput(owner_id=market.seller.id, title="Chair", price=Decimal("-1")))
        assert market.db.audit_log == []


class TestTransitionListingState:
    @pytest.mark.asyncio
    async def test_owner_submits_and_admin_approves(self, market: Marketplace) -> None:
        market.set_listing_status(ListingStatus.DRAFT)
        use_case = TransitionListingState(market.uow_factory)

        submitted = await use_case.execute(_transition_input(market, ListingEvent.SUBMIT, market.seller))
        assert submitted.to_status is ListingStatus.PENDING_REVIEW

        approved = await use_case.execute(
            _transition_input(market, ListingEvent.APPROVE, market.admin, reason="Looks fine")
        )
        assert approved.from_status is ListingStatus.PENDING_REVIEW
        assert approved.listing.status is ListingStatus.APPROVED
        assert market.listing_status() is ListingStatus.APPROVED

        audit = [e for e in market.db.audit_log if e.action is AuditAction.LISTING_STATUS_UPDATE]
        assert [e.metadata["event"] for e in audit] == ["SUBMIT", "APPROVE"]
        assert audit[1].metadata["reason"] == "Looks fine"

    @pytest.mark.asyncio
    async def test_owner_cannot_moderate(self, market: Marketplace) -> None:
        market.set_listing_status(ListingStatus.PENDING_REVIEW)

        with pytest.raises(ForbiddenError):
            await TransitionListingState(market.uow_factory).execute(
                _transition_input(market, ListingEvent.APPROVE, market.seller)
            )
        assert market.listing_status() is ListingStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_stranger_cannot_remove(self, market: Marketplace) -> None:
        with pytest.raises(ForbiddenError):
            await TransitionListingState(market.uow_factory).execute(
                _transition_input(market, ListingEvent.REMOVE, market.buyer)
            )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "event",
        [ListingEvent.RECEIVE_INTEREST, ListingEvent.ACCEPT_REQUEST, ListingEvent.CONFIRM_EXCHANGE],
    )
    async def test_request_driven_events_are_not_directly_applicable(
        self, market: Marketplace, event: ListingEvent
    ) -> None:
        with pytest.raises(ForbiddenError):
            await TransitionListingState(market.uow_factory).execute(
                _transition_input(market, event, market.admin)
            )
        assert market.listing_status() is ListingStatus.APPROVED

    @pytest.mark.asyncio
    async def test_illegal_transition_is_conflict(self, market: Marketplace) -> None:
        with pytest.raises(ConflictError) as exc_info:
            await TransitionListingState(market.uow_factory).execute(
                _transition_input(market, ListingEvent.RELIST, market.seller)
            )
        assert isinstance(exc_info.value.__cause__, InvalidTransitionError)
        assert market.db.audit_log == []

    @pytest.mark.asyncio
    async def test_admin_flags_active_listing(self, market: Marketplace) -> None:
        market.set_listing_status(ListingStatus.IN_TRANSACTION)

        result = await TransitionListingState(market.uow_factory).execute(
            _transition_input(market, ListingEvent.FLAG, market.admin)
        )
        assert result.to_status is ListingStatus.FLAGGED

    @pytest.mark.asyncio
    async def test_unknown_listing(self, market: Marketplace) -> None:
        with pytest.raises(NotFoundError):
            await TransitionListingState(market.uow_factory).execute(
                TransitionListingStateInput(
                    listing_id=market.buyer.id,
                    event=ListingEvent.SUBMIT,
                    actor_id=market.admin.id,
                    actor_role=market.admin.role,
                )
            )


class TestEntityHistory:
    @pytest.mark.asyncio
    async def test_listing_history_is_public(self, market: Marketplace) -> None:
        await TransitionListingState(market.uow_factory).execute(
            _transition_input(market, ListingEvent.FLAG, market.admin)
        )

        result = await GetEntityHistory(market.uow_factory).execute(
            GetEntityHistoryInput(
                entity_type="listing",
                entity_id=market.listing.id,
                actor_id=market.other_buyer.id,
                actor_role=market.other_buyer.role,
            )
        )
        assert [e.metadata["to"] for e in result.history] == ["flagged"]

    @pytest.mark.asyncio
    async def test_request_history_is_limited_to_parties(self, market: Marketplace) -> None:
        request = market.add_request()
        use_case = GetEntityHistory(market.uow_factory)

        with pytest.raises(ForbiddenError):
            await use_case.execute(
                GetEntityHistoryInput(
                    entity_type="request",
                    entity_id=request.id,
                    actor_id=market.other_buyer.id,
                    actor_role=market.other_buyer.role,
                )
            )

        for actor in (market.buyer, market.seller, market.admin):
            result = await use_case.execute(
                GetEntityHistoryInput(
                    entity_type="request",
                    entity_id=request.id,
                    actor_id=actor.id,
                    actor_role=actor.role,
                )
            )
            assert result.history == []

    @pytest.mark.asyncio
    async def test_unknown_entity(self, market: Marketplace) -> None:
        with pytest.raises(NotFoundError):
            await GetEntityHistory(market.uow_factory).execute(
                GetEntityHistoryInput(
                    entity_type="dispute",
                    entity_id=market.listing.id,
                    actor_id=market.admin.id,
                    actor_role=market.admin.role,
                )
            )
