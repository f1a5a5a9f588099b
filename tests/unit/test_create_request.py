"""Unit tests for CreateRequest."""
from unittest.mock import MagicMock

import pytest

from campus_exchange.application.errors import ConflictError, ForbiddenError, NotFoundError
from campus_exchange.application.use_cases.create_request import CreateRequest, CreateRequestInput
from campus_exchange.domain.entities.trust import TrustAssessment
from campus_exchange.domain.entities.user_account import UserAccount
from campus_exchange.domain.enums.audit_action import AuditAction
from campus_exchange.domain.enums.listing_status import ListingStatus
from campus_exchange.domain.enums.request_status import RequestStatus
from campus_exchange.domain.enums.trust_status import TrustStatus
from campus_exchange.infrastructure.trust.admin_flag_policy import AdminFlagTrustPolicy
from tests.conftest import Marketplace


def _use_case(market: Marketplace, policy=None) -> CreateRequest:
    return CreateRequest(market.uow_factory, policy or AdminFlagTrustPolicy())


class TestCreateRequest:
    @pytest.mark.asyncio
    async def test_first_request_claims_approved_listing(self, market: Marketplace) -> None:
        result = await _use_case(market).execute(
            CreateRequestInput(listing_id=market.listing.id, buyer_id=market.buyer.id, message="Still available?")
        )

        assert result.request.status is RequestStatus.SENT
        assert result.request.version == 0
        assert result.request.seller_id == market.seller.id
        assert result.listing_change is not None
        assert result.listing_change.to_status is ListingStatus.INTEREST_RECEIVED
        assert market.listing_status() is ListingStatus.INTEREST_RECEIVED
        assert market.db.requests[result.request.id].message == "Still available?"

        (entry,) = market.db.audit_log
        assert entry.action is AuditAction.REQUEST_CREATE
        assert entry.entity_id == result.request.id
        assert entry.metadata["listing"] == {"from": "approved", "to": "interest_received"}

    @pytest.mark.asyncio
    async def test_second_buyer_joins_existing_interest(self, market: Marketplace) -> None:
        market.add_request()
        market.set_listing_status(ListingStatus.INTEREST_RECEIVED)

        result = await _use_case(market).execute(
            CreateRequestInput(listing_id=market.listing.id, buyer_id=market.other_buyer.id)
        )

        assert result.listing_change is None
        assert market.listing_status() is ListingStatus.INTEREST_RECEIVED
        assert len(market.db.requests) == 2

    @pytest.mark.asyncio
    async def test_duplicate_open_request_rejected(self, market: Marketplace) -> None:
        market.add_request()
        market.set_listing_status(ListingStatus.INTEREST_RECEIVED)

        with pytest.raises(ConflictError, match="already have an active request"):
            await _use_case(market).execute(
                CreateRequestInput(listing_id=market.listing.id, buyer_id=market.buyer.id)
            )
        assert len(market.db.requests) == 1

    @pytest.mark.asyncio
    async def test_closed_request_does_not_block_a_new_one(self, market: Marketplace) -> None:
        market.add_request(RequestStatus.DECLINED, version=1)

        result = await _use_case(market).execute(
            CreateRequestInput(listing_id=market.listing.id, buyer_id=market.buyer.id)
        )
        assert result.request.status is RequestStatus.SENT

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status",
        [ListingStatus.DRAFT, ListingStatus.IN_TRANSACTION, ListingStatus.FLAGGED, ListingStatus.ARCHIVED],
    )
    async def test_unavailable_listing(self, market: Marketplace, status: ListingStatus) -> None:
        market.set_listing_status(status)

        with pytest.raises(ConflictError, match="not available"):
            await _use_case(market).execute(
                CreateRequestInput(listing_id=market.listing.id, buyer_id=market.buyer.id)
            )
        assert market.db.requests == {}
        assert market.listing_status() is status

    @pytest.mark.asyncio
    async def test_own_listing_rejected(self, market: Marketplace) -> None:
        with pytest.raises(ConflictError):
            await _use_case(market).execute(
                CreateRequestInput(listing_id=market.listing.id, buyer_id=market.seller.id)
            )
        assert market.listing_status() is ListingStatus.APPROVED

    @pytest.mark.asyncio
    async def test_unknown_listing_and_buyer(self, market: Marketplace) -> None:
        stranger = UserAccount()
        with pytest.raises(NotFoundError):
            await _use_case(market).execute(
                CreateRequestInput(listing_id=market.listing.id, buyer_id=stranger.id)
            )
        with pytest.raises(NotFoundError):
            await _use_case(market).execute(
                CreateRequestInput(listing_id=stranger.id, buyer_id=market.buyer.id)
            )


class TestTrustPreCheck:
    @pytest.mark.asyncio
    async def test_flagged_buyer_is_restricted(self, market: Marketplace) -> None:
        market.db.users[market.buyer.id].admin_flags = 1

        with pytest.raises(ForbiddenError, match="Action restricted"):
            await _use_case(market).execute(
                CreateRequestInput(listing_id=market.listing.id, buyer_id=market.buyer.id)
            )
        assert market.listing_status() is ListingStatus.APPROVED
        assert market.db.audit_log == []

    @pytest.mark.asyncio
    async def test_policy_receives_buyer_snapshot(self, market: Marketplace) -> None:
        market.db.users[market.buyer.id].cancelled_requests = 2
        policy = MagicMock()
        policy.assess.return_value = TrustAssessment(status=TrustStatus.GOOD_STANDING)

        await _use_case(market, policy).execute(
            CreateRequestInput(listing_id=market.listing.id, buyer_id=market.buyer.id)
        )

        snapshot = policy.assess.call_args.args[0]
        assert snapshot.cancelled_requests == 2
        assert snapshot.admin_flags == 0
        assert snapshot.dispute_count == 0

    @pytest.mark.asyncio
    async def test_review_required_does_not_block(self, market: Marketplace) -> None:
        market.db.users[market.buyer.id].cancelled_requests = 7

        result = await _use_case(market).execute(
            CreateRequestInput(listing_id=market.listing.id, buyer_id=market.buyer.id)
        )
        assert result.request.status is RequestStatus.SENT
