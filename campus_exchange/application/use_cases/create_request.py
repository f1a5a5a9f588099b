from dataclasses import dataclass
from uuid import UUID

import structlog

from campus_exchange.application.errors import ConflictError, ForbiddenError, NotFoundError
from campus_exchange.application.interfaces.trust_policy import TrustPolicy
from campus_exchange.application.interfaces.unit_of_work import UnitOfWorkFactory
from campus_exchange.application.use_cases.request_cascades import (
    ListingChange,
    advance_listing,
    lock_listing,
)
from campus_exchange.domain.entities.audit_entry import AuditEntry
from campus_exchange.domain.entities.exchange_request import ExchangeRequest
from campus_exchange.domain.entities.trust import TrustAssessment, TrustSnapshot
from campus_exchange.domain.enums.audit_action import AuditAction
from campus_exchange.domain.enums.listing_status import ListingEvent, ListingStatus
from campus_exchange.domain.enums.request_status import RequestStatus

logger = structlog.get_logger(__name__)


@dataclass
class CreateRequestInput:
    listing_id: UUID
    buyer_id: UUID
    message: str | None = None
    idempotency_key: str | None = None


@dataclass
class CreateRequestOutput:
    request: ExchangeRequest
    listing_change: ListingChange | None = None


class CreateRequest:
    """
    Use case: a buyer expresses interest in a listing.

    The trust check runs in its own read-only unit of work before the
    creation transaction. The listing is read once without a lock and then
    locked; a buyer who saw it approved but finds it taken under the lock
    lost the race and fails with ConflictError. Every later decision is made
    on the locked row, so a concurrent release of the same listing can never
    leave it approved while this request is open.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, trust_policy: TrustPolicy) -> None:
        self._uow_factory = uow_factory
        self._trust_policy = trust_policy

    async def execute(self, input_data: CreateRequestInput) -> CreateRequestOutput:
        assessment = await self._assess_buyer(input_data.buyer_id)
        if assessment.is_restricted:
            logger.info(
                "request_create_restricted",
                buyer_id=str(input_data.buyer_id),
                reasons=list(assessment.reasons),
            )
            raise ForbiddenError(f"Action restricted: {'; '.join(assessment.reasons)}")

        async with self._uow_factory() as uow:
            observed = await uow.listings.get_by_id(input_data.listing_id)
            if observed is None:
                raise NotFoundError(f"Listing {input_data.listing_id} not found.")
            if observed.is_owned_by(input_data.buyer_id):
                raise ConflictError("You cannot request your own listing.")

            listing = await lock_listing(uow, observed.id)
            if (
                observed.status is ListingStatus.APPROVED
                and listing.status is not ListingStatus.APPROVED
            ):
                logger.info(
                    "request_create_lost_race",
                    listing_id=str(listing.id),
                    buyer_id=str(input_data.buyer_id),
                )
                raise ConflictError("Listing was just taken by another request. Please try again.")

            listing_change: ListingChange | None = None
            if listing.status is ListingStatus.APPROVED:
                listing_change = await advance_listing(
                    uow, listing.id, listing.status, ListingEvent.RECEIVE_INTEREST
                )
            elif listing.status is not ListingStatus.INTEREST_RECEIVED:
                raise ConflictError(
                    f"Listing is not available for requests (status: {listing.status.value})."
                )

            existing = await uow.requests.find_open_for_buyer(listing.id, input_data.buyer_id)
            if existing is not None:
                raise ConflictError("You already have an active request for this listing.")

            request = ExchangeRequest(
                listing_id=listing.id,
                buyer_id=input_data.buyer_id,
                seller_id=listing.owner_id,
                status=RequestStatus.SENT,
                message=input_data.message,
            )
            await uow.requests.add(request)

            metadata: dict[str, object] = {"listing_id": str(listing.id), "title": listing.title}
            if listing_change is not None:
                metadata["listing"] = listing_change.as_metadata()
            if input_data.idempotency_key:
                metadata["idempotency_key"] = input_data.idempotency_key

            await uow.audit_log.append(
                AuditEntry(
                    actor_id=input_data.buyer_id,
                    action=AuditAction.REQUEST_CREATE,
                    entity_type="request",
                    entity_id=request.id,
                    metadata=metadata,
                )
            )

        logger.info(
            "request_created",
            request_id=str(request.id),
            listing_id=str(listing.id),
            buyer_id=str(input_data.buyer_id),
        )
        return CreateRequestOutput(request=request, listing_change=listing_change)

    async def _assess_buyer(self, buyer_id: UUID) -> TrustAssessment:
        async with self._uow_factory() as uow:
            buyer = await uow.users.get_by_id(buyer_id)
            if buyer is None:
                raise NotFoundError(f"User {buyer_id} not found.")
            dispute_count = await uow.disputes.count_against(buyer_id)

        snapshot = TrustSnapshot(
            completed_exchanges=buyer.completed_exchanges,
            cancelled_requests=buyer.cancelled_requests,
            dispute_count=dispute_count,
            admin_flags=buyer.admin_flags,
            account_age_days=buyer.account_age_days(),
        )
        return self._trust_policy.assess(snapshot)
