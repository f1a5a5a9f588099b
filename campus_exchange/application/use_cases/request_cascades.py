"""
Listing and user side effects of request transitions.

Every cascade locks the listing row before it reads anything it decides
on, so transitions of different requests against one listing serialize
there. Locks are always taken in the order request, listing, users.
Listing writes go through the listing machine and a conditional update
from the status that was read; a zero row count aborts the transaction
with ConflictError.
"""
from dataclasses import dataclass
from uuid import UUID

import structlog

from campus_exchange.application.errors import ConflictError, NotFoundError
from campus_exchange.application.interfaces.unit_of_work import UnitOfWork
from campus_exchange.domain.entities.exchange_request import ExchangeRequest
from campus_exchange.domain.entities.listing import Listing
from campus_exchange.domain.enums.listing_status import ListingEvent, ListingStatus
from campus_exchange.domain.enums.request_status import RequestStatus
from campus_exchange.domain.state_machine.listing_machine import create_listing_machine
from campus_exchange.domain.state_machine.transition_table import InvalidTransitionError

logger = structlog.get_logger(__name__)

_RELEASING_STATUSES = frozenset(
    {
        RequestStatus.CANCELLED,
        RequestStatus.WITHDRAWN,
        RequestStatus.DECLINED,
        RequestStatus.EXPIRED,
    }
)


@dataclass(frozen=True)
class ListingChange:
    listing_id: UUID
    from_status: ListingStatus
    to_status: ListingStatus

    def as_metadata(self) -> dict[str, str]:
        return {"from": self.from_status.value, "to": self.to_status.value}


async def lock_listing(uow: UnitOfWork, listing_id: UUID) -> Listing:
    listing = await uow.listings.get_for_update(listing_id)
    if listing is None:
        raise NotFoundError(f"Listing {listing_id} not found.")
    return listing


async def advance_listing(
    uow: UnitOfWork, listing_id: UUID, current: ListingStatus, event: ListingEvent
) -> ListingChange:
    """Apply ``event`` to a listing last read in ``current`` status."""
    try:
        target = create_listing_machine(current).send(event).state
    except InvalidTransitionError as exc:
        logger.warning(
            "listing_cascade_rejected",
            listing_id=str(listing_id),
            machine=exc.machine_id,
            state=current.value,
            listing_event=event.value,
        )
        raise ConflictError(
            f"Listing is {current.value} and cannot take {event.value}."
        ) from exc

    updated = await uow.listings.update_status_if(listing_id, expected=current, new=target)
    if updated == 0:
        raise ConflictError("Listing changed while this action was in progress. Please retry.")

    logger.info(
        "listing_cascaded",
        listing_id=str(listing_id),
        listing_event=event.value,
        from_status=current.value,
        to_status=target.value,
    )
    return ListingChange(listing_id=listing_id, from_status=current, to_status=target)


async def apply_request_cascade(
    uow: UnitOfWork,
    request: ExchangeRequest,
    *,
    previous_status: RequestStatus,
    actor_id: UUID,
) -> ListingChange | None:
    """Apply the side effects keyed on the request's new status.

    Must run before the request row itself is written, so that a concurrent
    cascade holding the listing lock still sees this request as it was.
    Returns the net listing change, or None when the listing was not touched.
    """
    new_status = request.status

    if new_status is RequestStatus.SENT:
        return await _claim_interest(uow, request)

    if new_status is RequestStatus.ACCEPTED:
        listing = await lock_listing(uow, request.listing_id)
        return await advance_listing(uow, listing.id, listing.status, ListingEvent.ACCEPT_REQUEST)

    if new_status is RequestStatus.COMPLETED:
        listing = await lock_listing(uow, request.listing_id)
        change = await advance_listing(
            uow, listing.id, listing.status, ListingEvent.CONFIRM_EXCHANGE
        )
        await uow.users.increment_completed_exchanges([request.buyer_id, request.seller_id])
        return change

    if new_status in _RELEASING_STATUSES:
        change = await _release_listing(uow, request, previous_status=previous_status)
        if new_status is RequestStatus.CANCELLED:
            await uow.users.increment_cancelled_requests(actor_id)
        return change

    return None


async def _claim_interest(uow: UnitOfWork, request: ExchangeRequest) -> ListingChange | None:
    listing = await lock_listing(uow, request.listing_id)
    duplicate = await uow.requests.find_open_for_buyer(
        request.listing_id, request.buyer_id, exclude_id=request.id
    )
    if duplicate is not None:
        raise ConflictError("You already have an active request for this listing.")

    if listing.status is ListingStatus.INTEREST_RECEIVED:
        return None
    return await advance_listing(uow, listing.id, listing.status, ListingEvent.RECEIVE_INTEREST)


async def _release_listing(
    uow: UnitOfWork, request: ExchangeRequest, *, previous_status: RequestStatus
) -> ListingChange | None:
    listing = await lock_listing(uow, request.listing_id)
    others = await uow.requests.count_open_for_listing(request.listing_id, exclude_id=request.id)

    if listing.status is ListingStatus.INTEREST_RECEIVED:
        if others:
            return None
        return await advance_listing(
            uow, listing.id, listing.status, ListingEvent.DECLINE_REQUEST
        )

    if listing.status is ListingStatus.IN_TRANSACTION:
        holding = previous_status in (RequestStatus.ACCEPTED, RequestStatus.MEETING_SCHEDULED)
        if others and not holding:
            return None
        change = await advance_listing(
            uow, listing.id, listing.status, ListingEvent.CANCEL_TRANSACTION
        )
        if not others:
            return change
        # Pending interest from other buyers survives the cancelled transaction
        reopened = await advance_listing(
            uow, listing.id, change.to_status, ListingEvent.RECEIVE_INTEREST
        )
        return ListingChange(
            listing_id=listing.id,
            from_status=change.from_status,
            to_status=reopened.to_status,
        )

    return None
