from enum import Enum

from campus_exchange.domain.enums.actor_role import ActorRole
from campus_exchange.domain.enums.listing_status import ListingEvent


class ListingEventActor(str, Enum):
    ADMIN = "ADMIN"
    OWNER_OR_ADMIN = "OWNER_OR_ADMIN"
    # Written only as a cascade of a request transition
    REQUEST_CASCADE = "REQUEST_CASCADE"


LISTING_EVENT_ACTORS: dict[ListingEvent, ListingEventActor] = {
    ListingEvent.APPROVE: ListingEventActor.ADMIN,
    ListingEvent.REJECT: ListingEventActor.ADMIN,
    ListingEvent.FLAG: ListingEventActor.ADMIN,
    ListingEvent.RESOLVE_FLAG: ListingEventActor.ADMIN,
    ListingEvent.EXPIRE: ListingEventActor.ADMIN,
    ListingEvent.SUBMIT: ListingEventActor.OWNER_OR_ADMIN,
    ListingEvent.RESUBMIT: ListingEventActor.OWNER_OR_ADMIN,
    ListingEvent.REMOVE: ListingEventActor.OWNER_OR_ADMIN,
    ListingEvent.ARCHIVE: ListingEventActor.OWNER_OR_ADMIN,
    ListingEvent.RELIST: ListingEventActor.OWNER_OR_ADMIN,
    ListingEvent.RECEIVE_INTEREST: ListingEventActor.REQUEST_CASCADE,
    ListingEvent.ACCEPT_REQUEST: ListingEventActor.REQUEST_CASCADE,
    ListingEvent.DECLINE_REQUEST: ListingEventActor.REQUEST_CASCADE,
    ListingEvent.CONFIRM_EXCHANGE: ListingEventActor.REQUEST_CASCADE,
    ListingEvent.CANCEL_TRANSACTION: ListingEventActor.REQUEST_CASCADE,
}

_unmapped = set(ListingEvent) - set(LISTING_EVENT_ACTORS)
if _unmapped:
    raise RuntimeError(f"Listing events without an actor rule: {sorted(e.value for e in _unmapped)}")


def is_listing_event_permitted(event: ListingEvent, *, is_owner: bool, role: ActorRole) -> bool:
    rule = LISTING_EVENT_ACTORS[event]
    if rule is ListingEventActor.REQUEST_CASCADE:
        return False
    if role is ActorRole.ADMIN:
        return True
    return rule is ListingEventActor.OWNER_OR_ADMIN and is_owner
