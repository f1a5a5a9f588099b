"""
Who may apply which request event.

The machine tables encode legality only; this module encodes authorization.
Admins bypass every row.
"""
from enum import Enum

from campus_exchange.domain.entities.exchange_request import RequestParty
from campus_exchange.domain.enums.actor_role import ActorRole
from campus_exchange.domain.enums.request_status import RequestEvent


class EventParty(str, Enum):
    BUYER = "BUYER"
    SELLER = "SELLER"
    EITHER = "EITHER"
    ADMIN = "ADMIN"


REQUEST_EVENT_PARTIES: dict[RequestEvent, EventParty] = {
    RequestEvent.SEND: EventParty.BUYER,
    RequestEvent.WITHDRAW: EventParty.BUYER,
    RequestEvent.DISPUTE: EventParty.BUYER,
    RequestEvent.RETRY: EventParty.BUYER,
    RequestEvent.ACCEPT: EventParty.SELLER,
    RequestEvent.DECLINE: EventParty.SELLER,
    RequestEvent.SCHEDULE: EventParty.EITHER,
    RequestEvent.CONFIRM: EventParty.EITHER,
    RequestEvent.CANCEL: EventParty.EITHER,
    RequestEvent.RESOLVE: EventParty.ADMIN,
    RequestEvent.EXPIRE: EventParty.ADMIN,
}

_unmapped = set(RequestEvent) - set(REQUEST_EVENT_PARTIES)
if _unmapped:
    raise RuntimeError(f"Request events without a permitted party: {sorted(e.value for e in _unmapped)}")


def is_request_event_permitted(
    event: RequestEvent,
    party: RequestParty | None,
    role: ActorRole,
) -> bool:
    """Return True if an actor standing in ``party`` with ``role`` may apply ``event``."""
    if role is ActorRole.ADMIN:
        return True
    if party is None:
        return False

    permitted = REQUEST_EVENT_PARTIES[event]
    if permitted is EventParty.EITHER:
        return True
    if permitted is EventParty.BUYER:
        return party is RequestParty.BUYER
    if permitted is EventParty.SELLER:
        return party is RequestParty.SELLER
    return False
