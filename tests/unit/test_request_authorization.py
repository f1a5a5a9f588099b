"""Unit tests for the request role matrix."""
import pytest

from campus_exchange.domain.entities.exchange_request import RequestParty
from campus_exchange.domain.enums.actor_role import ActorRole
from campus_exchange.domain.enums.request_status import RequestEvent
from campus_exchange.domain.policies.request_authorization import (
    REQUEST_EVENT_PARTIES,
    is_request_event_permitted,
)

BUYER_ONLY = {RequestEvent.SEND, RequestEvent.WITHDRAW, RequestEvent.DISPUTE, RequestEvent.RETRY}
SELLER_ONLY = {RequestEvent.ACCEPT, RequestEvent.DECLINE}
EITHER = {RequestEvent.SCHEDULE, RequestEvent.CONFIRM, RequestEvent.CANCEL}
ADMIN_ONLY = {RequestEvent.RESOLVE, RequestEvent.EXPIRE}


def test_every_event_has_a_rule() -> None:
    assert set(REQUEST_EVENT_PARTIES) == set(RequestEvent)


@pytest.mark.parametrize("event", list(RequestEvent))
def test_buyer(event: RequestEvent) -> None:
    expected = event in BUYER_ONLY | EITHER
    assert is_request_event_permitted(event, RequestParty.BUYER, ActorRole.STUDENT) is expected


@pytest.mark.parametrize("event", list(RequestEvent))
def test_seller(event: RequestEvent) -> None:
    expected = event in SELLER_ONLY | EITHER
    assert is_request_event_permitted(event, RequestParty.SELLER, ActorRole.STUDENT) is expected


@pytest.mark.parametrize("event", list(RequestEvent))
def test_admin_bypasses_every_row(event: RequestEvent) -> None:
    assert is_request_event_permitted(event, None, ActorRole.ADMIN) is True
    assert is_request_event_permitted(event, RequestParty.BUYER, ActorRole.ADMIN) is True


@pytest.mark.parametrize("event", list(RequestEvent))
def test_non_party_student_is_never_permitted(event: RequestEvent) -> None:
    assert is_request_event_permitted(event, None, ActorRole.STUDENT) is False


def test_admin_only_events_reject_both_parties() -> None:
    for event in ADMIN_ONLY:
        for party in RequestParty:
            assert not is_request_event_permitted(event, party, ActorRole.STUDENT)
