from campus_exchange.domain.enums.listing_status import ListingEvent, ListingStatus
from campus_exchange.domain.state_machine.transition_table import (
    MachineDefinition,
    MachineInstance,
    MachineSnapshot,
    create_machine,
)

_S = ListingStatus
_E = ListingEvent

LISTING_MACHINE: MachineDefinition[ListingStatus, ListingEvent] = MachineDefinition(
    id="Listing",
    initial=_S.DRAFT,
    transitions={
        _S.DRAFT: {_E.SUBMIT: _S.PENDING_REVIEW},
        _S.PENDING_REVIEW: {_E.APPROVE: _S.APPROVED, _E.REJECT: _S.REJECTED},
        _S.APPROVED: {
            _E.RECEIVE_INTEREST: _S.INTEREST_RECEIVED,
            _E.EXPIRE: _S.EXPIRED,
            _E.FLAG: _S.FLAGGED,
            _E.REMOVE: _S.REMOVED,
        },
        _S.REJECTED: {_E.RESUBMIT: _S.PENDING_REVIEW},
        _S.INTEREST_RECEIVED: {
            _E.ACCEPT_REQUEST: _S.IN_TRANSACTION,
            _E.DECLINE_REQUEST: _S.APPROVED,
            _E.EXPIRE: _S.EXPIRED,
            _E.FLAG: _S.FLAGGED,
        },
        _S.IN_TRANSACTION: {
            _E.CONFIRM_EXCHANGE: _S.COMPLETED,
            _E.CANCEL_TRANSACTION: _S.APPROVED,
            _E.FLAG: _S.FLAGGED,
        },
        _S.COMPLETED: {_E.ARCHIVE: _S.ARCHIVED},
        _S.EXPIRED: {_E.RELIST: _S.DRAFT, _E.ARCHIVE: _S.ARCHIVED},
        _S.FLAGGED: {_E.RESOLVE_FLAG: _S.APPROVED, _E.REMOVE: _S.REMOVED},
        _S.REMOVED: {_E.ARCHIVE: _S.ARCHIVED},
        # Terminal
        _S.ARCHIVED: {},
    },
)


def create_listing_machine(
    status: ListingStatus | None = None,
) -> MachineInstance[ListingStatus, ListingEvent]:
    """Rehydrate a listing machine at ``status`` (or at ``draft`` when omitted)."""
    if status is None:
        return create_machine(LISTING_MACHINE)
    return create_machine(LISTING_MACHINE, MachineSnapshot(state=status))
