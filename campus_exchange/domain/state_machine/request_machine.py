from campus_exchange.domain.enums.request_status import RequestEvent, RequestStatus
from campus_exchange.domain.state_machine.transition_table import (
    MachineDefinition,
    MachineInstance,
    MachineSnapshot,
    create_machine,
)

_S = RequestStatus
_E = RequestEvent

REQUEST_MACHINE: MachineDefinition[RequestStatus, RequestEvent] = MachineDefinition(
    id="Request",
    initial=_S.IDLE,
    transitions={
        _S.IDLE: {_E.SEND: _S.SENT},
        _S.SENT: {
            _E.ACCEPT: _S.ACCEPTED,
            _E.DECLINE: _S.DECLINED,
            _E.EXPIRE: _S.EXPIRED,
            _E.WITHDRAW: _S.WITHDRAWN,
        },
        _S.ACCEPTED: {
            _E.SCHEDULE: _S.MEETING_SCHEDULED,
            _E.CANCEL: _S.CANCELLED,
            _E.DISPUTE: _S.DISPUTED,
        },
        _S.MEETING_SCHEDULED: {
            _E.CONFIRM: _S.COMPLETED,
            _E.CANCEL: _S.CANCELLED,
            _E.DISPUTE: _S.DISPUTED,
        },
        _S.COMPLETED: {_E.DISPUTE: _S.DISPUTED},
        # Recoverable: the buyer may start over from idle
        _S.DECLINED: {_E.RETRY: _S.IDLE},
        _S.EXPIRED: {_E.RETRY: _S.IDLE},
        _S.CANCELLED: {_E.RETRY: _S.IDLE},
        _S.WITHDRAWN: {_E.RETRY: _S.IDLE},
        _S.DISPUTED: {_E.RESOLVE: _S.RESOLVED},
        # Terminal
        _S.RESOLVED: {},
    },
)


def create_request_machine(
    status: RequestStatus | None = None,
) -> MachineInstance[RequestStatus, RequestEvent]:
    if status is None:
        return create_machine(REQUEST_MACHINE)
    return create_machine(REQUEST_MACHINE, MachineSnapshot(state=status))
