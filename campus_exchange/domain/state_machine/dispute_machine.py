from campus_exchange.domain.enums.dispute_status import DisputeEvent, DisputeStatus
from campus_exchange.domain.state_machine.transition_table import (
    MachineDefinition,
    MachineInstance,
    MachineSnapshot,
    create_machine,
)

DISPUTE_MACHINE: MachineDefinition[DisputeStatus, DisputeEvent] = MachineDefinition(
    id="Dispute",
    initial=DisputeStatus.OPEN,
    transitions={
        DisputeStatus.OPEN: {DisputeEvent.BEGIN_REVIEW: DisputeStatus.UNDER_REVIEW},
        DisputeStatus.UNDER_REVIEW: {
            DisputeEvent.RESOLVE: DisputeStatus.RESOLVED,
            DisputeEvent.REJECT: DisputeStatus.REJECTED,
            DisputeEvent.ESCALATE: DisputeStatus.ESCALATED,
        },
        # Terminal states, absorbing
        DisputeStatus.RESOLVED: {},
        DisputeStatus.REJECTED: {},
        DisputeStatus.ESCALATED: {},
    },
)


def create_dispute_machine(
    status: DisputeStatus | None = None,
) -> MachineInstance[DisputeStatus, DisputeEvent]:
    if status is None:
        return create_machine(DISPUTE_MACHINE)
    return create_machine(DISPUTE_MACHINE, MachineSnapshot(state=status))
