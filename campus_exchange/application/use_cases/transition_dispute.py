from dataclasses import dataclass
from uuid import UUID

import structlog

from campus_exchange.application.errors import ConflictError, ForbiddenError, NotFoundError
from campus_exchange.application.interfaces.unit_of_work import UnitOfWorkFactory
from campus_exchange.application.use_cases.apply_request_event import (
    ApplyRequestEvent,
    ApplyRequestEventInput,
)
from campus_exchange.domain.entities.audit_entry import AuditEntry
from campus_exchange.domain.entities.dispute import Dispute
from campus_exchange.domain.enums.actor_role import ActorRole
from campus_exchange.domain.enums.audit_action import AuditAction
from campus_exchange.domain.enums.dispute_status import DisputeEvent, DisputeStatus
from campus_exchange.domain.enums.request_status import RequestEvent, RequestStatus
from campus_exchange.domain.state_machine.transition_table import InvalidTransitionError

logger = structlog.get_logger(__name__)


@dataclass
class TransitionDisputeInput:
    dispute_id: UUID
    event: DisputeEvent
    actor_id: UUID
    actor_role: ActorRole
    resolution_note: str | None = None


class TransitionDispute:
    """Use case: move a dispute through review. Admin only.

    Resolving a dispute also resolves its request when that request is
    still ``disputed``.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, apply_request_event: ApplyRequestEvent) -> None:
        self._uow_factory = uow_factory
        self._apply_request_event = apply_request_event

    async def execute(self, input_data: TransitionDisputeInput) -> Dispute:
        if input_data.actor_role is not ActorRole.ADMIN:
            raise ForbiddenError("Only administrators can update disputes.")

        async with self._uow_factory() as uow:
            dispute = await uow.disputes.get_for_update(input_data.dispute_id)
            if dispute is None:
                raise NotFoundError(f"Dispute {input_data.dispute_id} not found.")

            from_status = dispute.status
            try:
                dispute.apply(input_data.event, resolution_note=input_data.resolution_note)
            except InvalidTransitionError as exc:
                logger.warning(
                    "dispute_transition_rejected",
                    dispute_id=str(dispute.id),
                    machine=exc.machine_id,
                    state=from_status.value,
                    dispute_event=input_data.event.value,
                )
                raise ConflictError(
                    f"Cannot apply {input_data.event.value} to a dispute that is {from_status.value}."
                ) from exc

            await uow.disputes.save(dispute)

            if dispute.status is DisputeStatus.RESOLVED and dispute.request_id is not None:
                request = await uow.requests.get_by_id(dispute.request_id)
                if request is not None and request.status is RequestStatus.DISPUTED:
                    await self._apply_request_event.apply_in(
                        uow,
                        ApplyRequestEventInput(
                            request_id=request.id,
                            event=RequestEvent.RESOLVE,
                            actor_id=input_data.actor_id,
                            actor_role=ActorRole.ADMIN,
                        ),
                    )

            await uow.audit_log.append(
                AuditEntry(
                    actor_id=input_data.actor_id,
                    action=AuditAction.DISPUTE_STATUS_UPDATE,
                    entity_type="dispute",
                    entity_id=dispute.id,
                    metadata={
                        "event": input_data.event.value,
                        "from": from_status.value,
                        "to": dispute.status.value,
                        "resolution_note": dispute.resolution_note,
                    },
                )
            )

        logger.info(
            "dispute_transitioned",
            dispute_id=str(dispute.id),
            from_status=from_status.value,
            to_status=dispute.status.value,
        )
        return dispute
