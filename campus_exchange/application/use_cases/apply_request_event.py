from dataclasses import dataclass
from typing import Any
from uuid import UUID

import structlog

from campus_exchange.application.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    OptimisticLockConflict,
)
from campus_exchange.application.interfaces.unit_of_work import UnitOfWork, UnitOfWorkFactory
from campus_exchange.application.use_cases.request_cascades import (
    ListingChange,
    apply_request_cascade,
)
from campus_exchange.domain.entities.audit_entry import AuditEntry
from campus_exchange.domain.entities.exchange_request import ExchangeRequest
from campus_exchange.domain.enums.actor_role import ActorRole
from campus_exchange.domain.enums.audit_action import AuditAction
from campus_exchange.domain.enums.request_status import RequestEvent, RequestStatus
from campus_exchange.domain.policies.request_authorization import is_request_event_permitted
from campus_exchange.domain.state_machine.request_machine import create_request_machine
from campus_exchange.domain.state_machine.transition_table import InvalidTransitionError

logger = structlog.get_logger(__name__)


@dataclass
class ApplyRequestEventInput:
    request_id: UUID
    event: RequestEvent
    actor_id: UUID
    actor_role: ActorRole
    expected_version: int | None = None
    idempotency_key: str | None = None


@dataclass
class ApplyRequestEventOutput:
    request: ExchangeRequest
    from_status: RequestStatus
    to_status: RequestStatus
    listing_change: ListingChange | None = None


class ApplyRequestEvent:
    """
    Use case: apply one event to an exchange request.

    Runs as a single unit of work: lock the request row, check the expected
    version, authorize the actor, ask the request machine, cascade to the
    listing and user counters, persist the new status with an incremented
    version, and append the audit record. Any failure rolls everything back.

    Authorization happens before the machine is consulted, so a forbidden
    attempt is rejected with ForbiddenError and never reaches the FSM.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, input_data: ApplyRequestEventInput) -> ApplyRequestEventOutput:
        async with self._uow_factory() as uow:
            return await self.apply_in(uow, input_data)

    async def apply_in(
        self, uow: UnitOfWork, input_data: ApplyRequestEventInput
    ) -> ApplyRequestEventOutput:
        """Apply the event inside an already-open unit of work."""
        request = await uow.requests.get_for_update(input_data.request_id)
        if request is None:
            raise NotFoundError(f"Request {input_data.request_id} not found.")

        log = logger.bind(
            request_id=str(request.id),
            request_event=input_data.event.value,
            actor_id=str(input_data.actor_id),
            actor_role=input_data.actor_role.value,
        )

        if (
            input_data.expected_version is not None
            and input_data.expected_version != request.version
        ):
            log.info(
                "request_version_conflict",
                expected_version=input_data.expected_version,
                current_version=request.version,
            )
            raise OptimisticLockConflict(input_data.expected_version, request.version)

        self._authorize(request, input_data)

        from_status = request.status
        try:
            to_status = create_request_machine(from_status).send(input_data.event).state
        except InvalidTransitionError as exc:
            log.warning(
                "request_transition_rejected",
                machine=exc.machine_id,
                state=exc.state.value,
                error=str(exc),
            )
            raise ConflictError(
                f"Cannot apply {input_data.event.value} to a request that is {from_status.value}."
            ) from exc

        request.apply_status(to_status)
        listing_change = await apply_request_cascade(
            uow, request, previous_status=from_status, actor_id=input_data.actor_id
        )
        await uow.requests.save(request)

        metadata: dict[str, Any] = {
            "event": input_data.event.value,
            "from": from_status.value,
            "to": to_status.value,
            "actor_role": input_data.actor_role.value,
            "version": request.version,
        }
        if listing_change is not None:
            metadata["listing"] = listing_change.as_metadata()
        if input_data.idempotency_key:
            metadata["idempotency_key"] = input_data.idempotency_key

        await uow.audit_log.append(
            AuditEntry(
                actor_id=input_data.actor_id,
                action=AuditAction.REQUEST_EVENT,
                entity_type="request",
                entity_id=request.id,
                metadata=metadata,
            )
        )

        log.info(
            "request_event_applied",
            from_status=from_status.value,
            to_status=to_status.value,
            version=request.version,
        )

        return ApplyRequestEventOutput(
            request=request,
            from_status=from_status,
            to_status=to_status,
            listing_change=listing_change,
        )

    def _authorize(self, request: ExchangeRequest, input_data: ApplyRequestEventInput) -> None:
        party = request.party_of(input_data.actor_id)
        if party is None and input_data.actor_role is not ActorRole.ADMIN:
            logger.info(
                "request_event_forbidden",
                request_id=str(request.id),
                actor_id=str(input_data.actor_id),
                reason="not_a_party",
            )
            raise ForbiddenError("You are not a party to this request.")

        if not is_request_event_permitted(input_data.event, party, input_data.actor_role):
            logger.info(
                "request_event_forbidden",
                request_id=str(request.id),
                actor_id=str(input_data.actor_id),
                request_event=input_data.event.value,
                party=party.value if party else None,
            )
            raise ForbiddenError(
                f"{input_data.event.value} is not permitted for the "
                f"{party.value.lower() if party else 'actor'} of this request."
            )
