from dataclasses import dataclass
from uuid import UUID

import structlog

from campus_exchange.application.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from campus_exchange.application.interfaces.unit_of_work import UnitOfWorkFactory
from campus_exchange.application.use_cases.apply_request_event import (
    ApplyRequestEvent,
    ApplyRequestEventInput,
)
from campus_exchange.domain.entities.audit_entry import AuditEntry
from campus_exchange.domain.entities.dispute import Dispute
from campus_exchange.domain.enums.actor_role import ActorRole
from campus_exchange.domain.enums.audit_action import AuditAction
from campus_exchange.domain.enums.dispute_status import DisputeType
from campus_exchange.domain.enums.request_status import RequestEvent, RequestStatus

logger = structlog.get_logger(__name__)


@dataclass
class FileDisputeInput:
    initiator_id: UUID
    initiator_role: ActorRole
    target_id: UUID
    type: DisputeType
    description: str
    request_id: UUID | None = None
    listing_id: UUID | None = None
    idempotency_key: str | None = None


class FileDispute:
    """
    Use case: open a dispute against another user.

    A dispute tied to a request moves that request to ``disputed`` through
    the request transition path in the same unit of work, so the usual role
    rules and cascades apply.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, apply_request_event: ApplyRequestEvent) -> None:
        self._uow_factory = uow_factory
        self._apply_request_event = apply_request_event

    async def execute(self, input_data: FileDisputeInput) -> Dispute:
        if input_data.request_id is None and input_data.listing_id is None:
            raise ValidationError("A dispute must reference a request or a listing.")
        if not input_data.description.strip():
            raise ValidationError("A dispute needs a description.")
        if input_data.target_id == input_data.initiator_id:
            raise ConflictError("You cannot file a dispute against yourself.")

        async with self._uow_factory() as uow:
            if await uow.users.get_by_id(input_data.target_id) is None:
                raise NotFoundError(f"User {input_data.target_id} not found.")

            listing_id = input_data.listing_id
            request = None
            if input_data.request_id is not None:
                request = await uow.requests.get_by_id(input_data.request_id)
                if request is None:
                    raise NotFoundError(f"Request {input_data.request_id} not found.")
                if (
                    input_data.initiator_role is not ActorRole.ADMIN
                    and request.party_of(input_data.initiator_id) is None
                ):
                    raise ForbiddenError("You are not a party to this request.")
                if input_data.target_id not in (request.buyer_id, request.seller_id):
                    raise ValidationError(
                        "A request dispute must target the other party to the request."
                    )
                listing_id = listing_id or request.listing_id
            elif listing_id is not None and await uow.listings.get_by_id(listing_id) is None:
                raise NotFoundError(f"Listing {listing_id} not found.")

            active = await uow.disputes.find_active(
                initiator_id=input_data.initiator_id,
                target_id=input_data.target_id,
                request_id=input_data.request_id,
                listing_id=listing_id,
            )
            if active is not None:
                raise ConflictError("An active dispute for this exchange already exists.")

            if request is not None and request.status is not RequestStatus.DISPUTED:
                await self._apply_request_event.apply_in(
                    uow,
                    ApplyRequestEventInput(
                        request_id=request.id,
                        event=RequestEvent.DISPUTE,
                        actor_id=input_data.initiator_id,
                        actor_role=input_data.initiator_role,
                        idempotency_key=input_data.idempotency_key,
                    ),
                )

            dispute = Dispute(
                request_id=input_data.request_id,
                listing_id=listing_id,
                initiator_id=input_data.initiator_id,
                target_id=input_data.target_id,
                type=input_data.type,
                description=input_data.description.strip(),
            )
            await uow.disputes.add(dispute)
            await uow.audit_log.append(
                AuditEntry(
                    actor_id=input_data.initiator_id,
                    action=AuditAction.DISPUTE_CREATE,
                    entity_type="dispute",
                    entity_id=dispute.id,
                    metadata={
                        "type": dispute.type.value,
                        "target_id": str(dispute.target_id),
                        "request_id": str(dispute.request_id) if dispute.request_id else None,
                        "listing_id": str(dispute.listing_id) if dispute.listing_id else None,
                    },
                )
            )

        logger.info(
            "dispute_filed",
            dispute_id=str(dispute.id),
            initiator_id=str(dispute.initiator_id),
            target_id=str(dispute.target_id),
            type=dispute.type.value,
        )
        return dispute
