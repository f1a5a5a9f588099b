from dataclasses import dataclass, replace
from uuid import UUID

import structlog

from campus_exchange.application.errors import ConflictError, ForbiddenError, NotFoundError
from campus_exchange.application.interfaces.unit_of_work import UnitOfWorkFactory
from campus_exchange.domain.entities.audit_entry import AuditEntry
from campus_exchange.domain.entities.listing import Listing
from campus_exchange.domain.enums.actor_role import ActorRole
from campus_exchange.domain.enums.audit_action import AuditAction
from campus_exchange.domain.enums.listing_status import ListingEvent, ListingStatus
from campus_exchange.domain.policies.listing_authorization import is_listing_event_permitted
from campus_exchange.domain.state_machine.listing_machine import create_listing_machine
from campus_exchange.domain.state_machine.transition_table import InvalidTransitionError

logger = structlog.get_logger(__name__)


@dataclass
class TransitionListingStateInput:
    listing_id: UUID
    event: ListingEvent
    actor_id: UUID
    actor_role: ActorRole
    reason: str | None = None


@dataclass
class TransitionListingStateOutput:
    listing: Listing
    from_status: ListingStatus
    to_status: ListingStatus


class TransitionListingState:
    """
    Use case: apply a moderation or owner event to a listing.

    Locks the listing row, validates the actor, then the transition via the
    listing machine, and writes the new status with a conditional update
    from the status it read under the lock.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(
        self, input_data: TransitionListingStateInput
    ) -> TransitionListingStateOutput:
        async with self._uow_factory() as uow:
            listing = await uow.listings.get_for_update(input_data.listing_id)
            if listing is None:
                raise NotFoundError(f"Listing {input_data.listing_id} not found.")

            if not is_listing_event_permitted(
                input_data.event,
                is_owner=listing.is_owned_by(input_data.actor_id),
                role=input_data.actor_role,
            ):
                raise ForbiddenError(f"You may not apply {input_data.event.value} to this listing.")

            from_status = listing.status
            try:
                to_status = create_listing_machine(from_status).send(input_data.event).state
            except InvalidTransitionError as exc:
                logger.warning(
                    "listing_transition_rejected",
                    listing_id=str(listing.id),
                    machine=exc.machine_id,
                    state=from_status.value,
                    listing_event=input_data.event.value,
                )
                raise ConflictError(
                    f"Cannot apply {input_data.event.value} to a listing that is {from_status.value}."
                ) from exc

            updated = await uow.listings.update_status_if(
                listing.id, expected=from_status, new=to_status
            )
            if updated == 0:
                raise ConflictError("Listing changed while this action was in progress. Please retry.")

            metadata: dict[str, str] = {
                "event": input_data.event.value,
                "from": from_status.value,
                "to": to_status.value,
                "actor_role": input_data.actor_role.value,
            }
            if input_data.reason:
                metadata["reason"] = input_data.reason

            await uow.audit_log.append(
                AuditEntry(
                    actor_id=input_data.actor_id,
                    action=AuditAction.LISTING_STATUS_UPDATE,
                    entity_type="listing",
                    entity_id=listing.id,
                    metadata=metadata,
                )
            )

        logger.info(
            "listing_state_transitioned",
            listing_id=str(listing.id),
            from_status=from_status.value,
            to_status=to_status.value,
            actor_id=str(input_data.actor_id),
        )

        return TransitionListingStateOutput(
            listing=replace(listing, status=to_status),
            from_status=from_status,
            to_status=to_status,
        )
