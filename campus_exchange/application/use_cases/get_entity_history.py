from dataclasses import dataclass
from uuid import UUID

from campus_exchange.application.errors import ForbiddenError, NotFoundError
from campus_exchange.application.interfaces.unit_of_work import UnitOfWorkFactory
from campus_exchange.domain.entities.audit_entry import AuditEntry
from campus_exchange.domain.enums.actor_role import ActorRole


@dataclass
class GetEntityHistoryInput:
    entity_type: str
    entity_id: UUID
    actor_id: UUID
    actor_role: ActorRole


@dataclass
class GetEntityHistoryOutput:
    entity_id: UUID
    history: list[AuditEntry]


class GetEntityHistory:
    """Use case: retrieve the audit trail of a listing or request.

    Listing trails are public; request trails are visible to the two parties
    and to admins.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, input_data: GetEntityHistoryInput) -> GetEntityHistoryOutput:
        async with self._uow_factory() as uow:
            if input_data.entity_type == "listing":
                if await uow.listings.get_by_id(input_data.entity_id) is None:
                    raise NotFoundError(f"Listing {input_data.entity_id} not found.")
            elif input_data.entity_type == "request":
                request = await uow.requests.get_by_id(input_data.entity_id)
                if request is None:
                    raise NotFoundError(f"Request {input_data.entity_id} not found.")
                if (
                    input_data.actor_role is not ActorRole.ADMIN
                    and request.party_of(input_data.actor_id) is None
                ):
                    raise ForbiddenError("You are not a party to this request.")
            else:
                raise NotFoundError(f"Unknown entity type {input_data.entity_type!r}.")

            history = await uow.audit_log.list_for_entity(
                input_data.entity_type, input_data.entity_id
            )

        return GetEntityHistoryOutput(entity_id=input_data.entity_id, history=history)
