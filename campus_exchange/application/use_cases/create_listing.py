from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

import structlog

from campus_exchange.application.errors import ValidationError
from campus_exchange.application.interfaces.unit_of_work import UnitOfWorkFactory
from campus_exchange.domain.entities.audit_entry import AuditEntry
from campus_exchange.domain.entities.listing import Listing
from campus_exchange.domain.enums.audit_action import AuditAction

logger = structlog.get_logger(__name__)


@dataclass
class CreateListingInput:
    owner_id: UUID
    title: str
    price: Decimal
    description: str | None = None
    category: str | None = None


class CreateListing:
    """Use case: create a draft listing owned by the acting user."""

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def execute(self, input_data: CreateListingInput) -> Listing:
        title = input_data.title.strip()
        if not title:
            raise ValidationError("Listing title must not be empty.")
        if input_data.price < 0:
            raise ValidationError("Listing price must not be negative.")

        listing = Listing(
            owner_id=input_data.owner_id,
            title=title,
            description=input_data.description,
            category=input_data.category,
            price=input_data.price,
        )

        async with self._uow_factory() as uow:
            await uow.listings.add(listing)
            await uow.audit_log.append(
                AuditEntry(
                    actor_id=input_data.owner_id,
                    action=AuditAction.LISTING_CREATE,
                    entity_type="listing",
                    entity_id=listing.id,
                    metadata={"title": title, "status": listing.status.value},
                )
            )

        logger.info("listing_created", listing_id=str(listing.id), owner_id=str(listing.owner_id))
        return listing
