from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from campus_exchange.application.interfaces.listing_repository import ListingRepository
from campus_exchange.domain.entities.listing import Listing
from campus_exchange.domain.enums.listing_status import ListingStatus
from campus_exchange.infrastructure.database.connection import as_utc
from campus_exchange.infrastructure.database.models import ListingModel


def _to_domain(model: ListingModel) -> Listing:
    return Listing(
        id=model.id,
        owner_id=model.owner_id,
        title=model.title,
        description=model.description,
        category=model.category,
        price=Decimal(str(model.price)),
        status=ListingStatus(model.status),
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


def _to_model(listing: Listing) -> ListingModel:
    return ListingModel(
        id=listing.id,
        owner_id=listing.owner_id,
        title=listing.title,
        description=listing.description,
        category=listing.category,
        price=listing.price,
        status=listing.status,
        created_at=listing.created_at,
        updated_at=listing.updated_at,
    )


class SqlAlchemyListingRepository(ListingRepository):
    """SQLAlchemy implementation for listing persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, listing: Listing) -> None:
        self._session.add(_to_model(listing))
        await self._session.flush()

    async def get_by_id(self, listing_id: UUID) -> Listing | None:
        query = (
            select(ListingModel)
            .where(ListingModel.id == listing_id)
            .execution_options(populate_existing=True)
        )
        model = (await self._session.execute(query)).scalar_one_or_none()
        return _to_domain(model) if model is not None else None

    async def get_for_update(self, listing_id: UUID) -> Listing | None:
        query = (
            select(ListingModel)
            .where(ListingModel.id == listing_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        model = (await self._session.execute(query)).scalar_one_or_none()
        return _to_domain(model) if model is not None else None

    async def update_status_if(
        self, listing_id: UUID, *, expected: ListingStatus, new: ListingStatus
    ) -> int:
        # UPDATE ... WHERE status = :expected; a concurrent writer blocks here
        # until the first commits, then sees zero matching rows.
        statement = (
            update(ListingModel)
            .where(ListingModel.id == listing_id, ListingModel.status == expected.value)
            .values(status=new.value, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(statement)
        return result.rowcount

    async def list_all(
        self,
        *,
        status: ListingStatus | None = None,
        owner_id: UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Listing], int]:
        query = select(ListingModel)
        count_query = select(func.count()).select_from(ListingModel)

        if status is not None:
            query = query.where(ListingModel.status == status.value)
            count_query = count_query.where(ListingModel.status == status.value)
        if owner_id is not None:
            query = query.where(ListingModel.owner_id == owner_id)
            count_query = count_query.where(ListingModel.owner_id == owner_id)

        query = query.order_by(ListingModel.created_at.desc()).limit(limit).offset(offset)

        result = await self._session.execute(query)
        models = result.scalars().all()

        count_result = await self._session.execute(count_query)
        total = count_result.scalar_one()

        return [_to_domain(m) for m in models], total
