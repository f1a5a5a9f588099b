from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_exchange.application.interfaces.request_repository import RequestRepository
from campus_exchange.domain.entities.exchange_request import ExchangeRequest
from campus_exchange.domain.enums.request_status import OPEN_REQUEST_STATUSES, RequestStatus
from campus_exchange.infrastructure.database.connection import as_utc
from campus_exchange.infrastructure.database.models import RequestModel

_OPEN = [status.value for status in OPEN_REQUEST_STATUSES]


def _to_domain(model: RequestModel) -> ExchangeRequest:
    return ExchangeRequest(
        id=model.id,
        listing_id=model.listing_id,
        buyer_id=model.buyer_id,
        seller_id=model.seller_id,
        status=RequestStatus(model.status),
        version=model.version,
        message=model.message,
        created_at=as_utc(model.created_at),
        updated_at=as_utc(model.updated_at),
    )


def _to_model(request: ExchangeRequest) -> RequestModel:
    return RequestModel(
        id=request.id,
        listing_id=request.listing_id,
        buyer_id=request.buyer_id,
        seller_id=request.seller_id,
        status=request.status,
        version=request.version,
        message=request.message,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


class SqlAlchemyRequestRepository(RequestRepository):
    """SQLAlchemy implementation for exchange request persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, request_id: UUID) -> ExchangeRequest | None:
        query = (
            select(RequestModel)
            .where(RequestModel.id == request_id)
            .execution_options(populate_existing=True)
        )
        model = (await self._session.execute(query)).scalar_one_or_none()
        return _to_domain(model) if model is not None else None

    async def get_for_update(self, request_id: UUID) -> ExchangeRequest | None:
        # SELECT ... FOR UPDATE: held until the surrounding transaction ends
        query = (
            select(RequestModel)
            .where(RequestModel.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        model = (await self._session.execute(query)).scalar_one_or_none()
        return _to_domain(model) if model is not None else None

    async def add(self, request: ExchangeRequest) -> None:
        self._session.add(_to_model(request))
        await self._session.flush()

    async def save(self, request: ExchangeRequest) -> None:
        model = await self._session.get(RequestModel, request.id)
        if model is None:
            self._session.add(_to_model(request))
        else:
            model.status = request.status
            model.version = request.version
            model.updated_at = request.updated_at
        await self._session.flush()

    async def find_open_for_buyer(
        self,
        listing_id: UUID,
        buyer_id: UUID,
        *,
        exclude_id: UUID | None = None,
    ) -> ExchangeRequest | None:
        query = select(RequestModel).where(
            RequestModel.listing_id == listing_id,
            RequestModel.buyer_id == buyer_id,
            RequestModel.status.in_(_OPEN),
        )
        if exclude_id is not None:
            query = query.where(RequestModel.id != exclude_id)
        model = (await self._session.execute(query.limit(1))).scalar_one_or_none()
        return _to_domain(model) if model is not None else None

    async def count_open_for_listing(
        self, listing_id: UUID, *, exclude_id: UUID | None = None
    ) -> int:
        query = (
            select(func.count())
            .select_from(RequestModel)
            .where(RequestModel.listing_id == listing_id, RequestModel.status.in_(_OPEN))
        )
        if exclude_id is not None:
            query = query.where(RequestModel.id != exclude_id)
        return (await self._session.execute(query)).scalar_one()

    async def list_for_actor(
        self,
        actor_id: UUID | None,
        *,
        status: RequestStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ExchangeRequest], int]:
        query = select(RequestModel)
        count_query = select(func.count()).select_from(RequestModel)

        if actor_id is not None:
            party = or_(RequestModel.buyer_id == actor_id, RequestModel.seller_id == actor_id)
            query = query.where(party)
            count_query = count_query.where(party)
        if status is not None:
            query = query.where(RequestModel.status == status.value)
            count_query = count_query.where(RequestModel.status == status.value)

        query = query.order_by(RequestModel.created_at.desc()).limit(limit).offset(offset)

        result = await self._session.execute(query)
        models = result.scalars().all()

        count_result = await self._session.execute(count_query)
        total = count_result.scalar_one()

        return [_to_domain(m) for m in models], total
