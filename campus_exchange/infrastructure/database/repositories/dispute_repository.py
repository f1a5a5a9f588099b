from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_exchange.application.interfaces.dispute_repository import DisputeRepository
from campus_exchange.domain.entities.dispute import Dispute
from campus_exchange.domain.enums.dispute_status import DisputeStatus, DisputeType
from campus_exchange.infrastructure.database.connection import as_utc
from campus_exchange.infrastructure.database.models import DisputeModel

_ACTIVE = [DisputeStatus.OPEN.value, DisputeStatus.UNDER_REVIEW.value]


def _opt_utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


def _to_domain(model: DisputeModel) -> Dispute:
    return Dispute(
        id=model.id,
        request_id=model.request_id,
        listing_id=model.listing_id,
        initiator_id=model.initiator_id,
        target_id=model.target_id,
        type=DisputeType(model.type),
        description=model.description,
        status=DisputeStatus(model.status),
        resolution_note=model.resolution_note,
        filed_at=as_utc(model.filed_at),
        review_started_at=_opt_utc(model.review_started_at),
        resolved_at=_opt_utc(model.resolved_at),
        rejected_at=_opt_utc(model.rejected_at),
        escalated_at=_opt_utc(model.escalated_at),
        updated_at=as_utc(model.updated_at),
    )


def _to_model(dispute: Dispute) -> DisputeModel:
    return DisputeModel(
        id=dispute.id,
        request_id=dispute.request_id,
        listing_id=dispute.listing_id,
        initiator_id=dispute.initiator_id,
        target_id=dispute.target_id,
        type=dispute.type,
        description=dispute.description,
        status=dispute.status,
        resolution_note=dispute.resolution_note,
        filed_at=dispute.filed_at,
        review_started_at=dispute.review_started_at,
        resolved_at=dispute.resolved_at,
        rejected_at=dispute.rejected_at,
        escalated_at=dispute.escalated_at,
        updated_at=dispute.updated_at,
    )


class SqlAlchemyDisputeRepository(DisputeRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, dispute: Dispute) -> None:
        self._session.add(_to_model(dispute))
        await self._session.flush()

    async def get_by_id(self, dispute_id: UUID) -> Dispute | None:
        query = (
            select(DisputeModel)
            .where(DisputeModel.id == dispute_id)
            .execution_options(populate_existing=True)
        )
        model = (await self._session.execute(query)).scalar_one_or_none()
        return _to_domain(model) if model is not None else None

    async def get_for_update(self, dispute_id: UUID) -> Dispute | None:
        query = (
            select(DisputeModel)
            .where(DisputeModel.id == dispute_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        model = (await self._session.execute(query)).scalar_one_or_none()
        return _to_domain(model) if model is not None else None

    async def save(self, dispute: Dispute) -> None:
        model = await self._session.get(DisputeModel, dispute.id)
        if model is None:
            self._session.add(_to_model(dispute))
        else:
            model.status = dispute.status
            model.resolution_note = dispute.resolution_note
            model.review_started_at = dispute.review_started_at
            model.resolved_at = dispute.resolved_at
            model.rejected_at = dispute.rejected_at
            model.escalated_at = dispute.escalated_at
            model.updated_at = dispute.updated_at
        await self._session.flush()

    async def find_active(
        self,
        *,
        initiator_id: UUID,
        target_id: UUID,
        request_id: UUID | None,
        listing_id: UUID | None,
    ) -> Dispute | None:
        query = select(DisputeModel).where(
            DisputeModel.initiator_id == initiator_id,
            DisputeModel.target_id == target_id,
            DisputeModel.status.in_(_ACTIVE),
        )
        query = query.where(
            DisputeModel.request_id == request_id
            if request_id is not None
            else DisputeModel.request_id.is_(None)
        )
        query = query.where(
            DisputeModel.listing_id == listing_id
            if listing_id is not None
            else DisputeModel.listing_id.is_(None)
        )
        model = (await self._session.execute(query.limit(1))).scalar_one_or_none()
        return _to_domain(model) if model is not None else None

    async def count_against(self, user_id: UUID, *, active_only: bool = False) -> int:
        query = select(func.count()).select_from(DisputeModel).where(DisputeModel.target_id == user_id)
        if active_only:
            query = query.where(DisputeModel.status.in_(_ACTIVE))
        return (await self._session.execute(query)).scalar_one()

    async def list_for_actor(
        self,
        actor_id: UUID | None,
        *,
        status: DisputeStatus | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Dispute], int]:
        query = select(DisputeModel)
        count_query = select(func.count()).select_from(DisputeModel)

        if actor_id is not None:
            involved = or_(DisputeModel.initiator_id == actor_id, DisputeModel.target_id == actor_id)
            query = query.where(involved)
            count_query = count_query.where(involved)
        if status is not None:
            query = query.where(DisputeModel.status == status.value)
            count_query = count_query.where(DisputeModel.status == status.value)

        query = query.order_by(DisputeModel.filed_at.desc()).limit(limit).offset(offset)

        result = await self._session.execute(query)
        models = result.scalars().all()

        count_result = await self._session.execute(count_query)
        total = count_result.scalar_one()

        return [_to_domain(m) for m in models], total
