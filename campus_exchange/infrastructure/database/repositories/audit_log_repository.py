from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_exchange.application.interfaces.audit_log_repository import AuditLogRepository
from campus_exchange.domain.entities.audit_entry import AuditEntry
from campus_exchange.domain.enums.audit_action import AuditAction
from campus_exchange.infrastructure.database.connection import as_utc
from campus_exchange.infrastructure.database.models import AuditLogModel


class SqlAlchemyAuditLogRepository(AuditLogRepository):
    """Append-only audit log, written in the same transaction as the change it records."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, entry: AuditEntry) -> None:
        self._session.add(
            AuditLogModel(
                id=entry.id,
                actor_id=entry.actor_id,
                action=entry.action,
                entity_type=entry.entity_type,
                entity_id=entry.entity_id,
                metadata_=entry.metadata,
                created_at=entry.created_at,
            )
        )
        await self._session.flush()

    async def list_for_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEntry]:
        result = await self._session.execute(
            select(AuditLogModel)
            .where(AuditLogModel.entity_type == entity_type, AuditLogModel.entity_id == entity_id)
            .order_by(AuditLogModel.created_at.asc())
        )
        return [
            AuditEntry(
                id=model.id,
                actor_id=model.actor_id,
                action=AuditAction(model.action),
                entity_type=model.entity_type,
                entity_id=model.entity_id,
                metadata=dict(model.metadata_),
                created_at=as_utc(model.created_at),
            )
            for model in result.scalars().all()
        ]
