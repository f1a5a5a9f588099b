from abc import ABC, abstractmethod
from uuid import UUID

from campus_exchange.domain.entities.audit_entry import AuditEntry


class AuditLogRepository(ABC):
    """Append-only audit sink."""

    @abstractmethod
    async def append(self, entry: AuditEntry) -> None:
        ...

    @abstractmethod
    async def list_for_entity(self, entity_type: str, entity_id: UUID) -> list[AuditEntry]:
        """Return entries for an entity, oldest first."""
        ...
