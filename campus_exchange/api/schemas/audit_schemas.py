from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from campus_exchange.domain.enums.audit_action import AuditAction


class AuditEntryResponse(BaseModel):
    id: UUID
    actor_id: UUID
    action: AuditAction
    created_at: datetime
    metadata: dict[str, Any]

    model_config = {"from_attributes": True}


class EntityHistoryResponse(BaseModel):
    entity_id: UUID
    history: list[AuditEntryResponse]
