from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_exchange.application.interfaces.idempotency_store import (
    IdempotencyRecord,
    IdempotencyStore,
)
from campus_exchange.infrastructure.database.connection import as_utc
from campus_exchange.infrastructure.database.models import IdempotencyKeyModel


class SqlAlchemyIdempotencyStore(IdempotencyStore):
    """Idempotency records in their own short transactions.

    The unique (user_id, key) constraint decides which of two concurrent
    submissions gets the reservation.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get(self, user_id: UUID, key: str) -> IdempotencyRecord | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(IdempotencyKeyModel).where(
                    IdempotencyKeyModel.user_id == user_id, IdempotencyKeyModel.key == key
                )
            )
            model = result.scalar_one_or_none()
        if model is None:
            return None
        return IdempotencyRecord(
            user_id=model.user_id,
            key=model.key,
            scope=model.scope,
            expires_at=as_utc(model.expires_at),
            response=model.response,
        )

    async def reserve(self, user_id: UUID, key: str, *, scope: str, expires_at: datetime) -> bool:
        try:
            async with self._session_factory() as session, session.begin():
                session.add(
                    IdempotencyKeyModel(
                        user_id=user_id, key=key, scope=scope, expires_at=expires_at
                    )
                )
        except IntegrityError:
            return False
        return True

    async def complete(self, user_id: UUID, key: str, response: dict[str, Any]) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                update(IdempotencyKeyModel)
                .where(IdempotencyKeyModel.user_id == user_id, IdempotencyKeyModel.key == key)
                .values(response=response)
            )

    async def delete(self, user_id: UUID, key: str) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                delete(IdempotencyKeyModel).where(
                    IdempotencyKeyModel.user_id == user_id, IdempotencyKeyModel.key == key
                )
            )
