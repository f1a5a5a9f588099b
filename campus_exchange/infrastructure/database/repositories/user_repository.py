from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from campus_exchange.application.interfaces.user_repository import UserRepository
from campus_exchange.domain.entities.user_account import UserAccount
from campus_exchange.domain.enums.actor_role import ActorRole
from campus_exchange.infrastructure.database.connection import as_utc
from campus_exchange.infrastructure.database.models import UserModel


def _to_domain(model: UserModel) -> UserAccount:
    return UserAccount(
        id=model.id,
        display_name=model.display_name,
        role=ActorRole(model.role),
        completed_exchanges=model.completed_exchanges,
        cancelled_requests=model.cancelled_requests,
        admin_flags=model.admin_flags,
        created_at=as_utc(model.created_at),
    )


class SqlAlchemyUserRepository(UserRepository):
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(self, user: UserAccount) -> None:
        self._session.add(
            UserModel(
                id=user.id,
                display_name=user.display_name,
                role=user.role,
                completed_exchanges=user.completed_exchanges,
                cancelled_requests=user.cancelled_requests,
                admin_flags=user.admin_flags,
                created_at=user.created_at,
            )
        )
        await self._session.flush()

    async def get_by_id(self, user_id: UUID) -> UserAccount | None:
        query = (
            select(UserModel)
            .where(UserModel.id == user_id)
            .execution_options(populate_existing=True)
        )
        model = (await self._session.execute(query)).scalar_one_or_none()
        return _to_domain(model) if model is not None else None

    async def increment_completed_exchanges(self, user_ids: Iterable[UUID]) -> None:
        ids = sorted(set(user_ids))
        if not ids:
            return
        await self._session.execute(
            update(UserModel)
            .where(UserModel.id.in_(ids))
            .values(completed_exchanges=UserModel.completed_exchanges + 1)
            .execution_options(synchronize_session=False)
        )

    async def increment_cancelled_requests(self, user_id: UUID) -> None:
        await self._session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(cancelled_requests=UserModel.cancelled_requests + 1)
            .execution_options(synchronize_session=False)
        )
