from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_exchange.application.interfaces.unit_of_work import UnitOfWork
from campus_exchange.infrastructure.database.repositories.audit_log_repository import (
    SqlAlchemyAuditLogRepository,
)
from campus_exchange.infrastructure.database.repositories.dispute_repository import (
    SqlAlchemyDisputeRepository,
)
from campus_exchange.infrastructure.database.repositories.listing_repository import (
    SqlAlchemyListingRepository,
)
from campus_exchange.infrastructure.database.repositories.request_repository import (
    SqlAlchemyRequestRepository,
)
from campus_exchange.infrastructure.database.repositories.user_repository import (
    SqlAlchemyUserRepository,
)


class SqlAlchemyUnitOfWork(UnitOfWork):
    """One AsyncSession, one transaction. Row locks last until commit or rollback."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def __aenter__(self) -> "SqlAlchemyUnitOfWork":
        self._session = self._session_factory()
        self.requests = SqlAlchemyRequestRepository(self._session)
        self.listings = SqlAlchemyListingRepository(self._session)
        self.users = SqlAlchemyUserRepository(self._session)
        self.disputes = SqlAlchemyDisputeRepository(self._session)
        self.audit_log = SqlAlchemyAuditLogRepository(self._session)
        return self

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def close(self) -> None:
        await self._session.close()
