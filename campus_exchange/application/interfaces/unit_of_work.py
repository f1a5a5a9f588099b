from abc import ABC, abstractmethod
from collections.abc import Callable
from types import TracebackType

from campus_exchange.application.interfaces.audit_log_repository import AuditLogRepository
from campus_exchange.application.interfaces.dispute_repository import DisputeRepository
from campus_exchange.application.interfaces.listing_repository import ListingRepository
from campus_exchange.application.interfaces.request_repository import RequestRepository
from campus_exchange.application.interfaces.user_repository import UserRepository


class UnitOfWork(ABC):
    """
    One atomic transaction over the marketplace store.

    Used as an async context manager: leaving the block normally commits,
    leaving it with an exception rolls back every write made through the
    repositories and releases any row locks.
    """

    requests: RequestRepository
    listings: ListingRepository
    users: UserRepository
    disputes: DisputeRepository
    audit_log: AuditLogRepository

    @abstractmethod
    async def __aenter__(self) -> "UnitOfWork":
        ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if exc_type is None:
                await self.commit()
            else:
                await self.rollback()
        finally:
            await self.close()

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...

    async def close(self) -> None:
        return None


UnitOfWorkFactory = Callable[[], UnitOfWork]
