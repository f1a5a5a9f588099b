from campus_exchange.application.interfaces.unit_of_work import UnitOfWork
from campus_exchange.infrastructure.memory.database import InMemoryDatabase, RowLockSet
from campus_exchange.infrastructure.memory.repositories import (
    InMemoryAuditLogRepository,
    InMemoryDisputeRepository,
    InMemoryListingRepository,
    InMemoryRequestRepository,
    InMemoryUserRepository,
)


class InMemoryUnitOfWork(UnitOfWork):
    """Unit of work over an ``InMemoryDatabase``.

    Commit keeps the writes and releases the row locks; rollback replays the
    undo log first.
    """

    def __init__(self, db: InMemoryDatabase) -> None:
        self._db = db
        self._locks = RowLockSet(db)

    async def __aenter__(self) -> "InMemoryUnitOfWork":
        self._locks = RowLockSet(self._db)
        self.requests = InMemoryRequestRepository(self._db, self._locks)
        self.listings = InMemoryListingRepository(self._db, self._locks)
        self.users = InMemoryUserRepository(self._db, self._locks)
        self.disputes = InMemoryDisputeRepository(self._db, self._locks)
        self.audit_log = InMemoryAuditLogRepository(self._db, self._locks)
        return self

    async def commit(self) -> None:
        self._locks.forget_undo()
        self._locks.release_all()

    async def rollback(self) -> None:
        self._locks.undo_all()
        self._locks.release_all()
