from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from campus_exchange.domain.enums.actor_role import ActorRole


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UserAccount:
    """Trust-relevant view of a marketplace user.

    The counters are written only as side effects of request transitions.
    """

    id: UUID = field(default_factory=uuid4)
    display_name: str = ""
    role: ActorRole = ActorRole.STUDENT

    completed_exchanges: int = 0
    cancelled_requests: int = 0
    admin_flags: int = 0

    created_at: datetime = field(default_factory=_utcnow)

    def account_age_days(self, now: datetime | None = None) -> int:
        now = now or _utcnow()
        return max((now - self.created_at).days, 0)
