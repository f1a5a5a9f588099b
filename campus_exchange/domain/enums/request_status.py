from enum import Enum


class RequestStatus(str, Enum):
    """All possible states of an exchange request."""

    IDLE = "idle"
    SENT = "sent"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    MEETING_SCHEDULED = "meeting_scheduled"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"
    WITHDRAWN = "withdrawn"
    DISPUTED = "disputed"
    RESOLVED = "resolved"

    @property
    def is_open(self) -> bool:
        """Open requests hold a claim on their listing."""
        return self in OPEN_REQUEST_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self is RequestStatus.RESOLVED


OPEN_REQUEST_STATUSES: frozenset[RequestStatus] = frozenset(
    {
        RequestStatus.SENT,
        RequestStatus.ACCEPTED,
        RequestStatus.MEETING_SCHEDULED,
        RequestStatus.DISPUTED,
    }
)


class RequestEvent(str, Enum):
    SEND = "SEND"
    ACCEPT = "ACCEPT"
    DECLINE = "DECLINE"
    SCHEDULE = "SCHEDULE"
    CONFIRM = "CONFIRM"
    CANCEL = "CANCEL"
    WITHDRAW = "WITHDRAW"
    EXPIRE = "EXPIRE"
    RETRY = "RETRY"
    DISPUTE = "DISPUTE"
    RESOLVE = "RESOLVE"
