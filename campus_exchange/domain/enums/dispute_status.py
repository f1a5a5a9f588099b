from enum import Enum


class DisputeStatus(str, Enum):
    OPEN = "OPEN"
    UNDER_REVIEW = "UNDER_REVIEW"
    RESOLVED = "RESOLVED"
    REJECTED = "REJECTED"
    ESCALATED = "ESCALATED"

    @property
    def is_terminal(self) -> bool:
        """Terminal disputes are absorbing: no further transition is allowed."""
        return self in (DisputeStatus.RESOLVED, DisputeStatus.REJECTED, DisputeStatus.ESCALATED)

    @property
    def is_active(self) -> bool:
        return not self.is_terminal


class DisputeEvent(str, Enum):
    BEGIN_REVIEW = "BEGIN_REVIEW"
    RESOLVE = "RESOLVE"
    REJECT = "REJECT"
    ESCALATE = "ESCALATE"


class DisputeType(str, Enum):
    FRAUD = "FRAUD"
    ITEM_NOT_AS_DESCRIBED = "ITEM_NOT_AS_DESCRIBED"
    NO_SHOW = "NO_SHOW"
    OTHER = "OTHER"
