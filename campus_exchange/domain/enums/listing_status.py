from enum import Enum


class ListingStatus(str, Enum):
    """All possible states of a marketplace listing."""

    DRAFT = "draft"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    INTEREST_RECEIVED = "interest_received"
    IN_TRANSACTION = "in_transaction"
    COMPLETED = "completed"
    EXPIRED = "expired"
    FLAGGED = "flagged"
    ARCHIVED = "archived"
    REMOVED = "removed"

    @property
    def is_terminal(self) -> bool:
        """Archived listings cannot be transitioned out of."""
        return self is ListingStatus.ARCHIVED


class ListingEvent(str, Enum):
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    RESUBMIT = "RESUBMIT"
    RECEIVE_INTEREST = "RECEIVE_INTEREST"
    ACCEPT_REQUEST = "ACCEPT_REQUEST"
    DECLINE_REQUEST = "DECLINE_REQUEST"
    CONFIRM_EXCHANGE = "CONFIRM_EXCHANGE"
    CANCEL_TRANSACTION = "CANCEL_TRANSACTION"
    EXPIRE = "EXPIRE"
    FLAG = "FLAG"
    RESOLVE_FLAG = "RESOLVE_FLAG"
    REMOVE = "REMOVE"
    ARCHIVE = "ARCHIVE"
    RELIST = "RELIST"
