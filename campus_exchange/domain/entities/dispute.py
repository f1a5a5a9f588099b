from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from campus_exchange.domain.enums.dispute_status import DisputeEvent, DisputeStatus, DisputeType
from campus_exchange.domain.state_machine.dispute_machine import create_dispute_machine


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Dispute:
    """A complaint raised by one user against another about a request or listing."""

    id: UUID = field(default_factory=uuid4)
    request_id: UUID | None = None
    listing_id: UUID | None = None
    initiator_id: UUID = field(default_factory=uuid4)
    target_id: UUID = field(default_factory=uuid4)

    type: DisputeType = DisputeType.OTHER
    description: str = ""

    status: DisputeStatus = DisputeStatus.OPEN
    resolution_note: str | None = None

    # Lifecycle timestamps
    filed_at: datetime = field(default_factory=_utcnow)
    review_started_at: datetime | None = None
    resolved_at: datetime | None = None
    rejected_at: datetime | None = None
    escalated_at: datetime | None = None
    updated_at: datetime = field(default_factory=_utcnow)

    def apply(self, event: DisputeEvent, resolution_note: str | None = None) -> None:
        """Apply ``event`` through the dispute machine and stamp the lifecycle timestamp.

        Raises InvalidTransitionError when the event is illegal, leaving the
        dispute untouched.
        """
        new_status = create_dispute_machine(self.status).send(event).state
        now = _utcnow()

        self.status = new_status
        self.updated_at = now
        if resolution_note is not None:
            self.resolution_note = resolution_note

        self._apply_lifecycle_timestamp(new_status, now)

    def _apply_lifecycle_timestamp(self, status: DisputeStatus, now: datetime) -> None:
        mapping: dict[DisputeStatus, str] = {
            DisputeStatus.UNDER_REVIEW: "review_started_at",
            DisputeStatus.RESOLVED: "resolved_at",
            DisputeStatus.REJECTED: "rejected_at",
            DisputeStatus.ESCALATED: "escalated_at",
        }
        attr = mapping.get(status)
        if attr:
            setattr(self, attr, now)
