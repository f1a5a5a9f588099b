from dataclasses import dataclass

from campus_exchange.domain.enums.trust_status import TrustStatus


@dataclass(frozen=True)
class TrustSnapshot:
    """Inputs consumed by trust and restriction policies."""

    completed_exchanges: int
    cancelled_requests: int
    dispute_count: int
    admin_flags: int
    account_age_days: int


@dataclass(frozen=True)
class TrustAssessment:
    status: TrustStatus
    reasons: tuple[str, ...] = ()

    @property
    def is_restricted(self) -> bool:
        return self.status is TrustStatus.RESTRICTED
