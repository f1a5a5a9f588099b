from campus_exchange.application.interfaces.trust_policy import TrustPolicy
from campus_exchange.domain.entities.trust import TrustAssessment, TrustSnapshot
from campus_exchange.domain.enums.trust_status import TrustStatus


class AdminFlagTrustPolicy(TrustPolicy):
    """Default policy: any administrator flag restricts the account.

    Accounts with many cancellations are marked for review but not blocked.
    """

    def __init__(self, restrict_at_flags: int = 1, review_at_cancellations: int = 5) -> None:
        self._restrict_at_flags = restrict_at_flags
        self._review_at_cancellations = review_at_cancellations

    def assess(self, snapshot: TrustSnapshot) -> TrustAssessment:
        if snapshot.admin_flags >= self._restrict_at_flags:
            return TrustAssessment(
                status=TrustStatus.RESTRICTED,
                reasons=(f"account flagged by an administrator ({snapshot.admin_flags})",),
            )
        if snapshot.cancelled_requests >= self._review_at_cancellations:
            return TrustAssessment(
                status=TrustStatus.REVIEW_REQUIRED,
                reasons=(f"{snapshot.cancelled_requests} cancelled requests",),
            )
        return TrustAssessment(status=TrustStatus.GOOD_STANDING)
