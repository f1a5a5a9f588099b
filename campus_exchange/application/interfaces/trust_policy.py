from abc import ABC, abstractmethod

from campus_exchange.domain.entities.trust import TrustAssessment, TrustSnapshot


class TrustPolicy(ABC):
    """Pure trust/restriction scoring consulted before a request is created."""

    @abstractmethod
    def assess(self, snapshot: TrustSnapshot) -> TrustAssessment:
        ...
