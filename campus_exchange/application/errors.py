"""Application error hierarchy.

Subclasses set ``code`` and ``status_code`` at the class level; the API layer
serialises any ``ExchangeError`` to ``{"error": message, "code": code}``.
"""


class ExchangeError(Exception):
    code: str = "EXCHANGE_ERROR"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(ExchangeError):
    code = "NOT_FOUND"
    status_code = 404


class ForbiddenError(ExchangeError):
    code = "FORBIDDEN"
    status_code = 403


class ConflictError(ExchangeError):
    code = "CONFLICT"
    status_code = 409


class OptimisticLockConflict(ConflictError):
    """The caller's expected version does not match the stored version."""

    code = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(self, expected_version: int, current_version: int) -> None:
        self.expected_version = expected_version
        self.current_version = current_version
        super().__init__(
            f"Request was modified by someone else (expected version {expected_version}, "
            f"current version {current_version}). Refresh and try again."
        )


class IdempotencyConflictError(ConflictError):
    code = "IDEMPOTENCY_CONFLICT"


class ValidationError(ExchangeError):
    code = "VALIDATION_ERROR"
    status_code = 422
