"""
Application errors for clean API error handling.

Services raise these; the API layer maps them to HTTP using status_code.
Messages are public (safe to return to callers).
"""


class QueryServiceError(Exception):
    """Base for all service errors. Carries the HTTP-style status the API should return."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidInputError(QueryServiceError):
    """Raised for empty or oversized queries, before any store or network access."""

    status_code = 400


class UnauthenticatedError(QueryServiceError):
    """Raised when the caller identity is missing."""

    status_code = 401


class QuotaExceededError(QueryServiceError):
    """Generation provider reported the account quota is exhausted."""

    status_code = 402


class RateLimitedError(QueryServiceError):
    """Generation provider is rate limiting us. Not retried locally."""

    status_code = 429


class GenerationUnavailableError(QueryServiceError):
    """Generation provider unreachable, timed out, misconfigured or returned an error."""

    status_code = 500


class StoreError(QueryServiceError):
    """Underlying persistence failure."""

    status_code = 500
