"""Error types raised by the catch access layer."""

_RETRYABLE_CODES = {"PGRST301", "PGRST302"}
_TOO_MANY_REQUESTS = 429
_SERVER_ERROR_MIN = 500
_SERVER_ERROR_MAX = 600


class CatchFeedError(Exception):
    """Base class for catch access errors."""


class QueryError(CatchFeedError):
    """The record store rejected a query."""

    def __init__(
        self, message: str, code: str | None = None, status: int | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status

    @property
    def retryable(self) -> bool:
        """Whether the store signalled a rate limit or transient failure."""
        if self.code in _RETRYABLE_CODES:
            return True
        if self.status == _TOO_MANY_REQUESTS:
            return True
        return self.status is not None and (
            _SERVER_ERROR_MIN <= self.status < _SERVER_ERROR_MAX
        )


class NetworkError(CatchFeedError):
    """Transport failure while talking to the record store."""

    retryable = True


class ValidationError(CatchFeedError):
    """Malformed or empty caller input."""
