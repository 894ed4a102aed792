"""Exception hierarchy raised by the client; callers branch on the class."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from capclient.models import ApiError


class CapitalError(Exception):
    """Base class for every error the client raises."""


class TransportError(CapitalError):
    """The HTTP transport failed before a response was received."""

    def __init__(self, cause: Exception) -> None:
        super().__init__(f"transport error: {cause}")
        self.cause = cause


class JsonError(CapitalError):
    """A payload could not be encoded, decoded, or mapped onto its type."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class StatusCodeError(CapitalError):
    """Non-200 response. ``api_error`` is None when the body was not a known error shape."""

    def __init__(self, status_code: int, api_error: Optional["ApiError"], raw_body: str) -> None:
        code = api_error.error_code if api_error else "unparsed"
        super().__init__(f"status={status_code} error={code}")
        self.status_code = status_code
        self.api_error = api_error
        self.raw_body = raw_body


class Unauthorized(StatusCodeError):
    pass


class HeaderError(CapitalError):
    pass


class MalformedHeader(HeaderError):
    def __init__(self, name: str) -> None:
        super().__init__(f"header {name} has a value that cannot be sent back")
        self.name = name


class InvalidParameter(CapitalError, ValueError):
    pass


class TooManyParameters(InvalidParameter):
    def __init__(self, count: int, limit: int) -> None:
        super().__init__(f"{count} parameters given, at most {limit} allowed")
        self.count = count
        self.limit = limit


class MissingAuthorization(CapitalError):
    def __init__(self) -> None:
        super().__init__("no session tokens; open a session first")


class RequestingTooFast(CapitalError):
    def __init__(self, elapsed: timedelta, min_interval: timedelta) -> None:
        super().__init__(
            f"last request {elapsed.total_seconds() * 1000:.1f} ms ago, "
            f"minimum is {min_interval.total_seconds() * 1000:.0f} ms"
        )
        self.elapsed = elapsed
        self.min_interval = min_interval


class CurrentAccountNotFound(CapitalError):
    def __init__(self, account_id: str) -> None:
        super().__init__(f"account {account_id!r} not in accounts list")
        self.account_id = account_id


class NotDifferentAccountId(CapitalError):
    def __init__(self, account_id: str) -> None:
        super().__init__(f"account {account_id!r} is already active")
        self.account_id = account_id


class LockUnavailable(CapitalError):
    """The shared client state could not be locked; the client is unusable."""

    def __init__(self, timeout: Optional[float]) -> None:
        super().__init__(f"could not lock client state within {timeout}s")
        self.timeout = timeout
