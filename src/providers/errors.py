import json
from enum import Enum
from typing import Dict, Optional, Type


class ErrorKind(str, Enum):
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    UNAVAILABLE = "unavailable"
    PARSE = "parse"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    REJECTED = "rejected"


class ProviderError(Exception):
    """Base class for classified provider failures.

    Every failure raised by an adapter carries the provider name and a typed
    ``kind`` so callers never have to inspect the message text.
    """

    kind: ErrorKind = ErrorKind.REJECTED

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.message = message
        self.status_code = status_code
        self.headers = headers or {}
        self.retry_after = self.headers.get("retry-after") or self.headers.get("Retry-After")

    @property
    def transient(self) -> bool:
        return self.kind in (ErrorKind.RATE_LIMITED, ErrorKind.UNAVAILABLE)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(provider={self.provider!r}, kind={self.kind.value}, "
            f"status_code={self.status_code}, retry_after={self.retry_after})"
        )


class ProviderAuthError(ProviderError):
    kind = ErrorKind.AUTH


class ProviderRateLimited(ProviderError):
    kind = ErrorKind.RATE_LIMITED


class ProviderQuotaExceeded(ProviderError):
    kind = ErrorKind.QUOTA_EXCEEDED


class ProviderUnavailable(ProviderError):
    kind = ErrorKind.UNAVAILABLE


class ProviderParseError(ProviderError):
    kind = ErrorKind.PARSE


class ProviderPayloadTooLarge(ProviderError):
    kind = ErrorKind.PAYLOAD_TOO_LARGE


class ProviderRejected(ProviderError):
    kind = ErrorKind.REJECTED


def error_for_status(status_code: int) -> Type[ProviderError]:
    """Map a non-2xx HTTP status to the error class a provider should raise."""
    if status_code == 401:
        return ProviderAuthError
    if status_code == 403:
        return ProviderQuotaExceeded
    if status_code == 429:
        return ProviderRateLimited
    if status_code >= 500:
        return ProviderUnavailable
    return ProviderRejected


def extract_error_message(body: str) -> str:
    # Both backends wrap errors as {"error": {"message": ...}}
    try:
        data = json.loads(body)
    except ValueError:
        return body
    if isinstance(data, dict):
        err = data.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
        if isinstance(err, str):
            return err
        if data.get("message"):
            return str(data["message"])
    return body
