from typing import Dict, Optional

from providers.base import Provider, UnknownProviderError

__all__ = [
    "ValidationError",
    "LedgerExhaustedError",
    "TranslationFailedError",
    "UnknownProviderError",
]


class ValidationError(ValueError):
    """The caller sent an unusable request; never retried, nothing recorded."""


class LedgerExhaustedError(Exception):
    """Both providers are over their configured character quota."""

    def __init__(self, message: str, percentages: Optional[Dict[Provider, Dict[str, int]]] = None) -> None:
        super().__init__(message)
        self.percentages = percentages or {}


class TranslationFailedError(Exception):
    """The chosen provider and its fallback both failed."""

    def __init__(self, primary: Provider, primary_error: Exception, fallback: Provider, fallback_error: Exception) -> None:
        self.primary = primary
        self.primary_error = primary_error
        self.fallback = fallback
        self.fallback_error = fallback_error
        super().__init__(
            "Translation service unavailable.\n"
            f"{primary.label}: {primary_error}\n"
            f"{fallback.label}: {fallback_error}"
        )
