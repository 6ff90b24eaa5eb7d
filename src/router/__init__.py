from .registry import ProviderRegistry
from .policy import RoutingPolicy
from .core import TranslationOrchestrator
from .errors import LedgerExhaustedError, TranslationFailedError, UnknownProviderError, ValidationError

__all__ = [
    "ProviderRegistry",
    "RoutingPolicy",
    "TranslationOrchestrator",
    "LedgerExhaustedError",
    "TranslationFailedError",
    "UnknownProviderError",
    "ValidationError",
]
