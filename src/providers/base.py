from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Union

from providers.models import HealthReport, TranslationResult
from providers.errors import ErrorKind, ProviderError, ProviderPayloadTooLarge

logger = logging.getLogger(__name__)


class UnknownProviderError(Exception):
    """Raised for provider names or wiring that do not match a known backend."""


class Provider(str, Enum):
    AZURE = "azure"
    GOOGLE = "google"

    @classmethod
    def parse(cls, value: Union[str, "Provider"]) -> "Provider":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            known = ", ".join(p.value for p in cls)
            raise UnknownProviderError(f"Unknown translation service {value!r} (expected one of: {known})") from None

    @property
    def other(self) -> "Provider":
        return Provider.GOOGLE if self is Provider.AZURE else Provider.AZURE

    @property
    def label(self) -> str:
        return self.value.upper()


class ProviderAdapter(ABC):
    """Abstract base class for translation provider adapters.

    Implementations wrap exactly one external backend, keep no per-request
    state, and raise only ``ProviderError`` subclasses from ``translate``.
    """

    name: Provider
    max_chars: int = 50_000

    @property
    @abstractmethod
    def configured(self) -> bool:
        """True when credentials needed to call the backend are present."""

    @abstractmethod
    async def translate(
        self, text: str, target_language: str, source_language: Optional[str] = "auto"
    ) -> TranslationResult:
        """Translate ``text``; auto-detect the source when it is ``"auto"`` or None."""

    @abstractmethod
    async def supported_languages(self) -> List[Dict[str, str]]:
        """Return ``[{"code": ..., "name": ...}]`` in the backend's own codes."""

    async def aclose(self) -> None:
        return None

    def _extra_health(self) -> Dict[str, str]:
        return {}

    async def check_health(self) -> HealthReport:
        """Run one live translation and report the outcome.

        This spends real provider quota and must stay off the request path.
        """
        configured = self.configured
        report: Dict[str, object] = {
            "service": self.name.value,
            "available": configured,
            "configured": configured,
            **self._extra_health(),
        }
        if not configured:
            report["status"] = "not_configured"
            return HealthReport(**report)

        try:
            await self.translate("test", "en")
            report["status"] = "healthy"
            report["last_check"] = datetime.now(timezone.utc).isoformat()
        except ProviderError as e:
            logger.warning("%s health check failed: %s", self.name.label, e)
            report["status"] = "unhealthy"
            report["available"] = False
            report["error"] = e.message
            if e.kind in (ErrorKind.QUOTA_EXCEEDED, ErrorKind.RATE_LIMITED):
                report["quota_exceeded"] = True
        return HealthReport(**report)

    def _check_length(self, text: str) -> None:
        if len(text) > self.max_chars:
            raise ProviderPayloadTooLarge(
                self.name.value,
                f"{self.name.label} text is too long ({len(text)} characters, maximum {self.max_chars})",
            )
