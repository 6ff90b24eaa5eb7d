import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from providers.models import TranslationResult
from providers.base import Provider
from providers.errors import ProviderError, ProviderUnavailable
from providers.languages import common_languages
from state.ledger import UsageLedger
from .errors import LedgerExhaustedError, TranslationFailedError, ValidationError
from .policy import RoutingPolicy, next_monthly_reset
from .registry import ProviderRegistry

logger = logging.getLogger(__name__)


class TranslationOrchestrator:
    """Routes each translation to one provider and fails over to the other once.

    Usage is recorded in characters of the source text, against whichever
    provider actually produced the translation. With usage tracking disabled
    the primary is always tried first and nothing is recorded.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        ledger: UsageLedger,
        policy: Optional[RoutingPolicy] = None,
        usage_tracking: bool = True,
        timeout: Optional[float] = None,
    ) -> None:
        self._registry = registry
        self._ledger = ledger
        self._policy = policy or RoutingPolicy()
        self._usage_tracking = usage_tracking
        self._timeout = timeout

        # Fail at startup, not on the first request
        for service in (self._policy.primary, self._policy.fallback):
            self._registry.get_provider(service)

    @property
    def usage_tracking(self) -> bool:
        return self._usage_tracking

    async def translate(
        self,
        text: Optional[str],
        target_language: Optional[str],
        source_language: Optional[str] = "auto",
        timeout: Optional[float] = None,
    ) -> TranslationResult:
        if not text or not text.strip():
            raise ValidationError("Text to translate is required")
        if not target_language or not target_language.strip():
            raise ValidationError("Target language is required")
        source_language = source_language or "auto"

        service = self._select_service()
        logger.info("Translation service selected: %s", service.label)

        try:
            result = await self._call(service, text, target_language, source_language, timeout)
        except ProviderError as primary_error:
            logger.error("%s translation failed: %s", service.label, primary_error)
            return await self._translate_with_fallback(
                service, primary_error, text, target_language, source_language, timeout
            )

        await self._record(service, len(text))
        return result.model_copy(update={"fallback_used": False, "fallback_reason": None})

    async def _translate_with_fallback(
        self,
        failed: Provider,
        primary_error: ProviderError,
        text: str,
        target_language: str,
        source_language: str,
        timeout: Optional[float],
    ) -> TranslationResult:
        fallback = failed.other
        if self._usage_tracking and not self._ledger.is_available(fallback):
            limit_error = LedgerExhaustedError(f"{fallback.label} usage limit reached")
            logger.error("Fallback %s skipped: usage limit reached", fallback.label)
            raise TranslationFailedError(failed, primary_error, fallback, limit_error) from primary_error

        logger.info("Switching to fallback service: %s", fallback.label)
        try:
            result = await self._call(fallback, text, target_language, source_language, timeout)
        except ProviderError as fallback_error:
            logger.error("%s translation also failed: %s", fallback.label, fallback_error)
            raise TranslationFailedError(failed, primary_error, fallback, fallback_error) from fallback_error

        await self._record(fallback, len(text))
        return result.model_copy(update={"fallback_used": True, "fallback_reason": primary_error.message})

    def _select_service(self) -> Provider:
        if not self._usage_tracking:
            return self._policy.primary

        now = self._ledger.now()
        snapshots = self._ledger.snapshots()
        try:
            recommended = self._policy.recommend(snapshots, now=now)
        except LedgerExhaustedError as e:
            logger.error("Translation services exhausted: %s", e)
            raise

        # Usage may have moved between recommendation and use
        if self._ledger.is_available(recommended):
            return recommended
        logger.error("%s usage limit reached", recommended.label)
        other = recommended.other
        if self._ledger.is_available(other):
            logger.info("Switching to %s", other.label)
            return other
        reset = next_monthly_reset(now.date())
        raise LedgerExhaustedError(
            "All translation services are over their usage limits.\n"
            f"{recommended.label} and {other.label} have both reached their limits; "
            f"monthly limits reset on {reset.isoformat()}."
        )

    async def _call(
        self,
        service: Provider,
        text: str,
        target_language: str,
        source_language: str,
        timeout: Optional[float],
    ) -> TranslationResult:
        adapter = self._registry.get_provider(service)
        deadline = timeout if timeout is not None else self._timeout
        if deadline is None:
            return await adapter.translate(text, target_language, source_language)
        try:
            return await asyncio.wait_for(adapter.translate(text, target_language, source_language), deadline)
        except asyncio.TimeoutError as e:
            raise ProviderUnavailable(service.value, f"{service.label} did not respond within {deadline:g}s") from e

    async def _record(self, service: Provider, character_count: int) -> None:
        if self._usage_tracking:
            await self._ledger.record(service, character_count)

    def _recommended_or_none(self) -> Optional[str]:
        try:
            return self._policy.recommend(self._ledger.snapshots(), now=self._ledger.now()).value
        except LedgerExhaustedError:
            return None

    async def get_usage_statistics(self) -> Dict[str, Any]:
        if not self._usage_tracking:
            return {"message": "Usage tracking is disabled."}
        stats = self._ledger.statistics()
        stats["recommendedService"] = self._recommended_or_none()
        return stats

    async def get_health_status(self) -> Dict[str, Any]:
        services = (Provider.AZURE, Provider.GOOGLE)
        reports = await asyncio.gather(*(self._registry.get_provider(s).check_health() for s in services))
        return {
            "services": {
                s.value: r.model_dump(mode="json", by_alias=True, exclude_none=True) for s, r in zip(services, reports)
            },
            "usage": await self.get_usage_statistics() if self._usage_tracking else None,
            "configuration": {
                "primaryService": self._policy.primary.value,
                "fallbackService": self._policy.fallback.value,
                "usageTracking": self._usage_tracking,
            },
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def get_supported_languages(self) -> Dict[str, Any]:
        azure, google = await asyncio.gather(
            self._registry.get_provider(Provider.AZURE).supported_languages(),
            self._registry.get_provider(Provider.GOOGLE).supported_languages(),
        )
        return {"azure": azure, "google": google, "common": common_languages(azure, google)}
