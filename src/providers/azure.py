import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from .models import TranslationResult
from .base import Provider, ProviderAdapter
from .errors import (
    ProviderAuthError,
    ProviderParseError,
    ProviderUnavailable,
    error_for_status,
    extract_error_message,
)
from .languages import is_auto, to_azure_code

logger = logging.getLogger(__name__)

SUPPORTED_LANGUAGES: List[Dict[str, str]] = [
    {"code": "ko", "name": "Korean"},
    {"code": "en", "name": "English"},
    {"code": "ja", "name": "Japanese"},
    {"code": "zh-Hans", "name": "Chinese (Simplified)"},
    {"code": "zh-Hant", "name": "Chinese (Traditional)"},
    {"code": "vi", "name": "Vietnamese"},
    {"code": "th", "name": "Thai"},
    {"code": "id", "name": "Indonesian"},
    {"code": "ms", "name": "Malay"},
    {"code": "fil", "name": "Filipino"},
    {"code": "km", "name": "Khmer"},
    {"code": "lo", "name": "Lao"},
    {"code": "my", "name": "Myanmar (Burmese)"},
    {"code": "hi", "name": "Hindi"},
    {"code": "bn", "name": "Bangla"},
    {"code": "ur", "name": "Urdu"},
]

_STATUS_MESSAGES = {
    401: "Azure Translator authentication failed; check AZURE_TRANSLATOR_KEY",
    403: "Azure Translator quota exceeded or access denied; check the resource in the Azure portal",
    429: "Azure Translator request limit exceeded",
}


class AzureTranslatorAdapter(ProviderAdapter):
    """Azure Translator Text API v3 adapter.

    Authentication:
    - AZURE_TRANSLATOR_KEY and AZURE_TRANSLATOR_ENDPOINT are required
    - AZURE_TRANSLATOR_REGION selects the resource region (default koreacentral)
    """

    name = Provider.AZURE
    max_chars = 50_000

    def __init__(
        self,
        api_key: Optional[str] = None,
        endpoint: Optional[str] = None,
        region: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
    ) -> None:
        self._api_key = (api_key or os.getenv("AZURE_TRANSLATOR_KEY", "")).strip()
        self._endpoint = (endpoint or os.getenv("AZURE_TRANSLATOR_ENDPOINT", "")).strip().rstrip("/")
        self._region = region or os.getenv("AZURE_TRANSLATOR_REGION", "koreacentral")
        self._timeout = timeout
        self._client = client  # may be injected for tests
        if not self.configured:
            logger.warning("AZURE_TRANSLATOR_KEY / AZURE_TRANSLATOR_ENDPOINT not set; Azure calls will fail until configured.")

    @property
    def configured(self) -> bool:
        return bool(self._api_key and self._endpoint)

    def _headers(self) -> Dict[str, str]:
        return {
            "Ocp-Apim-Subscription-Key": self._api_key,
            "Ocp-Apim-Subscription-Region": self._region,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._endpoint, timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _extra_health(self) -> Dict[str, str]:
        return {"region": self._region}

    async def translate(
        self, text: str, target_language: str, source_language: Optional[str] = "auto"
    ) -> TranslationResult:
        if not self.configured:
            raise ProviderAuthError(
                self.name.value,
                "Azure Translator is not configured; set AZURE_TRANSLATOR_KEY and AZURE_TRANSLATOR_ENDPOINT",
            )
        self._check_length(text)

        params: Dict[str, str] = {"api-version": "3.0", "to": to_azure_code(target_language)}
        if not is_auto(source_language):
            params["from"] = to_azure_code(source_language)

        logger.info(
            "Azure Translator request: chars=%d to=%s from=%s",
            len(text),
            params["to"],
            params.get("from", "auto-detect"),
        )

        client = self._get_client()
        try:
            resp = await client.post("/translate", params=params, headers=self._headers(), json=[{"Text": text}])
        except httpx.HTTPError as e:
            logger.error("Azure request failed: %s", e)
            raise ProviderUnavailable(self.name.value, f"Azure request failed: {e}") from e

        if resp.status_code != 200:
            detail = extract_error_message(resp.text)
            logger.error("Azure API error (%s): %s", resp.status_code, detail)
            message = _STATUS_MESSAGES.get(resp.status_code, f"Azure Translator error ({resp.status_code}): {detail}")
            raise error_for_status(resp.status_code)(
                self.name.value, message, status_code=resp.status_code, headers=dict(resp.headers)
            )

        try:
            item: Dict[str, Any] = resp.json()[0]
            translated = item["translations"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderParseError(self.name.value, f"Azure response could not be parsed: {e}") from e

        detected = (item.get("detectedLanguage") or {}).get("language")
        result = TranslationResult(
            translated_text=translated,
            source_language=detected or source_language,
            target_language=target_language,
            character_count=len(text),
            service=self.name.value,
        )
        logger.info(
            "Azure Translator success: %s -> %s (%d chars)",
            result.source_language,
            result.target_language,
            result.character_count,
        )
        return result

    async def supported_languages(self) -> List[Dict[str, str]]:
        return [dict(lang) for lang in SUPPORTED_LANGUAGES]
