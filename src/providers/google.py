import html
import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from .models import TranslationResult
from .base import Provider, ProviderAdapter
from .errors import (
    ProviderAuthError,
    ProviderError,
    ProviderParseError,
    ProviderUnavailable,
    error_for_status,
    extract_error_message,
)
from .languages import is_auto, to_google_code

logger = logging.getLogger(__name__)

_TRANSLATE_PATH = "/language/translate/v2"

_STATUS_MESSAGES = {
    401: "Google Translate authentication failed; check GOOGLE_TRANSLATE_API_KEY",
    403: "Google Translate permission error; check the API key or project quota",
    429: "Google Translate request limit exceeded",
}


class GoogleTranslateAdapter(ProviderAdapter):
    """Google Cloud Translation (v2 REST) adapter.

    Authentication:
    - Requires GOOGLE_TRANSLATE_API_KEY environment variable
    """

    name = Provider.GOOGLE
    max_chars = 30_000

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = "https://translation.googleapis.com",
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        model: str = "base",
    ) -> None:
        self._api_key = (api_key or os.getenv("GOOGLE_TRANSLATE_API_KEY", "")).strip()
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._model = model
        self._client = client
        if not self._api_key:
            logger.warning("GOOGLE_TRANSLATE_API_KEY not set; Google calls will fail until configured.")

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        client = self._get_client()
        params = dict(kwargs.pop("params", {}) or {})
        params["key"] = self._api_key
        try:
            resp = await client.request(method, path, params=params, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Google request failed: %s", e)
            raise ProviderUnavailable(self.name.value, f"Google request failed: {e}") from e

        if resp.status_code != 200:
            detail = extract_error_message(resp.text)
            logger.error("Google API error (%s): %s", resp.status_code, detail)
            message = _STATUS_MESSAGES.get(resp.status_code, f"Google Translate error ({resp.status_code}): {detail}")
            raise error_for_status(resp.status_code)(
                self.name.value, message, status_code=resp.status_code, headers=dict(resp.headers)
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderParseError(self.name.value, f"Google response is not JSON: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("data"), dict):
            raise ProviderParseError(self.name.value, "Google response is missing 'data'")
        return data["data"]

    async def translate(
        self, text: str, target_language: str, source_language: Optional[str] = "auto"
    ) -> TranslationResult:
        if not self.configured:
            raise ProviderAuthError(
                self.name.value, "Google Translate is not configured; set GOOGLE_TRANSLATE_API_KEY"
            )
        self._check_length(text)

        payload: Dict[str, Any] = {
            "q": text,
            "target": to_google_code(target_language),
            "format": "text",
            "model": self._model,
        }
        if not is_auto(source_language):
            payload["source"] = to_google_code(source_language)

        logger.info(
            "Google Translate request: chars=%d to=%s from=%s",
            len(text),
            payload["target"],
            payload.get("source", "auto-detect"),
        )

        data = await self._request("POST", _TRANSLATE_PATH, json=payload)
        try:
            item = data["translations"][0]
            translated = html.unescape(item["translatedText"])
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderParseError(self.name.value, f"Google response could not be parsed: {e}") from e

        detected = item.get("detectedSourceLanguage")
        result = TranslationResult(
            translated_text=translated,
            source_language=detected or source_language,
            target_language=target_language,
            character_count=len(text),
            service=self.name.value,
        )
        logger.info(
            "Google Translate success: %s -> %s (%d chars)",
            result.source_language,
            result.target_language,
            result.character_count,
        )
        return result

    async def supported_languages(self) -> List[Dict[str, str]]:
        if not self.configured:
            return []
        try:
            data = await self._request("GET", f"{_TRANSLATE_PATH}/languages", params={"target": "en"})
            results: List[Dict[str, str]] = []
            for it in data.get("languages", []):
                code = it.get("language") or it.get("code")
                if code:
                    results.append({"code": code, "name": it.get("name", code)})
            return results
        except (ProviderError, AttributeError, KeyError, TypeError) as e:
            # On failure, return an empty list to fail-safe
            logger.warning("Failed to fetch Google language list: %s", e)
            return []
