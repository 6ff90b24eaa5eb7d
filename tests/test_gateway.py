from typing import Optional

import pytest
from fastapi.testclient import TestClient

# Ensure import path includes src
import sys
from pathlib import Path
sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from gateway.main import app
from gateway.metrics import RequestMetrics
from providers.models import TranslationResult
from providers.base import Provider
from providers.errors import ProviderUnavailable
from router import LedgerExhaustedError, TranslationFailedError, ValidationError


class _FakeOrchestrator:
    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls = []

    async def translate(self, text, target_language, source_language="auto", timeout=None) -> TranslationResult:
        self.calls.append((text, target_language, source_language))
        if self.error is not None:
            raise self.error
        if not text:
            raise ValidationError("Text to translate is required")
        return TranslationResult(
            translated_text="안녕하세요",
            source_language="en",
            target_language=target_language,
            character_count=len(text),
            service="azure",
        )

    async def get_usage_statistics(self):
        return {"azure": {"status": "healthy"}, "google": {"status": "healthy"}, "recommendedService": "azure"}

    async def get_health_status(self):
        return {"services": {"azure": {"status": "healthy"}, "google": {"status": "healthy"}}, "usage": None}

    async def get_supported_languages(self):
        return {"azure": [{"code": "ko", "name": "Korean"}], "google": [], "common": []}


def _with_fake_orchestrator(error: Optional[Exception] = None):
    fake = _FakeOrchestrator(error)
    app.state.orchestrator = fake  # type: ignore[attr-defined]
    app.state.metrics = RequestMetrics()  # type: ignore[attr-defined]
    return TestClient(app), fake


def test_translate_ok_uses_camel_case():
    client, fake = _with_fake_orchestrator()
    res = client.post("/api/translate", json={"text": "hello", "targetLanguage": "ko"})
    assert res.status_code == 200, res.text
    data = res.json()
    assert data["translatedText"] == "안녕하세요"
    assert data["fallbackUsed"] is False
    assert "fallbackReason" not in data
    assert fake.calls == [("hello", "ko", "auto")]


def test_translate_missing_text_is_400():
    client, _ = _with_fake_orchestrator()
    res = client.post("/api/translate", json={"targetLanguage": "ko"})
    assert res.status_code == 400
    assert res.json() == {"error": "Text to translate is required"}


@pytest.mark.parametrize(
    "error,status",
    [
        (LedgerExhaustedError("All translation services are over their usage limits"), 503),
        (
            TranslationFailedError(
                Provider.AZURE,
                ProviderUnavailable("azure", "azure down"),
                Provider.GOOGLE,
                ProviderUnavailable("google", "google down"),
            ),
            502,
        ),
        (RuntimeError("boom"), 500),
    ],
)
def test_translate_errors_map_to_error_objects(error, status):
    client, _ = _with_fake_orchestrator(error)
    res = client.post("/api/translate", json={"text": "hello", "targetLanguage": "ko"})
    assert res.status_code == status
    assert res.json()["error"] == str(error)


def test_usage_languages_and_health():
    client, _ = _with_fake_orchestrator()
    assert client.get("/api/usage").json()["recommendedService"] == "azure"
    assert client.get("/api/languages").json()["azure"][0]["code"] == "ko"
    assert client.get("/api/health").json()["services"]["google"]["status"] == "healthy"
    assert client.get("/health").json() == {"status": "ok"}


def test_non_string_text_is_400_error_object():
    client, fake = _with_fake_orchestrator()
    res = client.post("/api/translate", json={"text": 123, "targetLanguage": "ko"})
    assert res.status_code == 400
    body = res.json()
    assert set(body) == {"error"}
    assert "text" in body["error"]
    assert fake.calls == []


def test_malformed_json_is_400_error_object():
    client, fake = _with_fake_orchestrator()
    res = client.post("/api/translate", content="{bad json", headers={"Content-Type": "application/json"})
    assert res.status_code == 400
    body = res.json()
    assert set(body) == {"error"}
    assert body["error"].startswith("Invalid request body")
    assert fake.calls == []


def test_metrics_count_requests_and_translations():
    client, _ = _with_fake_orchestrator()
    client.post("/api/translate", json={"text": "hello", "targetLanguage": "ko", "sourceLanguage": "en"})
    client.post("/api/translate", json={"text": "hi", "targetLanguage": "ja"})
    client.post("/api/translate", json={"targetLanguage": "ko"})
    client.get("/health")

    metrics = client.get("/api/metrics").json()

    assert metrics["requests"] == {"total": 4, "translate": 3, "health": 1, "errors": 1}
    assert metrics["translations"]["total"] == 2
    assert metrics["translations"]["byLanguage"] == {"en_to_ko": 1, "auto_to_ja": 1}
    assert metrics["translations"]["totalCharacters"] == 7
    assert metrics["translations"]["averageLength"] == 3.5
    assert metrics["performance"]["requestCount"] == 4
    assert metrics["performance"]["averageResponseTime"] >= 0
    assert metrics["uptime"] >= 0
    assert "timestamp" in metrics and "lastReset" in metrics


def test_metrics_are_per_app_state():
    client, _ = _with_fake_orchestrator()
    client.get("/health")
    app.state.metrics = RequestMetrics()  # type: ignore[attr-defined]
    assert client.get("/api/metrics").json()["requests"]["total"] == 0
