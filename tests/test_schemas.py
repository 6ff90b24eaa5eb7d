import os
import subprocess
import sys

# Ensure 'src' is on the import path for tests
sys.path.append(os.path.join(os.path.dirname(__file__), "..", "src"))

from gateway.schemas import TranslateRequest
from providers.models import HealthReport, TranslationResult


def test_translate_request_accepts_camel_case_and_defaults_source():
    req = TranslateRequest.model_validate({"text": "hello", "targetLanguage": "ko"})
    assert req.target_language == "ko"
    assert req.source_language == "auto"


def test_translate_request_fields_optional_for_later_validation():
    req = TranslateRequest.model_validate({})
    assert req.text is None
    assert req.target_language is None


def test_translation_result_dumps_camel_case():
    result = TranslationResult(
        translated_text="hola",
        source_language="en",
        target_language="es",
        character_count=5,
        service="google",
        fallback_used=True,
        fallback_reason="AZURE down",
    )
    data = result.model_dump(by_alias=True)
    assert data["translatedText"] == "hola"
    assert data["characterCount"] == 5
    assert data["fallbackUsed"] is True
    assert data["fallbackReason"] == "AZURE down"


def test_health_report_omits_unset_fields():
    report = HealthReport(service="azure", available=False, configured=False, status="not_configured")
    data = report.model_dump(by_alias=True, exclude_none=True)
    assert data == {"service": "azure", "available": False, "configured": False, "status": "not_configured"}


def test_core_packages_do_not_import_the_gateway():
    src = os.path.join(os.path.dirname(__file__), "..", "src")
    code = (
        "import sys\n"
        "import providers.base, providers.azure, providers.google, state.ledger, router\n"
        "loaded = sorted(m for m in sys.modules if m.split('.')[0] == 'gateway')\n"
        "assert not loaded, loaded\n"
    )
    subprocess.run([sys.executable, "-c", code], cwd=src, check=True)


def test_shared_models_live_outside_the_gateway():
    assert TranslationResult.__module__ == "providers.models"
    assert HealthReport.__module__ == "providers.models"
