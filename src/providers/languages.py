from typing import Dict, Iterable, List, Optional

# Azure-style codes whose Google equivalent differs
AZURE_TO_GOOGLE: Dict[str, str] = {
    "zh-Hans": "zh-CN",
    "zh-Hant": "zh-TW",
    "fil": "tl",
}

GOOGLE_TO_AZURE: Dict[str, str] = {v: k for k, v in AZURE_TO_GOOGLE.items()}

AUTO = "auto"


def to_google_code(code: str) -> str:
    return AZURE_TO_GOOGLE.get(code, code)


def to_azure_code(code: str) -> str:
    return GOOGLE_TO_AZURE.get(code, code)


def is_auto(code: Optional[str]) -> bool:
    return not code or code == AUTO


def common_languages(
    azure_languages: Iterable[Dict[str, str]],
    google_languages: Iterable[Dict[str, str]],
) -> List[Dict[str, str]]:
    """Return the Azure entries whose code, once mapped, Google also supports."""
    google_codes = {lang["code"] for lang in google_languages}
    return [lang for lang in azure_languages if to_google_code(lang["code"]) in google_codes]
