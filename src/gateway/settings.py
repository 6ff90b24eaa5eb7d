import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from providers.base import Provider
from state.limits import default_limits, load_limits
from state.models import Limits


def _default_ledger_path() -> str:
    return os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "data", "usage.json")


def _optional_float(name: str) -> Optional[float]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    value = float(raw)
    return value if value > 0 else None


@dataclass
class Settings:
    primary_service: Provider = Provider.AZURE
    fallback_service: Provider = Provider.GOOGLE
    usage_tracking: bool = True
    ledger_path: str = field(default_factory=_default_ledger_path)
    translate_timeout: Optional[float] = None
    limits: Dict[Provider, Limits] = field(default_factory=default_limits)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            primary_service=Provider.parse(os.getenv("PRIMARY_SERVICE", "azure")),
            fallback_service=Provider.parse(os.getenv("FALLBACK_SERVICE", "google")),
            usage_tracking=os.getenv("USAGE_TRACKING", "true").strip().lower() != "false",
            ledger_path=os.getenv("USAGE_LEDGER_PATH") or _default_ledger_path(),
            translate_timeout=_optional_float("TRANSLATE_TIMEOUT_SEC"),
            limits=load_limits(),
        )
