import logging
import os
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError as SchemaError

from providers.base import Provider
from .models import Limits

logger = logging.getLogger(__name__)

DEFAULT_LIMITS: Dict[Provider, Dict[str, int]] = {
    Provider.AZURE: {"daily": 70_000, "monthly": 2_000_000},
    Provider.GOOGLE: {"daily": 17_000, "monthly": 500_000},
}


def default_limits() -> Dict[Provider, Limits]:
    return {p: Limits(**values) for p, values in DEFAULT_LIMITS.items()}


def _default_path() -> str:
    return os.getenv(
        "PROVIDER_LIMITS_PATH",
        os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(__file__))), "config", "provider_limits.yaml"),
    )


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.info("Provider limits file not found at %s; using defaults", path)
        return {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load provider limits: %s", e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Provider limits file %s is not a mapping; using defaults", path)
        return {}
    return data


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_limits(path: Optional[str] = None) -> Dict[Provider, Limits]:
    """Resolve per-provider character limits.

    Precedence: <PROVIDER>_DAILY_LIMIT / <PROVIDER>_MONTHLY_LIMIT env vars,
    then the YAML file, then built-in defaults.
    """
    data = _read_yaml(path or _default_path())
    limits: Dict[Provider, Limits] = {}
    for provider in Provider:
        values = dict(DEFAULT_LIMITS[provider])
        section = data.get(provider.value)
        if isinstance(section, dict):
            for key in ("daily", "monthly"):
                if section.get(key) is not None:
                    values[key] = section[key]
        for key in ("daily", "monthly"):
            env_value = _env_int(f"{provider.label}_{key.upper()}_LIMIT")
            if env_value is not None:
                values[key] = env_value
        try:
            limits[provider] = Limits(**values)
        except SchemaError as e:
            raise ValueError(f"Invalid limits for {provider.value}: {e}") from e
    return limits
