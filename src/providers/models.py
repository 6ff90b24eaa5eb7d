from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


class CamelModel(BaseModel):
    """Base for models serialized with camelCase keys (JSON file and HTTP bodies)."""

    model_config = ConfigDict(alias_generator=_camel, populate_by_name=True)


class TranslationResult(CamelModel):
    translated_text: str
    source_language: Optional[str] = None
    target_language: str
    character_count: int
    service: str
    fallback_used: bool = False
    fallback_reason: Optional[str] = None


class HealthReport(CamelModel):
    service: str
    available: bool
    configured: bool
    status: Literal["healthy", "unhealthy", "not_configured"]
    error: Optional[str] = None
    quota_exceeded: Optional[bool] = None
    last_check: Optional[str] = None
    region: Optional[str] = None
