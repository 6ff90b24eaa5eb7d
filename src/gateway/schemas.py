from typing import Optional

from providers.models import CamelModel


class TranslateRequest(CamelModel):
    # Left optional so missing fields reach the orchestrator's validation
    text: Optional[str] = None
    target_language: Optional[str] = None
    source_language: Optional[str] = "auto"
