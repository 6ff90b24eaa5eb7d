from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from providers.models import CamelModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UsageStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"
    EXHAUSTED = "exhausted"


class Limits(BaseModel):
    daily: int = Field(gt=0)
    monthly: int = Field(gt=0)


class UsageRecord(CamelModel):
    """Per-provider counters as persisted in the ledger file."""

    daily: Dict[str, int] = Field(default_factory=dict)  # ISO date -> characters
    monthly: Dict[str, int] = Field(default_factory=dict)  # yyyy-mm -> characters
    total: int = Field(default=0, ge=0)
    last_reset: datetime = Field(default_factory=utcnow)

    @field_validator("daily", "monthly")
    @classmethod
    def _non_negative(cls, v: Dict[str, int]) -> Dict[str, int]:
        for key, count in v.items():
            if count < 0:
                raise ValueError(f"negative count for {key}")
        return v


class WindowUsage(BaseModel):
    used: int
    limit: int
    remaining: int
    percentage: int


class UsageSnapshot(CamelModel):
    daily: WindowUsage
    monthly: WindowUsage
    total: int = 0
    status: UsageStatus = UsageStatus.HEALTHY
    last_reset: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)
