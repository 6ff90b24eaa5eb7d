import logging
from datetime import date, datetime
from typing import Dict, Optional, Union

from providers.base import Provider, UnknownProviderError
from state.ledger import CRITICAL_THRESHOLD, EXHAUSTED_THRESHOLD
from state.models import UsageSnapshot, utcnow
from .errors import LedgerExhaustedError

logger = logging.getLogger(__name__)


def next_monthly_reset(today: date) -> date:
    if today.month == 12:
        return date(today.year + 1, 1, 1)
    return date(today.year, today.month + 1, 1)


def is_usable(snapshot: UsageSnapshot) -> bool:
    """Quota left in both windows and neither window reads as 100%."""
    return (
        snapshot.daily.remaining > 0
        and snapshot.monthly.remaining > 0
        and snapshot.daily.percentage < EXHAUSTED_THRESHOLD
        and snapshot.monthly.percentage < EXHAUSTED_THRESHOLD
    )


def is_comfortable(snapshot: UsageSnapshot) -> bool:
    return snapshot.daily.percentage < CRITICAL_THRESHOLD and snapshot.monthly.percentage < CRITICAL_THRESHOLD


class RoutingPolicy:
    """Picks the provider for the next request from usage snapshots alone.

    The primary is preferred while it is below the 90% soft ceiling in both
    windows. Past that, load shifts to the fallback before the primary is
    actually exhausted; the primary is used beyond 90% only as a last resort.
    """

    def __init__(self, primary: Union[str, Provider] = Provider.AZURE, fallback: Union[str, Provider] = Provider.GOOGLE) -> None:
        self.primary = Provider.parse(primary)
        self.fallback = Provider.parse(fallback)
        if self.primary is self.fallback:
            raise UnknownProviderError(
                f"Primary and fallback services must differ (both are {self.primary.value!r})"
            )

    def recommend(self, snapshots: Dict[Provider, UsageSnapshot], now: Optional[datetime] = None) -> Provider:
        primary = snapshots[self.primary]
        fallback = snapshots[self.fallback]

        if is_usable(primary) and is_comfortable(primary):
            return self.primary

        if is_usable(fallback):
            if not is_comfortable(fallback):
                logger.warning(
                    "%s usage high: monthly %d%%, daily %d%%",
                    self.fallback.label,
                    fallback.monthly.percentage,
                    fallback.daily.percentage,
                )
            return self.fallback

        if is_usable(primary):
            logger.warning(
                "%s usage high, using as last resort: monthly %d%%, daily %d%%",
                self.primary.label,
                primary.monthly.percentage,
                primary.daily.percentage,
            )
            return self.primary

        reset = next_monthly_reset((now or utcnow()).date())
        lines = ["All translation services are over their usage limits"]
        for provider, snap in ((self.primary, primary), (self.fallback, fallback)):
            lines.append(
                f"{provider.label}: monthly {snap.monthly.percentage}%, daily {snap.daily.percentage}% used"
            )
        lines.append(f"Monthly limits reset on {reset.isoformat()}.")
        raise LedgerExhaustedError(
            "\n".join(lines),
            percentages={
                p: {"monthly": s.monthly.percentage, "daily": s.daily.percentage}
                for p, s in ((self.primary, primary), (self.fallback, fallback))
            },
        )
