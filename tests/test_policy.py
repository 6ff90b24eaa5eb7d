import itertools
from datetime import datetime, timezone

import pytest

# Ensure import path includes src
import sys
from pathlib import Path
sys.path.append(str(Path(__file__).resolve().parents[1] / "src"))

from providers.base import Provider, UnknownProviderError
from router.errors import LedgerExhaustedError
from router.policy import RoutingPolicy, next_monthly_reset
from state.ledger import UsageLedger, _window
from state.models import UsageSnapshot


def snap(monthly_used: int, daily_used: int = 0, monthly_limit: int = 1000, daily_limit: int = 1000):
    daily = _window(daily_used, daily_limit)
    monthly = _window(monthly_used, monthly_limit)
    return UsageSnapshot(daily=daily, monthly=monthly, status=UsageLedger.status_for(daily, monthly))


def test_primary_preferred_while_healthy():
    policy = RoutingPolicy()
    assert policy.recommend({Provider.AZURE: snap(890), Provider.GOOGLE: snap(0)}) is Provider.AZURE


def test_primary_over_soft_ceiling_shifts_to_fallback():
    policy = RoutingPolicy()
    choice = policy.recommend({Provider.AZURE: snap(950), Provider.GOOGLE: snap(100)})
    assert choice is Provider.GOOGLE


def test_daily_soft_ceiling_also_shifts():
    policy = RoutingPolicy()
    choice = policy.recommend({Provider.AZURE: snap(0, daily_used=900), Provider.GOOGLE: snap(0)})
    assert choice is Provider.GOOGLE


def test_fallback_used_even_when_high(caplog):
    policy = RoutingPolicy()
    with caplog.at_level("WARNING"):
        choice = policy.recommend({Provider.AZURE: snap(1000), Provider.GOOGLE: snap(950)})
    assert choice is Provider.GOOGLE
    assert "GOOGLE usage high" in caplog.text


def test_primary_last_resort_past_soft_ceiling(caplog):
    policy = RoutingPolicy()
    with caplog.at_level("WARNING"):
        choice = policy.recommend({Provider.AZURE: snap(950), Provider.GOOGLE: snap(1000)})
    assert choice is Provider.AZURE
    assert "last resort" in caplog.text


def test_both_exhausted_raises_with_percentages():
    policy = RoutingPolicy()
    with pytest.raises(LedgerExhaustedError) as exc:
        policy.recommend(
            {Provider.AZURE: snap(1000, daily_used=20), Provider.GOOGLE: snap(1010, daily_used=30)},
            now=datetime(2024, 12, 20, tzinfo=timezone.utc),
        )
    message = str(exc.value)
    assert "AZURE: monthly 100%, daily 2%" in message
    assert "GOOGLE: monthly 101%, daily 3%" in message
    assert "2025-01-01" in message
    assert exc.value.percentages[Provider.GOOGLE]["monthly"] == 101


def test_roles_are_configurable():
    policy = RoutingPolicy(primary="google", fallback="azure")
    assert policy.recommend({Provider.AZURE: snap(0), Provider.GOOGLE: snap(0)}) is Provider.GOOGLE
    assert policy.recommend({Provider.AZURE: snap(0), Provider.GOOGLE: snap(920)}) is Provider.AZURE


def test_same_primary_and_fallback_rejected():
    with pytest.raises(UnknownProviderError):
        RoutingPolicy(primary="azure", fallback="azure")


def test_unknown_service_rejected():
    with pytest.raises(UnknownProviderError):
        RoutingPolicy(primary="deepl")


def test_never_picks_exhausted_provider_while_other_has_quota():
    policy = RoutingPolicy()
    levels = [0, 500, 899, 900, 950, 994, 995, 999, 1000, 1200]
    for a_month, a_day, g_month, g_day in itertools.product(levels, [0, 950, 1000], levels, [0, 950, 1000]):
        snapshots = {Provider.AZURE: snap(a_month, a_day), Provider.GOOGLE: snap(g_month, g_day)}
        try:
            choice = policy.recommend(snapshots)
        except LedgerExhaustedError:
            for s in snapshots.values():
                assert s.monthly.percentage >= 100 or s.daily.percentage >= 100 or s.monthly.remaining == 0 or s.daily.remaining == 0
            continue
        chosen = snapshots[choice]
        other = snapshots[choice.other]
        if chosen.monthly.percentage >= 100 or chosen.daily.percentage >= 100:
            assert other.monthly.remaining == 0 or other.daily.remaining == 0


def test_next_monthly_reset():
    assert next_monthly_reset(datetime(2024, 1, 31).date()).isoformat() == "2024-02-01"
    assert next_monthly_reset(datetime(2024, 12, 1).date()).isoformat() == "2025-01-01"
