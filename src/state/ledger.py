import asyncio
import json
import logging
import math
import os
import tempfile
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Tuple, Union

from pydantic import ValidationError as SchemaError

from providers.base import Provider
from .models import Limits, UsageRecord, UsageSnapshot, UsageStatus, WindowUsage, utcnow

logger = logging.getLogger(__name__)

WARNING_THRESHOLD = 75
CRITICAL_THRESHOLD = 90
EXHAUSTED_THRESHOLD = 100
DEFAULT_RETENTION_DAYS = 30


def day_key(ts: datetime) -> str:
    return ts.date().isoformat()


def month_key(ts: datetime) -> str:
    return ts.strftime("%Y-%m")


def percentage(used: int, limit: int) -> int:
    # Round half up so 99.5% reads as 100%
    return int(math.floor(100 * used / limit + 0.5))


class UsageLedger:
    """Durable per-provider character counters backed by a JSON file.

    The in-memory records are authoritative for the running process. Every
    ``record`` increments the daily, monthly and total counters and rewrites
    the file inside one lock, so concurrent requests cannot lose updates and
    the monthly bucket always equals the sum of its (unpurged) daily buckets.

    A missing, unreadable or corrupt file is replaced by a fresh ledger:
    usage history is given up rather than blocking translation.
    """

    def __init__(
        self,
        path: str,
        limits: Dict[Provider, Limits],
        clock: Callable[[], datetime] = utcnow,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ) -> None:
        self._path = path
        self._limits = {Provider.parse(p): lim for p, lim in limits.items()}
        self._clock = clock
        self._retention_days = retention_days
        self._lock = asyncio.Lock()
        self._last_purge_day: Optional[str] = None

        self._records, self._last_updated, dirty = self._load()
        if dirty:
            self._write(self._serialize())

    def now(self) -> datetime:
        """Current time on the ledger's clock; day and month windows follow it."""
        return self._clock()

    @property
    def path(self) -> str:
        return self._path

    @property
    def limits(self) -> Dict[Provider, Limits]:
        return dict(self._limits)

    @property
    def last_updated(self) -> datetime:
        return self._last_updated

    def _fresh(self) -> Dict[Provider, UsageRecord]:
        now = self._clock()
        return {p: UsageRecord(last_reset=now) for p in Provider}

    def _load(self) -> Tuple[Dict[Provider, UsageRecord], datetime, bool]:
        now = self._clock()
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            logger.info("Usage ledger not found at %s; starting a new one", self._path)
            return self._fresh(), now, True
        except (OSError, ValueError) as e:
            logger.warning("Usage ledger at %s is unreadable (%s); starting from zero", self._path, e)
            return self._fresh(), now, True

        if not isinstance(raw, dict):
            logger.warning("Usage ledger at %s is not an object; starting from zero", self._path)
            return self._fresh(), now, True

        records: Dict[Provider, UsageRecord] = {}
        dirty = False
        try:
            for p in Provider:
                section = raw.get(p.value)
                if section is None:
                    records[p] = UsageRecord(last_reset=now)
                    dirty = True
                    continue
                records[p] = UsageRecord.model_validate(section)
            last_updated = datetime.fromisoformat(raw["lastUpdated"]) if raw.get("lastUpdated") else now
        except (SchemaError, ValueError, TypeError) as e:
            logger.warning("Usage ledger at %s is corrupt (%s); starting from zero", self._path, e)
            return self._fresh(), now, True

        for p, rec in records.items():
            if _reconcile(rec):
                logger.warning("Monthly usage for %s was behind its daily entries; repaired", p.value)
                dirty = True
        return records, last_updated, dirty

    def _serialize(self) -> str:
        data: Dict[str, Any] = {p.value: rec.model_dump(mode="json", by_alias=True) for p, rec in self._records.items()}
        data["lastUpdated"] = self._last_updated.isoformat()
        return json.dumps(data, indent=2)

    def _write(self, payload: str) -> None:
        directory = os.path.dirname(os.path.abspath(self._path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=".usage-", suffix=".json", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_path, self._path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except OSError as e:
            # Counters stay in memory; the next successful write catches up
            logger.error("Failed to save usage ledger to %s: %s", self._path, e)

    async def _persist(self) -> None:
        payload = self._serialize()
        await asyncio.to_thread(self._write, payload)

    async def record(self, provider: Union[str, Provider], character_count: int) -> None:
        provider = Provider.parse(provider)
        if character_count < 0:
            raise ValueError("character_count must be non-negative")

        async with self._lock:
            now = self._clock()
            day, month = day_key(now), month_key(now)
            if self._last_purge_day != day:
                removed = self._purge(now, self._retention_days)
                if removed:
                    logger.info("Purged %d daily usage entries older than %d days", removed, self._retention_days)
                self._last_purge_day = day

            rec = self._records[provider]
            rec.daily[day] = rec.daily.get(day, 0) + character_count
            rec.monthly[month] = rec.monthly.get(month, 0) + character_count
            rec.total += character_count
            self._last_updated = now
            daily_total, monthly_total = rec.daily[day], rec.monthly[month]
            await self._persist()

        logger.info(
            "%s usage recorded: characters=%d daily_total=%d monthly_total=%d",
            provider.label,
            character_count,
            daily_total,
            monthly_total,
        )

    def usage(self, provider: Union[str, Provider]) -> UsageSnapshot:
        provider = Provider.parse(provider)
        limits = self._limits[provider]
        rec = self._records[provider]
        now = self._clock()
        daily = _window(rec.daily.get(day_key(now), 0), limits.daily)
        monthly = _window(rec.monthly.get(month_key(now), 0), limits.monthly)
        return UsageSnapshot(
            daily=daily,
            monthly=monthly,
            total=rec.total,
            status=self.status_for(daily, monthly),
            last_reset=rec.last_reset,
        )

    def snapshots(self) -> Dict[Provider, UsageSnapshot]:
        return {p: self.usage(p) for p in Provider}

    def is_available(self, provider: Union[str, Provider]) -> bool:
        snap = self.usage(provider)
        return snap.daily.remaining > 0 and snap.monthly.remaining > 0

    @staticmethod
    def status_for(daily: WindowUsage, monthly: WindowUsage) -> UsageStatus:
        worst = max(daily.percentage, monthly.percentage)
        if worst >= EXHAUSTED_THRESHOLD:
            return UsageStatus.EXHAUSTED
        if worst >= CRITICAL_THRESHOLD:
            return UsageStatus.CRITICAL
        if worst >= WARNING_THRESHOLD:
            return UsageStatus.WARNING
        return UsageStatus.HEALTHY

    @classmethod
    def status(cls, snapshot: UsageSnapshot) -> UsageStatus:
        return cls.status_for(snapshot.daily, snapshot.monthly)

    def _purge(self, now: datetime, days: int) -> int:
        cutoff = day_key(now - timedelta(days=days))
        removed = 0
        for rec in self._records.values():
            for key in [k for k in rec.daily if k < cutoff]:
                del rec.daily[key]
                removed += 1
        return removed

    async def purge_older_than(self, days: int = DEFAULT_RETENTION_DAYS) -> int:
        """Drop daily entries older than ``days``; monthly and total counters are kept."""
        async with self._lock:
            removed = self._purge(self._clock(), days)
            if removed:
                self._last_updated = self._clock()
                await self._persist()
        return removed

    async def reset(self) -> None:
        async with self._lock:
            self._records = self._fresh()
            self._last_updated = self._clock()
            await self._persist()
        logger.info("Usage ledger reset")

    def statistics(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            p.value: snap.model_dump(mode="json", by_alias=True) for p, snap in self.snapshots().items()
        }
        stats["lastUpdated"] = self._last_updated.isoformat()
        return stats


def _window(used: int, limit: int) -> WindowUsage:
    return WindowUsage(
        used=used,
        limit=limit,
        remaining=max(0, limit - used),
        percentage=percentage(used, limit),
    )


def _reconcile(rec: UsageRecord) -> bool:
    sums: Dict[str, int] = {}
    for day, count in rec.daily.items():
        sums[day[:7]] = sums.get(day[:7], 0) + count
    changed = False
    for month, daily_sum in sums.items():
        if rec.monthly.get(month, 0) < daily_sum:
            rec.monthly[month] = daily_sum
            changed = True
    if rec.total < sum(rec.monthly.values()):
        rec.total = sum(rec.monthly.values())
        changed = True
    return changed
