"""
Time-of-day profile and coarse timezone guess.

The timezone is a heuristic: the median peak UTC hour is mapped into one of four
fixed regions. It carries no confidence interval and is reported as a guess
("likely timezone"), never as a fact about the owner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Sequence

from backend_exposure.chain.models import TransactionRecord

MIN_TIMED_TXS = 5
PEAK_HOURS = 5
ACTIVE_HOUR_FACTOR = 1.5
INSUFFICIENT_DATA = "Insufficient data"

CONCENTRATION_HIGH = "high"
CONCENTRATION_MEDIUM = "medium"
CONCENTRATION_LOW = "low"

# (first UTC hour, last UTC hour, offset, label); hours outside all ranges fall to US West
TIMEZONE_BUCKETS: tuple[tuple[int, int, int, str], ...] = (
    (1, 7, 8, "Asia/Pacific (UTC+8)"),
    (8, 14, 0, "Europe (UTC/GMT)"),
    (15, 20, -5, "US East Coast (EST/EDT)"),
)
FALLBACK_TIMEZONE = (-8, "US West Coast (PST/PDT)")


@dataclass(frozen=True)
class TimeOfDayProfile:
    hour_distribution: tuple[int, ...] = field(default_factory=lambda: (0,) * 24)
    peak_hours: tuple[int, ...] = ()
    active_hour_range: str = INSUFFICIENT_DATA
    inferred_timezone_offset: int | None = None
    inferred_timezone: str | None = None
    activity_concentration: str = CONCENTRATION_LOW
    insufficient_data: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "hourDistribution": list(self.hour_distribution),
            "peakHours": list(self.peak_hours),
            "activeHourRange": self.active_hour_range,
            "inferredTimezoneOffset": self.inferred_timezone_offset,
            "inferredTimezone": self.inferred_timezone,
            "activityConcentration": self.activity_concentration,
            "insufficientData": self.insufficient_data,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimeOfDayProfile:
        return cls(
            hour_distribution=tuple(int(c) for c in data.get("hourDistribution") or (0,) * 24),
            peak_hours=tuple(int(h) for h in data.get("peakHours") or ()),
            active_hour_range=data.get("activeHourRange") or INSUFFICIENT_DATA,
            inferred_timezone_offset=data.get("inferredTimezoneOffset"),
            inferred_timezone=data.get("inferredTimezone"),
            activity_concentration=data.get("activityConcentration") or CONCENTRATION_LOW,
            insufficient_data=bool(data.get("insufficientData", True)),
        )


def _fmt_range(start: int, end: int) -> str:
    return f"{start:02d}:00-{end:02d}:00 UTC"


def longest_active_run(active_hours: set[int]) -> tuple[int, int] | None:
    """(start, length) of the longest contiguous run of hours, wrapping past midnight."""
    if not active_hours:
        return None
    best_start, best_len = min(active_hours), 1
    for start in sorted(active_hours):
        length = 1
        while length < 24 and (start + length) % 24 in active_hours:
            length += 1
        if length > best_len:
            best_start, best_len = start, length
    return best_start, best_len


def infer_timezone(peak_hours: Sequence[int]) -> tuple[int, str] | None:
    if not peak_hours:
        return None
    ordered = sorted(peak_hours)
    median = ordered[len(ordered) // 2]
    for lo, hi, offset, label in TIMEZONE_BUCKETS:
        if lo <= median <= hi:
            return offset, label
    return FALLBACK_TIMEZONE


def analyze_time_of_day(records: Sequence[TransactionRecord]) -> TimeOfDayProfile:
    hist = [0] * 24
    timed = [r.block_time for r in records if r.block_time is not None]
    for ts in timed:
        hist[datetime.fromtimestamp(ts, tz=timezone.utc).hour] += 1

    if len(timed) < MIN_TIMED_TXS:
        return TimeOfDayProfile(hour_distribution=tuple(hist))

    total = len(timed)
    ranked = sorted(range(24), key=lambda h: (-hist[h], h))
    peaks = tuple(h for h in ranked[:PEAK_HOURS] if hist[h] > 0)

    ratio = sum(hist[h] for h in ranked[:PEAK_HOURS]) / total
    if ratio > 0.7:
        concentration = CONCENTRATION_HIGH
    elif ratio > 0.5:
        concentration = CONCENTRATION_MEDIUM
    else:
        concentration = CONCENTRATION_LOW

    threshold = total / 24 * ACTIVE_HOUR_FACTOR
    run = longest_active_run({h for h in range(24) if hist[h] >= threshold})
    if run is not None:
        start, length = run
        active_range = _fmt_range(start, (start + length) % 24)
    else:
        active_range = _fmt_range(min(peaks), max(peaks))

    tz = infer_timezone(peaks)
    return TimeOfDayProfile(
        hour_distribution=tuple(hist),
        peak_hours=peaks,
        active_hour_range=active_range,
        inferred_timezone_offset=tz[0] if tz else None,
        inferred_timezone=tz[1] if tz else None,
        activity_concentration=concentration,
        insufficient_data=False,
    )
