"""
Transaction velocity: average rates, trend, burstiness, longest gap and recent level.

Averages use the full signature count over the wallet age in days (minimum 1).
Trend compares the rate of the older half against the newer half of the
timestamped history and needs at least 10 timestamped transactions.
"""

from __future__ import annotations

import statistics
import time
from dataclasses import dataclass
from typing import Any, Sequence

from backend_exposure.chain.models import TransactionRecord

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400
MIN_TREND_TXS = 10
TREND_RATIO = 1.5
BURST_SHORT_GAP_SHARE = 0.3
BURST_LONG_GAP_DAYS = 7

TREND_INCREASING = "increasing"
TREND_DECREASING = "decreasing"
TREND_STABLE = "stable"

LEVEL_HIGH = "high"
LEVEL_MEDIUM = "medium"
LEVEL_LOW = "low"
LEVEL_DORMANT = "dormant"

PEAK_LAST_7_DAYS = "Last 7 days"
PEAK_LAST_30_DAYS = "Last 30 days"


@dataclass(frozen=True)
class VelocityProfile:
    avg_tx_per_day: float = 0.0
    avg_tx_per_week: float = 0.0
    peak_activity_period: str | None = None
    activity_trend: str = TREND_STABLE
    bursty_behavior: bool = False
    longest_gap_days: int | None = None
    recent_activity_level: str = LEVEL_DORMANT

    def to_dict(self) -> dict[str, Any]:
        return {
            "avgTxPerDay": self.avg_tx_per_day,
            "avgTxPerWeek": self.avg_tx_per_week,
            "peakActivityPeriod": self.peak_activity_period,
            "activityTrend": self.activity_trend,
            "burstyBehavior": self.bursty_behavior,
            "longestGapDays": self.longest_gap_days,
            "recentActivityLevel": self.recent_activity_level,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VelocityProfile:
        return cls(
            avg_tx_per_day=float(data.get("avgTxPerDay") or 0.0),
            avg_tx_per_week=float(data.get("avgTxPerWeek") or 0.0),
            peak_activity_period=data.get("peakActivityPeriod"),
            activity_trend=data.get("activityTrend") or TREND_STABLE,
            bursty_behavior=bool(data.get("burstyBehavior")),
            longest_gap_days=data.get("longestGapDays"),
            recent_activity_level=data.get("recentActivityLevel") or LEVEL_DORMANT,
        )


def recent_level(recent_count: int) -> str:
    if recent_count > 20:
        return LEVEL_HIGH
    if recent_count > 5:
        return LEVEL_MEDIUM
    if recent_count > 0:
        return LEVEL_LOW
    return LEVEL_DORMANT


def _trend(times: list[int]) -> str:
    if len(times) < MIN_TREND_TXS:
        return TREND_STABLE
    half = len(times) // 2
    first, second = times[:half], times[half:]
    first_rate = len(first) / ((first[-1] - first[0]) or 1)
    second_rate = len(second) / ((second[-1] - second[0]) or 1)
    if second_rate > first_rate * TREND_RATIO:
        return TREND_INCREASING
    if first_rate > second_rate * TREND_RATIO:
        return TREND_DECREASING
    return TREND_STABLE


def analyze_velocity(
    records: Sequence[TransactionRecord],
    wallet_age_days: int | None,
    now: float | None = None,
) -> VelocityProfile:
    if not records:
        return VelocityProfile()
    tx_count = len(records)
    times = sorted(r.block_time for r in records if r.block_time is not None)
    if len(times) < 2:
        return VelocityProfile(
            avg_tx_per_day=float(tx_count),
            avg_tx_per_week=float(tx_count),
            recent_activity_level=LEVEL_LOW,
        )

    now = time.time() if now is None else now
    per_day = tx_count / (wallet_age_days or 1)
    week_count = sum(1 for t in times if t > now - 7 * SECONDS_PER_DAY)
    month_count = sum(1 for t in times if t > now - 30 * SECONDS_PER_DAY)

    peak: str | None = None
    if week_count > 5 and week_count >= month_count * 0.5:
        peak = PEAK_LAST_7_DAYS
    elif month_count > tx_count * 0.5:
        peak = PEAK_LAST_30_DAYS

    gaps = [b - a for a, b in zip(times, times[1:])]
    longest_gap_days = max(gaps) // SECONDS_PER_DAY
    bursty = statistics.pstdev(gaps) > statistics.fmean(gaps)
    short_gaps = sum(1 for g in gaps if g < SECONDS_PER_HOUR)
    if short_gaps > len(gaps) * BURST_SHORT_GAP_SHARE and longest_gap_days > BURST_LONG_GAP_DAYS:
        bursty = True

    return VelocityProfile(
        avg_tx_per_day=per_day,
        avg_tx_per_week=per_day * 7,
        peak_activity_period=peak,
        activity_trend=_trend(times),
        bursty_behavior=bursty,
        longest_gap_days=int(longest_gap_days),
        recent_activity_level=recent_level(week_count),
    )
