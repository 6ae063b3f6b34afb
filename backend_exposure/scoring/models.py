"""
CategoryScore and the shared score -> level thresholds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

LEVEL_LOW = "Low"
LEVEL_MEDIUM = "Medium"
LEVEL_HIGH = "High"

LOW_BELOW = 40
MEDIUM_BELOW = 70


def clamp(value: float, lo: float = 0, hi: float = 100) -> float:
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def risk_level(score: float) -> str:
    if score < LOW_BELOW:
        return LEVEL_LOW
    if score < MEDIUM_BELOW:
        return LEVEL_MEDIUM
    return LEVEL_HIGH


@dataclass(frozen=True)
class CategoryScore:
    """level is always risk_level(score); use CategoryScore.build to keep them in sync."""

    name: str
    score: int
    level: str
    weight: float
    signals: tuple[str, ...]
    description: str

    @classmethod
    def build(cls, name: str, raw_score: float, weight: float, signals: list[str], description: str) -> CategoryScore:
        score = int(clamp(raw_score))
        return cls(
            name=name,
            score=score,
            level=risk_level(score),
            weight=weight,
            signals=tuple(signals),
            description=description,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "score": self.score,
            "level": self.level,
            "weight": self.weight,
            "signals": list(self.signals),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CategoryScore:
        score = int(data["score"])
        return cls(
            name=data["name"],
            score=score,
            level=risk_level(score),
            weight=float(data["weight"]),
            signals=tuple(data.get("signals") or ()),
            description=data.get("description") or "",
        )
