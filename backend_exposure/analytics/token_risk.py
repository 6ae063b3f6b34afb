"""
Token-risk classification of held SPL tokens.

Known stablecoin and blue-chip mints come from the address registry; everything
else is a memecoin (9+ decimals and more than 1M units held) or volatile.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from backend_exposure.chain.models import TokenBalance
from backend_exposure.config.registry import AddressRegistry

CATEGORY_STABLECOIN = "stablecoin"
CATEGORY_BLUECHIP = "bluechip"
CATEGORY_VOLATILE = "volatile"
CATEGORY_MEMECOIN = "memecoin"
CATEGORY_UNKNOWN = "unknown"

PROFILE_CONSERVATIVE = "conservative"
PROFILE_BALANCED = "balanced"
PROFILE_SPECULATIVE = "speculative"
PROFILE_AGGRESSIVE = "aggressive"

MEMECOIN_MIN_DECIMALS = 9
MEMECOIN_MIN_UI_AMOUNT = 1_000_000


@dataclass(frozen=True)
class TokenClassification:
    mint: str
    category: str

    def to_dict(self) -> dict[str, Any]:
        return {"mint": self.mint, "category": self.category}


@dataclass(frozen=True)
class TokenRiskAnalysis:
    classifications: tuple[TokenClassification, ...] = ()
    stablecoin_count: int = 0
    bluechip_count: int = 0
    volatile_count: int = 0
    memecoin_count: int = 0
    risk_profile: str = PROFILE_AGGRESSIVE
    stablecoin_ratio: float = 0.0

    def category_map(self) -> dict[str, str]:
        return {c.mint: c.category for c in self.classifications}

    def to_dict(self) -> dict[str, Any]:
        return {
            "classifications": [c.to_dict() for c in self.classifications],
            "stablecoinCount": self.stablecoin_count,
            "bluechipCount": self.bluechip_count,
            "volatileCount": self.volatile_count,
            "memecoinCount": self.memecoin_count,
            "riskProfile": self.risk_profile,
            "stablecoinRatio": self.stablecoin_ratio,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenRiskAnalysis:
        return cls(
            classifications=tuple(
                TokenClassification(mint=c["mint"], category=c["category"])
                for c in data.get("classifications") or []
            ),
            stablecoin_count=int(data.get("stablecoinCount") or 0),
            bluechip_count=int(data.get("bluechipCount") or 0),
            volatile_count=int(data.get("volatileCount") or 0),
            memecoin_count=int(data.get("memecoinCount") or 0),
            risk_profile=data.get("riskProfile") or PROFILE_AGGRESSIVE,
            stablecoin_ratio=float(data.get("stablecoinRatio") or 0.0),
        )


def classify_token(token: TokenBalance, registry: AddressRegistry) -> str:
    if token.mint in registry.stablecoins:
        return CATEGORY_STABLECOIN
    if token.mint in registry.bluechips:
        return CATEGORY_BLUECHIP
    if token.decimals >= MEMECOIN_MIN_DECIMALS and token.ui_amount > MEMECOIN_MIN_UI_AMOUNT:
        return CATEGORY_MEMECOIN
    return CATEGORY_VOLATILE


def classify_tokens(balances: Sequence[TokenBalance], registry: AddressRegistry) -> TokenRiskAnalysis:
    classifications = tuple(TokenClassification(b.mint, classify_token(b, registry)) for b in balances)
    counts = {CATEGORY_STABLECOIN: 0, CATEGORY_BLUECHIP: 0, CATEGORY_VOLATILE: 0, CATEGORY_MEMECOIN: 0}
    for c in classifications:
        counts[c.category] += 1

    ratio = counts[CATEGORY_STABLECOIN] / (len(balances) or 1)
    if ratio > 0.5:
        profile = PROFILE_CONSERVATIVE
    elif ratio > 0.2 or counts[CATEGORY_BLUECHIP] > counts[CATEGORY_MEMECOIN]:
        profile = PROFILE_BALANCED
    elif counts[CATEGORY_MEMECOIN] > 0 and counts[CATEGORY_MEMECOIN] >= counts[CATEGORY_VOLATILE]:
        profile = PROFILE_SPECULATIVE
    else:
        profile = PROFILE_AGGRESSIVE

    return TokenRiskAnalysis(
        classifications=classifications,
        stablecoin_count=counts[CATEGORY_STABLECOIN],
        bluechip_count=counts[CATEGORY_BLUECHIP],
        volatile_count=counts[CATEGORY_VOLATILE],
        memecoin_count=counts[CATEGORY_MEMECOIN],
        risk_profile=profile,
        stablecoin_ratio=ratio,
    )
