"""
Net-worth valuation from the shared price map.

prices is None when the price feed failed: every USD figure is then None and the
bucket is "Unknown". A token without a price keeps valueUsd None and does not
block the aggregate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from backend_exposure.analytics.token_risk import CATEGORY_UNKNOWN, TokenRiskAnalysis
from backend_exposure.chain.models import TokenBalance
from backend_exposure.pricing.price_feed import SOL_MINT
from backend_exposure.utils.wallet_utils import short_mint

VALUE_UNKNOWN = "Unknown"

# (exclusive upper bound in USD, label)
USD_BUCKETS: tuple[tuple[float, str], ...] = (
    (10, "<$10"),
    (100, "$10-$100"),
    (500, "$100-$500"),
    (1_000, "$500-$1K"),
    (5_000, "$1K-$5K"),
    (10_000, "$5K-$10K"),
    (50_000, "$10K-$50K"),
    (100_000, "$50K-$100K"),
    (500_000, "$100K-$500K"),
    (1_000_000, "$500K-$1M"),
)
TOP_BUCKET = "$1M+"


def usd_range(value: float) -> str:
    for bound, label in USD_BUCKETS:
        if value < bound:
            return label
    return TOP_BUCKET


@dataclass(frozen=True)
class TokenValue:
    mint: str
    symbol: str
    amount: float
    price_usd: float | None
    value_usd: float | None
    category: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "mint": self.mint,
            "symbol": self.symbol,
            "amount": self.amount,
            "priceUsd": self.price_usd,
            "valueUsd": self.value_usd,
            "category": self.category,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenValue:
        return cls(
            mint=data["mint"],
            symbol=data.get("symbol") or short_mint(data["mint"]),
            amount=float(data.get("amount") or 0.0),
            price_usd=data.get("priceUsd"),
            value_usd=data.get("valueUsd"),
            category=data.get("category") or CATEGORY_UNKNOWN,
        )


@dataclass(frozen=True)
class NetWorthEstimate:
    total_value_usd: float | None = None
    value_range: str = VALUE_UNKNOWN
    sol_value_usd: float | None = None
    token_value_usd: float | None = None
    token_values: tuple[TokenValue, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalValueUsd": self.total_value_usd,
            "valueRange": self.value_range,
            "solValueUsd": self.sol_value_usd,
            "tokenValueUsd": self.token_value_usd,
            "tokenValues": [t.to_dict() for t in self.token_values],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NetWorthEstimate:
        return cls(
            total_value_usd=data.get("totalValueUsd"),
            value_range=data.get("valueRange") or VALUE_UNKNOWN,
            sol_value_usd=data.get("solValueUsd"),
            token_value_usd=data.get("tokenValueUsd"),
            token_values=tuple(TokenValue.from_dict(t) for t in data.get("tokenValues") or []),
        )


def analyze_net_worth(
    sol_balance: float,
    balances: Sequence[TokenBalance],
    token_risk: TokenRiskAnalysis | None,
    prices: dict[str, float] | None,
) -> NetWorthEstimate:
    categories = token_risk.category_map() if token_risk else {}
    known = prices or {}
    rows: list[TokenValue] = []
    token_total = 0.0
    for b in balances:
        price = known.get(b.mint)
        value = b.ui_amount * price if price is not None else None
        if value is not None:
            token_total += value
        rows.append(
            TokenValue(
                mint=b.mint,
                symbol=short_mint(b.mint),
                amount=b.ui_amount,
                price_usd=price,
                value_usd=value,
                category=categories.get(b.mint, CATEGORY_UNKNOWN),
            )
        )
    rows.sort(key=lambda r: r.value_usd or 0.0, reverse=True)

    if prices is None:
        return NetWorthEstimate(token_values=tuple(rows))

    sol_price = prices.get(SOL_MINT)
    sol_value = sol_balance * sol_price if sol_price is not None else None
    total = sol_value + token_total if sol_value is not None else None
    return NetWorthEstimate(
        total_value_usd=total,
        value_range=usd_range(total) if total is not None else VALUE_UNKNOWN,
        sol_value_usd=sol_value,
        token_value_usd=token_total,
        token_values=tuple(rows),
    )
