"""
Income-source attribution for inbound SOL.

A transaction is typed by the first registry set that matches any of its account
keys, in priority order CEX, airdrop, staking, DEX, NFT; otherwise it is a plain
transfer. Only SOL transfers whose destination is the subject count as income.
diversityScore is the Shannon entropy of the amount distribution normalized by
log2(number of source types), 0 with a single type.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

from backend_exposure.chain.parser import ParsedTransaction
from backend_exposure.config.registry import TYPE_DEX, TYPE_NFT, AddressRegistry
from backend_exposure.utils.wallet_utils import lamports_to_sol

INCOME_CEX = "cex_deposit"
INCOME_AIRDROP = "airdrop"
INCOME_STAKING = "staking_reward"
INCOME_DEX = "dex_swap"
INCOME_NFT = "nft_sale"
INCOME_TRANSFER = "transfer"

INCOME_LABELS = {
    INCOME_CEX: "CEX Deposits",
    INCOME_AIRDROP: "Airdrops",
    INCOME_STAKING: "Staking Rewards",
    INCOME_DEX: "DEX Swaps",
    INCOME_NFT: "NFT Sales",
    INCOME_TRANSFER: "Transfers",
}


@dataclass(frozen=True)
class IncomeSource:
    type: str
    amount: float
    count: int
    percentage: float
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "amount": self.amount,
            "count": self.count,
            "percentage": self.percentage,
            "label": self.label,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IncomeSource:
        return cls(
            type=data["type"],
            amount=float(data["amount"]),
            count=int(data["count"]),
            percentage=float(data["percentage"]),
            label=data.get("label") or INCOME_LABELS.get(data["type"], data["type"]),
        )


@dataclass(frozen=True)
class IncomeBreakdown:
    sources: tuple[IncomeSource, ...] = ()
    total_income: float = 0.0
    primary_source: str | None = None
    diversity_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "sources": [s.to_dict() for s in self.sources],
            "totalIncome": self.total_income,
            "primarySource": self.primary_source,
            "diversityScore": self.diversity_score,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> IncomeBreakdown:
        return cls(
            sources=tuple(IncomeSource.from_dict(s) for s in data.get("sources") or []),
            total_income=float(data.get("totalIncome") or 0.0),
            primary_source=data.get("primarySource"),
            diversity_score=float(data.get("diversityScore") or 0.0),
        )


def classify_income_type(account_keys: Sequence[str], registry: AddressRegistry) -> str:
    keys = set(account_keys)
    if keys & registry.cex_wallets.keys():
        return INCOME_CEX
    if keys & registry.airdrop_programs:
        return INCOME_AIRDROP
    if keys & registry.staking_programs:
        return INCOME_STAKING
    kinds = {registry.programs.get(k) for k in keys}
    if TYPE_DEX in kinds:
        return INCOME_DEX
    if TYPE_NFT in kinds:
        return INCOME_NFT
    return INCOME_TRANSFER


def shannon_diversity(amounts: Sequence[float]) -> float:
    """Normalized Shannon entropy in [0, 1]; 0 for fewer than two buckets."""
    total = sum(amounts)
    if len(amounts) < 2 or total <= 0:
        return 0.0
    entropy = 0.0
    for a in amounts:
        p = a / total
        if p > 0:
            entropy -= p * math.log2(p)
    return entropy / math.log2(len(amounts))


def analyze_income(
    address: str,
    transactions: Sequence[ParsedTransaction],
    registry: AddressRegistry,
) -> IncomeBreakdown:
    by_type: dict[str, list[float]] = {}
    for tx in transactions:
        received = sum(
            lamports_to_sol(ix.lamports or 0)
            for ix in tx.instructions
            if ix.is_sol_transfer and ix.destination == address
        )
        if received <= 0:
            continue
        bucket = by_type.setdefault(classify_income_type(tx.account_keys, registry), [0.0, 0])
        bucket[0] += received
        bucket[1] += 1

    if not by_type:
        return IncomeBreakdown()

    total = sum(v[0] for v in by_type.values())
    sources = sorted(
        (
            IncomeSource(
                type=t,
                amount=amount,
                count=int(count),
                percentage=amount / total * 100 if total > 0 else 0.0,
                label=INCOME_LABELS[t],
            )
            for t, (amount, count) in by_type.items()
        ),
        key=lambda s: s.amount,
        reverse=True,
    )
    return IncomeBreakdown(
        sources=tuple(sources),
        total_income=total,
        primary_source=sources[0].type,
        diversity_score=shannon_diversity([s.amount for s in sources]),
    )
