"""
Funding-source attribution: who sent SOL to this wallet, oldest transactions first.

Walks SOL transfer instructions whose destination is the subject, accumulates the
amount per unique source and keeps the earliest timestamp seen. The initial funder
is the source with the earliest timestamp, so totals and the initial flag do not
depend on the order transfers are visited.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Sequence

from backend_exposure.chain.parser import MISSING_BLOCK_TIME, ParsedTransaction
from backend_exposure.config.registry import TYPE_CEX, AddressRegistry
from backend_exposure.exposure_logging import get_logger, short_wallet
from backend_exposure.utils.wallet_utils import lamports_to_sol

logger = get_logger(__name__)

MAX_FUNDING_SOURCES = 10


@dataclass(frozen=True)
class FundingSource:
    address: str
    type: str
    amount: float
    """Cumulative SOL received from this source."""
    timestamp: int
    """Earliest transfer seen from this source (0 when untimed)."""
    is_initial_funding: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "type": self.type,
            "amount": self.amount,
            "timestamp": self.timestamp,
            "isInitialFunding": self.is_initial_funding,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FundingSource:
        return cls(
            address=data["address"],
            type=data["type"],
            amount=float(data["amount"]),
            timestamp=int(data.get("timestamp") or 0),
            is_initial_funding=bool(data.get("isInitialFunding")),
        )


@dataclass(frozen=True)
class FundingAnalysis:
    sources: tuple[FundingSource, ...] = ()
    primary_funding_type: str | None = None
    has_cex_funding: bool = False
    has_multiple_funding_sources: bool = False
    total_funding_received: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "sources": [s.to_dict() for s in self.sources],
            "primaryFundingType": self.primary_funding_type,
            "hasCexFunding": self.has_cex_funding,
            "hasMultipleFundingSources": self.has_multiple_funding_sources,
            "totalFundingReceived": self.total_funding_received,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FundingAnalysis:
        return cls(
            sources=tuple(FundingSource.from_dict(s) for s in data.get("sources") or []),
            primary_funding_type=data.get("primaryFundingType"),
            has_cex_funding=bool(data.get("hasCexFunding")),
            has_multiple_funding_sources=bool(data.get("hasMultipleFundingSources")),
            total_funding_received=float(data.get("totalFundingReceived") or 0.0),
        )


@dataclass
class _Accumulator:
    type: str
    amount: float = 0.0
    timestamp: int | None = None
    first_seen: int = 0


def _time_key(ts: int | None, first_seen: int) -> tuple[int, int, int]:
    # untimed sources sort after timed ones
    if ts is None or ts == MISSING_BLOCK_TIME:
        return (1, 0, first_seen)
    return (0, ts, first_seen)


def analyze_funding_sources(
    address: str,
    transactions: Sequence[ParsedTransaction],
    registry: AddressRegistry,
) -> FundingAnalysis:
    """
    transactions: parsed bodies oldest first (the caller reverses the chain order).
    Zero inbound transfers yield the empty default.
    """
    acc: dict[str, _Accumulator] = {}
    total = 0.0
    for tx in transactions:
        for ix in tx.instructions:
            if not ix.is_sol_transfer or not ix.source or ix.destination != address:
                continue
            amount = lamports_to_sol(ix.lamports or 0)
            total += amount
            entry = acc.get(ix.source)
            if entry is None:
                entry = _Accumulator(type=registry.counterparty_type(ix.source), first_seen=len(acc))
                acc[ix.source] = entry
            entry.amount += amount
            if tx.has_block_time and (entry.timestamp is None or tx.block_time < entry.timestamp):
                entry.timestamp = tx.block_time

    if not acc:
        return FundingAnalysis()

    ordered = sorted(acc.items(), key=lambda kv: _time_key(kv[1].timestamp, kv[1].first_seen))
    sources = [
        FundingSource(
            address=addr,
            type=e.type,
            amount=e.amount,
            timestamp=e.timestamp or MISSING_BLOCK_TIME,
        )
        for addr, e in ordered
    ]
    sources[0] = replace(sources[0], is_initial_funding=True)

    amount_by_type: dict[str, float] = {}
    for s in sources:
        amount_by_type[s.type] = amount_by_type.get(s.type, 0.0) + s.amount
    primary = max(amount_by_type, key=lambda t: amount_by_type[t]) if amount_by_type else None

    result = FundingAnalysis(
        sources=tuple(sources[:MAX_FUNDING_SOURCES]),
        primary_funding_type=primary,
        has_cex_funding=any(s.type == TYPE_CEX for s in sources),
        has_multiple_funding_sources=len(sources) > 1,
        total_funding_received=total,
    )
    logger.debug(
        "funding_analyzed",
        wallet=short_wallet(address),
        sources=len(sources),
        primary_type=primary,
        has_cex=result.has_cex_funding,
    )
    return result
