"""
Counterparty aggregation for the graph view: every non-subject account key,
its interaction count and last-seen time, typed via the address registry.

Only the top 20 by interaction count are kept to bound the downstream graph.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from backend_exposure.chain.parser import ParsedTransaction
from backend_exposure.config.registry import AddressRegistry

MAX_COUNTERPARTIES = 20


@dataclass(frozen=True)
class CounterpartyRecord:
    address: str
    tx_count: int
    last_interaction: int
    type: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "txCount": self.tx_count,
            "lastInteraction": self.last_interaction,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CounterpartyRecord:
        return cls(
            address=data["address"],
            tx_count=int(data["txCount"]),
            last_interaction=int(data.get("lastInteraction") or 0),
            type=data["type"],
        )


def analyze_counterparties(
    address: str,
    transactions: Sequence[ParsedTransaction],
    registry: AddressRegistry,
    limit: int = MAX_COUNTERPARTIES,
) -> list[CounterpartyRecord]:
    counts: dict[str, int] = {}
    last_seen: dict[str, int] = {}
    for tx in transactions:
        for key in dict.fromkeys(tx.account_keys):
            if key == address:
                continue
            counts[key] = counts.get(key, 0) + 1
            if tx.block_time > last_seen.get(key, 0):
                last_seen[key] = tx.block_time
    # sorted() is stable: ties keep first-seen order
    ranked = sorted(counts, key=lambda k: counts[k], reverse=True)[:limit]
    return [
        CounterpartyRecord(
            address=k,
            tx_count=counts[k],
            last_interaction=last_seen.get(k, 0),
            type=registry.counterparty_type(k),
        )
        for k in ranked
    ]
