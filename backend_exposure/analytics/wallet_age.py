"""Wallet age from the oldest timestamped signature."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Sequence

from backend_exposure.chain.models import TransactionRecord

SECONDS_PER_DAY = 86400
NEW_WALLET_DAYS = 30


@dataclass(frozen=True)
class WalletAge:
    first_tx_time: int | None = None
    age_in_days: int | None = None
    is_new: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {"firstTxTime": self.first_tx_time, "ageInDays": self.age_in_days, "isNew": self.is_new}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WalletAge:
        return cls(
            first_tx_time=data.get("firstTxTime"),
            age_in_days=data.get("ageInDays"),
            is_new=bool(data.get("isNew", True)),
        )


def compute_wallet_age(records: Sequence[TransactionRecord], now: float | None = None) -> WalletAge:
    """Age in whole days; no timestamps means a brand-new wallet."""
    times = [r.block_time for r in records if r.block_time]
    if not times:
        return WalletAge()
    now = time.time() if now is None else now
    first = min(times)
    age_days = max(0, int((now - first) // SECONDS_PER_DAY))
    return WalletAge(first_tx_time=first, age_in_days=age_days, is_new=age_days < NEW_WALLET_DAYS)
