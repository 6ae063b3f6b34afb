"""
Typed records for raw chain data: signature history rows and token balances.

Parsed transaction bodies live in chain.parser (ParsedTransaction).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class TransactionRecord:
    """One row of getSignaturesForAddress (newest first as returned by the chain)."""

    signature: str
    block_time: int | None
    """Unix timestamp (seconds); None when the node did not report blockTime."""
    slot: int | None = None
    err: Any = None
    """RPC error member for failed transactions; None on success."""

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> TransactionRecord | None:
        if not isinstance(item, dict):
            return None
        sig = item.get("signature")
        if not sig:
            return None
        bt = item.get("blockTime")
        slot = item.get("slot")
        return cls(
            signature=str(sig),
            block_time=int(bt) if isinstance(bt, (int, float)) else None,
            slot=int(slot) if isinstance(slot, (int, float)) else None,
            err=item.get("err"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "signature": self.signature,
            "blockTime": self.block_time,
            "slot": self.slot,
            "err": self.err,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransactionRecord:
        return cls(
            signature=data["signature"],
            block_time=data.get("blockTime"),
            slot=data.get("slot"),
            err=data.get("err"),
        )


@dataclass(frozen=True)
class TokenBalance:
    """SPL token holding of the subject; only positive balances are kept."""

    mint: str
    amount: int
    """Raw amount in base units."""
    decimals: int
    ui_amount: float

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> TokenBalance | None:
        """Parse one getParsedTokenAccountsByOwner value entry."""
        try:
            info = item["account"]["data"]["parsed"]["info"]
            token_amount = info["tokenAmount"]
            return cls(
                mint=str(info["mint"]),
                amount=int(token_amount.get("amount") or 0),
                decimals=int(token_amount.get("decimals") or 0),
                ui_amount=float(token_amount.get("uiAmount") or 0.0),
            )
        except (KeyError, TypeError, ValueError):
            return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "mint": self.mint,
            "amount": self.amount,
            "decimals": self.decimals,
            "uiAmount": self.ui_amount,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenBalance:
        return cls(
            mint=data["mint"],
            amount=int(data.get("amount") or 0),
            decimals=int(data.get("decimals") or 0),
            ui_amount=float(data.get("uiAmount") or 0.0),
        )
