"""
P&L estimate for memecoin and volatile holdings.

Trades are reconstructed from SPL transfer / transferChecked instructions that
carry a mint: the subject as destination is a buy, as source or authority a sell.
Unrealized P&L is currentHolding * currentPrice.

Approximation: trade prices are not reconstructed, so there is no cost basis.
realizedPnL, average buy/sell prices and pnlPercentage are always None, and
totalPnL equals the unrealized value. Treat the output as an exposure hint, not a ledger.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from backend_exposure.analytics.token_risk import (
    CATEGORY_MEMECOIN,
    CATEGORY_UNKNOWN,
    CATEGORY_VOLATILE,
    TokenRiskAnalysis,
)
from backend_exposure.chain.models import TokenBalance
from backend_exposure.chain.parser import ParsedTransaction
from backend_exposure.utils.wallet_utils import short_mint

TRADE_BUY = "buy"
TRADE_SELL = "sell"
PNL_CATEGORIES = frozenset({CATEGORY_MEMECOIN, CATEGORY_VOLATILE})


@dataclass(frozen=True)
class TokenPnL:
    mint: str
    symbol: str
    category: str
    total_bought: float
    total_sold: float
    current_holding: float
    current_price: float | None = None
    avg_buy_price: float | None = None
    avg_sell_price: float | None = None
    realized_pnl: float | None = None
    unrealized_pnl: float | None = None
    total_pnl: float | None = None
    pnl_percentage: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "mint": self.mint,
            "symbol": self.symbol,
            "category": self.category,
            "totalBought": self.total_bought,
            "totalSold": self.total_sold,
            "currentHolding": self.current_holding,
            "currentPrice": self.current_price,
            "avgBuyPrice": self.avg_buy_price,
            "avgSellPrice": self.avg_sell_price,
            "realizedPnL": self.realized_pnl,
            "unrealizedPnL": self.unrealized_pnl,
            "totalPnL": self.total_pnl,
            "pnlPercentage": self.pnl_percentage,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TokenPnL:
        return cls(
            mint=data["mint"],
            symbol=data.get("symbol") or short_mint(data["mint"]),
            category=data.get("category") or CATEGORY_UNKNOWN,
            total_bought=float(data.get("totalBought") or 0.0),
            total_sold=float(data.get("totalSold") or 0.0),
            current_holding=float(data.get("currentHolding") or 0.0),
            current_price=data.get("currentPrice"),
            avg_buy_price=data.get("avgBuyPrice"),
            avg_sell_price=data.get("avgSellPrice"),
            realized_pnl=data.get("realizedPnL"),
            unrealized_pnl=data.get("unrealizedPnL"),
            total_pnl=data.get("totalPnL"),
            pnl_percentage=data.get("pnlPercentage"),
        )


@dataclass(frozen=True)
class PnLEstimate:
    tokens: tuple[TokenPnL, ...] = ()
    total_realized_pnl: float | None = None
    total_unrealized_pnl: float | None = None
    total_pnl: float | None = None
    win_count: int = 0
    loss_count: int = 0
    biggest_win: TokenPnL | None = None
    biggest_loss: TokenPnL | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "tokens": [t.to_dict() for t in self.tokens],
            "totalRealizedPnL": self.total_realized_pnl,
            "totalUnrealizedPnL": self.total_unrealized_pnl,
            "totalPnL": self.total_pnl,
            "winCount": self.win_count,
            "lossCount": self.loss_count,
            "biggestWin": self.biggest_win.to_dict() if self.biggest_win else None,
            "biggestLoss": self.biggest_loss.to_dict() if self.biggest_loss else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PnLEstimate:
        win = data.get("biggestWin")
        loss = data.get("biggestLoss")
        return cls(
            tokens=tuple(TokenPnL.from_dict(t) for t in data.get("tokens") or []),
            total_realized_pnl=data.get("totalRealizedPnL"),
            total_unrealized_pnl=data.get("totalUnrealizedPnL"),
            total_pnl=data.get("totalPnL"),
            win_count=int(data.get("winCount") or 0),
            loss_count=int(data.get("lossCount") or 0),
            biggest_win=TokenPnL.from_dict(win) if win else None,
            biggest_loss=TokenPnL.from_dict(loss) if loss else None,
        )


def _trade_side(address: str, source: str | None, destination: str | None, authority: str | None) -> str | None:
    if destination == address:
        return TRADE_BUY
    if source == address or authority == address:
        return TRADE_SELL
    return None


def analyze_pnl(
    address: str,
    transactions: Sequence[ParsedTransaction],
    balances: Sequence[TokenBalance],
    token_risk: TokenRiskAnalysis | None,
    prices: dict[str, float] | None,
) -> PnLEstimate:
    categories = token_risk.category_map() if token_risk else {}
    targets = {b.mint for b in balances if categories.get(b.mint) in PNL_CATEGORIES}
    if not targets or not transactions:
        return PnLEstimate()

    # mint -> [bought, sold]; insertion order follows first trade seen
    trades: dict[str, list[float]] = {}
    for tx in transactions:
        for ix in tx.instructions:
            if not ix.is_transfer or ix.mint not in targets:
                continue
            amount = ix.token_amount or 0.0
            side = _trade_side(address, ix.source, ix.destination, ix.authority)
            if side is None or amount <= 0:
                continue
            totals = trades.setdefault(ix.mint, [0.0, 0.0])
            totals[0 if side == TRADE_BUY else 1] += amount

    holdings = {b.mint: b.ui_amount for b in balances}
    known = prices or {}
    rows: list[TokenPnL] = []
    total_unrealized = 0.0
    priced = False
    for mint, (bought, sold) in trades.items():
        holding = holdings.get(mint, 0.0)
        price = known.get(mint)
        unrealized = holding * price if price is not None else None
        if unrealized is not None:
            total_unrealized += unrealized
            priced = True
        rows.append(
            TokenPnL(
                mint=mint,
                symbol=short_mint(mint),
                category=categories.get(mint, CATEGORY_UNKNOWN),
                total_bought=bought,
                total_sold=sold,
                current_holding=holding,
                current_price=price,
                unrealized_pnl=unrealized,
                total_pnl=unrealized,
            )
        )

    wins = [r for r in rows if r.total_pnl is not None and r.total_pnl > 0]
    losses = [r for r in rows if r.total_pnl is not None and r.total_pnl < 0]
    rows.sort(key=lambda r: r.unrealized_pnl or 0.0, reverse=True)
    return PnLEstimate(
        tokens=tuple(rows),
        total_unrealized_pnl=total_unrealized if priced else None,
        total_pnl=total_unrealized if priced else None,
        win_count=len(wins),
        loss_count=len(losses),
        biggest_win=max(wins, key=lambda r: r.total_pnl or 0.0) if wins else None,
        biggest_loss=min(losses, key=lambda r: r.total_pnl or 0.0) if losses else None,
    )
