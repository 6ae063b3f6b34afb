"""
Tests for the price feed, net-worth valuation and the P&L estimate.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from backend_exposure.analytics.net_worth import VALUE_UNKNOWN, analyze_net_worth, usd_range
from backend_exposure.analytics.pnl import analyze_pnl
from backend_exposure.analytics.token_risk import CATEGORY_MEMECOIN, CATEGORY_STABLECOIN, classify_tokens
from backend_exposure.chain.models import TokenBalance
from backend_exposure.chain.parser import Instruction, ParsedTransaction
from backend_exposure.core.exceptions import PriceFeedError
from backend_exposure.pricing.price_feed import PRICE_BATCH_SIZE, SOL_MINT, PriceFeed

WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
MEME = "MemeMint111111111111111111111111111111111"
VOL = "Vo1Mint1111111111111111111111111111111111"
POOL = "Poo1Account11111111111111111111111111111"
TOKEN_ACCOUNT = "TokenAcct1111111111111111111111111111111"

BALANCES = [
    TokenBalance(mint=USDC, amount=100_000_000, decimals=6, ui_amount=100.0),
    TokenBalance(mint=MEME, amount=5_000_000 * 10**9, decimals=9, ui_amount=5_000_000.0),
    TokenBalance(mint=VOL, amount=100_000_000, decimals=6, ui_amount=100.0),
]


def spl(ix_type: str, mint: str, amount: float, source: str, dest: str, authority: str | None = None) -> Instruction:
    return Instruction(
        program="spl-token",
        type=ix_type,
        source=source,
        destination=dest,
        authority=authority,
        token_amount=amount,
        mint=mint,
    )


def tx(sig: str, ts: int, *ixs: Instruction) -> ParsedTransaction:
    return ParsedTransaction(signature=sig, block_time=ts, account_keys=(WALLET, POOL), instructions=ixs)


# --- price feed ---


def _price_handler(fail_from: int | None = None):
    seen: list[list[str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        ids = request.url.params["ids"].split(",")
        seen.append(ids)
        if fail_from is not None and len(seen) > fail_from:
            return httpx.Response(500, text="down")
        data = {m: {"id": m, "price": 1.25} for m in ids if m != "Unpriced"}
        data["Bad"] = {"id": "Bad", "price": "n/a"}
        return httpx.Response(200, json={"data": data})

    return handler, seen


def test_price_feed_chunks_requests(settings):
    handler, seen = _price_handler()
    mints = [SOL_MINT] + [f"Mint{i}" for i in range(PRICE_BATCH_SIZE + 20)] + ["Unpriced", SOL_MINT]

    async def body():
        async with PriceFeed(settings, transport=httpx.MockTransport(handler)) as feed:
            return await feed.get_prices(mints)

    prices = asyncio.run(body())
    assert len(seen) == 2
    assert len(seen[0]) == PRICE_BATCH_SIZE
    assert prices[SOL_MINT] == 1.25
    assert "Unpriced" not in prices
    assert "Bad" not in prices


def test_price_feed_partial_failure_keeps_good_chunks(settings):
    handler, _ = _price_handler(fail_from=1)
    mints = [f"Mint{i}" for i in range(PRICE_BATCH_SIZE + 5)]

    async def body():
        async with PriceFeed(settings, transport=httpx.MockTransport(handler)) as feed:
            return await feed.get_prices(mints)

    prices = asyncio.run(body())
    assert len(prices) == PRICE_BATCH_SIZE


def test_price_feed_total_failure_raises(settings):
    handler, _ = _price_handler(fail_from=0)

    async def body():
        async with PriceFeed(settings, transport=httpx.MockTransport(handler)) as feed:
            return await feed.get_prices([SOL_MINT])

    with pytest.raises(PriceFeedError):
        asyncio.run(body())


def test_price_feed_no_mints_makes_no_request(settings):
    handler, seen = _price_handler()

    async def body():
        async with PriceFeed(settings, transport=httpx.MockTransport(handler)) as feed:
            return await feed.get_prices([])

    assert asyncio.run(body()) == {}
    assert seen == []


# --- net worth ---


@pytest.mark.parametrize(
    "value,label",
    [(0, "<$10"), (9.99, "<$10"), (10, "$10-$100"), (999.0, "$500-$1K"), (1_000_000, "$1M+")],
)
def test_usd_range_buckets(value, label):
    assert usd_range(value) == label


def test_net_worth_with_prices(registry):
    risk = classify_tokens(BALANCES, registry)
    prices = {SOL_MINT: 150.0, USDC: 1.0, VOL: 2.0}
    est = analyze_net_worth(2.0, BALANCES, risk, prices)
    assert est.sol_value_usd == pytest.approx(300.0)
    assert est.token_value_usd == pytest.approx(300.0)
    assert est.total_value_usd == pytest.approx(600.0)
    assert est.value_range == "$500-$1K"
    assert [t.mint for t in est.token_values] == [VOL, USDC, MEME]
    meme = est.token_values[-1]
    assert meme.price_usd is None
    assert meme.value_usd is None
    assert meme.category == CATEGORY_MEMECOIN
    assert est.token_values[1].category == CATEGORY_STABLECOIN


def test_net_worth_without_price_feed(registry):
    est = analyze_net_worth(2.0, BALANCES, classify_tokens(BALANCES, registry), None)
    assert est.total_value_usd is None
    assert est.sol_value_usd is None
    assert est.value_range == VALUE_UNKNOWN
    assert all(t.value_usd is None for t in est.token_values)
    assert len(est.token_values) == 3


def test_net_worth_missing_sol_price():
    est = analyze_net_worth(1.0, BALANCES[:1], None, {USDC: 1.0})
    assert est.total_value_usd is None
    assert est.value_range == VALUE_UNKNOWN
    assert est.token_value_usd == pytest.approx(100.0)


# --- pnl ---


def _pnl_txs() -> list[ParsedTransaction]:
    return [
        tx("p1", 100, spl("transferChecked", MEME, 6_000_000, POOL, WALLET)),
        tx("p2", 200, spl("transferChecked", MEME, 1_000_000, TOKEN_ACCOUNT, POOL, authority=WALLET)),
        tx("p3", 300, spl("transfer", VOL, 100, POOL, WALLET)),
        tx("p4", 400, spl("transferChecked", USDC, 50, POOL, WALLET)),
    ]


def test_pnl_tracks_memecoin_and_volatile(registry):
    risk = classify_tokens(BALANCES, registry)
    prices = {MEME: 0.00001, VOL: 2.0, USDC: 1.0}
    est = analyze_pnl(WALLET, _pnl_txs(), BALANCES, risk, prices)
    assert [t.mint for t in est.tokens] == [VOL, MEME]
    meme = est.tokens[1]
    assert meme.total_bought == pytest.approx(6_000_000)
    assert meme.total_sold == pytest.approx(1_000_000)
    assert meme.current_holding == pytest.approx(5_000_000)
    assert meme.unrealized_pnl == pytest.approx(50.0)
    assert meme.realized_pnl is None
    assert meme.pnl_percentage is None
    assert est.total_unrealized_pnl == pytest.approx(250.0)
    assert est.total_realized_pnl is None
    assert est.win_count == 2
    assert est.loss_count == 0
    assert est.biggest_win.mint == VOL


def test_pnl_without_prices(registry):
    risk = classify_tokens(BALANCES, registry)
    est = analyze_pnl(WALLET, _pnl_txs(), BALANCES, risk, None)
    assert len(est.tokens) == 2
    assert all(t.unrealized_pnl is None for t in est.tokens)
    assert est.total_pnl is None
    assert est.win_count == 0


def test_pnl_ignores_wallets_without_speculative_holdings(registry):
    stable_only = BALANCES[:1]
    est = analyze_pnl(WALLET, _pnl_txs(), stable_only, classify_tokens(stable_only, registry), {})
    assert est.tokens == ()
    assert est.total_pnl is None
