"""
Tests for collectors: optional-collector defaults and body selection windows.
"""

from __future__ import annotations

import asyncio

from backend_exposure.chain.collectors import (
    FUNDING_TX_LIMIT,
    PARSED_TX_LIMIT,
    bodies_to_fetch,
    fetch_parsed_transactions,
    fetch_sol_balance,
    select_bodies,
    with_default,
)
from backend_exposure.chain.models import TransactionRecord
from backend_exposure.chain.parser import ParsedTransaction
from backend_exposure.chain.rpc_client import SolanaRpcClient

WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"


def _records(n: int) -> list[TransactionRecord]:
    """n records, newest first."""
    return [TransactionRecord(signature=f"sig{i}", block_time=1_700_000_000 - i * 60) for i in range(n)]


def test_with_default_returns_value():
    async def ok():
        return [1, 2]

    assert asyncio.run(with_default("ok", ok(), [])) == [1, 2]


def test_with_default_swallows_exception():
    async def boom():
        raise RuntimeError("upstream down")

    assert asyncio.run(with_default("boom", boom(), [], wallet=WALLET)) == []


def test_with_default_on_timeout():
    async def slow():
        await asyncio.sleep(5)
        return "late"

    assert asyncio.run(with_default("slow", slow(), "default", timeout=0.01)) == "default"


def test_bodies_to_fetch_small_history_is_whole_history():
    recs = _records(30)
    assert bodies_to_fetch(recs) == [r.signature for r in recs]


def test_bodies_to_fetch_adds_oldest_window():
    recs = _records(150)
    wanted = bodies_to_fetch(recs)
    assert len(wanted) == PARSED_TX_LIMIT + FUNDING_TX_LIMIT
    assert wanted[:PARSED_TX_LIMIT] == [f"sig{i}" for i in range(PARSED_TX_LIMIT)]
    assert "sig149" in wanted
    assert "sig130" in wanted
    assert "sig129" not in wanted
    assert len(set(wanted)) == len(wanted)


def test_bodies_to_fetch_overlap_is_deduplicated():
    recs = _records(110)
    wanted = bodies_to_fetch(recs)
    # oldest 20 are sig90..sig109; sig90..sig99 already in the recent window
    assert len(wanted) == 110


def test_select_bodies_keeps_record_order_and_skips_missing():
    recs = _records(3)
    bodies = {
        "sig2": ParsedTransaction("sig2", 1, (), ()),
        "sig0": ParsedTransaction("sig0", 3, (), ()),
    }
    assert [t.signature for t in select_bodies(bodies, recs)] == ["sig0", "sig2"]


def test_fetch_parsed_transactions_drops_missing(settings, rpc_router, sleep_recorder):
    def get_tx(params):
        if params[0] == "gone":
            return None
        return {"blockTime": 10, "transaction": {"message": {"accountKeys": [WALLET]}}}

    rpc_router.on("getTransaction", get_tx)

    async def body():
        async with SolanaRpcClient(settings, transport=rpc_router.transport(), sleep=sleep_recorder) as rpc:
            return await fetch_parsed_transactions(rpc, ["here", "gone"])

    out = asyncio.run(body())
    assert list(out) == ["here"]
    assert out["here"].account_keys == (WALLET,)


def test_fetch_sol_balance_converts_lamports(settings, rpc_router, sleep_recorder):
    rpc_router.on("getBalance", lambda params: {"value": 1_500_000_000})

    async def body():
        async with SolanaRpcClient(settings, transport=rpc_router.transport(), sleep=sleep_recorder) as rpc:
            return await fetch_sol_balance(rpc, WALLET)

    assert asyncio.run(body()) == 1.5
