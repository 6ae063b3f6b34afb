"""
Tests for privacy-hygiene signals and counterparty aggregation.
"""

from __future__ import annotations

import pytest

from backend_exposure.analytics.counterparties import analyze_counterparties
from backend_exposure.analytics.privacy_hygiene import (
    SIGNAL_IMMEDIATE_REUSE,
    SIGNAL_PRIVACY_PROTOCOL,
    SIGNAL_QUICK_MOVEMENT,
    SIGNAL_REPEATED_AMOUNTS,
    analyze_privacy_hygiene,
    average_receive_to_send_delay,
    has_repeated_amounts,
)
from backend_exposure.chain.parser import MISSING_BLOCK_TIME, Instruction, ParsedTransaction
from backend_exposure.config.registry import TYPE_CEX, TYPE_CONTRACT, TYPE_DEX, TYPE_WALLET

WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
PRIVACY = "2VvQ11q8xrn5tkPNyeraRKLzMjz6tYP4M4UdXY3t8xCN"
BINANCE = "H8sMJSCQxfKiFTCfDR3DUMLPwcRbM61LGFJ8N4dK3WjS"
JUPITER = "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4"
SYSTEM = "11111111111111111111111111111111"
ALICE = "A1iceWa11et11111111111111111111111111111"
BOB = "BobWa11et111111111111111111111111111111"

T0 = 1_700_000_000


def transfer_tx(sig: str, ts: int, source: str, dest: str, sol: float, *extra: str) -> ParsedTransaction:
    ix = Instruction(program_id=SYSTEM, type="transfer", source=source, destination=dest, lamports=int(sol * 1e9))
    return ParsedTransaction(
        signature=sig,
        block_time=ts,
        account_keys=tuple(dict.fromkeys((source, dest, SYSTEM) + extra)),
        instructions=(ix,),
    )


def test_fast_churn_wallet_flags_quick_movement_and_repeated_amounts(registry):
    txs = []
    for i in range(10):
        t = T0 + i * 3600
        txs.append(transfer_tx(f"r{i}", t, ALICE, WALLET, 1.5))
        txs.append(transfer_tx(f"s{i}", t + 5, WALLET, BOB, 1.5))
    profile = analyze_privacy_hygiene(WALLET, txs, registry)
    assert profile.avg_time_delay_after_receive == pytest.approx(5.0)
    assert profile.has_consistent_amounts is True
    assert profile.has_privacy_attempts is False
    assert SIGNAL_QUICK_MOVEMENT in profile.risk_signals
    assert SIGNAL_REPEATED_AMOUNTS in profile.risk_signals
    assert SIGNAL_PRIVACY_PROTOCOL not in profile.risk_signals


def test_untimed_transfers_do_not_skew_receive_delay(registry):
    txs = [transfer_tx("untimed", MISSING_BLOCK_TIME, ALICE, WALLET, 2.0)]
    for i in range(10):
        t = T0 + i * 3600
        txs.append(transfer_tx(f"r{i}", t, ALICE, WALLET, 1.5))
        txs.append(transfer_tx(f"s{i}", t + 5, WALLET, BOB, 1.5))
    profile = analyze_privacy_hygiene(WALLET, txs, registry)
    assert profile.avg_time_delay_after_receive == pytest.approx(5.0)
    assert SIGNAL_QUICK_MOVEMENT in profile.risk_signals


def test_privacy_program_followed_by_immediate_reuse(registry):
    txs = [
        transfer_tx("p", T0, WALLET, ALICE, 0.7, PRIVACY),
        transfer_tx("n", T0 + 300, WALLET, BOB, 2.3),
        transfer_tx("m", T0 + 9000, ALICE, WALLET, 4.1),
    ]
    profile = analyze_privacy_hygiene(WALLET, txs, registry)
    assert profile.privacy_program_interactions == 1
    assert profile.has_privacy_attempts is True
    assert profile.immediate_reuse_after_privacy is True
    assert profile.risk_signals[:2] == (SIGNAL_PRIVACY_PROTOCOL, SIGNAL_IMMEDIATE_REUSE)
    assert profile.risk_signals.count(SIGNAL_PRIVACY_PROTOCOL) == 1


def test_privacy_reuse_requires_strictly_later_transaction(registry):
    txs = [
        transfer_tx("p", T0, WALLET, ALICE, 0.7, PRIVACY),
        transfer_tx("q", T0, WALLET, BOB, 2.3),
        transfer_tx("late", T0 + 3600, ALICE, WALLET, 4.1),
    ]
    profile = analyze_privacy_hygiene(WALLET, txs, registry)
    assert profile.immediate_reuse_after_privacy is False


def test_privacy_needs_two_transactions(registry):
    profile = analyze_privacy_hygiene(WALLET, [transfer_tx("a", T0, ALICE, WALLET, 1.0, PRIVACY)], registry)
    assert profile.risk_signals == ()
    assert profile.avg_time_delay_after_receive is None


def test_average_receive_to_send_delay():
    assert average_receive_to_send_delay([10, 20], [15, 100]) == pytest.approx(42.5)
    assert average_receive_to_send_delay([100], [50]) is None


def test_has_repeated_amounts_rounds_to_cents():
    assert has_repeated_amounts([1.004, 0.996, 5.0, 7.0]) is True
    assert has_repeated_amounts([1.0, 2.0, 3.0, 4.0]) is False
    assert has_repeated_amounts([1.0, 1.0]) is False


# --- counterparties ---


def test_counterparties_ranked_and_typed(registry):
    txs = [
        ParsedTransaction("a", T0, (WALLET, BINANCE, SYSTEM, BINANCE), ()),
        ParsedTransaction("b", T0 + 10, (WALLET, JUPITER, BINANCE), ()),
        ParsedTransaction("c", T0 + 5, (ALICE, WALLET, JUPITER), ()),
    ]
    result = analyze_counterparties(WALLET, txs, registry)
    by_addr = {c.address: c for c in result}
    assert WALLET not in by_addr
    # duplicate keys within one transaction count once
    assert by_addr[BINANCE].tx_count == 2
    assert by_addr[BINANCE].last_interaction == T0 + 10
    assert by_addr[BINANCE].type == TYPE_CEX
    assert by_addr[JUPITER].type == TYPE_DEX
    assert by_addr[SYSTEM].type == TYPE_CONTRACT
    assert by_addr[ALICE].type == TYPE_WALLET
    assert [c.address for c in result] == [BINANCE, JUPITER, SYSTEM, ALICE]


def test_counterparties_limit():
    from backend_exposure.config.registry import AddressRegistry

    txs = [ParsedTransaction(f"t{i}", T0 + i, (WALLET, f"Peer{i:02d}"), ()) for i in range(30)]
    result = analyze_counterparties(WALLET, txs, AddressRegistry())
    assert len(result) == 20
    assert result[0].address == "Peer00"
