"""
Raw data collectors built on SolanaRpcClient.

Balance and signature history are load-bearing: their failures propagate
(UpstreamUnavailableError). Token balances and parsed transaction bodies are
optional: on failure or timeout they log a warning and return an empty default
so the rest of the analysis can still complete.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Sequence, TypeVar

from backend_exposure.chain.models import TokenBalance, TransactionRecord
from backend_exposure.chain.parser import ParsedTransaction
from backend_exposure.chain.rpc_client import SolanaRpcClient
from backend_exposure.exposure_logging import get_logger, short_wallet
from backend_exposure.utils.wallet_utils import lamports_to_sol

logger = get_logger(__name__)

T = TypeVar("T")

# Bodies fetched once per analysis and shared by all analyzers
PARSED_TX_LIMIT = 100
# Oldest transactions scanned for initial funding
FUNDING_TX_LIMIT = 20


async def with_default(
    name: str,
    awaitable: Awaitable[T],
    default: T,
    *,
    timeout: float | None = None,
    wallet: str = "",
) -> T:
    """
    Await an optional collector. Exceptions and timeouts are logged and replaced
    by `default`; outer cancellation still propagates.
    """
    try:
        if timeout is not None:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        return await awaitable
    except asyncio.TimeoutError:
        logger.warning("collector_timeout", collector=name, wallet=short_wallet(wallet), timeout_sec=timeout)
    except Exception as e:
        logger.warning("collector_failed", collector=name, wallet=short_wallet(wallet), error=str(e))
    return default


async def fetch_sol_balance(rpc: SolanaRpcClient, address: str) -> float:
    """Balance in SOL. Propagates upstream failure."""
    lamports = await rpc.get_balance(address)
    return lamports_to_sol(lamports)


async def fetch_transaction_history(
    rpc: SolanaRpcClient,
    address: str,
    limit: int | None = None,
) -> list[TransactionRecord]:
    """Signature history, newest first. Propagates upstream failure."""
    return await rpc.get_signatures(address, limit)


async def fetch_token_balances(rpc: SolanaRpcClient, address: str) -> list[TokenBalance]:
    return await rpc.get_token_accounts(address)


def bodies_to_fetch(records: Sequence[TransactionRecord]) -> list[str]:
    """
    Signatures whose bodies the analyzers need: the newest PARSED_TX_LIMIT plus the
    oldest FUNDING_TX_LIMIT, deduplicated, newest first.
    """
    wanted = [r.signature for r in records[:PARSED_TX_LIMIT]]
    seen = set(wanted)
    for r in list(reversed(records))[:FUNDING_TX_LIMIT]:
        if r.signature not in seen:
            seen.add(r.signature)
            wanted.append(r.signature)
    return wanted


async def fetch_parsed_transactions(
    rpc: SolanaRpcClient,
    signatures: Sequence[str],
) -> dict[str, ParsedTransaction]:
    """Bodies keyed by signature; unknown or malformed transactions are left out."""
    if not signatures:
        return {}
    parsed = await rpc.get_parsed_transactions(signatures)
    out: dict[str, ParsedTransaction] = {}
    for sig, tx in zip(signatures, parsed):
        if tx is not None:
            out[sig] = tx
    dropped = len(signatures) - len(out)
    if dropped:
        logger.debug("parsed_transactions_missing", requested=len(signatures), missing=dropped)
    return out


def select_bodies(
    bodies: dict[str, ParsedTransaction],
    records: Sequence[TransactionRecord],
) -> list[ParsedTransaction]:
    """Bodies for `records` in the same order, skipping ones that were not fetched."""
    out: list[ParsedTransaction] = []
    for r in records:
        tx = bodies.get(r.signature)
        if tx is not None:
            out.append(tx)
    return out

