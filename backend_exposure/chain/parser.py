"""
Solana transaction parser: jsonParsed getTransaction payloads to structured records.

Extracts account keys (including loaded addresses of versioned transactions) and the
parsed transfer instructions that the analyzers walk. Purely structural; no scoring
or classification logic. Malformed payloads parse to None rather than raising.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from backend_exposure.exposure_logging import get_logger

logger = get_logger(__name__)

# Instruction types carrying a transfer
TRANSFER_TYPES = frozenset({"transfer", "transferChecked"})
# blockTime sentinel for transactions the node did not timestamp
MISSING_BLOCK_TIME = 0


@dataclass(frozen=True)
class Instruction:
    """One top-level instruction; transfer fields are set only for parsed transfers."""

    program_id: str | None = None
    program: str | None = None
    """Parser name reported by the node (system, spl-token, ...)."""
    type: str | None = None
    source: str | None = None
    destination: str | None = None
    authority: str | None = None
    lamports: int | None = None
    """Native SOL amount for system transfers."""
    token_amount: float | None = None
    """UI amount for SPL transfers (tokenAmount.uiAmount, else raw amount)."""
    mint: str | None = None

    @property
    def is_transfer(self) -> bool:
        return self.type in TRANSFER_TYPES

    @property
    def is_sol_transfer(self) -> bool:
        return self.type == "transfer" and bool(self.lamports)


@dataclass(frozen=True)
class ParsedTransaction:
    """
    Structured body of one transaction.

    block_time is MISSING_BLOCK_TIME (0) when the node returned no blockTime.
    """

    signature: str
    block_time: int
    account_keys: tuple[str, ...]
    instructions: tuple[Instruction, ...]
    slot: int | None = None
    err: Any = None

    @property
    def has_block_time(self) -> bool:
        return self.block_time != MISSING_BLOCK_TIME


def _get_account_keys(message: dict[str, Any], meta: dict[str, Any] | None) -> list[str]:
    """
    Resolve accountKeys to base58 strings (handles json vs jsonParsed).
    For versioned transactions, appends meta.loadedAddresses (writable + readonly).
    """
    keys = message.get("accountKeys") or []
    out: list[str] = []
    for k in keys:
        if isinstance(k, str):
            out.append(k)
        elif isinstance(k, dict) and k.get("pubkey"):
            out.append(str(k["pubkey"]))
    loaded = (meta or {}).get("loadedAddresses") or {}
    for role in ("writable", "readonly"):
        for addr in loaded.get(role) or []:
            if isinstance(addr, str) and addr not in out:
                out.append(addr)
    return out


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _token_ui_amount(info: dict[str, Any]) -> float | None:
    token_amount = info.get("tokenAmount")
    if isinstance(token_amount, dict):
        ui = token_amount.get("uiAmount")
        if isinstance(ui, (int, float)):
            return float(ui)
        ui_str = token_amount.get("uiAmountString")
        if ui_str:
            try:
                return float(ui_str)
            except ValueError:
                return None
    return None


def parse_instruction(raw: dict[str, Any]) -> Instruction:
    """Parse one jsonParsed instruction; unparsed (compiled) instructions keep only the program id."""
    program_id = raw.get("programId")
    program = raw.get("program")
    parsed = raw.get("parsed")
    if not isinstance(parsed, dict):
        return Instruction(program_id=program_id, program=program)
    info = parsed.get("info") if isinstance(parsed.get("info"), dict) else {}
    return Instruction(
        program_id=program_id,
        program=program,
        type=parsed.get("type"),
        source=info.get("source"),
        destination=info.get("destination"),
        authority=info.get("authority") or info.get("multisigAuthority"),
        lamports=_to_int(info.get("lamports")),
        token_amount=_token_ui_amount(info),
        mint=info.get("mint"),
    )


def parse_transaction(signature: str, payload: dict[str, Any] | None) -> ParsedTransaction | None:
    """
    Parse a getTransaction (jsonParsed) result. Returns None for a missing or
    malformed payload (unknown signature, pruned ledger, unexpected shape).
    """
    if not isinstance(payload, dict):
        return None
    tx = payload.get("transaction")
    if not isinstance(tx, dict):
        return None
    message = tx.get("message")
    if not isinstance(message, dict):
        return None
    meta = payload.get("meta") if isinstance(payload.get("meta"), dict) else None
    instructions = tuple(
        parse_instruction(ix) for ix in (message.get("instructions") or []) if isinstance(ix, dict)
    )
    bt = payload.get("blockTime")
    block_time = int(bt) if isinstance(bt, (int, float)) and bt else MISSING_BLOCK_TIME
    sig = signature
    if not sig:
        sigs = tx.get("signatures") or []
        sig = sigs[0] if sigs else ""
    return ParsedTransaction(
        signature=sig,
        block_time=block_time,
        account_keys=tuple(_get_account_keys(message, meta)),
        instructions=instructions,
        slot=_to_int(payload.get("slot")),
        err=(meta or {}).get("err"),
    )
