"""Wallet validation utilities."""

from __future__ import annotations

from solders.pubkey import Pubkey

from backend_exposure.core.exceptions import InvalidAddressError

MIN_ADDRESS_LEN = 32
MAX_ADDRESS_LEN = 44
LAMPORTS_PER_SOL = 1_000_000_000


def is_valid_wallet(w: str) -> bool:
    """Return True if w is a base58 Solana public key of 32-44 characters."""
    if not isinstance(w, str):
        return False
    w = w.strip()
    if not MIN_ADDRESS_LEN <= len(w) <= MAX_ADDRESS_LEN:
        return False
    try:
        Pubkey.from_string(w)
        return True
    except ValueError:
        return False


def require_valid_wallet(w: str) -> str:
    """Return the stripped address or raise InvalidAddressError."""
    if not is_valid_wallet(w):
        raise InvalidAddressError(str(w))
    return w.strip()


def lamports_to_sol(lamports: int | float) -> float:
    return lamports / LAMPORTS_PER_SOL


def short_mint(mint: str) -> str:
    """Display symbol for a mint without a metadata lookup."""
    return mint[:4] + "..."
