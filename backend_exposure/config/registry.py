"""
Static address registry: known programs, CEX hot wallets, privacy / airdrop / staking
programs, stablecoin and blue-chip mints.

Loaded from a versioned JSON file so the tables can be updated without a release.
EXPOSURE_REGISTRY_PATH (or ExposureSettings.registry_path) points at a replacement file.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from backend_exposure.exposure_logging import get_logger

logger = get_logger(__name__)

DEFAULT_REGISTRY_PATH = Path(__file__).resolve().parent / "known_addresses.json"

TYPE_DEX = "dex"
TYPE_NFT = "nft"
TYPE_CEX = "cex"
TYPE_CONTRACT = "contract"
TYPE_WALLET = "wallet"
PROGRAM_TYPES = frozenset({TYPE_DEX, TYPE_NFT, TYPE_CONTRACT})


def _str_set(value: Any) -> frozenset[str]:
    if not isinstance(value, list):
        return frozenset()
    return frozenset(str(v).strip() for v in value if v)


@dataclass(frozen=True)
class AddressRegistry:
    """Immutable lookup tables shared by all analyzers of one run."""

    version: int = 0
    programs: dict[str, str] = field(default_factory=dict)
    cex_wallets: dict[str, str] = field(default_factory=dict)
    privacy_programs: frozenset[str] = frozenset()
    airdrop_programs: frozenset[str] = frozenset()
    staking_programs: frozenset[str] = frozenset()
    stablecoins: frozenset[str] = frozenset()
    bluechips: frozenset[str] = frozenset()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AddressRegistry:
        programs_raw = data.get("programs") or {}
        programs = {
            str(addr).strip(): str(kind).strip().lower()
            for addr, kind in programs_raw.items()
            if addr and str(kind).strip().lower() in PROGRAM_TYPES
        }
        cex_raw = data.get("cex_wallets") or {}
        if isinstance(cex_raw, list):
            cex_raw = {addr: "" for addr in cex_raw}
        return cls(
            version=int(data.get("version") or 0),
            programs=programs,
            cex_wallets={str(a).strip(): str(n or "") for a, n in cex_raw.items() if a},
            privacy_programs=_str_set(data.get("privacy_programs")),
            airdrop_programs=_str_set(data.get("airdrop_programs")),
            staking_programs=_str_set(data.get("staking_programs")),
            stablecoins=_str_set(data.get("stablecoins")),
            bluechips=_str_set(data.get("bluechips")),
        )

    @classmethod
    def load(cls, path: str | Path | None = None) -> AddressRegistry:
        """Load the registry from JSON. Raises on a missing or malformed file."""
        path = Path(path) if path else DEFAULT_REGISTRY_PATH
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"address registry must be a JSON object: {path}")
        registry = cls.from_dict(data)
        logger.debug(
            "address_registry_loaded",
            path=str(path),
            version=registry.version,
            programs=len(registry.programs),
            cex_wallets=len(registry.cex_wallets),
        )
        return registry

    def counterparty_type(self, address: str) -> str:
        """Known program type, else cex for a known hot wallet, else wallet."""
        kind = self.programs.get(address)
        if kind:
            return kind
        if address in self.cex_wallets:
            return TYPE_CEX
        return TYPE_WALLET

    def is_cex(self, address: str) -> bool:
        return address in self.cex_wallets


_registry: AddressRegistry | None = None


def get_registry(path: str | Path | None = None) -> AddressRegistry:
    """
    Return the registry for `path`, or the process-wide default
    (EXPOSURE_REGISTRY_PATH, else the bundled known_addresses.json).
    """
    global _registry
    if path:
        return AddressRegistry.load(path)
    if _registry is None:
        env_path = (os.getenv("EXPOSURE_REGISTRY_PATH") or "").strip()
        _registry = AddressRegistry.load(env_path or None)
    return _registry
