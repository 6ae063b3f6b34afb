"""
Tunable settings for the exposure engine (env or explicit).

Every entry point accepts an explicit ExposureSettings; get_settings() returns the
process-wide instance built from the environment. Invalid values are clamped.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from backend_exposure.config.env import get_rpc_endpoints, get_solscan_api_key, load_exposure_env

DEFAULT_RPC_MAX_ATTEMPTS = 4
DEFAULT_RPC_BASE_DELAY_SEC = 2.0
DEFAULT_RPC_BACKOFF_MULTIPLIER = 1.5
DEFAULT_RPC_REQUEST_TIMEOUT_SEC = 25.0
DEFAULT_RPC_BATCH_SIZE = 25
DEFAULT_SIGNATURES_LIMIT = 100
DEFAULT_PRICE_API_URL = "https://price.jup.ag/v6/price"
DEFAULT_PRICE_TIMEOUT_SEC = 10.0
DEFAULT_COLLECTOR_TIMEOUT_SEC = 30.0
DEFAULT_ANALYSIS_TIMEOUT_SEC = 120.0
# getSignaturesForAddress hard limit
MAX_SIGNATURES_LIMIT = 1000


def _env_int(name: str, default: int) -> int:
    load_exposure_env()
    raw = (os.getenv(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    load_exposure_env()
    raw = (os.getenv(name) or "").strip()
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


@dataclass
class ExposureSettings:
    """Config for chain client, price feed and analysis timeouts."""

    rpc_endpoints: list[str] = field(default_factory=get_rpc_endpoints)
    rpc_max_attempts: int = field(default_factory=lambda: _env_int("RPC_MAX_ATTEMPTS", DEFAULT_RPC_MAX_ATTEMPTS))
    rpc_base_delay_sec: float = field(default_factory=lambda: _env_float("RPC_BASE_DELAY_SEC", DEFAULT_RPC_BASE_DELAY_SEC))
    rpc_backoff_multiplier: float = field(default_factory=lambda: _env_float("RPC_BACKOFF_MULTIPLIER", DEFAULT_RPC_BACKOFF_MULTIPLIER))
    rpc_request_timeout_sec: float = field(default_factory=lambda: _env_float("RPC_REQUEST_TIMEOUT_SEC", DEFAULT_RPC_REQUEST_TIMEOUT_SEC))
    rpc_batch_size: int = field(default_factory=lambda: _env_int("RPC_BATCH_SIZE", DEFAULT_RPC_BATCH_SIZE))
    signatures_limit: int = field(default_factory=lambda: _env_int("SIGNATURES_LIMIT", DEFAULT_SIGNATURES_LIMIT))
    price_api_url: str = field(default_factory=lambda: (os.getenv("PRICE_API_URL") or DEFAULT_PRICE_API_URL).strip())
    price_timeout_sec: float = field(default_factory=lambda: _env_float("PRICE_TIMEOUT_SEC", DEFAULT_PRICE_TIMEOUT_SEC))
    collector_timeout_sec: float = field(default_factory=lambda: _env_float("COLLECTOR_TIMEOUT_SEC", DEFAULT_COLLECTOR_TIMEOUT_SEC))
    analysis_timeout_sec: float = field(default_factory=lambda: _env_float("ANALYSIS_TIMEOUT_SEC", DEFAULT_ANALYSIS_TIMEOUT_SEC))
    solscan_api_key: str = field(default_factory=get_solscan_api_key)
    registry_path: str = field(default_factory=lambda: (os.getenv("EXPOSURE_REGISTRY_PATH") or "").strip())

    def __post_init__(self) -> None:
        self.rpc_endpoints = [u.strip() for u in self.rpc_endpoints if u and u.strip()]
        if not self.rpc_endpoints:
            raise ValueError("at least one RPC endpoint is required")
        if self.rpc_max_attempts < 1:
            self.rpc_max_attempts = 1
        if self.rpc_base_delay_sec < 0:
            self.rpc_base_delay_sec = 0.0
        if self.rpc_backoff_multiplier < 1.0:
            self.rpc_backoff_multiplier = 1.0
        if self.rpc_request_timeout_sec <= 0:
            self.rpc_request_timeout_sec = DEFAULT_RPC_REQUEST_TIMEOUT_SEC
        if self.rpc_batch_size < 1:
            self.rpc_batch_size = 1
        if self.signatures_limit < 1:
            self.signatures_limit = 1
        elif self.signatures_limit > MAX_SIGNATURES_LIMIT:
            self.signatures_limit = MAX_SIGNATURES_LIMIT
        if self.price_timeout_sec <= 0:
            self.price_timeout_sec = DEFAULT_PRICE_TIMEOUT_SEC
        if self.collector_timeout_sec <= 0:
            self.collector_timeout_sec = DEFAULT_COLLECTOR_TIMEOUT_SEC
        if self.analysis_timeout_sec <= 0:
            self.analysis_timeout_sec = DEFAULT_ANALYSIS_TIMEOUT_SEC


_settings: ExposureSettings | None = None


def get_settings() -> ExposureSettings:
    """Return the process-wide settings, built from env on first use."""
    global _settings
    if _settings is None:
        _settings = ExposureSettings()
    return _settings


def reset_settings_for_test() -> None:
    global _settings
    _settings = None
