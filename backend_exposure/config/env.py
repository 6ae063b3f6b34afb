"""
Environment variable loading for Backend Exposure.

- SOLANA_RPC_URLS: comma-separated RPC endpoint pool (highest precedence)
- HELIUS_API_KEY: single Helius mainnet endpoint
- QUICKNODE_RPC_URL: single QuickNode endpoint
- otherwise the public mainnet pool below, in order of preference
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path
from urllib.parse import urlsplit

from dotenv import load_dotenv

from backend_exposure.exposure_logging import get_logger

logger = get_logger(__name__)

# Project root: config is backend_exposure/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

HELIUS_MAINNET_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"

DEFAULT_RPC_ENDPOINTS: tuple[str, ...] = (
    "https://api.mainnet-beta.solana.com",
    "https://rpc.ankr.com/solana",
    "https://solana-mainnet.rpc.extrnode.com",
    "https://mainnet.rpcpool.com",
)


def load_exposure_env() -> None:
    """Load .env from project root. Safe to call multiple times; existing env vars win."""
    load_dotenv(_ENV_PATH, override=False)


def get_rpc_endpoints() -> list[str]:
    """
    Resolve the ordered RPC endpoint pool from env.
    Order: SOLANA_RPC_URLS > HELIUS_API_KEY > QUICKNODE_RPC_URL > public defaults.
    """
    load_exposure_env()
    raw = (os.getenv("SOLANA_RPC_URLS") or "").strip()
    if raw:
        urls = [u.strip() for u in raw.split(",") if u.strip()]
        if urls:
            return urls
    key = (os.getenv("HELIUS_API_KEY") or "").strip()
    if key:
        return [HELIUS_MAINNET_URL_TEMPLATE.format(key=key)]
    quicknode = (os.getenv("QUICKNODE_RPC_URL") or "").strip()
    if quicknode:
        return [quicknode]
    return list(DEFAULT_RPC_ENDPOINTS)


def mask_endpoint(url: str) -> str:
    """Strip query string and path tokens so API keys never reach the logs."""
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return url.split("?")[0]
    return f"{parts.scheme}://{parts.netloc}"


def get_solscan_api_key() -> str:
    load_exposure_env()
    return (os.getenv("SOLSCAN_API_KEY") or "").strip()
