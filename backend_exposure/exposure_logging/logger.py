"""
Structured logging for the exposure engine.

Every record carries an ISO timestamp, level, logger name and event_type (the
snake_case first argument), plus keyword context. Addresses passed as wallet=,
source= or endpoint= never reach the output in full: wallets are truncated and
endpoint URLs lose path and query (API keys live there).

LOG_LEVEL picks the threshold; LOG_FORMAT=json (default) renders one JSON object
per line on stderr, anything else the structlog console renderer.

Only stdlib logging and structlog are imported here so any module can log
without circular imports.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

WALLET_PREFIX_LEN = 16
# Context keys holding addresses that are truncated on output
ADDRESS_KEYS = ("wallet", "source", "funder")


def short_wallet(wallet: str | None) -> str:
    """Truncate an address for log output."""
    wallet = wallet or ""
    if len(wallet) > WALLET_PREFIX_LEN:
        return wallet[:WALLET_PREFIX_LEN] + "..."
    return wallet


def _add_timestamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog's 'event' becomes event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def _redact(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in ADDRESS_KEYS:
        value = event_dict.get(key)
        if isinstance(value, str) and not value.endswith("..."):
            event_dict[key] = short_wallet(value)
    endpoint = event_dict.get("endpoint")
    if isinstance(endpoint, str) and "?" in endpoint:
        parts = urlsplit(endpoint)
        event_dict["endpoint"] = f"{parts.scheme}://{parts.netloc}" if parts.netloc else endpoint.split("?")[0]
    return event_dict


def configure_structlog(level: str | None = None, fmt: str | None = None) -> None:
    """(Re)configure structlog; called once at import with the env defaults."""
    level_value = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    renderer: Any
    if (fmt or LOG_FORMAT) == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            _add_timestamp,
            _event_type,
            _redact,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Module logger:

        logger = get_logger(__name__)
        logger.warning("rpc_attempt_failed", method="getBalance", endpoint=url, attempt=2)
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_wallet(wallet: str) -> structlog.BoundLogger:
    """Logger with the analyzed wallet bound to every call (one per analysis)."""
    return get_logger("backend_exposure.analysis").bind(wallet=short_wallet(wallet))
