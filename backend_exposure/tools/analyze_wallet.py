#!/usr/bin/env python3
"""
Run a full exposure analysis for one wallet and print the JSON report.

Exit codes: 0 ok, 1 upstream unavailable or timeout, 2 invalid address.

Usage:
  python -m backend_exposure.tools.analyze_wallet <address> [--limit N] [--pretty]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace

from backend_exposure.config.env import load_exposure_env
from backend_exposure.config.settings import get_settings
from backend_exposure.core.exceptions import InvalidAddressError, UpstreamUnavailableError
from backend_exposure.exposure_logging import get_logger, short_wallet
from backend_exposure.report.pipeline import analyze_wallet

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_UPSTREAM = 1
EXIT_INVALID_ADDRESS = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Wallet exposure analysis (Solana mainnet)")
    parser.add_argument("address", help="Base58 wallet address")
    parser.add_argument("--limit", type=int, default=None, help="Signatures to fetch (default: SIGNATURES_LIMIT)")
    parser.add_argument("--pretty", action="store_true", help="Indent JSON output")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    load_exposure_env()
    settings = get_settings()
    if args.limit is not None:
        settings = replace(settings, signatures_limit=args.limit)
    try:
        report = asyncio.run(analyze_wallet(args.address, settings=settings))
    except InvalidAddressError as e:
        print(str(e), file=sys.stderr)
        return EXIT_INVALID_ADDRESS
    except UpstreamUnavailableError as e:
        logger.error("analyze_wallet_upstream_unavailable", wallet=short_wallet(args.address), endpoint=e.endpoint, attempts=e.attempts)
        print(str(e), file=sys.stderr)
        return EXIT_UPSTREAM
    except asyncio.TimeoutError:
        logger.error("analyze_wallet_timeout", wallet=short_wallet(args.address), timeout_sec=settings.analysis_timeout_sec)
        print(f"analysis timed out after {settings.analysis_timeout_sec}s", file=sys.stderr)
        return EXIT_UPSTREAM
    print(json.dumps(report.to_dict(), indent=2 if args.pretty else None))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
