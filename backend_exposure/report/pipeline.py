"""
analyze_wallet: validate -> collect -> analyze (concurrently) -> score -> assemble.

Flow:
1. Address validation (InvalidAddressError before any chain call).
2. Collectors in parallel: balance and signatures are mandatory and propagate
   UpstreamUnavailableError; token balances, social links and the explorer label
   are optional and fall back to empty defaults on failure or timeout.
3. Parsed bodies (fetched once, shared) and the batched price lookup in parallel.
4. Analyzers run concurrently in worker threads; each failure becomes None plus an
   entry in unavailableAnalyses. Net worth and P&L wait for token classification.
5. Scoring fan-in, then the immutable ExposureReport.

The whole run is bounded by settings.analysis_timeout_sec; cancellation reaches
every in-flight chain call through the shared task tree.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, TypeVar

from backend_exposure.analytics.counterparties import analyze_counterparties
from backend_exposure.analytics.funding import analyze_funding_sources
from backend_exposure.analytics.income import analyze_income
from backend_exposure.analytics.net_worth import analyze_net_worth
from backend_exposure.analytics.pnl import analyze_pnl
from backend_exposure.analytics.privacy_hygiene import analyze_privacy_hygiene
from backend_exposure.analytics.time_of_day import analyze_time_of_day
from backend_exposure.analytics.token_risk import classify_tokens
from backend_exposure.analytics.velocity import analyze_velocity
from backend_exposure.analytics.wallet_age import compute_wallet_age
from backend_exposure.chain.collectors import (
    FUNDING_TX_LIMIT,
    PARSED_TX_LIMIT,
    bodies_to_fetch,
    fetch_parsed_transactions,
    fetch_sol_balance,
    fetch_token_balances,
    fetch_transaction_history,
    select_bodies,
    with_default,
)
from backend_exposure.chain.parser import ParsedTransaction
from backend_exposure.chain.rpc_client import SolanaRpcClient
from backend_exposure.config.registry import AddressRegistry, get_registry
from backend_exposure.config.settings import ExposureSettings, get_settings
from backend_exposure.exposure_logging import bind_wallet
from backend_exposure.identity.entity_labels import EntityLabel, fetch_entity_label
from backend_exposure.identity.social import NullSocialResolver, SocialLinks, SocialResolver
from backend_exposure.pricing.price_feed import SOL_MINT, PriceFeed
from backend_exposure.report.report import ExposureReport, utc_now_iso
from backend_exposure.scoring.engine import ExposureInputs, calculate_overall_score, score_categories
from backend_exposure.scoring.models import risk_level
from backend_exposure.utils.wallet_utils import require_valid_wallet

T = TypeVar("T")

# Recent bodies scanned by privacy hygiene and counterparties
RECENT_TX_LIMIT = 50

EntityLabelFetcher = Callable[[str], Awaitable[EntityLabel]]


async def _gather_or_cancel(*aws: Awaitable[Any]) -> list[Any]:
    """gather() that cancels the siblings when one awaitable fails."""
    tasks = [asyncio.ensure_future(a) for a in aws]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class _AnalyzerRunner:
    """Runs pure analyzers off the event loop; failures become None and are recorded."""

    def __init__(self, log: Any) -> None:
        self._log = log
        self.unavailable: list[str] = []

    async def run(self, name: str, fn: Callable[..., T], *args: Any) -> T | None:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, lambda: fn(*args))
        except Exception as e:
            self._log.warning("analyzer_failed", analyzer=name, error=str(e))
            self.unavailable.append(name)
            return None


async def _fetch_prices(price_feed: PriceFeed, mints: list[str], log: Any) -> dict[str, float] | None:
    try:
        return await price_feed.get_prices([SOL_MINT, *mints])
    except Exception as e:
        log.warning("price_feed_unavailable", error=str(e))
        return None


async def _run_analysis(
    address: str,
    settings: ExposureSettings,
    rpc: SolanaRpcClient,
    price_feed: PriceFeed,
    registry: AddressRegistry,
    social_resolver: SocialResolver,
    label_fetcher: EntityLabelFetcher,
    now: float,
) -> ExposureReport:
    log = bind_wallet(address)
    started = time.monotonic()
    timeout = settings.collector_timeout_sec

    sol_balance, records, balances, social, label = await _gather_or_cancel(
        fetch_sol_balance(rpc, address),
        fetch_transaction_history(rpc, address, settings.signatures_limit),
        with_default("token_balances", fetch_token_balances(rpc, address), [], timeout=timeout, wallet=address),
        with_default("social_links", social_resolver.resolve(address), SocialLinks(), timeout=timeout, wallet=address),
        with_default("entity_label", label_fetcher(address), EntityLabel(), timeout=timeout, wallet=address),
    )
    log.info("collectors_done", tx_count=len(records), token_count=len(balances), sol_balance=sol_balance)

    wallet_age = compute_wallet_age(records, now)
    bodies_result, prices = await _gather_or_cancel(
        with_default(
            "parsed_transactions",
            fetch_parsed_transactions(rpc, bodies_to_fetch(records)),
            None,
            timeout=timeout,
            wallet=address,
        ),
        _fetch_prices(price_feed, [b.mint for b in balances], log),
    )
    bodies: dict[str, ParsedTransaction] = bodies_result or {}

    runner = _AnalyzerRunner(log)
    if bodies_result is None:
        runner.unavailable.extend(["funding", "income", "privacy_hygiene", "counterparties", "pnl"])

    async def _needs_bodies(name: str, fn: Callable[..., T], *args: Any) -> T | None:
        if bodies_result is None:
            return None
        return await runner.run(name, fn, *args)

    oldest = select_bodies(bodies, list(reversed(records))[:FUNDING_TX_LIMIT])
    recent = select_bodies(bodies, records[:RECENT_TX_LIMIT])
    window = select_bodies(bodies, records[:PARSED_TX_LIMIT])

    (funding, time_of_day, token_risk, velocity, income, privacy, counterparties) = await asyncio.gather(
        _needs_bodies("funding", analyze_funding_sources, address, oldest, registry),
        runner.run("time_of_day", analyze_time_of_day, records),
        runner.run("token_risk", classify_tokens, balances, registry),
        runner.run("velocity", analyze_velocity, records, wallet_age.age_in_days, now),
        _needs_bodies("income", analyze_income, address, window, registry),
        _needs_bodies("privacy_hygiene", analyze_privacy_hygiene, address, recent, registry),
        _needs_bodies("counterparties", analyze_counterparties, address, recent, registry),
    )
    net_worth, pnl = await asyncio.gather(
        runner.run("net_worth", analyze_net_worth, sol_balance, balances, token_risk, prices),
        _needs_bodies("pnl", analyze_pnl, address, window, balances, token_risk, prices),
    )

    inputs = ExposureInputs(
        address=address,
        sol_balance=sol_balance,
        transactions=records,
        token_balances=balances,
        wallet_age=wallet_age,
        social_links=social,
        funding=funding,
        time_of_day=time_of_day,
        token_risk=token_risk,
        velocity=velocity,
        privacy=privacy,
        now=now,
    )
    categories = score_categories(inputs)
    overall = calculate_overall_score(categories)
    report = ExposureReport(
        address=address,
        overall_score=overall,
        overall_level=risk_level(overall),
        categories=tuple(categories),
        analyzed_at=utc_now_iso(),
        tx_count=len(records),
        token_count=len(balances),
        sol_balance=sol_balance,
        wallet_age=wallet_age,
        social_links=social,
        entity_label=label,
        counterparties=tuple(counterparties or ()),
        funding=funding,
        time_of_day=time_of_day,
        token_risk=token_risk,
        velocity=velocity,
        income=income,
        net_worth=net_worth,
        pnl=pnl,
        privacy_hygiene=privacy,
        unavailable_analyses=tuple(dict.fromkeys(runner.unavailable)),
    )
    log.info(
        "wallet_analyzed",
        overall_score=overall,
        overall_level=report.overall_level,
        unavailable=list(report.unavailable_analyses),
        duration_ms=round((time.monotonic() - started) * 1000),
    )
    return report


async def analyze_wallet(
    address: str,
    *,
    settings: ExposureSettings | None = None,
    rpc: SolanaRpcClient | None = None,
    price_feed: PriceFeed | None = None,
    registry: AddressRegistry | None = None,
    social_resolver: SocialResolver | None = None,
    label_fetcher: EntityLabelFetcher | None = None,
    now: float | None = None,
) -> ExposureReport:
    """
    Full exposure analysis for one address.

    Raises InvalidAddressError for a malformed address (before any network call),
    UpstreamUnavailableError when balance or signature history cannot be fetched,
    and asyncio.TimeoutError when the run exceeds settings.analysis_timeout_sec.
    Clients passed in are left open; clients created here are closed.
    """
    address = require_valid_wallet(address)
    settings = settings or get_settings()
    registry = registry or get_registry(settings.registry_path or None)
    own_rpc = rpc is None
    own_prices = price_feed is None
    rpc = rpc or SolanaRpcClient(settings)
    price_feed = price_feed or PriceFeed(settings)
    if label_fetcher is None:
        async def label_fetcher(addr: str) -> EntityLabel:
            return await fetch_entity_label(addr, settings)

    try:
        return await asyncio.wait_for(
            _run_analysis(
                address,
                settings,
                rpc,
                price_feed,
                registry,
                social_resolver or NullSocialResolver(),
                label_fetcher,
                time.time() if now is None else now,
            ),
            timeout=settings.analysis_timeout_sec,
        )
    finally:
        if own_rpc:
            await rpc.aclose()
        if own_prices:
            await price_feed.aclose()
