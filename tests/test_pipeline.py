"""
End-to-end tests for analyze_wallet and the CLI. Chain, price and label lookups are
served by MockTransport routers; nothing touches the network.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from backend_exposure.analytics.funding import FundingAnalysis
from backend_exposure.analytics.privacy_hygiene import SIGNAL_REPEATED_AMOUNTS, PrivacyHygieneProfile
from backend_exposure.analytics.velocity import VelocityProfile
from backend_exposure.chain.rpc_client import SolanaRpcClient
from backend_exposure.config.registry import TYPE_CEX
from backend_exposure.core.exceptions import InvalidAddressError, UpstreamUnavailableError
from backend_exposure.identity.entity_labels import EntityLabel
from backend_exposure.identity.social import NullSocialResolver, SocialLinks
from backend_exposure.pricing.price_feed import SOL_MINT, PriceFeed
from backend_exposure.report.pipeline import analyze_wallet
from backend_exposure.report.report import ExposureReport
from backend_exposure.tools import analyze_wallet as cli

WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
BINANCE = "H8sMJSCQxfKiFTCfDR3DUMLPwcRbM61LGFJ8N4dK3WjS"
ALICE = "A1iceWa11et11111111111111111111111111111"
BOB = "BobWa11et111111111111111111111111111111"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
SYSTEM = "11111111111111111111111111111111"

T0 = 1_700_000_000
DAY = 86400
NOW = T0 + 12 * DAY


def _history() -> dict[str, tuple[int, str, str, float]]:
    """signature -> (blockTime, source, destination, SOL)."""
    txs = {"fund": (T0, BINANCE, WALLET, 5.0)}
    for i in range(10):
        t = T0 + (i + 1) * DAY
        txs[f"recv{i}"] = (t, ALICE, WALLET, 1.5)
        txs[f"send{i}"] = (t + 5, WALLET, BOB, 1.5)
    return txs


def _install_chain(router) -> None:
    history = _history()
    newest_first = sorted(history, key=lambda s: history[s][0], reverse=True)

    def get_tx(params):
        ts, src, dst, sol = history[params[0]]
        return {
            "blockTime": ts,
            "slot": ts // 10,
            "meta": {"err": None},
            "transaction": {
                "signatures": [params[0]],
                "message": {
                    "accountKeys": [{"pubkey": src}, {"pubkey": dst}, {"pubkey": SYSTEM}],
                    "instructions": [
                        {
                            "program": "system",
                            "programId": SYSTEM,
                            "parsed": {
                                "type": "transfer",
                                "info": {"source": src, "destination": dst, "lamports": int(sol * 1e9)},
                            },
                        }
                    ],
                },
            },
        }

    router.on("getBalance", lambda params: {"value": 4_000_000_000})
    router.on(
        "getSignaturesForAddress",
        lambda params: [
            {"signature": s, "blockTime": history[s][0], "slot": history[s][0] // 10, "err": None}
            for s in newest_first[: params[1]["limit"]]
        ],
    )
    router.on(
        "getTokenAccountsByOwner",
        lambda params: {
            "value": [
                {
                    "pubkey": "UsdcAccount",
                    "account": {
                        "data": {
                            "parsed": {
                                "info": {
                                    "mint": USDC,
                                    "tokenAmount": {"amount": "100000000", "decimals": 6, "uiAmount": 100.0},
                                }
                            }
                        }
                    },
                }
            ]
        },
    )
    router.on("getTransaction", get_tx)


def _price_transport() -> httpx.MockTransport:
    return httpx.MockTransport(
        lambda request: httpx.Response(
            200, json={"data": {SOL_MINT: {"price": 150.0}, USDC: {"price": 1.0}}}
        )
    )


class _Social:
    async def resolve(self, address: str) -> SocialLinks:
        return SocialLinks(twitter="exposed_dev")


async def _label(address: str) -> EntityLabel:
    return EntityLabel(account_label="Test Desk", is_known_entity=True, entity_risk_level="neutral")


def _analyze(settings, transport, sleep, **overrides) -> ExposureReport:
    async def body():
        rpc = SolanaRpcClient(settings, transport=transport, sleep=sleep)
        prices = PriceFeed(settings, transport=_price_transport())
        try:
            return await analyze_wallet(
                WALLET,
                settings=settings,
                rpc=rpc,
                price_feed=prices,
                registry=overrides.pop("registry"),
                social_resolver=overrides.pop("social_resolver", _Social()),
                label_fetcher=overrides.pop("label_fetcher", _label),
                now=NOW,
            )
        finally:
            await rpc.aclose()
            await prices.aclose()

    return asyncio.run(body())


def test_full_analysis(settings, registry, rpc_router, sleep_recorder):
    _install_chain(rpc_router)
    report = _analyze(settings, rpc_router.transport(), sleep_recorder, registry=registry)

    assert report.address == WALLET
    assert report.tx_count == 21
    assert report.token_count == 1
    assert report.sol_balance == pytest.approx(4.0)
    assert report.unavailable_analyses == ()
    assert [c.name for c in report.categories][0] == "Wallet Activity"
    assert 0 <= report.overall_score <= 100

    assert report.wallet_age.age_in_days == 12
    assert report.wallet_age.is_new is True
    assert report.funding.has_cex_funding is True
    assert report.funding.sources[0].address == BINANCE
    assert report.funding.sources[0].is_initial_funding is True
    assert report.income.total_income == pytest.approx(20.0)
    assert report.net_worth.total_value_usd == pytest.approx(700.0)
    assert report.net_worth.value_range == "$500-$1K"
    assert report.privacy_hygiene.has_consistent_amounts is True
    assert SIGNAL_REPEATED_AMOUNTS in report.privacy_hygiene.risk_signals
    assert report.category("Privacy Hygiene").score == 35
    assert report.category("Social Exposure").score >= 40
    assert report.entity_label.account_label == "Test Desk"
    by_addr = {c.address: c for c in report.counterparties}
    assert by_addr[BINANCE].type == TYPE_CEX
    assert by_addr[ALICE].tx_count == 10
    assert WALLET not in by_addr
    assert sleep_recorder.delays == []


def test_empty_wallet_gets_default_analyses(settings, registry, rpc_router, sleep_recorder):
    rpc_router.on("getBalance", lambda params: {"value": 0})
    rpc_router.on("getSignaturesForAddress", lambda params: [])
    rpc_router.on("getTokenAccountsByOwner", lambda params: {"value": []})

    async def no_label(address: str) -> EntityLabel:
        return EntityLabel()

    report = _analyze(
        settings,
        rpc_router.transport(),
        sleep_recorder,
        registry=registry,
        social_resolver=NullSocialResolver(),
        label_fetcher=no_label,
    )
    assert report.tx_count == 0
    assert report.token_count == 0
    assert report.sol_balance == 0.0
    assert report.unavailable_analyses == ()
    assert report.wallet_age.age_in_days is None
    assert report.funding == FundingAnalysis()
    assert report.privacy_hygiene == PrivacyHygieneProfile()
    assert report.velocity == VelocityProfile()
    assert report.time_of_day.insufficient_data is True
    assert report.counterparties == ()
    assert [c.score for c in report.categories] == [0, 0, 0, 0, 0, 15]
    assert report.overall_score == 2
    assert report.overall_level == "Low"
    assert "getTransaction" not in [method for _, method in rpc_router.calls]


def test_report_round_trips_through_json(settings, registry, rpc_router, sleep_recorder):
    _install_chain(rpc_router)
    report = _analyze(settings, rpc_router.transport(), sleep_recorder, registry=registry)
    data = json.loads(json.dumps(report.to_dict()))
    assert data["solscanLabel"]["accountLabel"] == "Test Desk"
    assert data["cached"] is False
    restored = ExposureReport.from_dict(data)
    assert restored == report
    assert [c.score for c in restored.categories] == [c.score for c in report.categories]
    cached = restored.mark_cached()
    assert cached.cached is True
    assert cached.to_dict()["overallScore"] == report.overall_score


def test_failed_body_fetch_degrades_to_partial_report(settings, registry, rpc_router, sleep_recorder):
    _install_chain(rpc_router)

    def handler(request: httpx.Request) -> httpx.Response:
        # batched getTransaction always fails; single calls succeed
        if isinstance(json.loads(request.content), list):
            return httpx.Response(503, text="overloaded")
        return rpc_router(request)

    report = _analyze(settings, httpx.MockTransport(handler), sleep_recorder, registry=registry)
    assert set(report.unavailable_analyses) == {"funding", "income", "privacy_hygiene", "counterparties", "pnl"}
    assert report.funding is None
    assert report.privacy_hygiene is None
    assert report.counterparties == ()
    assert report.time_of_day is not None
    assert report.net_worth is not None
    assert report.category("Privacy Hygiene").score == 30
    assert "Funding source analysis unavailable" in report.category("Address Linkability").signals
    assert sleep_recorder.delays == [2.0, 3.0, 4.5]


def test_failing_optional_collectors_use_defaults(settings, registry, rpc_router, sleep_recorder):
    _install_chain(rpc_router)

    class _Broken:
        async def resolve(self, address: str) -> SocialLinks:
            raise RuntimeError("resolver down")

    async def broken_label(address: str) -> EntityLabel:
        raise RuntimeError("explorer down")

    report = _analyze(
        settings,
        rpc_router.transport(),
        sleep_recorder,
        registry=registry,
        social_resolver=_Broken(),
        label_fetcher=broken_label,
    )
    assert report.social_links == SocialLinks()
    assert report.entity_label == EntityLabel()
    assert report.category("Social Exposure").score == 0


def test_upstream_failure_propagates(settings, registry, rpc_router, sleep_recorder):
    _install_chain(rpc_router)
    rpc_router.fail_hosts = {"rpc-a.test", "rpc-b.test", "rpc-c.test"}
    with pytest.raises(UpstreamUnavailableError) as exc_info:
        _analyze(settings, rpc_router.transport(), sleep_recorder, registry=registry)
    assert exc_info.value.attempts == 4


def test_invalid_address_rejected_before_any_call(settings, registry, rpc_router, sleep_recorder):
    async def body():
        async with SolanaRpcClient(settings, transport=rpc_router.transport(), sleep=sleep_recorder) as rpc:
            await analyze_wallet("not-a-wallet", settings=settings, rpc=rpc, registry=registry)

    with pytest.raises(InvalidAddressError):
        asyncio.run(body())
    assert rpc_router.calls == []


def test_analysis_timeout(settings, registry, rpc_router, sleep_recorder):
    _install_chain(rpc_router)
    settings.analysis_timeout_sec = 0.2

    async def slow_label(address: str) -> EntityLabel:
        await asyncio.sleep(30)
        return EntityLabel()

    with pytest.raises(asyncio.TimeoutError):
        _analyze(settings, rpc_router.transport(), sleep_recorder, registry=registry, label_fetcher=slow_label)


# --- CLI ---


def test_cli_invalid_address_exit_code(capsys):
    assert cli.main(["definitely-not-base58!"]) == cli.EXIT_INVALID_ADDRESS
    assert "Invalid Solana address" in capsys.readouterr().err


def test_cli_upstream_exit_code(monkeypatch, capsys):
    async def unavailable(address, **kwargs):
        raise UpstreamUnavailableError("getBalance", "https://rpc-a.test", 4)

    monkeypatch.setattr(cli, "analyze_wallet", unavailable)
    assert cli.main([WALLET, "--limit", "10"]) == cli.EXIT_UPSTREAM


def test_cli_prints_report(monkeypatch, capsys, settings, registry, rpc_router, sleep_recorder):
    _install_chain(rpc_router)
    report = _analyze(settings, rpc_router.transport(), sleep_recorder, registry=registry)

    async def fake(address, **kwargs):
        assert kwargs["settings"].signatures_limit == 10
        return report

    monkeypatch.setattr(cli, "analyze_wallet", fake)
    assert cli.main([WALLET, "--limit", "10"]) == cli.EXIT_OK
    out = json.loads(capsys.readouterr().out)
    assert out["address"] == WALLET
    assert out["overallScore"] == report.overall_score
