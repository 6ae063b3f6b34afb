"""
Pytest fixtures for exposure engine tests. Network is never touched: RPC and price
calls go through httpx.MockTransport and backoff sleeps are recorded, not slept.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from backend_exposure.config.registry import AddressRegistry
from backend_exposure.config.settings import ExposureSettings

ENDPOINTS = ["https://rpc-a.test", "https://rpc-b.test", "https://rpc-c.test"]
PRICE_URL = "https://price.test/v6/price"


class RpcRouter:
    """
    JSON-RPC responder for MockTransport: method -> handler(params) -> result.
    Handlers may raise RpcFailure to answer with an HTTP error. Single and batch
    requests are supported; every hit is recorded as (endpoint, method).
    """

    def __init__(self) -> None:
        self.handlers: dict[str, Callable[[list[Any]], Any]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_hosts: set[str] = set()

    def on(self, method: str, handler: Callable[[list[Any]], Any]) -> None:
        self.handlers[method] = handler

    def _answer(self, req: dict[str, Any]) -> dict[str, Any]:
        handler = self.handlers.get(req["method"])
        if handler is None:
            return {"jsonrpc": "2.0", "id": req["id"], "error": {"code": -32601, "message": "Method not found"}}
        return {"jsonrpc": "2.0", "id": req["id"], "result": handler(req["params"])}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        endpoint = f"{request.url.scheme}://{request.url.host}"
        body = json.loads(request.content)
        methods = [r["method"] for r in body] if isinstance(body, list) else [body["method"]]
        for m in methods:
            self.calls.append((endpoint, m))
        if request.url.host in self.fail_hosts:
            return httpx.Response(503, text="unavailable")
        if isinstance(body, list):
            return httpx.Response(200, json=[self._answer(r) for r in body])
        return httpx.Response(200, json=self._answer(body))

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


class SleepRecorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def settings() -> ExposureSettings:
    return ExposureSettings(
        rpc_endpoints=list(ENDPOINTS),
        rpc_max_attempts=4,
        rpc_base_delay_sec=2.0,
        rpc_backoff_multiplier=1.5,
        rpc_request_timeout_sec=5.0,
        rpc_batch_size=25,
        signatures_limit=100,
        price_api_url=PRICE_URL,
        price_timeout_sec=5.0,
        collector_timeout_sec=5.0,
        analysis_timeout_sec=30.0,
        solscan_api_key="",
        registry_path="",
    )


@pytest.fixture
def registry() -> AddressRegistry:
    return AddressRegistry.load()


@pytest.fixture
def rpc_router() -> RpcRouter:
    return RpcRouter()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()
