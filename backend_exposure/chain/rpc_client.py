"""
Solana JSON-RPC client with endpoint failover and bounded retry.

Responsibilities:
- Raw JSON-RPC 2.0 over httpx (single calls and batched getTransaction).
- Every call runs under RetryPolicy: up to max_attempts, exponential backoff
  (base_delay * multiplier ** attempt), rotating to the next endpoint of the pool
  after each failure. Exhaustion raises UpstreamUnavailableError with the last
  endpoint and attempt count.
- Each HTTP request carries its own timeout, independent of backoff.
- EndpointRotation is the only shared mutable state; it is injectable and
  lock-protected so concurrent analyses can share or isolate it.

Retries live here only; callers never retry on top of this client.
"""

from __future__ import annotations

import asyncio
import itertools
import threading
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Sequence

import httpx

from backend_exposure.chain.models import TokenBalance, TransactionRecord
from backend_exposure.chain.parser import ParsedTransaction, parse_transaction
from backend_exposure.config.env import mask_endpoint
from backend_exposure.config.settings import ExposureSettings, get_settings
from backend_exposure.core.exceptions import RpcError, UpstreamUnavailableError
from backend_exposure.exposure_logging import get_logger, short_wallet

logger = get_logger(__name__)

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
COMMITMENT = "confirmed"

SleepFn = Callable[[float], Awaitable[Any]]


class EndpointRotation:
    """
    Ordered endpoint pool with a single shared cursor.

    advance() only moves the cursor when it still points at the endpoint that
    failed, so two callers failing on the same endpoint rotate once, not twice.
    """

    def __init__(self, endpoints: Sequence[str]) -> None:
        if not endpoints:
            raise ValueError("endpoint pool must not be empty")
        self._endpoints = tuple(endpoints)
        self._index = 0
        self._lock = threading.Lock()

    @property
    def endpoints(self) -> tuple[str, ...]:
        return self._endpoints

    def current(self) -> str:
        with self._lock:
            return self._endpoints[self._index]

    def advance(self, failed_endpoint: str | None = None) -> str:
        """Rotate past failed_endpoint (or unconditionally when None); return the new current endpoint."""
        with self._lock:
            if failed_endpoint is None or self._endpoints[self._index] == failed_endpoint:
                self._index = (self._index + 1) % len(self._endpoints)
            return self._endpoints[self._index]


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 4
    base_delay: float = 2.0
    multiplier: float = 1.5

    def delay(self, attempt: int) -> float:
        """Backoff before retry number attempt+1 (attempt is 0-based)."""
        return self.base_delay * (self.multiplier ** attempt)

    @classmethod
    def from_settings(cls, settings: ExposureSettings) -> RetryPolicy:
        return cls(
            max_attempts=settings.rpc_max_attempts,
            base_delay=settings.rpc_base_delay_sec,
            multiplier=settings.rpc_backoff_multiplier,
        )


def _chunks(items: Sequence[str], size: int) -> list[Sequence[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class SolanaRpcClient:
    """
    Async chain client: balance, signature history, parsed transactions, token accounts.

        async with SolanaRpcClient(settings) as rpc:
            lamports = await rpc.get_balance(address)
    """

    def __init__(
        self,
        settings: ExposureSettings | None = None,
        *,
        rotation: EndpointRotation | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFn | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._rotation = rotation or EndpointRotation(self._settings.rpc_endpoints)
        self._policy = RetryPolicy.from_settings(self._settings)
        self._sleep = sleep or asyncio.sleep
        self._ids = itertools.count(1)
        self._client = httpx.AsyncClient(
            timeout=self._settings.rpc_request_timeout_sec,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    @property
    def rotation(self) -> EndpointRotation:
        return self._rotation

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> SolanaRpcClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    def _next_id(self) -> int:
        return next(self._ids)

    async def _post(self, endpoint: str, method: str, body: Any) -> Any:
        """One HTTP round trip. Any transport/status/decoding problem becomes RpcError."""
        masked = mask_endpoint(endpoint)
        try:
            resp = await self._client.post(endpoint, json=body)
        except httpx.TimeoutException as e:
            raise RpcError(method, masked, f"timeout: {e}") from e
        except httpx.HTTPError as e:
            raise RpcError(method, masked, f"transport error: {e}") from e
        if resp.status_code != 200:
            raise RpcError(method, masked, f"HTTP {resp.status_code}", code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            raise RpcError(method, masked, "invalid JSON body") from e

    async def _with_retry(self, method: str, op: Callable[[str], Awaitable[Any]]) -> Any:
        last_error: RpcError | None = None
        endpoint = self._rotation.current()
        for attempt in range(self._policy.max_attempts):
            endpoint = self._rotation.current()
            try:
                return await op(endpoint)
            except RpcError as e:
                last_error = e
                logger.warning(
                    "rpc_attempt_failed",
                    method=method,
                    endpoint=mask_endpoint(endpoint),
                    attempt=attempt + 1,
                    max_attempts=self._policy.max_attempts,
                    error=str(e),
                )
                if attempt < self._policy.max_attempts - 1:
                    nxt = self._rotation.advance(endpoint)
                    backoff = self._policy.delay(attempt)
                    logger.debug(
                        "rpc_endpoint_rotated",
                        method=method,
                        endpoint=mask_endpoint(nxt),
                        backoff_sec=round(backoff, 2),
                    )
                    await self._sleep(backoff)
        logger.error(
            "rpc_upstream_unavailable",
            method=method,
            endpoint=mask_endpoint(endpoint),
            attempts=self._policy.max_attempts,
            error=str(last_error) if last_error else None,
        )
        raise UpstreamUnavailableError(
            method,
            mask_endpoint(endpoint),
            self._policy.max_attempts,
            last_error,
        )

    async def call(self, method: str, params: list[Any]) -> Any:
        """Single JSON-RPC call under the retry policy; returns the result member."""

        async def op(endpoint: str) -> Any:
            body = {"jsonrpc": "2.0", "id": self._next_id(), "method": method, "params": params}
            data = await self._post(endpoint, method, body)
            if not isinstance(data, dict):
                raise RpcError(method, mask_endpoint(endpoint), "unexpected response shape")
            err = data.get("error")
            if err:
                code = err.get("code") if isinstance(err, dict) else None
                msg = err.get("message") if isinstance(err, dict) else str(err)
                raise RpcError(method, mask_endpoint(endpoint), str(msg), code=code)
            if "result" not in data:
                raise RpcError(method, mask_endpoint(endpoint), "missing result")
            return data["result"]

        return await self._with_retry(method, op)

    async def call_batch(self, method: str, params_list: Sequence[list[Any]]) -> list[Any]:
        """
        JSON-RPC batch: one HTTP request, results in request order. A whole-batch
        failure is retried; a per-item error member yields None for that item.
        """
        if not params_list:
            return []

        async def op(endpoint: str) -> list[Any]:
            ids = [self._next_id() for _ in params_list]
            body = [
                {"jsonrpc": "2.0", "id": rid, "method": method, "params": params}
                for rid, params in zip(ids, params_list)
            ]
            data = await self._post(endpoint, method, body)
            if isinstance(data, dict) and data.get("error"):
                err = data["error"]
                code = err.get("code") if isinstance(err, dict) else None
                raise RpcError(method, mask_endpoint(endpoint), str(err), code=code)
            if not isinstance(data, list):
                raise RpcError(method, mask_endpoint(endpoint), "batch response is not a list")
            by_id: dict[Any, Any] = {}
            for item in data:
                if not isinstance(item, dict):
                    continue
                if item.get("error"):
                    logger.debug("rpc_batch_item_error", method=method, id=item.get("id"), error=item["error"])
                    by_id[item.get("id")] = None
                else:
                    by_id[item.get("id")] = item.get("result")
            return [by_id.get(rid) for rid in ids]

        return await self._with_retry(method, op)

    async def get_balance(self, address: str) -> int:
        """Lamports held by address."""
        result = await self.call("getBalance", [address, {"commitment": COMMITMENT}])
        value = result.get("value") if isinstance(result, dict) else result
        return int(value or 0)

    async def get_signatures(self, address: str, limit: int | None = None) -> list[TransactionRecord]:
        """Signature history, newest first as returned by the node."""
        limit = limit or self._settings.signatures_limit
        result = await self.call(
            "getSignaturesForAddress",
            [address, {"limit": limit, "commitment": COMMITMENT}],
        )
        records: list[TransactionRecord] = []
        for item in result or []:
            rec = TransactionRecord.from_rpc_item(item)
            if rec is not None:
                records.append(rec)
        logger.debug("rpc_signatures_fetched", wallet=short_wallet(address), count=len(records))
        return records

    async def get_parsed_transactions(self, signatures: Sequence[str]) -> list[ParsedTransaction | None]:
        """
        Batch getTransaction (jsonParsed) in chunks of rpc_batch_size. Output is
        aligned with `signatures`; unknown or malformed transactions are None.
        """
        out: list[ParsedTransaction | None] = []
        opts = {
            "encoding": "jsonParsed",
            "maxSupportedTransactionVersion": 0,
            "commitment": COMMITMENT,
        }
        for chunk in _chunks(list(signatures), self._settings.rpc_batch_size):
            results = await self.call_batch("getTransaction", [[sig, opts] for sig in chunk])
            for sig, payload in zip(chunk, results):
                out.append(parse_transaction(sig, payload))
        return out

    async def get_token_accounts(self, address: str) -> list[TokenBalance]:
        """SPL token holdings with a positive UI balance."""
        result = await self.call(
            "getTokenAccountsByOwner",
            [
                address,
                {"programId": TOKEN_PROGRAM_ID},
                {"encoding": "jsonParsed", "commitment": COMMITMENT},
            ],
        )
        value = result.get("value") if isinstance(result, dict) else None
        balances: list[TokenBalance] = []
        for item in value or []:
            bal = TokenBalance.from_rpc_item(item)
            if bal is not None and bal.ui_amount > 0:
                balances.append(bal)
        return balances
