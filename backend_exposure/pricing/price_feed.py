"""
Batched USD spot prices keyed by mint address (Jupiter-style price API).

One call per analysis: SOL plus every held mint, in chunks of 100 ids. Missing ids
are simply absent from the result. A chunk failure is logged; if every chunk fails
PriceFeedError is raised and callers degrade to "no prices". No retries here.
"""

from __future__ import annotations

from typing import Any, Iterable

import httpx

from backend_exposure.config.settings import ExposureSettings, get_settings
from backend_exposure.core.exceptions import PriceFeedError
from backend_exposure.exposure_logging import get_logger

logger = get_logger(__name__)

SOL_MINT = "So11111111111111111111111111111111111111112"
PRICE_BATCH_SIZE = 100


def _parse_price(entry: Any) -> float | None:
    if not isinstance(entry, dict):
        return None
    raw = entry.get("price")
    try:
        price = float(raw)
    except (TypeError, ValueError):
        return None
    return price if price > 0 else None


class PriceFeed:
    def __init__(
        self,
        settings: ExposureSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = httpx.AsyncClient(timeout=self._settings.price_timeout_sec, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> PriceFeed:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def _fetch_chunk(self, ids: list[str]) -> dict[str, float]:
        try:
            resp = await self._client.get(self._settings.price_api_url, params={"ids": ",".join(ids)})
        except httpx.HTTPError as e:
            raise PriceFeedError(f"price request failed: {e}") from e
        if resp.status_code != 200:
            raise PriceFeedError(f"price API returned HTTP {resp.status_code}")
        try:
            body = resp.json()
        except ValueError as e:
            raise PriceFeedError("price API returned invalid JSON") from e
        data = body.get("data") if isinstance(body, dict) else None
        prices: dict[str, float] = {}
        for mint, entry in (data or {}).items():
            price = _parse_price(entry)
            if price is not None:
                prices[mint] = price
        return prices

    async def get_prices(self, mints: Iterable[str]) -> dict[str, float]:
        """USD price per mint for every id the API knows."""
        ids = list(dict.fromkeys(m for m in mints if m))
        if not ids:
            return {}
        prices: dict[str, float] = {}
        failures: list[str] = []
        chunks = [ids[i : i + PRICE_BATCH_SIZE] for i in range(0, len(ids), PRICE_BATCH_SIZE)]
        for chunk in chunks:
            try:
                prices.update(await self._fetch_chunk(chunk))
            except PriceFeedError as e:
                failures.append(str(e))
                logger.warning("price_chunk_failed", ids=len(chunk), error=str(e))
        if failures and len(failures) == len(chunks):
            raise PriceFeedError(failures[-1])
        logger.debug("prices_fetched", requested=len(ids), priced=len(prices))
        return prices
