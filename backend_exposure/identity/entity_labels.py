"""
Explorer entity label lookup (Solscan account metadata).

Pro API with SOLSCAN_API_KEY, public endpoint otherwise. Risk level is a keyword-tag
lookup over label and tags: caution beats safe, a label with no known keyword is
neutral, nothing at all is unknown. Optional collector: any failure yields the default.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from backend_exposure.config.settings import ExposureSettings, get_settings
from backend_exposure.exposure_logging import get_logger, short_wallet

logger = get_logger(__name__)

SOLSCAN_PRO_URL = "https://pro-api.solscan.io/v2.0/account/metadata"
SOLSCAN_PUBLIC_URL = "https://api.solscan.io/v2/account"
PRO_TIMEOUT_SEC = 8.0
PUBLIC_TIMEOUT_SEC = 5.0

RISK_CAUTION = "caution"
RISK_SAFE = "safe"
RISK_NEUTRAL = "neutral"
RISK_UNKNOWN = "unknown"

CAUTION_KEYWORDS = (
    "mixer", "tumbler", "tornado", "privacy", "anonymous",
    "sanctioned", "blacklisted", "suspicious", "scam", "hack",
)
SAFE_KEYWORDS = (
    "binance", "coinbase", "kraken", "okx", "bybit", "kucoin", "gate.io",
    "jupiter", "raydium", "orca", "marinade", "jito", "phantom", "solflare",
    "magic eden", "tensor", "metaplex", "solana foundation",
)


@dataclass(frozen=True)
class FundedBy:
    address: str
    tx_hash: str = ""
    block_time: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"address": self.address, "txHash": self.tx_hash, "blockTime": self.block_time}


@dataclass(frozen=True)
class EntityLabel:
    account_label: str | None = None
    account_tags: tuple[str, ...] = ()
    account_type: str | None = None
    funded_by: FundedBy | None = None
    active_age_days: int | None = None
    is_known_entity: bool = False
    entity_risk_level: str = RISK_UNKNOWN

    def to_dict(self) -> dict[str, Any]:
        return {
            "accountLabel": self.account_label,
            "accountTags": list(self.account_tags),
            "accountType": self.account_type,
            "fundedBy": self.funded_by.to_dict() if self.funded_by else None,
            "activeAgeDays": self.active_age_days,
            "isKnownEntity": self.is_known_entity,
            "entityRiskLevel": self.entity_risk_level,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EntityLabel:
        fb = data.get("fundedBy")
        return cls(
            account_label=data.get("accountLabel"),
            account_tags=tuple(data.get("accountTags") or ()),
            account_type=data.get("accountType"),
            funded_by=FundedBy(fb["address"], fb.get("txHash") or "", int(fb.get("blockTime") or 0)) if fb else None,
            active_age_days=data.get("activeAgeDays"),
            is_known_entity=bool(data.get("isKnownEntity")),
            entity_risk_level=data.get("entityRiskLevel") or RISK_UNKNOWN,
        )


def entity_risk_level(label: str | None, tags: list[str] | tuple[str, ...]) -> str:
    if not label and not tags:
        return RISK_UNKNOWN
    ids = [(label or "").lower()] + [t.lower() for t in tags]
    if any(k in i for i in ids for k in CAUTION_KEYWORDS):
        return RISK_CAUTION
    if any(k in i for i in ids for k in SAFE_KEYWORDS):
        return RISK_SAFE
    return RISK_NEUTRAL if label else RISK_UNKNOWN


def _parse_tags(raw: Any) -> list[str]:
    if isinstance(raw, str):
        return [t.strip() for t in raw.split(",") if t.strip()]
    if isinstance(raw, list):
        return [str(t).strip() for t in raw if t]
    return []


def parse_pro_metadata(body: Any) -> EntityLabel:
    if not isinstance(body, dict) or not body.get("success") or not isinstance(body.get("data"), dict):
        return EntityLabel()
    data = body["data"]
    label = data.get("account_label") or None
    tags = _parse_tags(data.get("account_tags"))
    fb_raw = data.get("funded_by") if isinstance(data.get("funded_by"), dict) else {}
    funded_by = None
    if fb_raw.get("funded_by"):
        funded_by = FundedBy(
            address=str(fb_raw["funded_by"]),
            tx_hash=str(fb_raw.get("tx_hash") or ""),
            block_time=int(fb_raw.get("block_time") or 0),
        )
    active_age = data.get("active_age")
    return EntityLabel(
        account_label=label,
        account_tags=tuple(tags),
        account_type=data.get("account_type") or None,
        funded_by=funded_by,
        active_age_days=int(active_age) if isinstance(active_age, (int, float)) and active_age else None,
        is_known_entity=bool(label),
        entity_risk_level=entity_risk_level(label, tags),
    )


def parse_public_account(body: Any) -> EntityLabel:
    data = body.get("data") if isinstance(body, dict) else None
    if not isinstance(data, dict):
        return EntityLabel()
    label = data.get("account_label") or None
    tags = _parse_tags(data.get("account_tags"))
    return EntityLabel(
        account_label=label,
        account_tags=tuple(tags),
        is_known_entity=bool(label),
        entity_risk_level=entity_risk_level(label, tags),
    )


async def fetch_entity_label(
    address: str,
    settings: ExposureSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> EntityLabel:
    """Explorer label for address; returns the default EntityLabel on any failure."""
    settings = settings or get_settings()
    api_key = settings.solscan_api_key
    if api_key:
        url, params, headers, timeout = SOLSCAN_PRO_URL, {"address": address}, {"token": api_key}, PRO_TIMEOUT_SEC
    else:
        url, params, headers, timeout = SOLSCAN_PUBLIC_URL, {"address": address}, {}, PUBLIC_TIMEOUT_SEC
    headers["Accept"] = "application/json"
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.get(url, params=params, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("entity_label_request_failed", wallet=short_wallet(address), error=str(e))
        return EntityLabel()
    if resp.status_code == 401:
        logger.warning("entity_label_unauthorized", wallet=short_wallet(address))
        return EntityLabel()
    if resp.status_code == 429:
        logger.warning("entity_label_rate_limited", wallet=short_wallet(address))
        return EntityLabel()
    if resp.status_code != 200:
        logger.debug("entity_label_http_status", wallet=short_wallet(address), status=resp.status_code)
        return EntityLabel()
    try:
        body = resp.json()
    except ValueError:
        logger.warning("entity_label_invalid_json", wallet=short_wallet(address))
        return EntityLabel()
    return parse_pro_metadata(body) if api_key else parse_public_account(body)
