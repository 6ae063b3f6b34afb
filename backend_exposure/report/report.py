"""
ExposureReport: everything one analysis produced, serialized with camelCase keys.

The report is always fully shaped. An optional analysis that failed is None
(null in JSON) and its name is listed in unavailableAnalyses. Round-tripping
through to_dict/from_dict reproduces identical scores and signals.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, TypeVar

from backend_exposure.analytics.counterparties import CounterpartyRecord
from backend_exposure.analytics.funding import FundingAnalysis
from backend_exposure.analytics.income import IncomeBreakdown
from backend_exposure.analytics.net_worth import NetWorthEstimate
from backend_exposure.analytics.pnl import PnLEstimate
from backend_exposure.analytics.privacy_hygiene import PrivacyHygieneProfile
from backend_exposure.analytics.time_of_day import TimeOfDayProfile
from backend_exposure.analytics.token_risk import TokenRiskAnalysis
from backend_exposure.analytics.velocity import VelocityProfile
from backend_exposure.analytics.wallet_age import WalletAge
from backend_exposure.identity.entity_labels import EntityLabel
from backend_exposure.identity.social import SocialLinks
from backend_exposure.scoring.models import CategoryScore, risk_level

T = TypeVar("T")


def _opt(data: dict[str, Any] | None, parse: Callable[[dict[str, Any]], T]) -> T | None:
    return parse(data) if data else None


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ExposureReport:
    address: str
    overall_score: int
    overall_level: str
    categories: tuple[CategoryScore, ...]
    analyzed_at: str
    tx_count: int
    token_count: int
    sol_balance: float
    wallet_age: WalletAge
    social_links: SocialLinks
    entity_label: EntityLabel
    counterparties: tuple[CounterpartyRecord, ...] = ()
    funding: FundingAnalysis | None = None
    time_of_day: TimeOfDayProfile | None = None
    token_risk: TokenRiskAnalysis | None = None
    velocity: VelocityProfile | None = None
    income: IncomeBreakdown | None = None
    net_worth: NetWorthEstimate | None = None
    pnl: PnLEstimate | None = None
    privacy_hygiene: PrivacyHygieneProfile | None = None
    unavailable_analyses: tuple[str, ...] = ()
    cached: bool = False

    def mark_cached(self) -> ExposureReport:
        """Copy flagged as served from the external cache."""
        return replace(self, cached=True)

    def category(self, name: str) -> CategoryScore | None:
        for c in self.categories:
            if c.name == name:
                return c
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "overallScore": self.overall_score,
            "overallLevel": self.overall_level,
            "categories": [c.to_dict() for c in self.categories],
            "analyzedAt": self.analyzed_at,
            "txCount": self.tx_count,
            "tokenCount": self.token_count,
            "solBalance": self.sol_balance,
            "walletAge": self.wallet_age.to_dict(),
            "socialLinks": self.social_links.to_dict(),
            "solscanLabel": self.entity_label.to_dict(),
            "counterparties": [c.to_dict() for c in self.counterparties],
            "fundingAnalysis": self.funding.to_dict() if self.funding else None,
            "timeOfDayAnalysis": self.time_of_day.to_dict() if self.time_of_day else None,
            "tokenRiskAnalysis": self.token_risk.to_dict() if self.token_risk else None,
            "transactionVelocity": self.velocity.to_dict() if self.velocity else None,
            "incomeAnalysis": self.income.to_dict() if self.income else None,
            "netWorth": self.net_worth.to_dict() if self.net_worth else None,
            "pnlAnalysis": self.pnl.to_dict() if self.pnl else None,
            "privacyHygiene": self.privacy_hygiene.to_dict() if self.privacy_hygiene else None,
            "unavailableAnalyses": list(self.unavailable_analyses),
            "cached": self.cached,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExposureReport:
        overall = int(data["overallScore"])
        return cls(
            address=data["address"],
            overall_score=overall,
            overall_level=risk_level(overall),
            categories=tuple(CategoryScore.from_dict(c) for c in data.get("categories") or []),
            analyzed_at=data.get("analyzedAt") or "",
            tx_count=int(data.get("txCount") or 0),
            token_count=int(data.get("tokenCount") or 0),
            sol_balance=float(data.get("solBalance") or 0.0),
            wallet_age=WalletAge.from_dict(data.get("walletAge") or {}),
            social_links=SocialLinks.from_dict(data.get("socialLinks") or {}),
            entity_label=EntityLabel.from_dict(data.get("solscanLabel") or {}),
            counterparties=tuple(CounterpartyRecord.from_dict(c) for c in data.get("counterparties") or []),
            funding=_opt(data.get("fundingAnalysis"), FundingAnalysis.from_dict),
            time_of_day=_opt(data.get("timeOfDayAnalysis"), TimeOfDayProfile.from_dict),
            token_risk=_opt(data.get("tokenRiskAnalysis"), TokenRiskAnalysis.from_dict),
            velocity=_opt(data.get("transactionVelocity"), VelocityProfile.from_dict),
            income=_opt(data.get("incomeAnalysis"), IncomeBreakdown.from_dict),
            net_worth=_opt(data.get("netWorth"), NetWorthEstimate.from_dict),
            pnl=_opt(data.get("pnlAnalysis"), PnLEstimate.from_dict),
            privacy_hygiene=_opt(data.get("privacyHygiene"), PrivacyHygieneProfile.from_dict),
            unavailable_analyses=tuple(data.get("unavailableAnalyses") or ()),
            cached=bool(data.get("cached")),
        )
