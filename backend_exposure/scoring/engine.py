"""
Scoring engine: analyzer outputs -> six CategoryScores -> weighted overall score.

Each category is an additive rule table clamped to [0, 100]. Weights are fixed and
do not need to sum to 1; overall = round_half_up(clamp(sum(score * weight))).
Missing optional analyzer output degrades a category to its neutral rules plus an
explanatory "... unavailable" signal; it never fails the report.
"""

from __future__ import annotations

import statistics
import time
from dataclasses import dataclass, field
from typing import Sequence

from backend_exposure.analytics.funding import FundingAnalysis
from backend_exposure.analytics.net_worth import usd_range
from backend_exposure.analytics.privacy_hygiene import PrivacyHygieneProfile
from backend_exposure.analytics.time_of_day import CONCENTRATION_HIGH, CONCENTRATION_MEDIUM, TimeOfDayProfile
from backend_exposure.analytics.token_risk import TokenRiskAnalysis
from backend_exposure.analytics.velocity import (
    LEVEL_DORMANT,
    LEVEL_HIGH,
    LEVEL_MEDIUM,
    TREND_DECREASING,
    TREND_INCREASING,
    VelocityProfile,
)
from backend_exposure.analytics.wallet_age import WalletAge
from backend_exposure.chain.models import TokenBalance, TransactionRecord
from backend_exposure.config.registry import TYPE_WALLET
from backend_exposure.identity.social import SocialLinks
from backend_exposure.scoring.models import CategoryScore, clamp, round_half_up

WEIGHT_ACTIVITY = 0.18
WEIGHT_LINKABILITY = 0.22
WEIGHT_SOCIAL = 0.15
WEIGHT_BEHAVIORAL = 0.17
WEIGHT_FINANCIAL = 0.18
WEIGHT_PRIVACY = 0.10

SECONDS_PER_WEEK = 7 * 86400
# Rough SOL/USD used only for the display range of the financial category
ESTIMATED_SOL_USD = 100

PRIVACY_PENDING_SCORE = 30

FUNDING_TYPE_LABELS = {"cex": "CEX", "dex": "DEX", "nft": "NFT marketplace", "contract": "Smart contract"}
RISK_PROFILE_LABELS = {
    "conservative": "Conservative (mostly stablecoins)",
    "balanced": "Balanced portfolio",
    "aggressive": "Aggressive (volatile assets)",
    "speculative": "Speculative (memecoins detected)",
}
PRIVACY_SIGNAL_TEXT = {
    "privacy_protocol_interaction": "Privacy protocol interaction detected",
    "quick_fund_movement": "Very quick fund movement after receiving",
    "immediate_reuse_after_privacy": "Wallet reused immediately after privacy attempt",
    "repeated_amounts": "Repeated transaction amounts detected",
}

SOL_RANGES: tuple[tuple[float, str], ...] = (
    (0.1, "<0.1 SOL"),
    (1, "0.1-1 SOL"),
    (5, "1-5 SOL"),
    (10, "5-10 SOL"),
    (50, "10-50 SOL"),
    (100, "50-100 SOL"),
    (500, "100-500 SOL"),
    (1000, "500-1K SOL"),
)


@dataclass(frozen=True)
class ExposureInputs:
    """Everything the scoring rules read. Optional analyzer outputs may be None."""

    address: str
    sol_balance: float
    transactions: Sequence[TransactionRecord]
    token_balances: Sequence[TokenBalance]
    wallet_age: WalletAge
    social_links: SocialLinks = field(default_factory=SocialLinks)
    funding: FundingAnalysis | None = None
    time_of_day: TimeOfDayProfile | None = None
    token_risk: TokenRiskAnalysis | None = None
    velocity: VelocityProfile | None = None
    privacy: PrivacyHygieneProfile | None = None
    now: float = field(default_factory=time.time)


def sol_range(sol: float) -> str:
    for bound, label in SOL_RANGES:
        if sol < bound:
            return label
    return "1K+ SOL"


def wallet_activity_score(data: ExposureInputs) -> CategoryScore:
    signals: list[str] = []
    score = 0
    age = data.wallet_age
    if age.age_in_days is not None:
        if age.is_new:
            signals.append(f"New wallet ({age.age_in_days} days old)")
        elif age.age_in_days > 365:
            score += 15
            signals.append(f"Established wallet ({age.age_in_days // 365}+ years old)")
        elif age.age_in_days > 90:
            score += 10
            signals.append(f"Active wallet ({age.age_in_days} days old)")
    else:
        signals.append("No transaction history (brand new wallet)")

    tx_count = len(data.transactions)
    if tx_count > 50:
        score += 35
        signals.append(f"High transaction volume ({tx_count}+ txs)")
    elif tx_count > 20:
        score += 25
        signals.append(f"Moderate transaction volume ({tx_count} txs)")
    elif tx_count > 5:
        score += 15
        signals.append(f"Low transaction volume ({tx_count} txs)")
    elif tx_count > 0:
        signals.append(f"Minimal activity ({tx_count} txs)")

    token_count = len(data.token_balances)
    if token_count > 10:
        score += 30
        signals.append(f"Diverse token portfolio ({token_count} tokens)")
    elif token_count > 3:
        score += 20
        signals.append(f"Moderate token diversity ({token_count} tokens)")
    elif token_count > 0:
        score += 10
        signals.append(f"Few token holdings ({token_count} tokens)")

    recent = sum(1 for r in data.transactions if r.block_time and data.now - r.block_time < SECONDS_PER_WEEK)
    if recent > 10:
        score += 20
        signals.append("Very active in past week")
    elif recent > 3:
        score += 10
        signals.append("Active in past week")

    return CategoryScore.build(
        "Wallet Activity",
        score,
        WEIGHT_ACTIVITY,
        signals,
        "Transaction frequency, wallet age, and token diversity create activity patterns",
    )


def address_linkability_score(data: ExposureInputs) -> CategoryScore:
    signals: list[str] = []
    score = 0
    tx_count = len(data.transactions)
    estimated = min(tx_count, int(tx_count * 0.7))
    if estimated > 30:
        score += 35
        signals.append(f"Many unique interactions (~{estimated} addresses)")
    elif estimated > 10:
        score += 25
        signals.append(f"Moderate address network (~{estimated} addresses)")
    elif estimated > 0:
        score += 15
        signals.append("Limited address connections")

    funding = data.funding
    if funding is None:
        signals.append("Funding source analysis unavailable")
    else:
        if funding.has_cex_funding:
            score += 30
            signals.append("Funded from centralized exchange (KYC-linked)")
        if funding.has_multiple_funding_sources:
            score += 15
            signals.append(f"Multiple funding sources ({len(funding.sources)} addresses)")
        if funding.primary_funding_type and funding.primary_funding_type != TYPE_WALLET:
            label = FUNDING_TYPE_LABELS.get(funding.primary_funding_type, funding.primary_funding_type)
            signals.append(f"Primary funding via {label}")
        if funding.total_funding_received > 10:
            score += 10
            signals.append(f"{funding.total_funding_received:.2f} SOL received from tracked sources")

    if len(data.token_balances) > 5:
        score += 15
        signals.append("Multiple token communities linked")
    elif data.token_balances:
        score += 5
        signals.append("Some token community exposure")

    if data.sol_balance > 10:
        score += 10
        signals.append("Significant SOL balance visible")
    elif data.sol_balance > 1:
        score += 5
        signals.append("Moderate SOL balance")

    return CategoryScore.build(
        "Address Linkability",
        score,
        WEIGHT_LINKABILITY,
        signals,
        "How easily this wallet can be linked to other addresses",
    )


def social_exposure_score(data: ExposureInputs) -> CategoryScore:
    signals: list[str] = []
    score = 0
    s = data.social_links
    if s.twitter:
        score += 40
        signals.append(f"X/Twitter linked: @{s.twitter}")
    if s.farcaster:
        score += 35
        signals.append(f"Farcaster: @{s.farcaster}")
    if s.lens:
        score += 30
        signals.append(f"Lens: {s.lens}")
    if s.ens:
        score += 30
        signals.append(f"ENS: {s.ens}")
    if s.basename:
        score += 25
        signals.append(f"Basename: {s.basename}")
    if s.sns_names:
        score += 30
        signals.append(f"SNS domain: {', '.join(s.sns_names)}")
    other = [d for d in s.all_domains if not any(n.replace(".sol", "") in d for n in s.sns_names)]
    if other:
        score += 20
        more = f" (+{len(other) - 3} more)" if len(other) > 3 else ""
        signals.append(f"Other domains: {', '.join(other[:3])}{more}")
    if s.backpack:
        score += 25
        signals.append(f"Backpack username: {s.backpack}")
    if s.discord:
        score += 20
        signals.append(f"Discord linked: {s.discord}")
    if s.telegram:
        score += 20
        signals.append(f"Telegram linked: {s.telegram}")
    if s.github:
        score += 15
        signals.append(f"GitHub linked: {s.github}")

    total_links = s.handle_count()
    if total_links == 0:
        signals.append("No social accounts linked - low identity exposure")
    elif total_links >= 5:
        score += 15
        signals.append(f"High social presence: {total_links} linked accounts")

    if data.sol_balance > 100:
        score += 10
        signals.append("High-value wallet likely indexed")
    if len(data.token_balances) > 15:
        score += 5
        signals.append("Extensive token activity may be tracked")

    return CategoryScore.build(
        "Social Exposure",
        score,
        WEIGHT_SOCIAL,
        signals,
        "Social media links, usernames, and public identity exposure",
    )


def _unique_hour_score(transactions: Sequence[TransactionRecord], signals: list[str]) -> int:
    hours = {(r.block_time // 3600) % 24 for r in transactions if r.block_time is not None}
    if sum(1 for r in transactions if r.block_time is not None) <= 10:
        return 0
    if len(hours) < 8:
        signals.append("Consistent timezone pattern detected")
        return 35
    if len(hours) < 16:
        signals.append("Some time-of-day patterns visible")
        return 20
    signals.append("Varied transaction timing")
    return 10


def has_regular_intervals(transactions: Sequence[TransactionRecord]) -> bool:
    """Newest 20 signatures: interval std dev under half the mean interval."""
    if len(transactions) <= 20:
        return False
    window = transactions[:20]
    intervals = [
        abs(a.block_time - b.block_time)
        for a, b in zip(window, window[1:])
        if a.block_time and b.block_time
    ]
    if len(intervals) <= 5:
        return False
    return statistics.pstdev(intervals) < statistics.fmean(intervals) * 0.5


def behavioral_profiling_score(data: ExposureInputs) -> CategoryScore:
    signals: list[str] = []
    score = 0
    tod = data.time_of_day
    if tod is None:
        signals.append("Time-of-day analysis unavailable")
        score += _unique_hour_score(data.transactions, signals)
    elif tod.insufficient_data:
        signals.append("Not enough timestamped activity for timing analysis")
    else:
        if tod.activity_concentration == CONCENTRATION_HIGH:
            score += 35
            signals.append("Highly concentrated activity pattern")
        elif tod.activity_concentration == CONCENTRATION_MEDIUM:
            score += 20
            signals.append("Moderately concentrated activity pattern")
        else:
            score += 10
            signals.append("Varied transaction timing")
        signals.append(f"Peak activity: {tod.active_hour_range}")
        if tod.inferred_timezone:
            score += 15
            signals.append(f"Likely timezone: {tod.inferred_timezone}")

    mints = {t.mint for t in data.token_balances}
    if len(mints) > 10:
        score += 30
        signals.append("Diverse protocol usage fingerprint")
    elif len(mints) > 3:
        score += 15
        signals.append("Moderate protocol interaction")

    if has_regular_intervals(data.transactions):
        score += 15
        signals.append("Regular transaction interval pattern")

    v = data.velocity
    if v is None:
        signals.append("Transaction velocity analysis unavailable")
    else:
        if v.recent_activity_level == LEVEL_HIGH:
            score += 15
            signals.append(f"High recent activity ({v.avg_tx_per_day:.1f} tx/day avg)")
        elif v.recent_activity_level == LEVEL_MEDIUM:
            score += 10
            signals.append(f"Moderate activity ({v.avg_tx_per_day:.1f} tx/day avg)")
        elif v.recent_activity_level == LEVEL_DORMANT:
            signals.append("Dormant wallet (no recent activity)")
        if v.activity_trend == TREND_INCREASING:
            score += 10
            signals.append("Increasing activity trend")
        elif v.activity_trend == TREND_DECREASING:
            signals.append("Decreasing activity trend")
        if v.bursty_behavior:
            score += 15
            signals.append("Bursty transaction pattern (clustered activity)")
        if v.peak_activity_period:
            signals.append(f"Peak: {v.peak_activity_period}")
        if v.longest_gap_days and v.longest_gap_days > 30:
            signals.append(f"Longest inactivity: {v.longest_gap_days} days")

    return CategoryScore.build(
        "Behavioral Profiling",
        score,
        WEIGHT_BEHAVIORAL,
        signals,
        "Timing patterns and protocol usage that create behavioral fingerprints",
    )


def financial_footprint_score(data: ExposureInputs) -> CategoryScore:
    signals: list[str] = []
    score = 0
    sol = data.sol_balance
    sol_label = sol_range(sol)
    value_label = usd_range(sol * ESTIMATED_SOL_USD)
    if sol > 100:
        score += 35
        signals.append(f"Large holdings ({sol_label}, est. {value_label})")
    elif sol > 10:
        score += 20
        signals.append(f"Moderate holdings ({sol_label}, est. {value_label})")
    elif sol > 1:
        score += 10
        signals.append(f"Small holdings ({sol_label}, est. {value_label})")
    else:
        signals.append(f"Minimal balance ({sol_label})")

    tr = data.token_risk
    if tr is None:
        signals.append("Token risk analysis unavailable")
        total_units = sum(t.ui_amount for t in data.token_balances)
        if total_units > 10000:
            score += 25
            signals.append("Large token positions visible")
        elif total_units > 100:
            score += 15
            signals.append("Moderate token positions")
    else:
        signals.append(f"Token profile: {RISK_PROFILE_LABELS.get(tr.risk_profile, tr.risk_profile)}")
        if tr.stablecoin_count > 0:
            score += 10
            signals.append(f"{tr.stablecoin_count} stablecoin(s) held")
        if tr.bluechip_count > 0:
            score += 15
            signals.append(f"{tr.bluechip_count} blue-chip token(s)")
        if tr.memecoin_count > 0:
            score += 20
            signals.append(f"{tr.memecoin_count} potential memecoin(s) detected")
        if tr.volatile_count > 5:
            score += 15
            signals.append("Diverse volatile token exposure")

    tx_count = len(data.transactions)
    if tx_count > 50:
        score += 20
        signals.append("High transaction volume trackable")
    elif tx_count > 20:
        score += 10
        signals.append("Moderate financial activity")

    return CategoryScore.build(
        "Financial Footprint",
        score,
        WEIGHT_FINANCIAL,
        signals,
        "Value held and transaction volumes reveal financial profile",
    )


PRIVACY_NAME = "Privacy Hygiene"
PRIVACY_DESCRIPTION = "Privacy tool usage and transaction patterns affecting anonymity"


def privacy_hygiene_score(data: ExposureInputs) -> CategoryScore:
    p = data.privacy
    if p is None:
        return CategoryScore.build(
            PRIVACY_NAME,
            PRIVACY_PENDING_SCORE,
            WEIGHT_PRIVACY,
            ["Privacy behavior analysis pending"],
            PRIVACY_DESCRIPTION,
        )

    signals: list[str] = []
    score = 0
    if p.has_privacy_attempts:
        if p.immediate_reuse_after_privacy:
            score += 45
            signals.append("Privacy attempt detected but wallet reused immediately")
            signals.append("Immediate reuse negates privacy benefits")
        else:
            score += 20
            signals.append(f"Privacy protocol interactions: {p.privacy_program_interactions}")
            signals.append("Some privacy awareness detected")

    delay = p.avg_time_delay_after_receive
    if delay is not None:
        if delay < 60:
            score += 40
            signals.append("Funds moved within 1 minute of receiving")
        elif delay < 300:
            score += 25
            signals.append("Funds typically moved within 5 minutes")
        elif delay < 3600:
            score += 15
            signals.append("Some delay between receiving and sending")
        else:
            score += 5
            signals.append("Good timing separation between transactions")

    if p.has_consistent_amounts:
        score += 30
        signals.append("Repeated transaction amounts create linkability")

    for code in p.risk_signals:
        text = PRIVACY_SIGNAL_TEXT.get(code, code)
        if text not in signals:
            signals.append(text)

    if not signals or score == 0:
        signals.append("No obvious privacy concerns detected")
        score = 15

    return CategoryScore.build(PRIVACY_NAME, score, WEIGHT_PRIVACY, signals, PRIVACY_DESCRIPTION)


def score_categories(data: ExposureInputs) -> list[CategoryScore]:
    return [
        wallet_activity_score(data),
        address_linkability_score(data),
        social_exposure_score(data),
        behavioral_profiling_score(data),
        financial_footprint_score(data),
        privacy_hygiene_score(data),
    ]


def calculate_overall_score(categories: Sequence[CategoryScore]) -> int:
    return round_half_up(clamp(sum(c.score * c.weight for c in categories)))
