"""
Privacy-hygiene detection over recent parsed transactions.

Signals (machine-readable, each appended once):
- privacy_protocol_interaction: a known privacy program appears in the account keys
- immediate_reuse_after_privacy: the next transaction follows a privacy one within 10 minutes
- quick_fund_movement: average receive-to-next-send delay under 5 minutes
- repeated_amounts: one rounded SOL amount is more than 30% of observed transfers
"""

from __future__ import annotations

import bisect
import math
from collections import Counter
from dataclasses import dataclass
from typing import Any, Sequence

from backend_exposure.chain.parser import ParsedTransaction
from backend_exposure.config.registry import AddressRegistry
from backend_exposure.exposure_logging import get_logger, short_wallet
from backend_exposure.utils.wallet_utils import lamports_to_sol

logger = get_logger(__name__)

SIGNAL_PRIVACY_PROTOCOL = "privacy_protocol_interaction"
SIGNAL_IMMEDIATE_REUSE = "immediate_reuse_after_privacy"
SIGNAL_QUICK_MOVEMENT = "quick_fund_movement"
SIGNAL_REPEATED_AMOUNTS = "repeated_amounts"

IMMEDIATE_REUSE_SEC = 600
QUICK_MOVEMENT_SEC = 300
MIN_AMOUNTS_FOR_REPETITION = 3
REPEATED_AMOUNT_SHARE = 0.3


@dataclass(frozen=True)
class PrivacyHygieneProfile:
    privacy_program_interactions: int = 0
    has_privacy_attempts: bool = False
    immediate_reuse_after_privacy: bool = False
    avg_time_delay_after_receive: float | None = None
    """Seconds between a receive and the next send, averaged; None when not measurable."""
    has_consistent_amounts: bool = False
    risk_signals: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "privacyProgramInteractions": self.privacy_program_interactions,
            "hasPrivacyAttempts": self.has_privacy_attempts,
            "immediateReuseAfterPrivacy": self.immediate_reuse_after_privacy,
            "avgTimeDelayAfterReceive": self.avg_time_delay_after_receive,
            "hasConsistentAmounts": self.has_consistent_amounts,
            "riskSignals": list(self.risk_signals),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PrivacyHygieneProfile:
        return cls(
            privacy_program_interactions=int(data.get("privacyProgramInteractions") or 0),
            has_privacy_attempts=bool(data.get("hasPrivacyAttempts")),
            immediate_reuse_after_privacy=bool(data.get("immediateReuseAfterPrivacy")),
            avg_time_delay_after_receive=data.get("avgTimeDelayAfterReceive"),
            has_consistent_amounts=bool(data.get("hasConsistentAmounts")),
            risk_signals=tuple(data.get("riskSignals") or ()),
        )


def _round_cents(amount: float) -> float:
    """Half-up rounding to 0.01 SOL."""
    return math.floor(amount * 100 + 0.5) / 100


def average_receive_to_send_delay(receives: Sequence[int], sends: Sequence[int]) -> float | None:
    """Mean delay from each receive to the first strictly later send."""
    ordered_sends = sorted(sends)
    delays: list[int] = []
    for r in receives:
        i = bisect.bisect_right(ordered_sends, r)
        if i < len(ordered_sends):
            delays.append(ordered_sends[i] - r)
    if not delays:
        return None
    return sum(delays) / len(delays)


def has_repeated_amounts(amounts: Sequence[float]) -> bool:
    if len(amounts) < MIN_AMOUNTS_FOR_REPETITION:
        return False
    counts = Counter(_round_cents(a) for a in amounts)
    return max(counts.values()) / len(amounts) > REPEATED_AMOUNT_SHARE


def analyze_privacy_hygiene(
    address: str,
    transactions: Sequence[ParsedTransaction],
    registry: AddressRegistry,
) -> PrivacyHygieneProfile:
    if len(transactions) < 2:
        return PrivacyHygieneProfile()

    signals: list[str] = []
    privacy_times: list[int] = []
    privacy_hits = 0
    amounts: list[float] = []
    receives: list[int] = []
    sends: list[int] = []

    for tx in transactions:
        if any(k in registry.privacy_programs for k in tx.account_keys):
            privacy_hits += 1
            if tx.has_block_time:
                privacy_times.append(tx.block_time)
            if SIGNAL_PRIVACY_PROTOCOL not in signals:
                signals.append(SIGNAL_PRIVACY_PROTOCOL)
        for ix in tx.instructions:
            if not ix.is_sol_transfer:
                continue
            amounts.append(lamports_to_sol(ix.lamports or 0))
            if not tx.has_block_time:
                continue
            if ix.destination == address:
                receives.append(tx.block_time)
            elif ix.source == address:
                sends.append(tx.block_time)

    avg_delay = average_receive_to_send_delay(receives, sends) if receives and sends else None
    if avg_delay is not None and avg_delay < QUICK_MOVEMENT_SEC:
        signals.append(SIGNAL_QUICK_MOVEMENT)

    immediate_reuse = False
    if privacy_times:
        timed = sorted(tx.block_time for tx in transactions if tx.has_block_time)
        for t in privacy_times:
            i = bisect.bisect_right(timed, t)
            if i < len(timed) and timed[i] - t < IMMEDIATE_REUSE_SEC:
                immediate_reuse = True
                signals.append(SIGNAL_IMMEDIATE_REUSE)
                break

    consistent = has_repeated_amounts(amounts)
    if consistent:
        signals.append(SIGNAL_REPEATED_AMOUNTS)

    profile = PrivacyHygieneProfile(
        privacy_program_interactions=privacy_hits,
        has_privacy_attempts=privacy_hits > 0,
        immediate_reuse_after_privacy=immediate_reuse,
        avg_time_delay_after_receive=avg_delay,
        has_consistent_amounts=consistent,
        risk_signals=tuple(signals),
    )
    logger.debug("privacy_hygiene_analyzed", wallet=short_wallet(address), signals=list(signals))
    return profile
