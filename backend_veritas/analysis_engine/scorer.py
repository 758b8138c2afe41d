"""
Trust score computation — additive penalty rules over WalletFeatures.

Starts at 100 and subtracts a fixed penalty per rule that fires. Every rule is
evaluated against the input features (never an intermediate score), and
clamping happens once at the end, so rule order cannot change the result.
No I/O; fully explainable.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Any

from backend_veritas.analysis_engine.features import WalletFeatures

BASE_SCORE = 100
MIN_SCORE = 0
MAX_SCORE = 100


class TrustFlag(IntFlag):
    """Detection categories; any combination may be set."""

    WASH_TRADING = 1 << 0
    BOT_ACTIVITY = 1 << 1
    SYBIL_CLUSTER = 1 << 2
    MIXER_INTERACTION = 1 << 3
    HIGH_FAILURE_RATE = 1 << 4


def flag_names(flags: int) -> list[str]:
    """Names of the TrustFlag bits set in flags (unknown bits ignored)."""
    return [f.name for f in TrustFlag if f.name and flags & f]


@dataclass
class ScorerConfig:
    """Rule thresholds and penalties. Ages in seconds, burst in events per minute."""

    failed_ratio_above: float = 0.2
    failed_ratio_penalty: int = 20

    bot_max_age_seconds: float = 3600.0
    bot_burst_rate_above: float = 10.0
    bot_penalty: int = 30

    sybil_penalty: int = 50

    # New and thin: sub-threshold signal, no flag
    thin_max_age_seconds: float = 360.0
    thin_max_activity_count: int = 5
    thin_penalty: int = 10


@dataclass(frozen=True)
class Penalty:
    """One rule that fired: points deducted, flag raised (if any), values compared."""

    rule_name: str
    points: int
    flag: TrustFlag | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_name": self.rule_name,
            "points": self.points,
            "flag": self.flag.name if self.flag is not None else None,
            "details": self.details,
        }


@dataclass(frozen=True)
class ScoreResult:
    score: int
    flags: int
    penalties: tuple[Penalty, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "flags": self.flags,
            "flag_names": flag_names(self.flags),
            "penalties": [p.to_dict() for p in self.penalties],
        }


def _evaluate_rules(features: WalletFeatures, cfg: ScorerConfig) -> list[Penalty]:
    penalties: list[Penalty] = []

    if features.failed_activity_ratio > cfg.failed_ratio_above:
        penalties.append(
            Penalty(
                rule_name="high_failure_rate",
                points=cfg.failed_ratio_penalty,
                flag=TrustFlag.HIGH_FAILURE_RATE,
                details={
                    "failed_activity_ratio": features.failed_activity_ratio,
                    "threshold": cfg.failed_ratio_above,
                },
            )
        )

    if features.age_seconds < cfg.bot_max_age_seconds and features.burst_rate > cfg.bot_burst_rate_above:
        penalties.append(
            Penalty(
                rule_name="young_burst_activity",
                points=cfg.bot_penalty,
                flag=TrustFlag.BOT_ACTIVITY,
                details={
                    "age_seconds": features.age_seconds,
                    "burst_rate": features.burst_rate,
                    "max_age_seconds": cfg.bot_max_age_seconds,
                    "burst_threshold": cfg.bot_burst_rate_above,
                },
            )
        )

    if features.shared_funding_source:
        penalties.append(
            Penalty(
                rule_name="shared_funding_source",
                points=cfg.sybil_penalty,
                flag=TrustFlag.SYBIL_CLUSTER,
            )
        )

    if (
        features.age_seconds < cfg.thin_max_age_seconds
        and features.activity_count < cfg.thin_max_activity_count
    ):
        penalties.append(
            Penalty(
                rule_name="new_and_thin",
                points=cfg.thin_penalty,
                details={
                    "age_seconds": features.age_seconds,
                    "activity_count": features.activity_count,
                },
            )
        )

    return penalties


def compute_score(features: WalletFeatures, config: ScorerConfig | None = None) -> ScoreResult:
    """Score features: clamp(floor(100 - sum(penalties)), 0, 100) plus the OR of raised flags."""
    cfg = config or ScorerConfig()
    penalties = _evaluate_rules(features, cfg)
    flags = 0
    for p in penalties:
        if p.flag is not None:
            flags |= p.flag
    raw = BASE_SCORE - sum(p.points for p in penalties)
    score = max(MIN_SCORE, min(MAX_SCORE, int(math.floor(raw))))
    return ScoreResult(score=score, flags=int(flags), penalties=tuple(penalties))


class Scorer:
    """Injectable wrapper around compute_score with a fixed config."""

    def __init__(self, config: ScorerConfig | None = None) -> None:
        self._config = config or ScorerConfig()

    def compute(self, features: WalletFeatures) -> ScoreResult:
        return compute_score(features, self._config)
