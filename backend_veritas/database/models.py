"""
Domain models for persisted entities.

Trust records and claim configs are returned as frozen snapshots: callers
re-read to observe later writes. No ORM coupling so backends stay swappable.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

MIN_SCORE = 0
MAX_SCORE = 100
DEFAULT_SCORE = 100
DEFAULT_FLAGS = 0


@dataclass(frozen=True)
class TrustRecord:
    """Authoritative trust state for one identity."""

    location: str
    """Derived storage address of this record."""
    owner_identity: str
    score: int
    """Current score in [0, 100]."""
    flags: int
    """Bitmask of TrustFlag values."""
    last_updated: int
    """Unix timestamp (seconds) of the most recent successful write; non-decreasing."""
    authority: str
    """Identity allowed to update score and flags."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ClaimConfig:
    """Per-campaign claim configuration."""

    location: str
    campaign: str
    authority: str
    min_score_required: int
    treasury: str
    payout_amount: int
    """Lamports paid per accepted claim."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
