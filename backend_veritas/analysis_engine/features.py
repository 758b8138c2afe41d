"""
Behavioral feature extraction from an identity's recent activity.

Converts the newest-first activity window into a fixed-size WalletFeatures
vector: age, activity count, failed ratio, burst rate, shared funding. No
scoring logic. Age is measured to the oldest record in the window, so a full
window underestimates the true age of a long-lived identity.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Sequence

from backend_veritas.analysis_engine.funding import FundingLinkCheck
from backend_veritas.core.exceptions import FeatureExtractionFailed
from backend_veritas.logging import get_logger, short_id
from backend_veritas.solana_listener.activity import ActivityProvider
from backend_veritas.solana_listener.models import ActivityRecord

logger = get_logger(__name__)

SECONDS_PER_MINUTE = 60.0
SECONDS_PER_HOUR = 3600.0
DEFAULT_ACTIVITY_LIMIT = 100


@dataclass(frozen=True)
class WalletFeatures:
    """Behavioral feature vector for one identity; computed fresh each pass."""

    age_seconds: float = 0.0
    """now - timestamp of the oldest record in the window."""
    activity_count: int = 0
    failed_activity_ratio: float = 0.0
    """Failed records / activity_count, in [0, 1]."""
    shared_funding_source: bool = False
    burst_rate: float = 0.0
    """Records per minute across the observed window."""

    @property
    def age_hours(self) -> float:
        return self.age_seconds / SECONDS_PER_HOUR

    def to_dict(self) -> dict[str, Any]:
        out = asdict(self)
        out["age_hours"] = round(self.age_hours, 4)
        return out


def features_from_activity(
    records: Sequence[ActivityRecord],
    *,
    now: float,
    shared_funding_source: bool = False,
) -> WalletFeatures:
    """
    Derive features from newest-first records.

    Single record: burst_rate = activity_count (treated as instantaneous).
    Otherwise burst_rate = count / max(window minutes, 1); 0 if either end of
    the window has no block time. A missing oldest block time gives age 0.
    """
    count = len(records)
    if count == 0:
        return WalletFeatures(shared_funding_source=shared_funding_source)

    newest = records[0]
    oldest = records[-1]

    oldest_ts = oldest.timestamp if oldest.timestamp is not None else now
    age_seconds = max(0.0, now - oldest_ts)

    failed = sum(1 for r in records if r.failed)
    failed_ratio = failed / count

    if count == 1:
        burst_rate = float(count)
    elif newest.timestamp is None or oldest.timestamp is None:
        burst_rate = 0.0
    else:
        duration_minutes = (newest.timestamp - oldest.timestamp) / SECONDS_PER_MINUTE
        burst_rate = count / max(duration_minutes, 1.0)

    return WalletFeatures(
        age_seconds=age_seconds,
        activity_count=count,
        failed_activity_ratio=failed_ratio,
        shared_funding_source=shared_funding_source,
        burst_rate=burst_rate,
    )


class FeatureExtractor:
    """
    Fetch an identity's recent activity and turn it into WalletFeatures.

    Provider or funding-check failures raise FeatureExtractionFailed, so callers
    can tell "could not determine" apart from a brand-new identity.
    """

    def __init__(
        self,
        provider: ActivityProvider,
        funding_check: FundingLinkCheck,
        *,
        limit: int = DEFAULT_ACTIVITY_LIMIT,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be positive")
        self._provider = provider
        self._funding_check = funding_check
        self._limit = limit
        self._clock = clock

    def extract(self, identity: str) -> WalletFeatures:
        try:
            records = self._provider.fetch_recent_activity(identity, self._limit)
            shared = bool(self._funding_check.is_linked(identity))
        except Exception as e:
            logger.warning("features_extraction_failed", identity=short_id(identity), error=str(e))
            raise FeatureExtractionFailed(identity, e) from e
        features = features_from_activity(
            list(records)[: self._limit],
            now=self._clock(),
            shared_funding_source=shared,
        )
        logger.debug("features_extracted", identity=short_id(identity), **features.to_dict())
        return features
