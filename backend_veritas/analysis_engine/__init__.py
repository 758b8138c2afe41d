"""
Analysis engine package — feature extraction and heuristic trust scoring.
"""

from backend_veritas.analysis_engine.features import (
    FeatureExtractor,
    WalletFeatures,
    features_from_activity,
)
from backend_veritas.analysis_engine.funding import (
    FundingLinkCheck,
    KnownClusterCheck,
    load_known_clusters,
)
from backend_veritas.analysis_engine.scorer import (
    Penalty,
    ScoreResult,
    Scorer,
    ScorerConfig,
    TrustFlag,
    compute_score,
    flag_names,
)

__all__ = [
    "FeatureExtractor",
    "FundingLinkCheck",
    "KnownClusterCheck",
    "Penalty",
    "ScoreResult",
    "Scorer",
    "ScorerConfig",
    "TrustFlag",
    "WalletFeatures",
    "compute_score",
    "features_from_activity",
    "flag_names",
    "load_known_clusters",
]
