"""
Core — error taxonomy shared by the store, scoring pipeline, claim gate and API.
"""

from backend_veritas.core.exceptions import (
    AlreadyClaimed,
    AlreadyExists,
    FeatureExtractionFailed,
    InvalidScore,
    LowTrustScore,
    NotFound,
    StoreUnavailable,
    TransferFailed,
    Unauthorized,
    VeritasError,
)

__all__ = [
    "AlreadyClaimed",
    "AlreadyExists",
    "FeatureExtractionFailed",
    "InvalidScore",
    "LowTrustScore",
    "NotFound",
    "StoreUnavailable",
    "TransferFailed",
    "Unauthorized",
    "VeritasError",
]
