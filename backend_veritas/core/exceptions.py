"""
Domain exceptions for the trust record store, scoring pipeline, and claim gate.

Validation errors (NotFound, AlreadyExists, Unauthorized, InvalidScore,
AlreadyClaimed) are terminal for the operation that raised them and are never
retried automatically. Transient errors (FeatureExtractionFailed,
TransferFailed, StoreUnavailable) mark a per-identity failure that a later
pass may recover from.
"""

from __future__ import annotations

from typing import Any


class VeritasError(Exception):
    """Base class for all backend_veritas errors."""

    code = "veritas_error"
    retryable = False

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": str(self), "retryable": self.retryable}


class NotFound(VeritasError):
    """No record (trust record or claim config) exists at the derived location."""

    code = "not_found"

    def __init__(self, key: str, location: str | None = None) -> None:
        self.key = key
        self.location = location
        super().__init__(f"No record for {key}")


class AlreadyExists(VeritasError):
    """A record already exists at the derived location; creation is rejected."""

    code = "already_exists"

    def __init__(self, key: str, location: str | None = None) -> None:
        self.key = key
        self.location = location
        super().__init__(f"Record already exists for {key}")


class Unauthorized(VeritasError):
    """Caller is not the record's authority."""

    code = "unauthorized"

    def __init__(self, caller: str, authority: str) -> None:
        self.caller = caller
        self.authority = authority
        super().__init__(f"Caller {caller} is not the record authority")


class InvalidScore(VeritasError):
    """Score (or minimum score) outside [0, 100], or malformed flags."""

    code = "invalid_score"

    def __init__(self, value: Any, message: str | None = None) -> None:
        self.value = value
        super().__init__(message or f"Score must be between 0 and 100, got {value!r}")


class LowTrustScore(VeritasError):
    """Claimer's trust score is below the campaign minimum."""

    code = "low_trust_score"

    def __init__(self, claimer: str, score: int, min_score_required: int) -> None:
        self.claimer = claimer
        self.score = score
        self.min_score_required = min_score_required
        super().__init__(
            f"Trust score too low for claim: {score} < {min_score_required}"
        )


class AlreadyClaimed(VeritasError):
    """Claimer already received the payout for this campaign."""

    code = "already_claimed"

    def __init__(self, claimer: str, campaign: str) -> None:
        self.claimer = claimer
        self.campaign = campaign
        super().__init__(f"{claimer} already claimed from {campaign}")


class FeatureExtractionFailed(VeritasError):
    """Activity history (or funding check) unavailable; distinct from zero activity."""

    code = "feature_extraction_failed"
    retryable = True

    def __init__(self, identity: str, cause: BaseException) -> None:
        self.identity = identity
        self.cause = cause
        super().__init__(f"Feature extraction failed for {identity}: {cause}")


class TransferFailed(VeritasError):
    """Funds movement could not complete; nothing was moved."""

    code = "transfer_failed"
    retryable = True

    def __init__(self, source: str, destination: str, amount: int, reason: str) -> None:
        self.source = source
        self.destination = destination
        self.amount = amount
        self.reason = reason
        super().__init__(f"Transfer of {amount} from {source} to {destination} failed: {reason}")


class StoreUnavailable(VeritasError):
    """Storage transport failure (locked or unreachable database)."""

    code = "store_unavailable"
    retryable = True
