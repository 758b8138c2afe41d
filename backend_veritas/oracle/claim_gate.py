"""
Claim gate: threshold-checked one-shot payout.

Read the campaign config and the claimer's trust record, compare
score >= min_score_required (inclusive), then either move the payout from the
treasury to the claimer in one atomic transfer or return a rejected receipt.
A low score is a normal business outcome, not an exception. The gate keeps no
state of its own; it sees whatever record value is committed at read time.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Protocol

from backend_veritas.core.exceptions import LowTrustScore
from backend_veritas.database import Database
from backend_veritas.logging import get_logger, short_id

logger = get_logger(__name__)

REASON_LOW_TRUST_SCORE = "low_trust_score"


class FundsTransfer(Protocol):
    def transfer(
        self,
        source: str,
        destination: str,
        amount: int,
        *,
        receipt_key: str | None = None,
    ) -> None:
        """Move amount atomically or raise (TransferFailed / AlreadyClaimed) without moving anything."""
        ...


@dataclass(frozen=True)
class ClaimReceipt:
    claimer: str
    campaign: str
    accepted: bool
    amount: int
    """Lamports paid; 0 when rejected."""
    score: int
    min_score_required: int
    reason: str | None
    claimed_at: int

    def raise_for_rejection(self) -> "ClaimReceipt":
        """Raise LowTrustScore if this receipt is a rejection; return self otherwise."""
        if not self.accepted:
            raise LowTrustScore(self.claimer, self.score, self.min_score_required)
        return self

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class ClaimGate:
    """
    prevent_double_claim: record a per-(campaign, claimer) receipt inside the
    payout transaction so a repeat claim raises AlreadyClaimed.
    """

    def __init__(
        self,
        db: Database,
        ledger: FundsTransfer | None = None,
        *,
        prevent_double_claim: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._db = db
        self._ledger = ledger or db
        self._prevent_double_claim = prevent_double_claim
        self._clock = clock

    def claim(self, claimer: str, campaign: str) -> ClaimReceipt:
        config = self._db.read_claim_config(campaign)
        record = self._db.read_trust_record(claimer)
        now = int(self._clock())

        if record.score < config.min_score_required:
            logger.info(
                "claim_rejected",
                claimer=short_id(claimer),
                campaign=config.campaign,
                score=record.score,
                min_score_required=config.min_score_required,
                reason=REASON_LOW_TRUST_SCORE,
            )
            return ClaimReceipt(
                claimer=record.owner_identity,
                campaign=config.campaign,
                accepted=False,
                amount=0,
                score=record.score,
                min_score_required=config.min_score_required,
                reason=REASON_LOW_TRUST_SCORE,
                claimed_at=now,
            )

        receipt_key = f"{config.location}:{record.owner_identity}" if self._prevent_double_claim else None
        self._ledger.transfer(
            config.treasury,
            record.owner_identity,
            config.payout_amount,
            receipt_key=receipt_key,
        )
        logger.info(
            "claim_paid",
            claimer=short_id(claimer),
            campaign=config.campaign,
            score=record.score,
            min_score_required=config.min_score_required,
            amount=config.payout_amount,
        )
        return ClaimReceipt(
            claimer=record.owner_identity,
            campaign=config.campaign,
            accepted=True,
            amount=config.payout_amount,
            score=record.score,
            min_score_required=config.min_score_required,
            reason=None,
            claimed_at=now,
        )
