"""
Attester: write a computed (score, flags) into an identity's trust record.

Ensures the record exists (create, tolerating AlreadyExists) and then updates
it with the operator authority. If create succeeds but update fails, the
record stays at its defaults (100/0) and the update error propagates so the
caller can report it and retry on a later pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from backend_veritas.analysis_engine.scorer import ScoreResult, flag_names
from backend_veritas.core.exceptions import AlreadyExists
from backend_veritas.database import Database, TrustRecord
from backend_veritas.logging import get_logger, short_id

logger = get_logger(__name__)


def authority_id(authority: Any) -> str:
    """Accept a Keypair (anything with pubkey()) or an address string."""
    pubkey = getattr(authority, "pubkey", None)
    if callable(pubkey):
        return str(pubkey())
    return str(authority)


@dataclass(frozen=True)
class Attestation:
    identity: str
    record: TrustRecord
    created: bool
    """True if this call created the record."""


class Attester:
    def __init__(self, db: Database, authority: Any) -> None:
        self._db = db
        self._authority = authority_id(authority)

    @property
    def authority(self) -> str:
        return self._authority

    def attest(self, identity: str, result: ScoreResult) -> Attestation:
        logger.info(
            "attester_attesting",
            identity=short_id(identity),
            score=result.score,
            flags=result.flags,
            flag_names=flag_names(result.flags),
        )
        created = False
        try:
            self._db.create_trust_record(identity, self._authority)
            created = True
        except AlreadyExists:
            logger.debug("attester_record_exists", identity=short_id(identity))

        try:
            record = self._db.update_trust_record(identity, self._authority, result.score, result.flags)
        except Exception as e:
            logger.error(
                "attester_update_failed",
                identity=short_id(identity),
                created=created,
                error=str(e),
            )
            raise
        logger.info(
            "attester_update_done",
            identity=short_id(identity),
            score=record.score,
            flags=record.flags,
            last_updated=record.last_updated,
            created=created,
        )
        return Attestation(identity=identity, record=record, created=created)
