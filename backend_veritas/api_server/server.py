"""
FastAPI server — trust record reads and score-gated claims.

GET /trust/{identity} returns the current trust record snapshot.
POST /claims/{campaign} evaluates a claim through the ClaimGate.
Scores are never computed here; the agent loop writes them. Config via env (DB_PATH, PREVENT_DOUBLE_CLAIM).
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend_veritas.analysis_engine.scorer import flag_names
from backend_veritas.config import Settings, get_settings
from backend_veritas.core.exceptions import (
    AlreadyClaimed,
    NotFound,
    StoreUnavailable,
    TransferFailed,
)
from backend_veritas.database import Database, get_database
from backend_veritas.logging import get_logger, short_id
from backend_veritas.oracle.claim_gate import ClaimGate

logger = get_logger(__name__)


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_api_settings() -> Settings:
    """Settings read once per process; call cache_clear() after changing the env."""
    return get_settings()


@lru_cache(maxsize=1)
def get_db() -> Database:
    """Dependency: one shared Database for the configured DB_PATH and program ids."""
    settings = get_api_settings()
    return get_database(
        settings.db_path,
        veritas_program_id=settings.veritas_program_id,
        airdrop_program_id=settings.airdrop_program_id,
    )


def get_claim_gate(db: Database = Depends(get_db)) -> ClaimGate:
    return ClaimGate(db, prevent_double_claim=get_api_settings().prevent_double_claim)


# -----------------------------------------------------------------------------
# Models
# -----------------------------------------------------------------------------


class TrustRecordResponse(BaseModel):
    """GET /trust/{identity} response."""

    identity: str = Field(..., description="Scored identity (base58)")
    location: str = Field(..., description="Derived storage address of the record")
    score: int = Field(..., ge=0, le=100, description="Current trust score (0–100)")
    flags: int = Field(..., ge=0, description="Detection bitmask")
    flag_names: list[str] = Field(default_factory=list)
    last_updated: int = Field(..., description="Unix timestamp of the last write")
    authority: str = Field(..., description="Identity allowed to update this record")


class ClaimRequest(BaseModel):
    """POST /claims/{campaign} body."""

    claimer: str = Field(..., min_length=32, max_length=44, description="Claimer address (base58)")


class ClaimResponse(BaseModel):
    claimer: str
    campaign: str
    accepted: bool
    amount: int
    score: int
    min_score_required: int
    reason: str | None = None
    claimed_at: int


# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------

app = FastAPI(title="Veritas Trust API", version="0.1.0")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/trust/{identity}", response_model=TrustRecordResponse)
def get_trust_record(identity: str, db: Database = Depends(get_db)) -> Any:
    try:
        record = db.read_trust_record(identity)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except StoreUnavailable as e:
        logger.warning("api_store_unavailable", error=str(e))
        raise HTTPException(status_code=503, detail="Store unavailable") from e
    return TrustRecordResponse(
        identity=record.owner_identity,
        location=record.location,
        score=record.score,
        flags=record.flags,
        flag_names=flag_names(record.flags),
        last_updated=record.last_updated,
        authority=record.authority,
    )


@app.post("/claims/{campaign}", response_model=ClaimResponse)
def post_claim(
    campaign: str,
    body: ClaimRequest,
    gate: ClaimGate = Depends(get_claim_gate),
) -> Any:
    try:
        receipt = gate.claim(body.claimer.strip(), campaign)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except AlreadyClaimed as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except (TransferFailed, StoreUnavailable) as e:
        logger.warning("api_claim_failed", claimer=short_id(body.claimer), campaign=campaign, error=str(e))
        raise HTTPException(status_code=503, detail=str(e)) from e
    if not receipt.accepted:
        return JSONResponse(status_code=403, content=receipt.to_dict())
    return ClaimResponse(**receipt.to_dict())
