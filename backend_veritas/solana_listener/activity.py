"""
Activity history provider: recent signatures for one identity, newest first.

The RPC implementation may be unreachable or rate-limited; it raises
SolanaRpcError and leaves mapping to FeatureExtractionFailed to the extractor.
"""

from __future__ import annotations

from typing import Any, Protocol

from backend_veritas.logging import get_logger, short_id
from backend_veritas.solana_listener.models import ActivityRecord
from backend_veritas.solana_listener.rpc import SolanaRpcClient, SolanaRpcError

logger = get_logger(__name__)

MAX_SIGNATURES_PER_REQUEST = 1000


class ActivityProvider(Protocol):
    def fetch_recent_activity(self, identity: str, limit: int) -> list[ActivityRecord]:
        """Return up to limit records, newest first; empty list for an inactive identity."""
        ...


class RpcActivityProvider:
    """getSignaturesForAddress-backed provider."""

    def __init__(self, rpc: SolanaRpcClient, *, commitment: str = "confirmed") -> None:
        self._rpc = rpc
        self._commitment = commitment

    def fetch_recent_activity(self, identity: str, limit: int) -> list[ActivityRecord]:
        if not 1 <= limit <= MAX_SIGNATURES_PER_REQUEST:
            raise ValueError(f"limit must be between 1 and {MAX_SIGNATURES_PER_REQUEST}")
        result: Any = self._rpc.call(
            "getSignaturesForAddress",
            [identity, {"limit": limit, "commitment": self._commitment}],
        )
        if result is None:
            raise SolanaRpcError("getSignaturesForAddress returned no result")
        if not isinstance(result, list):
            raise SolanaRpcError("getSignaturesForAddress returned a non-list result")
        records: list[ActivityRecord] = []
        for item in result:
            if not isinstance(item, dict) or "signature" not in item:
                continue
            try:
                records.append(ActivityRecord.from_rpc_item(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.debug("activity_skip_invalid_item", identity=short_id(identity), error=str(e))
        return records[:limit]
