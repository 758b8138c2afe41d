"""
Candidate discovery: identities to score on each pass.

Observer samples the signers (fee payers) of the last few blocks. Discovery
failures are logged and yield an empty candidate list; they never abort a pass.
StaticIdentitySource serves a fixed list (e.g. WALLETS env).
"""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from backend_veritas.database.locations import is_valid_identity
from backend_veritas.logging import get_logger
from backend_veritas.solana_listener.rpc import SolanaRpcClient, SolanaRpcError

logger = get_logger(__name__)

DEFAULT_BLOCK_WINDOW = 5


class IdentitySource(Protocol):
    def get_recent_identities(self, limit: int) -> list[str]:
        ...


def _first_signer(tx: Any) -> str | None:
    """
    Return the first signer of a getBlock transaction entry.

    Handles transactionDetails="accounts" ({pubkey, signer} dicts) and
    "full" JSON encoding (message.accountKeys as strings, first is fee payer).
    """
    if not isinstance(tx, dict):
        return None
    tx_obj = tx.get("transaction")
    if not isinstance(tx_obj, dict):
        return None
    keys = tx_obj.get("accountKeys")
    if keys is None:
        msg = tx_obj.get("message")
        keys = msg.get("accountKeys") if isinstance(msg, dict) else None
    for key in keys or []:
        if isinstance(key, dict):
            if key.get("signer") is False:
                continue
            pubkey = key.get("pubkey")
        else:
            pubkey = key
        if pubkey:
            return str(pubkey)
    return None


class Observer:
    """Discover active identities from recent blocks."""

    def __init__(self, rpc: SolanaRpcClient, *, block_window: int = DEFAULT_BLOCK_WINDOW) -> None:
        self._rpc = rpc
        self._block_window = max(1, block_window)

    def get_recent_identities(self, limit: int = 100) -> list[str]:
        try:
            current_slot = int(self._rpc.call("getSlot"))
            slots = self._rpc.call("getBlocks", [current_slot - self._block_window, current_slot]) or []
            candidates: dict[str, None] = {}
            for slot in slots:
                block = self._rpc.call(
                    "getBlock",
                    [
                        slot,
                        {
                            "encoding": "json",
                            "maxSupportedTransactionVersion": 0,
                            "transactionDetails": "accounts",
                            "rewards": False,
                        },
                    ],
                )
                if not isinstance(block, dict) or not isinstance(block.get("transactions"), list):
                    continue
                for tx in block["transactions"]:
                    signer = _first_signer(tx)
                    if signer:
                        candidates.setdefault(signer, None)
                if len(candidates) >= limit:
                    break
        except (SolanaRpcError, TypeError, ValueError) as e:
            logger.error("observer_discovery_failed", error=str(e))
            return []
        identities = list(candidates)[:limit]
        logger.info("observer_identities_found", count=len(identities), blocks=len(slots))
        return identities


class StaticIdentitySource:
    """Fixed identity list; invalid addresses are dropped at construction."""

    def __init__(self, identities: Iterable[str]) -> None:
        cleaned: dict[str, None] = {}
        for identity in identities:
            identity = identity.strip()
            if not identity:
                continue
            if not is_valid_identity(identity):
                logger.warning("observer_static_invalid_identity", identity=identity[:16])
                continue
            cleaned.setdefault(identity, None)
        self._identities = list(cleaned)

    def get_recent_identities(self, limit: int = 100) -> list[str]:
        return self._identities[:limit]
