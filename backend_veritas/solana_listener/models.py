"""
Data models for activity history returned by the Solana RPC.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ActivityRecord:
    """
    One signature from getSignaturesForAddress, reduced to what scoring needs.

    Providers return these newest first.
    """

    signature: str
    slot: int
    timestamp: int | None  # Unix block time; None if not available
    failed: bool

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "ActivityRecord":
        """Build from a single getSignaturesForAddress result item."""
        block_time = item.get("blockTime")
        return cls(
            signature=item["signature"],
            slot=int(item["slot"]),
            timestamp=int(block_time) if block_time is not None else None,
            failed=item.get("err") is not None,
        )
