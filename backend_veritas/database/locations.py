"""
Derived storage locations for trust records and claim configs.

A location is a program-derived address computed from a fixed namespace seed
and the record key, so "does it exist" is a primary-key lookup and no separate
index is needed. Seeds: [b"trust", identity] for trust records,
[b"claim_config", sha256(campaign)] for claim campaigns.
"""

from __future__ import annotations

import functools
import hashlib

from solders.pubkey import Pubkey

TRUST_SEED = b"trust"
CLAIM_CONFIG_SEED = b"claim_config"


def parse_identity(identity: str) -> Pubkey:
    """Return the Pubkey for a base58 identity; ValueError if not a valid address."""
    if not isinstance(identity, str) or not identity.strip():
        raise ValueError("Identity must be a non-empty string")
    try:
        return Pubkey.from_string(identity.strip())
    except Exception as e:
        raise ValueError(f"Invalid Solana address: {identity!r}") from e


def is_valid_identity(identity: str) -> bool:
    """Return True if identity is a valid Solana (Pubkey) address."""
    try:
        parse_identity(identity)
        return True
    except ValueError:
        return False


@functools.lru_cache(maxsize=4096)
def trust_record_location(program_id: str, identity: str) -> str:
    """Derive the trust record address for identity; cached to avoid repeated find_program_address."""
    wallet = parse_identity(identity)
    pda, _bump = Pubkey.find_program_address(
        [TRUST_SEED, bytes(wallet)], Pubkey.from_string(program_id)
    )
    return str(pda)


@functools.lru_cache(maxsize=256)
def claim_config_location(program_id: str, campaign: str) -> str:
    """Derive the claim config address for a campaign key (any non-empty string)."""
    if not campaign or not campaign.strip():
        raise ValueError("Campaign key must be non-empty")
    digest = hashlib.sha256(campaign.strip().encode("utf-8")).digest()
    pda, _bump = Pubkey.find_program_address(
        [CLAIM_CONFIG_SEED, digest], Pubkey.from_string(program_id)
    )
    return str(pda)
