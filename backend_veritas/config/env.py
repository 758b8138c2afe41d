"""
Environment resolution for Veritas: network, RPC endpoint, program ids.

Variables (a project-root .env is loaded first and never overrides the real env):
    SOLANA_NETWORK        devnet | mainnet (alias mainnet-beta); default devnet
    SOLANA_RPC_URL        explicit endpoint (RPC_URL accepted too)
    HELIUS_API_KEY        used for a Helius endpoint when no explicit URL is set
    VERITAS_PROGRAM_ID    program id for trust record locations (PROGRAM_ID accepted too)
    AIRDROP_PROGRAM_ID    program id for claim config locations
"""

from __future__ import annotations

import os
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[2]
_ENV_PATH = _ROOT / ".env"

DEFAULT_NETWORK = "devnet"
DEFAULT_VERITAS_PROGRAM_ID = "8r7dBmeeYTYiXtACHrFSgTYcQtUySu4WA1moGaA8uXMZ"
DEFAULT_AIRDROP_PROGRAM_ID = "7dr4ztcm3UKiBxgbmKPxE7uiXxag28g69ib2exu7XuRU"

PUBLIC_RPC_URLS = {
    "devnet": "https://api.devnet.solana.com",
    "mainnet": "https://api.mainnet-beta.solana.com",
}
HELIUS_RPC_TEMPLATES = {
    "devnet": "https://devnet.helius-rpc.com/?api-key={key}",
    "mainnet": "https://mainnet.helius-rpc.com/?api-key={key}",
}

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


def load_veritas_env() -> None:
    """Load the project-root .env into os.environ. Safe to call repeatedly."""
    from dotenv import load_dotenv

    load_dotenv(_ENV_PATH)


def _first_env(*names: str) -> str:
    """Value of the first non-blank variable among names, stripped; "" if none."""
    for name in names:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return ""


def get_solana_network() -> str:
    load_veritas_env()
    raw = _first_env("SOLANA_NETWORK", "SOLANA_CLUSTER").lower()
    return "mainnet" if raw in ("mainnet", "mainnet-beta") else DEFAULT_NETWORK


def get_solana_rpc_url() -> str:
    """Explicit URL, else Helius for the network when a key is set, else the public endpoint."""
    load_veritas_env()
    explicit = _first_env("SOLANA_RPC_URL", "RPC_URL")
    if explicit:
        return explicit
    network = get_solana_network()
    helius_key = _first_env("HELIUS_API_KEY")
    if helius_key:
        return HELIUS_RPC_TEMPLATES[network].format(key=helius_key)
    return PUBLIC_RPC_URLS[network]


def get_veritas_program_id() -> str:
    load_veritas_env()
    return _first_env("VERITAS_PROGRAM_ID", "PROGRAM_ID") or DEFAULT_VERITAS_PROGRAM_ID


def get_airdrop_program_id() -> str:
    load_veritas_env()
    return _first_env("AIRDROP_PROGRAM_ID") or DEFAULT_AIRDROP_PROGRAM_ID


def parse_bool_env(name: str, default: bool = False) -> bool:
    """1/true/yes/on or 0/false/no/off (any case); anything else gives default."""
    raw = _first_env(name).lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    return default


def mask_rpc_url(rpc: str) -> str:
    """Hide the API key of a keyed endpoint before logging it."""
    base, sep, _key = rpc.partition("api-key=")
    return f"{base}{sep}***" if sep else rpc
