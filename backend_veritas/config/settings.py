"""
Application settings and authority key loading.

Settings come from environment variables (and .env via python-dotenv) with
defaults for everything optional. Config: DB_PATH, INTERVAL_SEC,
MAX_IDENTITIES_PER_PASS, ACTIVITY_LIMIT, AGENT_CONCURRENCY, SYBIL_CLUSTERS_PATH,
ATTEST_SUSPICIOUS_ONLY, PAYOUT_AMOUNT, PREVENT_DOUBLE_CLAIM, API_HOST, API_PORT.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from backend_veritas.config.env import (
    get_airdrop_program_id,
    get_solana_rpc_url,
    get_veritas_program_id,
    load_veritas_env,
    parse_bool_env,
)

DEFAULT_INTERVAL_SEC = 300.0  # 5 mins
MIN_INTERVAL_SEC = 1.0
DEFAULT_MAX_IDENTITIES_PER_PASS = 50
DEFAULT_ACTIVITY_LIMIT = 100
DEFAULT_CONCURRENCY = 4
DEFAULT_SUSPICIOUS_SCORE_BELOW = 50
DEFAULT_PAYOUT_AMOUNT = 100_000_000  # 0.1 SOL in lamports
DEFAULT_WALLET_PATH = "../solana-id.json"


def _env_str(name: str, default: str) -> str:
    return (os.getenv(name) or "").strip() or default


@dataclass
class Settings:
    """Typed settings for the agent loop, store, claim gate and API."""

    rpc_url: str = field(default_factory=get_solana_rpc_url)
    veritas_program_id: str = field(default_factory=get_veritas_program_id)
    airdrop_program_id: str = field(default_factory=get_airdrop_program_id)
    db_path: Path = field(default_factory=lambda: Path(_env_str("DB_PATH", "veritas.db")))
    interval_sec: float = field(default_factory=lambda: float(_env_str("INTERVAL_SEC", str(DEFAULT_INTERVAL_SEC))))
    max_identities_per_pass: int = field(
        default_factory=lambda: int(_env_str("MAX_IDENTITIES_PER_PASS", str(DEFAULT_MAX_IDENTITIES_PER_PASS)))
    )
    activity_limit: int = field(default_factory=lambda: int(_env_str("ACTIVITY_LIMIT", str(DEFAULT_ACTIVITY_LIMIT))))
    concurrency: int = field(default_factory=lambda: int(_env_str("AGENT_CONCURRENCY", str(DEFAULT_CONCURRENCY))))
    clusters_path: str | None = field(default_factory=lambda: (os.getenv("SYBIL_CLUSTERS_PATH") or "").strip() or None)
    attest_suspicious_only: bool = field(default_factory=lambda: parse_bool_env("ATTEST_SUSPICIOUS_ONLY", False))
    suspicious_score_below: int = DEFAULT_SUSPICIOUS_SCORE_BELOW
    payout_amount: int = field(default_factory=lambda: int(_env_str("PAYOUT_AMOUNT", str(DEFAULT_PAYOUT_AMOUNT))))
    prevent_double_claim: bool = field(default_factory=lambda: parse_bool_env("PREVENT_DOUBLE_CLAIM", False))
    api_host: str = field(default_factory=lambda: _env_str("API_HOST", "0.0.0.0"))
    api_port: int = field(default_factory=lambda: int(_env_str("API_PORT", "8000")))

    def __post_init__(self) -> None:
        self.db_path = Path(self.db_path)
        if self.interval_sec < MIN_INTERVAL_SEC:
            self.interval_sec = DEFAULT_INTERVAL_SEC
        self.max_identities_per_pass = max(1, int(self.max_identities_per_pass))
        self.activity_limit = max(1, min(1000, int(self.activity_limit)))
        self.concurrency = max(1, int(self.concurrency))
        if self.payout_amount <= 0:
            raise ValueError("PAYOUT_AMOUNT must be positive")


def get_settings() -> Settings:
    """Return settings built from the current environment (.env loaded first)."""
    load_veritas_env()
    return Settings()


def load_authority_keypair(private_key: str | None = None, wallet_path: str | None = None) -> Any:
    """
    Load the authority Keypair.

    AUTHORITY_PRIVATE_KEY may be a base58 string or a JSON array of 64 bytes;
    otherwise the JSON keypair file at WALLET_PATH is read.
    """
    from solders.keypair import Keypair

    load_veritas_env()
    raw = (private_key if private_key is not None else os.getenv("AUTHORITY_PRIVATE_KEY") or "").strip()
    if raw:
        try:
            if raw.startswith("["):
                return Keypair.from_bytes(bytes(json.loads(raw)[:64]))
            return Keypair.from_base58_string(raw)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            raise ValueError("Invalid AUTHORITY_PRIVATE_KEY format. Must be base58 or JSON array of numbers.") from e

    path = Path(wallet_path or _env_str("WALLET_PATH", DEFAULT_WALLET_PATH)).resolve()
    if not path.is_file():
        raise ValueError(f"Wallet not found at {path} and AUTHORITY_PRIVATE_KEY not set")
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return Keypair.from_bytes(bytes(data[:64]))
