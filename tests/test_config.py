"""
Tests for env-driven settings and authority keypair loading.
"""

from __future__ import annotations

import json

import pytest
from solders.keypair import Keypair

from backend_veritas.config import Settings, load_authority_keypair
from backend_veritas.config.env import (
    DEFAULT_VERITAS_PROGRAM_ID,
    get_solana_rpc_url,
    get_veritas_program_id,
    mask_rpc_url,
    parse_bool_env,
)


def test_settings_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("DB_PATH", str(tmp_path / "agent.db"))
    monkeypatch.setenv("INTERVAL_SEC", "120")
    monkeypatch.setenv("ACTIVITY_LIMIT", "5000")
    monkeypatch.setenv("PREVENT_DOUBLE_CLAIM", "true")
    settings = Settings()
    assert settings.db_path == tmp_path / "agent.db"
    assert settings.interval_sec == 120
    assert settings.activity_limit == 1000
    assert settings.prevent_double_claim is True


def test_settings_rejects_non_positive_payout():
    with pytest.raises(ValueError):
        Settings(payout_amount=0)


def test_rpc_url_precedence(monkeypatch):
    monkeypatch.setenv("SOLANA_RPC_URL", "https://rpc.example")
    assert get_solana_rpc_url() == "https://rpc.example"
    monkeypatch.delenv("SOLANA_RPC_URL")
    monkeypatch.delenv("RPC_URL", raising=False)
    monkeypatch.setenv("HELIUS_API_KEY", "k")
    monkeypatch.setenv("SOLANA_NETWORK", "mainnet")
    assert get_solana_rpc_url() == "https://mainnet.helius-rpc.com/?api-key=k"
    assert mask_rpc_url(get_solana_rpc_url()).endswith("api-key=***")


def test_program_id_default(monkeypatch):
    monkeypatch.delenv("VERITAS_PROGRAM_ID", raising=False)
    monkeypatch.delenv("PROGRAM_ID", raising=False)
    assert get_veritas_program_id() == DEFAULT_VERITAS_PROGRAM_ID


@pytest.mark.parametrize("raw,expected", [("1", True), ("yes", True), ("off", False), ("maybe", False), ("", False)])
def test_parse_bool_env(monkeypatch, raw, expected):
    monkeypatch.setenv("SOME_FLAG", raw)
    assert parse_bool_env("SOME_FLAG", False) is expected


def test_keypair_from_base58_and_json(monkeypatch):
    kp = Keypair()
    monkeypatch.delenv("AUTHORITY_PRIVATE_KEY", raising=False)
    assert load_authority_keypair(private_key=str(kp)).pubkey() == kp.pubkey()
    assert load_authority_keypair(private_key=json.dumps(list(bytes(kp)))).pubkey() == kp.pubkey()


def test_keypair_from_wallet_file(monkeypatch, tmp_path):
    kp = Keypair()
    path = tmp_path / "id.json"
    path.write_text(json.dumps(list(bytes(kp))), encoding="utf-8")
    monkeypatch.delenv("AUTHORITY_PRIVATE_KEY", raising=False)
    assert load_authority_keypair(wallet_path=str(path)).pubkey() == kp.pubkey()


def test_keypair_missing_wallet_file(monkeypatch, tmp_path):
    monkeypatch.delenv("AUTHORITY_PRIVATE_KEY", raising=False)
    with pytest.raises(ValueError, match="Wallet not found"):
        load_authority_keypair(wallet_path=str(tmp_path / "missing.json"))
