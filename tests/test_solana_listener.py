"""
Tests for the JSON-RPC client, activity provider, and observer against httpx.MockTransport.
"""

from __future__ import annotations

import json

import httpx
import pytest

from backend_veritas.analysis_engine.features import FeatureExtractor
from backend_veritas.analysis_engine.funding import KnownClusterCheck
from backend_veritas.core.exceptions import FeatureExtractionFailed
from backend_veritas.solana_listener import (
    Observer,
    RpcActivityProvider,
    SolanaRpcClient,
    SolanaRpcError,
    StaticIdentitySource,
)

RPC_URL = "http://rpc.test"
WALLET_A = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
WALLET_B = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"


def _rpc(handlers: dict, requests: list | None = None) -> SolanaRpcClient:
    """Client whose transport answers each method from handlers[method](params)."""

    def handle(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if requests is not None:
            requests.append(body)
        handler = handlers[body["method"]]
        result = handler(body["params"])
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    return SolanaRpcClient(RPC_URL, client=httpx.Client(transport=httpx.MockTransport(handle)))


# --- SolanaRpcClient ---


def test_call_returns_result():
    requests: list = []
    rpc = _rpc({"getSlot": lambda params: 1234}, requests)
    assert rpc.call("getSlot") == 1234
    assert requests[0]["jsonrpc"] == "2.0"
    assert requests[0]["params"] == []


def test_rpc_error_object_raises():
    rpc = _rpc(
        {"getSlot": lambda params: httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "Node is behind"}})}
    )
    with pytest.raises(SolanaRpcError, match="Node is behind"):
        rpc.call("getSlot")


def test_http_error_status_raises():
    rpc = _rpc({"getSlot": lambda params: httpx.Response(429, text="Too Many Requests")})
    with pytest.raises(SolanaRpcError):
        rpc.call("getSlot")


def test_transport_error_raises():
    def handle(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    rpc = SolanaRpcClient(RPC_URL, client=httpx.Client(transport=httpx.MockTransport(handle)))
    with pytest.raises(SolanaRpcError):
        rpc.call("getSlot")


def test_empty_url_rejected():
    with pytest.raises(ValueError):
        SolanaRpcClient("  ")


# --- RpcActivityProvider ---


def test_fetch_recent_activity_maps_items():
    requests: list = []
    items = [
        {"signature": "s1", "slot": 300, "blockTime": 1_700_000_300, "err": None},
        {"signature": "s2", "slot": 200, "blockTime": 1_700_000_200, "err": {"InstructionError": [0, "Custom"]}},
        {"signature": "s3", "slot": 100, "blockTime": None, "err": None},
        {"slot": 50},
    ]
    rpc = _rpc({"getSignaturesForAddress": lambda params: items}, requests)
    records = RpcActivityProvider(rpc).fetch_recent_activity(WALLET_A, 10)

    assert [r.signature for r in records] == ["s1", "s2", "s3"]
    assert [r.failed for r in records] == [False, True, False]
    assert records[2].timestamp is None
    assert requests[0]["params"] == [WALLET_A, {"limit": 10, "commitment": "confirmed"}]


def test_fetch_recent_activity_empty_history():
    rpc = _rpc({"getSignaturesForAddress": lambda params: []})
    assert RpcActivityProvider(rpc).fetch_recent_activity(WALLET_A, 5) == []


def test_fetch_recent_activity_bad_result_raises():
    rpc = _rpc({"getSignaturesForAddress": lambda params: None})
    with pytest.raises(SolanaRpcError):
        RpcActivityProvider(rpc).fetch_recent_activity(WALLET_A, 5)


@pytest.mark.parametrize("limit", [0, 1001])
def test_fetch_recent_activity_limit_bounds(limit):
    rpc = _rpc({})
    with pytest.raises(ValueError):
        RpcActivityProvider(rpc).fetch_recent_activity(WALLET_A, limit)


def test_rate_limited_provider_surfaces_as_extraction_failure():
    rpc = _rpc({"getSignaturesForAddress": lambda params: httpx.Response(429)})
    extractor = FeatureExtractor(RpcActivityProvider(rpc), KnownClusterCheck())
    with pytest.raises(FeatureExtractionFailed):
        extractor.extract(WALLET_A)


# --- Observer ---


def _block(*signers):
    return {
        "transactions": [
            {"transaction": {"accountKeys": [{"pubkey": s, "signer": True}, {"pubkey": "Vote111111111111111111111111111111111111111", "signer": False}]}}
            for s in signers
        ]
    }


def test_observer_collects_signers():
    blocks = {98: _block(WALLET_A, WALLET_B), 99: None, 100: _block(WALLET_A)}
    rpc = _rpc(
        {
            "getSlot": lambda params: 100,
            "getBlocks": lambda params: [98, 99, 100],
            "getBlock": lambda params: blocks[params[0]],
        }
    )
    assert Observer(rpc).get_recent_identities(10) == [WALLET_A, WALLET_B]


def test_observer_full_encoding_and_limit():
    block = {"transactions": [{"transaction": {"message": {"accountKeys": [WALLET_B, WALLET_A]}}}]}
    rpc = _rpc(
        {
            "getSlot": lambda params: 10,
            "getBlocks": lambda params: [10],
            "getBlock": lambda params: block,
        }
    )
    assert Observer(rpc).get_recent_identities(1) == [WALLET_B]


def test_observer_skips_malformed_blocks():
    """Non-object getBlock results are skipped; signers from the other slots still come back."""
    blocks = {
        1: ["unexpected", "list"],
        2: "garbage",
        3: {"transactions": "nope"},
        4: _block(WALLET_B),
    }
    rpc = _rpc(
        {
            "getSlot": lambda params: 4,
            "getBlocks": lambda params: [1, 2, 3, 4],
            "getBlock": lambda params: blocks[params[0]],
        }
    )
    assert Observer(rpc).get_recent_identities(10) == [WALLET_B]


def test_observer_failure_returns_empty():
    rpc = _rpc({"getSlot": lambda params: httpx.Response(503)})
    assert Observer(rpc).get_recent_identities(10) == []


def test_observer_requests_recent_window():
    requests: list = []
    rpc = _rpc({"getSlot": lambda params: 500, "getBlocks": lambda params: []}, requests)
    assert Observer(rpc, block_window=5).get_recent_identities() == []
    assert requests[1]["params"] == [495, 500]


# --- StaticIdentitySource ---


def test_static_source_filters_and_dedups():
    source = StaticIdentitySource([WALLET_A, " ", "bogus", WALLET_B, f" {WALLET_A} "])
    assert source.get_recent_identities(10) == [WALLET_A, WALLET_B]
    assert source.get_recent_identities(1) == [WALLET_A]
