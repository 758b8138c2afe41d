"""
Minimal synchronous Solana JSON-RPC client over httpx.

Raises SolanaRpcError on transport failures, HTTP error statuses, and RPC
error objects; callers decide whether a failure is fatal or per-identity.
"""

from __future__ import annotations

import itertools
from typing import Any

import httpx

DEFAULT_TIMEOUT_SEC = 15.0

_request_ids = itertools.count(1)


class SolanaRpcError(RuntimeError):
    """Transport, HTTP, or JSON-RPC level failure."""


def build_rpc_body(method: str, params: list[Any]) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": next(_request_ids),
        "method": method,
        "params": params,
    }


class SolanaRpcClient:
    """
    Thin JSON-RPC wrapper. Pass an httpx.Client to share a connection pool
    (or a MockTransport-backed client in tests); otherwise one is created.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        client: httpx.Client | None = None,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self._rpc_url = rpc_url.strip().rstrip("/")
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout_sec))
        self._owns_client = client is None

    @property
    def rpc_url(self) -> str:
        return self._rpc_url

    def call(self, method: str, params: list[Any] | None = None) -> Any:
        """Perform one JSON-RPC call and return its result (may be None, e.g. skipped slot)."""
        body = build_rpc_body(method, params or [])
        try:
            resp = self._client.post(self._rpc_url, json=body)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SolanaRpcError(f"{method} failed: {e}") from e
        if not isinstance(data, dict):
            raise SolanaRpcError(f"{method} returned a non-object response")
        err = data.get("error")
        if err:
            message = err.get("message", err) if isinstance(err, dict) else err
            code = err.get("code") if isinstance(err, dict) else None
            raise SolanaRpcError(f"Solana RPC error: {message} (code={code})")
        return data.get("result")

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "SolanaRpcClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
