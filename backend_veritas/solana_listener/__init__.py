"""
Solana RPC collaborators: activity history provider and candidate discovery.
"""

from backend_veritas.solana_listener.activity import ActivityProvider, RpcActivityProvider
from backend_veritas.solana_listener.models import ActivityRecord
from backend_veritas.solana_listener.observer import IdentitySource, Observer, StaticIdentitySource
from backend_veritas.solana_listener.rpc import SolanaRpcClient, SolanaRpcError

__all__ = [
    "ActivityProvider",
    "ActivityRecord",
    "IdentitySource",
    "Observer",
    "RpcActivityProvider",
    "SolanaRpcClient",
    "SolanaRpcError",
    "StaticIdentitySource",
]
