"""
Configuration — environment loading, network/program resolution, typed settings.
"""

from backend_veritas.config.env import (
    get_airdrop_program_id,
    get_solana_network,
    get_solana_rpc_url,
    get_veritas_program_id,
)
from backend_veritas.config.settings import Settings, get_settings, load_authority_keypair

__all__ = [
    "Settings",
    "get_airdrop_program_id",
    "get_settings",
    "get_solana_network",
    "get_solana_rpc_url",
    "get_veritas_program_id",
    "load_authority_keypair",
]
