"""
Backend Veritas — wallet trust scoring, authoritative trust records, score-gated claims.

Packages: solana_listener (RPC collaborators), analysis_engine (features and
scoring), database (trust record store, claim configs, ledger), oracle
(attester and claim gate), agent_worker (periodic loop), api_server (HTTP).
"""

__version__ = "0.1.0"
