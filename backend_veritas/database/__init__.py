"""
Database abstraction layer — trust records, claim configs, payout ledger.

SQLite via Database and get_database(); backend is swappable.
"""

from backend_veritas.database.database import (
    Database,
    DatabaseBackend,
    SQLiteBackend,
    get_database,
    validate_flags,
    validate_score,
)
from backend_veritas.database.locations import (
    claim_config_location,
    is_valid_identity,
    trust_record_location,
)
from backend_veritas.database.models import ClaimConfig, TrustRecord

__all__ = [
    "ClaimConfig",
    "Database",
    "DatabaseBackend",
    "SQLiteBackend",
    "TrustRecord",
    "claim_config_location",
    "get_database",
    "is_valid_identity",
    "trust_record_location",
    "validate_flags",
    "validate_score",
]
