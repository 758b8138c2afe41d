"""
Database abstraction layer for trust records, claim configs, and the payout ledger.

SQLite backend; designed so it can be swapped for another store via a
different Backend implementation. Every operation is a single SQLite
transaction, so create/update/transfer are atomic and totally ordered per
record by SQLite's write lock. The core does no locking of its own.

Records are keyed by derived location (see locations.py): "create if absent"
is one INSERT against the primary key, never a read followed by a write.
"""

from __future__ import annotations

import sqlite3
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator

from backend_veritas.config.env import DEFAULT_AIRDROP_PROGRAM_ID, DEFAULT_VERITAS_PROGRAM_ID
from backend_veritas.core.exceptions import (
    AlreadyClaimed,
    AlreadyExists,
    InvalidScore,
    NotFound,
    StoreUnavailable,
    TransferFailed,
    Unauthorized,
)
from backend_veritas.database.locations import (
    claim_config_location,
    parse_identity,
    trust_record_location,
)
from backend_veritas.database.models import (
    DEFAULT_FLAGS,
    DEFAULT_SCORE,
    MAX_SCORE,
    MIN_SCORE,
    ClaimConfig,
    TrustRecord,
)
from backend_veritas.logging import get_logger, short_id

logger = get_logger(__name__)

# Largest bitmask SQLite INTEGER can hold
MAX_FLAGS = 2**63 - 1

# -----------------------------------------------------------------------------
# Schema (SQLite)
# -----------------------------------------------------------------------------

SCHEMA_TRUST_RECORDS = """
CREATE TABLE IF NOT EXISTS trust_records (
    location TEXT PRIMARY KEY,
    owner_identity TEXT NOT NULL UNIQUE,
    score INTEGER NOT NULL CHECK (score BETWEEN 0 AND 100),
    flags INTEGER NOT NULL DEFAULT 0,
    last_updated INTEGER NOT NULL,
    authority TEXT NOT NULL,
    created_at INTEGER
);
"""

SCHEMA_CLAIM_CONFIGS = """
CREATE TABLE IF NOT EXISTS claim_configs (
    location TEXT PRIMARY KEY,
    campaign TEXT NOT NULL UNIQUE,
    authority TEXT NOT NULL,
    min_score_required INTEGER NOT NULL CHECK (min_score_required BETWEEN 0 AND 100),
    treasury TEXT NOT NULL,
    payout_amount INTEGER NOT NULL CHECK (payout_amount > 0),
    created_at INTEGER
);
"""

SCHEMA_LEDGER = """
CREATE TABLE IF NOT EXISTS balances (
    identity TEXT PRIMARY KEY,
    lamports INTEGER NOT NULL CHECK (lamports >= 0)
);
CREATE TABLE IF NOT EXISTS claim_receipts (
    receipt_key TEXT PRIMARY KEY,
    source TEXT NOT NULL,
    destination TEXT NOT NULL,
    amount INTEGER NOT NULL,
    claimed_at INTEGER NOT NULL
);
"""


def validate_score(value: Any) -> int:
    """Return value if it is an int in [0, 100]; raise InvalidScore otherwise."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidScore(value)
    if not MIN_SCORE <= value <= MAX_SCORE:
        raise InvalidScore(value)
    return int(value)


def validate_flags(value: Any) -> int:
    """Any non-negative bitmask that fits an SQLite INTEGER is accepted."""
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= MAX_FLAGS:
        raise InvalidScore(value, message=f"Flags must be a non-negative bitmask, got {value!r}")
    return int(value)


def _row_to_trust_record(row: sqlite3.Row) -> TrustRecord:
    return TrustRecord(
        location=row["location"],
        owner_identity=row["owner_identity"],
        score=int(row["score"]),
        flags=int(row["flags"]),
        last_updated=int(row["last_updated"]),
        authority=row["authority"],
    )


def _row_to_claim_config(row: sqlite3.Row) -> ClaimConfig:
    return ClaimConfig(
        location=row["location"],
        campaign=row["campaign"],
        authority=row["authority"],
        min_score_required=int(row["min_score_required"]),
        treasury=row["treasury"],
        payout_amount=int(row["payout_amount"]),
    )


# -----------------------------------------------------------------------------
# Abstract backend
# -----------------------------------------------------------------------------


class DatabaseBackend(ABC):
    """Abstract interface for persistence. Keys are derived locations; inputs are pre-validated."""

    @abstractmethod
    def ensure_schema(self) -> None:
        """Create tables if they do not exist."""
        ...

    @abstractmethod
    def insert_trust_record(self, record: TrustRecord) -> None:
        """Insert a new record; raise AlreadyExists if the location is taken."""
        ...

    @abstractmethod
    def update_trust_record(
        self, location: str, caller: str, score: int, flags: int, now: int
    ) -> TrustRecord:
        """
        Set score/flags and bump last_updated to max(previous, now) if caller is the
        authority. Raise NotFound or Unauthorized without writing anything.
        """
        ...

    @abstractmethod
    def get_trust_record(self, location: str) -> TrustRecord | None:
        ...

    @abstractmethod
    def insert_claim_config(self, config: ClaimConfig) -> None:
        ...

    @abstractmethod
    def update_claim_min_score(self, location: str, caller: str, min_score: int) -> ClaimConfig:
        ...

    @abstractmethod
    def get_claim_config(self, location: str) -> ClaimConfig | None:
        ...

    @abstractmethod
    def credit(self, identity: str, amount: int) -> int:
        """Add lamports to identity's balance; returns the new balance."""
        ...

    @abstractmethod
    def get_balance(self, identity: str) -> int:
        ...

    @abstractmethod
    def transfer(
        self,
        source: str,
        destination: str,
        amount: int,
        now: int,
        receipt_key: str | None = None,
    ) -> None:
        """Move amount from source to destination atomically; record receipt_key if given."""
        ...

    @abstractmethod
    def has_receipt(self, receipt_key: str) -> bool:
        ...


# -----------------------------------------------------------------------------
# SQLite backend
# -----------------------------------------------------------------------------


class SQLiteBackend(DatabaseBackend):
    """SQLite implementation; single file, one connection per operation."""

    def __init__(self, path: str | Path, *, timeout_sec: float = 5.0) -> None:
        self._path = Path(path)
        self._timeout_sec = timeout_sec

    def _connect(self) -> sqlite3.Connection:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self._path), timeout=self._timeout_sec)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    @contextmanager
    def _cursor(self) -> Iterator[sqlite3.Cursor]:
        try:
            conn = self._connect()
        except sqlite3.OperationalError as e:
            raise StoreUnavailable(f"Cannot open database {self._path}: {e}") from e
        try:
            cur = conn.cursor()
            yield cur
            conn.commit()
        except sqlite3.OperationalError as e:
            conn.rollback()
            raise StoreUnavailable(str(e)) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        with self._cursor() as cur:
            for stmt in (SCHEMA_TRUST_RECORDS, SCHEMA_CLAIM_CONFIGS, SCHEMA_LEDGER):
                cur.executescript(stmt)

    # --- Trust records ---

    def insert_trust_record(self, record: TrustRecord) -> None:
        with self._cursor() as cur:
            try:
                cur.execute(
                    """
                    INSERT INTO trust_records
                        (location, owner_identity, score, flags, last_updated, authority, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        record.location,
                        record.owner_identity,
                        record.score,
                        record.flags,
                        record.last_updated,
                        record.authority,
                        record.last_updated,
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise AlreadyExists(record.owner_identity, record.location) from e

    def update_trust_record(
        self, location: str, caller: str, score: int, flags: int, now: int
    ) -> TrustRecord:
        with self._cursor() as cur:
            cur.execute(
                """
                UPDATE trust_records
                SET score = ?, flags = ?, last_updated = MAX(last_updated, ?)
                WHERE location = ? AND authority = ?
                """,
                (score, flags, now, location, caller),
            )
            updated = cur.rowcount
            cur.execute("SELECT * FROM trust_records WHERE location = ?", (location,))
            row = cur.fetchone()
            if row is None:
                raise NotFound(location, location)
            if updated == 0:
                raise Unauthorized(caller, row["authority"])
            return _row_to_trust_record(row)

    def get_trust_record(self, location: str) -> TrustRecord | None:
        with self._cursor() as cur:
            cur.execute("SELECT * FROM trust_records WHERE location = ?", (location,))
            row = cur.fetchone()
        return _row_to_trust_record(row) if row else None

    # --- Claim configs ---

    def insert_claim_config(self, config: ClaimConfig) -> None:
        with self._cursor() as cur:
            try:
                cur.execute(
                    """
                    INSERT INTO claim_configs
                        (location, campaign, authority, min_score_required, treasury, payout_amount, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        config.location,
                        config.campaign,
                        config.authority,
                        config.min_score_required,
                        config.treasury,
                        config.payout_amount,
                        int(time.time()),
                    ),
                )
            except sqlite3.IntegrityError as e:
                raise AlreadyExists(config.campaign, config.location) from e

    def update_claim_min_score(self, location: str, caller: str, min_score: int) -> ClaimConfig:
        with self._cursor() as cur:
            cur.execute(
                "UPDATE claim_configs SET min_score_required = ? WHERE location = ? AND authority = ?",
                (min_score, location, caller),
            )
            updated = cur.rowcount
            cur.execute("SELECT * FROM claim_configs WHERE location = ?", (location,))
            row = cur.fetchone()
            if row is None:
                raise NotFound(location, location)
            if updated == 0:
                raise Unauthorized(caller, row["authority"])
            return _row_to_claim_config(row)

    def get_claim_config(self, location: str) -> ClaimConfig | None:
        with self._cursor() as cur:
            cur.execute("SELECT * FROM claim_configs WHERE location = ?", (location,))
            row = cur.fetchone()
        return _row_to_claim_config(row) if row else None

    # --- Ledger ---

    def credit(self, identity: str, amount: int) -> int:
        with self._cursor() as cur:
            cur.execute(
                """
                INSERT INTO balances (identity, lamports) VALUES (?, ?)
                ON CONFLICT(identity) DO UPDATE SET lamports = lamports + excluded.lamports
                """,
                (identity, amount),
            )
            cur.execute("SELECT lamports FROM balances WHERE identity = ?", (identity,))
            return int(cur.fetchone()["lamports"])

    def get_balance(self, identity: str) -> int:
        with self._cursor() as cur:
            cur.execute("SELECT lamports FROM balances WHERE identity = ?", (identity,))
            row = cur.fetchone()
        return int(row["lamports"]) if row else 0

    def transfer(
        self,
        source: str,
        destination: str,
        amount: int,
        now: int,
        receipt_key: str | None = None,
    ) -> None:
        with self._cursor() as cur:
            if receipt_key is not None:
                try:
                    cur.execute(
                        """
                        INSERT INTO claim_receipts (receipt_key, source, destination, amount, claimed_at)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (receipt_key, source, destination, amount, now),
                    )
                except sqlite3.IntegrityError as e:
                    raise AlreadyClaimed(destination, receipt_key) from e
            cur.execute(
                "UPDATE balances SET lamports = lamports - ? WHERE identity = ? AND lamports >= ?",
                (amount, source, amount),
            )
            if cur.rowcount == 0:
                raise TransferFailed(source, destination, amount, "insufficient funds")
            cur.execute(
                """
                INSERT INTO balances (identity, lamports) VALUES (?, ?)
                ON CONFLICT(identity) DO UPDATE SET lamports = lamports + excluded.lamports
                """,
                (destination, amount),
            )

    def has_receipt(self, receipt_key: str) -> bool:
        with self._cursor() as cur:
            cur.execute("SELECT 1 FROM claim_receipts WHERE receipt_key = ?", (receipt_key,))
            return cur.fetchone() is not None


# -----------------------------------------------------------------------------
# Database: validation, location derivation, clock
# -----------------------------------------------------------------------------


class Database:
    """
    High-level store over a backend: trust record state machine, claim configs, ledger.

    All validation happens here before the backend is touched, so a rejected
    write leaves the stored state exactly as it was.
    """

    def __init__(
        self,
        backend: DatabaseBackend,
        *,
        veritas_program_id: str = DEFAULT_VERITAS_PROGRAM_ID,
        airdrop_program_id: str = DEFAULT_AIRDROP_PROGRAM_ID,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._backend = backend
        self._veritas_program_id = veritas_program_id
        self._airdrop_program_id = airdrop_program_id
        self._clock = clock

    def ensure_schema(self) -> None:
        self._backend.ensure_schema()

    def _now(self) -> int:
        return int(self._clock())

    # --- Locations ---

    def trust_location(self, identity: str) -> str:
        return trust_record_location(self._veritas_program_id, str(identity).strip())

    def claim_location(self, campaign: str) -> str:
        return claim_config_location(self._airdrop_program_id, campaign)

    # --- Trust records ---

    def create_trust_record(self, identity: str, authority: str) -> TrustRecord:
        """Create the record for identity with score=100, flags=0. AlreadyExists if present."""
        identity = str(parse_identity(identity))
        authority = str(parse_identity(authority))
        record = TrustRecord(
            location=self.trust_location(identity),
            owner_identity=identity,
            score=DEFAULT_SCORE,
            flags=DEFAULT_FLAGS,
            last_updated=self._now(),
            authority=authority,
        )
        self._backend.insert_trust_record(record)
        logger.info(
            "store_trust_record_created",
            identity=short_id(identity),
            location=record.location,
            authority=short_id(authority),
        )
        return record

    def update_trust_record(self, identity: str, caller: str, score: int, flags: int) -> TrustRecord:
        """Authority-gated score/flags write. InvalidScore, NotFound, Unauthorized leave state untouched."""
        score = validate_score(score)
        flags = validate_flags(flags)
        location = self.trust_location(identity)
        record = self._backend.update_trust_record(location, str(caller), score, flags, self._now())
        logger.debug(
            "store_trust_record_updated",
            identity=short_id(identity),
            score=score,
            flags=flags,
            last_updated=record.last_updated,
        )
        return record

    def read_trust_record(self, identity: str) -> TrustRecord:
        """Return a snapshot of the record; NotFound if absent."""
        location = self.trust_location(identity)
        record = self._backend.get_trust_record(location)
        if record is None:
            raise NotFound(identity, location)
        return record

    # --- Claim configs ---

    def create_claim_config(
        self,
        campaign: str,
        authority: str,
        min_score_required: int,
        treasury: str,
        payout_amount: int,
    ) -> ClaimConfig:
        min_score_required = validate_score(min_score_required)
        if isinstance(payout_amount, bool) or not isinstance(payout_amount, int) or payout_amount <= 0:
            raise ValueError("payout_amount must be a positive integer (lamports)")
        config = ClaimConfig(
            location=self.claim_location(campaign),
            campaign=campaign.strip(),
            authority=str(parse_identity(authority)),
            min_score_required=min_score_required,
            treasury=str(parse_identity(treasury)),
            payout_amount=payout_amount,
        )
        self._backend.insert_claim_config(config)
        logger.info(
            "store_claim_config_created",
            campaign=config.campaign,
            location=config.location,
            min_score_required=min_score_required,
            payout_amount=payout_amount,
        )
        return config

    def set_min_score(self, campaign: str, caller: str, min_score_required: int) -> ClaimConfig:
        """Change a campaign's threshold; only its authority may do so."""
        min_score_required = validate_score(min_score_required)
        return self._backend.update_claim_min_score(
            self.claim_location(campaign), str(caller), min_score_required
        )

    def read_claim_config(self, campaign: str) -> ClaimConfig:
        location = self.claim_location(campaign)
        config = self._backend.get_claim_config(location)
        if config is None:
            raise NotFound(campaign, location)
        return config

    # --- Ledger ---

    def deposit(self, identity: str, amount: int) -> int:
        """Fund identity (e.g. a treasury) with lamports. Returns the new balance."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError("Deposit amount must be a positive integer (lamports)")
        return self._backend.credit(str(parse_identity(identity)), amount)

    def get_balance(self, identity: str) -> int:
        return self._backend.get_balance(identity)

    def transfer(
        self,
        source: str,
        destination: str,
        amount: int,
        *,
        receipt_key: str | None = None,
    ) -> None:
        """
        Move amount lamports from source to destination in one transaction.

        TransferFailed if amount is not positive or source lacks funds; AlreadyClaimed
        if receipt_key was already recorded. On failure nothing moves.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise TransferFailed(source, destination, amount, "amount must be positive")
        self._backend.transfer(source, destination, amount, self._now(), receipt_key)

    def has_receipt(self, receipt_key: str) -> bool:
        return self._backend.has_receipt(receipt_key)


def get_database(
    path: str | Path | None = None,
    *,
    veritas_program_id: str = DEFAULT_VERITAS_PROGRAM_ID,
    airdrop_program_id: str = DEFAULT_AIRDROP_PROGRAM_ID,
    clock: Callable[[], float] = time.time,
) -> Database:
    """
    Return a Database over SQLite with the schema ensured.

    path: Path to the SQLite file. Default: "veritas.db" in cwd.
    """
    if path is None:
        path = Path("veritas.db")
    db = Database(
        SQLiteBackend(path),
        veritas_program_id=veritas_program_id,
        airdrop_program_id=airdrop_program_id,
        clock=clock,
    )
    db.ensure_schema()
    return db
