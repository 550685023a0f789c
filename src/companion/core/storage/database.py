"""SQLite database management for the GLP-1 Companion health log bank.

Handles connection lifecycle, schema creation, and migrations.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 2

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
-- One row per logged event (meal, hydration, symptom, medication, weight, activity, mood)
CREATE TABLE IF NOT EXISTS records (
    id          TEXT PRIMARY KEY,
    type        TEXT NOT NULL,
    date        TEXT NOT NULL,

    -- Encrypted free text
    value_enc   TEXT,
    note_enc    TEXT,

    -- Plain macros for per-day aggregation (NULL means not logged)
    calories    REAL,
    carbs       REAL,
    protein     REAL,
    fat         REAL,
    fiber       REAL,

    created_at  TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at  TEXT
);

-- Hydration source of truth
CREATE TABLE IF NOT EXISTS fluid_logs (
    id          TEXT PRIMARY KEY,
    date        TEXT NOT NULL,
    amount_ml   REAL NOT NULL CHECK (amount_ml > 0),
    type        TEXT NOT NULL,
    notes_enc   TEXT,
    created_at  TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Singleton: exactly one active goals row (id = 1)
CREATE TABLE IF NOT EXISTS nutrition_goals (
    id                   INTEGER PRIMARY KEY CHECK (id = 1),
    daily_calories       REAL NOT NULL,
    daily_carbs          REAL NOT NULL,
    daily_protein        REAL NOT NULL,
    daily_fat            REAL NOT NULL,
    daily_fiber          REAL NOT NULL,
    daily_hydration_ml   REAL NOT NULL,
    hydration_types      TEXT NOT NULL,
    created_at           TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at           TEXT
);

-- Append-only goal history
CREATE TABLE IF NOT EXISTS goal_history (
    id           TEXT PRIMARY KEY,
    seq          INTEGER NOT NULL,
    date         TEXT NOT NULL,
    calories     REAL NOT NULL,
    carbs        REAL NOT NULL,
    protein      REAL NOT NULL,
    fat          REAL NOT NULL,
    fiber        REAL NOT NULL,
    hydration_ml REAL NOT NULL,
    reason       TEXT NOT NULL,
    notes_enc    TEXT
);

-- Singleton: current medication schedule (id = 1)
CREATE TABLE IF NOT EXISTS medication_schedule (
    id              INTEGER PRIMARY KEY CHECK (id = 1),
    medication_id   TEXT,
    medication_name TEXT NOT NULL,
    current_dose    TEXT NOT NULL,
    phase           TEXT NOT NULL,
    next_dose_date  TEXT,
    notes_enc       TEXT,
    updated_at      TEXT
);

-- Per-category logging consent
CREATE TABLE IF NOT EXISTS consents (
    category     TEXT PRIMARY KEY,
    status       INTEGER NOT NULL DEFAULT 1,
    date_changed TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Indexes for common query patterns
CREATE INDEX IF NOT EXISTS idx_records_date      ON records(date);
CREATE INDEX IF NOT EXISTS idx_records_type      ON records(type);
CREATE INDEX IF NOT EXISTS idx_fluid_logs_date   ON fluid_logs(date);
CREATE INDEX IF NOT EXISTS idx_goal_history_seq  ON goal_history(seq);
"""

# ---------------------------------------------------------------------------
# V2: Audit log + barcode product cache
# ---------------------------------------------------------------------------

_SCHEMA_V2 = """
CREATE TABLE IF NOT EXISTS audit_log (
    id             TEXT PRIMARY KEY,
    timestamp      TEXT NOT NULL DEFAULT (datetime('now')),
    action         TEXT NOT NULL,
    target_entity  TEXT NOT NULL,
    details        TEXT,
    input_hash     TEXT,
    metadata_json  TEXT
);

CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action    ON audit_log(action);
CREATE INDEX IF NOT EXISTS idx_audit_target    ON audit_log(target_entity);

-- Barcode lookups: keyed by barcode, overwritten on refresh, no expiry
CREATE TABLE IF NOT EXISTS food_product_cache (
    barcode       TEXT PRIMARY KEY,
    name          TEXT NOT NULL,
    calories      REAL,
    carbs         REAL,
    protein       REAL,
    fat           REAL,
    fiber         REAL,
    alerts_json   TEXT,
    updated_at    TEXT NOT NULL
);
"""


class DatabaseError(Exception):
    """Raised when database operations fail."""


class HealthDatabase:
    """SQLite database manager for the health log bank.

    Supports both file-based and in-memory (`:memory:`) databases.
    In-memory mode is used for testing.

    Usage::

        db = HealthDatabase(":memory:")
        db.initialize()
        conn = db.connection
        # ... use connection ...
        db.close()
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        """Initialize database manager.

        Args:
            db_path: Path to SQLite file, or ":memory:" for in-memory DB.
        """
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the active database connection.

        Raises:
            DatabaseError: If the database has not been initialized.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Create the database connection and ensure schema exists.

        For file-based databases, creates parent directories if needed.
        Idempotent: safe to call multiple times.
        """
        if self._conn is not None:
            return

        if self._db_path != ":memory:":
            db_file = Path(self._db_path).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_file), check_same_thread=False)
        else:
            self._conn = sqlite3.connect(":memory:", check_same_thread=False)

        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        self._ensure_schema()
        logger.info("Health database initialized: %s", self._db_path)

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist and apply migrations."""
        conn = self.connection

        # V1: Core tables (CREATE IF NOT EXISTS is idempotent)
        conn.executescript(_SCHEMA_V1)

        cursor = conn.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        current_version = row[0] if row[0] is not None else 0

        if current_version < 2:
            conn.executescript(_SCHEMA_V2)
            logger.info("Applied schema migration V2: audit_log, food_product_cache")

        if current_version < SCHEMA_VERSION:
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info(
                "Schema updated from version %d to %d", current_version, SCHEMA_VERSION
            )

    def get_schema_version(self) -> int:
        """Return the current schema version."""
        cursor = self.connection.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        return row[0] if row[0] is not None else 0

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Health database closed")

    def __enter__(self) -> HealthDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
