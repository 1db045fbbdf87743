# storage/db.py
import os
import sqlite3
from pathlib import Path


_DEFAULT_LEDGER_PATH = Path(".localec") / "ledger.sqlite"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS source_hashes (
    key_path      TEXT PRIMARY KEY,
    value_hash    TEXT NOT NULL,
    context_sig   TEXT,
    last_seen_run TEXT,
    updated_at    TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_hash_lookup
    ON source_hashes (value_hash, context_sig);

CREATE TABLE IF NOT EXISTS sync_status (
    key_path          TEXT NOT NULL,
    lang_code         TEXT NOT NULL,
    target_hash       TEXT,
    status            TEXT NOT NULL
                      CHECK (status IN ('CLEAN', 'DIRTY', 'FAILED', 'MANUAL', 'SKIPPED')),
    model_fingerprint TEXT,
    prompt_version    INTEGER,
    updated_at        TEXT NOT NULL,
    PRIMARY KEY (key_path, lang_code)
);

CREATE INDEX IF NOT EXISTS idx_status_lookup
    ON sync_status (status, lang_code);

CREATE TABLE IF NOT EXISTS run_history (
    run_id            TEXT PRIMARY KEY,
    started_at        TEXT NOT NULL,
    finished_at       TEXT,
    model_used        TEXT,
    tokens_in         INTEGER,
    tokens_out        INTEGER,
    cost_estimate_usd REAL,
    config_hash       TEXT
);
"""


def get_connection(db_path: str | None = None) -> sqlite3.Connection:
    """
    Abre y configura la conexión a SQLite.
    Rows como sqlite3.Row y transacciones explícitas (isolation_level=None):
    el Ledger decide cuándo abrir y cerrar cada transacción.
    """
    path = db_path or os.environ.get("LOCALEC_LEDGER_PATH") or str(_DEFAULT_LEDGER_PATH)

    if path != ":memory:":
        Path(path).parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(path, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


def init_schema(conn: sqlite3.Connection) -> None:
    """Crea las tablas si no existen. Idempotente."""
    conn.executescript(_SCHEMA)
