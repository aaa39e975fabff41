from __future__ import annotations

import json
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable

from .settings import settings


# Set by configure(); falls back to settings.db_path.
_db_path: str | None = None


def configure(db_path: str | None) -> None:
    """Point the event log at another sqlite file."""
    global _db_path
    _db_path = db_path


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    If the configured path is a directory (Docker creates one for a missing
    bind-mounted file), the DB file is placed inside it.
    """

    p = os.path.abspath(_db_path or settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "bsr.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db() -> None:
    """Create tables if they do not exist."""
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS runs (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              mode TEXT NOT NULL,
              state TEXT NOT NULL, -- running|done|failed
              tables TEXT NOT NULL, -- JSON list of bucket names
              message TEXT,
              started_at TEXT NOT NULL,
              finished_at TEXT
            );

            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              bucket TEXT,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            """
        )


def log_event(level: str, message: str, bucket: str | None = None) -> None:
    with connect() as conn:
        conn.execute(
            "INSERT INTO events (ts, level, bucket, message) VALUES (?, ?, ?, ?)",
            (utc_now(), level.upper(), bucket, message),
        )


@dataclass(frozen=True)
class RunRow:
    id: int
    mode: str
    state: str
    tables: list[str]
    message: str | None
    started_at: str
    finished_at: str | None


def _row_to_run(row: sqlite3.Row) -> RunRow:
    data = dict(row)
    data["tables"] = json.loads(data["tables"])
    return RunRow(**data)


def _rows_to_runs(rows: Iterable[sqlite3.Row]) -> list[RunRow]:
    return [_row_to_run(r) for r in rows]


def start_run(mode: str, tables: list[str]) -> RunRow:
    with connect() as conn:
        cur = conn.execute(
            "INSERT INTO runs (mode, state, tables, started_at) VALUES (?, ?, ?, ?)",
            (mode, "running", json.dumps(tables), utc_now()),
        )
        row = conn.execute("SELECT * FROM runs WHERE id=?", (cur.lastrowid,)).fetchone()
        return _row_to_run(row)


def finish_run(run_id: int, state: str, message: str | None = None) -> RunRow:
    with connect() as conn:
        conn.execute(
            "UPDATE runs SET state=?, message=?, finished_at=? WHERE id=?",
            (state, message, utc_now(), run_id),
        )
        row = conn.execute("SELECT * FROM runs WHERE id=?", (run_id,)).fetchone()
        return _row_to_run(row)


def list_runs(limit: int = 20) -> list[RunRow]:
    with connect() as conn:
        rows = conn.execute("SELECT * FROM runs ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return _rows_to_runs(rows)


def latest_events(limit: int = 100, bucket: str | None = None) -> list[dict[str, Any]]:
    with connect() as conn:
        if bucket:
            rows = conn.execute(
                "SELECT * FROM events WHERE bucket=? ORDER BY id DESC LIMIT ?", (bucket, limit)
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
