from __future__ import annotations

import logging
import os
import sqlite3
from datetime import datetime, timezone
from typing import Any

from .settings import settings

logger = logging.getLogger("tcr")

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def configure_logging(level: str | int | None = None, force: bool = False) -> None:
    """Initialise the root logger with a terse format."""
    if level is None:
        level = settings.log_level
    if isinstance(level, str):
        level = _LEVELS.get(level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    If the configured path is a directory (e.g. a bind mount Docker created
    as a directory), the DB file is placed inside it.
    """
    p = os.path.abspath(settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "tcr.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


_initialized: set[str] = set()


def init_db() -> None:
    """Create the event table if it does not exist."""
    path = _resolve_db_path()
    if path in _initialized and os.path.exists(path):
        return
    with connect() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              topology TEXT,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            CREATE INDEX IF NOT EXISTS idx_events_topology ON events(topology);
            """
        )
    _initialized.add(path)


def log_event(level: str, message: str, topology: str | None = None) -> None:
    """Record an event and mirror it to the `tcr` logger.

    A failing event store must never break a reconciliation cycle, so
    database and filesystem errors are reported on the logger only.
    """
    level = level.upper()
    logger.log(_LEVELS.get(level, logging.INFO), "[%s] %s", topology or "-", message)
    try:
        init_db()
        with connect() as conn:
            conn.execute(
                "INSERT INTO events (ts, level, topology, message) VALUES (?, ?, ?, ?)",
                (utc_now(), level, topology, message),
            )
    except (sqlite3.Error, OSError) as e:
        logger.warning("event log unavailable: %s", e)


def latest_events(limit: int = 100, topology: str | None = None) -> list[dict[str, Any]]:
    init_db()
    with connect() as conn:
        if topology:
            rows = conn.execute(
                "SELECT * FROM events WHERE topology=? ORDER BY id DESC LIMIT ?",
                (topology, limit),
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
