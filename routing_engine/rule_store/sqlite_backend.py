"""
SQLite implementation of StateBackend.

This module owns the on-disk format of the routing state.

Threading
---------
A new sqlite3 connection is opened for every call and closed before it
returns, so the backend can be used from whichever thread currently owns the
RoutingStore.
"""

from __future__ import annotations

import sqlite3
from contextlib import closing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from ..clock import Clock, SystemClock
from ..data_models import datetime_to_iso_utc
from ..paths import ensure_state_directories, resolve_state_paths
from .api import StateBackend, StateField
from .schema import SCHEMA_V1, SCHEMA_VERSION


def _ensure_schema_version(conn: sqlite3.Connection) -> None:
    """Record the schema version the first time the database is created."""
    conn.execute(
        "INSERT INTO state_meta(key, value) VALUES('schema_version', ?) ON CONFLICT(key) DO NOTHING",
        (SCHEMA_VERSION,),
    )


@dataclass(frozen=True, slots=True)
class SqliteStateBackend(StateBackend):
    """
    SQLite-backed StateBackend.

    Parameters
    ----------
    db_path:
        Path to the SQLite database. Created (with its parent directory) if
        absent.
    clock:
        Source of the `updated_at_utc` column.
    """

    db_path: Path
    clock: Clock = field(default_factory=SystemClock)

    def __post_init__(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as conn, conn:
            conn.executescript(SCHEMA_V1)
            _ensure_schema_version(conn)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def load_field(self, key: StateField) -> str | None:
        """See StateBackend.load_field."""
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT value FROM state_fields WHERE key = ?", (key.value,)
            ).fetchone()
        return None if row is None else str(row["value"])

    def write_fields(self, values: Mapping[StateField, str | None]) -> None:
        """See StateBackend.write_fields."""
        stamp = datetime_to_iso_utc(self.clock.now())
        with closing(self._connect()) as conn, conn:
            for key, value in values.items():
                if value is None:
                    conn.execute("DELETE FROM state_fields WHERE key = ?", (key.value,))
                    continue
                conn.execute(
                    "INSERT INTO state_fields(key, value, updated_at_utc) VALUES(?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                    "updated_at_utc = excluded.updated_at_utc",
                    (key.value, value, stamp),
                )


def open_state_backend(data_root: Path | None = None) -> SqliteStateBackend:
    """
    Convenience constructor that ensures the state directories exist.

    Parameters
    ----------
    data_root:
        Optional override for the linkroute data root.
    """
    paths = resolve_state_paths(data_root)
    ensure_state_directories(paths)
    return SqliteStateBackend(db_path=paths.state_db)
