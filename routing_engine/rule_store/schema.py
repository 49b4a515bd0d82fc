"""SQLite schema for the routing state.

Notes
-----
One row per persisted field group. Values are JSON text written by the store;
the database never interprets them.
"""

from __future__ import annotations

SCHEMA_V1 = """
PRAGMA journal_mode = WAL;

CREATE TABLE IF NOT EXISTS state_meta (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS state_fields (
    key            TEXT PRIMARY KEY,
    value          TEXT NOT NULL,
    updated_at_utc TEXT NOT NULL
);
"""

SCHEMA_VERSION = "1"
