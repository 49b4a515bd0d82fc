"""
Filesystem locations for linkroute state.

This module is the single place that decides where the engine reads and
writes data:

- Runtime data lives under a linkroute "data root".
- The data root can be overridden with ``LINKROUTE_DATA_ROOT`` or an explicit
  argument (the CLI's ``--data-root``), which tests use to stay inside
  ``tmp_path``.

Nothing else in the engine builds state paths by hand.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

APP_DIR_NAME = "linkroute"
DATA_ROOT_ENV = "LINKROUTE_DATA_ROOT"


@dataclass(frozen=True, slots=True)
class StatePaths:
    """
    Concrete resolved paths for linkroute state.

    Attributes
    ----------
    data_root:
        Root directory for all linkroute runtime data.
    state_db:
        SQLite database holding the routing state fields.
    settings_file:
        JSON engine settings (self id, discovery provider, log level).
    destinations_manifest:
        JSON list of destinations written by an OS integration helper.
    logs_root:
        Directory for log files.
    """

    data_root: Path
    state_db: Path
    settings_file: Path
    destinations_manifest: Path
    logs_root: Path


def default_data_root() -> Path:
    """
    Resolve the default data root.

    Preference order:
    1) ``LINKROUTE_DATA_ROOT``
    2) ``%LOCALAPPDATA%`` then ``%APPDATA%`` (Windows)
    3) ``$XDG_CONFIG_HOME``
    4) ``~/.config``
    """
    override = os.environ.get(DATA_ROOT_ENV)
    if override:
        return Path(override)

    for env_name in ("LOCALAPPDATA", "APPDATA", "XDG_CONFIG_HOME"):
        value = os.environ.get(env_name)
        if value:
            return Path(value) / APP_DIR_NAME

    return Path.home() / ".config" / APP_DIR_NAME


def resolve_state_paths(data_root: Path | None = None) -> StatePaths:
    """
    Resolve every state path under `data_root` (or the default root).

    Returns
    -------
    StatePaths
        Resolved, absolute paths. Nothing is created on disk.
    """
    root = (data_root or default_data_root()).expanduser().resolve()
    return StatePaths(
        data_root=root,
        state_db=root / "state.sqlite",
        settings_file=root / "settings.json",
        destinations_manifest=root / "destinations.json",
        logs_root=root / "logs",
    )


def ensure_state_directories(paths: StatePaths) -> None:
    """Create the data root and log directory if missing. Never deletes."""
    for directory in (paths.data_root, paths.logs_root):
        directory.mkdir(parents=True, exist_ok=True)
