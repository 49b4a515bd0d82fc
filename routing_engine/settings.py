"""
Engine settings persisted as JSON.

These settings configure the engine's collaborators (which discovery provider
to use, the router's own id, last-resort destinations, log level). They are
separate from the routing state: losing this file only resets defaults.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from .catalog.catalog import DEFAULT_SELF_ID
from .dispatch import LAST_RESORT_DESTINATION_IDS
from .errors import SettingsError
from .paths import resolve_state_paths

logger = logging.getLogger(__name__)

PROVIDERS = ("xdg", "manifest")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _default_provider() -> str:
    return "xdg" if sys.platform.startswith(("linux", "freebsd", "openbsd")) else "manifest"


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """
    Persisted engine settings.

    Attributes
    ----------
    self_id:
        The router's own destination id (excluded from the catalog).
    provider:
        ``"xdg"`` or ``"manifest"``.
    last_resort_ids:
        Destinations tried when the OS default is unusable.
    log_level:
        Root log level name.
    """

    self_id: str
    provider: str
    last_resort_ids: tuple[str, ...]
    log_level: str

    @staticmethod
    def defaults() -> "EngineSettings":
        return EngineSettings(
            self_id=DEFAULT_SELF_ID,
            provider=_default_provider(),
            last_resort_ids=LAST_RESORT_DESTINATION_IDS,
            log_level="WARNING",
        )


def _settings_path(data_root: Path | None) -> Path:
    return resolve_state_paths(data_root).settings_file


def load_engine_settings(*, data_root: Path | None) -> EngineSettings:
    """
    Load settings, falling back to defaults field by field.

    Returns
    -------
    EngineSettings
        Never raises; a missing or unreadable file yields defaults.
    """
    defaults = EngineSettings.defaults()
    path = _settings_path(data_root)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return defaults
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return defaults
    if not isinstance(payload, dict):
        return defaults

    self_id = payload.get("self_id")
    if not isinstance(self_id, str) or not self_id.strip():
        self_id = defaults.self_id

    provider = payload.get("provider")
    if provider not in PROVIDERS:
        provider = defaults.provider

    last_resort = payload.get("last_resort_ids")
    if isinstance(last_resort, list) and all(isinstance(v, str) for v in last_resort):
        last_resort_ids = tuple(last_resort)
    else:
        last_resort_ids = defaults.last_resort_ids

    log_level = str(payload.get("log_level", defaults.log_level)).upper()
    if log_level not in LOG_LEVELS:
        log_level = defaults.log_level

    return EngineSettings(
        self_id=self_id.strip(),
        provider=str(provider),
        last_resort_ids=last_resort_ids,
        log_level=log_level,
    )


def save_engine_settings(*, data_root: Path | None, settings: EngineSettings) -> None:
    """
    Write settings to disk.

    Raises
    ------
    SettingsError
        If the file cannot be written.
    """
    path = _settings_path(data_root)
    payload = {
        "self_id": settings.self_id,
        "provider": settings.provider,
        "last_resort_ids": list(settings.last_resort_ids),
        "log_level": settings.log_level,
    }
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    except OSError as exc:
        raise SettingsError(f"Failed to write settings {path}: {exc}") from exc
