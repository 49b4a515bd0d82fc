"""
DestinationProvider implementations.

- StaticDestinationProvider: fixed list, for embedding and tests.
- ManifestDestinationProvider: JSON manifest written by an OS integration
  helper (for platforms where discovery needs native APIs).
- XdgDestinationProvider: freedesktop.org desktop entries and
  ``mimeapps.list`` (Linux and BSD desktops).

Providers report what they find and never raise for an empty or partially
unreadable system; unusable entries are skipped with a debug log line.
"""

from __future__ import annotations

import configparser
import json
import logging
import os
import re
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Sequence

from .api import DestinationProvider, DiscoveredApp, DiscoveryResult

logger = logging.getLogger(__name__)

HTTPS_HANDLER_MIME = "x-scheme-handler/https"
DESKTOP_ENTRY_SECTION = "Desktop Entry"
DEFAULT_APPLICATIONS_SECTION = "Default Applications"
_ENV_ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")


@dataclass(frozen=True, slots=True)
class StaticDestinationProvider(DestinationProvider):
    """Provider that reports a fixed set of applications."""

    apps: tuple[DiscoveredApp, ...] = ()
    default_id: str | None = None

    def discover(self) -> DiscoveryResult:
        return DiscoveryResult(apps=self.apps, default_id=self.default_id)

    def describe(self) -> Sequence[str]:
        return [f"static: {len(self.apps)} application(s)"]


def _app_from_payload(item: object) -> DiscoveredApp | None:
    if not isinstance(item, dict):
        return None
    app_id, name, path = item.get("id"), item.get("name"), item.get("executable_path")
    if not all(isinstance(v, str) and v.strip() for v in (app_id, name, path)):
        return None
    return DiscoveredApp(id=str(app_id).strip(), name=str(name).strip(), executable_path=str(path))


@dataclass(frozen=True, slots=True)
class ManifestDestinationProvider(DestinationProvider):
    """
    Provider backed by a JSON manifest.

    Manifest shape::

        {"default": "com.apple.Safari",
         "destinations": [{"id": ..., "name": ..., "executable_path": ...}]}

    A missing or corrupt manifest reports no applications.
    """

    path: Path

    def discover(self) -> DiscoveryResult:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            logger.debug("Destination manifest not found: %s", self.path)
            return DiscoveryResult()
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable destination manifest %s: %s", self.path, exc)
            return DiscoveryResult()
        if not isinstance(payload, dict):
            logger.warning("Ignoring destination manifest %s: not a JSON object", self.path)
            return DiscoveryResult()

        entries = payload.get("destinations")
        apps: list[DiscoveredApp] = []
        for item in entries if isinstance(entries, list) else []:
            app = _app_from_payload(item)
            if app is None:
                logger.debug("Skipping malformed manifest entry: %r", item)
                continue
            apps.append(app)
        default_id = payload.get("default")
        return DiscoveryResult(
            apps=tuple(apps),
            default_id=default_id if isinstance(default_id, str) and default_id else None,
        )

    def describe(self) -> Sequence[str]:
        return [f"manifest: {self.path}"]


def write_destination_manifest(path: Path, apps: Iterable[DiscoveredApp], default_id: str | None) -> None:
    """Write a manifest readable by ManifestDestinationProvider."""
    payload = {
        "default": default_id,
        "destinations": [
            {"id": a.id, "name": a.name, "executable_path": a.executable_path} for a in apps
        ],
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")


def _new_parser() -> configparser.ConfigParser:
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    return parser


def _split_env_dirs(value: str | None, fallback: Sequence[str]) -> list[Path]:
    parts = [p for p in (value or "").split(os.pathsep) if p]
    return [Path(p) for p in (parts or fallback)]


def xdg_data_dirs() -> list[Path]:
    """User data dir first, then system data dirs (XDG base directory layout)."""
    home_data = os.environ.get("XDG_DATA_HOME") or str(Path.home() / ".local" / "share")
    return [Path(home_data)] + _split_env_dirs(
        os.environ.get("XDG_DATA_DIRS"), ["/usr/local/share", "/usr/share"]
    )


def xdg_config_dirs() -> list[Path]:
    """User config dir first, then system config dirs."""
    home_config = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return [Path(home_config)] + _split_env_dirs(os.environ.get("XDG_CONFIG_DIRS"), ["/etc/xdg"])


def _strip_env_wrapper(argv: list[str]) -> list[str]:
    """Drop a leading ``env`` and its ``-u NAME``, flags and ``NAME=value`` tokens."""
    if argv and Path(argv[0]).name == "env":
        argv = argv[1:]
        while argv:
            if argv[0] in ("-u", "--unset") and len(argv) > 1:
                argv = argv[2:]
            elif argv[0].startswith("-"):
                argv = argv[1:]
            else:
                break
    while argv and _ENV_ASSIGNMENT.match(argv[0]):
        argv = argv[1:]
    return argv


def parse_desktop_entry(text: str, desktop_id: str) -> DiscoveredApp | None:
    """
    Interpret a ``.desktop`` file as an https handler.

    Returns
    -------
    DiscoveredApp | None
        None unless the entry is a visible Application that lists
        ``x-scheme-handler/https`` and has a usable Exec line.
    """
    parser = _new_parser()
    try:
        parser.read_string(text)
    except configparser.Error as exc:
        logger.debug("Skipping unparseable desktop entry %s: %s", desktop_id, exc)
        return None
    if not parser.has_section(DESKTOP_ENTRY_SECTION):
        return None
    entry = parser[DESKTOP_ENTRY_SECTION]

    if entry.get("Type", "Application") != "Application":
        return None
    if entry.get("NoDisplay", "false").lower() == "true" or entry.get("Hidden", "false").lower() == "true":
        return None
    mime_types = {m.strip() for m in entry.get("MimeType", "").split(";") if m.strip()}
    if HTTPS_HANDLER_MIME not in mime_types:
        return None

    try:
        argv = _strip_env_wrapper(shlex.split(entry.get("Exec", "")))
    except ValueError:
        return None
    if not argv:
        return None
    name = entry.get("Name", "").strip() or desktop_id.removesuffix(".desktop")
    return DiscoveredApp(id=desktop_id, name=name, executable_path=argv[0])


def parse_default_handler(text: str) -> str | None:
    """Return the first ``x-scheme-handler/https`` default in a mimeapps.list."""
    parser = _new_parser()
    try:
        parser.read_string(text)
    except configparser.Error:
        return None
    if not parser.has_section(DEFAULT_APPLICATIONS_SECTION):
        return None
    value = parser[DEFAULT_APPLICATIONS_SECTION].get(HTTPS_HANDLER_MIME, "")
    for candidate in value.split(";"):
        if candidate.strip():
            return candidate.strip()
    return None


def _desktop_id(applications_dir: Path, path: Path) -> str:
    return "-".join(path.relative_to(applications_dir).parts)


@dataclass(frozen=True, slots=True)
class XdgDestinationProvider(DestinationProvider):
    """
    Provider for freedesktop.org desktops.

    Parameters
    ----------
    data_dirs:
        Directories whose ``applications/`` subfolder holds desktop entries,
        highest precedence first.
    config_dirs:
        Directories searched for ``mimeapps.list``, highest precedence first.
    """

    data_dirs: tuple[Path, ...] = field(default_factory=lambda: tuple(xdg_data_dirs()))
    config_dirs: tuple[Path, ...] = field(default_factory=lambda: tuple(xdg_config_dirs()))

    def _iter_desktop_files(self) -> Iterable[tuple[str, Path]]:
        for data_dir in self.data_dirs:
            applications = data_dir / "applications"
            if not applications.is_dir():
                continue
            for path in sorted(applications.rglob("*.desktop")):
                yield _desktop_id(applications, path), path

    def _default_id(self) -> str | None:
        candidates = [d / "mimeapps.list" for d in self.config_dirs]
        candidates += [d / "applications" / "mimeapps.list" for d in self.data_dirs]
        for candidate in candidates:
            try:
                text = candidate.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            found = parse_default_handler(text)
            if found:
                return found
        return None

    def discover(self) -> DiscoveryResult:
        apps: list[DiscoveredApp] = []
        seen: set[str] = set()
        for desktop_id, path in self._iter_desktop_files():
            # A user entry shadows a system entry with the same id, even a hidden one.
            if desktop_id in seen:
                continue
            seen.add(desktop_id)
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.debug("Skipping unreadable desktop entry %s: %s", path, exc)
                continue
            app = parse_desktop_entry(text, desktop_id)
            if app is not None:
                apps.append(app)
        return DiscoveryResult(apps=tuple(apps), default_id=self._default_id())

    def describe(self) -> Sequence[str]:
        return [f"xdg applications: {d / 'applications'}" for d in self.data_dirs]
