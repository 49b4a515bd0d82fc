"""
Profile discovery for multi-profile destinations.

Two destination families keep their profile lists in different formats:

- Chromium family: a JSON "Local State" file whose ``profile.info_cache``
  object maps a profile directory name to its metadata (``name``).
- Firefox family: a line-oriented ``profiles.ini`` with one ``[ProfileN]``
  section per profile holding ``Name=`` and ``Path=`` pairs.

Each format has a pure parser (bytes in, profiles out) and a ProfileSource
that reads the file. A missing, unreadable or malformed source yields no
profiles; it is never an error.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol

from ..data_models import Profile

logger = logging.getLogger(__name__)

CHROMIUM_DEFAULT_DIRECTORY = "Default"


class ProfileSource(Protocol):
    """Loads the profiles of one destination."""

    def load(self, destination_id: str) -> tuple[Profile, ...]:
        """Return the destination's profiles, or ``()`` when unavailable."""
        ...


def parse_chromium_local_state(data: bytes, destination_id: str) -> tuple[Profile, ...]:
    """
    Parse a Chromium "Local State" document.

    Profiles are ordered with ``Default`` first, then by display name.

    Raises
    ------
    ValueError
        If the document is not valid JSON.
    """
    document = json.loads(data.decode("utf-8"))
    section = document.get("profile") if isinstance(document, dict) else None
    info_cache = section.get("info_cache") if isinstance(section, dict) else None
    if not isinstance(info_cache, dict):
        return ()

    profiles: list[Profile] = []
    for directory, info in info_cache.items():
        name = info.get("name") if isinstance(info, dict) else None
        if not isinstance(name, str) or not name.strip():
            name = directory
        profiles.append(
            Profile(
                id=Profile.make_id(destination_id, directory),
                name=name.strip(),
                directory_name=directory,
            )
        )
    profiles.sort(key=lambda p: (p.directory_name != CHROMIUM_DEFAULT_DIRECTORY, p.name.casefold()))
    return tuple(profiles)


def _profile_from_section(section: str, values: Mapping[str, str], destination_id: str) -> Profile | None:
    if not section.lower().startswith("profile"):
        return None
    name = values.get("name", "").strip()
    path = values.get("path", "").strip()
    if not name or not path:
        return None
    return Profile(id=Profile.make_id(destination_id, path), name=name, directory_name=path)


def parse_firefox_profiles_ini(data: bytes, destination_id: str) -> tuple[Profile, ...]:
    """
    Parse a Firefox ``profiles.ini``.

    Notes
    -----
    Only ``[Profile*]`` sections carrying both ``Name`` and ``Path`` produce a
    profile. The section still open at end of input is flushed like any
    other, so the last profile in the file is not lost. Keys are matched
    case-insensitively; ``#`` and ``;`` start comment lines.
    """
    text = data.decode("utf-8", errors="replace")
    profiles: list[Profile] = []
    section: str | None = None
    values: dict[str, str] = {}

    def _flush() -> None:
        if section is None:
            return
        profile = _profile_from_section(section, values, destination_id)
        if profile is not None:
            profiles.append(profile)

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line[0] in "#;":
            continue
        if line.startswith("[") and line.endswith("]"):
            _flush()
            section = line[1:-1].strip()
            values = {}
            continue
        if section is None or "=" not in line:
            continue
        key, _, value = line.partition("=")
        values[key.strip().lower()] = value.strip()

    _flush()
    return tuple(profiles)


@dataclass(frozen=True, slots=True)
class ChromiumLocalStateSource:
    """Reads profiles from a Chromium-family "Local State" file."""

    path: Path

    def load(self, destination_id: str) -> tuple[Profile, ...]:
        try:
            return parse_chromium_local_state(self.path.read_bytes(), destination_id)
        except (OSError, ValueError) as exc:
            logger.debug("No Chromium profiles for %s from %s: %s", destination_id, self.path, exc)
            return ()


@dataclass(frozen=True, slots=True)
class FirefoxProfilesIniSource:
    """Reads profiles from a Firefox-family ``profiles.ini``."""

    path: Path

    def load(self, destination_id: str) -> tuple[Profile, ...]:
        try:
            return parse_firefox_profiles_ini(self.path.read_bytes(), destination_id)
        except OSError as exc:
            logger.debug("No Firefox profiles for %s from %s: %s", destination_id, self.path, exc)
            return ()


# destination ids -> path of the profile source, relative to the per-user
# application-support directory (macOS) or ~/.config (Linux).
_MAC_CHROMIUM = {
    "com.google.Chrome": "Google/Chrome/Local State",
    "org.chromium.Chromium": "Chromium/Local State",
    "com.brave.Browser": "BraveSoftware/Brave-Browser/Local State",
    "com.microsoft.edgemac": "Microsoft Edge/Local State",
    "com.vivaldi.Vivaldi": "Vivaldi/Local State",
}
_MAC_FIREFOX = {"org.mozilla.firefox": "Firefox/profiles.ini"}

_LINUX_CHROMIUM = {
    "google-chrome.desktop": "google-chrome/Local State",
    "chromium.desktop": "chromium/Local State",
    "chromium-browser.desktop": "chromium/Local State",
    "brave-browser.desktop": "BraveSoftware/Brave-Browser/Local State",
    "microsoft-edge.desktop": "microsoft-edge/Local State",
    "vivaldi-stable.desktop": "vivaldi/Local State",
}
_LINUX_FIREFOX = {"firefox.desktop": ".mozilla/firefox/profiles.ini"}


def chromium_family_ids() -> frozenset[str]:
    """Destination ids that take ``--profile-directory``."""
    return frozenset(_MAC_CHROMIUM) | frozenset(_LINUX_CHROMIUM)


def firefox_family_ids() -> frozenset[str]:
    """Destination ids that take ``-P <profile name>``."""
    return frozenset(_MAC_FIREFOX) | frozenset(_LINUX_FIREFOX)


def default_profile_sources(home: Path | None = None, platform: str | None = None) -> dict[str, ProfileSource]:
    """
    Build the destination-id -> ProfileSource table for this platform.

    Parameters
    ----------
    home:
        User home directory. Defaults to ``Path.home()``.
    platform:
        ``sys.platform`` value. Only ``darwin`` and ``linux`` have sources;
        other platforms get an empty table.
    """
    home = home or Path.home()
    platform = platform or sys.platform
    sources: dict[str, ProfileSource] = {}

    if platform == "darwin":
        support = home / "Library" / "Application Support"
        for destination_id, rel in _MAC_CHROMIUM.items():
            sources[destination_id] = ChromiumLocalStateSource(support / rel)
        for destination_id, rel in _MAC_FIREFOX.items():
            sources[destination_id] = FirefoxProfilesIniSource(support / rel)
    elif platform.startswith("linux"):
        config = home / ".config"
        for destination_id, rel in _LINUX_CHROMIUM.items():
            sources[destination_id] = ChromiumLocalStateSource(config / rel)
        for destination_id, rel in _LINUX_FIREFOX.items():
            sources[destination_id] = FirefoxProfilesIniSource(home / rel)

    return sources
