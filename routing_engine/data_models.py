"""Data models for the routing engine.

This module defines the typed representation of rules, destinations and the
persisted routing state. Models are frozen dataclasses so a RoutingState
snapshot can be handed to the dispatch engine (or another thread) without
copying.

JSON codecs live next to each model. ``from_json`` is strict: it raises
``KeyError``, ``TypeError`` or ``ValueError`` on malformed payloads and leaves
the decision of how to degrade to the caller (the rule store falls back to
per-field defaults).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Self
from urllib.parse import urlsplit

from .clock import Clock, SystemClock

ISO_8601_UTC_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

PORT_MIN = 1
PORT_MAX = 65535

MAX_RECENT_LOWER_BOUND = 5
MAX_RECENT_UPPER_BOUND = 50


def datetime_to_iso_utc(dt: datetime) -> str:
    """Serialize an aware datetime as ``YYYY-MM-DDTHH:MM:SSZ``.

    Raises
    ------
    ValueError
        If `dt` is naive.
    """
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt.astimezone(timezone.utc).strftime(ISO_8601_UTC_FORMAT)


def datetime_from_iso_utc(value: str) -> datetime:
    """Parse a timestamp written by :func:`datetime_to_iso_utc`."""
    return datetime.strptime(value, ISO_8601_UTC_FORMAT).replace(tzinfo=timezone.utc)


def _require_str(payload: Mapping[str, Any], key: str) -> str:
    value = payload[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string")
    return value


def _optional_str(payload: Mapping[str, Any], key: str) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string or null")
    return value


def _require_bool(payload: Mapping[str, Any], key: str) -> bool:
    value = payload[key]
    if not isinstance(value, bool):
        raise TypeError(f"{key} must be a boolean")
    return value


def _require_int(payload: Mapping[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer")
    return value


class MatchType(str, Enum):
    """How a rule pattern is compared against a URL."""

    CONTAINS = "contains"
    DOMAIN = "domain"
    WILDCARD = "wildcard"
    REGEX = "regex"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

    @property
    def placeholder(self) -> str:
        return _PLACEHOLDERS[self]

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_PLACEHOLDERS = {
    MatchType.CONTAINS: "github",
    MatchType.DOMAIN: "github.com",
    MatchType.WILDCARD: "*.github.com/*",
    MatchType.REGEX: r".*\.google\.com/.*",
}

_DESCRIPTIONS = {
    MatchType.CONTAINS: "Match if URL contains this text anywhere",
    MatchType.DOMAIN: "Match by domain name only (ignores protocol and path)",
    MatchType.WILDCARD: "Match full URL with wildcards (* = any, ? = single char)",
    MatchType.REGEX: "Match full URL with regular expression",
}


@dataclass(frozen=True, slots=True)
class PortRange:
    """
    Inclusive TCP port range.

    The bounds are swapped when given in reverse order, so ``PortRange(9000,
    8000)`` equals ``PortRange(8000, 9000)``.

    Raises
    ------
    ValueError
        If either bound is outside [1, 65535].
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        low, high = min(self.start, self.end), max(self.start, self.end)
        if low < PORT_MIN or high > PORT_MAX:
            raise ValueError(f"Port range must be within {PORT_MIN}-{PORT_MAX}: {self.start}-{self.end}")
        object.__setattr__(self, "start", low)
        object.__setattr__(self, "end", high)

    @classmethod
    def single(cls, port: int) -> Self:
        return cls(port, port)

    @classmethod
    def parse(cls, text: str) -> Self | None:
        """
        Parse ``"8080"`` or ``"8000-8999"``.

        Returns
        -------
        PortRange | None
            The parsed range, or None for empty, malformed or out-of-bounds
            input.
        """
        trimmed = text.strip()
        if not trimmed:
            return None
        parts = [p.strip() for p in trimmed.split("-")]
        if len(parts) not in (1, 2) or not all(p.isascii() and p.isdigit() for p in parts):
            return None
        bounds = [int(p) for p in parts]
        try:
            return cls(bounds[0], bounds[-1])
        except ValueError:
            return None

    def contains(self, port: int) -> bool:
        return self.start <= port <= self.end

    @property
    def display(self) -> str:
        return str(self.start) if self.start == self.end else f"{self.start}-{self.end}"

    def to_json(self) -> dict[str, int]:
        return {"start": self.start, "end": self.end}

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> Self:
        return cls(_require_int(payload, "start"), _require_int(payload, "end"))


@dataclass(frozen=True, slots=True)
class Profile:
    """
    A named sub-identity of a multi-profile destination.

    Attributes
    ----------
    id:
        ``"<destination id>/<directory name>"``.
    name:
        Display name as shown by the destination itself.
    directory_name:
        On-disk profile directory (Chromium) or profile path (Firefox).
    """

    id: str
    name: str
    directory_name: str

    @staticmethod
    def make_id(destination_id: str, directory_name: str) -> str:
        return f"{destination_id}/{directory_name}"


@dataclass(frozen=True, slots=True, eq=False)
class Destination:
    """
    An installed application able to open URLs.

    Identity is `id` alone: two destinations with the same id compare equal
    even if a refresh discovered a different name or path.
    """

    id: str
    name: str
    executable_path: str
    profiles: tuple[Profile, ...] = ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Destination):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def supports_profiles(self) -> bool:
        return bool(self.profiles)

    def profile(self, profile_id: str) -> Profile | None:
        for profile in self.profiles:
            if profile.id == profile_id:
                return profile
        return None

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "executable_path": self.executable_path}


@dataclass(frozen=True, slots=True)
class Rule:
    """
    A routing rule.

    Attributes
    ----------
    id:
        Stable unique identifier (UUID hex).
    pattern:
        Text interpreted according to `match_type`.
    match_type:
        Matching strategy.
    destination_id:
        Target destination id.
    profile_id:
        Optional profile of the destination.
    port_range:
        Optional explicit-port filter.
    enabled:
        Disabled rules never match.
    priority:
        Evaluation order, ascending. The store keeps priorities at 0..n-1.
    """

    id: str
    pattern: str
    match_type: MatchType
    destination_id: str
    profile_id: str | None = None
    port_range: PortRange | None = None
    enabled: bool = True
    priority: int = 0

    @classmethod
    def new(
        cls,
        *,
        pattern: str,
        match_type: MatchType,
        destination_id: str,
        profile_id: str | None = None,
        port_range: PortRange | None = None,
        enabled: bool = True,
    ) -> Self:
        return cls(
            id=uuid.uuid4().hex,
            pattern=pattern,
            match_type=match_type,
            destination_id=destination_id,
            profile_id=profile_id,
            port_range=port_range,
            enabled=enabled,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pattern": self.pattern,
            "matchType": self.match_type.value,
            "destinationID": self.destination_id,
            "profileID": self.profile_id,
            "portRange": self.port_range.to_json() if self.port_range is not None else None,
            "enabled": self.enabled,
            "priority": self.priority,
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> Self:
        port_payload = payload.get("portRange")
        return cls(
            id=_require_str(payload, "id"),
            pattern=_require_str(payload, "pattern"),
            match_type=MatchType(_require_str(payload, "matchType")),
            destination_id=_require_str(payload, "destinationID"),
            profile_id=_optional_str(payload, "profileID"),
            port_range=PortRange.from_json(port_payload) if port_payload is not None else None,
            enabled=_require_bool(payload, "enabled"),
            priority=_require_int(payload, "priority"),
        )


@dataclass(frozen=True, slots=True)
class RecentRoute:
    """A URL that was routed, kept for the recent-routes menu."""

    id: str
    url: str
    destination_name: str
    timestamp: datetime

    @classmethod
    def new(cls, url: str, destination_name: str, clock: Clock | None = None) -> Self:
        now = (clock or SystemClock()).now().replace(microsecond=0)
        return cls(id=uuid.uuid4().hex, url=url, destination_name=destination_name, timestamp=now)

    @property
    def display_url(self) -> str:
        """Short label: host plus the first 20 characters of the path."""
        try:
            parts = urlsplit(self.url)
        except ValueError:
            parts = None
        if parts is None or not parts.hostname:
            return self.url[:50] + ("..." if len(self.url) > 50 else "")
        path = parts.path[:20]
        return parts.hostname + (f"{path}..." if path else "")

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "destinationName": self.destination_name,
            "timestamp": datetime_to_iso_utc(self.timestamp),
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> Self:
        return cls(
            id=_require_str(payload, "id"),
            url=_require_str(payload, "url"),
            destination_name=_require_str(payload, "destinationName"),
            timestamp=datetime_from_iso_utc(_require_str(payload, "timestamp")),
        )


def clamp_max_recent(value: int) -> int:
    """Clamp a recent-route limit into the supported bounds."""
    return max(MAX_RECENT_LOWER_BOUND, min(MAX_RECENT_UPPER_BOUND, value))


@dataclass(frozen=True, slots=True)
class NotificationSettings:
    """
    Toggles for the side effects of a routed URL.

    `max_recent_urls` is clamped into [5, 50] on construction.
    """

    show_banner: bool = False
    flash_icon: bool = True
    track_recent: bool = True
    play_sound: bool = False
    sound_name: str = "Pop"
    max_recent_urls: int = 10

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_recent_urls", clamp_max_recent(self.max_recent_urls))

    @property
    def wants_indicator(self) -> bool:
        return self.show_banner or self.flash_icon or self.play_sound

    def to_json(self) -> dict[str, Any]:
        return {
            "showBanner": self.show_banner,
            "flashIcon": self.flash_icon,
            "trackRecent": self.track_recent,
            "playSound": self.play_sound,
            "soundName": self.sound_name,
            "maxRecentURLs": self.max_recent_urls,
        }

    @classmethod
    def from_json(cls, payload: Mapping[str, Any]) -> Self:
        return cls(
            show_banner=_require_bool(payload, "showBanner"),
            flash_icon=_require_bool(payload, "flashIcon"),
            track_recent=_require_bool(payload, "trackRecent"),
            play_sound=_require_bool(payload, "playSound"),
            sound_name=_require_str(payload, "soundName"),
            max_recent_urls=_require_int(payload, "maxRecentURLs"),
        )


@dataclass(frozen=True, slots=True)
class RoutingState:
    """
    Immutable snapshot of the routing store aggregate.

    Attributes
    ----------
    rules:
        Rules ordered by ascending priority.
    routing_enabled:
        Global switch; when False every URL goes to the system default.
    fallback_destination_id:
        Destination used when no rule matches.
    notification_settings:
        Side-effect toggles.
    recent_routes:
        Routed URLs, newest first.
    """

    rules: tuple[Rule, ...] = ()
    routing_enabled: bool = True
    fallback_destination_id: str | None = None
    notification_settings: NotificationSettings = field(default_factory=NotificationSettings)
    recent_routes: tuple[RecentRoute, ...] = ()

    def rule(self, rule_id: str) -> Rule | None:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None
