"""
DestinationCatalog: the current snapshot of URL-capable applications.

Refresh semantics
-----------------
``refresh()`` asks the provider for a fresh report and replaces the whole
catalog: no merging with the previous state, so repeated refreshes never
accumulate anything. The router's own id is excluded, duplicates are dropped
(first report wins), profiles are attached from the matching ProfileSource,
and destinations are ordered well-known ids first, then by case-insensitive
name.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable, Mapping

from ..data_models import Destination, Profile
from .api import DestinationProvider, DiscoveredApp
from .profiles import ProfileSource, default_profile_sources

logger = logging.getLogger(__name__)

DEFAULT_SELF_ID = "com.browserrouter.app"

WELL_KNOWN_DESTINATION_IDS: frozenset[str] = frozenset(
    {
        "com.apple.Safari",
        "com.google.Chrome",
        "org.mozilla.firefox",
        "com.microsoft.edgemac",
        "com.brave.Browser",
        "com.operasoftware.Opera",
        "com.vivaldi.Vivaldi",
        "company.thebrowser.Browser",
        "firefox.desktop",
        "google-chrome.desktop",
        "chromium.desktop",
        "brave-browser.desktop",
        "microsoft-edge.desktop",
    }
)


@dataclass(frozen=True, slots=True)
class CatalogSnapshot:
    """
    Immutable view of a catalog refresh.

    Attributes
    ----------
    destinations:
        Sorted destinations (router excluded).
    default_id:
        Id of the OS default https handler as reported, possibly the router
        itself or an id with no destination.
    self_id:
        The router's own id.
    """

    destinations: tuple[Destination, ...] = ()
    default_id: str | None = None
    self_id: str | None = None

    def destination(self, destination_id: str) -> Destination | None:
        for destination in self.destinations:
            if destination.id == destination_id:
                return destination
        return None

    def profile(self, destination_id: str, profile_id: str) -> Profile | None:
        destination = self.destination(destination_id)
        return None if destination is None else destination.profile(profile_id)

    @property
    def default_destination(self) -> Destination | None:
        """The OS default, unless unknown, unresolvable or the router itself."""
        if self.default_id is None or self.default_id == self.self_id:
            return None
        return self.destination(self.default_id)


def sort_destinations(destinations: Iterable[Destination], known_ids: frozenset[str]) -> list[Destination]:
    """Order well-known ids first, then everything by case-insensitive name."""
    return sorted(destinations, key=lambda d: (d.id not in known_ids, d.name.casefold()))


class DestinationCatalog:
    """
    Thread-safe holder of the latest CatalogSnapshot.

    Parameters
    ----------
    provider:
        OS-integration collaborator that enumerates applications.
    self_id:
        The router's own id, never offered as a destination.
    profile_sources:
        Destination id -> ProfileSource. Defaults to the platform table.
    known_ids:
        Ids sorted ahead of the rest.
    refresh_now:
        Run an initial refresh in the constructor.
    """

    def __init__(
        self,
        provider: DestinationProvider,
        *,
        self_id: str | None = DEFAULT_SELF_ID,
        profile_sources: Mapping[str, ProfileSource] | None = None,
        known_ids: frozenset[str] = WELL_KNOWN_DESTINATION_IDS,
        refresh_now: bool = True,
    ) -> None:
        self._provider = provider
        self._self_id = self_id
        self._profile_sources = dict(default_profile_sources() if profile_sources is None else profile_sources)
        self._known_ids = known_ids
        self._lock = threading.RLock()
        self._snapshot = CatalogSnapshot(self_id=self_id)
        if refresh_now:
            self.refresh()

    def _build_destination(self, app: DiscoveredApp) -> Destination:
        source = self._profile_sources.get(app.id)
        profiles = source.load(app.id) if source is not None else ()
        return Destination(id=app.id, name=app.name, executable_path=app.executable_path, profiles=profiles)

    def refresh(self) -> CatalogSnapshot:
        """
        Re-enumerate destinations and the default handler.

        Returns
        -------
        CatalogSnapshot
            The new snapshot, which fully replaces the previous one.
        """
        result = self._provider.discover()
        seen: set[str] = set()
        destinations: list[Destination] = []
        for app in result.apps:
            if app.id == self._self_id or app.id in seen:
                continue
            seen.add(app.id)
            destinations.append(self._build_destination(app))

        snapshot = CatalogSnapshot(
            destinations=tuple(sort_destinations(destinations, self._known_ids)),
            default_id=result.default_id,
            self_id=self._self_id,
        )
        with self._lock:
            self._snapshot = snapshot
        logger.info(
            "Catalog refreshed: %d destination(s), default=%s", len(snapshot.destinations), snapshot.default_id
        )
        return snapshot

    def snapshot(self) -> CatalogSnapshot:
        with self._lock:
            return self._snapshot

    @property
    def self_id(self) -> str | None:
        return self._self_id

    @property
    def destinations(self) -> tuple[Destination, ...]:
        return self.snapshot().destinations

    @property
    def default_id(self) -> str | None:
        return self.snapshot().default_id

    @property
    def default_destination(self) -> Destination | None:
        return self.snapshot().default_destination

    def destination(self, destination_id: str) -> Destination | None:
        return self.snapshot().destination(destination_id)

    def profile(self, destination_id: str, profile_id: str) -> Profile | None:
        return self.snapshot().profile(destination_id, profile_id)
