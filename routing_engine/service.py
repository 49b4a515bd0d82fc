"""
Routing orchestration.

RoutingService is the single logical owner of the rule store and the
destination catalog at runtime. It serializes:

- URL-open events arriving from the OS,
- catalog refreshes triggered by default-handler changes,
- rule edits coming from a configuration surface,

through one re-entrant lock, so a dispatch never observes a half-applied
edit or a catalog in the middle of a refresh.

Side effects of a routed URL
----------------------------
- launch the destination (fire-and-forget; failures are logged),
- record a recent route when ``track_recent`` is on,
- emit a RoutingEvent when any indicator is on.

Recent routes and events are produced only while routing is enabled and a
destination was found.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Sequence, TypeVar

from .catalog.api import DestinationProvider
from .catalog.catalog import CatalogSnapshot, DestinationCatalog
from .catalog.providers import ManifestDestinationProvider, XdgDestinationProvider
from .clock import Clock, SystemClock
from .data_models import RecentRoute
from .dispatch import LAST_RESORT_DESTINATION_IDS, Decision, NoDestination, RuleMatch, route
from .errors import CatalogError, LaunchError
from .launcher import Launcher, SubprocessLauncher
from .notify import LoggingNotifier, Notifier, build_routing_event
from .paths import resolve_state_paths
from .rule_store.sqlite_backend import open_state_backend
from .rule_store.store import RoutingStore
from .settings import EngineSettings, load_engine_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RoutingService:
    """
    Dispatch URLs using the current store and catalog.

    Parameters
    ----------
    store:
        Persisted routing state.
    catalog:
        Destination catalog.
    launcher:
        Opens URLs in destinations.
    notifier:
        Receives routing events; None disables events.
    clock:
        Time source for recent routes.
    last_resort_ids:
        Destinations tried when the OS default is unusable.
    """

    def __init__(
        self,
        store: RoutingStore,
        catalog: DestinationCatalog,
        launcher: Launcher,
        notifier: Notifier | None = None,
        clock: Clock | None = None,
        last_resort_ids: Sequence[str] = LAST_RESORT_DESTINATION_IDS,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self._launcher = launcher
        self._notifier = notifier
        self._clock = clock or SystemClock()
        self._last_resort_ids = tuple(last_resort_ids)
        self._lock = threading.RLock()

    def preview(self, url: str) -> Decision:
        """Route `url` without launching or recording anything."""
        with self._lock:
            return route(
                url, self.store.snapshot(), self.catalog.snapshot(), last_resort_ids=self._last_resort_ids
            )

    def open_url(self, url: str) -> Decision:
        """
        Route `url` and perform its side effects.

        Returns
        -------
        Decision
            The decision taken. Launch and notifier failures are logged and
            do not change it.
        """
        with self._lock:
            state = self.store.snapshot()
            catalog = self.catalog.snapshot()
            decision = route(url, state, catalog, last_resort_ids=self._last_resort_ids)
            if isinstance(decision, NoDestination):
                logger.warning("No destination for %r (%s)", url, decision.reason)
                return decision

            url_text = url.strip()
            profile = decision.profile if isinstance(decision, RuleMatch) else None
            try:
                self._launcher.launch(decision.destination, url_text, profile)
            except LaunchError as exc:
                logger.error("%s", exc)

            if state.routing_enabled:
                self._after_route(url_text, decision, catalog)
            return decision

    def _after_route(self, url: str, decision: Decision, catalog: CatalogSnapshot) -> None:
        destination = decision.destination
        if destination is None:
            return
        settings = self.store.snapshot().notification_settings
        if settings.track_recent:
            self.store.record_recent_route(RecentRoute.new(url, destination.name, self._clock))
        if self._notifier is None:
            return
        event = build_routing_event(url, destination, settings, catalog.destinations)
        if event is None:
            return
        try:
            self._notifier.notify(event)
        except Exception:
            logger.exception("Notifier failed for %s", url)

    def refresh_catalog(self) -> CatalogSnapshot:
        """Re-enumerate destinations (e.g. after the OS default changed)."""
        with self._lock:
            return self.catalog.refresh()

    def edit(self, change: Callable[[RoutingStore], T]) -> T:
        """Apply a store mutation in turn with dispatches and refreshes."""
        with self._lock:
            return change(self.store)


def build_provider(provider: str, data_root: Path | None = None) -> DestinationProvider:
    """
    Instantiate the discovery provider named in EngineSettings.

    Raises
    ------
    CatalogError
        If `provider` is not a known provider name.
    """
    if provider == "xdg":
        return XdgDestinationProvider()
    if provider == "manifest":
        return ManifestDestinationProvider(resolve_state_paths(data_root).destinations_manifest)
    raise CatalogError(f"Unknown destination provider: {provider!r}")


def open_routing_service(
    data_root: Path | None = None,
    *,
    launcher: Launcher | None = None,
    notifier: Notifier | None = None,
    settings: EngineSettings | None = None,
) -> RoutingService:
    """
    Wire a RoutingService from on-disk state and settings.

    Parameters
    ----------
    data_root:
        Optional override for the linkroute data root.
    launcher:
        Defaults to SubprocessLauncher.
    notifier:
        Defaults to LoggingNotifier.
    settings:
        Defaults to the settings stored under `data_root`.
    """
    settings = settings or load_engine_settings(data_root=data_root)
    store = RoutingStore(open_state_backend(data_root))
    catalog = DestinationCatalog(build_provider(settings.provider, data_root), self_id=settings.self_id)
    return RoutingService(
        store=store,
        catalog=catalog,
        launcher=launcher or SubprocessLauncher(),
        notifier=notifier or LoggingNotifier(),
        last_resort_ids=settings.last_resort_ids,
    )
