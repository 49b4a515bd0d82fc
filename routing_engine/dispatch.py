"""
Dispatch: turn a URL into a routing decision.

Resolution order (first hit wins):

1. routing disabled -> system default resolution (steps 4-6)
2. first enabled rule, by ascending priority, that matches and whose
   destination exists in the catalog
3. configured fallback destination, if it exists in the catalog
4. OS default handler, unless it is the router itself
5. a well-known last-resort destination present in the catalog
6. no destination

A rule whose destination is missing from the catalog is skipped, not treated
as a failure. ``route`` is pure and never raises; launching is the caller's
job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal, Protocol, Sequence

from .data_models import Destination, Profile, RoutingState, Rule
from .matcher import ParsedUrl, matches, parse_url

logger = logging.getLogger(__name__)

LAST_RESORT_DESTINATION_IDS: tuple[str, ...] = ("com.apple.Safari", "firefox.desktop")


class CatalogView(Protocol):
    """Read-only catalog surface used by dispatch."""

    def destination(self, destination_id: str) -> Destination | None:
        ...

    @property
    def default_destination(self) -> Destination | None:
        ...


@dataclass(frozen=True, slots=True)
class RuleMatch:
    """A rule matched; open in its destination (and profile, if resolvable)."""

    rule: Rule
    destination: Destination
    profile: Profile | None = None
    kind: Literal["rule"] = "rule"


@dataclass(frozen=True, slots=True)
class FallbackRoute:
    """No rule matched; open in the configured fallback."""

    destination: Destination
    kind: Literal["fallback"] = "fallback"


@dataclass(frozen=True, slots=True)
class SystemDefaultRoute:
    """
    Open in the system default.

    `last_resort` is True when the OS default was unusable and a well-known
    destination was picked instead.
    """

    destination: Destination
    last_resort: bool = False
    kind: Literal["system_default"] = "system_default"


@dataclass(frozen=True, slots=True)
class NoDestination:
    """Nothing can open the URL. `reason` is ``"unparseable"`` or ``"no_destination"``."""

    reason: str = "no_destination"
    kind: Literal["none"] = "none"

    @property
    def destination(self) -> None:
        return None


Decision = RuleMatch | FallbackRoute | SystemDefaultRoute | NoDestination


def _system_default(catalog: CatalogView, last_resort_ids: Sequence[str]) -> Decision:
    default = catalog.default_destination
    if default is not None:
        return SystemDefaultRoute(destination=default)
    for destination_id in last_resort_ids:
        destination = catalog.destination(destination_id)
        if destination is not None:
            return SystemDefaultRoute(destination=destination, last_resort=True)
    return NoDestination()


def _first_rule_match(url: ParsedUrl, rules: Sequence[Rule], catalog: CatalogView) -> RuleMatch | None:
    for rule in sorted((r for r in rules if r.enabled), key=lambda r: r.priority):
        if not matches(url, rule):
            continue
        destination = catalog.destination(rule.destination_id)
        if destination is None:
            logger.debug("Skipping rule %s: destination %s not installed", rule.id, rule.destination_id)
            continue
        profile = None
        if rule.profile_id is not None:
            profile = destination.profile(rule.profile_id)
            if profile is None:
                logger.debug("Rule %s: profile %s not found, using destination default", rule.id, rule.profile_id)
        return RuleMatch(rule=rule, destination=destination, profile=profile)
    return None


def route(
    url: str,
    state: RoutingState,
    catalog: CatalogView,
    *,
    last_resort_ids: Sequence[str] = LAST_RESORT_DESTINATION_IDS,
) -> Decision:
    """
    Decide where `url` should open.

    Parameters
    ----------
    url:
        Raw URL text from the OS.
    state:
        Routing state snapshot.
    catalog:
        Catalog (or snapshot) to resolve destinations against.
    last_resort_ids:
        Destinations tried, in order, when the OS default is unusable.

    Returns
    -------
    Decision
        Never raises; an unparseable URL yields ``NoDestination("unparseable")``.
    """
    parsed = parse_url(url)
    if parsed is None:
        return NoDestination(reason="unparseable")

    if not state.routing_enabled:
        return _system_default(catalog, last_resort_ids)

    matched = _first_rule_match(parsed, state.rules, catalog)
    if matched is not None:
        return matched

    if state.fallback_destination_id is not None:
        fallback = catalog.destination(state.fallback_destination_id)
        if fallback is not None:
            return FallbackRoute(destination=fallback)

    return _system_default(catalog, last_resort_ids)
