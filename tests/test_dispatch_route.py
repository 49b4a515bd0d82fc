from __future__ import annotations

from dataclasses import replace

import pytest

from routing_engine.catalog.catalog import DEFAULT_SELF_ID, CatalogSnapshot
from routing_engine.data_models import Destination, MatchType, PortRange, Profile, RoutingState, Rule
from routing_engine.dispatch import (
    FallbackRoute,
    NoDestination,
    RuleMatch,
    SystemDefaultRoute,
    route,
)

CHROME = Destination(
    id="com.google.Chrome",
    name="Google Chrome",
    executable_path="/Applications/Google Chrome.app",
    profiles=(Profile(id="com.google.Chrome/Profile 1", name="Work", directory_name="Profile 1"),),
)
SAFARI = Destination(id="com.apple.Safari", name="Safari", executable_path="/Applications/Safari.app")
FIREFOX = Destination(id="org.mozilla.firefox", name="Firefox", executable_path="/Applications/Firefox.app")


def _catalog(*destinations: Destination, default_id: str | None = None) -> CatalogSnapshot:
    return CatalogSnapshot(destinations=destinations, default_id=default_id, self_id=DEFAULT_SELF_ID)


def _rule(rule_id: str, pattern: str, destination_id: str, priority: int, **kwargs) -> Rule:
    kwargs.setdefault("match_type", MatchType.DOMAIN)
    return Rule(id=rule_id, pattern=pattern, destination_id=destination_id, priority=priority, **kwargs)


def test_first_matching_rule_by_priority_wins() -> None:
    state = RoutingState(
        rules=(
            _rule("late", "github.com", FIREFOX.id, 1),
            _rule("early", "github.com", CHROME.id, 0),
        )
    )
    decision = route("https://github.com/x", state, _catalog(CHROME, FIREFOX, SAFARI))

    assert isinstance(decision, RuleMatch)
    assert decision.rule.id == "early"
    assert decision.destination == CHROME
    assert decision.kind == "rule"


def test_rules_for_missing_destinations_are_skipped() -> None:
    state = RoutingState(
        rules=(
            _rule("gone", "github.com", "com.example.uninstalled", 0),
            _rule("ok", "github.com", FIREFOX.id, 1),
        )
    )
    decision = route("https://github.com/", state, _catalog(FIREFOX))
    assert isinstance(decision, RuleMatch)
    assert decision.rule.id == "ok"


def test_disabled_rules_never_win() -> None:
    state = RoutingState(
        rules=(
            _rule("off", "github.com", CHROME.id, 0, enabled=False),
            _rule("on", "github.com", FIREFOX.id, 1),
        )
    )
    assert route("https://github.com/", state, _catalog(CHROME, FIREFOX)).rule.id == "on"


def test_rule_profile_is_resolved_when_present() -> None:
    state = RoutingState(rules=(_rule("r", "github.com", CHROME.id, 0, profile_id="com.google.Chrome/Profile 1"),))
    decision = route("https://github.com/", state, _catalog(CHROME))
    assert decision.profile is not None
    assert decision.profile.directory_name == "Profile 1"


def test_rule_with_vanished_profile_still_routes_without_profile() -> None:
    state = RoutingState(rules=(_rule("r", "github.com", CHROME.id, 0, profile_id="com.google.Chrome/Gone"),))
    decision = route("https://github.com/", state, _catalog(CHROME))
    assert isinstance(decision, RuleMatch)
    assert decision.profile is None


def test_fallback_when_no_rule_matches() -> None:
    state = RoutingState(rules=(_rule("r", "github.com", CHROME.id, 0),), fallback_destination_id=FIREFOX.id)
    decision = route("https://example.org/", state, _catalog(CHROME, FIREFOX, SAFARI, default_id=SAFARI.id))
    assert decision == FallbackRoute(destination=FIREFOX)


def test_missing_fallback_falls_through_to_system_default() -> None:
    state = RoutingState(fallback_destination_id="com.example.gone")
    decision = route("https://example.org/", state, _catalog(SAFARI, default_id=SAFARI.id))
    assert decision == SystemDefaultRoute(destination=SAFARI)


def test_router_as_default_uses_last_resort() -> None:
    decision = route("https://example.org/", RoutingState(), _catalog(CHROME, SAFARI, default_id=DEFAULT_SELF_ID))
    assert isinstance(decision, SystemDefaultRoute)
    assert decision.destination == SAFARI
    assert decision.last_resort is True


def test_last_resort_order_is_configurable() -> None:
    catalog = _catalog(CHROME, SAFARI, FIREFOX)
    decision = route("https://example.org/", RoutingState(), catalog, last_resort_ids=("nope", FIREFOX.id, SAFARI.id))
    assert decision.destination == FIREFOX


def test_no_destination_when_nothing_resolves() -> None:
    decision = route("https://example.org/", RoutingState(), _catalog(CHROME, default_id=DEFAULT_SELF_ID))
    assert decision == NoDestination()
    assert decision.destination is None
    assert decision.reason == "no_destination"


def test_empty_catalog_yields_no_destination() -> None:
    state = RoutingState(rules=(_rule("r", "github.com", CHROME.id, 0),), fallback_destination_id=CHROME.id)
    assert route("https://github.com/", state, _catalog()) == NoDestination()


@pytest.mark.parametrize("url", ["", "   ", "not a url", "//github.com/path"])
def test_unparseable_urls(url: str) -> None:
    decision = route(url, RoutingState(), _catalog(SAFARI, default_id=SAFARI.id))
    assert decision == NoDestination(reason="unparseable")


def test_routing_disabled_ignores_rules_and_fallback() -> None:
    state = RoutingState(
        rules=(_rule("r", "github.com", CHROME.id, 0),),
        routing_enabled=False,
        fallback_destination_id=FIREFOX.id,
    )
    decision = route("https://github.com/", state, _catalog(CHROME, FIREFOX, SAFARI, default_id=SAFARI.id))
    assert decision == SystemDefaultRoute(destination=SAFARI)


def test_port_scoped_rule() -> None:
    state = RoutingState(
        rules=(
            _rule("dev", "localhost", FIREFOX.id, 0, port_range=PortRange(3000, 3999)),
            _rule("any", "localhost", CHROME.id, 1),
        )
    )
    catalog = _catalog(CHROME, FIREFOX)
    assert route("http://localhost:3000/app", state, catalog).rule.id == "dev"
    assert route("http://localhost:8080/app", state, catalog).rule.id == "any"
    assert route("http://localhost/app", state, catalog).rule.id == "any"


def test_end_to_end_mixed_rules() -> None:
    state = RoutingState(
        rules=(
            _rule("gh", "github.com", CHROME.id, 0, profile_id="com.google.Chrome/Profile 1"),
            _rule("docs", "*docs*", SAFARI.id, 1, match_type=MatchType.WILDCARD),
            _rule("jira", r"atlassian\.net/browse/[A-Z]+-\d+", FIREFOX.id, 2, match_type=MatchType.REGEX),
        ),
        fallback_destination_id=SAFARI.id,
    )
    catalog = _catalog(CHROME, SAFARI, FIREFOX, default_id=CHROME.id)

    gh = route("https://gist.github.com/abc", state, catalog)
    assert (gh.kind, gh.destination.id, gh.profile.name) == ("rule", CHROME.id, "Work")
    assert route("https://python.org/docs/3/", state, catalog).rule.id == "docs"
    assert route("https://acme.atlassian.net/browse/OPS-42", state, catalog).destination == FIREFOX
    assert route("https://example.org/", state, catalog) == FallbackRoute(destination=SAFARI)

    without_fallback = replace(state, fallback_destination_id=None)
    assert route("https://example.org/", without_fallback, catalog) == SystemDefaultRoute(destination=CHROME)


def test_route_is_pure() -> None:
    state = RoutingState(rules=(_rule("r", "github.com", CHROME.id, 0),))
    catalog = _catalog(CHROME)
    first = route("https://github.com/", state, catalog)
    second = route("https://github.com/", state, catalog)
    assert first == second
    assert state == RoutingState(rules=(_rule("r", "github.com", CHROME.id, 0),))


def test_rule_then_system_default_scenario() -> None:
    chrome = Destination(id="chrome", name="Chrome", executable_path="/usr/bin/chrome")
    safari = Destination(id="safari", name="Safari", executable_path="/usr/bin/safari")
    state = RoutingState(
        rules=(Rule(id="r0", pattern="github.com", match_type=MatchType.DOMAIN, destination_id="chrome", priority=0),)
    )
    catalog = _catalog(chrome, safari, default_id="safari")

    matched = route("https://github.com/foo", state, catalog)
    assert isinstance(matched, RuleMatch)
    assert matched.destination.id == "chrome"
    assert route("https://example.org", state, catalog) == SystemDefaultRoute(destination=safari)
