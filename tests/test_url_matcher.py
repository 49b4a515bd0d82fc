from __future__ import annotations

import pytest

from routing_engine.data_models import MatchType, PortRange, Rule
from routing_engine.matcher import find_matching_rule, matches, parse_url, wildcard_to_regex


def _rule(
    pattern: str,
    match_type: MatchType,
    *,
    enabled: bool = True,
    priority: int = 0,
    port_range: PortRange | None = None,
    destination_id: str = "chrome",
    rule_id: str | None = None,
) -> Rule:
    return Rule(
        id=rule_id or f"r-{pattern}-{priority}",
        pattern=pattern,
        match_type=match_type,
        destination_id=destination_id,
        port_range=port_range,
        enabled=enabled,
        priority=priority,
    )


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://www.github.com/x", True),
        ("https://github.com", True),
        ("https://docs.github.com", True),
        ("https://a.b.github.com/path?q=1", True),
        ("https://notgithub.com", False),
        ("https://github.com.evil.org", False),
        ("https://example.org/github.com", False),
    ],
)
def test_domain_matching(url: str, expected: bool) -> None:
    assert matches(url, _rule("github.com", MatchType.DOMAIN)) is expected


def test_domain_pattern_www_and_case_are_ignored() -> None:
    assert matches("https://GitHub.com/x", _rule("WWW.github.com", MatchType.DOMAIN))


def test_domain_only_strips_leading_www() -> None:
    # "www." in the middle of a host is part of the name.
    assert not matches("https://awww.github.com", _rule("a.github.com", MatchType.DOMAIN))


def test_domain_never_matches_url_without_host() -> None:
    assert not matches("mailto:someone@github.com", _rule("github.com", MatchType.DOMAIN))


def test_contains_is_case_insensitive() -> None:
    assert matches("https://github.com", _rule("GitHub", MatchType.CONTAINS))


def test_contains_checks_path_and_query() -> None:
    rule = _rule("ticket=42", MatchType.CONTAINS)
    assert matches("https://tracker.example.com/view?ticket=42", rule)
    assert not matches("https://tracker.example.com/view?ticket=43", rule)


def test_wildcard_with_required_path() -> None:
    rule = _rule("*.github.com/*", MatchType.WILDCARD)
    assert matches("https://api.github.com/repos", rule)
    assert not matches("https://github.com", rule)


def test_wildcard_question_mark_is_single_character() -> None:
    rule = _rule("https://example.com/v?", MatchType.WILDCARD)
    assert matches("https://example.com/v1", rule)
    assert not matches("https://example.com/v12", rule)


def test_wildcard_escapes_regex_metacharacters() -> None:
    rule = _rule("https://example.com/a+b(c)", MatchType.WILDCARD)
    assert matches("https://example.com/a+b(c)", rule)
    assert not matches("https://example.com/aab(c)", rule)


def test_wildcard_to_regex_is_anchored() -> None:
    assert wildcard_to_regex("*.github.com/*") == r"^.*\.github\.com/.*$"


def test_regex_is_unanchored_and_case_insensitive() -> None:
    assert matches("https://mail.GOOGLE.com/inbox", _rule(r"google\.com/in", MatchType.REGEX))


@pytest.mark.parametrize("pattern", ["(", "[a-", "*oops"])
def test_invalid_regex_never_matches_and_never_raises(pattern: str) -> None:
    assert matches("https://example.com/(", _rule(pattern, MatchType.REGEX)) is False


def test_disabled_rule_never_matches() -> None:
    for match_type, pattern in [
        (MatchType.CONTAINS, "example"),
        (MatchType.DOMAIN, "example.com"),
        (MatchType.WILDCARD, "*"),
        (MatchType.REGEX, ".*"),
    ]:
        assert not matches("https://example.com", _rule(pattern, match_type, enabled=False))


def test_port_range_requires_explicit_port_in_range() -> None:
    rule = _rule("localhost", MatchType.DOMAIN, port_range=PortRange(3000, 3999))
    assert matches("http://localhost:3000/app", rule)
    assert not matches("http://localhost:8080/app", rule)


def test_port_range_ignores_scheme_default_port() -> None:
    # Literal-port-only: no port in the URL means the filter is not satisfied.
    rule = _rule("example.com", MatchType.DOMAIN, port_range=PortRange.single(443))
    assert not matches("https://example.com/", rule)
    assert matches("https://example.com:443/", rule)


def test_no_port_range_matches_any_port() -> None:
    assert matches("https://example.com:8443/", _rule("example.com", MatchType.DOMAIN))


@pytest.mark.parametrize("text", ["", "   ", "not a url", "http://example.com:99999/", "//host/path"])
def test_parse_url_rejects_unroutable_text(text: str) -> None:
    assert parse_url(text) is None


def test_parse_url_extracts_parts() -> None:
    parsed = parse_url("  HTTPS://Docs.Example.com:8443/a?b=c  ")
    assert parsed is not None
    assert parsed.text == "HTTPS://Docs.Example.com:8443/a?b=c"
    assert parsed.scheme == "https"
    assert parsed.host == "docs.example.com"
    assert parsed.port == 8443


def test_find_matching_rule_first_match_wins_by_priority() -> None:
    first = _rule("github.com", MatchType.DOMAIN, priority=0, destination_id="chrome", rule_id="a")
    second = _rule("github", MatchType.CONTAINS, priority=1, destination_id="firefox", rule_id="b")
    assert find_matching_rule("https://github.com", [second, first]) == first


def test_find_matching_rule_skips_disabled() -> None:
    first = _rule("github.com", MatchType.DOMAIN, priority=0, enabled=False, rule_id="a")
    second = _rule("github", MatchType.CONTAINS, priority=1, rule_id="b")
    assert find_matching_rule("https://github.com", [first, second]) == second
