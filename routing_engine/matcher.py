"""
URL pattern matching.

Matching is a pure function of (URL, rule). Nothing here raises for bad user
input: an unparseable URL is reported as ``None`` by :func:`parse_url`, and a
pattern that does not compile simply never matches.

Port filter
-----------
A rule's port range is checked against the port written in the URL only.
``https://example.com`` carries no explicit port and therefore never matches a
rule that has a port range, even one that includes 443.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable
from urllib.parse import urlsplit

from .data_models import MatchType, Rule

logger = logging.getLogger(__name__)

_WWW_PREFIX = "www."


@dataclass(frozen=True, slots=True)
class ParsedUrl:
    """
    A URL split into the parts the matcher needs.

    Attributes
    ----------
    text:
        Full serialized URL, as received (surrounding whitespace removed).
    scheme:
        Lower-cased scheme.
    host:
        Lower-cased host, empty for URLs without an authority.
    port:
        Port written in the URL, or None when absent.
    """

    text: str
    scheme: str
    host: str
    port: int | None


def parse_url(text: str) -> ParsedUrl | None:
    """
    Parse a URL string.

    Returns
    -------
    ParsedUrl | None
        None if the text has no scheme or carries an invalid port.
    """
    cleaned = text.strip()
    if not cleaned:
        return None
    try:
        parts = urlsplit(cleaned)
        port = parts.port
    except ValueError:
        return None
    if not parts.scheme:
        return None
    return ParsedUrl(
        text=cleaned,
        scheme=parts.scheme.lower(),
        host=(parts.hostname or "").lower(),
        port=port,
    )


def wildcard_to_regex(pattern: str) -> str:
    """Translate a ``*``/``?`` wildcard into an anchored regular expression."""
    escaped = re.escape(pattern)
    escaped = escaped.replace(r"\*", ".*").replace(r"\?", ".")
    return f"^{escaped}$"


@lru_cache(maxsize=512)
def _compile(pattern: str) -> re.Pattern[str] | None:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as exc:
        logger.debug("Ignoring invalid pattern %r: %s", pattern, exc)
        return None


def _strip_www(value: str) -> str:
    return value[len(_WWW_PREFIX):] if value.startswith(_WWW_PREFIX) else value


def _match_contains(url: ParsedUrl, pattern: str) -> bool:
    return pattern.casefold() in url.text.casefold()


def _match_domain(url: ParsedUrl, pattern: str) -> bool:
    if not url.host:
        return False
    wanted = _strip_www(pattern.strip().lower())
    if not wanted:
        return False
    host = _strip_www(url.host)
    return host == wanted or host.endswith("." + wanted)


def _match_regex(url: ParsedUrl, pattern: str) -> bool:
    compiled = _compile(pattern)
    if compiled is None:
        return False
    return compiled.search(url.text) is not None


def _match_pattern(url: ParsedUrl, rule: Rule) -> bool:
    if rule.match_type is MatchType.CONTAINS:
        return _match_contains(url, rule.pattern)
    if rule.match_type is MatchType.DOMAIN:
        return _match_domain(url, rule.pattern)
    if rule.match_type is MatchType.WILDCARD:
        return _match_regex(url, wildcard_to_regex(rule.pattern))
    return _match_regex(url, rule.pattern)


def matches(url: ParsedUrl | str, rule: Rule) -> bool:
    """
    Return True if `rule` applies to `url`.

    Parameters
    ----------
    url:
        A parsed URL, or raw text (unparseable text never matches).
    rule:
        Rule to evaluate. Disabled rules never match.
    """
    if not rule.enabled:
        return False
    parsed = parse_url(url) if isinstance(url, str) else url
    if parsed is None:
        return False
    if rule.port_range is not None:
        if parsed.port is None or not rule.port_range.contains(parsed.port):
            return False
    return _match_pattern(parsed, rule)


def find_matching_rule(url: ParsedUrl | str, rules: Iterable[Rule]) -> Rule | None:
    """Return the lowest-priority enabled rule that matches, if any."""
    parsed = parse_url(url) if isinstance(url, str) else url
    if parsed is None:
        return None
    for rule in sorted(rules, key=lambda r: r.priority):
        if matches(parsed, rule):
            return rule
    return None
