"""
Rule validation and ordering helpers for the rule store.

Everything here is pure: no persistence, no locking. The store calls these
functions while holding its lock and persists the result.

Invariants
----------
- Patterns are stripped and must not be empty.
- A rule must reference a destination id.
- After any reorder, priorities are exactly 0..n-1 in list order.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Protocol, Sequence

from ..data_models import Destination, Rule
from .errors import InvalidRuleError, UnknownRuleError


class DestinationLookup(Protocol):
    """Anything able to resolve a destination by id (catalog or snapshot)."""

    def destination(self, destination_id: str) -> Destination | None:
        ...


def normalize_rule(rule: Rule) -> Rule:
    """
    Normalize and validate a single rule.

    Raises
    ------
    InvalidRuleError
        If the pattern is blank, the destination id is missing, or the
        profile id belongs to another destination.
    """
    pattern = rule.pattern.strip()
    if not pattern:
        raise InvalidRuleError("Rule pattern must not be empty.")
    destination_id = rule.destination_id.strip()
    if not destination_id:
        raise InvalidRuleError("Rule must reference a destination.")
    profile_id = (rule.profile_id.strip() if rule.profile_id else None) or None
    if profile_id is not None and not profile_id.startswith(destination_id + "/"):
        raise InvalidRuleError(
            f"Profile {profile_id!r} does not belong to destination {destination_id!r}."
        )
    return replace(rule, pattern=pattern, destination_id=destination_id, profile_id=profile_id)


def validate_rule_against_catalog(rule: Rule, catalog: DestinationLookup) -> None:
    """
    Check that a rule's destination and profile exist right now.

    Notes
    -----
    The store does not call this: a rule may outlive its destination and is
    then skipped at dispatch time. Editors call it before saving.

    Raises
    ------
    InvalidRuleError
        If the destination is unknown or the profile does not belong to it.
    """
    destination = catalog.destination(rule.destination_id)
    if destination is None:
        raise InvalidRuleError(f"Unknown destination: {rule.destination_id}")
    if rule.profile_id is not None and destination.profile(rule.profile_id) is None:
        raise InvalidRuleError(
            f"Profile {rule.profile_id!r} does not belong to destination {destination.id!r}."
        )


def reindex(rules: Iterable[Rule]) -> tuple[Rule, ...]:
    """Assign priorities 0..n-1 following the iteration order."""
    return tuple(
        rule if rule.priority == index else replace(rule, priority=index)
        for index, rule in enumerate(rules)
    )


def next_priority(rules: Sequence[Rule]) -> int:
    """Priority for a newly appended rule."""
    return max((r.priority for r in rules), default=-1) + 1


def move_rules(rules: Sequence[Rule], rule_ids: Sequence[str], to_position: int) -> tuple[Rule, ...]:
    """
    Move a (possibly scattered) subset of rules to a new position.

    Parameters
    ----------
    rules:
        Rules in current priority order.
    rule_ids:
        Ids to move. Their relative order is preserved.
    to_position:
        Insertion offset in the pre-move list, clamped to [0, len(rules)].
        ``0`` moves the rules to the top, ``len(rules)`` to the bottom.

    Returns
    -------
    tuple[Rule, ...]
        Reordered and reindexed rules.

    Raises
    ------
    UnknownRuleError
        If any id is not present.
    """
    wanted = set(rule_ids)
    known = {r.id for r in rules}
    missing = [rule_id for rule_id in rule_ids if rule_id not in known]
    if missing:
        raise UnknownRuleError(f"Unknown rule id(s): {', '.join(missing)}")

    offset = max(0, min(len(rules), to_position))
    moved = [r for r in rules if r.id in wanted]
    kept = [r for r in rules if r.id not in wanted]
    insert_at = offset - sum(1 for r in rules[:offset] if r.id in wanted)
    return reindex(kept[:insert_at] + moved + kept[insert_at:])
