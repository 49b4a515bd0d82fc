"""
RoutingStore: the ordered, persisted rule collection and its settings.

The store is the single writer of the routing state. Every mutation:

1. runs under the store lock,
2. builds a new immutable RoutingState,
3. persists the field groups it changed in one atomic backend write,
4. publishes a StoreChange to subscribers,
5. returns the new state.

Loading never fails. Each field group is decoded on its own; an absent,
unreadable or malformed value falls back to that field's default and leaves
the other fields intact.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import replace
from typing import Any, Callable, Sequence

from ..data_models import NotificationSettings, RecentRoute, RoutingState, Rule
from .api import StateBackend, StateField, StoreChange, StoreListener
from .errors import InvalidRuleError, UnknownRuleError
from .rules import move_rules, next_priority, normalize_rule, reindex

logger = logging.getLogger(__name__)


def _decode_routing_enabled(payload: Any) -> bool:
    if not isinstance(payload, bool):
        raise TypeError("routing_enabled must be a boolean")
    return payload


def _decode_rules(payload: Any) -> tuple[Rule, ...]:
    if not isinstance(payload, list):
        raise TypeError("rules must be a list")
    seen: set[str] = set()
    rules: list[Rule] = []
    for item in payload:
        rule = Rule.from_json(item)
        if rule.id in seen:
            continue
        seen.add(rule.id)
        rules.append(rule)
    # Stable sort keeps persisted order for equal priorities.
    return reindex(sorted(rules, key=lambda r: r.priority))


def _decode_recent_routes(payload: Any) -> tuple[RecentRoute, ...]:
    if not isinstance(payload, list):
        raise TypeError("recent_routes must be a list")
    return tuple(RecentRoute.from_json(item) for item in payload)


def _decode_fallback(payload: Any) -> str | None:
    if payload is None or isinstance(payload, str):
        return payload or None
    raise TypeError("fallback_destination_id must be a string or null")


class RoutingStore:
    """
    Persisted routing state with explicit mutation methods.

    Parameters
    ----------
    backend:
        Per-field storage.

    Notes
    -----
    All public methods are safe to call from any thread; calls are serialized
    by a re-entrant lock. Subscribers run on the calling thread while the lock
    is held and must not block.
    """

    def __init__(self, backend: StateBackend) -> None:
        self._backend = backend
        self._lock = threading.RLock()
        self._listeners: list[StoreListener] = []
        self._state = RoutingState()
        self.load()

    # ------------------------------------------------------------------ load

    def _load_field(self, key: StateField, decode: Callable[[Any], Any], default: Any) -> Any:
        try:
            raw = self._backend.load_field(key)
        except Exception as exc:
            logger.warning("Could not read %s, using default: %s", key.value, exc)
            return default
        if raw is None:
            return default
        try:
            return decode(json.loads(raw))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Stored %s is malformed, using default: %s", key.value, exc)
            return default

    def load(self) -> RoutingState:
        """(Re)load every field group from the backend."""
        defaults = RoutingState()
        with self._lock:
            self._state = RoutingState(
                rules=self._load_field(StateField.RULES, _decode_rules, defaults.rules),
                routing_enabled=self._load_field(
                    StateField.ROUTING_ENABLED, _decode_routing_enabled, defaults.routing_enabled
                ),
                fallback_destination_id=self._load_field(
                    StateField.FALLBACK_DESTINATION_ID, _decode_fallback, None
                ),
                notification_settings=self._load_field(
                    StateField.NOTIFICATION_SETTINGS,
                    NotificationSettings.from_json,
                    defaults.notification_settings,
                ),
                recent_routes=self._load_field(
                    StateField.RECENT_ROUTES, _decode_recent_routes, defaults.recent_routes
                ),
            )
            return self._state

    # ----------------------------------------------------------- persistence

    def _encode(self, key: StateField, state: RoutingState) -> str | None:
        if key is StateField.ROUTING_ENABLED:
            payload: Any = state.routing_enabled
        elif key is StateField.RULES:
            payload = [r.to_json() for r in state.rules]
        elif key is StateField.NOTIFICATION_SETTINGS:
            payload = state.notification_settings.to_json()
        elif key is StateField.RECENT_ROUTES:
            payload = [r.to_json() for r in state.recent_routes]
        else:
            if state.fallback_destination_id is None:
                return None
            payload = state.fallback_destination_id
        return json.dumps(payload, sort_keys=True)

    def _commit(self, state: RoutingState, *fields: StateField) -> RoutingState:
        # Memory changes only after the backend accepted every field.
        self._backend.write_fields({key: self._encode(key, state) for key in fields})
        self._state = state
        self._publish(StoreChange(fields=fields, state=state))
        return state

    def _publish(self, change: StoreChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("Store listener failed for %s", [f.value for f in change.fields])

    # ----------------------------------------------------------------- reads

    @property
    def state(self) -> RoutingState:
        with self._lock:
            return self._state

    def snapshot(self) -> RoutingState:
        """Return the current immutable state."""
        return self.state

    def rule(self, rule_id: str) -> Rule | None:
        return self.state.rule(rule_id)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """
        Register a change listener.

        Returns
        -------
        Callable[[], None]
            Call to unsubscribe. Calling it twice is harmless.
        """
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------- mutations

    def add(self, rule: Rule) -> RoutingState:
        """
        Append a rule after every existing rule.

        The rule's priority is replaced with ``max(priority) + 1`` (0 for an
        empty store).

        Raises
        ------
        InvalidRuleError
            If the rule is invalid or its id is already present.
        """
        normalized = normalize_rule(rule)
        with self._lock:
            if self._state.rule(normalized.id) is not None:
                raise InvalidRuleError(f"Duplicate rule id: {normalized.id}")
            rules = self._state.rules
            added = replace(normalized, priority=next_priority(rules))
            return self._commit(replace(self._state, rules=rules + (added,)), StateField.RULES)

    def update(self, rule: Rule) -> RoutingState:
        """
        Replace the rule with the same id, keeping its current priority.

        Raises
        ------
        UnknownRuleError
            If no rule has this id. Nothing is persisted.
        InvalidRuleError
            If the replacement is invalid.
        """
        normalized = normalize_rule(rule)
        with self._lock:
            current = self._state.rule(normalized.id)
            if current is None:
                raise UnknownRuleError(f"Unknown rule id: {normalized.id}")
            updated = replace(normalized, priority=current.priority)
            rules = tuple(updated if r.id == updated.id else r for r in self._state.rules)
            return self._commit(replace(self._state, rules=rules), StateField.RULES)

    def delete(self, rule_id: str) -> RoutingState:
        """
        Remove a rule and reindex the rest to 0..n-1.

        Raises
        ------
        UnknownRuleError
            If no rule has this id.
        """
        with self._lock:
            if self._state.rule(rule_id) is None:
                raise UnknownRuleError(f"Unknown rule id: {rule_id}")
            rules = reindex(r for r in self._state.rules if r.id != rule_id)
            return self._commit(replace(self._state, rules=rules), StateField.RULES)

    def move(self, rule_ids: Sequence[str], to_position: int) -> RoutingState:
        """Move rules to `to_position` (see :func:`move_rules`) and reindex."""
        with self._lock:
            rules = move_rules(self._state.rules, rule_ids, to_position)
            return self._commit(replace(self._state, rules=rules), StateField.RULES)

    def toggle_enabled(self) -> RoutingState:
        """Flip the global routing switch."""
        with self._lock:
            return self.set_enabled(not self._state.routing_enabled)

    def set_enabled(self, enabled: bool) -> RoutingState:
        with self._lock:
            return self._commit(
                replace(self._state, routing_enabled=enabled), StateField.ROUTING_ENABLED
            )

    def set_fallback(self, destination_id: str | None) -> RoutingState:
        """Set or clear (None / blank) the fallback destination."""
        cleaned = destination_id.strip() if destination_id else None
        with self._lock:
            return self._commit(
                replace(self._state, fallback_destination_id=cleaned or None),
                StateField.FALLBACK_DESTINATION_ID,
            )

    def set_notification_settings(self, settings: NotificationSettings) -> RoutingState:
        """Replace notification settings; recent routes are cut to the new limit."""
        with self._lock:
            recent = self._state.recent_routes[: settings.max_recent_urls]
            return self._commit(
                replace(self._state, notification_settings=settings, recent_routes=recent),
                StateField.NOTIFICATION_SETTINGS,
                StateField.RECENT_ROUTES,
            )

    def record_recent_route(self, route: RecentRoute) -> RoutingState:
        """Prepend a recent route, keeping at most ``max_recent_urls`` entries."""
        with self._lock:
            limit = self._state.notification_settings.max_recent_urls
            recent = ((route,) + self._state.recent_routes)[:limit]
            return self._commit(replace(self._state, recent_routes=recent), StateField.RECENT_ROUTES)

    def clear_recent_routes(self) -> RoutingState:
        with self._lock:
            return self._commit(replace(self._state, recent_routes=()), StateField.RECENT_ROUTES)
