"""Qt adapter for the engine RoutingStore.

The engine owns the routing state. A preferences surface talks to this
adapter via signals/slots so that it never blocks the UI thread and never
holds engine state of its own: it renders whatever `state_changed` delivers.

Threading model
--------------
- A single worker QObject lives on a dedicated QThread.
- The worker owns the RoutingStore; every mutation runs on that thread.
- Store change events are re-emitted as `state_changed` and forwarded to the
  UI through queued connections.
"""

from __future__ import annotations

from pathlib import Path

from PySide6.QtCore import QObject, Qt, QThread, Signal, Slot

from routing_engine.data_models import NotificationSettings, Rule
from routing_engine.rule_store.api import StoreChange
from routing_engine.rule_store.errors import InvalidRuleError, UnknownRuleError
from routing_engine.rule_store.sqlite_backend import open_state_backend
from routing_engine.rule_store.store import RoutingStore


class RoutingStoreWorker(QObject):
    """Worker that owns the engine RoutingStore and runs in a background thread."""

    state_changed = Signal(object)  # RoutingState
    unknown_rule = Signal(str)  # rule_id
    invalid_rule = Signal(str, str)  # rule_id, message
    error = Signal(str)  # message

    def __init__(self, store: RoutingStore) -> None:
        super().__init__()
        self._store = store
        self._unsubscribe = store.subscribe(self._on_change)

    def _on_change(self, change: StoreChange) -> None:
        self.state_changed.emit(change.state)

    def close(self) -> None:
        """Stop forwarding store changes."""
        self._unsubscribe()

    @Slot()
    def load_state(self) -> None:
        """Emit the current state (initial population of a view)."""
        self.state_changed.emit(self._store.snapshot())

    @Slot(object)
    def add_rule(self, rule: object) -> None:
        """Append a rule."""
        assert isinstance(rule, Rule)
        try:
            self._store.add(rule)
        except InvalidRuleError as e:
            self.invalid_rule.emit(rule.id, str(e))
        except Exception as e:
            self.error.emit(str(e))

    @Slot(object)
    def update_rule(self, rule: object) -> None:
        """Replace a rule with the same id."""
        assert isinstance(rule, Rule)
        try:
            self._store.update(rule)
        except UnknownRuleError:
            self.unknown_rule.emit(rule.id)
        except InvalidRuleError as e:
            self.invalid_rule.emit(rule.id, str(e))
        except Exception as e:
            self.error.emit(str(e))

    @Slot(str)
    def delete_rule(self, rule_id: str) -> None:
        """Delete a rule."""
        try:
            self._store.delete(rule_id)
        except UnknownRuleError:
            self.unknown_rule.emit(rule_id)
        except Exception as e:
            self.error.emit(str(e))

    @Slot(object, int)
    def move_rules(self, rule_ids: object, to_position: int) -> None:
        """Move rules to a new position."""
        try:
            self._store.move(list(rule_ids), to_position)  # type: ignore[call-overload]
        except Exception as e:
            self.error.emit(str(e))

    @Slot()
    def toggle_enabled(self) -> None:
        """Flip the routing switch."""
        try:
            self._store.toggle_enabled()
        except Exception as e:
            self.error.emit(str(e))

    @Slot(object)
    def set_fallback(self, destination_id: object) -> None:
        """Set (str) or clear (None) the fallback destination."""
        try:
            self._store.set_fallback(destination_id if isinstance(destination_id, str) else None)
        except Exception as e:
            self.error.emit(str(e))

    @Slot(object)
    def set_notification_settings(self, settings: object) -> None:
        """Replace notification settings."""
        assert isinstance(settings, NotificationSettings)
        try:
            self._store.set_notification_settings(settings)
        except Exception as e:
            self.error.emit(str(e))

    @Slot()
    def clear_recent_routes(self) -> None:
        """Forget recent routes."""
        try:
            self._store.clear_recent_routes()
        except Exception as e:
            self.error.emit(str(e))


class RoutingStoreAdapter(QObject):
    """Qt adapter that marshals RoutingStore calls onto a worker thread."""

    # Requests (UI emits these; wired as queued connections to worker slots)
    request_load_state = Signal()
    request_add_rule = Signal(object)
    request_update_rule = Signal(object)
    request_delete_rule = Signal(str)
    request_move_rules = Signal(object, int)
    request_toggle_enabled = Signal()
    request_set_fallback = Signal(object)
    request_set_notification_settings = Signal(object)
    request_clear_recent_routes = Signal()

    # Results (worker emits; adapter forwards)
    state_changed = Signal(object)  # RoutingState
    unknown_rule = Signal(str)  # rule_id
    invalid_rule = Signal(str, str)  # rule_id, message
    error = Signal(str)  # message

    def __init__(self, data_root: Path | None = None, store: RoutingStore | None = None) -> None:
        super().__init__()

        self._thread = QThread()
        self._worker = RoutingStoreWorker(store or RoutingStore(open_state_backend(data_root)))
        self._worker.moveToThread(self._thread)

        queued = Qt.ConnectionType.QueuedConnection
        self.request_load_state.connect(self._worker.load_state, type=queued)
        self.request_add_rule.connect(self._worker.add_rule, type=queued)
        self.request_update_rule.connect(self._worker.update_rule, type=queued)
        self.request_delete_rule.connect(self._worker.delete_rule, type=queued)
        self.request_move_rules.connect(self._worker.move_rules, type=queued)
        self.request_toggle_enabled.connect(self._worker.toggle_enabled, type=queued)
        self.request_set_fallback.connect(self._worker.set_fallback, type=queued)
        self.request_set_notification_settings.connect(
            self._worker.set_notification_settings, type=queued
        )
        self.request_clear_recent_routes.connect(self._worker.clear_recent_routes, type=queued)

        # Forward results to the UI.
        self._worker.state_changed.connect(self.state_changed)
        self._worker.unknown_rule.connect(self.unknown_rule)
        self._worker.invalid_rule.connect(self.invalid_rule)
        self._worker.error.connect(self.error)

        self._thread.start()

    def shutdown(self) -> None:
        """Stop the worker thread cleanly."""
        self._worker.close()
        self._thread.quit()
        self._thread.wait()
