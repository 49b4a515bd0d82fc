"""
Rule store persistence API.

The routing state is persisted as independent JSON-encoded fields so that a
corrupt value for one field never prevents the others from loading. This
module defines the field keys, the minimal backend surface the store calls,
and the change event published to subscribers.

Notes
-----
- Backends store opaque text. Encoding and decoding belong to the store.
- A backend write covers every field one mutation changed and is atomic.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Mapping, Protocol

from ..data_models import RoutingState


class StateField(str, Enum):
    """Independently persisted field groups."""

    ROUTING_ENABLED = "routing_enabled"
    RULES = "rules"
    NOTIFICATION_SETTINGS = "notification_settings"
    RECENT_ROUTES = "recent_routes"
    FALLBACK_DESTINATION_ID = "fallback_destination_id"


@dataclass(frozen=True, slots=True)
class StoreChange:
    """
    Published after every store mutation.

    Attributes
    ----------
    fields:
        Field groups touched by the mutation.
    state:
        Snapshot after the mutation.
    """

    fields: tuple[StateField, ...]
    state: RoutingState


StoreListener = Callable[[StoreChange], None]


class StateBackend(Protocol):
    """Storage for raw per-field values."""

    def load_field(self, key: StateField) -> str | None:
        """
        Return the stored text for `key`, or None when absent.

        Implementations may raise on I/O failure; the store treats that the
        same as a corrupt value.
        """
        raise NotImplementedError

    def write_fields(self, values: Mapping[StateField, str | None]) -> None:
        """
        Replace several fields in one atomic write.

        A None value removes the field; removing an absent field is not an
        error. On failure nothing is written.
        """
        raise NotImplementedError
