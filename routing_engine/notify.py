"""
Notification hints for routed URLs.

The engine does not show banners, flash icons or play sounds. It builds a
RoutingEvent describing which of those the user asked for and hands it to a
Notifier collaborator.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from .data_models import Destination, NotificationSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RoutingEvent:
    """
    Notification-worthy routing outcome.

    Attributes
    ----------
    url:
        URL that was routed.
    destination_name:
        Name of the destination that received it.
    letter:
        Badge letter (A..Z) of the destination in catalog order, or ``?``.
    show_banner, flash_icon, play_sound:
        Which indicators to show.
    sound_name:
        Sound to play when `play_sound` is set.
    """

    url: str
    destination_name: str
    letter: str
    show_banner: bool
    flash_icon: bool
    play_sound: bool
    sound_name: str


class Notifier(Protocol):
    """Receives routing events."""

    def notify(self, event: RoutingEvent) -> None:
        ...


def destination_letter(destinations: Sequence[Destination], destination_id: str) -> str:
    """Letter for the destination's position in catalog order (wraps after Z)."""
    for index, destination in enumerate(destinations):
        if destination.id == destination_id:
            return chr(ord("A") + index % 26)
    return "?"


def build_routing_event(
    url: str,
    destination: Destination,
    settings: NotificationSettings,
    destinations: Sequence[Destination],
) -> RoutingEvent | None:
    """Return an event, or None when every indicator is switched off."""
    if not settings.wants_indicator:
        return None
    return RoutingEvent(
        url=url,
        destination_name=destination.name,
        letter=destination_letter(destinations, destination.id),
        show_banner=settings.show_banner,
        flash_icon=settings.flash_icon,
        play_sound=settings.play_sound,
        sound_name=settings.sound_name,
    )


class LoggingNotifier:
    """Notifier that writes events to the log."""

    def notify(self, event: RoutingEvent) -> None:
        logger.info("Routed [%s] %s -> %s", event.letter, event.url, event.destination_name)
