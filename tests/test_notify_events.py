from __future__ import annotations

from routing_engine.data_models import Destination, NotificationSettings
from routing_engine.notify import build_routing_event, destination_letter


def _destinations(count: int) -> list[Destination]:
    return [Destination(id=f"d{i}", name=f"D{i}", executable_path=f"/bin/d{i}") for i in range(count)]


def test_destination_letter_follows_catalog_order() -> None:
    destinations = _destinations(30)
    assert destination_letter(destinations, "d0") == "A"
    assert destination_letter(destinations, "d25") == "Z"
    assert destination_letter(destinations, "d26") == "A"
    assert destination_letter(destinations, "missing") == "?"


def test_build_routing_event_respects_indicators() -> None:
    destinations = _destinations(2)
    quiet = NotificationSettings(show_banner=False, flash_icon=False, play_sound=False)
    assert build_routing_event("https://x.org/", destinations[1], quiet, destinations) is None

    loud = NotificationSettings(show_banner=True, flash_icon=False, play_sound=True, sound_name="Glass")
    event = build_routing_event("https://x.org/", destinations[1], loud, destinations)
    assert event is not None
    assert (event.letter, event.destination_name, event.sound_name) == ("B", "D1", "Glass")
    assert event.show_banner and event.play_sound and not event.flash_icon
