"""
Destination discovery API.

A DestinationProvider is the OS-integration collaborator that reports which
applications can open web URLs and which one is the system default. The
catalog turns that raw report into Destination objects (profiles attached,
self excluded, deduplicated, sorted).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Sequence


@dataclass(frozen=True, slots=True)
class DiscoveredApp:
    """
    An application reported by a provider.

    Attributes
    ----------
    id:
        Stable external identifier (bundle id or desktop-entry id).
    name:
        Display name.
    executable_path:
        Path handed to the launcher.
    """

    id: str
    name: str
    executable_path: str


@dataclass(frozen=True, slots=True)
class DiscoveryResult:
    """Raw discovery output. `apps` may contain duplicates and the router itself."""

    apps: tuple[DiscoveredApp, ...] = ()
    default_id: str | None = None


class DestinationProvider(Protocol):
    """Enumerates URL-handling applications."""

    def discover(self) -> DiscoveryResult:
        """
        Enumerate applications registered for the ``https`` scheme.

        Returns
        -------
        DiscoveryResult
            Possibly empty. Providers should not raise for an empty system.
        """
        raise NotImplementedError

    def describe(self) -> Sequence[str]:
        """Human-readable description of where the provider looks."""
        raise NotImplementedError
