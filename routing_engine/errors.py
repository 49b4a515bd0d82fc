"""
Domain exceptions for the routing engine.

Notes
-----
Engine code avoids raising generic exceptions for expected failure modes.
Dispatch and state loading degrade instead of raising; the errors below are
reserved for caller mistakes (unknown rule ids, invalid rules) and for
collaborators that fail loudly (launching a destination process).
"""

from __future__ import annotations


class RoutingEngineError(RuntimeError):
    """Base exception for all routing engine failures."""


class CatalogError(RoutingEngineError):
    """Raised when destination discovery cannot be configured."""


class LaunchError(RoutingEngineError):
    """Raised when a destination process cannot be started."""


class SettingsError(RoutingEngineError):
    """Raised when engine settings cannot be written."""
