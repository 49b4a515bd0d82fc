"""Domain exceptions for the rule store."""

from __future__ import annotations

from ..errors import RoutingEngineError


class RuleStoreError(RoutingEngineError):
    """Base error for rule store operations."""


class UnknownRuleError(RuleStoreError):
    """Raised when a rule id is not known to the store."""


class InvalidRuleError(RuleStoreError):
    """Raised when a rule violates store invariants."""
