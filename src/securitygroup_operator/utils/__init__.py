"""Utility functions for the SecurityGroup Operator."""

from .conditions import (
    conditions_equal,
    get_condition,
    set_conditions,
)
from .events import emit_event
from .finalizers import add_finalizer, has_finalizer, remove_finalizer
from .rate_limit import RateLimiter

__all__ = [
    "get_condition",
    "set_conditions",
    "conditions_equal",
    "has_finalizer",
    "add_finalizer",
    "remove_finalizer",
    "emit_event",
    "RateLimiter",
]
