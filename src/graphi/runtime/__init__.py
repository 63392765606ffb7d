"""
Runtime module - request dispatch, field events and tracing.
"""

from __future__ import annotations

from .dispatcher import RequestDispatcher
from .events import POST_FIELD_RESOLVE, PRE_FIELD_RESOLVE, FieldResolveEvent, FieldResolveEvents
from .middleware import FieldResolveMiddleware
from .tracing import FieldTimings

__all__ = [
    "RequestDispatcher",
    "FieldResolveEvents",
    "FieldResolveEvent",
    "FieldResolveMiddleware",
    "FieldTimings",
    "PRE_FIELD_RESOLVE",
    "POST_FIELD_RESOLVE",
]
