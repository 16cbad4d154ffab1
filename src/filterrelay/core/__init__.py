"""Relay core — subscriber registry, filter matching, and dispatch.

Transport-agnostic: nothing in here imports FastAPI or knows what a
WebSocket is. Connections are reached only through a SendHandle.
"""

from filterrelay.core.dispatch import DispatchCoordinator, DispatchResult
from filterrelay.core.errors import (
    DuplicateId,
    InvalidFilter,
    RelayError,
    SendFailure,
    UnknownSubscriber,
)
from filterrelay.core.filters import Filter, matches, validate_filter
from filterrelay.core.lifecycle import ConnectionHandler
from filterrelay.core.registry import SendHandle, SubscriberRegistry, SubscriberView

__all__ = [
    "ConnectionHandler",
    "DispatchCoordinator",
    "DispatchResult",
    "DuplicateId",
    "Filter",
    "InvalidFilter",
    "RelayError",
    "SendFailure",
    "SendHandle",
    "SubscriberRegistry",
    "SubscriberView",
    "UnknownSubscriber",
    "matches",
    "validate_filter",
]
