"""Subscriber registry — the set of live connections and their filters.

Learn: This is the only shared mutable state in the relay. Every mutation
(insert, set_filter, remove) goes through one lock, and the read path
(snapshot) copies what it needs under that same lock and returns. Sends
happen afterwards, outside the lock, so a stalled connection can never
hold up registry mutation or another publish.

The lock is a threading.Lock, not an asyncio.Lock: critical sections are
pure in-memory work with no awaits, so the same registry is safe to share
between event-loop tasks and plain OS threads.

Filters are stored as read-only mappings and replaced wholesale. A
snapshot therefore sees either the old filter or the new one, never a mix.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Protocol

import structlog

from filterrelay.core.errors import DuplicateId, UnknownSubscriber
from filterrelay.core.filters import EMPTY_FILTER, Filter, freeze, validate_filter
from filterrelay.core.partition import ScopeIndex

logger = structlog.get_logger()


class SendHandle(Protocol):
    """Capability to deliver one message to one connection.

    Implementations raise SendFailure when the connection is gone.
    """

    async def send(self, message: Mapping[str, Any]) -> None: ...


@dataclass(frozen=True, slots=True)
class SubscriberView:
    """Point-in-time, read-only view of one subscriber."""

    id: str
    scope: Optional[str]
    filter: Filter
    send_handle: SendHandle
    connected_at: datetime


@dataclass(slots=True)
class _Subscriber:
    id: str
    scope: Optional[str]
    filter: Filter
    send_handle: SendHandle
    connected_at: datetime

    def view(self) -> SubscriberView:
        return SubscriberView(
            id=self.id,
            scope=self.scope,
            filter=self.filter,
            send_handle=self.send_handle,
            connected_at=self.connected_at,
        )


class SubscriberRegistry:
    """Thread-safe store of live subscribers, optionally partitioned by scope.

    With a scope_key (the default, "service"), every subscriber belongs to
    one scope and its filter always carries {scope_key: scope}. Pass
    scope_key=None for a single flat registry.
    """

    def __init__(self, scope_key: Optional[str] = "service"):
        self.scope_key = scope_key
        self._lock = threading.Lock()
        self._subscribers: dict[str, _Subscriber] = {}
        self._scopes = ScopeIndex()

    @property
    def partitioned(self) -> bool:
        return self.scope_key is not None

    def _resolve(self, scope: Optional[str], attributes: Filter) -> Filter:
        if not self.partitioned:
            return attributes
        return freeze({self.scope_key: scope, **attributes})

    # ─── Mutation ───────────────────────────────────────

    def insert(
        self,
        subscriber_id: str,
        send_handle: SendHandle,
        scope: Optional[str] = None,
    ) -> SubscriberView:
        """Register a new subscriber with an empty filter (plus its scope)."""
        if self.partitioned and not scope:
            raise ValueError("a scope is required when the registry is partitioned")
        if not self.partitioned:
            scope = None

        subscriber = _Subscriber(
            id=subscriber_id,
            scope=scope,
            filter=self._resolve(scope, EMPTY_FILTER),
            send_handle=send_handle,
            connected_at=datetime.now(timezone.utc),
        )
        with self._lock:
            if subscriber_id in self._subscribers:
                raise DuplicateId(subscriber_id)
            self._subscribers[subscriber_id] = subscriber
            if scope is not None:
                self._scopes.join(scope, subscriber_id)
        return subscriber.view()

    def set_filter(self, subscriber_id: str, new_filter: Any) -> Filter:
        """Replace a subscriber's filter wholesale. Returns the stored filter.

        Raises InvalidFilter (registry untouched) or UnknownSubscriber.
        """
        attributes = validate_filter(new_filter, reserved_key=self.scope_key)
        with self._lock:
            subscriber = self._subscribers.get(subscriber_id)
            if subscriber is None:
                raise UnknownSubscriber(subscriber_id)
            resolved = self._resolve(subscriber.scope, attributes)
            subscriber.filter = resolved
        return resolved

    def remove(self, subscriber_id: str) -> Optional[SubscriberView]:
        """Remove a subscriber. Idempotent: absent ids return None."""
        with self._lock:
            subscriber = self._subscribers.pop(subscriber_id, None)
            if subscriber is None:
                return None
            scope_deleted = (
                subscriber.scope is not None
                and self._scopes.leave(subscriber.scope, subscriber_id)
            )
        if scope_deleted:
            logger.debug("filterrelay.registry.scope_deleted", scope=subscriber.scope)
        return subscriber.view()

    # ─── Reads ──────────────────────────────────────────

    def get(self, subscriber_id: str) -> SubscriberView:
        with self._lock:
            subscriber = self._subscribers.get(subscriber_id)
            if subscriber is None:
                raise UnknownSubscriber(subscriber_id)
            return subscriber.view()

    def get_filter(self, subscriber_id: str) -> Filter:
        return self.get(subscriber_id).filter

    def snapshot(self, scope: Optional[str] = None) -> tuple[SubscriberView, ...]:
        """Consistent point-in-time copy of the registry, optionally one scope.

        Scope is ignored on an unpartitioned registry. An unknown scope
        yields an empty snapshot and is not created.
        """
        with self._lock:
            if scope is None or not self.partitioned:
                return tuple(s.view() for s in self._subscribers.values())
            return tuple(
                self._subscribers[subscriber_id].view()
                for subscriber_id in self._scopes.members(scope)
            )

    def scopes(self) -> dict[str, int]:
        """Scope name → subscriber count. Never contains an empty scope."""
        with self._lock:
            return self._scopes.counts()

    def __contains__(self, subscriber_id: object) -> bool:
        with self._lock:
            return subscriber_id in self._subscribers

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscribers)
