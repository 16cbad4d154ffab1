"""Connection lifecycle — what the transport calls on connect, message, close.

Learn: The WebSocket route owns the socket; this class owns the protocol.
Each inbound message is decoded, routed by its "type", applied to the
registry, and answered with an envelope the route sends back. Malformed
input becomes an error envelope and never touches the registry.

Inbound shape: {"type": "...", "data": {...}}. For register_filters and
update_filters, "data" is the filter itself.
"""

import json
import uuid
from typing import Any, Callable, Optional

import structlog

from filterrelay.core.errors import DuplicateId, InvalidFilter, UnknownSubscriber
from filterrelay.core.registry import SendHandle, SubscriberRegistry, SubscriberView
from filterrelay.events import types
from filterrelay.events.envelope import envelope, error, utc_timestamp

logger = structlog.get_logger()


def new_subscriber_id() -> str:
    return uuid.uuid4().hex


class ConnectionHandler:
    """Applies connection-lifecycle events to a SubscriberRegistry."""

    def __init__(
        self,
        registry: SubscriberRegistry,
        id_factory: Callable[[], str] = new_subscriber_id,
    ):
        self.registry = registry
        self.id_factory = id_factory

    def on_connect(
        self, send_handle: SendHandle, scope: Optional[str] = None
    ) -> SubscriberView:
        """Register a new connection. Returns its view (id, scope, filter)."""
        try:
            view = self.registry.insert(self.id_factory(), send_handle, scope)
        except DuplicateId as e:
            logger.critical("filterrelay.lifecycle.duplicate_id", subscriber_id=e.subscriber_id)
            raise
        logger.info("filterrelay.lifecycle.connected", subscriber_id=view.id, scope=scope)
        return view

    def connected_message(self, view: SubscriberView) -> dict[str, Any]:
        return envelope(
            types.CONNECTED,
            {"subscriber_id": view.id, "scope": view.scope, "filter": dict(view.filter)},
        )

    def on_message(self, subscriber_id: str, raw: Any) -> Optional[dict[str, Any]]:
        """Handle one inbound message. Returns the reply, or None for no reply."""
        if isinstance(raw, (str, bytes, bytearray)):
            try:
                raw = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError, RecursionError):
                return error("message is not valid JSON")

        if not isinstance(raw, dict):
            return error("message must be a JSON object")
        message_type = raw.get("type")
        if not isinstance(message_type, str) or not message_type:
            return error("message type is required")
        data = raw.get("data")

        if message_type == types.PING:
            return envelope(types.PONG, {"timestamp": utc_timestamp()})
        if message_type == types.REGISTER_FILTERS:
            return self._replace_filter(subscriber_id, data, types.FILTERS_REGISTERED)
        if message_type == types.UPDATE_FILTERS:
            return self._replace_filter(subscriber_id, data, types.FILTERS_UPDATED)
        if message_type == types.GET_FILTERS:
            return self._current_filter(subscriber_id)
        return error(f"unknown type: {message_type}")

    def on_disconnect(self, subscriber_id: str) -> None:
        removed = self.registry.remove(subscriber_id)
        if removed is not None:
            logger.info(
                "filterrelay.lifecycle.disconnected",
                subscriber_id=subscriber_id,
                scope=removed.scope,
            )

    def _replace_filter(
        self, subscriber_id: str, data: Any, reply_type: str
    ) -> Optional[dict[str, Any]]:
        try:
            resolved = self.registry.set_filter(subscriber_id, data)
        except InvalidFilter as e:
            return error(str(e))
        except UnknownSubscriber:
            # Raced with disconnect: nobody left to answer
            logger.info(
                "filterrelay.lifecycle.filter_update_after_disconnect",
                subscriber_id=subscriber_id,
            )
            return None

        logger.debug(
            "filterrelay.lifecycle.filters_set",
            subscriber_id=subscriber_id,
            filter=dict(resolved),
        )
        return envelope(
            reply_type,
            {
                "scope": resolved.get(self.registry.scope_key),
                "filter": dict(resolved),
            },
        )

    def _current_filter(self, subscriber_id: str) -> dict[str, Any]:
        try:
            view = self.registry.get(subscriber_id)
        except UnknownSubscriber:
            return error("no filters")
        return envelope(
            types.CURRENT_FILTERS,
            {"scope": view.scope, "filter": dict(view.filter)},
        )
