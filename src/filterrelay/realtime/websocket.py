"""WebSocket endpoints — one long-lived connection per subscriber.

Learn: A client connects to /ws/{scope} (or /ws when the relay runs
unpartitioned). The handler:
1. Registers the connection and sends a `connected` ack with its id
2. Reads client messages (register_filters, update_filters, get_filters, ping)
   and answers each one
3. Removes the subscriber as soon as the socket closes or errors

Published events arrive independently: the dispatcher calls the
connection's WebSocketSendHandle from the publishing request's task.
"""

import asyncio
import re
from typing import Any, Mapping, Optional

import structlog
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from filterrelay.core.errors import SendFailure
from filterrelay.relay import Relay, get_relay

logger = structlog.get_logger()
router = APIRouter()

_SCOPE_RE = re.compile(r"^\w+$")

# Application-defined close code for a rejected scope path
CLOSE_BAD_SCOPE = 4400


class WebSocketSendHandle:
    """SendHandle over a Starlette WebSocket.

    Sends are serialized per socket, since replies and published events
    can be written from different tasks at once.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._lock = asyncio.Lock()

    async def send(self, message: Mapping[str, Any]) -> None:
        async with self._lock:
            if (
                self.websocket.client_state != WebSocketState.CONNECTED
                or self.websocket.application_state != WebSocketState.CONNECTED
            ):
                raise SendFailure("connection is closed")
            try:
                await self.websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                raise SendFailure(str(e) or type(e).__name__) from e


async def _serve(websocket: WebSocket, relay: Relay, scope: Optional[str]) -> None:
    await websocket.accept()
    handle = WebSocketSendHandle(websocket)
    view = relay.connections.on_connect(handle, scope)

    try:
        await handle.send(relay.connections.connected_message(view))
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")
            reply = relay.connections.on_message(view.id, raw)
            if reply is not None:
                await handle.send(reply)
    except (WebSocketDisconnect, SendFailure):
        pass
    finally:
        relay.connections.on_disconnect(view.id)


@router.websocket("/ws/{scope}")
async def scoped_websocket(
    websocket: WebSocket,
    scope: str,
    relay: Relay = Depends(get_relay),
):
    """Subscriber connection inside one scope ("service")."""
    if not relay.registry.partitioned:
        await websocket.close(code=CLOSE_BAD_SCOPE, reason="Scopes are disabled; connect to /ws")
        return
    if not _SCOPE_RE.match(scope):
        logger.info("filterrelay.ws.rejected", scope=scope, reason="invalid_scope")
        await websocket.close(code=CLOSE_BAD_SCOPE, reason="Invalid scope name")
        return
    await _serve(websocket, relay, scope)


@router.websocket("/ws")
async def unscoped_websocket(
    websocket: WebSocket,
    relay: Relay = Depends(get_relay),
):
    """Subscriber connection for an unpartitioned relay."""
    if relay.registry.partitioned:
        await websocket.close(code=CLOSE_BAD_SCOPE, reason="A scope is required: connect to /ws/{scope}")
        return
    await _serve(websocket, relay, None)
