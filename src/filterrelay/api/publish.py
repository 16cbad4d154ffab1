"""Publish API — fan an event out to every matching subscriber.

Learn: The request's filter is the event's criteria. The scope (when the
relay is partitioned) is folded into the criteria by the dispatcher, so
the response echoes the filter that was actually matched.
"""

import structlog
from fastapi import APIRouter, Depends, HTTPException

from filterrelay.core.errors import InvalidFilter
from filterrelay.relay import Relay, get_relay
from filterrelay.schemas.relay import PublishRequest, PublishResponse

logger = structlog.get_logger()
router = APIRouter()


@router.post("/publish", response_model=PublishResponse)
async def publish_event(
    body: PublishRequest,
    relay: Relay = Depends(get_relay),
):
    """Publish an event. Best-effort: counts attempted and delivered sends."""
    if relay.registry.partitioned and body.scope is None:
        raise HTTPException(status_code=400, detail="scope: a scope name is required")

    try:
        result = await relay.dispatcher.publish(
            body.scope,
            body.filter,
            body.payload,
            event_type=body.event_type,
        )
    except InvalidFilter as e:
        raise HTTPException(status_code=400, detail=f"filter: {e}")

    return PublishResponse(
        scope=body.scope if relay.registry.partitioned else None,
        event_type=body.event_type,
        filter=dict(result.filter),
        attempted=result.attempted,
        delivered=result.delivered,
    )
