"""Introspection API — read-only views of the registry for operators.

Learn: Neither endpoint sends anything. /subscribers/match runs the
exact matching path a publish would, so it answers "who would get this?"
without side effects.
"""

from collections import defaultdict

from fastapi import APIRouter, Depends, HTTPException

from filterrelay.core.errors import InvalidFilter
from filterrelay.relay import Relay, get_relay
from filterrelay.schemas.relay import (
    MatchRequest,
    MatchResponse,
    ScopeStats,
    StatsResponse,
    SubscriberInfo,
    SubscriberSummary,
)

router = APIRouter()


@router.get("/stats", response_model=StatsResponse)
async def get_stats(relay: Relay = Depends(get_relay)):
    """Connection counts and per-subscriber filters, grouped by scope."""
    snapshot = relay.registry.snapshot()
    infos = [
        SubscriberInfo(id=view.id, filter=dict(view.filter), connected_at=view.connected_at)
        for view in snapshot
    ]

    if not relay.registry.partitioned:
        return StatsResponse(
            partitioned=False,
            total_scopes=0,
            total_subscribers=len(infos),
            subscribers=infos,
        )

    grouped: dict[str, list[SubscriberInfo]] = defaultdict(list)
    for view, info in zip(snapshot, infos):
        grouped[view.scope].append(info)

    return StatsResponse(
        partitioned=True,
        total_scopes=len(grouped),
        total_subscribers=len(infos),
        scopes={
            name: ScopeStats(subscriber_count=len(members), subscribers=members)
            for name, members in grouped.items()
        },
    )


@router.post("/subscribers/match", response_model=MatchResponse)
async def match_subscribers(
    body: MatchRequest,
    relay: Relay = Depends(get_relay),
):
    """Which subscribers a publish with this scope and filter would reach."""
    if relay.registry.partitioned and body.scope is None:
        raise HTTPException(status_code=400, detail="scope: a scope name is required")

    try:
        resolved, targets = relay.dispatcher.match(body.scope, body.filter)
    except InvalidFilter as e:
        raise HTTPException(status_code=400, detail=f"filter: {e}")

    return MatchResponse(
        scope=body.scope if relay.registry.partitioned else None,
        filter=dict(resolved),
        matching_subscribers=len(targets),
        subscribers=[
            SubscriberSummary(id=view.id, filter=dict(view.filter)) for view in targets
        ],
    )
