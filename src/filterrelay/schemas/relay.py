"""Pydantic schemas for the publish and introspection APIs.

Learn: Pydantic v2 models validate request/response shape. Filter
contents (value kinds, the reserved scope key) are checked by the core,
so the same rules apply to HTTP publishers and WebSocket subscribers.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from filterrelay.events.types import NOTIFICATION

SCOPE_PATTERN = r"^\w+$"


# ─── Publish ────────────────────────────────────────────

class PublishRequest(BaseModel):
    scope: Optional[str] = Field(default=None, min_length=1, max_length=100, pattern=SCOPE_PATTERN)
    filter: dict[str, Any]
    payload: dict[str, Any] = Field(default_factory=dict)
    event_type: str = Field(default=NOTIFICATION, min_length=1, max_length=200)


class PublishResponse(BaseModel):
    success: bool = True
    scope: Optional[str]
    event_type: str
    filter: dict[str, Any]
    attempted: int
    delivered: int


# ─── Introspection ──────────────────────────────────────

class MatchRequest(BaseModel):
    scope: Optional[str] = Field(default=None, min_length=1, max_length=100, pattern=SCOPE_PATTERN)
    filter: dict[str, Any]


class SubscriberSummary(BaseModel):
    id: str
    filter: dict[str, Any]


class SubscriberInfo(SubscriberSummary):
    connected_at: datetime


class MatchResponse(BaseModel):
    scope: Optional[str]
    filter: dict[str, Any]
    matching_subscribers: int
    subscribers: list[SubscriberSummary]


class ScopeStats(BaseModel):
    subscriber_count: int
    subscribers: list[SubscriberInfo]


class StatsResponse(BaseModel):
    """Per-scope breakdown when partitioned; a flat list otherwise."""
    partitioned: bool
    total_scopes: int
    total_subscribers: int
    scopes: dict[str, ScopeStats] = {}
    subscribers: list[SubscriberInfo] = []
