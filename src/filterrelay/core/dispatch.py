"""Dispatch coordinator — one publish in, one send per matching subscriber out.

Learn: publish() runs in three steps:
1. Resolve the criteria: validate them and fold the scope in under the
   scope key, exactly the way subscribers carry it. After that, scope is
   just another attribute and there is no special-case branch for it.
2. Take a registry snapshot and run matches() over it.
3. Start one send per match and gather them. Each send runs on its own,
   so a stalled socket holds up its own send and nothing else.

Send failures are expected (the connection closed between snapshot and
send). They count as attempted-but-not-delivered and never abort the
rest of the fan-out. There is no retry.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import structlog

from filterrelay.core.errors import InvalidFilter, SendFailure
from filterrelay.core.filters import Filter, freeze, matches, validate_filter
from filterrelay.core.registry import SubscriberRegistry, SubscriberView
from filterrelay.events.envelope import envelope
from filterrelay.events.types import NOTIFICATION

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome counts for one publish, plus the criteria actually matched."""

    attempted: int
    delivered: int
    filter: Filter

    @property
    def failed(self) -> int:
        return self.attempted - self.delivered


class DispatchCoordinator:
    """Matches a publish against a registry snapshot and fans it out."""

    def __init__(self, registry: SubscriberRegistry):
        self.registry = registry

    def resolve_criteria(self, scope: Optional[str], criteria: Any) -> Filter:
        """Validate criteria and fold the scope in under the scope key."""
        attributes = validate_filter(criteria, reserved_key=self.registry.scope_key)
        if not self.registry.partitioned:
            return attributes
        if not scope:
            raise InvalidFilter("scope is required")
        return freeze({self.registry.scope_key: scope, **attributes})

    def match(
        self, scope: Optional[str], criteria: Any
    ) -> tuple[Filter, list[SubscriberView]]:
        """Subscribers a publish would reach right now. Sends nothing."""
        resolved = self.resolve_criteria(scope, criteria)
        targets = [
            view
            for view in self.registry.snapshot(scope)
            if matches(view.filter, resolved)
        ]
        return resolved, targets

    async def publish(
        self,
        scope: Optional[str],
        criteria: Any,
        payload: Optional[Mapping[str, Any]] = None,
        event_type: str = NOTIFICATION,
    ) -> DispatchResult:
        """Deliver payload to every subscriber whose filter satisfies criteria."""
        resolved, targets = self.match(scope, criteria)
        if not targets:
            logger.info(
                "filterrelay.dispatch.no_match",
                scope=scope,
                event_type=event_type,
                filter=dict(resolved),
            )
            return DispatchResult(attempted=0, delivered=0, filter=resolved)

        message = envelope(event_type, payload)
        outcomes = await asyncio.gather(
            *(self._deliver(view, message) for view in targets)
        )

        result = DispatchResult(
            attempted=len(targets),
            delivered=sum(outcomes),
            filter=resolved,
        )
        logger.info(
            "filterrelay.dispatch.published",
            scope=scope,
            event_type=event_type,
            filter=dict(resolved),
            attempted=result.attempted,
            delivered=result.delivered,
        )
        return result

    async def _deliver(
        self,
        view: SubscriberView,
        message: Mapping[str, Any],
    ) -> bool:
        try:
            await view.send_handle.send(message)
        except SendFailure as e:
            logger.debug(
                "filterrelay.dispatch.send_failed",
                subscriber_id=view.id,
                error=str(e),
            )
            return False
        except Exception:
            # A broken handle must not take the rest of the fan-out with it
            logger.exception("filterrelay.dispatch.send_error", subscriber_id=view.id)
            return False
        return True
