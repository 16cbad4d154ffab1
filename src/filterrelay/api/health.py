"""Health check endpoint."""

from fastapi import APIRouter, Depends

from filterrelay import __version__
from filterrelay.events.envelope import utc_timestamp
from filterrelay.relay import Relay, get_relay

router = APIRouter()


@router.get("/health")
async def health_check(relay: Relay = Depends(get_relay)):
    """Server status plus live connection totals."""
    return {
        "status": "ok",
        "version": __version__,
        "timestamp": utc_timestamp(),
        "total_scopes": len(relay.registry.scopes()),
        "total_subscribers": len(relay.registry),
    }
