"""
HTTP endpoints of the relay service.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request

from ..core.relay_server import RelayServer

router = APIRouter()


def get_relay_server(request: Request) -> RelayServer:
    """Get the RelayServer instance from the app state"""
    relay = getattr(request.app.state, "relay", None)
    if relay is None:
        raise HTTPException(
            status_code=503,
            detail="Relay service not initialized"
        )
    return relay


@router.get("/health")
async def health_check(
        relay: RelayServer = Depends(get_relay_server),
) -> Dict[str, Any]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "participants": len(relay.registry),
        "connections": relay.connection_count,
    }


@router.get("/participants")
async def list_participants(
        relay: RelayServer = Depends(get_relay_server),
) -> List[Dict[str, Any]]:
    """Snapshot of every participant currently present."""
    return [
        record.model_dump(mode="json", by_alias=True)
        for record in relay.registry.list()
    ]
