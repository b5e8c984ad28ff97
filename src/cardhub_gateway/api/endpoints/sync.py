"""Desktop client endpoints: connectivity probe and full-replace sync."""

from fastapi import APIRouter, Depends

from cardhub_gateway.api.dependencies import SessionDep, require_ping_key, require_sync_key
from cardhub_gateway.db.time import server_time
from cardhub_gateway.schemas.sync import PingResponse, SyncRequest, SyncResponse
from cardhub_gateway.services.sync_ingest import SyncIngestor

router = APIRouter(tags=["sync"])


@router.get("/ping", dependencies=[Depends(require_ping_key)])
async def ping() -> PingResponse:
    """Let the desktop client verify its endpoint URL and API key."""
    return PingResponse(success=True, message="pong", server_time=server_time())


@router.post("/sync", dependencies=[Depends(require_sync_key)])
def sync_snapshot(payload: SyncRequest, db: SessionDep) -> SyncResponse:
    """Replace everything stored for ``client_id`` with the submitted dataset.

    Args:
        payload: Client identity, sync time and complete dataset
        db: Database session

    Returns:
        Receipt time and per-entity row counts
    """
    received_at = server_time()
    stats = SyncIngestor(db).replace(
        payload.client_id,
        payload.data,
        sync_time=payload.sync_time,
        received_at=received_at,
    )
    return SyncResponse(success=True, message="Sync succeeded", received_at=received_at, stats=stats)
