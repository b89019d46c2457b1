"""
Sync Router
Manual sync trigger and sync status
"""
from fastapi import APIRouter, Depends, Query

from finsync.routers.deps import get_orchestrator

router = APIRouter()


@router.post("")
async def trigger_sync(
    investment_only: bool = Query(False, description="Sync investment holdings only"),
    orchestrator=Depends(get_orchestrator),
):
    """Trigger a sync now. Failures are reported in the body, not as an HTTP error."""
    result = await orchestrator.trigger_manual_sync(investment_only=investment_only)
    return {
        "success": result.success,
        "message": result.message,
        "sync": orchestrator.context.to_dict(),
    }


@router.get("/status")
async def sync_status(refresh: bool = False, orchestrator=Depends(get_orchestrator)):
    if refresh:
        await orchestrator.fetch_sync_status()
    return orchestrator.context.to_dict()
