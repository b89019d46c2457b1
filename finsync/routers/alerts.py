"""
Alerts Router
Backend alert stream with client-side read/unread filtering
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status

from finsync.models.alert import AlertFilter
from finsync.routers.deps import get_alert_book

router = APIRouter()


@router.get("")
async def list_alerts(
    which: AlertFilter = Query(AlertFilter.ALL, alias="status"),
    refresh: bool = True,
    book=Depends(get_alert_book),
):
    if refresh:
        await book.refresh()
    return {
        "alerts": [a.model_dump(mode="json") for a in book.filter(which)],
        "unread_count": book.unread_count,
        "error": book.last_error,
    }


@router.patch("/{alert_id}/read")
async def mark_alert_read(alert_id: str, book=Depends(get_alert_book)):
    if book.get(alert_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Alert not found")
    if not await book.mark_read(alert_id):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to mark alert as read")
    return {"success": True, "unread_count": book.unread_count}
