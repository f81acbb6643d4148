"""
Notification Endpoints
Lists, dismisses and drains toasts from the notification center.
"""
from fastapi import APIRouter, Depends, HTTPException, Request

from app.services.notification_center import NotificationCenter

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def get_center(request: Request) -> NotificationCenter:
    return request.app.state.notifications


@router.get("")
async def list_notifications(center: NotificationCenter = Depends(get_center)):
    return {
        "notifications": [n.model_dump(mode="json", by_alias=True) for n in center.notifications],
    }


@router.get("/toasts")
async def drain_toasts(center: NotificationCenter = Depends(get_center)):
    return {"toasts": [t.model_dump() for t in center.drain_toasts()]}


@router.post("/dismiss-all")
async def dismiss_all(center: NotificationCenter = Depends(get_center)):
    return {"dismissed": center.dismiss_all()}


@router.post("/{notification_id}/dismiss")
async def dismiss(notification_id: str, center: NotificationCenter = Depends(get_center)):
    if center.get(notification_id) is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    center.dismiss(notification_id)
    return {"dismissed": notification_id}
