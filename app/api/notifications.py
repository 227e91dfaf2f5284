from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_identity
from app.schemas.common import envelope
from app.schemas.notification import (
    MarkedResponse,
    NotificationRead,
    UnreadCountResponse,
)
from app.services.access import Identity
from app.services.notification import notifications

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/unread-count")
def unread_count(
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    count = notifications.unread_count(db, identity)
    return envelope(UnreadCountResponse(count=count))


@router.get("")
def list_notifications(
    unread: bool | None = None,
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    rows = [
        NotificationRead.model_validate(n)
        for n in notifications.list(db, identity, unread, limit, offset)
    ]
    return envelope(rows, count=len(rows))


@router.put("/mark-all-read")
def mark_all_read(
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    count = notifications.mark_all_read(db, identity)
    return envelope(MarkedResponse(marked=count))


@router.put("")
def mark_read(
    notification_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    notification = notifications.mark_read(db, identity, notification_id)
    return envelope(NotificationRead.model_validate(notification))


@router.delete("")
def delete_notification(
    notification_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    notifications.delete(db, identity, notification_id)
    return envelope(message="Notification deleted")
