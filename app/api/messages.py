from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_identity
from app.schemas.common import envelope
from app.schemas.message import (
    ActivityRead,
    MessageCreate,
    MessageRead,
    MessageThread,
    MessageUpdate,
)
from app.services.access import Identity
from app.services.activity import activities
from app.services.messages import messages

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("")
def list_messages(
    project_id: str = Query(),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    rows = [
        MessageThread.model_validate(m)
        for m in messages.list(db, identity, project_id)
    ]
    return envelope(rows, count=len(rows))


@router.post("", status_code=status.HTTP_201_CREATED)
def post_message(
    payload: MessageCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    message = messages.create(db, identity, payload)
    return envelope(MessageRead.model_validate(message), message="Message posted")


@router.put("")
def edit_message(
    payload: MessageUpdate,
    message_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    message = messages.update(db, identity, message_id, payload)
    return envelope(MessageRead.model_validate(message), message="Message updated")


@router.delete("")
def delete_message(
    message_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    messages.delete(db, identity, message_id)
    return envelope(message="Message deleted")


@router.get("/activity")
def project_activity(
    project_id: str = Query(),
    limit: int = Query(default=50, ge=1, le=200),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    rows = [
        ActivityRead.model_validate(a)
        for a in activities.list_for_project(db, identity, project_id, limit)
    ]
    return envelope(rows, count=len(rows))
