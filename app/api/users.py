from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_identity
from app.schemas.common import envelope
from app.schemas.notification import (
    NotificationPreferenceRead,
    NotificationPreferenceUpdate,
)
from app.schemas.user import UserProfileUpdate, UserRead
from app.services.access import Identity
from app.services.notification import notification_preferences
from app.services.users import users

router = APIRouter(prefix="/users", tags=["users"])


@router.get("")
def get_users(
    user_id: str | None = Query(default=None, alias="id"),
    include_inactive: bool = False,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    if user_id:
        return envelope(UserRead.model_validate(users.get(db, identity, user_id)))
    rows = [
        UserRead.model_validate(u) for u in users.list(db, identity, include_inactive)
    ]
    return envelope(rows, count=len(rows))


@router.put("")
def update_profile(
    payload: UserProfileUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    user = users.update_profile(db, identity, payload)
    return envelope(UserRead.model_validate(user), message="Profile updated")


@router.delete("")
def deactivate_user(
    user_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    user = users.deactivate(db, identity, user_id)
    return envelope(UserRead.model_validate(user), message="User deactivated")


@router.get("/preferences")
def get_preferences(
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    pref = notification_preferences.get(db, identity)
    if pref is None:
        # No row yet: every channel is on
        return envelope(NotificationPreferenceRead(user_id=identity.user_id))
    return envelope(NotificationPreferenceRead.model_validate(pref))


@router.put("/preferences")
def update_preferences(
    payload: NotificationPreferenceUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    pref = notification_preferences.upsert(db, identity, payload)
    return envelope(
        NotificationPreferenceRead.model_validate(pref), message="Preferences saved"
    )
