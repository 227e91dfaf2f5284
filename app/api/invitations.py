from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_identity
from app.schemas.common import envelope
from app.schemas.invitation import (
    ConsultantInvitationCreate,
    InvitationAccept,
    InvitationCreate,
    InvitationRead,
    InvitationSent,
)
from app.services.access import Identity
from app.services.invitations import invitations

router = APIRouter(prefix="/users", tags=["invitations"])


def _sent(invitation, link: str, existing_user: bool) -> InvitationSent:
    read = InvitationRead.model_validate(invitation)
    return InvitationSent(
        **read.model_dump(), invite_link=link, existing_user=existing_user
    )


@router.post("/invite", status_code=status.HTTP_201_CREATED)
def invite_user(
    payload: InvitationCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    invitation, link, existing = invitations.invite(db, identity, payload)
    return envelope(_sent(invitation, link, existing), message="Invitation sent")


@router.post("/invite-consultant", status_code=status.HTTP_201_CREATED)
def invite_consultant(
    payload: ConsultantInvitationCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    invitation, link, existing = invitations.invite_consultant(db, identity, payload)
    return envelope(
        _sent(invitation, link, existing), message="Consultant invitation sent"
    )


@router.get("/invitations")
def list_invitations(
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    rows = [
        InvitationRead.model_validate(i)
        for i in invitations.list(db, identity, status_filter)
    ]
    return envelope(rows, count=len(rows))


@router.post("/invitations/accept")
def accept_invitation(
    payload: InvitationAccept,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    invitation = invitations.accept(db, identity, payload.token)
    return envelope(InvitationRead.model_validate(invitation), message="Invitation accepted")


@router.delete("/invitations")
def revoke_invitation(
    invitation_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    invitation = invitations.revoke(db, identity, invitation_id)
    return envelope(InvitationRead.model_validate(invitation), message="Invitation revoked")
