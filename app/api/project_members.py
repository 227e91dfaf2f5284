from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_identity
from app.schemas.common import envelope
from app.schemas.project import (
    ProjectMemberCreate,
    ProjectMemberRead,
    ProjectMemberUpdate,
)
from app.services.access import Identity
from app.services.projects import project_members

router = APIRouter(prefix="/project-members", tags=["project-members"])


@router.get("")
def list_members(
    project_id: str = Query(),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    rows = [
        ProjectMemberRead.model_validate(m)
        for m in project_members.list(db, identity, project_id)
    ]
    return envelope(rows, count=len(rows))


@router.post("", status_code=status.HTTP_201_CREATED)
def add_member(
    payload: ProjectMemberCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    member = project_members.create(db, identity, payload)
    return envelope(ProjectMemberRead.model_validate(member), message="Member added")


@router.put("")
def update_member(
    payload: ProjectMemberUpdate,
    member_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    member = project_members.update(db, identity, member_id, payload)
    return envelope(ProjectMemberRead.model_validate(member), message="Member updated")


@router.delete("")
def remove_member(
    member_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    project_members.delete(db, identity, member_id)
    return envelope(message="Member removed")
