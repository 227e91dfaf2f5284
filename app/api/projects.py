from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_identity
from app.schemas.common import envelope
from app.schemas.project import ProjectCreate, ProjectRead, ProjectUpdate
from app.services.access import Identity
from app.services.projects import projects

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("")
def get_projects(
    project_id: str | None = Query(default=None, alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    if project_id:
        return envelope(projects.get(db, identity, project_id))
    rows = projects.list(db, identity)
    return envelope(rows, count=len(rows))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    project = projects.create(db, identity, payload)
    return envelope(ProjectRead.model_validate(project), message="Project created")


@router.put("")
def update_project(
    payload: ProjectUpdate,
    project_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    project = projects.update(db, identity, project_id, payload)
    return envelope(ProjectRead.model_validate(project), message="Project updated")


@router.delete("")
def delete_project(
    project_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    projects.delete(db, identity, project_id)
    return envelope(message="Project deleted")
