from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_identity
from app.errors import ValidationError
from app.schemas.common import envelope
from app.schemas.document import (
    AccessLogCreate,
    AccessLogRead,
    DocumentCreate,
    DocumentRead,
    UploadURLRequest,
)
from app.services.access import Identity
from app.services.documents import documents

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("")
def get_documents(
    document_id: str | None = Query(default=None, alias="id"),
    project_id: str | None = None,
    latest_only: bool = True,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    if document_id:
        document = documents.get(db, identity, document_id)
        return envelope(DocumentRead.model_validate(document))
    if not project_id:
        raise ValidationError("project_id is required")
    rows = documents.list(db, identity, project_id, latest_only)
    return envelope(rows, count=len(rows))


@router.post("", status_code=status.HTTP_201_CREATED)
def upload_document(
    payload: DocumentCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    document = documents.upload(db, identity, payload)
    return envelope(DocumentRead.model_validate(document), message="Document uploaded")


@router.delete("")
def delete_document(
    document_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    documents.delete(db, identity, document_id)
    return envelope(message="Document deleted")


@router.get("/history")
def document_history(
    document_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    history = documents.history(db, identity, document_id)
    return envelope(history, count=len(history.versions))


@router.post("/access", status_code=status.HTTP_201_CREATED)
def log_document_access(
    payload: AccessLogCreate | None = None,
    document_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    action = payload.action if payload else "view"
    entry = documents.log_access(db, identity, document_id, action)
    return envelope(AccessLogRead.model_validate(entry))


@router.post("/upload-url")
def create_upload_url(
    payload: UploadURLRequest,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    return envelope(documents.upload_url(db, identity, payload))
