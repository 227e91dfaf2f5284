from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.errors import AuthorizationError, NotFoundError, ValidationError
from app.models.document import Document, DocumentAccessLog
from app.models.notification import NotificationType
from app.models.person import User
from app.schemas.document import (
    AccessLogRead,
    DocumentCreate,
    DocumentHistory,
    DocumentRead,
    UploadURLRequest,
    UploadURLResponse,
)
from app.services.access import Identity, require_project_access
from app.services.activity import log_activity
from app.services.common import coerce_uuid
from app.services.dispatch import dispatcher
from app.services.document_chain import document_chains
from app.services.storage import storage

logger = logging.getLogger(__name__)

ACCESS_ACTIONS = {"view", "download"}
HISTORY_LOG_LIMIT = 100


def _chain_root(document: Document):
    return document.parent_document_id or document.id


class Documents:
    @staticmethod
    def upload(db: Session, identity: Identity, payload: DocumentCreate) -> Document:
        project, _ = require_project_access(db, identity, payload.project_id)
        document = document_chains.create_version(
            db,
            project.id,
            payload.name,
            payload.model_dump(
                include={"file_type", "file_size", "storage_key", "discipline"}
            ),
            identity.user_id,
            parent_document_id=payload.parent_document_id,
        )
        db.add(
            DocumentAccessLog(
                document_id=document.id, user_id=identity.user_id, action="upload"
            )
        )
        log_activity(
            db, identity, project.id, "uploaded", "document", document.id,
            {"name": document.name, "version": document.version},
        )

        uploader = db.get(User, identity.user_id)
        uploader_name = uploader.full_name if uploader else "A team member"
        recipients = dispatcher.project_member_ids(db, project.id) + [project.created_by]
        dispatcher.notify(
            db,
            recipients,
            NotificationType.document_uploaded,
            title="New document uploaded",
            message=f"{uploader_name} uploaded {document.name} (v{document.version})",
            link=f"/projects/{project.id}/documents",
            email_data={
                "project_name": project.name,
                "uploader_name": uploader_name,
                "document_name": document.name,
                "version": document.version,
            },
            exclude=identity.user_id,
        )
        logger.info(
            "Uploaded document %s v%d to project %s",
            document.id,
            document.version,
            project.id,
        )
        return document

    @staticmethod
    def get(db: Session, identity: Identity, document_id) -> Document:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise NotFoundError("Document not found")
        require_project_access(db, identity, document.project_id)
        return document

    @staticmethod
    def list(
        db: Session, identity: Identity, project_id, latest_only: bool = True
    ) -> list[DocumentRead]:
        project, _ = require_project_access(db, identity, project_id)
        if latest_only:
            rows = document_chains.list_latest(db, project.id)
        else:
            rows = db.scalars(
                select(Document)
                .where(Document.project_id == project.id)
                .order_by(Document.name, Document.version.desc())
            ).all()
        counts = document_chains.version_counts(db, list({_chain_root(d) for d in rows}))
        return [
            DocumentRead.model_validate(d).model_copy(
                update={"version_count": counts.get(_chain_root(d), 1)}
            )
            for d in rows
        ]

    @staticmethod
    def history(db: Session, identity: Identity, document_id) -> DocumentHistory:
        document = Documents.get(db, identity, document_id)
        versions = document_chains.list_history(db, document.id)
        log = db.scalars(
            select(DocumentAccessLog)
            .where(DocumentAccessLog.document_id.in_([v.id for v in versions]))
            .order_by(DocumentAccessLog.created_at.desc())
            .limit(HISTORY_LOG_LIMIT)
        ).all()
        return DocumentHistory(
            document=DocumentRead.model_validate(document).model_copy(
                update={"version_count": len(versions)}
            ),
            versions=[DocumentRead.model_validate(v) for v in versions],
            access_log=[AccessLogRead.model_validate(entry) for entry in log],
        )

    @staticmethod
    def log_access(
        db: Session, identity: Identity, document_id, action: str
    ) -> DocumentAccessLog:
        if action not in ACCESS_ACTIONS:
            raise ValidationError(f"Invalid action. Allowed: {sorted(ACCESS_ACTIONS)}")
        document = Documents.get(db, identity, document_id)
        entry = DocumentAccessLog(
            document_id=document.id, user_id=identity.user_id, action=action
        )
        db.add(entry)
        db.flush()
        return entry

    @staticmethod
    def delete(db: Session, identity: Identity, document_id) -> None:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise NotFoundError("Document not found")
        project, access = require_project_access(db, identity, document.project_id)
        if document.uploaded_by != identity.user_id and not access.company_admin:
            raise AuthorizationError(
                "Only the uploader or a company admin can delete this document"
            )
        log_activity(
            db, identity, project.id, "deleted", "document", document.id,
            {"name": document.name, "version": document.version},
        )
        document_chains.remove(db, document)

    @staticmethod
    def upload_url(
        db: Session, identity: Identity, payload: UploadURLRequest
    ) -> UploadURLResponse:
        project, _ = require_project_access(db, identity, payload.project_id)
        storage_key = storage.generate_storage_key(project.id, payload.file_name)
        upload_url = storage.generate_upload_url(storage_key, payload.mime_type)
        return UploadURLResponse(upload_url=upload_url, storage_key=storage_key)


documents = Documents()
