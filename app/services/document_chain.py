"""Version chains for project documents.

A chain is every upload of the same logical file. Its root is the first
upload (``parent_document_id`` NULL); every later version points straight at
the root, so a chain is one root plus its direct children. Within a chain
exactly one row has ``is_latest`` set, and version numbers are unique.

New versions flip the old latest row and insert the new one in the same
transaction, after locking the root row. The partial unique index
``uq_documents_chain_latest`` backs this up if two writers race past the lock.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.errors import ConflictError, NotFoundError
from app.models.document import Document
from app.services.common import coerce_uuid

logger = logging.getLogger(__name__)


def _in_chain(root_id: uuid.UUID):
    return or_(Document.id == root_id, Document.parent_document_id == root_id)


def chain_key():
    return func.coalesce(Document.parent_document_id, Document.id)


class DocumentChains:
    @staticmethod
    def root_id(db: Session, document: Document) -> uuid.UUID:
        # Rows written elsewhere may link to an intermediate version; follow
        # the links up until the root.
        seen = {document.id}
        current = document
        while current.parent_document_id is not None:
            parent = db.get(Document, current.parent_document_id)
            if parent is None or parent.id in seen:
                break
            seen.add(parent.id)
            current = parent
        return current.id

    @staticmethod
    def create_version(
        db: Session,
        project_id,
        name: str,
        file_meta: dict,
        uploaded_by: uuid.UUID,
        parent_document_id=None,
    ) -> Document:
        project_id = coerce_uuid(project_id)
        document_id = uuid.uuid4()
        fields = dict(file_meta)
        fields.setdefault(
            "file_path",
            fields.get("storage_key") or f"/uploads/{project_id}/{document_id}_{name}",
        )

        if parent_document_id is None:
            document = Document(
                id=document_id,
                project_id=project_id,
                name=name,
                version=1,
                is_latest=True,
                parent_document_id=None,
                uploaded_by=uploaded_by,
                **fields,
            )
            db.add(document)
            DocumentChains._flush(db)
            logger.info("Created document chain %s (%s)", document.id, name)
            return document

        parent = db.get(Document, coerce_uuid(parent_document_id))
        if not parent or parent.project_id != project_id:
            raise NotFoundError("Parent document not found")

        root_id = DocumentChains.root_id(db, parent)
        db.execute(select(Document.id).where(Document.id == root_id).with_for_update())

        next_version = (
            db.scalar(select(func.max(Document.version)).where(_in_chain(root_id)))
            or 0
        ) + 1
        db.execute(
            update(Document)
            .where(_in_chain(root_id), Document.is_latest.is_(True))
            .values(is_latest=False)
            .execution_options(synchronize_session="fetch")
        )
        document = Document(
            id=document_id,
            project_id=project_id,
            name=name,
            version=next_version,
            is_latest=True,
            parent_document_id=root_id,
            uploaded_by=uploaded_by,
            **fields,
        )
        db.add(document)
        DocumentChains._flush(db)
        logger.info(
            "Created version %d (%s) of document chain %s",
            next_version,
            document.id,
            root_id,
        )
        return document

    @staticmethod
    def list_latest(db: Session, project_id) -> list[Document]:
        stmt = (
            select(Document)
            .where(
                Document.project_id == coerce_uuid(project_id),
                Document.is_latest.is_(True),
            )
            .order_by(Document.created_at.desc())
        )
        return list(db.scalars(stmt).all())

    @staticmethod
    def list_history(db: Session, document_id) -> list[Document]:
        document = db.get(Document, coerce_uuid(document_id))
        if not document:
            raise NotFoundError("Document not found")
        root_id = DocumentChains.root_id(db, document)
        stmt = (
            select(Document)
            .where(_in_chain(root_id))
            .order_by(Document.version.desc())
        )
        return list(db.scalars(stmt).all())

    @staticmethod
    def version_counts(db: Session, root_ids: list[uuid.UUID]) -> dict[uuid.UUID, int]:
        if not root_ids:
            return {}
        key = chain_key()
        rows = db.execute(
            select(key, func.count(Document.id))
            .where(key.in_(root_ids))
            .group_by(key)
        ).all()
        return {coerce_uuid(k): count for k, count in rows}

    @staticmethod
    def remove(db: Session, document: Document) -> None:
        """Delete one version and keep the rest of its chain consistent."""
        root_id = DocumentChains.root_id(db, document)
        remaining = [
            row
            for row in db.scalars(
                select(Document)
                .where(_in_chain(root_id))
                .order_by(Document.version.asc())
            ).all()
            if row.id != document.id
        ]

        if document.id == root_id and remaining:
            new_root = remaining[0]
            new_root.parent_document_id = None
            for row in remaining[1:]:
                row.parent_document_id = new_root.id
            db.flush()
            db.expire(document, ["later_versions"])

        was_latest = document.is_latest
        db.delete(document)
        db.flush()

        if was_latest and remaining:
            promoted = remaining[-1]
            promoted.is_latest = True
            db.flush()
            logger.info(
                "Promoted document %s (v%d) to latest", promoted.id, promoted.version
            )
        logger.info("Deleted document %s", document.id)

    @staticmethod
    def _flush(db: Session) -> None:
        try:
            db.flush()
        except IntegrityError as e:
            logger.warning("Document version write conflicted: %s", e.orig)
            raise ConflictError(
                "Another version of this document was saved at the same time"
            )


document_chains = DocumentChains()
