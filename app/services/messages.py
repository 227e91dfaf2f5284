from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.errors import AuthorizationError, NotFoundError
from app.models.notification import NotificationType
from app.models.person import User
from app.models.project import Message
from app.schemas.message import MessageCreate, MessageUpdate
from app.services.access import Identity, require_project_access
from app.services.activity import log_activity
from app.services.common import coerce_uuid
from app.services.dispatch import dispatcher

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 200


def _preview(content: str) -> str:
    if len(content) <= PREVIEW_LENGTH:
        return content
    return content[: PREVIEW_LENGTH - 3] + "..."


class Messages:
    @staticmethod
    def _get(db: Session, identity: Identity, message_id):
        message = db.get(Message, coerce_uuid(message_id))
        if not message:
            raise NotFoundError("Message not found")
        _, access = require_project_access(db, identity, message.project_id)
        return message, access

    @staticmethod
    def list(db: Session, identity: Identity, project_id) -> list[Message]:
        """Top-level messages, newest first, each with its replies loaded."""
        project, _ = require_project_access(db, identity, project_id)
        stmt = (
            select(Message)
            .options(selectinload(Message.replies))
            .where(Message.project_id == project.id, Message.parent_id.is_(None))
            .order_by(Message.created_at.desc())
        )
        return list(db.scalars(stmt).all())

    @staticmethod
    def create(db: Session, identity: Identity, payload: MessageCreate) -> Message:
        project, _ = require_project_access(db, identity, payload.project_id)
        parent_id = None
        if payload.parent_id:
            parent = db.get(Message, payload.parent_id)
            if not parent or parent.project_id != project.id:
                raise NotFoundError("Parent message not found")
            # Threads are one level deep
            parent_id = parent.parent_id or parent.id

        # Only people who can see the project are notified
        audience = set(dispatcher.project_member_ids(db, project.id))
        audience.add(project.created_by)
        mentions = []
        for user_id in payload.mentions:
            if user_id in audience and user_id not in mentions:
                mentions.append(user_id)

        message = Message(
            project_id=project.id,
            parent_id=parent_id,
            sender_id=identity.user_id,
            content=payload.content,
            mentions=[str(u) for u in mentions],
        )
        db.add(message)
        db.flush()
        log_activity(
            db, identity, project.id, "posted", "message", message.id,
            {"reply": parent_id is not None},
        )

        if mentions:
            sender = db.get(User, identity.user_id)
            sender_name = sender.full_name if sender else "Someone"
            dispatcher.notify(
                db,
                mentions,
                NotificationType.comment_mention,
                title=f"{sender_name} mentioned you",
                message=_preview(message.content),
                link=f"/projects/{project.id}/messages",
                email_data={
                    "sender_name": sender_name,
                    "project_name": project.name,
                    "message_content": _preview(message.content),
                },
                exclude=identity.user_id,
            )
        logger.info("Created message %s in project %s", message.id, project.id)
        return message

    @staticmethod
    def update(
        db: Session, identity: Identity, message_id, payload: MessageUpdate
    ) -> Message:
        message, _ = Messages._get(db, identity, message_id)
        if message.sender_id != identity.user_id:
            raise AuthorizationError("You can only edit your own messages")
        message.content = payload.content
        db.flush()
        logger.info("Updated message %s", message.id)
        return message

    @staticmethod
    def delete(db: Session, identity: Identity, message_id) -> None:
        message, access = Messages._get(db, identity, message_id)
        if message.sender_id != identity.user_id and not access.company_admin:
            raise AuthorizationError("You can only delete your own messages")
        log_activity(
            db, identity, message.project_id, "deleted", "message", message.id
        )
        db.delete(message)
        db.flush()
        logger.info("Deleted message %s", message.id)


messages = Messages()
