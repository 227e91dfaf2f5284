import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.project import ActivityLog
from app.services.access import Identity, require_project_access

logger = logging.getLogger(__name__)


def log_activity(
    db: Session,
    identity: Identity,
    project_id,
    action: str,
    entity_type: str,
    entity_id,
    details: dict | None = None,
) -> ActivityLog:
    entry = ActivityLog(
        project_id=project_id,
        user_id=identity.user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        details=details,
    )
    db.add(entry)
    return entry


class Activities:
    @staticmethod
    def list_for_project(
        db: Session, identity: Identity, project_id, limit: int = 50
    ) -> list[ActivityLog]:
        project, _ = require_project_access(db, identity, project_id)
        stmt = (
            select(ActivityLog)
            .where(ActivityLog.project_id == project.id)
            .order_by(ActivityLog.created_at.desc())
            .limit(limit)
        )
        return list(db.scalars(stmt).all())


activities = Activities()
