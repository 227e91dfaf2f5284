import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.models.document import Document
from app.models.person import User
from app.models.project import Project, Task
from app.schemas.search import DocumentHit, ProjectHit, SearchResults, TaskHit, UserHit
from app.services.access import Identity, is_company_admin, visible_project_ids

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2


def _pattern(q: str) -> str:
    # Escape LIKE wildcards so user input matches literally
    escaped = q.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _like(column, pattern: str):
    return column.ilike(pattern, escape="\\")


class Search:
    @staticmethod
    def run(db: Session, identity: Identity, q: str, limit: int = 10) -> SearchResults:
        """Match ``q`` against projects, tasks, documents and (admins) users.

        Results are limited to projects the caller can open; user hits are
        limited to the caller's company and only returned to company admins.
        Queries shorter than two characters return nothing.
        """
        q = (q or "").strip()
        if len(q) < MIN_QUERY_LENGTH:
            return SearchResults()
        pattern = _pattern(q)
        visible = visible_project_ids(identity)

        projects = db.scalars(
            select(Project)
            .where(
                Project.id.in_(visible),
                or_(
                    _like(Project.name, pattern),
                    _like(Project.description, pattern),
                    _like(Project.address, pattern),
                ),
            )
            .order_by(Project.name)
            .limit(limit)
        ).all()

        tasks = db.execute(
            select(Task, Project.name)
            .join(Project, Task.project_id == Project.id)
            .where(
                Task.project_id.in_(visible),
                or_(_like(Task.name, pattern), _like(Task.description, pattern)),
            )
            .order_by(Task.created_at.desc())
            .limit(limit)
        ).all()

        documents = db.execute(
            select(Document, Project.name)
            .join(Project, Document.project_id == Project.id)
            .where(
                Document.project_id.in_(visible),
                Document.is_latest.is_(True),
                _like(Document.name, pattern),
            )
            .order_by(Document.created_at.desc())
            .limit(limit)
        ).all()

        users: list[User] = []
        if is_company_admin(identity, identity.company_id):
            users = list(
                db.scalars(
                    select(User)
                    .where(
                        User.company_id == identity.company_id,
                        User.is_active.is_(True),
                        or_(
                            _like(User.full_name, pattern),
                            _like(User.email, pattern),
                            _like(User.job_title, pattern),
                        ),
                    )
                    .order_by(User.full_name)
                    .limit(limit)
                ).all()
            )

        results = SearchResults(
            projects=[ProjectHit.model_validate(p) for p in projects],
            tasks=[
                TaskHit(
                    id=t.id,
                    name=t.name,
                    status=t.status,
                    project_id=t.project_id,
                    project_name=name,
                )
                for t, name in tasks
            ],
            documents=[
                DocumentHit(
                    id=d.id,
                    name=d.name,
                    version=d.version,
                    project_id=d.project_id,
                    project_name=name,
                )
                for d, name in documents
            ],
            users=[UserHit.model_validate(u) for u in users],
        )
        logger.debug("Search %r returned %d hits", q, results.total)
        return results


search = Search()
