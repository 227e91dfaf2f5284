from __future__ import annotations

import logging
from datetime import date, datetime, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from app.errors import AuthorizationError, NotFoundError, ValidationError
from app.models.notification import NotificationType
from app.models.person import UserRole
from app.models.project import (
    ApprovalStatus,
    CityApproval,
    Correction,
    CorrectionStatus,
    Project,
)
from app.schemas.city_approval import (
    ApprovalStatusUpdate,
    CityApprovalCreate,
    CityApprovalDetail,
    CityApprovalRead,
    CityApprovalUpdate,
    CorrectionCreate,
    CorrectionRead,
    CorrectionUpdate,
)
from app.services.access import (
    Identity,
    require_project_access,
    require_project_assignee,
    visible_project_ids,
)
from app.services.activity import log_activity
from app.services.common import coerce_enum, coerce_uuid, partial_update
from app.services.dispatch import dispatcher

logger = logging.getLogger(__name__)

STATUS_MESSAGES = {
    ApprovalStatus.submitted: "has been submitted to the city",
    ApprovalStatus.under_review: "is now under review",
    ApprovalStatus.corrections_required: "requires corrections",
    ApprovalStatus.approved: "has been approved",
    ApprovalStatus.rejected: "has been rejected",
}

_OPEN_CORRECTIONS = (CorrectionStatus.pending, CorrectionStatus.in_progress)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _document_ids(values) -> list[str] | None:
    if values is None:
        return None
    return [str(v) for v in values]


def _pending_counts(db: Session, approval_ids) -> dict:
    if not approval_ids:
        return {}
    return dict(
        db.execute(
            select(Correction.approval_id, func.count(Correction.id))
            .where(
                Correction.approval_id.in_(approval_ids),
                Correction.status.in_(_OPEN_CORRECTIONS),
            )
            .group_by(Correction.approval_id)
        ).all()
    )


def _project_recipients(db: Session, project: Project) -> list:
    return dispatcher.project_member_ids(db, project.id) + [project.created_by]


class CityApprovals:
    @staticmethod
    def _get(db: Session, identity: Identity, approval_id):
        approval = db.get(CityApproval, coerce_uuid(approval_id))
        if not approval:
            raise NotFoundError("City approval not found")
        project, access = require_project_access(db, identity, approval.project_id)
        return approval, project, access

    @staticmethod
    def create(
        db: Session, identity: Identity, payload: CityApprovalCreate
    ) -> CityApproval:
        project, _ = require_project_access(db, identity, payload.project_id)
        data = payload.model_dump()
        data["document_ids"] = _document_ids(data["document_ids"])
        data["submission_date"] = data["submission_date"] or date.today()
        approval = CityApproval(
            **data, status=ApprovalStatus.submitted, created_by=identity.user_id
        )
        db.add(approval)
        db.flush()
        log_activity(
            db, identity, project.id, "created", "city_approval", approval.id,
            {"submittal_name": approval.submittal_name},
        )
        dispatcher.notify(
            db,
            _project_recipients(db, project),
            NotificationType.approval_status,
            title="New city submittal",
            message=f"{approval.submittal_name} was submitted for {project.name}",
            link=f"/projects/{project.id}/approvals",
            exclude=identity.user_id,
        )
        logger.info("Created city approval %s in project %s", approval.id, project.id)
        return approval

    @staticmethod
    def get(db: Session, identity: Identity, approval_id) -> CityApprovalDetail:
        approval, _, _ = CityApprovals._get(db, identity, approval_id)
        corrections = [CorrectionRead.model_validate(c) for c in approval.corrections]
        pending = sum(1 for c in approval.corrections if c.status in _OPEN_CORRECTIONS)
        return CityApprovalDetail(
            **CityApprovalRead.model_validate(approval).model_dump(
                exclude={"pending_corrections"}
            ),
            pending_corrections=pending,
            corrections=corrections,
        )

    @staticmethod
    def list(
        db: Session,
        identity: Identity,
        project_id=None,
        status: str | None = None,
    ) -> list[CityApprovalRead]:
        stmt = select(CityApproval)
        if project_id is not None:
            project, _ = require_project_access(db, identity, project_id)
            stmt = stmt.where(CityApproval.project_id == project.id)
        else:
            scope = [CityApproval.project_id.in_(visible_project_ids(identity))]
            if (
                identity.role in (UserRole.admin, UserRole.member)
                and identity.company_id is not None
            ):
                scope.append(
                    CityApproval.project_id.in_(
                        select(Project.id).where(
                            Project.company_id == identity.company_id
                        )
                    )
                )
            stmt = stmt.where(or_(*scope))
        if status is not None:
            stmt = stmt.where(
                CityApproval.status == coerce_enum(ApprovalStatus, status, "status")
            )
        rows = db.scalars(stmt.order_by(CityApproval.created_at.desc())).all()
        pending = _pending_counts(db, [a.id for a in rows])
        return [
            CityApprovalRead.model_validate(a).model_copy(
                update={"pending_corrections": pending.get(a.id, 0)}
            )
            for a in rows
        ]

    @staticmethod
    def update(
        db: Session, identity: Identity, approval_id, payload: CityApprovalUpdate
    ) -> CityApproval:
        approval, project, _ = CityApprovals._get(db, identity, approval_id)
        data = partial_update(payload)
        if "submittal_name" in data and not data["submittal_name"]:
            raise ValidationError("submittal_name cannot be empty")
        if "document_ids" in data:
            data["document_ids"] = _document_ids(data["document_ids"])
        for key, value in data.items():
            setattr(approval, key, value)
        log_activity(
            db, identity, project.id, "updated", "city_approval", approval.id,
            {"fields": sorted(data)},
        )
        db.flush()
        logger.info("Updated city approval %s", approval.id)
        return approval

    @staticmethod
    def update_status(
        db: Session, identity: Identity, approval_id, payload: ApprovalStatusUpdate
    ) -> CityApproval:
        approval, project, _ = CityApprovals._get(db, identity, approval_id)
        new_status = coerce_enum(ApprovalStatus, payload.status, "status")
        previous = approval.status

        now = _now()
        approval.status = new_status
        if new_status != ApprovalStatus.submitted:
            approval.review_date = now
        if new_status == ApprovalStatus.approved:
            approval.approval_date = now
        if payload.city_official is not None:
            approval.city_official = payload.city_official
        if payload.notes is not None:
            approval.notes = payload.notes
        log_activity(
            db, identity, project.id, "status_changed", "city_approval", approval.id,
            {"from": previous.value if previous else None, "to": new_status.value},
        )
        db.flush()

        status_message = STATUS_MESSAGES[new_status]
        dispatcher.notify(
            db,
            _project_recipients(db, project),
            NotificationType.approval_status,
            title="City approval update",
            message=f"{approval.submittal_name} {status_message}",
            link=f"/projects/{project.id}/approvals",
            email_data={
                "submittal_name": approval.submittal_name,
                "project_name": project.name,
                "status_message": status_message,
            },
        )
        logger.info(
            "City approval %s moved to %s", approval.id, new_status.value
        )
        return approval

    @staticmethod
    def delete(db: Session, identity: Identity, approval_id) -> None:
        approval, project, access = CityApprovals._get(db, identity, approval_id)
        if approval.created_by != identity.user_id and not access.can_manage:
            raise AuthorizationError(
                "Only the submitter or a project manager can delete this approval"
            )
        log_activity(
            db, identity, project.id, "deleted", "city_approval", approval.id,
            {"submittal_name": approval.submittal_name},
        )
        db.delete(approval)
        db.flush()
        logger.info("Deleted city approval %s", approval.id)


class Corrections:
    @staticmethod
    def create(db: Session, identity: Identity, payload: CorrectionCreate) -> Correction:
        approval, project, _ = CityApprovals._get(db, identity, payload.approval_id)
        if payload.assigned_to:
            require_project_assignee(db, project, payload.assigned_to)

        correction = Correction(
            approval_id=approval.id,
            description=payload.description,
            assigned_to=payload.assigned_to,
            due_date=payload.due_date,
        )
        db.add(correction)
        db.flush()
        log_activity(
            db, identity, project.id, "correction_added", "correction", correction.id,
            {"approval_id": str(approval.id)},
        )
        if correction.assigned_to:
            dispatcher.notify(
                db,
                [correction.assigned_to],
                NotificationType.approval_status,
                title="Correction assigned",
                message=f"You were assigned a correction on {approval.submittal_name}",
                link=f"/projects/{project.id}/approvals",
                exclude=identity.user_id,
            )
        logger.info("Created correction %s on approval %s", correction.id, approval.id)
        return correction

    @staticmethod
    def update(
        db: Session, identity: Identity, correction_id, payload: CorrectionUpdate
    ) -> Correction:
        correction = db.get(Correction, coerce_uuid(correction_id))
        if not correction:
            raise NotFoundError("Correction not found")
        approval, project, _ = CityApprovals._get(db, identity, correction.approval_id)
        correction.status = coerce_enum(CorrectionStatus, payload.status, "status")
        db.flush()

        if correction.status == CorrectionStatus.resolved:
            still_open = _pending_counts(db, [approval.id]).get(approval.id, 0)
            if not still_open and approval.status == ApprovalStatus.corrections_required:
                approval.status = ApprovalStatus.under_review
                approval.review_date = _now()
                db.flush()
                logger.info(
                    "All corrections resolved; approval %s back under review",
                    approval.id,
                )
        log_activity(
            db, identity, project.id, "correction_updated", "correction", correction.id,
            {"status": correction.status.value},
        )
        logger.info("Updated correction %s", correction.id)
        return correction


city_approvals = CityApprovals()
corrections = Corrections()
