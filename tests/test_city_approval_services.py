from unittest.mock import patch

import pytest
from sqlalchemy import select

from app.errors import AuthorizationError, ValidationError
from app.models.notification import Notification, NotificationType
from app.models.project import ApprovalStatus, ProjectMember, ProjectRole
from app.schemas.city_approval import (
    ApprovalStatusUpdate,
    CityApprovalCreate,
    CityApprovalUpdate,
    CorrectionCreate,
    CorrectionUpdate,
)
from app.services.city_approvals import city_approvals, corrections
from app.tasks.email import send_email


@pytest.fixture()
def team_project(db_session, project, teammate):
    db_session.add(
        ProjectMember(project_id=project.id, user_id=teammate.id, role=ProjectRole.member)
    )
    db_session.commit()
    return project


@pytest.fixture()
def approval(db_session, team_project, identity):
    a = city_approvals.create(
        db_session,
        identity,
        CityApprovalCreate(
            project_id=team_project.id,
            submittal_name="Building permit",
            city_jurisdiction="Portland",
        ),
    )
    db_session.commit()
    return a


class TestCityApprovalsService:
    def test_create_notifies_members_except_creator(
        self, db_session, approval, user, teammate
    ):
        assert approval.status == ApprovalStatus.submitted
        assert approval.submission_date is not None
        notes = db_session.scalars(select(Notification)).all()
        assert [n.user_id for n in notes] == [teammate.id]

    def test_status_change_stamps_dates_and_notifies_everyone(
        self, db_session, approval, identity, user, teammate
    ):
        with patch.object(send_email, "delay") as delay:
            updated = city_approvals.update_status(
                db_session,
                identity,
                approval.id,
                ApprovalStatusUpdate(status="approved", city_official="J. Ortiz"),
            )
            db_session.commit()

        assert updated.status == ApprovalStatus.approved
        assert updated.review_date is not None
        assert updated.approval_date is not None
        assert updated.city_official == "J. Ortiz"
        notes = db_session.scalars(
            select(Notification).where(Notification.title == "City approval update")
        ).all()
        assert sorted(str(n.user_id) for n in notes) == sorted(
            [str(user.id), str(teammate.id)]
        )
        assert all(n.type == NotificationType.approval_status for n in notes)
        assert delay.call_count == 2
        assert {c.kwargs["template"] for c in delay.call_args_list} == {
            "approval_status"
        }

    def test_invalid_status(self, db_session, approval, identity):
        with pytest.raises(ValidationError):
            city_approvals.update_status(
                db_session, identity, approval.id, ApprovalStatusUpdate(status="lost")
            )

    def test_update_fields(self, db_session, approval, identity):
        updated = city_approvals.update(
            db_session,
            identity,
            approval.id,
            CityApprovalUpdate(plan_check_number="PC-2291"),
        )
        assert updated.plan_check_number == "PC-2291"

    def test_list_with_pending_corrections(
        self, db_session, approval, identity, team_project
    ):
        corrections.create(
            db_session,
            identity,
            CorrectionCreate(approval_id=approval.id, description="Add fire notes"),
        )
        db_session.commit()
        rows = city_approvals.list(db_session, identity, project_id=team_project.id)
        assert [(r.id, r.pending_corrections) for r in rows] == [(approval.id, 1)]

        detail = city_approvals.get(db_session, identity, approval.id)
        assert detail.pending_corrections == 1
        assert [c.description for c in detail.corrections] == ["Add fire notes"]

    def test_company_member_lists_company_approvals(
        self, db_session, approval, company_admin, outsider, identity_for
    ):
        assert len(city_approvals.list(db_session, identity_for(company_admin))) == 1
        assert city_approvals.list(db_session, identity_for(outsider)) == []

    def test_member_cannot_delete_others_submittal(
        self, db_session, approval, teammate, identity_for, identity
    ):
        with pytest.raises(AuthorizationError):
            city_approvals.delete(db_session, identity_for(teammate), approval.id)
        city_approvals.delete(db_session, identity, approval.id)


class TestCorrectionsService:
    def test_assignee_notified(
        self, db_session, approval, identity, teammate
    ):
        corrections.create(
            db_session,
            identity,
            CorrectionCreate(
                approval_id=approval.id,
                description="Revise stair width",
                assigned_to=teammate.id,
            ),
        )
        db_session.commit()
        titles = db_session.scalars(
            select(Notification.title).where(Notification.user_id == teammate.id)
        ).all()
        assert "Correction assigned" in titles

    def test_assignee_must_see_project(
        self, db_session, approval, identity, outsider
    ):
        with pytest.raises(ValidationError):
            corrections.create(
                db_session,
                identity,
                CorrectionCreate(
                    approval_id=approval.id,
                    description="Revise stair width",
                    assigned_to=outsider.id,
                ),
            )
        db_session.rollback()
        notes = db_session.scalars(
            select(Notification).where(Notification.user_id == outsider.id)
        ).all()
        assert notes == []

    def test_resolving_last_correction_returns_to_review(
        self, db_session, approval, identity
    ):
        city_approvals.update_status(
            db_session,
            identity,
            approval.id,
            ApprovalStatusUpdate(status="corrections_required"),
        )
        first = corrections.create(
            db_session,
            identity,
            CorrectionCreate(approval_id=approval.id, description="A"),
        )
        second = corrections.create(
            db_session,
            identity,
            CorrectionCreate(approval_id=approval.id, description="B"),
        )
        db_session.commit()

        corrections.update(
            db_session, identity, first.id, CorrectionUpdate(status="resolved")
        )
        db_session.commit()
        db_session.refresh(approval)
        assert approval.status == ApprovalStatus.corrections_required

        corrections.update(
            db_session, identity, second.id, CorrectionUpdate(status="resolved")
        )
        db_session.commit()
        db_session.refresh(approval)
        assert approval.status == ApprovalStatus.under_review
