from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db, require_identity
from app.schemas.city_approval import (
    ApprovalStatusUpdate,
    CityApprovalCreate,
    CityApprovalRead,
    CityApprovalUpdate,
    CorrectionCreate,
    CorrectionRead,
    CorrectionUpdate,
)
from app.schemas.common import envelope
from app.services.access import Identity
from app.services.city_approvals import city_approvals, corrections

router = APIRouter(prefix="/city-approvals", tags=["city-approvals"])


@router.get("")
def get_city_approvals(
    approval_id: str | None = Query(default=None, alias="id"),
    project_id: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    if approval_id:
        return envelope(city_approvals.get(db, identity, approval_id))
    rows = city_approvals.list(db, identity, project_id, status_filter)
    return envelope(rows, count=len(rows))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_city_approval(
    payload: CityApprovalCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    approval = city_approvals.create(db, identity, payload)
    return envelope(
        CityApprovalRead.model_validate(approval), message="City approval created"
    )


@router.put("")
def update_city_approval(
    payload: CityApprovalUpdate,
    approval_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    approval = city_approvals.update(db, identity, approval_id, payload)
    return envelope(
        CityApprovalRead.model_validate(approval), message="City approval updated"
    )


@router.delete("")
def delete_city_approval(
    approval_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    city_approvals.delete(db, identity, approval_id)
    return envelope(message="City approval deleted")


@router.put("/status")
def update_city_approval_status(
    payload: ApprovalStatusUpdate,
    approval_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    approval = city_approvals.update_status(db, identity, approval_id, payload)
    return envelope(
        CityApprovalRead.model_validate(approval), message="Status updated"
    )


# ------------------------------------------------------------------
# Corrections
# ------------------------------------------------------------------


@router.post("/corrections", status_code=status.HTTP_201_CREATED)
def create_correction(
    payload: CorrectionCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    correction = corrections.create(db, identity, payload)
    return envelope(CorrectionRead.model_validate(correction), message="Correction added")


@router.put("/corrections")
def update_correction(
    payload: CorrectionUpdate,
    correction_id: str = Query(alias="id"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(require_identity),
):
    correction = corrections.update(db, identity, correction_id, payload)
    return envelope(CorrectionRead.model_validate(correction))
