import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from welfare.db.base import get_db
from welfare.core.audit import write_audit_log
from welfare.core.dependencies import require_staff, require_treasurer
from welfare.models.case import Case
from welfare.models.user import User
from welfare.schemas.case import CaseCreate, CaseDetailResponse, CaseResponse, ContributionCreate
from welfare.schemas.transaction import TransactionResponse
from welfare.services.cases import (
    CaseError, CaseProgress, case_contributions, create_case, delete_case, get_case_progress,
    get_contribution_transactions, list_cases_with_progress, record_contribution,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cases", tags=["cases"])

CASE_FILTERS = ("all", "open", "closed", "draft")


def case_response(case: Case, progress: CaseProgress) -> dict:
    return {
        "id": case.id,
        "case_number": case.case_number,
        "affected_member_id": case.affected_member_id,
        "affected_member_name": case.affected_member.name if case.affected_member else None,
        "dependant_id": case.dependant_id,
        "case_type": case.case_type,
        "contribution_per_member": case.contribution_per_member,
        "start_date": case.start_date,
        "end_date": case.end_date,
        "status": case.status,
        "is_active": case.is_active,
        "is_finalized": case.is_finalized,
        "created_at": case.created_at,
        "expected_amount": progress.expected_amount,
        "expected_amount_at_creation": case.expected_amount,
        "actual_amount": progress.actual_amount,
        "progress_percent": progress.progress_percent,
    }


def _get_case_or_404(db: Session, case_id: UUID) -> Case:
    case = db.get(Case, case_id)
    if not case:
        raise HTTPException(status_code=404, detail="Case not found")
    return case


@router.get("", response_model=List[CaseResponse])
def get_cases(
    status_filter: str = Query("all", alias="status", description="all, open, closed or draft"),
    search: Optional[str] = None,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    """Cases, newest first, with collection progress."""
    if status_filter not in CASE_FILTERS:
        raise HTTPException(status_code=400, detail=f"Invalid status filter. Use one of: {', '.join(CASE_FILTERS)}")
    return [case_response(row["case"], row["progress"]) for row in list_cases_with_progress(db, status_filter, search)]


@router.post("", response_model=CaseResponse, status_code=status.HTTP_201_CREATED)
def add_case(
    case_data: CaseCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    try:
        case = create_case(
            db,
            affected_member_id=case_data.affected_member_id,
            case_type=case_data.case_type,
            contribution_per_member=case_data.contribution_per_member,
            start_date=case_data.start_date,
            end_date=case_data.end_date,
            dependant_id=case_data.dependant_id,
            is_active=case_data.is_active,
        )
    except CaseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Create case",
        details=f"case={case.case_number}, type={case.case_type.value}",
    )
    return case_response(case, get_case_progress(db, case))


@router.get("/{case_id}", response_model=CaseDetailResponse)
def get_case(
    case_id: UUID,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    """Case detail with the contributions counted toward it."""
    case = _get_case_or_404(db, case_id)
    response = case_response(case, get_case_progress(db, case))
    response["contributions"] = [
        TransactionResponse.model_validate(tx)
        for tx in case_contributions(case, get_contribution_transactions(db))
    ]
    return response


@router.delete("/{case_id}")
def remove_case(
    case_id: UUID,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    case = _get_case_or_404(db, case_id)
    case_number = case.case_number
    try:
        delete_case(db, case_id)
    except CaseError as e:
        raise HTTPException(status_code=400, detail=str(e))
    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Delete case",
        details=f"case={case_number}",
    )
    return {"message": f"Case {case_number} deleted"}


@router.post("/{case_id}/contributions", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def add_contribution(
    case_id: UUID,
    contribution: ContributionCreate,
    current_user: User = Depends(require_treasurer),
    db: Session = Depends(get_db)
):
    """Record a member's contribution to a case."""
    _get_case_or_404(db, case_id)
    try:
        transaction = record_contribution(
            db,
            case_id=case_id,
            member_id=contribution.member_id,
            amount=contribution.amount,
            mpesa_reference=contribution.reference,
        )
    except CaseError as e:
        raise HTTPException(status_code=400, detail=str(e))

    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Record contribution",
        details=f"case_id={case_id}, amount={contribution.amount}",
    )
    return transaction
