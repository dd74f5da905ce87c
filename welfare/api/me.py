from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session
from typing import List
from welfare.db.base import get_db
from welfare.core.audit import write_audit_log
from welfare.core.dependencies import get_current_active_user, get_current_member
from welfare.models.case import Case
from welfare.models.member import Member
from welfare.models.user import User
from welfare.schemas.case import CaseResponse
from welfare.schemas.member import MemberDetailResponse
from welfare.schemas.transaction import TransactionResponse, TransferRequest, TransferResponse, WalletResponse
from welfare.services.cases import calculate_case_progress, count_members, get_contribution_transactions
from welfare.services.ledger import compute_member_wallet_balance, get_member_transactions
from welfare.services.operations import OperationError, transfer_funds
from welfare.api.cases import case_response
from welfare.api.members import member_response
from welfare.api.operations import operation_http_error, transfer_response

router = APIRouter(prefix="/api/me", tags=["member"])


@router.get("", response_model=MemberDetailResponse)
def get_my_profile(
    member: Member = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    return member_response(member, compute_member_wallet_balance(db, member.id), detail=True)


@router.get("/wallet", response_model=WalletResponse)
def get_my_wallet(
    member: Member = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """My transactions, newest first, and the balance derived from them."""
    return WalletResponse(
        member_id=member.id,
        wallet_balance=compute_member_wallet_balance(db, member.id),
        transactions=[TransactionResponse.model_validate(tx) for tx in get_member_transactions(db, member.id)],
    )


@router.get("/cases", response_model=List[CaseResponse])
def get_my_cases(
    member: Member = Depends(get_current_member),
    db: Session = Depends(get_db)
):
    """Cases raised for me or my dependants."""
    cases = db.execute(
        select(Case).where(Case.affected_member_id == member.id).order_by(Case.created_at.desc())
    ).scalars().all()
    transactions = get_contribution_transactions(db)
    member_count = count_members(db)
    return [case_response(case, calculate_case_progress(case, transactions, member_count)) for case in cases]


@router.post("/transfer", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
def transfer_from_my_wallet(
    request: TransferRequest,
    member: Member = Depends(get_current_member),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Send money from my wallet to another member."""
    try:
        result = transfer_funds(
            db,
            from_member_id=member.id,
            to_member_id=request.to_member_id,
            amount=request.amount,
            reference_text=request.reference,
            operation_id=request.operation_id,
        )
    except OperationError as e:
        raise operation_http_error(e)

    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Transfer funds",
        details=f"from={member.member_number}, to={request.to_member_id}, amount={request.amount}",
    )
    return transfer_response(result)
