import logging
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from welfare.db.base import get_db
from welfare.core.audit import write_audit_log
from welfare.core.dependencies import require_staff
from welfare.models.member import Member
from welfare.models.user import User
from welfare.schemas.member import (
    DependantCreate, DependantResponse, MemberCreate, MemberDetailResponse, MemberResponse,
    MemberUpdate, ResidenceCreate, ResidenceResponse,
)
from welfare.schemas.transaction import TransactionResponse, WalletResponse
from welfare.services.ledger import compute_member_wallet_balance, get_member_transactions
from welfare.services.members import (
    MemberError, add_dependant, create_residence, get_member, insert_member, list_members,
    list_residences, update_member,
)
from welfare.services.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/members", tags=["members"])
residence_router = APIRouter(prefix="/api/residences", tags=["members"])


def member_response(member: Member, balance, detail: bool = False):
    schema = MemberDetailResponse if detail else MemberResponse
    return schema.model_validate(member).model_copy(update={"wallet_balance": balance})


def _get_member_or_404(db: Session, member_id: UUID) -> Member:
    try:
        return get_member(db, member_id)
    except MemberError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("", response_model=List[MemberResponse])
def get_members(
    search: Optional[str] = Query(None, description="Match on name or member number"),
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    """List members with their ledger-derived wallet balances."""
    return [member_response(row["member"], row["wallet_balance"]) for row in list_members(db, search)]


@router.post("", response_model=MemberDetailResponse, status_code=status.HTTP_201_CREATED)
def register_member(
    member_data: MemberCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    """Register a member, with dependants, an optional paid registration fee and an optional login."""
    registration_fee = member_data.registration_fee
    if member_data.registration_fee_paid and registration_fee is None:
        registration_fee = get_settings(db).registration_fee

    try:
        member = insert_member(
            db,
            name=member_data.name,
            gender=member_data.gender,
            date_of_birth=member_data.date_of_birth,
            national_id_number=member_data.national_id_number,
            phone_number=member_data.phone_number,
            email_address=member_data.email_address,
            residence=member_data.residence,
            next_of_kin=member_data.next_of_kin.model_dump(),
            dependants=[d.model_dump() for d in member_data.dependants],
            registration_fee_paid=member_data.registration_fee_paid,
            registration_fee=registration_fee,
            username=member_data.username,
            password=member_data.password,
        )
    except MemberError as e:
        raise HTTPException(status_code=400, detail=str(e))

    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Register member",
        details=f"member={member.member_number}",
    )
    return member_response(member, compute_member_wallet_balance(db, member.id), detail=True)


@router.get("/{member_id}", response_model=MemberDetailResponse)
def get_member_detail(
    member_id: UUID,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    member = _get_member_or_404(db, member_id)
    return member_response(member, compute_member_wallet_balance(db, member.id), detail=True)


@router.patch("/{member_id}", response_model=MemberResponse)
def patch_member(
    member_id: UUID,
    changes: MemberUpdate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    """Update a member's contact details."""
    _get_member_or_404(db, member_id)
    try:
        member = update_member(db, member_id, changes.model_dump(exclude_unset=True))
    except MemberError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return member_response(member, compute_member_wallet_balance(db, member.id))


@router.get("/{member_id}/transactions", response_model=WalletResponse)
def get_member_ledger(
    member_id: UUID,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    """A member's transactions, newest first, with the balance they add up to."""
    member = _get_member_or_404(db, member_id)
    transactions = get_member_transactions(db, member.id)
    return WalletResponse(
        member_id=member.id,
        wallet_balance=compute_member_wallet_balance(db, member.id),
        transactions=[TransactionResponse.model_validate(tx) for tx in transactions],
    )


@router.post("/{member_id}/dependants", response_model=DependantResponse, status_code=status.HTTP_201_CREATED)
def create_dependant(
    member_id: UUID,
    dependant: DependantCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    _get_member_or_404(db, member_id)
    return add_dependant(db, member_id, **dependant.model_dump())


@residence_router.get("", response_model=List[ResidenceResponse])
def get_residences(
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    return list_residences(db)


@residence_router.post("", response_model=ResidenceResponse, status_code=status.HTTP_201_CREATED)
def add_residence(
    residence: ResidenceCreate,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    try:
        return create_residence(db, residence.name)
    except MemberError as e:
        raise HTTPException(status_code=400, detail=str(e))
