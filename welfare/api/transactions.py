from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from welfare.db.base import get_db
from welfare.core.dependencies import require_staff
from welfare.models.transaction import Transaction, TransactionType
from welfare.models.user import User
from welfare.schemas.transaction import TransactionResponse

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.get("", response_model=List[TransactionResponse])
def get_transactions(
    transaction_type: Optional[str] = Query(None, alias="type"),
    member_id: Optional[UUID] = None,
    limit: int = Query(500, ge=1, le=5000),
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    """All transactions, newest first."""
    query = select(Transaction).order_by(Transaction.created_at.desc())
    if transaction_type:
        if transaction_type not in {t.value for t in TransactionType}:
            raise HTTPException(status_code=400, detail=f"Unknown transaction type: {transaction_type}")
        query = query.where(Transaction.transaction_type == transaction_type)
    if member_id:
        query = query.where(Transaction.member_id == member_id)
    return db.execute(query.limit(limit)).scalars().all()
