from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from welfare.db.base import get_db
from welfare.core.dependencies import require_staff
from welfare.models.user import User
from welfare.schemas.member import DefaulterResponse
from welfare.services.ledger import get_defaulters

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.get("/defaulters", response_model=List[DefaulterResponse])
def defaulters_report(
    residence: Optional[str] = Query(None, description="Only members living here"),
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    """Members with a negative wallet balance, most in arrears first."""
    return [
        DefaulterResponse(
            member_id=row["member"].id,
            member_number=row["member"].member_number,
            name=row["member"].name,
            residence=row["member"].residence,
            phone_number=row["member"].phone_number,
            wallet_balance=row["wallet_balance"],
        )
        for row in get_defaulters(db, residence)
    ]
