from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from welfare.models.case import CaseStatus, CaseType
from welfare.schemas.transaction import TransactionResponse


class CaseCreate(BaseModel):
    """Schema for creating a case."""
    affected_member_id: UUID
    dependant_id: Optional[UUID] = Field(None, description="Set when the case concerns a dependant")
    case_type: CaseType
    contribution_per_member: Decimal = Field(..., gt=0)
    start_date: date
    end_date: date
    is_active: bool = False


class ContributionCreate(BaseModel):
    member_id: UUID
    amount: Decimal = Field(..., gt=0)
    reference: Optional[str] = None


class CaseResponse(BaseModel):
    id: UUID
    case_number: str
    affected_member_id: UUID
    affected_member_name: Optional[str] = None
    dependant_id: Optional[UUID] = None
    case_type: CaseType
    contribution_per_member: Decimal
    start_date: date
    end_date: date
    status: CaseStatus
    is_active: Optional[bool] = None
    is_finalized: Optional[bool] = None
    created_at: Optional[datetime] = None
    expected_amount: Decimal = Field(..., description="Contribution per member x current member count")
    expected_amount_at_creation: Decimal
    actual_amount: Decimal
    progress_percent: int


class CaseDetailResponse(CaseResponse):
    contributions: List[TransactionResponse] = Field(default_factory=list)
