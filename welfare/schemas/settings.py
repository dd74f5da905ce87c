from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal
from uuid import UUID


class SettingsResponse(BaseModel):
    id: UUID
    registration_fee: Decimal
    renewal_fee: Decimal
    penalty_amount: Decimal
    member_id_start: Optional[int] = None
    case_id_start: Optional[int] = None
    organization_name: str
    organization_email: Optional[str] = None
    organization_phone: Optional[str] = None
    paybill_number: Optional[str] = None

    class Config:
        from_attributes = True


class SettingsUpdate(BaseModel):
    registration_fee: Optional[Decimal] = Field(None, ge=0)
    renewal_fee: Optional[Decimal] = Field(None, ge=0)
    penalty_amount: Optional[Decimal] = Field(None, ge=0)
    member_id_start: Optional[int] = Field(None, ge=1)
    case_id_start: Optional[int] = Field(None, ge=1)
    organization_name: Optional[str] = Field(None, min_length=1)
    organization_email: Optional[str] = None
    organization_phone: Optional[str] = None
    paybill_number: Optional[str] = None
