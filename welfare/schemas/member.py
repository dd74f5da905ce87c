from pydantic import AliasChoices, BaseModel, EmailStr, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from welfare.models.member import Gender


class NextOfKin(BaseModel):
    name: str
    relationship: str
    phone_number: Optional[str] = None


class DependantCreate(BaseModel):
    name: str = Field(..., min_length=1)
    gender: Gender
    relationship: str = Field(..., min_length=1, description="e.g. spouse, child, parent")
    date_of_birth: date
    is_disabled: bool = False
    is_eligible: bool = True


class DependantResponse(BaseModel):
    id: UUID
    name: str
    gender: Gender
    relationship: str = Field(validation_alias=AliasChoices("relation", "relationship"))
    date_of_birth: date
    is_disabled: Optional[bool] = None
    is_eligible: Optional[bool] = None

    class Config:
        from_attributes = True


class MemberCreate(BaseModel):
    """Member registration form."""
    name: str = Field(..., min_length=2)
    gender: Gender
    date_of_birth: date
    national_id_number: str = Field(..., min_length=1)
    phone_number: Optional[str] = None
    email_address: Optional[EmailStr] = None
    residence: str = Field(..., min_length=1)
    next_of_kin: NextOfKin
    dependants: List[DependantCreate] = Field(default_factory=list)
    registration_fee_paid: bool = Field(False, description="Record the registration fee as paid")
    registration_fee: Optional[Decimal] = Field(None, gt=0, description="Defaults to the configured registration fee")
    username: Optional[str] = Field(None, min_length=3, description="Create a member login with this username")
    password: Optional[str] = Field(None, min_length=6)


class MemberUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)
    phone_number: Optional[str] = None
    email_address: Optional[EmailStr] = None
    residence: Optional[str] = None
    national_id_number: Optional[str] = None
    next_of_kin: Optional[NextOfKin] = None


class MemberResponse(BaseModel):
    id: UUID
    member_number: str
    name: str
    gender: Gender
    date_of_birth: date
    national_id_number: str
    phone_number: Optional[str] = None
    email_address: Optional[str] = None
    residence: str
    next_of_kin: dict
    registration_date: Optional[datetime] = None
    is_active: Optional[bool] = None
    wallet_balance: Decimal = Field(Decimal("0.00"), description="Derived from the member's transactions")

    class Config:
        from_attributes = True


class MemberDetailResponse(MemberResponse):
    dependants: List[DependantResponse] = Field(default_factory=list)


class ResidenceCreate(BaseModel):
    name: str = Field(..., min_length=1)


class ResidenceResponse(BaseModel):
    id: UUID
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DefaulterResponse(BaseModel):
    member_id: UUID
    member_number: str
    name: str
    residence: str
    phone_number: Optional[str] = None
    wallet_balance: Decimal
