from pydantic import BaseModel, Field
from typing import Optional
from uuid import UUID
from welfare.models.user import UserRole


class UserLogin(BaseModel):
    username: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    role: UserRole
    member_id: Optional[UUID] = None


class UserUpdate(BaseModel):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserResponse(BaseModel):
    id: UUID
    username: str
    name: str
    role: UserRole
    member_id: Optional[UUID] = None
    is_active: Optional[bool] = None

    class Config:
        from_attributes = True
