from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID
from welfare.db.base import get_db
from welfare.core.audit import write_audit_log
from welfare.core.dependencies import require_staff, require_super_admin
from welfare.models.user import User
from welfare.schemas.auth import UserCreate, UserResponse, UserUpdate
from welfare.schemas.settings import SettingsResponse, SettingsUpdate
from welfare.services.auth import UserError, create_user, update_user
from welfare.services.settings import get_settings, update_settings

router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/settings", response_model=SettingsResponse)
def read_settings(
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db)
):
    """Organisation settings (created with defaults on first read)."""
    row = get_settings(db)
    db.commit()
    return row


@router.put("/settings", response_model=SettingsResponse)
def write_settings(
    changes: SettingsUpdate,
    current_user: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    values = changes.model_dump(exclude_unset=True)
    try:
        row = update_settings(db, values)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Update settings",
        details=", ".join(f"{k}={v}" for k, v in values.items()),
    )
    return row


@router.get("/users", response_model=List[UserResponse])
def list_users(
    current_user: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    return db.execute(select(User).order_by(User.username)).scalars().all()


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def add_user(
    user_data: UserCreate,
    current_user: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    try:
        user = create_user(
            db,
            username=user_data.username,
            password=user_data.password,
            name=user_data.name,
            role=user_data.role,
            member_id=user_data.member_id,
        )
    except UserError as e:
        raise HTTPException(status_code=400, detail=str(e))
    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Create user",
        details=f"username={user.username}, role={user.role.value}",
    )
    return user


@router.patch("/users/{user_id}", response_model=UserResponse)
def change_user(
    user_id: UUID,
    changes: UserUpdate,
    current_user: User = Depends(require_super_admin),
    db: Session = Depends(get_db)
):
    """Change a user's role or deactivate them."""
    if user_id == current_user.id and changes.is_active is False:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    try:
        user = update_user(db, user_id, role=changes.role, is_active=changes.is_active)
    except UserError as e:
        raise HTTPException(status_code=404, detail=str(e))
    write_audit_log(
        user_name=current_user.name,
        user_role=current_user.role.value,
        action="Update user",
        details=f"username={user.username}, role={user.role.value}, is_active={user.is_active}",
    )
    return user
