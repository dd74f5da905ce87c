from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from welfare.db.base import get_db
from welfare.schemas.auth import UserLogin, Token, UserResponse
from welfare.services.auth import authenticate_user, create_access_token_for_user
from welfare.core.audit import write_audit_log
from welfare.core.dependencies import get_current_user
from welfare.models.user import User

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=Token)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """Login and get JWT token."""
    user = authenticate_user(db, credentials.username, credentials.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password"
        )

    access_token = create_access_token_for_user(user)
    write_audit_log(user_name=user.name, user_role=user.role.value, action="Login", details=f"username={user.username}")
    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout")
def logout(current_user: User = Depends(get_current_user)):
    """Record logout in audit log (tokens simply expire)."""
    write_audit_log(user_name=current_user.name, user_role=current_user.role.value, action="Logout", details=f"username={current_user.username}")
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
def get_current_user_info(current_user: User = Depends(get_current_user)):
    """Get current user information."""
    return current_user
