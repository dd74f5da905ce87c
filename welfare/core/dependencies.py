from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from welfare.db.base import get_db
from welfare.models.member import Member
from welfare.models.user import User, UserRole, STAFF_ROLES
from welfare.core.security import decode_access_token
import uuid

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from JWT token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_access_token(token)
    if payload is None:
        raise credentials_exception

    user_id_str: str = payload.get("sub")
    if user_id_str is None:
        raise credentials_exception

    # Convert string UUID to UUID object
    try:
        user_id = uuid.UUID(user_id_str)
    except (ValueError, TypeError):
        raise credentials_exception

    user = db.get(User, user_id)
    if user is None:
        raise credentials_exception

    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    """Get current user, rejecting deactivated accounts."""
    if current_user.is_active is False:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated"
        )
    return current_user


def require_roles(*roles: UserRole):
    """Dependency factory for requiring one of the given roles."""
    async def role_checker(
        current_user: User = Depends(get_current_active_user)
    ) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You don't have permission to perform this action"
            )
        return current_user
    return role_checker


# Role-specific dependencies
require_staff = require_roles(*STAFF_ROLES)
require_treasurer = require_roles(UserRole.TREASURER, UserRole.SUPER_ADMIN)
require_super_admin = require_roles(UserRole.SUPER_ADMIN)


async def get_current_member(
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
) -> Member:
    """Member record linked to the logged-in user."""
    if current_user.member_id is None:
        raise HTTPException(status_code=404, detail="No member record is linked to this account")
    member = db.get(Member, current_user.member_id)
    if member is None:
        raise HTTPException(status_code=404, detail="Member record not found")
    return member
