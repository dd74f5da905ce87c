import logging
from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from welfare.core.config import settings
from welfare.core.security import verify_password, get_password_hash, create_access_token
from welfare.models.member import Member
from welfare.models.user import User, UserRole

logger = logging.getLogger(__name__)


class UserError(Exception):
    """Exception for user account errors."""
    pass


def authenticate_user(db: Session, username: str, password: str) -> Optional[User]:
    """
    Authenticate user by username and password.

    Deactivated users, and member users whose member record is inactive,
    cannot log in.
    """
    user = db.execute(select(User).where(User.username == username)).scalars().first()
    if not user:
        logger.debug("User not found: %s", username)
        return None

    if not verify_password(password, user.password_hash):
        logger.debug("Password verification failed for user: %s", username)
        return None

    if user.is_active is False:
        logger.debug("User %s is deactivated, login denied", username)
        return None

    if user.role == UserRole.MEMBER and user.member_id:
        member = db.get(Member, user.member_id)
        if member is None or member.is_active is False:
            logger.debug("User %s has an inactive member record, login denied", username)
            return None

    return user


def create_user(
    db: Session,
    username: str,
    password: str,
    name: str,
    role: UserRole = UserRole.MEMBER,
    member_id: UUID = None,
    commit: bool = True,
) -> User:
    """Create a portal user with a hashed password."""
    existing = db.execute(select(User).where(User.username == username)).scalars().first()
    if existing:
        raise UserError("Username already exists. Please choose a different username.")

    if role == UserRole.MEMBER and member_id is None:
        raise UserError("Member users must be linked to a member")

    user = User(
        username=username,
        name=name,
        role=role,
        member_id=member_id,
        is_active=True,
        password_hash=get_password_hash(password),
    )
    db.add(user)
    try:
        if commit:
            db.commit()
            db.refresh(user)
        else:
            db.flush()
    except IntegrityError as e:
        db.rollback()
        logger.error("IntegrityError creating user %s: %s", username, e.orig if hasattr(e, "orig") else e)
        raise UserError("Username already exists. Please choose a different username.")
    return user


def update_user(db: Session, user_id: UUID, role: UserRole = None, is_active: bool = None) -> User:
    """Change a user's role or active flag."""
    user = db.get(User, user_id)
    if not user:
        raise UserError("User not found")
    if role is not None:
        user.role = role
    if is_active is not None:
        user.is_active = is_active
    db.commit()
    db.refresh(user)
    return user


def create_access_token_for_user(user: User) -> str:
    """Create access token for user."""
    access_token_expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    return create_access_token(
        data={"sub": str(user.id), "role": user.role.value},
        expires_delta=access_token_expires
    )
