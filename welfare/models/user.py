from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Enum as SQLEnum, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from welfare.db.base import Base
import enum


class UserRole(str, enum.Enum):
    """Portal roles."""
    SUPER_ADMIN = "super_admin"
    CHAIRPERSON = "chairperson"
    TREASURER = "treasurer"
    SECRETARY = "secretary"
    MEMBER = "member"


STAFF_ROLES = (UserRole.SUPER_ADMIN, UserRole.CHAIRPERSON, UserRole.TREASURER, UserRole.SECRETARY)


class User(Base):
    """Portal login. Member users are linked to their member record."""
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    username = Column(String(100), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False)
    role = Column(SQLEnum(UserRole, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False, default=UserRole.MEMBER)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("members.id"), nullable=True, index=True)
    is_active = Column(Boolean, nullable=True, default=True)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    member = relationship("Member")
