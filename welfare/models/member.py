from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Boolean, Numeric, JSON, Enum as SQLEnum, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from welfare.db.base import Base
import enum
from decimal import Decimal


class Gender(str, enum.Enum):
    """Member and dependant gender."""
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class Member(Base):
    """Registered member of the society.

    ``wallet_balance`` is an advisory cache only. The authoritative balance is
    always derived from the member's transactions (see ``services.ledger``).
    """
    __tablename__ = "members"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_number = Column(String(20), nullable=False, unique=True, index=True)
    name = Column(String(200), nullable=False, index=True)
    gender = Column(SQLEnum(Gender, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    national_id_number = Column(String(50), nullable=False)
    phone_number = Column(String(20), nullable=True)
    email_address = Column(String(255), nullable=True)
    residence = Column(String(100), nullable=False)
    next_of_kin = Column(JSON, nullable=False, default=dict)
    registration_date = Column(DateTime, nullable=True, server_default=text("CURRENT_TIMESTAMP"))
    is_active = Column(Boolean, nullable=True, default=True)
    wallet_balance = Column(Numeric(12, 2), nullable=True, default=Decimal("0.00"))

    # Relationships
    dependants = relationship("Dependant", back_populates="member", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="member")
    cases = relationship("Case", back_populates="affected_member")


class Dependant(Base):
    """Dependant of a member who may be the subject of a case."""
    __tablename__ = "dependants"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("members.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    gender = Column(SQLEnum(Gender, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    relation = Column("relationship", String(50), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    is_disabled = Column(Boolean, nullable=True, default=False)
    is_eligible = Column(Boolean, nullable=True, default=True)

    # Relationships
    member = relationship("Member", back_populates="dependants")


class Residence(Base):
    """Residence lookup used on member registration."""
    __tablename__ = "residences"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
