from sqlalchemy import Column, String, ForeignKey, DateTime, Date, Boolean, Numeric, Enum as SQLEnum, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from welfare.db.base import Base
import enum


class CaseType(str, enum.Enum):
    """Welfare benefit category."""
    EDUCATION = "education"
    SICKNESS = "sickness"
    DEATH = "death"


class CaseStatus(str, enum.Enum):
    """Status derived from the is_active / is_finalized flags."""
    DRAFT = "draft"
    ACTIVE = "active"
    FINALIZED = "finalized"


class Case(Base):
    """Welfare case raised for an affected member (or one of their dependants)."""
    __tablename__ = "cases"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_number = Column(String(20), nullable=False, unique=True, index=True)
    affected_member_id = Column(Uuid(as_uuid=True), ForeignKey("members.id"), nullable=False, index=True)
    dependant_id = Column(Uuid(as_uuid=True), ForeignKey("dependants.id"), nullable=True)
    case_type = Column(SQLEnum(CaseType, native_enum=False, values_callable=lambda obj: [e.value for e in obj]), nullable=False)
    contribution_per_member = Column(Numeric(12, 2), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    expected_amount = Column(Numeric(14, 2), nullable=False)  # Snapshot taken at creation
    actual_amount = Column(Numeric(14, 2), nullable=True)
    is_active = Column(Boolean, nullable=True, default=False)
    is_finalized = Column(Boolean, nullable=True, default=False)
    created_at = Column(DateTime, nullable=True, server_default=text("CURRENT_TIMESTAMP"))

    # Relationships
    affected_member = relationship("Member", back_populates="cases")
    dependant = relationship("Dependant")
    transactions = relationship("Transaction", back_populates="case")

    @property
    def status(self) -> CaseStatus:
        if self.is_finalized:
            return CaseStatus.FINALIZED
        if self.is_active:
            return CaseStatus.ACTIVE
        return CaseStatus.DRAFT
