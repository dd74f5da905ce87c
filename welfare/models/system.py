from sqlalchemy import Column, String, Integer, Numeric, Uuid
import uuid
from welfare.db.base import Base
from decimal import Decimal


class OrganizationSettings(Base):
    """Singleton row with default fees, numbering starts and organisation details."""
    __tablename__ = "settings"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    registration_fee = Column(Numeric(12, 2), nullable=False, default=Decimal("500.00"))
    renewal_fee = Column(Numeric(12, 2), nullable=False, default=Decimal("200.00"))
    penalty_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    member_id_start = Column(Integer, nullable=True, default=1)
    case_id_start = Column(Integer, nullable=True, default=1)
    organization_name = Column(String(200), nullable=False, default="Welfare Society")
    organization_email = Column(String(255), nullable=True)
    organization_phone = Column(String(20), nullable=True)
    paybill_number = Column(String(20), nullable=True)
