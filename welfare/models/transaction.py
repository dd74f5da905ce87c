from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric, Text, Uuid, text
from sqlalchemy.orm import relationship
import uuid
from welfare.db.base import Base
import enum


class TransactionType(str, enum.Enum):
    """Transaction type tag stored in ``transactions.transaction_type``."""
    CONTRIBUTION = "contribution"
    DISBURSEMENT = "disbursement"
    REGISTRATION = "registration"
    RENEWAL = "renewal"
    PENALTY = "penalty"
    ARREARS = "arrears"
    WALLET_FUNDING = "wallet_funding"
    MPESA = "mpesa"
    SUSPENSE = "suspense"
    TRANSFER = "transfer"


class SuspenseStatus(str, enum.Enum):
    """Resolution status of an unmatched M-Pesa payment."""
    UNRESOLVED = "UNRESOLVED"
    RESOLVED = "RESOLVED"


class Transaction(Base):
    """A single ledger row.

    ``transaction_type`` is kept as a plain string: rows written by older
    clients may carry tags outside ``TransactionType`` and must still load.
    """
    __tablename__ = "transactions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid(as_uuid=True), ForeignKey("members.id"), nullable=False, index=True)
    case_id = Column(Uuid(as_uuid=True), ForeignKey("cases.id"), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    transaction_type = Column(String(30), nullable=False, index=True)
    mpesa_reference = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    operation_id = Column(Uuid(as_uuid=True), nullable=True, index=True)  # Groups rows written by one command
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"), index=True)

    # Relationships
    member = relationship("Member", back_populates="transactions")
    case = relationship("Case", back_populates="transactions")


class WrongMpesaTransaction(Base):
    """M-Pesa payment that automatic member matching could not attribute."""
    __tablename__ = "wrong_mpesa_transactions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    mpesa_reference = Column(String(50), nullable=True, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    phone_number = Column(String(20), nullable=True)
    payer_name = Column(String(200), nullable=True)
    account_reference = Column(String(100), nullable=True)  # What the payer typed as account number
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=SuspenseStatus.UNRESOLVED.value)
    resolved_at = Column(DateTime, nullable=True, index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP"))
