from welfare.db.base import Base

# Import all models so Alembic can detect them
from welfare.models.member import Member, Dependant, Residence, Gender
from welfare.models.case import Case, CaseType, CaseStatus
from welfare.models.transaction import Transaction, TransactionType, WrongMpesaTransaction, SuspenseStatus
from welfare.models.system import OrganizationSettings
from welfare.models.user import User, UserRole

__all__ = [
    "Base",
    "Member",
    "Dependant",
    "Residence",
    "Gender",
    "Case",
    "CaseType",
    "CaseStatus",
    "Transaction",
    "TransactionType",
    "WrongMpesaTransaction",
    "SuspenseStatus",
    "OrganizationSettings",
    "User",
    "UserRole",
]
