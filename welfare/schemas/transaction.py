from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from welfare.models.transaction import TransactionType


class TransactionResponse(BaseModel):
    id: UUID
    member_id: UUID
    case_id: Optional[UUID] = None
    amount: Decimal
    transaction_type: str
    mpesa_reference: Optional[str] = None
    description: Optional[str] = None
    operation_id: Optional[UUID] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SuspenseTransactionResponse(BaseModel):
    id: UUID
    mpesa_reference: Optional[str] = None
    amount: Decimal
    phone_number: Optional[str] = None
    payer_name: Optional[str] = None
    account_reference: Optional[str] = None
    description: Optional[str] = None
    status: str
    resolved_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AccountSummaryResponse(BaseModel):
    balance: Decimal
    credits: Decimal
    debits: Decimal
    count: int


class AccountResponse(BaseModel):
    account: str
    summary: AccountSummaryResponse
    transactions: List[TransactionResponse]


class SuspenseAccountResponse(BaseModel):
    account: str = "suspense"
    classifier: str
    summary: AccountSummaryResponse
    transactions: List[dict]


class WalletResponse(BaseModel):
    member_id: UUID
    wallet_balance: Decimal
    transactions: List[TransactionResponse]


class FeeCollectionRequest(BaseModel):
    member_id: UUID
    fee_type: TransactionType = Field(..., description="registration, renewal or penalty")
    amount: Optional[Decimal] = Field(None, gt=0, description="Defaults to the configured fee")
    reference: Optional[str] = Field(None, description="M-Pesa or other payment reference")
    description: Optional[str] = Field(None, min_length=3)
    operation_id: Optional[UUID] = None


class BulkRenewalRequest(BaseModel):
    amount: Optional[Decimal] = Field(None, gt=0, description="Defaults to the configured renewal fee")
    description: str = Field("Annual renewal fee payment", min_length=3)
    operation_id: Optional[UUID] = Field(None, description="Reuse to safely retry a failed run")


class BulkRenewalResponse(BaseModel):
    operation_id: UUID
    member_count: int
    created: int
    skipped: int
    batches: int


class WalletFundingRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    reference: Optional[str] = None
    operation_id: Optional[UUID] = None


class WalletFundingResponse(BaseModel):
    operation_id: UUID
    transaction: TransactionResponse
    wallet_balance: Decimal
    column_synced: bool
    replayed: bool


class TransferRequest(BaseModel):
    to_member_id: UUID
    amount: Decimal = Field(..., gt=0)
    reference: Optional[str] = None
    operation_id: Optional[UUID] = None


class TransferResponse(BaseModel):
    operation_id: UUID
    debit: TransactionResponse
    credit: TransactionResponse
    sender_balance: Decimal
    recipient_balance: Decimal


class SuspenseTransferRequest(BaseModel):
    member_id: UUID


class SuspenseAssignRequest(BaseModel):
    member_id: UUID
    description: Optional[str] = Field(None, min_length=3)
