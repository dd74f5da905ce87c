"""Money-moving commands: fee collection, bulk renewal, wallet funding and transfers.

Every command accepts an optional ``operation_id``. Rows written by a command
are tagged with it, so re-submitting the same id after a failure does not
charge or credit anyone twice. A new id (the default) is a new command.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from welfare.core.config import settings
from welfare.models.member import Member
from welfare.models.transaction import SuspenseStatus, Transaction, TransactionType, WrongMpesaTransaction
from welfare.services.accounts import is_suspense_candidate
from welfare.services.ledger import compute_member_wallet_balance, sync_wallet_balance_column

logger = logging.getLogger(__name__)

FEE_TYPES = (TransactionType.REGISTRATION, TransactionType.RENEWAL, TransactionType.PENALTY)
REACTIVATING_FEES = (TransactionType.REGISTRATION, TransactionType.PENALTY)

DEFAULT_FEE_DESCRIPTIONS = {
    TransactionType.REGISTRATION: "Registration fee payment",
    TransactionType.RENEWAL: "Annual renewal fee payment",
    TransactionType.PENALTY: "Penalty fee payment for account reactivation",
}


class OperationError(Exception):
    """Base exception for ledger operations."""
    pass


class ValidationError(OperationError):
    pass


class NotFoundError(OperationError):
    pass


class InsufficientFundsError(OperationError):
    pass


class AlreadyResolvedError(OperationError):
    pass


@dataclass
class BulkRenewalResult:
    operation_id: UUID
    member_count: int
    created: int
    skipped: int
    batches: int


@dataclass
class TransferResult:
    operation_id: UUID
    debit: Transaction
    credit: Transaction
    sender_balance: Decimal
    recipient_balance: Decimal


@dataclass
class FundingResult:
    operation_id: UUID
    transaction: Transaction
    ledger_balance: Decimal
    column_synced: bool = True
    replayed: bool = False


def _require_positive(amount: Optional[Decimal]) -> Decimal:
    if amount is None or amount <= 0:
        raise ValidationError("Amount must be a positive number")
    return Decimal(str(amount))


def _get_member(db: Session, member_id: UUID, label: str = "Member") -> Member:
    if member_id is None:
        raise ValidationError(f"{label} is required")
    member = db.get(Member, member_id)
    if not member:
        raise NotFoundError(f"{label} not found")
    return member


def _existing_for_operation(db: Session, operation_id: UUID) -> List[Transaction]:
    return db.execute(
        select(Transaction).where(Transaction.operation_id == operation_id)
    ).scalars().all()


def _replayed_rows(
    db: Session,
    operation_id: UUID,
    transaction_type: TransactionType,
    member_ids: Set[UUID],
) -> List[Transaction]:
    """Rows already written under ``operation_id``, or [] for a new command.

    Reusing an id for a different command, or for different members, is
    rejected rather than replayed.
    """
    existing = _existing_for_operation(db, operation_id)
    if existing and (
        any(tx.transaction_type != transaction_type.value for tx in existing)
        or {tx.member_id for tx in existing} != member_ids
    ):
        raise ValidationError("operation_id already used by a different operation")
    return existing


def collect_fee(
    db: Session,
    member_id: UUID,
    fee_type: TransactionType,
    amount: Decimal,
    mpesa_reference: str = None,
    description: str = None,
    operation_id: UUID = None,
) -> Transaction:
    """
    Record a registration, renewal or penalty fee paid by one member.

    Registration and penalty payments also reactivate the member. The row
    and the reactivation are committed together.
    """
    fee_type = TransactionType(fee_type)
    if fee_type not in FEE_TYPES:
        raise ValidationError(f"{fee_type.value} is not a fee type")
    amount = _require_positive(amount)
    member = _get_member(db, member_id)

    operation_id = operation_id or uuid.uuid4()
    existing = _replayed_rows(db, operation_id, fee_type, {member.id})
    if existing:
        logger.info("Fee collection %s already recorded; returning existing row", operation_id)
        return existing[0]

    transaction = Transaction(
        member_id=member.id,
        amount=amount,
        transaction_type=fee_type.value,
        mpesa_reference=mpesa_reference or None,
        description=description or DEFAULT_FEE_DESCRIPTIONS[fee_type],
        operation_id=operation_id,
    )
    db.add(transaction)

    if fee_type in REACTIVATING_FEES:
        member.is_active = True

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error collecting %s fee for member %s", fee_type.value, member.member_number)
        raise
    db.refresh(transaction)
    logger.info("Collected %s fee of %s from %s", fee_type.value, amount, member.member_number)
    return transaction


def collect_bulk_renewal(
    db: Session,
    amount: Decimal,
    description: str = None,
    operation_id: UUID = None,
    batch_size: int = None,
) -> BulkRenewalResult:
    """
    Charge every member one renewal fee (stored as ``-|amount|``).

    Rows are committed in batches, so a failure part-way leaves the earlier
    batches in place. Re-running with the same ``operation_id`` charges only
    the members the failed run did not reach; a fresh id charges everyone.
    """
    amount = _require_positive(amount)
    batch_size = batch_size or settings.BULK_INSERT_BATCH_SIZE
    operation_id = operation_id or uuid.uuid4()
    description = description or DEFAULT_FEE_DESCRIPTIONS[TransactionType.RENEWAL]

    member_ids = db.execute(select(Member.id)).scalars().all()
    if not member_ids:
        raise ValidationError("There are no members to charge")

    previous_rows = _existing_for_operation(db, operation_id)
    if any(tx.transaction_type != TransactionType.RENEWAL.value for tx in previous_rows):
        raise ValidationError("operation_id already used by a different operation")
    already_charged: Set[UUID] = {tx.member_id for tx in previous_rows}
    pending = [member_id for member_id in member_ids if member_id not in already_charged]

    created_at = datetime.utcnow()
    created = 0
    batches = 0
    for start in range(0, len(pending), batch_size):
        batch = pending[start:start + batch_size]
        db.add_all([
            Transaction(
                member_id=member_id,
                amount=-abs(amount),
                transaction_type=TransactionType.RENEWAL.value,
                mpesa_reference=None,
                description=description,
                operation_id=operation_id,
                created_at=created_at,
            )
            for member_id in batch
        ])
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception(
                "Bulk renewal %s failed after %d of %d members", operation_id, created, len(pending)
            )
            raise
        created += len(batch)
        batches += 1

    logger.info(
        "Bulk renewal %s: %d rows created, %d already charged", operation_id, created, len(already_charged)
    )
    return BulkRenewalResult(
        operation_id=operation_id,
        member_count=len(member_ids),
        created=created,
        skipped=len(already_charged),
        batches=batches,
    )


def fund_wallet(
    db: Session,
    member_id: UUID,
    amount: Decimal,
    mpesa_reference: str = None,
    operation_id: UUID = None,
) -> FundingResult:
    """
    Credit a member's wallet.

    The ledger row is the source of truth. The advisory ``wallet_balance``
    column is refreshed from the ledger inside a savepoint; if that refresh
    fails the funding row is still committed.
    """
    amount = _require_positive(amount)
    member = _get_member(db, member_id)

    operation_id = operation_id or uuid.uuid4()
    existing = _replayed_rows(db, operation_id, TransactionType.WALLET_FUNDING, {member.id})
    if existing:
        return FundingResult(
            operation_id=operation_id,
            transaction=existing[0],
            ledger_balance=compute_member_wallet_balance(db, member.id),
            replayed=True,
        )

    transaction = Transaction(
        member_id=member.id,
        amount=amount,
        transaction_type=TransactionType.WALLET_FUNDING.value,
        mpesa_reference=mpesa_reference or None,
        description=f"Wallet funding - {mpesa_reference or 'Manual addition by admin'}",
        operation_id=operation_id,
    )
    db.add(transaction)
    db.flush()

    column_synced = True
    try:
        with db.begin_nested():
            sync_wallet_balance_column(db, member.id)
    except SQLAlchemyError:
        column_synced = False
        logger.warning("Wallet balance column not refreshed for %s", member.member_number, exc_info=True)

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error funding wallet for member %s", member.member_number)
        raise
    db.refresh(transaction)

    return FundingResult(
        operation_id=operation_id,
        transaction=transaction,
        ledger_balance=compute_member_wallet_balance(db, member.id),
        column_synced=column_synced,
    )


def transfer_funds(
    db: Session,
    from_member_id: UUID,
    to_member_id: UUID,
    amount: Decimal,
    reference_text: str = None,
    operation_id: UUID = None,
) -> TransferResult:
    """
    Move wallet funds between two members in one database transaction.

    The sender's ledger-derived balance must cover the amount.
    """
    amount = _require_positive(amount)
    sender = _get_member(db, from_member_id, "Sender")
    recipient = _get_member(db, to_member_id, "Recipient")
    if sender.id == recipient.id:
        raise ValidationError("Cannot transfer to the same member")

    operation_id = operation_id or uuid.uuid4()
    existing = _replayed_rows(db, operation_id, TransactionType.TRANSFER, {sender.id, recipient.id})
    if existing:
        debit = next(tx for tx in existing if tx.member_id == sender.id)
        credit = next(tx for tx in existing if tx.member_id == recipient.id)
        if debit.amount >= 0:
            # Same pair, opposite direction
            raise ValidationError("operation_id already used by a different operation")
        return TransferResult(
            operation_id=operation_id,
            debit=debit,
            credit=credit,
            sender_balance=compute_member_wallet_balance(db, sender.id),
            recipient_balance=compute_member_wallet_balance(db, recipient.id),
        )

    available = compute_member_wallet_balance(db, sender.id)
    if amount > available:
        raise InsufficientFundsError(f"Insufficient funds: only {settings.CURRENCY} {available:,.2f} available")

    reference_text = reference_text or f"Transfer to {recipient.member_number}"
    debit = Transaction(
        member_id=sender.id,
        amount=-amount,
        transaction_type=TransactionType.TRANSFER.value,
        description=f"{reference_text} (to {recipient.member_number})",
        operation_id=operation_id,
    )
    credit = Transaction(
        member_id=recipient.id,
        amount=amount,
        transaction_type=TransactionType.TRANSFER.value,
        description=f"{reference_text} (from {sender.member_number})",
        operation_id=operation_id,
    )
    db.add_all([debit, credit])

    try:
        sender_balance = sync_wallet_balance_column(db, sender.id)
        recipient_balance = sync_wallet_balance_column(db, recipient.id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Transfer %s from %s to %s failed", operation_id, sender.member_number, recipient.member_number)
        raise

    db.refresh(debit)
    db.refresh(credit)
    logger.info("Transferred %s from %s to %s", amount, sender.member_number, recipient.member_number)
    return TransferResult(
        operation_id=operation_id,
        debit=debit,
        credit=credit,
        sender_balance=sender_balance,
        recipient_balance=recipient_balance,
    )


def transfer_suspense_to_member(
    db: Session,
    suspense_id: UUID,
    member_id: UUID,
) -> Transaction:
    """
    Attribute an unmatched M-Pesa payment to a member.

    Creates an ``mpesa`` row for the member and marks the suspense record
    resolved in the same commit.
    """
    suspense = db.get(WrongMpesaTransaction, suspense_id)
    if not suspense:
        raise NotFoundError("Suspense transaction not found")
    if suspense.resolved_at is not None or suspense.status == SuspenseStatus.RESOLVED.value:
        raise AlreadyResolvedError("Suspense transaction has already been resolved")
    member = _get_member(db, member_id)

    transaction = Transaction(
        member_id=member.id,
        amount=suspense.amount,
        transaction_type=TransactionType.MPESA.value,
        description=member.member_number,
        mpesa_reference=suspense.mpesa_reference,
        case_id=None,
    )
    db.add(transaction)

    suspense.status = SuspenseStatus.RESOLVED.value
    suspense.resolved_at = datetime.utcnow()
    suspense.notes = f"Transferred to member {member.name} ({member.member_number})"

    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error transferring suspense transaction %s", suspense_id)
        raise
    db.refresh(transaction)
    logger.info("Suspense payment %s attributed to %s", suspense.mpesa_reference, member.member_number)
    return transaction


def assign_suspense_transaction(
    db: Session,
    transaction_id: UUID,
    member_id: UUID,
    description: str = None,
) -> Transaction:
    """
    Resolve a row from the heuristic suspense view by paying it into a
    member's wallet.

    Only rows the suspense heuristic still flags can be assigned; any other
    ledger row belongs to its member and is refused. The payment is
    credited to the member as a ``wallet_funding`` row for the same amount
    and the suspense row is retired, in one commit.
    """
    transaction = db.get(Transaction, transaction_id)
    if not transaction:
        raise NotFoundError("Transaction not found")
    member = _get_member(db, member_id)

    members = db.execute(select(Member)).scalars().all()
    if not is_suspense_candidate(transaction, members):
        raise ValidationError("Transaction is not in the suspense account")

    credit = Transaction(
        member_id=member.id,
        amount=transaction.amount,
        transaction_type=TransactionType.WALLET_FUNDING.value,
        mpesa_reference=transaction.mpesa_reference,
        # The member number keeps the credit out of the suspense heuristic
        description=(
            f"{description or 'Assigned from suspense account'} - {member.member_number}"
            f" - Ref: {transaction.mpesa_reference or 'N/A'}"
        ),
        created_at=transaction.created_at,
    )
    previous_member_id = transaction.member_id
    db.add(credit)
    db.delete(transaction)

    try:
        db.flush()
        sync_wallet_balance_column(db, member.id)
        sync_wallet_balance_column(db, previous_member_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error assigning transaction %s", transaction_id)
        raise
    db.refresh(credit)
    logger.info("Suspense transaction %s assigned to %s", transaction_id, member.member_number)
    return credit
