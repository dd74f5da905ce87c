"""Member ledger and wallet balance derivation.

A member's wallet balance is never read from ``members.wallet_balance``; it is
always recomputed from the member's transaction rows. Rows written by older
clients stored debit-type amounts with either sign, so every amount passes
through ``normalize`` before it is summed.
"""
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from welfare.models.member import Member
from welfare.models.transaction import Transaction, TransactionType

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


class SignRule:
    """How a stored amount is signed before it is added to a balance."""
    DEBIT = "debit"          # Money owed by the member: always -|amount|
    AS_STORED = "as_stored"  # Trust the stored sign


SIGN_TABLE: Dict[TransactionType, str] = {
    TransactionType.REGISTRATION: SignRule.DEBIT,
    TransactionType.CONTRIBUTION: SignRule.DEBIT,
    TransactionType.ARREARS: SignRule.DEBIT,
    TransactionType.DISBURSEMENT: SignRule.AS_STORED,
    TransactionType.RENEWAL: SignRule.AS_STORED,
    TransactionType.PENALTY: SignRule.AS_STORED,
    TransactionType.WALLET_FUNDING: SignRule.AS_STORED,
    TransactionType.MPESA: SignRule.AS_STORED,
    TransactionType.SUSPENSE: SignRule.AS_STORED,
    TransactionType.TRANSFER: SignRule.AS_STORED,
}


def to_decimal(amount) -> Decimal:
    """Coerce a stored amount to Decimal; missing values count as zero."""
    if amount is None:
        return ZERO
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def _sign_rule(transaction_type: Union[str, TransactionType, None]) -> str:
    try:
        return SIGN_TABLE[TransactionType(transaction_type)]
    except ValueError:
        # Unknown tags keep their stored sign
        return SignRule.AS_STORED


def normalize(amount, transaction_type: Union[str, TransactionType, None]) -> Decimal:
    """Return the signed contribution of one transaction to a wallet balance.

    Debit types (registration, contribution, arrears) always count as
    ``-|amount|``, so a row stored negative is unchanged and a row stored
    positive is flipped. Every other type keeps the stored sign.
    """
    value = to_decimal(amount)
    if _sign_rule(transaction_type) == SignRule.DEBIT:
        return -abs(value)
    return value


def member_balance(transactions: Iterable[Transaction], member_id: UUID) -> Decimal:
    """Sum of normalized amounts over exactly ``member_id``'s rows."""
    return sum(
        (normalize(tx.amount, tx.transaction_type) for tx in transactions if tx.member_id == member_id),
        ZERO,
    )


def wallet_balances(transactions: Iterable[Transaction]) -> Dict[UUID, Decimal]:
    """Derived balance for every member that appears in ``transactions``."""
    balances: Dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for tx in transactions:
        balances[tx.member_id] += normalize(tx.amount, tx.transaction_type)
    return dict(balances)


def get_member_transactions(db: Session, member_id: UUID) -> List[Transaction]:
    """Member ledger, newest first."""
    return db.execute(
        select(Transaction)
        .where(Transaction.member_id == member_id)
        .order_by(Transaction.created_at.desc())
    ).scalars().all()


def compute_member_wallet_balance(db: Session, member_id: UUID) -> Decimal:
    """Ledger-derived balance. Database errors propagate to the caller."""
    return member_balance(get_member_transactions(db, member_id), member_id)


def get_member_wallet_balance(db: Session, member_id: UUID) -> Decimal:
    """Ledger-derived balance for display.

    A failed read is logged and reported as a zero balance so that a summary
    view still renders.
    """
    try:
        return compute_member_wallet_balance(db, member_id)
    except SQLAlchemyError:
        logger.exception("Failed to load transactions for member %s; reporting zero balance", member_id)
        db.rollback()
        return ZERO


def get_all_wallet_balances(db: Session) -> Dict[UUID, Decimal]:
    """Balances for every member with at least one transaction."""
    transactions = db.execute(select(Transaction)).scalars().all()
    return wallet_balances(transactions)


def sync_wallet_balance_column(db: Session, member_id: UUID) -> Optional[Decimal]:
    """Refresh the advisory ``members.wallet_balance`` cache from the ledger.

    Does not commit. Returns the new value, or None if the member is unknown.
    """
    member = db.get(Member, member_id)
    if member is None:
        return None
    db.flush()
    balance = compute_member_wallet_balance(db, member_id)
    member.wallet_balance = balance
    return balance


def get_defaulters(db: Session, residence: Optional[str] = None) -> List[dict]:
    """Members whose derived balance is negative, most in debt first."""
    query = select(Member)
    members = db.execute(query).scalars().all()
    balances = get_all_wallet_balances(db)

    defaulters = []
    for member in members:
        if residence and (member.residence or "").lower() != residence.lower():
            continue
        balance = balances.get(member.id, ZERO)
        if balance < 0:
            defaulters.append({"member": member, "wallet_balance": balance})

    defaulters.sort(key=lambda row: row["wallet_balance"])
    return defaulters
