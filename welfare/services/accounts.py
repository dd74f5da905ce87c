"""Virtual accounts: named partitions of the transaction set.

Registration, renewal, penalty and arrears accounts are plain filters on
``transaction_type``. The suspense account has two independent definitions,
kept side by side as versioned classifiers; they can disagree and no
set-equality between them is promised.
"""
import enum
import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from welfare.models.member import Member
from welfare.models.transaction import Transaction, TransactionType, WrongMpesaTransaction
from welfare.services.ledger import ZERO, to_decimal

logger = logging.getLogger(__name__)

_DIGIT = re.compile(r"\d")


class AccountName(str, enum.Enum):
    """Named virtual accounts."""
    REGISTRATION = "registration"
    RENEWAL = "renewal"
    PENALTY = "penalty"
    ARREARS = "arrears"
    SUSPENSE = "suspense"


DIRECT_ACCOUNTS = {
    AccountName.REGISTRATION: TransactionType.REGISTRATION,
    AccountName.RENEWAL: TransactionType.RENEWAL,
    AccountName.PENALTY: TransactionType.PENALTY,
    AccountName.ARREARS: TransactionType.ARREARS,
}


class AccountClassificationError(Exception):
    """Raised when an account view cannot be built from the store."""
    pass


@dataclass
class AccountSummary:
    balance: Decimal
    credits: Decimal
    debits: Decimal
    count: int


def summarize(rows: Sequence) -> AccountSummary:
    """Fee accounts only receive money: every row is a credit of ``|amount|``."""
    credits = sum((abs(to_decimal(row.amount)) for row in rows), ZERO)
    debits = ZERO
    return AccountSummary(balance=credits - debits, credits=credits, debits=debits, count=len(rows))


def filter_account(transactions: Iterable[Transaction], account: AccountName) -> List[Transaction]:
    """In-memory equality filter for a direct account."""
    if account not in DIRECT_ACCOUNTS:
        raise ValueError(f"{account.value} is not a direct account")
    tag = DIRECT_ACCOUNTS[account].value
    return [tx for tx in transactions if tx.transaction_type == tag]


def get_account_transactions(db: Session, account: AccountName) -> List[Transaction]:
    """Transactions of a direct account, newest first."""
    if account not in DIRECT_ACCOUNTS:
        raise ValueError(f"{account.value} is not a direct account")
    try:
        return db.execute(
            select(Transaction)
            .where(Transaction.transaction_type == DIRECT_ACCOUNTS[account].value)
            .order_by(Transaction.created_at.desc())
        ).scalars().all()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Error fetching %s transactions: %s", account.value, e)
        raise AccountClassificationError(f"Failed to load {account.value} transactions") from e


def has_digit(text: Optional[str]) -> bool:
    return bool(text) and _DIGIT.search(text) is not None


def is_suspense_candidate(tx: Transaction, members: Sequence[Member]) -> bool:
    """Description heuristic for an unattributed payment.

    A description containing any digit is never suspense. Otherwise the row
    is suspense if the description is blank, if its member_id does not
    resolve to a known member, or if the description mentions no member's
    name, member number or id.
    """
    description = tx.description or ""
    if has_digit(description):
        return False
    if not description.strip():
        return True

    if tx.member_id not in {m.id for m in members}:
        return True

    lowered = description.lower()
    for member in members:
        tokens = (member.name, member.member_number, str(member.id))
        if any(token and token.lower() in lowered for token in tokens):
            return False
    return True


class SuspenseClassifier:
    """Common interface for suspense-account views."""
    version = ""

    def classify(self, db: Session) -> list:
        raise NotImplementedError

    def summarize(self, rows: Sequence) -> AccountSummary:
        credits = sum((to_decimal(row.amount) for row in rows), ZERO)
        return AccountSummary(balance=credits, credits=credits, debits=ZERO, count=len(rows))


class SuspenseClassifierV1(SuspenseClassifier):
    """Heuristic view over the ``transactions`` table."""
    version = "v1"

    def classify(self, db: Session) -> List[Transaction]:
        try:
            members = db.execute(select(Member)).scalars().all()
            transactions = db.execute(
                select(Transaction).order_by(Transaction.created_at.desc())
            ).scalars().all()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Error loading rows for suspense classification: %s", e)
            raise AccountClassificationError("Failed to load rows for suspense classification") from e
        return [tx for tx in transactions if is_suspense_candidate(tx, members)]


class SuspenseClassifierV2(SuspenseClassifier):
    """Unmatched M-Pesa payments that have not been resolved yet."""
    version = "v2"

    def classify(self, db: Session) -> List[WrongMpesaTransaction]:
        try:
            return db.execute(
                select(WrongMpesaTransaction)
                .where(WrongMpesaTransaction.resolved_at.is_(None))
                .order_by(WrongMpesaTransaction.created_at.desc())
            ).scalars().all()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Error fetching unresolved M-Pesa transactions: %s", e)
            raise AccountClassificationError("Failed to load suspense transactions") from e


SUSPENSE_CLASSIFIERS = {
    SuspenseClassifierV1.version: SuspenseClassifierV1,
    SuspenseClassifierV2.version: SuspenseClassifierV2,
}


def get_suspense_classifier(version: str = "v2") -> SuspenseClassifier:
    try:
        return SUSPENSE_CLASSIFIERS[version]()
    except KeyError:
        raise ValueError(f"Unknown suspense classifier: {version}")
