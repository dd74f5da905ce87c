import logging
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from welfare.models.case import Case, CaseStatus, CaseType
from welfare.models.member import Dependant, Member
from welfare.models.transaction import Transaction, TransactionType
from welfare.services.ledger import ZERO, to_decimal
from welfare.services.numbering import generate_case_number

logger = logging.getLogger(__name__)


class CaseError(Exception):
    """Exception for case management errors."""
    pass


@dataclass
class CaseProgress:
    expected_amount: Decimal
    actual_amount: Decimal
    progress_percent: int


def _case_reference(case_number: str) -> re.Pattern:
    # "Case #C27" must not match "Case #C276"
    return re.compile(r"case\s*#\s*" + re.escape(case_number) + r"(?![0-9a-z])", re.IGNORECASE)


def is_case_contribution(tx: Transaction, case: Case) -> bool:
    """Whether a transaction counts toward a case's collected amount.

    Only contributions count. Rows linked through ``case_id`` are matched by
    key; legacy rows without a link fall back to a ``Case #<number>``
    reference in the description.
    """
    if tx.transaction_type != TransactionType.CONTRIBUTION.value:
        return False
    if tx.case_id is not None:
        return tx.case_id == case.id
    if not tx.description or not case.case_number:
        return False
    return _case_reference(case.case_number).search(tx.description) is not None


def case_contributions(case: Case, transactions: Iterable[Transaction]) -> List[Transaction]:
    return [tx for tx in transactions if is_case_contribution(tx, case)]


def progress_percent(actual: Decimal, expected: Decimal) -> int:
    """Rounded percentage of target collected. Not clamped at 100."""
    if expected == 0:
        return 0
    ratio = (actual / expected * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(ratio)


def calculate_case_progress(case: Case, transactions: Iterable[Transaction], member_count: int) -> CaseProgress:
    """Expected target against the current member count and amount collected so far."""
    expected = to_decimal(case.contribution_per_member) * member_count
    actual = sum((abs(to_decimal(tx.amount)) for tx in case_contributions(case, transactions)), ZERO)
    return CaseProgress(
        expected_amount=expected,
        actual_amount=actual,
        progress_percent=progress_percent(actual, expected),
    )


def count_members(db: Session) -> int:
    return db.execute(select(func.count(Member.id))).scalar() or 0


def get_contribution_transactions(db: Session) -> List[Transaction]:
    return db.execute(
        select(Transaction)
        .where(Transaction.transaction_type == TransactionType.CONTRIBUTION.value)
        .order_by(Transaction.created_at.desc())
    ).scalars().all()


def get_case_progress(db: Session, case: Case) -> CaseProgress:
    return calculate_case_progress(case, get_contribution_transactions(db), count_members(db))


def filter_cases(cases: Iterable[Case], status: str = "all", search: Optional[str] = None) -> List[Case]:
    """Status filter (all/open/closed/draft) plus free-text search."""
    result = list(cases)
    if search:
        needle = search.lower()
        result = [
            c for c in result
            if needle in (c.case_number or "").lower()
            or needle in (c.case_type.value if c.case_type else "")
            or (c.affected_member is not None and needle in (c.affected_member.name or "").lower())
        ]

    if status == "open":
        result = [c for c in result if c.status == CaseStatus.ACTIVE]
    elif status == "closed":
        result = [c for c in result if c.status == CaseStatus.FINALIZED]
    elif status == "draft":
        result = [c for c in result if c.status == CaseStatus.DRAFT]
    return result


def list_cases_with_progress(db: Session, status: str = "all", search: Optional[str] = None) -> List[dict]:
    """All cases, newest first, each with its computed progress."""
    cases = db.execute(select(Case).order_by(Case.created_at.desc())).scalars().all()
    cases = filter_cases(cases, status=status, search=search)
    transactions = get_contribution_transactions(db)
    member_count = count_members(db)
    return [
        {"case": case, "progress": calculate_case_progress(case, transactions, member_count)}
        for case in cases
    ]


def create_case(
    db: Session,
    affected_member_id: UUID,
    case_type: CaseType,
    contribution_per_member: Decimal,
    start_date: date,
    end_date: date,
    dependant_id: UUID = None,
    is_active: bool = False,
) -> Case:
    """
    Create a case with the next case number.

    ``expected_amount`` stores the target at creation time; read paths
    report the target against the current member count.
    """
    if contribution_per_member is None or contribution_per_member <= 0:
        raise CaseError("Contribution per member must be a positive number")
    if end_date < start_date:
        raise CaseError("End date cannot be before start date")

    member = db.get(Member, affected_member_id)
    if not member:
        raise CaseError("Affected member not found")

    if dependant_id is not None:
        dependant = db.get(Dependant, dependant_id)
        if not dependant or dependant.member_id != member.id:
            raise CaseError("Dependant does not belong to the affected member")

    case = Case(
        case_number=generate_case_number(db),
        affected_member_id=affected_member_id,
        dependant_id=dependant_id,
        case_type=case_type,
        contribution_per_member=contribution_per_member,
        start_date=start_date,
        end_date=end_date,
        expected_amount=contribution_per_member * count_members(db),
        actual_amount=ZERO,
        is_active=is_active,
        is_finalized=False,
    )
    db.add(case)
    db.commit()
    db.refresh(case)
    logger.info("Created case %s for member %s", case.case_number, member.member_number)
    return case


def record_contribution(
    db: Session,
    case_id: UUID,
    member_id: UUID,
    amount: Decimal,
    mpesa_reference: str = None,
) -> Transaction:
    """Record a member's contribution to a case, linked by ``case_id``."""
    if amount is None or amount <= 0:
        raise CaseError("Amount must be a positive number")

    case = db.get(Case, case_id)
    if not case:
        raise CaseError("Case not found")
    if case.is_finalized:
        raise CaseError(f"Case #{case.case_number} is finalized")
    if not db.get(Member, member_id):
        raise CaseError("Member not found")

    transaction = Transaction(
        member_id=member_id,
        case_id=case.id,
        amount=-abs(amount),
        transaction_type=TransactionType.CONTRIBUTION.value,
        mpesa_reference=mpesa_reference,
        description=f"Contribution for Case #{case.case_number}",
    )
    db.add(transaction)
    db.commit()
    db.refresh(transaction)
    return transaction


def delete_case(db: Session, case_id: UUID) -> None:
    """
    Delete a case. Its contributions keep their rows but lose the link, and
    their ``Case #<number>`` reference is rewritten so a later case that
    reuses the number is not credited with them.
    """
    case = db.get(Case, case_id)
    if not case:
        raise CaseError("Case not found")

    case_number = case.case_number
    for tx in case_contributions(case, get_contribution_transactions(db)):
        tx.case_id = None
        if tx.description:
            tx.description = _case_reference(case_number).sub(
                f"deleted case {case_number}", tx.description
            )
    # Rows of other types linked to the case
    for tx in db.execute(select(Transaction).where(Transaction.case_id == case.id)).scalars():
        tx.case_id = None

    db.delete(case)
    db.commit()
    logger.info("Deleted case %s", case_number)


def link_legacy_contributions(db: Session) -> int:
    """
    Set ``case_id`` on contributions that only reference their case in the
    description. Rows matching no case, or more than one, are left alone.

    Returns the number of rows linked. The caller commits.
    """
    cases = db.execute(select(Case)).scalars().all()
    patterns = [(case, _case_reference(case.case_number)) for case in cases if case.case_number]

    unlinked = db.execute(
        select(Transaction).where(
            Transaction.transaction_type == TransactionType.CONTRIBUTION.value,
            Transaction.case_id.is_(None),
        )
    ).scalars().all()

    linked = 0
    for tx in unlinked:
        if not tx.description:
            continue
        matches = [case for case, pattern in patterns if pattern.search(tx.description)]
        if len(matches) == 1:
            tx.case_id = matches[0].id
            linked += 1
        elif len(matches) > 1:
            logger.warning("Contribution %s references several cases; left unlinked", tx.id)
    return linked
