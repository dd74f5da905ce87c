import re
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from welfare.models.case import Case
from welfare.models.member import Member
from welfare.services.settings import get_settings

_NUMBER = re.compile(r"(\d+)$")


def next_sequence_number(existing: Iterable[str], start_from: int) -> int:
    """Next number after the highest existing one, never below ``start_from``."""
    highest = None
    for value in existing:
        match = _NUMBER.search(value or "")
        if match:
            number = int(match.group(1))
            highest = number if highest is None else max(highest, number)
    if highest is None:
        return start_from
    return max(highest + 1, start_from)


def format_number(prefix: str, number: int) -> str:
    return f"{prefix}{number:03d}"


def generate_member_number(db: Session) -> str:
    """Member numbers look like ``M001``."""
    start_from = get_settings(db).member_id_start or 1
    existing = db.execute(select(Member.member_number)).scalars().all()
    return format_number("M", next_sequence_number(existing, start_from))


def generate_case_number(db: Session) -> str:
    """Case numbers look like ``C001``."""
    start_from = get_settings(db).case_id_start or 1
    existing = db.execute(select(Case.case_number)).scalars().all()
    return format_number("C", next_sequence_number(existing, start_from))
