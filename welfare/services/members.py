import logging
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from welfare.models.member import Dependant, Gender, Member, Residence
from welfare.models.transaction import Transaction, TransactionType
from welfare.models.user import UserRole
from welfare.services.auth import UserError, create_user
from welfare.services.ledger import get_all_wallet_balances, sync_wallet_balance_column, ZERO
from welfare.services.numbering import generate_member_number

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "phone_number", "email_address", "residence", "national_id_number", "next_of_kin")


class MemberError(Exception):
    """Exception for member registration and maintenance errors."""
    pass


def insert_member(
    db: Session,
    name: str,
    gender: Gender,
    date_of_birth: date,
    national_id_number: str,
    residence: str,
    next_of_kin: dict,
    phone_number: str = None,
    email_address: str = None,
    dependants: List[dict] = None,
    registration_fee_paid: bool = False,
    registration_fee: Decimal = None,
    username: str = None,
    password: str = None,
) -> Member:
    """
    Register a member with everything captured on the registration form.

    The member, dependants, optional paid registration fee and optional login
    are written in one commit.
    """
    member = Member(
        member_number=generate_member_number(db),
        name=name,
        gender=gender,
        date_of_birth=date_of_birth,
        national_id_number=national_id_number,
        phone_number=phone_number,
        email_address=email_address,
        residence=residence,
        next_of_kin=next_of_kin or {},
        registration_date=datetime.utcnow(),
        is_active=True,
        wallet_balance=ZERO,
    )
    db.add(member)

    try:
        db.flush()  # Get member.id

        for dependant in dependants or []:
            db.add(Dependant(
                member_id=member.id,
                name=dependant["name"],
                gender=dependant["gender"],
                relation=dependant["relationship"],
                date_of_birth=dependant["date_of_birth"],
                is_disabled=dependant.get("is_disabled", False),
                is_eligible=dependant.get("is_eligible", True),
            ))

        if registration_fee_paid and registration_fee and registration_fee > 0:
            db.add(Transaction(
                member_id=member.id,
                amount=registration_fee,
                transaction_type=TransactionType.REGISTRATION.value,
                description="Registration fee payment",
            ))
            sync_wallet_balance_column(db, member.id)

        if username:
            if not password:
                raise MemberError("Password is required when creating a login")
            create_user(
                db,
                username=username,
                password=password,
                name=name,
                role=UserRole.MEMBER,
                member_id=member.id,
                commit=False,
            )

        db.commit()
    except UserError as e:
        db.rollback()
        raise MemberError(str(e))
    except IntegrityError as e:
        db.rollback()
        logger.error("IntegrityError registering member %s: %s", name, e.orig if hasattr(e, "orig") else e)
        raise MemberError("Registration failed. Member number or username already in use.")
    except MemberError:
        db.rollback()
        raise

    db.refresh(member)
    logger.info("Registered member %s (%s)", member.member_number, member.name)
    return member


def list_members(db: Session, search: Optional[str] = None) -> List[dict]:
    """Members ordered by name, each with the ledger-derived wallet balance."""
    query = select(Member).order_by(Member.name)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Member.name.ilike(pattern), Member.member_number.ilike(pattern)))
    members = db.execute(query).scalars().all()
    balances = get_all_wallet_balances(db)
    return [{"member": m, "wallet_balance": balances.get(m.id, ZERO)} for m in members]


def get_member(db: Session, member_id: UUID) -> Member:
    member = db.get(Member, member_id)
    if not member:
        raise MemberError("Member not found")
    return member


def update_member(db: Session, member_id: UUID, changes: dict) -> Member:
    """Update contact details. Numbers, balances and status are not editable here."""
    member = get_member(db, member_id)
    for key, value in changes.items():
        if key not in EDITABLE_FIELDS:
            raise MemberError(f"Field cannot be edited: {key}")
        setattr(member, key, value)
    db.commit()
    db.refresh(member)
    return member


def add_dependant(db: Session, member_id: UUID, **fields) -> Dependant:
    member = get_member(db, member_id)
    dependant = Dependant(
        member_id=member.id,
        name=fields["name"],
        gender=fields["gender"],
        relation=fields["relationship"],
        date_of_birth=fields["date_of_birth"],
        is_disabled=fields.get("is_disabled", False),
        is_eligible=fields.get("is_eligible", True),
    )
    db.add(dependant)
    db.commit()
    db.refresh(dependant)
    return dependant


def list_residences(db: Session) -> List[Residence]:
    return db.execute(select(Residence).order_by(Residence.name)).scalars().all()


def create_residence(db: Session, name: str) -> Residence:
    name = (name or "").strip()
    if not name:
        raise MemberError("Residence name is required")
    existing = db.execute(select(Residence).where(Residence.name == name)).scalars().first()
    if existing:
        raise MemberError("Residence already exists")
    residence = Residence(name=name)
    db.add(residence)
    db.commit()
    db.refresh(residence)
    return residence
