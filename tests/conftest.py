import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("AUDIT_LOG_DIR", tempfile.mkdtemp(prefix="welfare-audit-"))

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from welfare.db.base import Base, get_db
from welfare.main import app
from welfare.models.member import Gender, Member
from welfare.models.transaction import Transaction, TransactionType
from welfare.models.user import UserRole
from welfare.services.auth import create_access_token_for_user, create_user
from welfare.services.numbering import generate_member_number

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite does not emit BEGIN itself, which breaks SAVEPOINT; take over
# transaction control so Session.begin_nested() works in tests.
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_member(db):
    counter = {"n": 0}

    def _make(name="Jane Wanjiku", residence="Nairobi", is_active=True, **fields):
        counter["n"] += 1
        member = Member(
            member_number=generate_member_number(db),
            name=name,
            gender=fields.pop("gender", Gender.FEMALE),
            date_of_birth=fields.pop("date_of_birth", date(1985, 5, 1)),
            national_id_number=fields.pop("national_id_number", f"2{counter['n']:07d}"),
            residence=residence,
            next_of_kin=fields.pop("next_of_kin", {"name": "John Doe", "relationship": "spouse"}),
            is_active=is_active,
            wallet_balance=Decimal("0.00"),
            **fields,
        )
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    return _make


@pytest.fixture
def add_transaction(db):
    def _add(member, amount, transaction_type=TransactionType.WALLET_FUNDING, description=None, case=None, **fields):
        tx = Transaction(
            member_id=member.id,
            amount=Decimal(str(amount)),
            transaction_type=getattr(transaction_type, "value", transaction_type),
            description=description,
            case_id=case.id if case is not None else None,
            **fields,
        )
        db.add(tx)
        db.commit()
        db.refresh(tx)
        return tx

    return _add


def _auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token_for_user(user)}"}


@pytest.fixture
def admin_user(db):
    return create_user(db, username="admin", password="admin123", name="Admin User", role=UserRole.SUPER_ADMIN)


@pytest.fixture
def treasurer_user(db):
    return create_user(db, username="treasurer", password="treasurer123", name="Tess Treasurer", role=UserRole.TREASURER)


@pytest.fixture
def secretary_user(db):
    return create_user(db, username="secretary", password="secretary123", name="Sam Secretary", role=UserRole.SECRETARY)


@pytest.fixture
def admin_headers(admin_user):
    return _auth_headers(admin_user)


@pytest.fixture
def treasurer_headers(treasurer_user):
    return _auth_headers(treasurer_user)


@pytest.fixture
def secretary_headers(secretary_user):
    return _auth_headers(secretary_user)


@pytest.fixture
def member_login(db, make_member):
    """A member with a linked member-role login; returns (member, headers)."""
    member = make_member(name="Mary Member")
    user = create_user(db, username="mary", password="mary1234", name=member.name, role=UserRole.MEMBER, member_id=member.id)
    return member, _auth_headers(user)
