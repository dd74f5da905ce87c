import uuid
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from welfare.models.transaction import SuspenseStatus, TransactionType, WrongMpesaTransaction
from welfare.services.accounts import (
    AccountClassificationError, AccountName, SuspenseClassifierV1, SuspenseClassifierV2,
    filter_account, get_account_transactions, get_suspense_classifier, is_suspense_candidate, summarize,
)


def member(name, number):
    return SimpleNamespace(id=uuid.uuid4(), name=name, member_number=number)


def row(member_id, description, amount=Decimal("100"), transaction_type="mpesa"):
    return SimpleNamespace(member_id=member_id, description=description, amount=amount, transaction_type=transaction_type)


@pytest.fixture
def members():
    return [member("Grace Akinyi", "M001"), member("Peter Otieno", "M002")]


def test_filter_account_is_an_equality_filter():
    rows = [row(None, "a", transaction_type=t) for t in ("renewal", "penalty", "renewal", "registration")]
    assert len(filter_account(rows, AccountName.RENEWAL)) == 2
    assert len(filter_account(rows, AccountName.ARREARS)) == 0
    with pytest.raises(ValueError):
        filter_account(rows, AccountName.SUSPENSE)


def test_summary_counts_every_row_as_a_credit():
    summary = summarize([row(None, "x", Decimal("-200")), row(None, "y", Decimal("500"))])
    assert summary.credits == Decimal("700")
    assert summary.debits == Decimal("0")
    assert summary.balance == Decimal("700")
    assert summary.count == 2


def test_digit_in_description_is_never_suspense(members):
    stranger = uuid.uuid4()
    assert is_suspense_candidate(row(stranger, "paid on 3rd"), members) is False


def test_blank_description_is_suspense(members):
    assert is_suspense_candidate(row(members[0].id, "   "), members) is True
    assert is_suspense_candidate(row(members[0].id, None), members) is True


def test_unknown_member_is_suspense(members):
    assert is_suspense_candidate(row(uuid.uuid4(), "grace akinyi payment"), members) is True


def test_description_naming_a_member_is_not_suspense(members):
    assert is_suspense_candidate(row(members[1].id, "Payment from PETER OTIENO"), members) is False


def test_description_naming_nobody_is_suspense(members):
    assert is_suspense_candidate(row(members[1].id, "payment via agent"), members) is True


def test_get_suspense_classifier():
    assert isinstance(get_suspense_classifier(), SuspenseClassifierV2)
    assert isinstance(get_suspense_classifier("v1"), SuspenseClassifierV1)
    with pytest.raises(ValueError):
        get_suspense_classifier("v3")


def test_v2_lists_only_unresolved_payments(db):
    db.add_all([
        WrongMpesaTransaction(mpesa_reference="QWE123", amount=Decimal("300"), status=SuspenseStatus.UNRESOLVED.value),
        WrongMpesaTransaction(mpesa_reference="RTY456", amount=Decimal("450"), status=SuspenseStatus.UNRESOLVED.value),
        WrongMpesaTransaction(
            mpesa_reference="UIO789",
            amount=Decimal("900"),
            status=SuspenseStatus.RESOLVED.value,
            resolved_at=datetime.utcnow(),
        ),
    ])
    db.commit()

    classifier = SuspenseClassifierV2()
    rows = classifier.classify(db)
    assert {r.mpesa_reference for r in rows} == {"QWE123", "RTY456"}
    summary = classifier.summarize(rows)
    assert summary.credits == Decimal("750")
    assert summary.count == 2


def test_v1_classifies_ledger_rows(db, make_member, add_transaction):
    grace = make_member(name="Grace Akinyi")
    add_transaction(grace, 500, TransactionType.MPESA, description="Grace Akinyi")
    unmatched = add_transaction(grace, 200, TransactionType.MPESA, description="paybill deposit")
    add_transaction(grace, 300, TransactionType.MPESA, description="ref 99881")

    rows = SuspenseClassifierV1().classify(db)
    assert [r.id for r in rows] == [unmatched.id]


def test_v1_member_lookup_failure_raises(monkeypatch, db):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("timeout"))

    monkeypatch.setattr(db, "execute", broken)
    with pytest.raises(AccountClassificationError):
        SuspenseClassifierV1().classify(db)


def test_v1_transaction_lookup_failure_raises(monkeypatch, db):
    real_execute = db.execute
    calls = {"n": 0}

    def fails_second_query(*args, **kwargs):
        calls["n"] += 1
        if calls["n"] == 2:
            raise OperationalError("SELECT", {}, Exception("timeout"))
        return real_execute(*args, **kwargs)

    monkeypatch.setattr(db, "execute", fails_second_query)
    with pytest.raises(AccountClassificationError):
        SuspenseClassifierV1().classify(db)
    assert calls["n"] == 2


def test_direct_account_read_failure_raises(monkeypatch, db):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("timeout"))

    monkeypatch.setattr(db, "execute", broken)
    with pytest.raises(AccountClassificationError):
        get_account_transactions(db, AccountName.PENALTY)
