import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from welfare.models.transaction import SuspenseStatus, Transaction, TransactionType, WrongMpesaTransaction
from welfare.services import operations
from welfare.services.ledger import get_member_wallet_balance
from welfare.services.operations import (
    AlreadyResolvedError, InsufficientFundsError, NotFoundError, ValidationError,
    assign_suspense_transaction, collect_bulk_renewal, collect_fee, fund_wallet, transfer_funds,
    transfer_suspense_to_member,
)


def rows_for(db, operation_id):
    return db.execute(select(Transaction).where(Transaction.operation_id == operation_id)).scalars().all()


@pytest.mark.parametrize("fee_type", [TransactionType.REGISTRATION, TransactionType.PENALTY])
def test_registration_and_penalty_fees_reactivate(db, make_member, fee_type):
    member = make_member(is_active=False)

    tx = collect_fee(db, member.id, fee_type, Decimal("500"), mpesa_reference="QAZ123")

    assert tx.amount == Decimal("500")
    assert tx.transaction_type == fee_type.value
    db.refresh(member)
    assert member.is_active is True


def test_renewal_fee_does_not_reactivate(db, make_member):
    member = make_member(is_active=False)
    collect_fee(db, member.id, TransactionType.RENEWAL, Decimal("200"))
    db.refresh(member)
    assert member.is_active is False


@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10"), None])
def test_fee_requires_positive_amount(db, make_member, amount):
    member = make_member()
    with pytest.raises(ValidationError):
        collect_fee(db, member.id, TransactionType.RENEWAL, amount)
    assert db.execute(select(Transaction)).scalars().all() == []


def test_fee_type_must_be_a_fee(db, make_member):
    member = make_member()
    with pytest.raises(ValidationError):
        collect_fee(db, member.id, TransactionType.WALLET_FUNDING, Decimal("100"))


def test_fee_for_unknown_member(db):
    with pytest.raises(NotFoundError):
        collect_fee(db, uuid.uuid4(), TransactionType.RENEWAL, Decimal("100"))


def test_fee_retry_with_same_operation_id_records_once(db, make_member):
    member = make_member()
    operation_id = uuid.uuid4()
    first = collect_fee(db, member.id, TransactionType.RENEWAL, Decimal("200"), operation_id=operation_id)
    again = collect_fee(db, member.id, TransactionType.RENEWAL, Decimal("200"), operation_id=operation_id)
    assert first.id == again.id
    assert len(rows_for(db, operation_id)) == 1


def test_bulk_renewal_charges_every_member(db, make_member):
    members = [make_member(name=f"Member {i}") for i in range(5)]

    result = collect_bulk_renewal(db, Decimal("200"), batch_size=2)

    assert result.member_count == 5
    assert result.created == 5
    assert result.batches == 3
    rows = rows_for(db, result.operation_id)
    assert {r.member_id for r in rows} == {m.id for m in members}
    assert all(r.amount == Decimal("-200") for r in rows)
    assert all(r.transaction_type == "renewal" for r in rows)


def test_bulk_renewal_run_twice_charges_twice(db, make_member):
    for i in range(3):
        make_member(name=f"Member {i}")

    collect_bulk_renewal(db, Decimal("200"))
    collect_bulk_renewal(db, Decimal("200"))

    renewals = db.execute(
        select(Transaction).where(Transaction.transaction_type == TransactionType.RENEWAL.value)
    ).scalars().all()
    assert len(renewals) == 6


def test_bulk_renewal_resume_skips_members_already_charged(db, make_member):
    for i in range(4):
        make_member(name=f"Member {i}")
    first = collect_bulk_renewal(db, Decimal("200"), batch_size=2)

    # Simulate a run that died after its first batch
    for tx in rows_for(db, first.operation_id)[2:]:
        db.delete(tx)
    db.commit()

    resumed = collect_bulk_renewal(db, Decimal("200"), operation_id=first.operation_id, batch_size=2)

    assert resumed.skipped == 2
    assert resumed.created == 2
    assert len(rows_for(db, first.operation_id)) == 4


def test_bulk_renewal_without_members(db):
    with pytest.raises(ValidationError):
        collect_bulk_renewal(db, Decimal("200"))


def test_fund_wallet_updates_ledger_and_column(db, make_member):
    member = make_member()

    result = fund_wallet(db, member.id, Decimal("1500"), mpesa_reference="RFG456")

    assert result.ledger_balance == Decimal("1500")
    assert result.column_synced is True
    assert result.transaction.description == "Wallet funding - RFG456"
    db.refresh(member)
    assert member.wallet_balance == Decimal("1500")


def test_fund_wallet_commits_ledger_row_when_column_update_fails(monkeypatch, db, make_member):
    member = make_member()

    def broken(db, member_id):
        raise OperationalError("UPDATE members", {}, Exception("lock timeout"))

    monkeypatch.setattr(operations, "sync_wallet_balance_column", broken)
    result = fund_wallet(db, member.id, Decimal("700"))

    assert result.column_synced is False
    assert result.ledger_balance == Decimal("700")
    assert get_member_wallet_balance(db, member.id) == Decimal("700")
    db.refresh(member)
    assert member.wallet_balance == Decimal("0")


def test_fund_wallet_retry_is_replayed(db, make_member):
    member = make_member()
    operation_id = uuid.uuid4()
    fund_wallet(db, member.id, Decimal("300"), operation_id=operation_id)
    replay = fund_wallet(db, member.id, Decimal("300"), operation_id=operation_id)

    assert replay.replayed is True
    assert replay.ledger_balance == Decimal("300")
    assert len(rows_for(db, operation_id)) == 1


def test_transfer_moves_funds(db, make_member):
    sender = make_member(name="Sender")
    recipient = make_member(name="Recipient")
    fund_wallet(db, sender.id, Decimal("1000"))

    result = transfer_funds(db, sender.id, recipient.id, Decimal("400"), reference_text="School fees")

    assert result.debit.amount == Decimal("-400")
    assert result.credit.amount == Decimal("400")
    assert result.debit.transaction_type == TransactionType.TRANSFER.value
    assert result.sender_balance == Decimal("600")
    assert result.recipient_balance == Decimal("400")
    assert get_member_wallet_balance(db, recipient.id) == Decimal("400")


def test_transfer_rejects_insufficient_funds(db, make_member):
    sender = make_member(name="Sender")
    recipient = make_member(name="Recipient")
    fund_wallet(db, sender.id, Decimal("100"))

    with pytest.raises(InsufficientFundsError):
        transfer_funds(db, sender.id, recipient.id, Decimal("100.01"))
    assert get_member_wallet_balance(db, recipient.id) == Decimal("0")


def test_transfer_validation(db, make_member):
    sender = make_member(name="Sender")
    fund_wallet(db, sender.id, Decimal("100"))
    with pytest.raises(ValidationError):
        transfer_funds(db, sender.id, sender.id, Decimal("10"))
    with pytest.raises(ValidationError):
        transfer_funds(db, sender.id, None, Decimal("10"))
    with pytest.raises(ValidationError):
        transfer_funds(db, sender.id, uuid.uuid4(), Decimal("0"))


def test_suspense_transfer_credits_member_and_resolves(db, make_member):
    member = make_member()
    suspense = WrongMpesaTransaction(
        mpesa_reference="SXT001",
        amount=Decimal("650"),
        payer_name="J. DOE",
        status=SuspenseStatus.UNRESOLVED.value,
    )
    db.add(suspense)
    db.commit()

    tx = transfer_suspense_to_member(db, suspense.id, member.id)

    assert tx.transaction_type == TransactionType.MPESA.value
    assert tx.amount == Decimal("650")
    assert tx.description == member.member_number
    db.refresh(suspense)
    assert suspense.status == SuspenseStatus.RESOLVED.value
    assert suspense.resolved_at is not None

    with pytest.raises(AlreadyResolvedError):
        transfer_suspense_to_member(db, suspense.id, member.id)


def test_suspense_transfer_unknown_record(db, make_member):
    member = make_member()
    with pytest.raises(NotFoundError):
        transfer_suspense_to_member(db, uuid.uuid4(), member.id)


def test_assign_suspense_credits_member_and_retires_row(db, make_member, add_transaction):
    wrong = make_member(name="Wrong Member")
    right = make_member(name="Right Member")
    tx = add_transaction(wrong, 250, TransactionType.MPESA, description="paybill deposit", mpesa_reference="PLM852")

    assigned = assign_suspense_transaction(db, tx.id, right.id)

    assert assigned.member_id == right.id
    assert assigned.amount == Decimal("250")
    assert right.member_number in assigned.description
    assert "PLM852" in assigned.description
    assert assigned.transaction_type == TransactionType.WALLET_FUNDING.value
    assert db.get(Transaction, tx.id) is None
    assert get_member_wallet_balance(db, wrong.id) == Decimal("0")
    assert get_member_wallet_balance(db, right.id) == Decimal("250")

    with pytest.raises(ValidationError):
        assign_suspense_transaction(db, assigned.id, wrong.id)


def test_assign_refuses_member_owned_row(db, make_member):
    owner = make_member(name="Owner Member")
    other = make_member(name="Other Member")
    funded = fund_wallet(db, owner.id, Decimal("400"), mpesa_reference="QWE123")

    with pytest.raises(ValidationError):
        assign_suspense_transaction(db, funded.transaction.id, other.id)

    assert db.get(Transaction, funded.transaction.id).member_id == owner.id
    assert get_member_wallet_balance(db, owner.id) == Decimal("400")
    assert get_member_wallet_balance(db, other.id) == Decimal("0")


def test_assign_unknown_transaction(db, make_member):
    member = make_member()
    with pytest.raises(NotFoundError):
        assign_suspense_transaction(db, uuid.uuid4(), member.id)


def test_operation_id_of_a_fee_cannot_be_reused_for_a_transfer(db, make_member):
    alice = make_member(name="Alice Njeri")
    bob = make_member(name="Bob Kamau")
    fund_wallet(db, alice.id, Decimal("500"), mpesa_reference="ABC111")
    operation_id = uuid.uuid4()
    collect_fee(db, alice.id, TransactionType.RENEWAL, Decimal("200"), operation_id=operation_id)

    with pytest.raises(ValidationError, match="different operation"):
        transfer_funds(db, alice.id, bob.id, Decimal("100"), operation_id=operation_id)

    assert len(rows_for(db, operation_id)) == 1


def test_operation_id_of_a_funding_cannot_be_reused_for_a_fee(db, make_member):
    alice = make_member(name="Alice Njeri")
    operation_id = uuid.uuid4()
    fund_wallet(db, alice.id, Decimal("300"), mpesa_reference="ABC222", operation_id=operation_id)

    with pytest.raises(ValidationError, match="different operation"):
        collect_fee(db, alice.id, TransactionType.PENALTY, Decimal("50"), operation_id=operation_id)


def test_operation_id_replay_for_another_member_is_refused(db, make_member):
    alice = make_member(name="Alice Njeri")
    bob = make_member(name="Bob Kamau")
    operation_id = uuid.uuid4()
    fund_wallet(db, alice.id, Decimal("300"), mpesa_reference="ABC333", operation_id=operation_id)

    with pytest.raises(ValidationError, match="different operation"):
        fund_wallet(db, bob.id, Decimal("300"), mpesa_reference="ABC333", operation_id=operation_id)

    assert get_member_wallet_balance(db, bob.id) == Decimal("0")


def test_transfer_replay_in_reverse_direction_is_refused(db, make_member):
    alice = make_member(name="Alice Njeri")
    bob = make_member(name="Bob Kamau")
    fund_wallet(db, alice.id, Decimal("500"), mpesa_reference="ABC444")
    fund_wallet(db, bob.id, Decimal("500"), mpesa_reference="ABC555")
    operation_id = uuid.uuid4()
    transfer_funds(db, alice.id, bob.id, Decimal("100"), operation_id=operation_id)

    with pytest.raises(ValidationError, match="different operation"):
        transfer_funds(db, bob.id, alice.id, Decimal("100"), operation_id=operation_id)

    assert len(rows_for(db, operation_id)) == 2


def test_bulk_renewal_refuses_operation_id_of_another_command(db, make_member):
    alice = make_member(name="Alice Njeri")
    make_member(name="Bob Kamau")
    operation_id = uuid.uuid4()
    collect_fee(db, alice.id, TransactionType.PENALTY, Decimal("50"), operation_id=operation_id)

    with pytest.raises(ValidationError, match="different operation"):
        collect_bulk_renewal(db, Decimal("200"), operation_id=operation_id)

    assert len(rows_for(db, operation_id)) == 1
