import uuid
from decimal import Decimal

from welfare.models.transaction import SuspenseStatus, WrongMpesaTransaction
from welfare.services.operations import fund_wallet


def test_collect_fee_uses_configured_amount(client, treasurer_headers, db, make_member):
    member = make_member(is_active=False)
    response = client.post(
        "/api/operations/fees",
        json={"member_id": str(member.id), "fee_type": "penalty", "amount": "300"},
        headers=treasurer_headers,
    )
    assert response.status_code == 201, response.text
    db.refresh(member)
    assert member.is_active is True

    renewal = client.post(
        "/api/operations/fees",
        json={"member_id": str(member.id), "fee_type": "renewal"},
        headers=treasurer_headers,
    )
    assert renewal.status_code == 201
    assert Decimal(str(renewal.json()["amount"])) == Decimal("200")


def test_collect_fee_for_unknown_member(client, treasurer_headers):
    response = client.post(
        "/api/operations/fees",
        json={"member_id": str(uuid.uuid4()), "fee_type": "renewal", "amount": "200"},
        headers=treasurer_headers,
    )
    assert response.status_code == 404


def test_collect_fee_rejects_non_fee_type(client, treasurer_headers, make_member):
    member = make_member()
    response = client.post(
        "/api/operations/fees",
        json={"member_id": str(member.id), "fee_type": "wallet_funding", "amount": "200"},
        headers=treasurer_headers,
    )
    assert response.status_code == 400


def test_bulk_renewal_returns_operation_id_for_retry(client, treasurer_headers, make_member):
    for i in range(3):
        make_member(name=f"Member {i}")

    first = client.post("/api/operations/renewals/bulk", json={"amount": "200"}, headers=treasurer_headers)
    assert first.status_code == 201
    body = first.json()
    assert body["created"] == 3

    retry = client.post(
        "/api/operations/renewals/bulk",
        json={"amount": "200", "operation_id": body["operation_id"]},
        headers=treasurer_headers,
    )
    assert retry.json()["created"] == 0
    assert retry.json()["skipped"] == 3


def test_fund_wallet_and_transfer(client, treasurer_headers, make_member):
    sender = make_member(name="Sender")
    recipient = make_member(name="Recipient")

    funded = client.post(
        f"/api/operations/members/{sender.id}/fund",
        json={"amount": "1000", "reference": "QWE987"},
        headers=treasurer_headers,
    )
    assert funded.status_code == 201, funded.text
    assert Decimal(str(funded.json()["wallet_balance"])) == Decimal("1000")

    transfer = client.post(
        f"/api/operations/members/{sender.id}/transfer",
        json={"to_member_id": str(recipient.id), "amount": "250"},
        headers=treasurer_headers,
    )
    assert transfer.status_code == 201, transfer.text
    assert Decimal(str(transfer.json()["sender_balance"])) == Decimal("750")
    assert Decimal(str(transfer.json()["recipient_balance"])) == Decimal("250")

    too_much = client.post(
        f"/api/operations/members/{sender.id}/transfer",
        json={"to_member_id": str(recipient.id), "amount": "5000"},
        headers=treasurer_headers,
    )
    assert too_much.status_code == 400
    assert "Insufficient funds" in too_much.json()["detail"]


def test_non_positive_amount_fails_request_validation(client, treasurer_headers, make_member):
    member = make_member()
    response = client.post(
        f"/api/operations/members/{member.id}/fund",
        json={"amount": "0"},
        headers=treasurer_headers,
    )
    assert response.status_code == 422


def test_suspense_transfer_then_conflict(client, treasurer_headers, db, make_member):
    member = make_member()
    suspense = WrongMpesaTransaction(mpesa_reference="ZXC159", amount=Decimal("450"), status=SuspenseStatus.UNRESOLVED.value)
    db.add(suspense)
    db.commit()

    first = client.post(
        f"/api/operations/suspense/{suspense.id}/transfer",
        json={"member_id": str(member.id)},
        headers=treasurer_headers,
    )
    assert first.status_code == 201, first.text
    assert first.json()["transaction_type"] == "mpesa"

    again = client.post(
        f"/api/operations/suspense/{suspense.id}/transfer",
        json={"member_id": str(member.id)},
        headers=treasurer_headers,
    )
    assert again.status_code == 409


def test_assign_suspense_transaction(client, treasurer_headers, make_member, add_transaction):
    wrong = make_member(name="Wrong")
    right = make_member(name="Right")
    tx = add_transaction(wrong, 300, "mpesa", description="cash deposit")

    response = client.post(
        f"/api/operations/suspense/transactions/{tx.id}/assign",
        json={"member_id": str(right.id)},
        headers=treasurer_headers,
    )
    assert response.status_code == 200
    assert response.json()["member_id"] == str(right.id)
    assert Decimal(str(response.json()["amount"])) == Decimal("300")


def test_assign_member_owned_transaction_is_rejected(client, db, treasurer_headers, make_member):
    owner = make_member(name="Owner")
    other = make_member(name="Other")
    funded = fund_wallet(db, owner.id, Decimal("300"), mpesa_reference="RTY789")

    response = client.post(
        f"/api/operations/suspense/transactions/{funded.transaction.id}/assign",
        json={"member_id": str(other.id)},
        headers=treasurer_headers,
    )
    assert response.status_code == 400


def test_reused_operation_id_is_a_client_error(client, db, treasurer_headers, make_member):
    alice = make_member(name="Alice")
    bob = make_member(name="Bob")
    operation_id = str(uuid.uuid4())
    first = client.post(
        f"/api/operations/members/{alice.id}/fund",
        json={"amount": "300", "reference": "UIO456", "operation_id": operation_id},
        headers=treasurer_headers,
    )
    assert first.status_code == 201, first.text

    transfer = client.post(
        f"/api/operations/members/{alice.id}/transfer",
        json={"to_member_id": str(bob.id), "amount": "100", "operation_id": operation_id},
        headers=treasurer_headers,
    )
    assert transfer.status_code == 400
    assert "different operation" in transfer.json()["detail"]


def test_member_self_service(client, db, member_login, make_member):
    member, headers = member_login
    friend = make_member(name="Friend")
    fund_wallet(db, member.id, Decimal("500"))

    profile = client.get("/api/me", headers=headers)
    assert profile.status_code == 200
    assert profile.json()["member_number"] == member.member_number

    wallet = client.get("/api/me/wallet", headers=headers).json()
    assert Decimal(str(wallet["wallet_balance"])) == Decimal("500")

    sent = client.post("/api/me/transfer", json={"to_member_id": str(friend.id), "amount": "200"}, headers=headers)
    assert sent.status_code == 201, sent.text
    assert Decimal(str(sent.json()["sender_balance"])) == Decimal("300")

    assert client.get("/api/me/cases", headers=headers).json() == []


def test_staff_without_member_record_has_no_self_service(client, admin_headers):
    assert client.get("/api/me", headers=admin_headers).status_code == 404
