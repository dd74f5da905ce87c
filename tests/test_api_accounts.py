from datetime import datetime
from decimal import Decimal


from welfare.models.transaction import SuspenseStatus, TransactionType, WrongMpesaTransaction


def test_direct_account_summary(client, secretary_headers, make_member, add_transaction):
    member = make_member()
    add_transaction(member, 500, TransactionType.PENALTY)
    add_transaction(member, 250, TransactionType.PENALTY)
    add_transaction(member, 200, TransactionType.RENEWAL)

    response = client.get("/api/accounts/penalty", headers=secretary_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["account"] == "penalty"
    assert body["summary"]["count"] == 2
    assert Decimal(str(body["summary"]["credits"])) == Decimal("750")
    assert Decimal(str(body["summary"]["balance"])) == Decimal("750")


def test_unknown_account_is_rejected(client, secretary_headers):
    assert client.get("/api/accounts/savings", headers=secretary_headers).status_code == 422


def test_suspense_defaults_to_unresolved_mpesa_payments(client, db, secretary_headers):
    db.add_all([
        WrongMpesaTransaction(mpesa_reference="AAA111", amount=Decimal("100"), status=SuspenseStatus.UNRESOLVED.value),
        WrongMpesaTransaction(
            mpesa_reference="BBB222",
            amount=Decimal("900"),
            status=SuspenseStatus.RESOLVED.value,
            resolved_at=datetime.utcnow(),
        ),
    ])
    db.commit()

    body = client.get("/api/accounts/suspense", headers=secretary_headers).json()
    assert body["classifier"] == "v2"
    assert [row["mpesa_reference"] for row in body["transactions"]] == ["AAA111"]
    assert Decimal(str(body["summary"]["credits"])) == Decimal("100")


def test_suspense_heuristic_view(client, secretary_headers, make_member, add_transaction):
    member = make_member(name="Grace Akinyi")
    add_transaction(member, 300, TransactionType.MPESA, description="cash deposit")
    add_transaction(member, 300, TransactionType.MPESA, description="Grace Akinyi")

    body = client.get("/api/accounts/suspense", params={"classifier": "v1"}, headers=secretary_headers).json()
    assert body["classifier"] == "v1"
    assert [row["description"] for row in body["transactions"]] == ["cash deposit"]


def test_unknown_classifier(client, secretary_headers):
    response = client.get("/api/accounts/suspense", params={"classifier": "v9"}, headers=secretary_headers)
    assert response.status_code == 400


def test_classification_failure_is_reported_not_fatal(monkeypatch, client, secretary_headers):
    from welfare.services import accounts

    def broken(self, db):
        raise accounts.AccountClassificationError("Failed to load members for suspense classification")

    monkeypatch.setattr(accounts.SuspenseClassifierV1, "classify", broken)
    response = client.get("/api/accounts/suspense", params={"classifier": "v1"}, headers=secretary_headers)
    assert response.status_code == 503
    assert "suspense" in response.json()["detail"]
