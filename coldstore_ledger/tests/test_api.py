"""
HTTP surface tests: authentication, access guards, error envelopes and a
full lot-to-dues flow through the API.
"""

import pytest

from coldstore_ledger.app.core.exceptions import NoOpWarning


@pytest.fixture
def lot_json(chamber):
    return {
        "farmer_name": "Ramesh Patel",
        "village": "Deesa",
        "contact_number": "9800000001",
        "chamber_id": chamber.id,
        "floor": 1,
        "position": "A-12",
        "original_size": 20,
        "bag_type": "wafer",
    }


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database"] == "sqlite"


@pytest.mark.asyncio
async def test_requests_without_token_are_rejected(client, lot_json):
    response = await client.post("/v1/lots", json=lot_json)
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_invalid_token_is_unauthorized(client):
    response = await client.get("/v1/buyers/dues", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json()["error_code"] == "ERR_AUTH_001"


@pytest.mark.asyncio
async def test_view_access_cannot_mutate(client, view_headers, lot_json):
    response = await client.post("/v1/lots", json=lot_json, headers=view_headers)
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"

    response = await client.get("/v1/buyers/dues", headers=view_headers)
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_lot_sale_receipt_flow(client, auth_headers, lot_json):
    response = await client.post("/v1/lots", json=lot_json, headers=auth_headers)
    assert response.status_code == 201
    lot = response.json()
    assert lot["lot_no"] == "1"
    assert lot["remaining_size"] == 20

    response = await client.post(
        f"/v1/lots/{lot['id']}/partial-sale",
        json={"quantity": 5, "payment_status": "due", "buyer_name": "Mahesh Traders"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    sale = response.json()
    assert sale["cold_storage_charge"] == 550.0
    assert sale["due_amount"] == 550.0

    response = await client.post(
        "/v1/receipts",
        json={"payer_type": "cold_merchant", "buyer_name": "mahesh traders", "amount": 200.0},
        headers=auth_headers,
    )
    assert response.status_code == 201
    receipt = response.json()
    assert receipt["applied_amount"] == 200.0
    assert receipt["transaction_id"].startswith("CF")

    response = await client.get("/v1/buyers/dues", headers=auth_headers)
    assert response.status_code == 200
    dues = response.json()
    assert len(dues) == 1
    assert dues[0]["party_key"] == "buyer:mahesh traders"
    assert dues[0]["total_due"] == 350.0

    response = await client.get(f"/v1/lots/{lot['id']}", headers=auth_headers)
    assert response.json()["remaining_size"] == 15
    assert response.json()["total_due_charge"] == 350.0


@pytest.mark.asyncio
async def test_over_quantity_sale_is_a_validation_error(client, auth_headers, lot_json):
    lot = (await client.post("/v1/lots", json=lot_json, headers=auth_headers)).json()

    response = await client.post(
        f"/v1/lots/{lot['id']}/partial-sale",
        json={"quantity": 25, "payment_status": "paid", "buyer_name": "Mahesh Traders"},
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_001"

    response = await client.get(f"/v1/lots/{lot['id']}", headers=auth_headers)
    assert response.json()["remaining_size"] == 20


@pytest.mark.asyncio
async def test_lot_size_cannot_be_patched(client, auth_headers, lot_json):
    lot = (await client.post("/v1/lots", json=lot_json, headers=auth_headers)).json()

    response = await client.patch(f"/v1/lots/{lot['id']}", json={"original_size": 50}, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_VALIDATION_001"


@pytest.mark.asyncio
async def test_unknown_lot_is_not_found(client, auth_headers):
    response = await client.get("/v1/lots/999", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_bad_financial_year(client, auth_headers):
    response = await client.get("/v1/reports/balance-sheet/2024-26", headers=auth_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_reversal_twice_is_a_noop(client, auth_headers):
    receipt = (await client.post(
        "/v1/receipts", json={"payer_type": "others", "amount": 75.0}, headers=auth_headers
    )).json()

    response = await client.post(f"/v1/reversals/receipt/{receipt['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "reversed"

    with pytest.warns(NoOpWarning):
        response = await client.post(f"/v1/reversals/receipt/{receipt['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "noop"

    response = await client.get(f"/v1/receipts/{receipt['id']}", headers=auth_headers)
    assert response.json()["is_reversed"] is True


@pytest.mark.asyncio
async def test_audit_log_lists_reversals(client, auth_headers):
    receipt = (await client.post(
        "/v1/receipts", json={"payer_type": "kata", "amount": 30.0}, headers=auth_headers
    )).json()
    await client.post(f"/v1/reversals/receipt/{receipt['id']}", headers=auth_headers)

    response = await client.get(
        "/v1/audit-log", params={"entity_type": "receipt", "entity_id": receipt["id"]}, headers=auth_headers
    )

    assert response.status_code == 200
    actions = [row["action"] for row in response.json()]
    assert actions == ["ENTITY_REVERSED", "RECEIPT_RECORDED"]
