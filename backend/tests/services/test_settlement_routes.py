"""Settlement API — options, verify, initiate, confirm and portfolio over HTTP.

Invariants:
    - Confirm is 201 once per credential; a replay is 409 SESSION_ALREADY_CONSUMED
    - Credential failures are 401 (AUTH_INVALID vs AUTH_EXPIRED)
    - Verify never mutates and always answers 200 with a tagged result
    - Error bodies never echo the token
"""

from datetime import timedelta

from sqlalchemy import func, select

from aurum.models.transaction import Transaction
from aurum.services import session_store

from tests.services.constants import NOW


async def _start(test_db, issuer, user_id=None):
    issued = await issuer.issue(test_db, user_id, "I want to buy gold")
    return issued


def _forge(token: str) -> str:
    header, payload, signature = token.split(".")
    return f"{header}.{payload}.{'B' if signature[0] == 'A' else 'A'}{signature[1:]}"


async def test_options_priced_from_oracle(settlement_client):
    response = await settlement_client.get("/api/v1/purchase/options")
    assert response.status_code == 200
    body = response.json()
    assert body["current_price"] == {"amount": "6500.00", "currency": "INR", "per_unit": "gram"}
    assert [o["id"] for o in body["options"]] == ["starter", "popular", "premium"]
    assert body["options"][1]["formatted_price"] == "INR 32,500.00"


async def test_full_purchase_flow(settlement_client, test_db, issuer):
    issued = await _start(test_db, issuer)

    verify = await settlement_client.post(
        "/api/v1/sessions/verify", json={"session_token": issued.token},
    )
    assert verify.json()["valid"] is True
    assert verify.json()["bound_user"] is None

    initiate = await settlement_client.post("/api/v1/purchase/initiate", json={
        "session_token": issued.token,
        "user_details": {"name": "Meera Iyer", "email": "meera@example.com", "phone": "+91-98"},
    })
    assert initiate.status_code == 200
    user_id = initiate.json()["user"]["id"]
    assert initiate.json()["purchase_options"][0]["price"] == "6500.00"

    confirm = await settlement_client.post("/api/v1/purchase/confirm", json={
        "user_id": user_id, "gold_amount": 5.0, "session_token": issued.token,
        "payment_method": "upi",
    })
    assert confirm.status_code == 201
    txn = confirm.json()["transaction"]
    assert txn["gold_amount"] == "5.0000"
    assert txn["price_per_gram"] == "6500.00"
    assert txn["total_amount"] == "32500.00"
    assert txn["status"] == "completed"
    assert confirm.json()["message"].endswith("5g of digital gold for INR 32,500.00")

    after = await settlement_client.post(
        "/api/v1/sessions/verify", json={"session_token": issued.token},
    )
    assert after.json() == {"valid": False, "result": "not_found_or_expired", "reason": "consumed"}


async def test_replayed_confirmation_is_conflict(settlement_client, test_db, issuer, seed_user):
    issued = await _start(test_db, issuer)
    payload = {"user_id": seed_user.id, "gold_amount": "1", "session_token": issued.token}

    first = await settlement_client.post("/api/v1/purchase/confirm", json=payload)
    second = await settlement_client.post("/api/v1/purchase/confirm", json=payload)

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "SESSION_ALREADY_CONSUMED"
    assert issued.token not in second.text
    count = (await test_db.execute(select(func.count(Transaction.id)))).scalar_one()
    assert count == 1


async def test_forged_token_is_auth_invalid(settlement_client, test_db, issuer, seed_user):
    issued = await _start(test_db, issuer)
    response = await settlement_client.post("/api/v1/purchase/confirm", json={
        "user_id": seed_user.id, "gold_amount": "1", "session_token": _forge(issued.token),
    })
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_INVALID"


async def test_token_past_exp_is_auth_invalid(
    settlement_client, test_db, issuer, clock, seed_user,
):
    issued = await _start(test_db, issuer)
    clock.advance(hours=1)
    response = await settlement_client.post("/api/v1/purchase/confirm", json={
        "user_id": seed_user.id, "gold_amount": "1", "session_token": issued.token,
    })
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_INVALID"


async def test_swept_session_is_auth_expired(settlement_client, test_db, issuer, seed_user):
    issued = await _start(test_db, issuer)
    assert await session_store.expire_stale(test_db, NOW + timedelta(hours=2)) == 1
    response = await settlement_client.post("/api/v1/purchase/confirm", json={
        "user_id": seed_user.id, "gold_amount": "1", "session_token": issued.token,
    })
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_EXPIRED"


async def test_quantity_out_of_range_leaves_session_usable(
    settlement_client, test_db, issuer, seed_user,
):
    issued = await _start(test_db, issuer)
    response = await settlement_client.post("/api/v1/purchase/confirm", json={
        "user_id": seed_user.id, "gold_amount": "0.05", "session_token": issued.token,
    })
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_QUANTITY"

    record = await session_store.get_session(test_db, issued.session_id)
    assert record.is_active is True


async def test_malformed_body_is_validation_error(settlement_client):
    response = await settlement_client.post("/api/v1/purchase/confirm", json={
        "user_id": 0, "gold_amount": "1",
    })
    assert response.status_code == 400
    fields = {d["field"] for d in response.json()["error"]["details"]}
    assert "body.user_id" in fields
    assert "body.session_token" in fields


async def test_unknown_user_is_not_found(settlement_client, test_db, issuer):
    issued = await _start(test_db, issuer)
    response = await settlement_client.post("/api/v1/purchase/confirm", json={
        "user_id": 4242, "gold_amount": "1", "session_token": issued.token,
    })
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_session_bound_to_other_user_is_conflict(
    settlement_client, test_db, issuer, seed_user,
):
    issued = await _start(test_db, issuer, user_id=seed_user.id)
    response = await settlement_client.post("/api/v1/purchase/initiate", json={
        "session_token": issued.token,
        "user_details": {"name": "Ravi", "email": "ravi@example.com"},
    })
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "SESSION_BOUND_TO_OTHER_USER"


async def test_verify_reports_invalid_signature(settlement_client, test_db, issuer):
    issued = await _start(test_db, issuer)
    response = await settlement_client.post(
        "/api/v1/sessions/verify", json={"session_token": _forge(issued.token)},
    )
    assert response.status_code == 200
    assert response.json() == {"valid": False, "result": "invalid_signature", "reason": "bad_signature"}


async def test_verify_valid_session_shape(settlement_client, test_db, issuer, seed_user):
    issued = await _start(test_db, issuer, user_id=seed_user.id)
    response = await settlement_client.post(
        "/api/v1/sessions/verify", json={"session_token": issued.token},
    )
    body = response.json()
    assert body["valid"] is True
    assert body["session"]["expires_at"] == "2026-10-19T13:00:00+00:00"
    assert body["bound_user"]["email"] == "asha@example.com"


async def test_portfolio_and_analytics(settlement_client, test_db, issuer, seed_user):
    issued = await _start(test_db, issuer)
    await settlement_client.post("/api/v1/purchase/confirm", json={
        "user_id": seed_user.id, "gold_amount": "2", "session_token": issued.token,
    })

    portfolio = await settlement_client.get(f"/api/v1/users/{seed_user.id}/transactions")
    assert portfolio.status_code == 200
    assert portfolio.json()["portfolio_summary"]["total_invested"] == "INR 13,000.00"
    assert portfolio.json()["transactions"][0]["created_at"].endswith("+00:00")

    analytics = await settlement_client.get("/api/v1/analytics/purchases", params={"period": "7d"})
    assert analytics.status_code == 200
    assert analytics.json()["summary"]["total_purchases"] == 1

    bad_period = await settlement_client.get("/api/v1/analytics/purchases", params={"period": "1y"})
    assert bad_period.status_code == 400
