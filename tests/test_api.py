"""
HTTP surface: a deposit, a listing and a settlement end to end, plus error mapping
"""

import uuid
from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from api.errors import to_http_exception
from errors import ConcurrencyConflict
from main import app


@pytest_asyncio.fixture
async def client(db):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def _user(client, currency):
    response = await client.post("/api/wallets/users", json={"currency": currency})
    assert response.status_code == 201
    return response.json()["user_id"]


async def _deposit(client, user_id, amount, currency):
    response = await client.post(
        "/api/payments/callback",
        json={
            "reference": f"GW-{uuid.uuid4().hex}",
            "user_id": user_id,
            "amount": amount,
            "currency": currency,
            "provider": "dynopay",
            "status": "success",
        },
    )
    assert response.status_code == 200
    return response.json()


async def _listing(client, seller_id, **overrides):
    payload = {
        "seller_id": seller_id,
        "amount": "1000",
        "exchange_rate": "0.9",
        "fee": "2",
        "min_amount": "10",
        "from_currency": "USD",
        "to_currency": "EUR",
    }
    payload.update(overrides)
    return await client.post("/api/listings/", json=payload)


class TestSettlementFlow:
    async def test_deposit_list_and_settle(self, client):
        seller_id = await _user(client, "USD")
        buyer_id = await _user(client, "EUR")

        deposit = await _deposit(client, buyer_id, "500", "USD")
        assert deposit["already_applied"] is False

        created = await _listing(client, seller_id)
        assert created.status_code == 201
        listing_id = created.json()["listing_id"]

        quote = await client.get(f"/api/listings/{listing_id}/quote", params={"amount": "100"})
        assert Decimal(quote.json()["net_amount"]) == Decimal("88.2")

        settled = await client.post(
            "/api/orders/",
            json={
                "buyer_id": buyer_id,
                "listing_id": listing_id,
                "amount": "100",
                "from_currency": "usd",
                "to_currency": "eur",
            },
        )
        assert settled.status_code == 201
        order = settled.json()
        assert order["status"] == "completed"
        assert Decimal(order["net_amount"]) == Decimal("88.2")

        balances = (await client.get(f"/api/earnings/{seller_id}/balances")).json()
        assert [(b["currency"], Decimal(b["available"])) for b in balances] == [
            ("EUR", Decimal("88.2"))
        ]

        wallets = (await client.get(f"/api/wallets/{buyer_id}")).json()
        assert [(w["currency"], Decimal(w["balance"])) for w in wallets] == [
            ("USD", Decimal("400"))
        ]

        listing = (await client.get(f"/api/listings/{listing_id}")).json()
        assert Decimal(listing["amount"]) == Decimal("900")


class TestErrorMapping:
    async def test_insufficient_balance_is_400(self, client):
        seller_id = await _user(client, "USD")
        buyer_id = await _user(client, "EUR")
        listing_id = (await _listing(client, seller_id)).json()["listing_id"]

        response = await client.post(
            "/api/orders/",
            json={
                "buyer_id": buyer_id,
                "listing_id": listing_id,
                "amount": "100",
                "from_currency": "USD",
                "to_currency": "EUR",
            },
        )

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "insufficient_balance"
        assert detail["required"] == "100.00000000"

    async def test_unknown_listing_is_404(self, client):
        response = await client.get(f"/api/listings/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"

    async def test_paused_listing_is_409(self, client):
        seller_id = await _user(client, "USD")
        listing_id = (await _listing(client, seller_id)).json()["listing_id"]
        await client.post(f"/api/listings/{listing_id}/pause", json={"seller_id": seller_id})

        buyer_id = await _user(client, "EUR")
        await _deposit(client, buyer_id, "500", "USD")
        response = await client.post(
            "/api/orders/",
            json={
                "buyer_id": buyer_id,
                "listing_id": listing_id,
                "amount": "100",
                "from_currency": "USD",
                "to_currency": "EUR",
            },
        )

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "listing_unavailable"

    async def test_invalid_request_body_is_422(self, client):
        response = await _listing(client, str(uuid.uuid4()), min_amount="50", max_amount="10")

        assert response.status_code == 422

    async def test_invalid_payout_details_is_400(self, client):
        user_id = await _user(client, "EUR")

        response = await client.post(
            "/api/payout-methods/",
            json={
                "user_id": user_id,
                "type": "paypal",
                "currency": "EUR",
                "details": {"email": "not-an-email", "account_name": "Ana"},
            },
        )

        assert response.status_code == 400
        assert response.json()["detail"]["fields"] == ["email"]

    async def test_callback_reference_collision_is_400(self, client):
        first_id = await _user(client, "USD")
        second_id = await _user(client, "USD")
        payload = {
            "reference": "GW-COLLIDE-1",
            "amount": "50",
            "currency": "USD",
            "provider": "dynopay",
            "status": "success",
        }
        await client.post("/api/payments/callback", json={**payload, "user_id": first_id})

        response = await client.post("/api/payments/callback", json={**payload, "user_id": second_id})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "reference_conflict"
        assert "transaction_id" not in response.json()["detail"]


class TestConflictMapping:
    def test_internal_conflict_surfaces_as_opaque_failure(self):
        error = to_http_exception(ConcurrencyConflict("could not serialize access"))

        assert error.status_code == 500
        assert error.detail["error"] == "settlement_failed"
        assert "serialize" not in error.detail["message"]
