"""
Integration tests for the API layer.

Routes run against a fresh in-memory document store, real JWT verification
with a test secret, and no payment delay.
"""
from collections.abc import Iterator
from contextlib import nullcontext
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from timevault.api.dependencies import (
    get_identity_provider,
    get_payment_processor,
    get_store,
    get_store_scope,
)
from timevault.api.main import app
from timevault.application.interfaces.document_store import Document, OrderBy, Predicate
from timevault.domain.errors import StoreUnavailableError
from timevault.infrastructure.auth.jwt_identity import JwtIdentityProvider
from timevault.infrastructure.memory.document_store import InMemoryDocumentStore
from timevault.infrastructure.repositories import collections

SECRET = "integration-secret"


def _auth(user_id: str, role: str = "user") -> dict[str, str]:
    token = jwt.encode(
        {
            "sub": user_id,
            "email": f"{user_id}@example.com",
            "role": role,
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
        },
        SECRET,
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


SELLER = _auth("seller-1", "seller")
BUYER = _auth("buyer-1", "buyer")
STRANGER = _auth("stranger-1")

ROLEX = {
    "title": "Rolex Submariner",
    "brand": "Rolex",
    "price": 12500,
    "serial_number": "A1B2C3D4",
    "condition": "excellent",
    "description": "Box and papers",
}


class _UnavailableStore(InMemoryDocumentStore):
    async def query(
        self,
        collection: str,
        predicates: list[Predicate] | None = None,
        order_by: OrderBy | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Document]:
        raise StoreUnavailableError("Document store unavailable")


def _override(store: InMemoryDocumentStore) -> None:
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_store_scope] = lambda: (lambda: nullcontext(store))
    app.dependency_overrides[get_identity_provider] = lambda: JwtIdentityProvider(SECRET)
    app.dependency_overrides[get_payment_processor] = lambda: None


@pytest.fixture()
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def client(store: InMemoryDocumentStore) -> Iterator[TestClient]:
    _override(store)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_listing(client: TestClient, **overrides) -> dict:  # type: ignore[no-untyped-def, type-arg]
    response = client.post("/api/watches", json={**ROLEX, **overrides}, headers=SELLER)
    assert response.status_code == 201, response.text
    return response.json()["watch"]


class TestHealth:
    def test_reports_store_status(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["store"] == "connected"


class TestSerialEndpoints:
    def test_brands(self, client: TestClient) -> None:
        response = client.get("/api/watches/brands")
        assert response.json() == {"brands": ["Rolex", "Omega", "Seiko", "Casio"]}

    def test_validate_serial(self, client: TestClient) -> None:
        ok = client.post(
            "/api/watches/validate-serial", json={"brand": "omega", "serial_number": "1234567"}
        )
        bad = client.post(
            "/api/watches/validate-serial", json={"brand": "Seiko", "serial_number": "12"}
        )
        assert ok.json() == {"valid": True, "message": "Serial number is valid"}
        assert bad.json()["valid"] is False


class TestWatches:
    def test_create_requires_authentication(self, client: TestClient) -> None:
        response = client.post("/api/watches", json=ROLEX)
        assert response.status_code == 401
        assert response.json()["error"] == "AuthenticationRequired"

    def test_invalid_token(self, client: TestClient) -> None:
        response = client.post(
            "/api/watches", json=ROLEX, headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    def test_create_and_fetch_with_seller_profile(
        self, client: TestClient, store: InMemoryDocumentStore
    ) -> None:
        client.portal.call(  # type: ignore[union-attr]
            store.create,
            collections.USERS,
            {"name": "Sam", "email": "sam@example.com", "role": "seller", "rating": 4.7},
            "seller-1",
        )
        watch = _create_listing(client)

        response = client.get(f"/api/watches/{watch['id']}")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "active"
        assert body["seller_id"] == "seller-1"
        assert Decimal(str(body["price"])) == Decimal("12500")
        assert body["seller"] == {"id": "seller-1", "name": "Sam", "rating": 4.7, "profile_pic": None}

    def test_invalid_serial(self, client: TestClient) -> None:
        response = client.post(
            "/api/watches", json={**ROLEX, "serial_number": "123"}, headers=SELLER
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidSerialFormat"

    def test_duplicate_serial(self, client: TestClient) -> None:
        _create_listing(client)
        response = client.post("/api/watches", json=ROLEX, headers=STRANGER)
        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateSerialNumber"

    def test_malformed_body(self, client: TestClient) -> None:
        response = client.post("/api/watches", json={"title": "x"}, headers=SELLER)
        assert response.status_code == 422

    def test_list_filters(self, client: TestClient) -> None:
        _create_listing(client)
        _create_listing(client, brand="Omega", serial_number="1234567", price=4000)

        omegas = client.get("/api/watches", params={"brand": "OMEGA"}).json()["watches"]
        cheap = client.get("/api/watches", params={"max_price": 5000}).json()["watches"]

        assert [w["brand"] for w in omegas] == ["Omega"]
        assert [w["serial_number"] for w in cheap] == ["1234567"]

    def test_inverted_price_range(self, client: TestClient) -> None:
        response = client.get("/api/watches", params={"min_price": 10, "max_price": 5})
        assert response.status_code == 400
        assert response.json()["error"] == "ValidationError"

    def test_featured_and_by_seller(self, client: TestClient) -> None:
        watch = _create_listing(client)
        client.delete(f"/api/watches/{watch['id']}", headers=SELLER)
        _create_listing(client, serial_number="B1B2C3D4")

        featured = client.get("/api/watches/featured").json()
        by_seller = client.get("/api/watches/seller/seller-1").json()

        assert [w["serial_number"] for w in featured] == ["B1B2C3D4"]
        assert {w["status"] for w in by_seller} == {"active", "removed"}

    def test_update_by_other_user_is_forbidden(self, client: TestClient) -> None:
        watch = _create_listing(client)
        response = client.put(
            f"/api/watches/{watch['id']}", json={"title": "Mine now"}, headers=STRANGER
        )
        assert response.status_code == 403
        assert response.json() == {
            "error": "Forbidden",
            "message": "You can only update your own listings",
        }

    def test_update(self, client: TestClient) -> None:
        watch = _create_listing(client)
        response = client.put(
            f"/api/watches/{watch['id']}", json={"condition": "good"}, headers=SELLER
        )
        assert response.status_code == 200
        assert response.json()["watch"]["condition"] == "good"
        assert response.json()["watch"]["title"] == "Rolex Submariner"

    def test_explicit_null_clears_description(self, client: TestClient) -> None:
        watch = _create_listing(client)
        response = client.put(
            f"/api/watches/{watch['id']}", json={"description": None}, headers=SELLER
        )
        assert response.status_code == 200
        assert response.json()["watch"]["description"] is None
        assert response.json()["watch"]["condition"] == "excellent"

    def test_by_seller_is_paged(self, client: TestClient) -> None:
        for serial in ("B1B2C3D1", "B1B2C3D2", "B1B2C3D3"):
            _create_listing(client, serial_number=serial)

        page = client.get("/api/watches/seller/seller-1", params={"limit": 2, "offset": 2})

        assert page.status_code == 200
        assert [w["serial_number"] for w in page.json()] == ["B1B2C3D1"]

    def test_delete_is_soft(self, client: TestClient) -> None:
        watch = _create_listing(client)

        response = client.delete(f"/api/watches/{watch['id']}", headers=SELLER)

        assert response.status_code == 200
        assert response.json()["watch"]["status"] == "removed"
        assert client.get(f"/api/watches/{watch['id']}").json()["status"] == "removed"

    def test_admin_may_delete(self, client: TestClient) -> None:
        watch = _create_listing(client)
        response = client.delete(f"/api/watches/{watch['id']}", headers=_auth("boss", "admin"))
        assert response.status_code == 200

    def test_missing_watch(self, client: TestClient) -> None:
        response = client.get("/api/watches/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "NotFound", "message": "No watch found with ID: nope"}


class TestTransactions:
    def test_purchase_and_complete(self, client: TestClient) -> None:
        watch = _create_listing(client)

        created = client.post(
            "/api/transactions",
            json={"watch_id": watch["id"], "shipping_info": {"city": "Geneva"}},
            headers=BUYER,
        )
        assert created.status_code == 201, created.text
        transaction = created.json()["transaction"]
        assert transaction["status"] == "pending"
        assert client.get(f"/api/watches/{watch['id']}").json()["status"] == "pending"

        mine = client.get("/api/transactions", headers=BUYER).json()["transactions"]
        assert [(t["id"], t["type"]) for t in mine] == [(transaction["id"], "purchase")]

        sales = client.get("/api/transactions?type=sales", headers=SELLER).json()["transactions"]
        assert [t["type"] for t in sales] == ["sale"]

        details = client.get(f"/api/transactions/{transaction['id']}", headers=BUYER).json()
        assert details["watch"]["id"] == watch["id"]

        forbidden = client.patch(
            f"/api/transactions/{transaction['id']}/status",
            json={"status": "completed"},
            headers=BUYER,
        )
        assert forbidden.status_code == 403

        completed = client.patch(
            f"/api/transactions/{transaction['id']}/status",
            json={"status": "completed"},
            headers=SELLER,
        )
        assert completed.status_code == 200
        assert completed.json()["listing_status"] == "sold"
        assert completed.json()["transaction"]["completed_at"] is not None
        assert client.get(f"/api/watches/{watch['id']}").json()["status"] == "sold"

        again = client.patch(
            f"/api/transactions/{transaction['id']}/status",
            json={"status": "refunded"},
            headers=SELLER,
        )
        assert again.status_code == 409
        assert again.json()["error"] == "InvalidStateTransition"

    def test_second_buyer_is_turned_away(self, client: TestClient) -> None:
        watch = _create_listing(client)
        client.post("/api/transactions", json={"watch_id": watch["id"]}, headers=BUYER)

        response = client.post(
            "/api/transactions", json={"watch_id": watch["id"]}, headers=STRANGER
        )

        assert response.status_code == 400
        assert response.json()["error"] == "ListingNotAvailable"

    def test_self_purchase(self, client: TestClient) -> None:
        watch = _create_listing(client)
        response = client.post("/api/transactions", json={"watch_id": watch["id"]}, headers=SELLER)
        assert response.status_code == 400
        assert response.json()["error"] == "SelfPurchase"

    def test_invalid_status(self, client: TestClient) -> None:
        watch = _create_listing(client)
        created = client.post(
            "/api/transactions", json={"watch_id": watch["id"]}, headers=BUYER
        ).json()["transaction"]

        response = client.patch(
            f"/api/transactions/{created['id']}/status",
            json={"status": "shipped"},
            headers=SELLER,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidStatus"

    def test_invalid_view(self, client: TestClient) -> None:
        response = client.get("/api/transactions?type=everything", headers=BUYER)
        assert response.status_code == 400

    def test_details_hidden_from_strangers(self, client: TestClient) -> None:
        watch = _create_listing(client)
        created = client.post(
            "/api/transactions", json={"watch_id": watch["id"]}, headers=BUYER
        ).json()["transaction"]

        response = client.get(f"/api/transactions/{created['id']}", headers=STRANGER)

        assert response.status_code == 403

    def test_requires_authentication(self, client: TestClient) -> None:
        assert client.get("/api/transactions").status_code == 401


class TestUsers:
    def test_profile_flow(self, client: TestClient, store: InMemoryDocumentStore) -> None:
        client.portal.call(  # type: ignore[union-attr]
            store.create,
            collections.USERS,
            {"name": "Bea", "email": "buyer-1@example.com", "role": "buyer", "rating": 4.0},
            "buyer-1",
        )

        own = client.get("/api/users/profile", headers=BUYER)
        public = client.get("/api/users/profile", params={"user_id": "buyer-1"})
        updated = client.put("/api/users/profile", json={"name": "Beatrice"}, headers=BUYER)

        assert own.status_code == 200 and own.json()["name"] == "Bea"
        assert public.status_code == 200
        assert updated.status_code == 200
        assert updated.json()["user"]["name"] == "Beatrice"

    def test_anonymous_profile_needs_user_id(self, client: TestClient) -> None:
        response = client.get("/api/users/profile")
        assert response.status_code == 400

    def test_unknown_user(self, client: TestClient) -> None:
        response = client.get("/api/users/profile", params={"user_id": "ghost"})
        assert response.status_code == 404


def test_store_outage_maps_to_503() -> None:
    _override(_UnavailableStore())
    try:
        with TestClient(app) as client:
            response = client.get("/api/watches")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json()["error"] == "StoreUnavailable"
