import pytest
from fastapi.testclient import TestClient

from config.constants import ORDERS, SELLER_PROFILES, USERS
from database import get_store
from fakes import seed_order, seed_product, seed_seller, seed_user
from main import app
from models.user import UserRole
from utils.jwt import create_access_token


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user: dict) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user['_id'], user['role'])}"}


@pytest.fixture
def market(store):
    seller_user = seed_user(store, role=UserRole.SELLER.value)
    seller = seed_seller(store, seller_user)
    product = seed_product(store, seller)
    buyer = seed_user(store)
    admin = seed_user(store, role=UserRole.ADMIN.value)
    return seller_user, seller, product, buyer, admin


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_place_and_advance_order(client, store, market):
    seller_user, _, product, buyer, _ = market

    res = client.post(
        "/api/orders",
        json={
            "product_id": str(product["_id"]),
            "buyer_address": "12 Dragon Lane",
            "buyer_phone": "9000000001",
        },
        headers=auth(buyer),
    )
    assert res.status_code == 201
    order_id = res.json()["order"]["id"]

    res = client.put(f"/api/orders/{order_id}/status", json={"status": "SHIPPED"}, headers=auth(seller_user))
    assert res.status_code == 400
    assert res.json()["error"] == "InvalidTransition"

    res = client.put(f"/api/orders/{order_id}/status", json={"status": "ACCEPTED"}, headers=auth(seller_user))
    assert res.status_code == 200
    assert res.json()["order"]["status"] == "ACCEPTED"

    res = client.get("/api/orders/buyer/my-orders", headers=auth(buyer))
    assert res.json()["orders"][0]["seller"]["contact"]["email"] == seller_user["email"]


def test_self_purchase_maps_to_403(client, store, market):
    seller_user, _, product, _, _ = market

    res = client.post(
        "/api/orders",
        json={
            "product_id": str(product["_id"]),
            "buyer_address": "12 Dragon Lane",
            "buyer_phone": "9000000001",
        },
        headers=auth(seller_user),
    )

    assert res.status_code == 403
    assert res.json() == {
        "success": False,
        "error": "Forbidden",
        "message": "You cannot order your own product",
    }
    assert store.rows(ORDERS) == []


def test_missing_token_is_rejected(client, market):
    assert client.get("/api/orders/buyer/my-orders").status_code in (401, 403)


def test_banned_user_token_is_rejected(client, store):
    ghost = seed_user(store, is_deleted=True)
    assert client.get("/api/orders/buyer/my-orders", headers=auth(ghost)).status_code == 401


def test_malformed_id_is_bad_request(client, market):
    _, _, _, buyer, _ = market
    assert client.put("/api/orders/not-an-id/cancel", headers=auth(buyer)).status_code == 400


def test_buyer_cancel(client, store, market):
    _, _, product, buyer, _ = market
    order = seed_order(store, buyer, product)

    res = client.put(f"/api/orders/{order['_id']}/cancel", headers=auth(buyer))

    assert res.status_code == 200
    assert store.row(ORDERS, order["_id"])["is_cancelled"] is True


def test_admin_approves_seller_once(client, store, market):
    _, _, _, _, admin = market
    applicant = seed_user(store)
    profile = seed_seller(store, applicant, approved=False)
    url = f"/api/admin/sellers/{profile['_id']}/approve"

    res = client.put(url, json={"seller_type": "FAN_MADE"}, headers=auth(admin))
    assert res.status_code == 200
    assert store.row(USERS, applicant["_id"])["role"] == UserRole.SELLER.value

    res = client.put(url, json={"seller_type": "FAN_MADE"}, headers=auth(admin))
    assert res.status_code == 409
    assert res.json()["error"] == "AlreadyApproved"


def test_invalid_seller_type_is_unprocessable(client, store, market):
    _, seller, _, _, admin = market

    res = client.put(f"/api/admin/sellers/{seller['_id']}/type", json={"seller_type": "BOOTLEG"}, headers=auth(admin))

    assert res.status_code == 422
    assert store.row(SELLER_PROFILES, seller["_id"])["seller_type"] == "FAN_MADE"


def test_buyer_cannot_use_admin_routes(client, market):
    _, seller, _, buyer, _ = market
    assert client.delete(f"/api/admin/sellers/{seller['_id']}", headers=auth(buyer)).status_code == 403


def test_ban_super_admin_is_forbidden(client, store, market):
    _, _, _, _, admin = market
    root = seed_user(store, role=UserRole.ADMIN.value, is_super_admin=True)

    res = client.delete(f"/api/admin/users/{root['_id']}/ban", headers=auth(admin))

    assert res.status_code == 403
    assert store.row(USERS, root["_id"])["is_deleted"] is False


def test_remove_admin_requires_super_admin(client, store, market):
    _, _, _, _, admin = market
    other = seed_user(store, role=UserRole.ADMIN.value)

    assert client.delete(f"/api/admin/users/admins/{other['_id']}", headers=auth(admin)).status_code == 403


def test_add_admin_route(client, store, market):
    _, _, _, _, admin = market
    root = seed_user(store, role=UserRole.ADMIN.value, is_super_admin=True)
    fan = seed_user(store, email="fan@fanforge.io")
    body = {"email": "helper@fanforge.io", "full_name": "Helper Admin"}

    res = client.post("/api/admin/users/admins", json=body, headers=auth(admin))
    assert res.status_code == 403

    res = client.post("/api/admin/users/admins", json=body, headers=auth(root))
    assert res.status_code == 201
    assert res.json()["admin"]["role"] == UserRole.ADMIN.value
    assert res.json()["admin"]["is_super_admin"] is False

    res = client.post(
        "/api/admin/users/admins",
        json={"email": fan["email"], "full_name": "Dup"},
        headers=auth(root),
    )
    assert res.status_code == 409
    assert res.json()["error"] == "AlreadyExists"


def test_token_with_malformed_subject_is_unauthorized(client):
    token = create_access_token("not-an-id", UserRole.BUYER.value)

    res = client.get("/api/orders/buyer/my-orders", headers={"Authorization": f"Bearer {token}"})

    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid token payload"


def test_product_reads(client, store, market):
    seller_user, seller, product, _, _ = market
    hidden = seed_product(store, seller, approved=False)

    listed = client.get("/api/products").json()
    assert [p["id"] for p in listed["products"]] == [str(product["_id"])]

    assert client.get(f"/api/products/{hidden['_id']}").status_code == 404
    assert client.get(f"/api/products/{hidden['_id']}", headers=auth(seller_user)).status_code == 200

    mine = client.get("/api/products/mine", headers=auth(seller_user)).json()
    assert mine["count"] == 2


def test_seller_application_flow(client, store):
    user = seed_user(store)
    body = {"business_name": "Forge Works", "payment_methods": ["UPI"]}

    assert client.post("/api/seller/apply", json=body, headers=auth(user)).status_code == 201
    res = client.post("/api/seller/apply", json=body, headers=auth(user))
    assert res.status_code == 409
    assert res.json()["error"] == "AlreadyExists"
