# tests/test_api.py
import pytest

from conftest import ADMIN_EMAIL, PASSWORD, SCENARIO_ITEMS, login, register
from wims.services import services


@pytest.fixture
def seeded(app):
    """Admin, approved salesman and one client; returns plain ids."""
    with app.app_context():
        svc = services()
        admin = register(svc, "Asha Admin", role="admin")
        ravi = register(svc, "Ravi Kumar")
        acme = svc.clients.create_client({"name": "Acme Traders", "gstNumber": "03ACME1234Z1Z9"}, ravi)
        return {"admin": admin.id, "salesman_email": ravi.email, "client": acme.id}


@pytest.fixture
def admin_client(app, seeded):
    client = app.test_client()
    login(client, ADMIN_EMAIL)
    return client


@pytest.fixture
def salesman_client(app, seeded):
    client = app.test_client()
    login(client, seeded["salesman_email"])
    return client


def test_requires_login(app):
    resp = app.test_client().get("/orders")
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "UNAUTHORIZED"


def test_bad_credentials(app, seeded):
    resp = app.test_client().post("/login", json={"email": ADMIN_EMAIL, "password": "nope-nope1"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "INVALID_CREDENTIALS"


def test_me(salesman_client):
    body = salesman_client.get("/me").get_json()
    assert body["user"]["name"] == "Ravi Kumar"
    assert body["user"]["role"] == "salesman"


def test_salesman_cannot_reach_admin(salesman_client):
    assert salesman_client.get("/admin/summary").status_code == 403


def test_full_pricing_workflow(salesman_client, admin_client, seeded):
    resp = salesman_client.post("/orders", json={"clientId": seeded["client"], "items": SCENARIO_ITEMS})
    assert resp.status_code == 201
    order = resp.get_json()
    assert order["orderNumber"] == "OID001"
    assert order["currentPricing"]["total"] == pytest.approx(2000)
    oid = order["id"]

    resp = admin_client.post(
        f"/admin/orders/{oid}/pricing",
        json={
            "itemPrices": {"LIT-160": 110, "MNG-160": 210},
            "allowPriceAdjustment": True,
            "priceAdjustmentRange": {"min": -15, "max": 15},
        },
    )
    assert resp.status_code == 200
    assert resp.get_json()["adminPricing"]["total"] == pytest.approx(2365)

    resp = salesman_client.post(f"/orders/{oid}/adjustment", json={"adjustments": {"LIT-160": 15, "MNG-160": 20}})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "VALIDATION_ERROR"
    assert salesman_client.get(f"/orders/{oid}").get_json()["status"] == "admin_priced"

    resp = salesman_client.post(f"/orders/{oid}/adjustment", json={"adjustments": {"LIT-160": 10, "MNG-160": -5}})
    assert resp.status_code == 200
    assert resp.get_json()["finalPricing"]["total"] == pytest.approx(2447.5)

    assert admin_client.post(f"/admin/orders/{oid}/approve").status_code == 200

    resp = salesman_client.post(f"/orders/{oid}/bills", json={"billType": "gst"})
    assert resp.status_code == 201
    bill = resp.get_json()
    assert bill["gstNumber"] == "03ACME1234Z1Z9"
    assert bill["total"] == pytest.approx(2447.5)
    assert salesman_client.get(f"/orders/{oid}").get_json()["status"] == "completed"

    resp = salesman_client.get(f"/bills/{bill['id']}/pdf")
    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"

    resp = admin_client.post(f"/admin/bills/{bill['id']}/status", json={"status": "verified"})
    assert resp.get_json()["status"] == "verified"

    dash = salesman_client.get("/dashboard").get_json()
    assert dash["orders"]["byStatus"]["completed"] == 1
    assert dash["orders"]["billsByStatus"] == {"verified": 1}


@pytest.mark.parametrize(
    "payload",
    [
        {"itemPrices": [110, 210]},
        {"itemPrices": "110"},
        {"itemPrices": {"LIT-160": "nan", "MNG-160": 210}},
        {"itemPrices": {"LIT-160": 110, "MNG-160": 210}, "allowPriceAdjustment": True, "priceAdjustmentRange": 15},
        {"itemPrices": {"LIT-160": 110, "MNG-160": 210}, "allowPriceAdjustment": True, "priceAdjustmentRange": "15"},
    ],
)
def test_malformed_pricing_is_a_validation_error(salesman_client, admin_client, seeded, payload):
    oid = salesman_client.post("/orders", json={"clientId": seeded["client"], "items": SCENARIO_ITEMS}).get_json()["id"]

    resp = admin_client.post(f"/admin/orders/{oid}/pricing", json=payload)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "VALIDATION_ERROR"
    assert admin_client.get(f"/orders/{oid}").get_json()["status"] == "pending"


@pytest.mark.parametrize("adjustments", [[10, -5], "10", {"LIT-160": "Infinity"}])
def test_malformed_adjustment_is_a_validation_error(salesman_client, admin_client, seeded, adjustments):
    oid = salesman_client.post("/orders", json={"clientId": seeded["client"], "items": SCENARIO_ITEMS}).get_json()["id"]
    admin_client.post(
        f"/admin/orders/{oid}/pricing",
        json={"itemPrices": {"LIT-160": 110, "MNG-160": 210}, "allowPriceAdjustment": True},
    )

    resp = salesman_client.post(f"/orders/{oid}/adjustment", json={"adjustments": adjustments})
    assert resp.status_code == 400
    assert salesman_client.get(f"/orders/{oid}").get_json()["status"] == "admin_priced"


def test_bill_for_pending_order_is_conflict(salesman_client, seeded):
    oid = salesman_client.post("/orders", json={"clientId": seeded["client"], "items": SCENARIO_ITEMS}).get_json()["id"]
    resp = salesman_client.post(f"/orders/{oid}/bills", json={"billType": "regular"})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "INVALID_TRANSITION"


def test_reject_requires_reason(salesman_client, admin_client, seeded):
    oid = salesman_client.post("/orders", json={"clientId": seeded["client"], "items": SCENARIO_ITEMS}).get_json()["id"]
    admin_client.post(f"/admin/orders/{oid}/pricing", json={"itemPrices": {"LIT-160": 110, "MNG-160": 210}})

    assert admin_client.post(f"/admin/orders/{oid}/reject", json={}).status_code == 400
    resp = admin_client.post(f"/admin/orders/{oid}/reject", json={"reason": "Credit limit"})
    assert resp.get_json()["status"] == "rejected"


def test_salesman_sees_only_own_orders(app, salesman_client, seeded):
    oid = salesman_client.post("/orders", json={"clientId": seeded["client"], "items": SCENARIO_ITEMS}).get_json()["id"]

    with app.app_context():
        register(services(), "Meena Shah")
    other = app.test_client()
    login(other, "meena.shah@wims.com")

    assert other.get("/orders").get_json() == []
    assert other.get(f"/orders/{oid}").status_code == 403


def test_deleted_order_is_hidden(salesman_client, admin_client, seeded):
    oid = salesman_client.post("/orders", json={"clientId": seeded["client"], "items": SCENARIO_ITEMS}).get_json()["id"]
    assert admin_client.delete(f"/admin/orders/{oid}").status_code == 200

    assert salesman_client.get("/orders").get_json() == []
    assert salesman_client.get(f"/orders/{oid}").status_code == 404
    assert len(admin_client.get("/orders?includeDeleted=1").get_json()) == 1

    admin_client.post(f"/admin/orders/{oid}/restore")
    assert len(salesman_client.get("/orders").get_json()) == 1


def test_duplicate_client_returns_existing(salesman_client):
    resp = salesman_client.post("/clients", json={"clientName": "acme traders"})
    assert resp.status_code == 409
    body = resp.get_json()
    assert body["error"] == "DUPLICATE"
    assert body["existing"]["name"] == "Acme Traders"

    resp = salesman_client.post("/clients", json={"clientName": "acme traders", "onDuplicate": "use_existing"})
    assert resp.status_code == 201
    assert resp.get_json()["id"] == body["existing"]["id"]

    dup = salesman_client.get("/clients/duplicate?name=ACME%20TRADERS").get_json()
    assert dup["duplicate"]["name"] == "Acme Traders"


def test_unknown_order_is_404(salesman_client):
    resp = salesman_client.get("/orders/999")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "NOT_FOUND"


def test_signup_then_admin_approval(app, admin_client):
    rookie = app.test_client()
    resp = rookie.post("/signup", json={"name": "Karan Singh", "password": PASSWORD})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["user"]["isApproved"] is False
    assert body["approvalStatus"] == "pending"

    assert rookie.get("/catalog").status_code == 403
    mine = rookie.get("/permission-requests/mine").get_json()
    assert [r["requestType"] for r in mine] == ["login"]

    pending = admin_client.get("/admin/permission-requests").get_json()
    assert len(pending) == 1
    resp = admin_client.post(f"/admin/permission-requests/{pending[0]['id']}/approve")
    assert resp.status_code == 200

    assert rookie.get("/catalog").status_code == 200
    assert rookie.get("/me").get_json()["user"]["isApproved"] is True


def test_admin_signup_with_code(app):
    resp = app.test_client().post(
        "/signup",
        json={"name": "Second Admin", "email": "second@wims.com", "role": "admin", "password": PASSWORD, "adminCode": "wrong"},
    )
    assert resp.status_code == 403


def test_inventory_admin_endpoints(admin_client):
    resp = admin_client.post("/admin/inventory", json={"sku": "GUA-160", "name": "Guava", "currentStock": 5, "unitCost": 300})
    assert resp.status_code == 201
    item_id = resp.get_json()["id"]

    resp = admin_client.post(f"/admin/inventory/{item_id}/stock", json={"quantity": 10, "reason": "Delivery", "type": "in"})
    assert resp.get_json()["item"]["currentStock"] == pytest.approx(15)

    resp = admin_client.post(f"/admin/inventory/{item_id}/price", json={"unitCost": 310})
    assert resp.get_json()["unitCost"] == pytest.approx(310)

    body = admin_client.get("/admin/inventory").get_json()
    assert body["summary"]["totalValue"] == pytest.approx(15 * 310)
    assert len(body["movements"]) == 1


def test_admin_approves_salesman_directly(app, admin_client):
    with app.app_context():
        rookie = register(services(), "Dev Patel", approved=False)
        rookie_id = rookie.id

    listed = admin_client.get("/admin/salesmen?approved=0").get_json()
    assert [u["id"] for u in listed] == [rookie_id]

    resp = admin_client.post(f"/admin/salesmen/{rookie_id}/approve")
    assert resp.get_json()["isApproved"] is True
