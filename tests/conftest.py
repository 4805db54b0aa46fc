# tests/conftest.py
import pytest

from wims import create_app
from wims.extensions import db
from wims.services import services
from wims.settings import TestingConfig

PASSWORD = "orders2024"
ADMIN_EMAIL = "admin@wims.com"


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Service-level tests run inside one app context."""
    with app.app_context():
        yield app


@pytest.fixture
def svc(ctx):
    return services()


def register(svc, name, role="salesman", approved=True, email=None):
    if role == "admin":
        return svc.users.register_user(
            name=name,
            email=email or ADMIN_EMAIL,
            role="admin",
            password=PASSWORD,
            admin_code=TestingConfig.ADMIN_REGISTRATION_CODE,
        )
    user = svc.users.register_user(name=name, email=email, role="salesman", password=PASSWORD)
    if approved:
        user.is_approved = True
        db.session.commit()
    return user


@pytest.fixture
def admin(svc):
    return register(svc, "Asha Admin", role="admin")


@pytest.fixture
def salesman(svc):
    return register(svc, "Ravi Kumar")


@pytest.fixture
def other_salesman(svc):
    return register(svc, "Meena Shah")


@pytest.fixture
def acme(svc, salesman):
    return svc.clients.create_client({"name": "Acme Traders", "gstNumber": "03ACME1234Z1Z9"}, salesman)


# qty 10 @ 100 and qty 5 @ 200 -> salesman total 2000
SCENARIO_ITEMS = [
    {"id": "LIT-160", "name": "Litchi", "requestedQuantity": 10, "salesmanPrice": 100},
    {"id": "MNG-160", "name": "Mango", "requestedQuantity": 5, "salesmanPrice": 200},
]


@pytest.fixture
def order(svc, salesman, acme):
    return svc.orders.create_order(salesman, acme, SCENARIO_ITEMS, notes="Diwali stock")


@pytest.fixture
def priced_order(svc, order, admin):
    return svc.orders.set_admin_pricing(
        order,
        {"LIT-160": 110, "MNG-160": 210},
        admin,
        allow_adjustment=True,
        adjustment_range={"min": -15, "max": 15},
    )


def login(client, email, password=PASSWORD):
    resp = client.post("/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp
