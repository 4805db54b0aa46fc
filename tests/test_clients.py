# tests/test_clients.py
import pytest

from conftest import SCENARIO_ITEMS
from wims.errors import DuplicateError, PermissionDenied, ValidationError
from wims.models import Client
from wims.services.clients import normalize_client_input


def test_normalize_collapses_aliases_and_trims():
    data = normalize_client_input(
        {"partyName": "  Sharma Stores ", "contactNumber": " 98140 00000 ", "email": " Shop@Sharma.IN "}
    )
    assert data["name"] == "Sharma Stores"
    assert data["phone"] == "98140 00000"
    assert data["email"] == "shop@sharma.in"
    assert data["address"] is None


def test_normalize_prefers_canonical_name():
    assert normalize_client_input({"name": "A", "clientName": "B"})["name"] == "A"
    assert normalize_client_input({"clientName": "B", "partyName": "C"})["name"] == "B"


def test_name_only_client_is_accepted(svc, salesman):
    client = svc.clients.create_client({"name": "Acme"}, salesman)
    assert client.id is not None
    assert client.email is None
    assert client.created_by_user_id == salesman.id


def test_empty_name_is_rejected(svc, salesman):
    with pytest.raises(ValidationError):
        svc.clients.create_client({"name": "   ", "email": "x@y.com"}, salesman)
    assert Client.query.count() == 0


def test_duplicate_by_name_is_case_insensitive(svc, salesman, acme):
    with pytest.raises(DuplicateError) as exc:
        svc.clients.create_client({"name": "ACME traders"}, salesman)
    assert exc.value.existing.id == acme.id
    assert exc.value.to_dict()["existing"]["name"] == "Acme Traders"


def test_duplicate_by_email(svc, salesman):
    first = svc.clients.create_client({"name": "North Depot", "email": "depot@north.in"}, salesman)
    assert svc.clients.find_duplicate("Someone Else", "DEPOT@north.in").id == first.id
    assert svc.clients.find_duplicate("Someone Else", "") is None


def test_use_existing_returns_the_match(svc, salesman, acme):
    same = svc.clients.create_client({"name": "acme traders"}, salesman, on_duplicate="use_existing")
    assert same.id == acme.id
    assert Client.query.count() == 1


def test_overwrite_replaces_record_and_keeps_order_names(svc, salesman, acme):
    order = svc.orders.create_order(salesman, acme, SCENARIO_ITEMS)
    old_id = acme.id

    fresh = svc.clients.create_client(
        {"name": "Acme Traders", "city": "Ludhiana"}, salesman, on_duplicate="overwrite"
    )

    assert fresh.id != old_id
    assert fresh.city == "Ludhiana"
    assert fresh.gst_number is None
    assert Client.query.count() == 1
    assert order.client_id is None
    assert order.client_name == "Acme Traders"


def test_unknown_duplicate_action(svc, salesman):
    with pytest.raises(ValidationError):
        svc.clients.create_client({"name": "X"}, salesman, on_duplicate="merge")


def test_update_client_refuses_clash(svc, salesman, acme):
    other = svc.clients.create_client({"name": "Beta Mart"}, salesman)
    with pytest.raises(DuplicateError):
        svc.clients.update_client(other, {"name": "Acme Traders"}, salesman)

    svc.clients.update_client(other, {"name": "Beta Mart", "city": "Jalandhar"}, salesman)
    assert other.city == "Jalandhar"


def test_only_creator_or_admin_edits(svc, acme, other_salesman, admin):
    with pytest.raises(PermissionDenied):
        svc.clients.update_client(acme, {"name": "Acme"}, other_salesman)
    svc.clients.update_client(acme, {"name": "Acme"}, admin)
    assert acme.name == "Acme"


def test_delete_client_detaches_orders(svc, salesman, acme):
    order = svc.orders.create_order(salesman, acme, SCENARIO_ITEMS)
    svc.clients.delete_client(acme, salesman)

    assert Client.query.count() == 0
    assert order.client_id is None
    assert order.client_name == "Acme Traders"


def test_list_clients_most_recently_used_first(svc, salesman, acme):
    idle = svc.clients.create_client({"name": "Idle Co"}, salesman)
    busy = svc.clients.create_client({"name": "Busy Co"}, salesman)
    svc.orders.create_order(salesman, busy, SCENARIO_ITEMS)

    names = [c.name for c in svc.clients.list_clients()]
    assert names[0] == "Busy Co"
    assert names[-1] == idle.name

    assert [c.name for c in svc.clients.list_clients("busy")] == ["Busy Co"]
