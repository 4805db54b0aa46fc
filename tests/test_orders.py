# tests/test_orders.py
import pytest

from conftest import SCENARIO_ITEMS, register
from wims.errors import InvalidTransition, PermissionDenied, ValidationError
from wims.pricing import current_pricing


# ======================
# Creation
# ======================
def test_create_order_starts_pending_with_salesman_quote(order, acme):
    assert order.status == "pending"
    assert order.order_number == "OID001"
    assert order.salesman_pricing["total"] == pytest.approx(2000)
    assert "tax" not in order.salesman_pricing
    assert order.admin_pricing is None and order.final_pricing is None
    assert current_pricing(order) is order.salesman_pricing
    assert order.is_editable
    assert [i.sku for i in order.items] == ["LIT-160", "MNG-160"]

    assert acme.order_count == 1
    assert acme.last_used_at is not None


def test_order_numbers_increment(svc, salesman, acme, order):
    second = svc.orders.create_order(salesman, acme, SCENARIO_ITEMS)
    assert second.order_number == "OID002"


@pytest.mark.parametrize(
    "items",
    [
        [],
        [{"id": "LIT-160", "name": "Litchi", "requestedQuantity": 0, "salesmanPrice": 100}],
        [{"id": "LIT-160", "name": "Litchi", "requestedQuantity": 2, "salesmanPrice": -1}],
        [{"id": "LIT-160", "name": "Litchi", "requestedQuantity": 2}],
        SCENARIO_ITEMS + [SCENARIO_ITEMS[0]],
        [{"id": "LIT-160", "name": "Litchi", "requestedQuantity": "nan", "salesmanPrice": 100}],
        [{"id": "LIT-160", "name": "Litchi", "requestedQuantity": "inf", "salesmanPrice": 100}],
        [{"id": "LIT-160", "name": "Litchi", "requestedQuantity": 2, "salesmanPrice": "inf"}],
        [{"id": "LIT-160", "name": "Litchi", "requestedQuantity": 2, "salesmanPrice": "NaN"}],
    ],
)
def test_create_order_refuses_bad_items(svc, salesman, acme, items):
    with pytest.raises(ValidationError):
        svc.orders.create_order(salesman, acme, items)
    assert svc.orders.list_orders() == []


def test_create_order_accepts_an_item_generator(svc, salesman, acme):
    order = svc.orders.create_order(salesman, acme, (dict(item) for item in SCENARIO_ITEMS))
    assert [i.sku for i in order.items] == ["LIT-160", "MNG-160"]
    assert order.salesman_pricing["total"] == pytest.approx(2000)


def test_create_order_with_gst_needs_number(svc, salesman, acme):
    with pytest.raises(ValidationError):
        svc.orders.create_order(salesman, acme, SCENARIO_ITEMS, with_gst=True)

    order = svc.orders.create_order(salesman, acme, SCENARIO_ITEMS, with_gst=True, gst_number=" 03XYZ ")
    assert order.with_gst and order.gst_number == "03XYZ"


def test_unapproved_salesman_cannot_create(svc, acme):
    rookie = register(svc, "New Guy", approved=False)
    with pytest.raises(PermissionDenied):
        svc.orders.create_order(rookie, acme, SCENARIO_ITEMS)


# ======================
# Item edits
# ======================
def test_update_items_recomputes_quote(svc, order, salesman):
    items = [
        {"id": "LIT-160", "name": "Litchi", "requestedQuantity": 20, "salesmanPrice": 90},
    ]
    svc.orders.update_order_items(order, items, salesman)
    assert [i.sku for i in order.items] == ["LIT-160"]
    assert order.salesman_pricing["total"] == pytest.approx(1800)


def test_update_items_only_while_pending(svc, priced_order, salesman):
    with pytest.raises(InvalidTransition):
        svc.orders.update_order_items(priced_order, SCENARIO_ITEMS, salesman)


def test_update_items_only_by_owner(svc, order, other_salesman):
    with pytest.raises(PermissionDenied):
        svc.orders.update_order_items(order, SCENARIO_ITEMS, other_salesman)


# ======================
# Admin pricing
# ======================
def test_admin_pricing_scenario(priced_order):
    admin = priced_order.admin_pricing
    assert priced_order.status == "admin_priced"
    assert admin["subtotal"] == pytest.approx(2150)
    assert admin["tax"] == pytest.approx(215)
    assert admin["total"] == pytest.approx(2365)
    assert priced_order.salesman_pricing["total"] == pytest.approx(2000)
    assert current_pricing(priced_order) is priced_order.admin_pricing
    assert priced_order.admin_priced_at is not None
    assert not priced_order.is_editable


def test_admin_pricing_needs_every_price(svc, order, admin):
    with pytest.raises(ValidationError):
        svc.orders.set_admin_pricing(order, {"LIT-160": 110}, admin)
    assert order.status == "pending"
    assert order.admin_pricing is None


def test_admin_pricing_refuses_negative_price(svc, order, admin):
    with pytest.raises(ValidationError):
        svc.orders.set_admin_pricing(order, {"LIT-160": 110, "MNG-160": -5}, admin)
    assert order.status == "pending"


@pytest.mark.parametrize("bad", ["nan", "inf", "Infinity", float("nan")])
def test_admin_pricing_refuses_non_finite_price(svc, order, admin, bad):
    with pytest.raises(ValidationError):
        svc.orders.set_admin_pricing(order, {"LIT-160": bad, "MNG-160": 210}, admin)
    assert order.status == "pending"
    assert order.admin_pricing is None


@pytest.mark.parametrize("prices", [[110, 210], "110,210"])
def test_admin_pricing_needs_price_object(svc, order, admin, prices):
    with pytest.raises(ValidationError):
        svc.orders.set_admin_pricing(order, prices, admin)
    assert order.status == "pending"


def test_salesman_cannot_set_admin_pricing(svc, order, salesman):
    with pytest.raises(PermissionDenied):
        svc.orders.set_admin_pricing(order, {"LIT-160": 110, "MNG-160": 210}, salesman)


def test_allow_adjustment_without_range_uses_default(svc, order, admin):
    svc.orders.set_admin_pricing(order, {"LIT-160": 110, "MNG-160": 210}, admin, allow_adjustment=True)
    assert order.price_adjustment_range == {"min": -15.0, "max": 15.0}


def test_adjustment_range_is_validated(svc, order, admin):
    with pytest.raises(ValidationError):
        svc.orders.set_admin_pricing(
            order, {"LIT-160": 110, "MNG-160": 210}, admin,
            allow_adjustment=True, adjustment_range={"min": 5, "max": -5},
        )
    assert order.status == "pending"


@pytest.mark.parametrize("bad_range", [15, "15", [5], [1, 2, 3], {"min": -5, "max": "nan"}])
def test_adjustment_range_shape_is_validated(svc, order, admin, bad_range):
    with pytest.raises(ValidationError):
        svc.orders.set_admin_pricing(
            order, {"LIT-160": 110, "MNG-160": 210}, admin,
            allow_adjustment=True, adjustment_range=bad_range,
        )
    assert order.status == "pending"


def test_adjustment_range_accepts_a_pair(svc, order, admin):
    svc.orders.set_admin_pricing(
        order, {"LIT-160": 110, "MNG-160": 210}, admin,
        allow_adjustment=True, adjustment_range=[-10, 10],
    )
    assert order.price_adjustment_range == {"min": -10.0, "max": 10.0}


# ======================
# Salesman adjustment
# ======================
def test_adjustment_out_of_band_is_refused_and_state_kept(svc, priced_order, salesman):
    with pytest.raises(ValidationError):
        svc.orders.apply_salesman_adjustment(priced_order, {"LIT-160": 15, "MNG-160": 20}, salesman)

    assert priced_order.status == "admin_priced"
    assert priced_order.final_pricing is None
    assert current_pricing(priced_order)["total"] == pytest.approx(2365)


@pytest.mark.parametrize("bad", ["nan", "inf", float("-inf")])
def test_non_finite_adjustment_is_refused_and_state_kept(svc, priced_order, salesman, bad):
    with pytest.raises(ValidationError):
        svc.orders.apply_salesman_adjustment(priced_order, {"LIT-160": bad}, salesman)

    assert priced_order.status == "admin_priced"
    assert priced_order.final_pricing is None


def test_adjustment_scenario(svc, priced_order, salesman):
    svc.orders.apply_salesman_adjustment(
        priced_order, {"LIT-160": 10, "MNG-160": -5}, salesman, notes="Bulk buyer"
    )

    final = priced_order.final_pricing
    assert priced_order.status == "salesman_adjusted"
    assert final["subtotal"] == pytest.approx(2225)
    assert final["tax"] == pytest.approx(222.5)
    assert final["total"] == pytest.approx(2447.5)
    assert final["adjustments"] == {"LIT-160": 10, "MNG-160": -5}
    assert current_pricing(priced_order) is priced_order.final_pricing
    assert priced_order.admin_pricing["total"] == pytest.approx(2365)
    assert priced_order.salesman_adjustment_notes == "Bulk buyer"

    by_sku = {i.sku: i for i in priced_order.items}
    assert by_sku["LIT-160"].final_price == pytest.approx(120)
    assert by_sku["MNG-160"].admin_price == pytest.approx(210)


def test_adjustment_needs_permission(svc, order, admin, salesman):
    svc.orders.set_admin_pricing(order, {"LIT-160": 110, "MNG-160": 210}, admin)
    with pytest.raises(InvalidTransition):
        svc.orders.apply_salesman_adjustment(order, {"LIT-160": 5}, salesman)
    assert order.status == "admin_priced"


def test_adjustment_only_by_owner(svc, priced_order, other_salesman):
    with pytest.raises(PermissionDenied):
        svc.orders.apply_salesman_adjustment(priced_order, {"LIT-160": 5}, other_salesman)


def test_adjustment_only_once(svc, priced_order, salesman):
    svc.orders.apply_salesman_adjustment(priced_order, {"LIT-160": 5}, salesman)
    with pytest.raises(InvalidTransition):
        svc.orders.apply_salesman_adjustment(priced_order, {"LIT-160": 1}, salesman)


def test_repricing_discards_adjustment(svc, priced_order, salesman, admin):
    svc.orders.apply_salesman_adjustment(priced_order, {"LIT-160": 10}, salesman)
    svc.orders.set_admin_pricing(priced_order, {"LIT-160": 100, "MNG-160": 200}, admin)

    assert priced_order.status == "admin_priced"
    assert priced_order.final_pricing is None
    assert priced_order.allow_price_adjustment is False
    assert current_pricing(priced_order)["total"] == pytest.approx(2200)


# ======================
# Approve / reject / complete
# ======================
def test_pending_order_cannot_be_approved(svc, order, admin):
    with pytest.raises(InvalidTransition):
        svc.orders.approve_order(order, admin)


def test_approve_freezes_pricing_then_complete(svc, priced_order, salesman, admin):
    svc.orders.apply_salesman_adjustment(priced_order, {"LIT-160": 10, "MNG-160": -5}, salesman)
    svc.orders.approve_order(priced_order, admin)

    assert priced_order.status == "approved"
    assert priced_order.approved_at is not None
    assert current_pricing(priced_order)["total"] == pytest.approx(2447.5)

    svc.orders.complete_order(priced_order, admin)
    assert priced_order.status == "completed"
    assert priced_order.completed_at is not None


def test_complete_requires_approval(svc, priced_order, admin):
    with pytest.raises(InvalidTransition):
        svc.orders.complete_order(priced_order, admin)


def test_reject_needs_reason_and_is_terminal(svc, priced_order, admin):
    with pytest.raises(ValidationError):
        svc.orders.reject_order(priced_order, "   ", admin)

    svc.orders.reject_order(priced_order, "Price too low", admin)
    assert priced_order.status == "rejected"
    assert priced_order.rejection_reason == "Price too low"

    with pytest.raises(InvalidTransition):
        svc.orders.approve_order(priced_order, admin)
    with pytest.raises(InvalidTransition):
        svc.orders.set_admin_pricing(priced_order, {"LIT-160": 1, "MNG-160": 1}, admin)


# ======================
# Soft delete + queries
# ======================
def test_delete_hides_order_and_restore_brings_it_back(svc, order, admin):
    svc.orders.delete_order(order, admin)
    assert order.is_deleted
    assert order.status == "pending"
    assert not order.is_editable
    assert svc.orders.list_orders() == []
    assert svc.orders.list_orders(include_deleted=True) == [order]

    with pytest.raises(InvalidTransition):
        svc.orders.set_admin_pricing(order, {"LIT-160": 1, "MNG-160": 1}, admin)

    svc.orders.restore_order(order, admin)
    assert svc.orders.list_orders() == [order]


def test_list_orders_filters(svc, order, salesman, other_salesman, acme):
    assert svc.orders.list_orders(salesman=salesman) == [order]
    assert svc.orders.list_orders(salesman=other_salesman) == []
    assert svc.orders.list_orders(status="pending") == [order]
    assert svc.orders.list_orders(status="approved") == []
    assert svc.orders.list_orders(q="acme") == [order]
    assert svc.orders.list_orders(q="OID001") == [order]

    with pytest.raises(ValidationError):
        svc.orders.list_orders(status="deleted")


def test_summarize_counts(svc, priced_order, admin, salesman, acme):
    svc.orders.create_order(salesman, acme, SCENARIO_ITEMS)
    svc.orders.approve_order(priced_order, admin)

    stats = svc.orders.summarize()
    assert stats["totalOrders"] == 2
    assert stats["pendingPricing"] == 1
    assert stats["awaitingApproval"] == 0
    assert stats["byStatus"]["approved"] == 1
    assert stats["approvedValue"] == pytest.approx(2365)
