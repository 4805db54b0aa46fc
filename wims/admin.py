# wims/admin.py
from __future__ import annotations

from flask import Blueprint, jsonify, request
from flask_login import current_user

from .services import services
from .utils.guards import admin_required
from .utils.parsers import clean_str, json_body, parse_bool

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


# =========================================================
# Summary
# =========================================================
@admin_bp.route("/summary", methods=["GET"])
@admin_required
def summary():
    svc = services()
    return jsonify(
        {
            "orders": svc.orders.summarize(),
            "inventory": svc.inventory.summary(),
            "pendingRequests": len(svc.permissions.pending()),
            "unapprovedSalesmen": len(svc.users.list_salesmen(approved=False)),
        }
    )


# =========================================================
# Order workflow
# =========================================================
@admin_bp.route("/orders/<int:order_id>/pricing", methods=["POST"])
@admin_required
def price_order(order_id):
    data = json_body()
    svc = services()
    order = svc.orders.get_order(order_id)
    order = svc.orders.set_admin_pricing(
        order,
        data.get("itemPrices") or {},
        current_user,
        admin_notes=data.get("adminNotes"),
        allow_adjustment=parse_bool(data.get("allowPriceAdjustment")),
        adjustment_range=data.get("priceAdjustmentRange"),
    )
    return jsonify(order.to_dict())


@admin_bp.route("/orders/<int:order_id>/approve", methods=["POST"])
@admin_required
def approve_order(order_id):
    svc = services()
    order = svc.orders.approve_order(svc.orders.get_order(order_id), current_user)
    return jsonify(order.to_dict())


@admin_bp.route("/orders/<int:order_id>/reject", methods=["POST"])
@admin_required
def reject_order(order_id):
    svc = services()
    order = svc.orders.reject_order(svc.orders.get_order(order_id), json_body().get("reason"), current_user)
    return jsonify(order.to_dict())


@admin_bp.route("/orders/<int:order_id>/complete", methods=["POST"])
@admin_required
def complete_order(order_id):
    svc = services()
    order = svc.orders.complete_order(svc.orders.get_order(order_id), current_user)
    return jsonify(order.to_dict())


@admin_bp.route("/orders/<int:order_id>", methods=["DELETE"])
@admin_required
def delete_order(order_id):
    svc = services()
    order = svc.orders.delete_order(svc.orders.get_order(order_id), current_user)
    return jsonify(order.to_dict())


@admin_bp.route("/orders/<int:order_id>/restore", methods=["POST"])
@admin_required
def restore_order(order_id):
    svc = services()
    order = svc.orders.restore_order(svc.orders.get_order(order_id), current_user)
    return jsonify(order.to_dict())


# =========================================================
# Bills
# =========================================================
@admin_bp.route("/bills/<int:bill_id>/status", methods=["POST"])
@admin_required
def set_bill_status(bill_id):
    svc = services()
    bill = svc.bills.set_bill_status(svc.bills.get_bill(bill_id), json_body().get("status"), current_user)
    return jsonify(bill.to_dict())


# =========================================================
# Salesmen
# =========================================================
@admin_bp.route("/salesmen", methods=["GET"])
@admin_required
def list_salesmen():
    approved = request.args.get("approved")
    salesmen = services().users.list_salesmen(approved=None if approved is None else parse_bool(approved))
    return jsonify([u.to_dict() for u in salesmen])


@admin_bp.route("/salesmen/<int:user_id>/approve", methods=["POST"])
@admin_required
def approve_salesman(user_id):
    svc = services()
    user = svc.users.approve_salesman(svc.users.get_user(user_id), current_user)
    return jsonify(user.to_dict())


# =========================================================
# Permission requests
# =========================================================
@admin_bp.route("/permission-requests", methods=["GET"])
@admin_required
def pending_requests():
    return jsonify([r.to_dict() for r in services().permissions.pending()])


@admin_bp.route("/permission-requests/<int:request_id>/approve", methods=["POST"])
@admin_required
def approve_request(request_id):
    svc = services()
    req = svc.permissions.approve(svc.permissions.get(request_id), current_user)
    return jsonify(req.to_dict())


@admin_bp.route("/permission-requests/<int:request_id>/reject", methods=["POST"])
@admin_required
def reject_request(request_id):
    svc = services()
    req = svc.permissions.reject(svc.permissions.get(request_id), current_user, notes=json_body().get("notes"))
    return jsonify(req.to_dict())


# =========================================================
# Inventory
# =========================================================
@admin_bp.route("/inventory", methods=["GET"])
@admin_required
def inventory():
    svc = services()
    return jsonify(
        {
            "items": [i.to_dict() for i in svc.inventory.list_items()],
            "summary": svc.inventory.summary(),
            "movements": [m.to_dict() for m in svc.inventory.movements(limit=50)],
        }
    )


@admin_bp.route("/inventory", methods=["POST"])
@admin_required
def add_inventory_item():
    item = services().inventory.add_item(json_body(), current_user)
    return jsonify(item.to_dict()), 201


@admin_bp.route("/inventory/<int:item_id>/stock", methods=["POST"])
@admin_required
def update_stock(item_id):
    data = json_body()
    svc = services()
    item = svc.inventory.get_item(item_id)
    movement = svc.inventory.update_stock(
        item,
        data.get("quantity"),
        data.get("reason"),
        clean_str(data.get("type")) or "",
        current_user,
    )
    return jsonify({"item": item.to_dict(), "movement": movement.to_dict()})


@admin_bp.route("/inventory/<int:item_id>/price", methods=["POST"])
@admin_required
def update_price(item_id):
    svc = services()
    item = svc.inventory.update_price(svc.inventory.get_item(item_id), json_body().get("unitCost"), current_user)
    return jsonify(item.to_dict())
