# wims/routes.py
"""
Salesman-facing JSON endpoints (admins can use the shared ones too).

Views only parse input, call one service command or query and serialise the
result; every rule lives in wims.services.
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user

from .errors import ValidationError
from .services import services
from .services.clients import ON_DUPLICATE_REJECT
from .utils.bill_pdf import render_bill_pdf
from .utils.guards import approved_salesman_required, approved_user_required, role_required
from .utils.parsers import clean_str, json_body, parse_bool, parse_int

main = Blueprint("main", __name__)


def _scope():
    """Salesmen only ever see their own records."""
    return None if current_user.is_admin else current_user


# ======================
# Dashboard
# ======================
@main.route("/dashboard", methods=["GET"])
@approved_user_required
def dashboard():
    svc = services()
    body = {"orders": svc.orders.summarize(salesman=_scope())}
    if current_user.is_admin:
        body["inventory"] = svc.inventory.summary()
        body["pendingRequests"] = len(svc.permissions.pending())
    return jsonify(body)


# ======================
# Orders
# ======================
@main.route("/orders", methods=["GET"])
@approved_user_required
def list_orders():
    include_deleted = current_user.is_admin and parse_bool(request.args.get("includeDeleted"))
    orders = services().orders.list_orders(
        status=clean_str(request.args.get("status")),
        salesman=_scope(),
        q=request.args.get("q"),
        include_deleted=include_deleted,
    )
    return jsonify([o.to_dict() for o in orders])


@main.route("/orders", methods=["POST"])
@approved_salesman_required
def create_order():
    data = json_body()
    svc = services()

    client_id = parse_int(data.get("clientId"))
    if client_id is None:
        raise ValidationError("Select a client for this order", field="clientId")
    client = svc.clients.get_client(client_id)

    order = svc.orders.create_order(
        current_user,
        client,
        data.get("items") or [],
        notes=data.get("notes"),
        with_gst=parse_bool(data.get("withGst")),
        gst_number=data.get("gstNumber"),
    )
    return jsonify(order.to_dict()), 201


@main.route("/orders/<int:order_id>", methods=["GET"])
@approved_user_required
def get_order(order_id):
    order = services().orders.get_visible_order(order_id, current_user)
    return jsonify(order.to_dict())


@main.route("/orders/<int:order_id>/items", methods=["PUT"])
@approved_user_required
def update_order_items(order_id):
    svc = services()
    order = svc.orders.get_visible_order(order_id, current_user)
    order = svc.orders.update_order_items(order, json_body().get("items") or [], current_user)
    return jsonify(order.to_dict())


@main.route("/orders/<int:order_id>/adjustment", methods=["POST"])
@approved_salesman_required
def adjust_order(order_id):
    data = json_body()
    svc = services()
    order = svc.orders.get_visible_order(order_id, current_user)
    order = svc.orders.apply_salesman_adjustment(
        order,
        data.get("adjustments") or {},
        current_user,
        notes=data.get("notes"),
    )
    return jsonify(order.to_dict())


# ======================
# Bills
# ======================
@main.route("/orders/<int:order_id>/bills", methods=["POST"])
@approved_user_required
def generate_bill(order_id):
    data = json_body()
    svc = services()
    order = svc.orders.get_visible_order(order_id, current_user)
    bill = svc.bills.generate_bill(
        order,
        clean_str(data.get("billType")) or "regular",
        current_user,
        gst_number=data.get("gstNumber"),
    )
    return jsonify(bill.to_dict()), 201


@main.route("/bills", methods=["GET"])
@approved_user_required
def list_bills():
    svc = services()
    order = None
    order_id = parse_int(request.args.get("orderId"))
    if order_id is not None:
        order = svc.orders.get_visible_order(order_id, current_user)

    bills = svc.bills.list_bills(
        status=clean_str(request.args.get("status")),
        salesman=_scope(),
        order=order,
    )
    return jsonify([b.to_dict() for b in bills])


@main.route("/bills/<int:bill_id>", methods=["GET"])
@approved_user_required
def get_bill(bill_id):
    bill = services().bills.get_visible_bill(bill_id, current_user)
    return jsonify(bill.to_dict())


# ======================
# Bill PDF (read only)
# ======================
@main.route("/bills/<int:bill_id>/pdf", methods=["GET"])
@approved_user_required
def bill_pdf(bill_id):
    bill = services().bills.get_visible_bill(bill_id, current_user)

    pdf_bytes = render_bill_pdf(bill)
    filename = f"WIMS_Bill_{bill.bill_number}.pdf"

    return current_app.response_class(
        pdf_bytes,
        mimetype="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


# ======================
# Clients
# ======================
@main.route("/clients", methods=["GET"])
@approved_user_required
def list_clients():
    clients = services().clients.list_clients(request.args.get("q"))
    return jsonify([c.to_dict() for c in clients])


@main.route("/clients/duplicate", methods=["GET"])
@approved_user_required
def find_duplicate_client():
    existing = services().clients.find_duplicate(request.args.get("name"), request.args.get("email"))
    return jsonify({"duplicate": existing.to_dict() if existing else None})


@main.route("/clients", methods=["POST"])
@approved_user_required
def create_client():
    data = json_body()
    on_duplicate = clean_str(data.pop("onDuplicate", None)) or ON_DUPLICATE_REJECT
    client = services().clients.create_client(data, current_user, on_duplicate=on_duplicate)
    return jsonify(client.to_dict()), 201


@main.route("/clients/<int:client_id>", methods=["PUT"])
@approved_user_required
def update_client(client_id):
    svc = services()
    client = svc.clients.get_client(client_id)
    client = svc.clients.update_client(client, json_body(), current_user)
    return jsonify(client.to_dict())


@main.route("/clients/<int:client_id>", methods=["DELETE"])
@approved_user_required
def delete_client(client_id):
    svc = services()
    client = svc.clients.get_client(client_id)
    svc.clients.delete_client(client, current_user)
    return jsonify({"ok": True})


# ======================
# Catalog
# ======================
@main.route("/catalog", methods=["GET"])
@approved_user_required
def catalog():
    return jsonify(services().inventory.catalog())


# ======================
# Permission requests (salesman side)
# ======================
@main.route("/permission-requests", methods=["POST"])
@role_required("salesman")
def file_permission_request():
    data = json_body()
    req = services().permissions.request(
        current_user,
        clean_str(data.get("requestType")) or "",
        notes=data.get("notes"),
        order_id=parse_int(data.get("orderId")),
    )
    status = 201 if req.status == "pending" else 200
    return jsonify(req.to_dict()), status


@main.route("/permission-requests/mine", methods=["GET"])
@role_required("salesman")
def my_permission_requests():
    reqs = services().permissions.for_salesman(current_user)
    return jsonify([r.to_dict() for r in reqs])
