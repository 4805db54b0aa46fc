# wims/services/bills.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from flask import current_app
from sqlalchemy.exc import IntegrityError

from .. import pricing
from ..errors import DuplicateError, InvalidTransition, NotFoundError, PersistenceError, ValidationError
from ..extensions import db
from ..models import (
    BILL_TRANSITIONS,
    BILL_TYPE_GST,
    BILL_TYPES,
    ORDER_ADMIN_PRICED,
    ORDER_APPROVED,
    ORDER_COMPLETED,
    Bill,
    BillItem,
    BillStatus,
    Order,
    utcnow_naive,
)
from ..utils.parsers import clean_str
from .access import require_admin, require_owner_or_admin
from .store import unit_of_work

BILLABLE_STATUSES = {ORDER_ADMIN_PRICED, ORDER_APPROVED, ORDER_COMPLETED}


def generate_bill_number(offset: int = 0) -> str:
    year = utcnow_naive().year
    count = (db.session.query(sa.func.count(Bill.id)).scalar() or 0) + 1 + offset
    return f"WIMS-BILL-{year}-{count:04d}"


class BillService:
    def __init__(self, *, orders, bill_policy: str = "one_per_type", completion_policy: str = "on_bill"):
        if bill_policy not in ("one_per_type", "one_per_order"):
            raise ValueError(f"Unknown BILL_POLICY {bill_policy!r}")
        if completion_policy not in ("manual", "on_bill"):
            raise ValueError(f"Unknown ORDER_COMPLETION_POLICY {completion_policy!r}")
        self.orders = orders
        self.bill_policy = bill_policy
        self.completion_policy = completion_policy

    def _resolve_gst_number(self, order: Order, gst_number: Optional[str]) -> Optional[str]:
        return (
            clean_str(gst_number)
            or clean_str(order.gst_number)
            or (clean_str(order.client.gst_number) if order.client else None)
        )

    def _existing_bill(self, order: Order, bill_type: str) -> Optional[Bill]:
        query = Bill.query.filter(Bill.order_id == order.id)
        if self.bill_policy == "one_per_type":
            query = query.filter(Bill.bill_type == bill_type)
        return query.first()

    def generate_bill(
        self,
        order: Order,
        bill_type: str,
        actor,
        *,
        gst_number: Optional[str] = None,
    ) -> Bill:
        require_owner_or_admin(order, actor)

        if bill_type not in BILL_TYPES:
            raise ValidationError(f"Unknown bill type '{bill_type}'", field="billType")

        if order.is_deleted:
            raise InvalidTransition(f"Order {order.order_number} is deleted", current=order.status)
        if order.status not in BILLABLE_STATUSES:
            raise InvalidTransition(
                f"Order {order.order_number} cannot be billed while {order.status}",
                current=order.status,
            )

        current = pricing.authoritative_pricing(order)
        if not current:
            raise InvalidTransition(f"Order {order.order_number} has no admin pricing", current=order.status)

        resolved_gst = None
        if bill_type == BILL_TYPE_GST:
            resolved_gst = self._resolve_gst_number(order, gst_number)
            if not resolved_gst:
                raise ValidationError("GST number is required for a GST bill", field="gstNumber")

        existing = self._existing_bill(order, bill_type)
        if existing is not None:
            raise DuplicateError(
                f"Order {order.order_number} already has a {existing.bill_type} bill",
                existing=existing,
            )

        item_prices = current.get("itemPrices") or {}

        # If bill_number uniqueness ever clashes, we retry once.
        for attempt in range(2):
            bill = Bill(
                bill_number=generate_bill_number(attempt),
                order_id=order.id,
                order_number=order.order_number,
                client_name=order.client_name,
                bill_type=bill_type,
                gst_number=resolved_gst,
                status=BillStatus.GENERATED,
                subtotal=float(current.get("subtotal", 0.0)),
                tax=float(current.get("tax", 0.0)),
                total=float(current.get("total", 0.0)),
                generated_by_user_id=actor.id,
            )
            for item in order.items:
                unit_price = float(item_prices.get(item.sku, 0.0))
                bill.items.append(
                    BillItem(
                        sku=item.sku,
                        name=item.name,
                        quantity=item.requested_quantity,
                        unit=item.unit,
                        unit_price=unit_price,
                        line_total=unit_price * item.requested_quantity,
                    )
                )

            try:
                with unit_of_work("Generate bill"):
                    db.session.add(bill)
                    if self.completion_policy == "on_bill" and order.status == ORDER_APPROVED:
                        self.orders.mark_completed(order)
            except PersistenceError as exc:
                if attempt == 0 and isinstance(exc.__cause__, IntegrityError):
                    continue
                raise

            current_app.logger.info(
                "Bill %s generated for order %s (%s)", bill.bill_number, order.order_number, bill_type
            )
            return bill

        raise PersistenceError("Generate bill")

    def set_bill_status(self, bill: Bill, status, admin) -> Bill:
        require_admin(admin)
        try:
            target = status if isinstance(status, BillStatus) else BillStatus(str(status).strip().lower())
        except ValueError:
            raise ValidationError(f"Unknown bill status '{status}'", field="status")

        if target not in BILL_TRANSITIONS.get(bill.status, set()):
            raise InvalidTransition(
                f"Bill {bill.bill_number} cannot move from {bill.status.value} to {target.value}",
                current=bill.status.value,
                target=target.value,
            )

        with unit_of_work("Update bill status"):
            bill.status = target
            bill.status_changed_at = utcnow_naive()

        current_app.logger.info("Bill %s marked %s", bill.bill_number, target.value)
        return bill

    # ======================
    # Queries
    # ======================
    def get_bill(self, bill_id: int) -> Bill:
        bill = db.session.get(Bill, bill_id)
        if bill is None:
            raise NotFoundError("Bill", bill_id)
        return bill

    def get_visible_bill(self, bill_id: int, user) -> Bill:
        bill = self.get_bill(bill_id)
        require_owner_or_admin(bill.order, user)
        return bill

    def list_bills(self, *, status: Optional[str] = None, salesman=None, order=None) -> list[Bill]:
        query = Bill.query.join(Order, Bill.order_id == Order.id)
        if status:
            try:
                query = query.filter(Bill.status == BillStatus(status))
            except ValueError:
                raise ValidationError(f"Unknown bill status '{status}'", field="status")
        if salesman is not None:
            query = query.filter(Order.salesman_id == salesman.id)
        if order is not None:
            query = query.filter(Bill.order_id == order.id)
        return query.order_by(Bill.generated_at.desc(), Bill.id.desc()).all()
