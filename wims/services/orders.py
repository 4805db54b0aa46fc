# wims/services/orders.py
"""
Order pricing & approval workflow.

    pending -> admin_priced -> (salesman_adjusted) -> approved -> completed
                            `-> rejected

Every command validates first and mutates second, inside one unit of work, so
a refused command leaves the order exactly as it was.
"""

from __future__ import annotations

from typing import Iterable, Optional

import sqlalchemy as sa
from flask import current_app
from sqlalchemy.exc import IntegrityError

from .. import pricing
from ..errors import InvalidTransition, NotFoundError, PersistenceError, ValidationError
from ..extensions import db
from ..models import (
    ORDER_ADMIN_PRICED,
    ORDER_APPROVED,
    ORDER_COMPLETED,
    ORDER_PENDING,
    ORDER_REJECTED,
    ORDER_SALESMAN_ADJUSTED,
    ORDER_STATUSES,
    Bill,
    Order,
    OrderItem,
    can_transition,
    utcnow_naive,
)
from ..utils.parsers import clean_str, first_present, parse_float, parse_int
from .access import require_admin, require_approved_salesman, require_owner_or_admin
from .store import unit_of_work


def generate_order_number(offset: int = 0) -> str:
    """
    OID001, OID002, ... from the row count. Not concurrency-safe on its own;
    callers retry once on a uniqueness conflict with offset=1.
    """
    count = (db.session.query(sa.func.count(Order.id)).scalar() or 0) + 1 + offset
    return f"OID{count:03d}"


class OrderService:
    def __init__(
        self,
        *,
        tax_rate: float = 0.10,
        default_range: tuple[float, float] = (-15.0, 15.0),
        inventory=None,
    ):
        self.tax_rate = tax_rate
        self.default_range = (float(default_range[0]), float(default_range[1]))
        self.inventory = inventory

    # ======================
    # Item input
    # ======================
    def _build_items(self, raw_items: Optional[Iterable[dict]]) -> list[OrderItem]:
        raw_items = list(raw_items or [])
        if not raw_items:
            raise ValidationError("An order needs at least one item", field="items")

        built: list[OrderItem] = []
        seen: set[str] = set()
        for position, raw in enumerate(raw_items):
            if not isinstance(raw, dict):
                raise ValidationError("Each item must be an object", field="items")

            sku = clean_str(first_present(raw, "id", "sku"))
            if not sku:
                raise ValidationError(f"Item #{position + 1} has no id", field="items")
            if sku in seen:
                raise ValidationError(f"Item '{sku}' appears more than once", field="items")
            seen.add(sku)

            qty = parse_float(first_present(raw, "requestedQuantity", "quantity"))
            if qty is None or qty <= 0:
                raise ValidationError(f"Quantity for item '{sku}' must be greater than zero", field="items")

            price = parse_float(first_present(raw, "salesmanPrice", "price"))
            if price is None or price < 0:
                raise ValidationError(f"Price for item '{sku}' must be zero or more", field="items")

            known = self.inventory.find_by_sku(sku) if self.inventory else None
            name = clean_str(raw.get("name")) or (known.name if known else None)
            if not name:
                raise ValidationError(f"Item '{sku}' needs a name", field="items")

            built.append(
                OrderItem(
                    position=position,
                    sku=sku,
                    name=name,
                    category=clean_str(raw.get("category")) or (known.category if known else None),
                    volume=clean_str(raw.get("volume")) or (known.volume if known else None),
                    bottles_per_case=parse_int(raw.get("bottlesPerCase"))
                    or (known.bottles_per_case if known else None),
                    requested_quantity=qty,
                    unit=clean_str(raw.get("unit")) or (known.unit if known else None) or "cases",
                    description=clean_str(raw.get("description")) or (known.description if known else None),
                    salesman_price=price,
                )
            )
        return built

    @staticmethod
    def _salesman_prices(items: list[OrderItem]) -> dict[str, float]:
        return {item.sku: item.salesman_price for item in items}

    def _check_transition(self, order: Order, target: str) -> None:
        if order.is_deleted:
            raise InvalidTransition(
                f"Order {order.order_number} is deleted",
                current=order.status,
                target=target,
            )
        if not can_transition(order.status, target):
            current_app.logger.warning(
                "Refused %s -> %s on order %s", order.status, target, order.order_number
            )
            raise InvalidTransition(
                f"Order {order.order_number} cannot move from {order.status} to {target}",
                current=order.status,
                target=target,
            )

    # ======================
    # Commands
    # ======================
    def create_order(
        self,
        salesman,
        client,
        items: Iterable[dict],
        *,
        notes: Optional[str] = None,
        with_gst: bool = False,
        gst_number: Optional[str] = None,
    ) -> Order:
        require_approved_salesman(salesman)
        if client is None:
            raise ValidationError("Select a client for this order", field="clientId")

        gst_number = clean_str(gst_number)
        if with_gst and not gst_number:
            raise ValidationError("GST number is required for a GST order", field="gstNumber")

        # Validate once up front; rebuilt per attempt since a rollback discards them.
        items = list(items or [])
        self._build_items(items)

        for attempt in range(2):
            built = self._build_items(items)
            order = Order(
                order_number=generate_order_number(attempt),
                salesman_id=salesman.id,
                salesman_name=salesman.name,
                client_id=client.id,
                client_name=client.name,
                status=ORDER_PENDING,
                with_gst=bool(with_gst),
                gst_number=gst_number if with_gst else None,
                notes=clean_str(notes),
                items=built,
                salesman_pricing=pricing.salesman_snapshot(built, self._salesman_prices(built)),
            )

            try:
                with unit_of_work("Create order"):
                    db.session.add(order)
                    client.order_count = (client.order_count or 0) + 1
                    client.last_used_at = utcnow_naive()
            except PersistenceError as exc:
                if attempt == 0 and isinstance(exc.__cause__, IntegrityError):
                    continue
                raise

            current_app.logger.info(
                "Order %s created by %s for %s", order.order_number, salesman.email, client.name
            )
            return order

        raise PersistenceError("Create order")

    def update_order_items(self, order: Order, items: Iterable[dict], actor) -> Order:
        require_owner_or_admin(order, actor)
        if not order.is_editable:
            raise InvalidTransition(
                f"Order {order.order_number} can no longer be edited",
                current=order.status,
            )

        built = self._build_items(items)

        with unit_of_work("Update order items"):
            # Old rows go first: (order_id, sku) is unique.
            order.items.clear()
            db.session.flush()
            order.items = built
            order.salesman_pricing = pricing.salesman_snapshot(built, self._salesman_prices(built))

        current_app.logger.info("Order %s items updated", order.order_number)
        return order

    def _resolve_range(self, allow_adjustment: bool, adjustment_range) -> tuple[Optional[float], Optional[float]]:
        if not allow_adjustment:
            return None, None
        if not adjustment_range:
            return self.default_range

        if isinstance(adjustment_range, dict):
            lo = parse_float(adjustment_range.get("min"))
            hi = parse_float(adjustment_range.get("max"))
        elif isinstance(adjustment_range, (list, tuple)) and len(adjustment_range) == 2:
            lo, hi = (parse_float(v) for v in adjustment_range)
        else:
            raise ValidationError(
                "Adjustment range must be {min, max} or a [min, max] pair", field="priceAdjustmentRange"
            )

        if hi is None:
            raise ValidationError("Adjustment range needs a max", field="priceAdjustmentRange")
        if lo is None:
            lo = -hi
        if hi < 0:
            raise ValidationError("Adjustment range max cannot be negative", field="priceAdjustmentRange")
        if lo > hi:
            raise ValidationError("Adjustment range min cannot exceed max", field="priceAdjustmentRange")
        return lo, hi

    def set_admin_pricing(
        self,
        order: Order,
        item_prices: dict,
        admin,
        *,
        admin_notes: Optional[str] = None,
        allow_adjustment: bool = False,
        adjustment_range=None,
    ) -> Order:
        require_admin(admin)
        self._check_transition(order, ORDER_ADMIN_PRICED)

        prices = pricing.check_prices(order.items, item_prices or {}, label="admin price")
        lo, hi = self._resolve_range(allow_adjustment, adjustment_range)
        snapshot = pricing.admin_snapshot(order.items, prices, self.tax_rate)

        with unit_of_work("Set admin pricing"):
            for item in order.items:
                item.admin_price = prices[item.sku]
                item.final_price = prices[item.sku]
            order.admin_pricing = snapshot
            order.final_pricing = None
            order.admin_notes = clean_str(admin_notes)
            order.allow_price_adjustment = bool(allow_adjustment)
            order.adjustment_min = lo
            order.adjustment_max = hi
            order.status = ORDER_ADMIN_PRICED
            order.admin_priced_at = utcnow_naive()

        current_app.logger.info(
            "Order %s admin priced (total %s)", order.order_number, pricing.format_inr(snapshot["total"])
        )
        return order

    def apply_salesman_adjustment(
        self,
        order: Order,
        adjustments: dict,
        salesman,
        *,
        notes: Optional[str] = None,
    ) -> Order:
        require_approved_salesman(salesman)
        require_owner_or_admin(order, salesman)
        self._check_transition(order, ORDER_SALESMAN_ADJUSTED)

        if not order.allow_price_adjustment:
            raise InvalidTransition(
                f"Price adjustment is not allowed on order {order.order_number}",
                current=order.status,
                target=ORDER_SALESMAN_ADJUSTED,
            )
        if not order.admin_pricing:
            raise InvalidTransition(f"Order {order.order_number} has no admin pricing", current=order.status)

        range_max = order.adjustment_max if order.adjustment_max is not None else self.default_range[1]
        admin_prices = order.admin_pricing["itemPrices"]

        try:
            deltas = pricing.check_adjustments(order.items, admin_prices, adjustments or {}, range_max)
        except ValidationError:
            current_app.logger.warning("Adjustment refused on order %s", order.order_number)
            raise

        snapshot = pricing.final_snapshot(order.items, admin_prices, deltas, self.tax_rate)

        with unit_of_work("Apply salesman adjustment"):
            for item in order.items:
                item.final_price = snapshot["itemPrices"][item.sku]
            order.final_pricing = snapshot
            order.salesman_adjustment_notes = clean_str(notes)
            order.status = ORDER_SALESMAN_ADJUSTED
            order.salesman_adjusted_at = utcnow_naive()

        current_app.logger.info(
            "Order %s adjusted by salesman (total %s)", order.order_number, pricing.format_inr(snapshot["total"])
        )
        return order

    def approve_order(self, order: Order, admin) -> Order:
        require_admin(admin)
        self._check_transition(order, ORDER_APPROVED)

        # Pricing is frozen as-is; nothing is recomputed on approval.
        with unit_of_work("Approve order"):
            order.status = ORDER_APPROVED
            order.approved_at = utcnow_naive()

        current_app.logger.info("Order %s approved", order.order_number)
        return order

    def reject_order(self, order: Order, reason: Optional[str], admin) -> Order:
        require_admin(admin)
        reason = clean_str(reason)
        if not reason:
            raise ValidationError("A rejection reason is required", field="reason")
        self._check_transition(order, ORDER_REJECTED)

        with unit_of_work("Reject order"):
            order.status = ORDER_REJECTED
            order.rejection_reason = reason
            order.rejected_at = utcnow_naive()

        current_app.logger.info("Order %s rejected: %s", order.order_number, reason)
        return order

    def mark_completed(self, order: Order) -> None:
        """Flip to completed inside the caller's unit of work."""
        self._check_transition(order, ORDER_COMPLETED)
        order.status = ORDER_COMPLETED
        order.completed_at = utcnow_naive()

    def complete_order(self, order: Order, actor) -> Order:
        require_admin(actor)
        with unit_of_work("Complete order"):
            self.mark_completed(order)

        current_app.logger.info("Order %s completed", order.order_number)
        return order

    def delete_order(self, order: Order, admin) -> Order:
        require_admin(admin)
        if order.is_deleted:
            raise InvalidTransition(f"Order {order.order_number} is already deleted", current=order.status)

        with unit_of_work("Delete order"):
            order.is_deleted = True
            order.deleted_at = utcnow_naive()

        current_app.logger.info("Order %s deleted", order.order_number)
        return order

    def restore_order(self, order: Order, admin) -> Order:
        require_admin(admin)
        if not order.is_deleted:
            raise InvalidTransition(f"Order {order.order_number} is not deleted", current=order.status)

        with unit_of_work("Restore order"):
            order.is_deleted = False
            order.deleted_at = None

        current_app.logger.info("Order %s restored", order.order_number)
        return order

    # ======================
    # Queries
    # ======================
    def get_order(self, order_id: int) -> Order:
        order = db.session.get(Order, order_id)
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    def get_visible_order(self, order_id: int, user) -> Order:
        order = self.get_order(order_id)
        require_owner_or_admin(order, user)
        if order.is_deleted and not user.is_admin:
            raise NotFoundError("Order", order_id)
        return order

    def list_orders(
        self,
        *,
        status: Optional[str] = None,
        salesman=None,
        q: Optional[str] = None,
        include_deleted: bool = False,
    ) -> list[Order]:
        query = Order.query
        if not include_deleted:
            query = query.filter(Order.is_deleted.is_(False))
        if status:
            if status not in ORDER_STATUSES:
                raise ValidationError(f"Unknown order status '{status}'", field="status")
            query = query.filter(Order.status == status)
        if salesman is not None:
            query = query.filter(Order.salesman_id == salesman.id)
        q = clean_str(q)
        if q:
            like = f"%{q}%"
            query = query.filter(sa.or_(Order.order_number.ilike(like), Order.client_name.ilike(like)))
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def summarize(self, salesman=None) -> dict:
        orders = self.list_orders(salesman=salesman)

        by_status = {status: 0 for status in sorted(ORDER_STATUSES)}
        approved_value = 0.0
        for order in orders:
            by_status[order.status] += 1
            if order.status in (ORDER_APPROVED, ORDER_COMPLETED):
                current = pricing.current_pricing(order) or {}
                approved_value += float(current.get("total", 0.0))

        bills_query = db.session.query(Bill.status, sa.func.count(Bill.id)).join(Order, Bill.order_id == Order.id)
        if salesman is not None:
            bills_query = bills_query.filter(Order.salesman_id == salesman.id)
        bills_by_status = {status.value: count for status, count in bills_query.group_by(Bill.status).all()}

        return {
            "totalOrders": len(orders),
            "byStatus": by_status,
            "pendingPricing": by_status[ORDER_PENDING],
            "awaitingApproval": by_status[ORDER_ADMIN_PRICED] + by_status[ORDER_SALESMAN_ADJUSTED],
            "approvedValue": approved_value,
            "approvedValueDisplay": pricing.format_inr(approved_value),
            "billsByStatus": bills_by_status,
        }
