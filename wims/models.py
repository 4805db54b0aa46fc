# wims/models.py
from __future__ import annotations

import enum
from datetime import datetime, timezone

from flask_login import UserMixin
from sqlalchemy import Enum as SAEnum

from .extensions import db


# Naive UTC everywhere: the columns are "timestamp without time zone".
def utcnow_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


# =========================================================
# User model (Authentication + Roles)
# =========================================================
ROLE_ADMIN = "admin"
ROLE_SALESMAN = "salesman"
ROLES = {ROLE_ADMIN, ROLE_SALESMAN}


class User(UserMixin, db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(30), nullable=True)

    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(20), nullable=False, default=ROLE_SALESMAN)

    # Salesmen wait for an admin before they can work; admins start approved.
    is_approved = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    last_login_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    __table_args__ = (
        db.UniqueConstraint("email", name="user_email_key"),
        db.CheckConstraint("role in ('admin','salesman')", name="ck_user_role"),
    )

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @property
    def is_salesman(self) -> bool:
        return self.role == ROLE_SALESMAN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone or "",
            "role": self.role,
            "isApproved": bool(self.is_approved),
            "isActive": bool(self.is_active),
            "lastLoginAt": _iso(self.last_login_at),
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<User {self.id} {self.email} {self.role}>"


# =========================================================
# Client (party a salesman sells to)
# =========================================================
class Client(db.Model):
    __tablename__ = "client"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(160), nullable=False, index=True)
    email = db.Column(db.String(120), nullable=True, index=True)
    phone = db.Column(db.String(30), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    contact_person = db.Column(db.String(120), nullable=True)
    gst_number = db.Column(db.String(20), nullable=True)
    city = db.Column(db.String(80), nullable=True)
    area = db.Column(db.String(80), nullable=True)

    created_by_user_id = db.Column(
        db.Integer,
        db.ForeignKey("user.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_by = db.relationship("User", foreign_keys=[created_by_user_id], lazy="joined")

    order_count = db.Column(db.Integer, nullable=False, default=0)
    last_used_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email or "",
            "phone": self.phone or "",
            "address": self.address or "",
            "contactPerson": self.contact_person or "",
            "gstNumber": self.gst_number or "",
            "city": self.city or "",
            "area": self.area or "",
            "createdBy": self.created_by_user_id,
            "orderCount": self.order_count or 0,
            "lastUsed": _iso(self.last_used_at),
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<Client {self.id} {self.name}>"


# =========================================================
# Order workflow statuses
# =========================================================
ORDER_PENDING = "pending"
ORDER_ADMIN_PRICED = "admin_priced"
ORDER_SALESMAN_ADJUSTED = "salesman_adjusted"
ORDER_APPROVED = "approved"
ORDER_REJECTED = "rejected"
ORDER_COMPLETED = "completed"

ORDER_STATUSES = {
    ORDER_PENDING,
    ORDER_ADMIN_PRICED,
    ORDER_SALESMAN_ADJUSTED,
    ORDER_APPROVED,
    ORDER_REJECTED,
    ORDER_COMPLETED,
}

ORDER_TRANSITIONS = {
    ORDER_PENDING: {ORDER_ADMIN_PRICED},
    ORDER_ADMIN_PRICED: {ORDER_ADMIN_PRICED, ORDER_SALESMAN_ADJUSTED, ORDER_APPROVED, ORDER_REJECTED},
    ORDER_SALESMAN_ADJUSTED: {ORDER_ADMIN_PRICED, ORDER_APPROVED, ORDER_REJECTED},
    ORDER_APPROVED: {ORDER_COMPLETED},
    ORDER_REJECTED: set(),
    ORDER_COMPLETED: set(),
}


def can_transition(current: str, target: str) -> bool:
    return target in ORDER_TRANSITIONS.get(current, set())


# =========================================================
# Order
# =========================================================
class Order(db.Model):
    __tablename__ = "order"

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(20), unique=True, nullable=False)

    salesman_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    salesman = db.relationship("User", foreign_keys=[salesman_id], lazy="joined")
    salesman_name = db.Column(db.String(120), nullable=False)

    client_id = db.Column(
        db.Integer,
        db.ForeignKey("client.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    client = db.relationship("Client", foreign_keys=[client_id], backref="orders", lazy="joined")
    client_name = db.Column(db.String(160), nullable=False)

    status = db.Column(db.String(30), nullable=False, default=ORDER_PENDING, index=True)

    with_gst = db.Column(db.Boolean, nullable=False, default=False)
    gst_number = db.Column(db.String(20), nullable=True)

    # Snapshots are replaced wholesale on every transition, never edited in place.
    salesman_pricing = db.Column(db.JSON, nullable=True)
    admin_pricing = db.Column(db.JSON, nullable=True)
    final_pricing = db.Column(db.JSON, nullable=True)

    allow_price_adjustment = db.Column(db.Boolean, nullable=False, default=False)
    adjustment_min = db.Column(db.Float, nullable=True)
    adjustment_max = db.Column(db.Float, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    admin_notes = db.Column(db.Text, nullable=True)
    salesman_adjustment_notes = db.Column(db.Text, nullable=True)
    rejection_reason = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)
    admin_priced_at = db.Column(db.DateTime, nullable=True)
    salesman_adjusted_at = db.Column(db.DateTime, nullable=True)
    approved_at = db.Column(db.DateTime, nullable=True)
    rejected_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    # Soft delete is its own flag; it never leaks into the workflow status.
    is_deleted = db.Column(db.Boolean, nullable=False, default=False, index=True)
    deleted_at = db.Column(db.DateTime, nullable=True)

    items = db.relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
        lazy="select",
    )

    __table_args__ = (
        db.CheckConstraint(
            "status in ('pending','admin_priced','salesman_adjusted','approved','rejected','completed')",
            name="ck_order_status",
        ),
    )

    @property
    def is_editable(self) -> bool:
        return self.status == ORDER_PENDING and not self.is_deleted

    @property
    def price_adjustment_range(self) -> dict | None:
        if self.adjustment_max is None:
            return None
        return {"min": self.adjustment_min, "max": self.adjustment_max}

    @property
    def total_items(self) -> float:
        return sum(item.requested_quantity for item in self.items)

    def to_dict(self) -> dict:
        from .pricing import current_pricing

        return {
            "id": self.id,
            "orderNumber": self.order_number,
            "salesmanId": self.salesman_id,
            "salesmanName": self.salesman_name,
            "clientId": self.client_id,
            "clientName": self.client_name,
            "items": [item.to_dict() for item in self.items],
            "totalItems": self.total_items,
            "status": self.status,
            "withGst": bool(self.with_gst),
            "gstNumber": self.gst_number,
            "salesmanPricing": self.salesman_pricing,
            "adminPricing": self.admin_pricing,
            "finalPricing": self.final_pricing,
            "currentPricing": current_pricing(self),
            "allowPriceAdjustment": bool(self.allow_price_adjustment),
            "priceAdjustmentRange": self.price_adjustment_range,
            "notes": self.notes or "",
            "adminNotes": self.admin_notes,
            "salesmanAdjustmentNotes": self.salesman_adjustment_notes,
            "rejectionReason": self.rejection_reason,
            "isEditable": self.is_editable,
            "isDeleted": bool(self.is_deleted),
            "createdAt": _iso(self.created_at),
            "adminPricedAt": _iso(self.admin_priced_at),
            "salesmanAdjustedAt": _iso(self.salesman_adjusted_at),
            "approvedAt": _iso(self.approved_at),
            "rejectedAt": _iso(self.rejected_at),
            "completedAt": _iso(self.completed_at),
        }

    def __repr__(self) -> str:
        return f"<Order {self.id} {self.order_number} {self.status}>"


class OrderItem(db.Model):
    __tablename__ = "order_item"

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(
        db.Integer,
        db.ForeignKey("order.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order = db.relationship("Order", back_populates="items")

    position = db.Column(db.Integer, nullable=False, default=0)

    # Key of every itemPrices / adjustments map on the parent order.
    sku = db.Column(db.String(40), nullable=False)
    name = db.Column(db.String(160), nullable=False)
    category = db.Column(db.String(80), nullable=True)
    volume = db.Column(db.String(40), nullable=True)
    bottles_per_case = db.Column(db.Integer, nullable=True)
    requested_quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(20), nullable=False, default="cases")
    description = db.Column(db.String(255), nullable=True)

    salesman_price = db.Column(db.Float, nullable=True)
    admin_price = db.Column(db.Float, nullable=True)
    final_price = db.Column(db.Float, nullable=True)

    __table_args__ = (
        db.UniqueConstraint("order_id", "sku", name="uq_order_item_sku"),
        db.CheckConstraint("requested_quantity > 0", name="ck_order_item_quantity"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.sku,
            "name": self.name,
            "category": self.category or "",
            "volume": self.volume or "",
            "bottlesPerCase": self.bottles_per_case,
            "requestedQuantity": self.requested_quantity,
            "unit": self.unit,
            "description": self.description or "",
            "salesmanPrice": self.salesman_price,
            "adminPrice": self.admin_price,
            "finalPrice": self.final_price,
        }


# =========================================================
# Bill Status (Enum)
# =========================================================
class BillStatus(enum.Enum):
    GENERATED = "generated"
    VERIFIED = "verified"
    PROCESSED = "processed"
    REJECTED = "rejected"


BILL_TRANSITIONS = {
    BillStatus.GENERATED: {BillStatus.VERIFIED, BillStatus.REJECTED},
    BillStatus.VERIFIED: {BillStatus.PROCESSED, BillStatus.REJECTED},
    BillStatus.PROCESSED: set(),
    BillStatus.REJECTED: set(),
}

BILL_TYPE_REGULAR = "regular"
BILL_TYPE_GST = "gst"
BILL_TYPES = {BILL_TYPE_REGULAR, BILL_TYPE_GST}


# =========================================================
# Bill
# =========================================================
class Bill(db.Model):
    __tablename__ = "bill"

    id = db.Column(db.Integer, primary_key=True)
    bill_number = db.Column(db.String(40), unique=True, nullable=False)

    order_id = db.Column(db.Integer, db.ForeignKey("order.id"), nullable=False, index=True)
    order = db.relationship("Order", foreign_keys=[order_id], backref="bills", lazy="joined")
    order_number = db.Column(db.String(20), nullable=False)
    client_name = db.Column(db.String(160), nullable=False)

    bill_type = db.Column(db.String(10), nullable=False, default=BILL_TYPE_REGULAR)
    gst_number = db.Column(db.String(20), nullable=True)

    status = db.Column(
        SAEnum(
            BillStatus,
            name="bill_status",
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=BillStatus.GENERATED,
    )

    subtotal = db.Column(db.Float, default=0.0, nullable=False)
    tax = db.Column(db.Float, default=0.0, nullable=False)
    total = db.Column(db.Float, default=0.0, nullable=False)

    generated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    status_changed_at = db.Column(db.DateTime, nullable=True)

    generated_by_user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    generated_by = db.relationship("User", foreign_keys=[generated_by_user_id], lazy="joined")

    items = db.relationship(
        "BillItem",
        back_populates="bill",
        order_by="BillItem.id",
        cascade="all, delete-orphan",
        lazy="select",
    )

    __table_args__ = (
        db.UniqueConstraint("order_id", "bill_type", name="uq_bill_order_type"),
        db.CheckConstraint("bill_type in ('regular','gst')", name="ck_bill_type"),
        db.CheckConstraint(
            "status in ('generated','verified','processed','rejected')",
            name="ck_bill_status",
        ),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "billNumber": self.bill_number,
            "orderId": self.order_id,
            "orderNumber": self.order_number,
            "clientName": self.client_name,
            "billType": self.bill_type,
            "gstNumber": self.gst_number,
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "status": self.status.value,
            "generatedAt": _iso(self.generated_at),
            "statusChangedAt": _iso(self.status_changed_at),
            "generatedBy": self.generated_by_user_id,
        }

    def __repr__(self) -> str:
        return f"<Bill {self.id} {self.bill_number} {self.status}>"


class BillItem(db.Model):
    __tablename__ = "bill_item"

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bill.id", ondelete="CASCADE"), nullable=False, index=True)
    bill = db.relationship("Bill", back_populates="items")

    sku = db.Column(db.String(40), nullable=False)
    name = db.Column(db.String(160), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(20), nullable=True)
    unit_price = db.Column(db.Float, default=0.0, nullable=False)
    line_total = db.Column(db.Float, default=0.0, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.sku,
            "name": self.name,
            "quantity": self.quantity,
            "unit": self.unit or "",
            "unitPrice": self.unit_price,
            "lineTotal": self.line_total,
        }


# =========================================================
# Admin permission requests
# =========================================================
REQUEST_LOGIN = "login"
REQUEST_ORDER_EDIT = "order_edit"
REQUEST_PRICE_ADJUSTMENT = "price_adjustment"
REQUEST_TYPES = {REQUEST_LOGIN, REQUEST_ORDER_EDIT, REQUEST_PRICE_ADJUSTMENT}

REQUEST_PENDING = "pending"
REQUEST_APPROVED = "approved"
REQUEST_REJECTED = "rejected"


class PermissionRequest(db.Model):
    __tablename__ = "permission_request"

    id = db.Column(db.Integer, primary_key=True)

    salesman_id = db.Column(db.Integer, db.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    salesman = db.relationship("User", foreign_keys=[salesman_id], lazy="joined")
    salesman_name = db.Column(db.String(120), nullable=False)

    request_type = db.Column(db.String(30), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=REQUEST_PENDING, index=True)
    notes = db.Column(db.Text, nullable=True)

    order_id = db.Column(db.Integer, db.ForeignKey("order.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    resolved_at = db.Column(db.DateTime, nullable=True)
    resolved_by_user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)

    __table_args__ = (
        db.CheckConstraint(
            "request_type in ('login','order_edit','price_adjustment')",
            name="ck_permission_request_type",
        ),
        db.CheckConstraint(
            "status in ('pending','approved','rejected')",
            name="ck_permission_request_status",
        ),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "salesmanId": self.salesman_id,
            "salesmanName": self.salesman_name,
            "requestType": self.request_type,
            "status": self.status,
            "notes": self.notes,
            "orderId": self.order_id,
            "timestamp": _iso(self.created_at),
            "resolvedAt": _iso(self.resolved_at),
            "resolvedBy": self.resolved_by_user_id,
        }


# =========================================================
# Inventory
# =========================================================
STOCK_IN = "in"
STOCK_OUT = "out"
STOCK_ADJUSTMENT = "adjustment"
MOVEMENT_TYPES = {STOCK_IN, STOCK_OUT, STOCK_ADJUSTMENT}


class InventoryItem(db.Model):
    __tablename__ = "inventory_item"

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(40), unique=True, nullable=False)

    name = db.Column(db.String(160), nullable=False)
    category = db.Column(db.String(80), nullable=True)
    volume = db.Column(db.String(40), nullable=True)
    bottles_per_case = db.Column(db.Integer, nullable=True)
    unit = db.Column(db.String(20), nullable=False, default="cases")
    description = db.Column(db.String(255), nullable=True)

    current_stock = db.Column(db.Float, nullable=False, default=0.0)
    min_stock = db.Column(db.Float, nullable=False, default=0.0)
    max_stock = db.Column(db.Float, nullable=False, default=0.0)
    reorder_point = db.Column(db.Float, nullable=False, default=0.0)

    unit_cost = db.Column(db.Float, nullable=False, default=0.0)
    location = db.Column(db.String(120), nullable=True)
    supplier = db.Column(db.String(160), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive, onupdate=utcnow_naive)

    @property
    def status(self) -> str:
        if self.current_stock <= 0:
            return "out-of-stock"
        if self.current_stock <= self.min_stock:
            return "low-stock"
        if self.max_stock and self.current_stock >= self.max_stock:
            return "overstocked"
        return "in-stock"

    @property
    def total_value(self) -> float:
        return (self.current_stock or 0.0) * (self.unit_cost or 0.0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "category": self.category or "",
            "volume": self.volume or "",
            "bottlesPerCase": self.bottles_per_case,
            "unit": self.unit,
            "description": self.description or "",
            "currentStock": self.current_stock,
            "minStock": self.min_stock,
            "maxStock": self.max_stock,
            "reorderPoint": self.reorder_point,
            "unitCost": self.unit_cost,
            "totalValue": self.total_value,
            "status": self.status,
            "location": self.location or "",
            "supplier": self.supplier or "",
        }


class StockMovement(db.Model):
    __tablename__ = "stock_movement"

    id = db.Column(db.Integer, primary_key=True)

    item_id = db.Column(db.Integer, db.ForeignKey("inventory_item.id", ondelete="CASCADE"), nullable=False, index=True)
    item = db.relationship("InventoryItem", backref="movements", lazy="joined")

    movement_type = db.Column(db.String(20), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    reason = db.Column(db.String(255), nullable=False)
    location = db.Column(db.String(120), nullable=True)

    performed_by_user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True)
    order_id = db.Column(db.Integer, db.ForeignKey("order.id", ondelete="SET NULL"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow_naive)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "itemId": self.item_id,
            "itemName": self.item.name if self.item else "",
            "type": self.movement_type,
            "quantity": self.quantity,
            "reason": self.reason,
            "location": self.location or "",
            "performedBy": self.performed_by_user_id,
            "orderId": self.order_id,
            "timestamp": _iso(self.created_at),
        }
