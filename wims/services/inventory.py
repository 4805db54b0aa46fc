# wims/services/inventory.py
from __future__ import annotations

from typing import Optional

from flask import current_app

from ..errors import DuplicateError, NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    MOVEMENT_TYPES,
    STOCK_ADJUSTMENT,
    STOCK_IN,
    STOCK_OUT,
    InventoryItem,
    StockMovement,
)
from ..utils.parsers import clean_str, parse_float, parse_int
from .access import require_admin
from .store import unit_of_work

_JUICE_DESCRIPTION = "{name} flavored juice - 160ml bottles, 40 bottles per case"

DEFAULT_CATALOG = [
    {"sku": "LIT-160", "name": "Litchi"},
    {"sku": "MNG-160", "name": "Mango"},
    {"sku": "GUA-160", "name": "Guava"},
    {"sku": "MIX-160", "name": "Mix Fruit", "description": "Mixed fruit flavored juice - 160ml bottles, 40 bottles per case"},
    {"sku": "ORG-160", "name": "Orange"},
]


class InventoryService:
    def find_by_sku(self, sku: str) -> Optional[InventoryItem]:
        return InventoryItem.query.filter_by(sku=sku).first()

    def get_item(self, item_id: int) -> InventoryItem:
        item = db.session.get(InventoryItem, item_id)
        if item is None:
            raise NotFoundError("Inventory item", item_id)
        return item

    def add_item(self, data: dict, admin) -> InventoryItem:
        require_admin(admin)

        sku = clean_str(data.get("sku"))
        name = clean_str(data.get("name"))
        if not sku:
            raise ValidationError("SKU is required", field="sku")
        if not name:
            raise ValidationError("Name is required", field="name")

        existing = self.find_by_sku(sku)
        if existing is not None:
            raise DuplicateError(f"SKU {sku} already exists", existing=existing, field="sku")

        numbers = {}
        for key, field in (
            ("currentStock", "current_stock"),
            ("minStock", "min_stock"),
            ("maxStock", "max_stock"),
            ("reorderPoint", "reorder_point"),
            ("unitCost", "unit_cost"),
        ):
            value = parse_float(data.get(key))
            if value is not None and value < 0:
                raise ValidationError(f"{key} cannot be negative", field=key)
            numbers[field] = value or 0.0

        if numbers["max_stock"] and numbers["min_stock"] > numbers["max_stock"]:
            raise ValidationError("minStock cannot exceed maxStock", field="minStock")

        item = InventoryItem(
            sku=sku,
            name=name,
            category=clean_str(data.get("category")),
            volume=clean_str(data.get("volume")),
            bottles_per_case=parse_int(data.get("bottlesPerCase")),
            unit=clean_str(data.get("unit")) or "cases",
            description=clean_str(data.get("description")),
            location=clean_str(data.get("location")),
            supplier=clean_str(data.get("supplier")),
            **numbers,
        )

        with unit_of_work("Add inventory item"):
            db.session.add(item)

        current_app.logger.info("Inventory item %s added", sku)
        return item

    def update_stock(
        self,
        item: InventoryItem,
        quantity,
        reason: Optional[str],
        movement_type: str,
        performed_by,
        *,
        order_id: Optional[int] = None,
    ) -> StockMovement:
        """
        "in" adds, "out" removes, "adjustment" sets the count outright.
        Stock never goes below zero.
        """
        require_admin(performed_by)

        if movement_type not in MOVEMENT_TYPES:
            raise ValidationError(f"Unknown movement type '{movement_type}'", field="type")
        qty = parse_float(quantity)
        if qty is None or qty < 0 or (qty == 0 and movement_type != STOCK_ADJUSTMENT):
            raise ValidationError("Quantity must be a positive number", field="quantity")
        reason = clean_str(reason)
        if not reason:
            raise ValidationError("A reason is required for stock movements", field="reason")

        if movement_type == STOCK_IN:
            new_stock = item.current_stock + qty
        elif movement_type == STOCK_OUT:
            new_stock = item.current_stock - qty
        else:
            new_stock = qty

        movement = StockMovement(
            item_id=item.id,
            movement_type=movement_type,
            quantity=qty,
            reason=reason,
            location=item.location,
            performed_by_user_id=performed_by.id,
            order_id=order_id,
        )

        with unit_of_work("Update stock"):
            item.current_stock = max(0.0, new_stock)
            db.session.add(movement)

        current_app.logger.info(
            "Stock %s %s %g (%s); now %g", item.sku, movement_type, qty, reason, item.current_stock
        )
        return movement

    def update_price(self, item: InventoryItem, price, admin) -> InventoryItem:
        require_admin(admin)
        value = parse_float(price)
        if value is None or value < 0:
            raise ValidationError("Price must be zero or more", field="unitCost")

        with unit_of_work("Update item price"):
            item.unit_cost = value

        return item

    def list_items(self) -> list[InventoryItem]:
        return InventoryItem.query.order_by(InventoryItem.name.asc()).all()

    def movements(self, item: Optional[InventoryItem] = None, limit: int = 100) -> list[StockMovement]:
        query = StockMovement.query
        if item is not None:
            query = query.filter_by(item_id=item.id)
        return query.order_by(StockMovement.created_at.desc(), StockMovement.id.desc()).limit(limit).all()

    def catalog(self) -> list[dict]:
        """Items a salesman can put on an order, shaped like order item input."""
        return [
            {
                "id": item.sku,
                "name": item.name,
                "category": item.category or "",
                "volume": item.volume or "",
                "bottlesPerCase": item.bottles_per_case,
                "unit": item.unit,
                "description": item.description or "",
                "available": item.current_stock,
                "status": item.status,
            }
            for item in self.list_items()
        ]

    def summary(self) -> dict:
        items = self.list_items()
        by_status = {"in-stock": 0, "low-stock": 0, "out-of-stock": 0, "overstocked": 0}
        for item in items:
            by_status[item.status] += 1
        return {
            "itemCount": len(items),
            "totalUnits": sum(item.current_stock for item in items),
            "totalValue": sum(item.total_value for item in items),
            "inStockItems": by_status["in-stock"],
            "lowStockItems": by_status["low-stock"],
            "outOfStockItems": by_status["out-of-stock"],
            "overstockedItems": by_status["overstocked"],
        }

    def seed_default_catalog(self) -> int:
        """Add any of the five 160 ml juice lines that are missing. Returns how many were added."""
        added = 0
        with unit_of_work("Seed catalog"):
            for entry in DEFAULT_CATALOG:
                if self.find_by_sku(entry["sku"]) is not None:
                    continue
                db.session.add(
                    InventoryItem(
                        sku=entry["sku"],
                        name=entry["name"],
                        category="Fruit Juice",
                        volume="160 ml",
                        bottles_per_case=40,
                        unit="cases",
                        description=entry.get("description") or _JUICE_DESCRIPTION.format(name=entry["name"]),
                        current_stock=0.0,
                        min_stock=10.0,
                        max_stock=500.0,
                        reorder_point=20.0,
                        unit_cost=0.0,
                    )
                )
                added += 1

        current_app.logger.info("Seeded %d catalog item(s)", added)
        return added
