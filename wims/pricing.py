# wims/pricing.py
"""
Pure pricing arithmetic for the order workflow.

Nothing in here touches the session. Every function takes plain item objects
(anything with ``sku`` and ``requested_quantity``) and price maps keyed by SKU,
and returns snapshot dicts shaped the way they are stored on the order:

    salesman: {"subtotal", "total", "itemPrices"}
    admin:    {"subtotal", "tax", "total", "itemPrices"}
    final:    {"subtotal", "tax", "total", "itemPrices", "adjustments"}

Amounts are float INR and are never rounded when stored; ``format_inr`` is
for display only.
"""

from __future__ import annotations

import math
from typing import Iterable, Mapping, Optional

from .errors import ValidationError


def _require_mapping(value, field: str) -> Mapping:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValidationError(f"{field} must be an object keyed by item id", field=field)
    return value


def _lines(items) -> list[tuple[str, float]]:
    return [(item.sku, float(item.requested_quantity)) for item in items]


def compute_totals(
    lines: Iterable[tuple[str, float]],
    item_prices: Mapping[str, float],
    tax_rate: float = 0.0,
) -> dict:
    subtotal = 0.0
    for sku, qty in lines:
        subtotal += float(item_prices.get(sku, 0.0)) * qty
    tax = subtotal * tax_rate
    return {"subtotal": subtotal, "tax": tax, "total": subtotal + tax}


def check_prices(items, item_prices: Mapping[str, float], *, label: str = "price") -> dict[str, float]:
    """
    Every item needs a non-negative price and no price may name an unknown SKU.
    Returns a clean {sku: float} map in item order.
    """
    item_prices = _require_mapping(item_prices, "itemPrices")
    skus = [item.sku for item in items]

    unknown = sorted(str(sku) for sku in set(item_prices) - set(skus))
    if unknown:
        raise ValidationError(f"Unknown item(s) in {label}s: {', '.join(unknown)}", field="itemPrices")

    clean: dict[str, float] = {}
    for sku in skus:
        raw = item_prices.get(sku)
        if raw is None:
            raise ValidationError(f"Missing {label} for item '{sku}'", field="itemPrices")
        try:
            value = float(raw)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid {label} for item '{sku}'", field="itemPrices")
        if not math.isfinite(value):
            raise ValidationError(f"Invalid {label} for item '{sku}'", field="itemPrices")
        if value < 0:
            raise ValidationError(f"{label.capitalize()} for item '{sku}' cannot be negative", field="itemPrices")
        clean[sku] = value
    return clean


def salesman_snapshot(items, item_prices: Mapping[str, float]) -> dict:
    # The salesman quote never carries tax.
    totals = compute_totals(_lines(items), item_prices, 0.0)
    return {
        "subtotal": totals["subtotal"],
        "total": totals["subtotal"],
        "itemPrices": dict(item_prices),
    }


def admin_snapshot(items, item_prices: Mapping[str, float], tax_rate: float) -> dict:
    totals = compute_totals(_lines(items), item_prices, tax_rate)
    return {
        "subtotal": totals["subtotal"],
        "tax": totals["tax"],
        "total": totals["total"],
        "itemPrices": dict(item_prices),
    }


def check_adjustments(
    items,
    admin_prices: Mapping[str, float],
    adjustments: Mapping[str, float],
    range_max: float,
) -> dict[str, float]:
    """
    Validate a whole adjustment set before anything is written.

    Each delta must sit in [-range_max, range_max], each SKU must be on the
    order, and each resulting price must stay non-negative. Items without an
    entry get a delta of 0. Returns {sku: delta} for every item.
    """
    adjustments = _require_mapping(adjustments, "adjustments")
    skus = [item.sku for item in items]

    unknown = sorted(str(sku) for sku in set(adjustments) - set(skus))
    if unknown:
        raise ValidationError(f"Unknown item(s) in adjustments: {', '.join(unknown)}", field="adjustments")

    deltas: dict[str, float] = {}
    for sku in skus:
        raw = adjustments.get(sku, 0.0)
        try:
            delta = float(raw if raw is not None else 0.0)
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid adjustment for item '{sku}'", field="adjustments")
        if not math.isfinite(delta):
            raise ValidationError(f"Invalid adjustment for item '{sku}'", field="adjustments")

        if abs(delta) > range_max:
            raise ValidationError(
                f"Adjustment {delta:+g} for item '{sku}' is outside the allowed range of ±{range_max:g}",
                field="adjustments",
            )

        if float(admin_prices.get(sku, 0.0)) + delta < 0:
            raise ValidationError(f"Adjusted price for item '{sku}' cannot be negative", field="adjustments")

        deltas[sku] = delta
    return deltas


def final_snapshot(
    items,
    admin_prices: Mapping[str, float],
    deltas: Mapping[str, float],
    tax_rate: float,
) -> dict:
    final_prices = {
        item.sku: float(admin_prices.get(item.sku, 0.0)) + float(deltas.get(item.sku, 0.0))
        for item in items
    }
    totals = compute_totals(_lines(items), final_prices, tax_rate)
    return {
        "subtotal": totals["subtotal"],
        "tax": totals["tax"],
        "total": totals["total"],
        "itemPrices": final_prices,
        "adjustments": dict(deltas),
    }


def current_pricing(order) -> Optional[dict]:
    # final > admin > salesman
    return order.final_pricing or order.admin_pricing or order.salesman_pricing


def authoritative_pricing(order) -> Optional[dict]:
    """Pricing a bill may be cut from: never the bare salesman quote."""
    return order.final_pricing or order.admin_pricing


def format_inr(amount) -> str:
    """
    Indian digit grouping: 1234567.5 -> "₹12,34,567.50".
    """
    value = float(amount or 0.0)
    sign = "-" if value < 0 else ""
    whole, frac = f"{abs(value):.2f}".split(".")

    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])

    return f"{sign}₹{whole}.{frac}"
