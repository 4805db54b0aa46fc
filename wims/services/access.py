# wims/services/access.py
from __future__ import annotations

from ..errors import PermissionDenied


def require_admin(user) -> None:
    if user is None or not getattr(user, "is_admin", False):
        raise PermissionDenied("Admin access required")


def require_approved_salesman(user) -> None:
    if user is None or not getattr(user, "is_salesman", False):
        raise PermissionDenied("Salesman access required")
    if not user.is_approved:
        raise PermissionDenied("Your account is awaiting admin approval")


def require_owner_or_admin(order, user) -> None:
    if user is None:
        raise PermissionDenied("Login required")
    if user.is_admin:
        return
    if order.salesman_id != user.id:
        raise PermissionDenied("You can only access your own orders")
