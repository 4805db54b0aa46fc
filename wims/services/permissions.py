# wims/services/permissions.py
"""
Salesman -> admin permission requests.

Three kinds exist: "login" (account approval), "price_adjustment" (unlock the
adjustment band on an admin-priced order) and "order_edit" (recorded for the
admin's attention; approving it has no automatic effect).
"""

from __future__ import annotations

from typing import Optional

from flask import current_app

from ..errors import DuplicateError, InvalidTransition, NotFoundError, PermissionDenied, ValidationError
from ..extensions import db
from ..models import (
    ORDER_ADMIN_PRICED,
    REQUEST_APPROVED,
    REQUEST_LOGIN,
    REQUEST_PENDING,
    REQUEST_PRICE_ADJUSTMENT,
    REQUEST_REJECTED,
    REQUEST_TYPES,
    Order,
    PermissionRequest,
    utcnow_naive,
)
from ..utils.parsers import clean_str
from .access import require_admin
from .store import unit_of_work


class PermissionService:
    def __init__(self, *, default_range: tuple[float, float] = (-15.0, 15.0)):
        self.default_range = default_range

    def _find(self, salesman, request_type: str, status: str, order_id: Optional[int] = None):
        query = PermissionRequest.query.filter(
            PermissionRequest.salesman_id == salesman.id,
            PermissionRequest.request_type == request_type,
            PermissionRequest.status == status,
        )
        if order_id is not None:
            query = query.filter(PermissionRequest.order_id == order_id)
        return query.order_by(PermissionRequest.created_at.desc(), PermissionRequest.id.desc()).first()

    def _new(self, salesman, request_type: str, notes: Optional[str], order_id: Optional[int]) -> PermissionRequest:
        return PermissionRequest(
            salesman_id=salesman.id,
            salesman_name=salesman.name,
            request_type=request_type,
            status=REQUEST_PENDING,
            notes=clean_str(notes),
            order_id=order_id,
        )

    def request(
        self,
        salesman,
        request_type: str,
        *,
        notes: Optional[str] = None,
        order_id: Optional[int] = None,
    ) -> PermissionRequest:
        """
        File a request. A second pending request of the same kind is refused;
        an already approved one is handed back instead of filing a new one.
        """
        if salesman is None or not salesman.is_salesman:
            raise PermissionDenied("Only salesmen can file permission requests")
        if request_type not in REQUEST_TYPES:
            raise ValidationError(f"Unknown request type '{request_type}'", field="requestType")

        if request_type == REQUEST_PRICE_ADJUSTMENT:
            if order_id is None:
                raise ValidationError("A price adjustment request needs an order", field="orderId")
            order = db.session.get(Order, order_id)
            if order is None:
                raise NotFoundError("Order", order_id)
            if order.salesman_id != salesman.id:
                raise PermissionDenied("You can only request changes on your own orders")

        pending = self._find(salesman, request_type, REQUEST_PENDING, order_id)
        if pending is not None:
            raise DuplicateError("You already have a pending request of this type", existing=pending)

        approved = self._find(salesman, request_type, REQUEST_APPROVED, order_id)
        if approved is not None:
            return approved

        req = self._new(salesman, request_type, notes, order_id)
        with unit_of_work("File permission request"):
            db.session.add(req)

        current_app.logger.info("Permission request %s filed by %s", request_type, salesman.email)
        return req

    def ensure_pending(self, salesman, request_type: str, *, notes: Optional[str] = None) -> PermissionRequest:
        pending = self._find(salesman, request_type, REQUEST_PENDING)
        if pending is not None:
            return pending

        req = self._new(salesman, request_type, notes, None)
        with unit_of_work("File permission request"):
            db.session.add(req)

        current_app.logger.info("Permission request %s filed for %s", request_type, salesman.email)
        return req

    def close_pending_logins(self, salesman, admin) -> None:
        """Mark open login requests approved; runs inside the caller's unit of work."""
        now = utcnow_naive()
        for req in PermissionRequest.query.filter_by(
            salesman_id=salesman.id, request_type=REQUEST_LOGIN, status=REQUEST_PENDING
        ):
            req.status = REQUEST_APPROVED
            req.resolved_at = now
            req.resolved_by_user_id = admin.id

    def _require_pending(self, req: PermissionRequest) -> None:
        if req.status != REQUEST_PENDING:
            raise InvalidTransition(f"Request {req.id} is already {req.status}", current=req.status)

    def approve(self, req: PermissionRequest, admin) -> PermissionRequest:
        require_admin(admin)
        self._require_pending(req)

        order = None
        if req.request_type == REQUEST_PRICE_ADJUSTMENT and req.order_id is not None:
            order = db.session.get(Order, req.order_id)
            if order is None:
                raise NotFoundError("Order", req.order_id)
            if order.is_deleted or order.status != ORDER_ADMIN_PRICED:
                raise InvalidTransition(
                    f"Order {order.order_number} must be admin priced to allow adjustment",
                    current=order.status,
                )

        with unit_of_work("Approve permission request"):
            req.status = REQUEST_APPROVED
            req.resolved_at = utcnow_naive()
            req.resolved_by_user_id = admin.id

            if req.request_type == REQUEST_LOGIN:
                req.salesman.is_approved = True
            elif order is not None:
                order.allow_price_adjustment = True
                if order.adjustment_max is None:
                    order.adjustment_min, order.adjustment_max = self.default_range

        current_app.logger.info("Permission request %s (%s) approved", req.id, req.request_type)
        return req

    def reject(self, req: PermissionRequest, admin, *, notes: Optional[str] = None) -> PermissionRequest:
        require_admin(admin)
        self._require_pending(req)

        with unit_of_work("Reject permission request"):
            req.status = REQUEST_REJECTED
            req.resolved_at = utcnow_naive()
            req.resolved_by_user_id = admin.id
            if clean_str(notes):
                req.notes = clean_str(notes)

        current_app.logger.info("Permission request %s (%s) rejected", req.id, req.request_type)
        return req

    # ======================
    # Queries
    # ======================
    def get(self, request_id: int) -> PermissionRequest:
        req = db.session.get(PermissionRequest, request_id)
        if req is None:
            raise NotFoundError("Permission request", request_id)
        return req

    def pending(self) -> list[PermissionRequest]:
        return (
            PermissionRequest.query.filter_by(status=REQUEST_PENDING)
            .order_by(PermissionRequest.created_at.asc(), PermissionRequest.id.asc())
            .all()
        )

    def for_salesman(self, salesman) -> list[PermissionRequest]:
        return (
            PermissionRequest.query.filter_by(salesman_id=salesman.id)
            .order_by(PermissionRequest.created_at.desc(), PermissionRequest.id.desc())
            .all()
        )

    def status_for(self, salesman, request_type: str, order_id: Optional[int] = None) -> Optional[str]:
        query = PermissionRequest.query.filter_by(salesman_id=salesman.id, request_type=request_type)
        if order_id is not None:
            query = query.filter_by(order_id=order_id)
        latest = query.order_by(PermissionRequest.created_at.desc(), PermissionRequest.id.desc()).first()
        return latest.status if latest else None
