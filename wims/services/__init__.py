# wims/services/__init__.py
"""
Service objects are built once per application in ``init_services`` and hung
off ``app.extensions["wims"]``. Views reach them through ``services()``.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app

from .bills import BillService
from .clients import ClientService
from .inventory import InventoryService
from .orders import OrderService
from .permissions import PermissionService
from .users import UserService


@dataclass
class ServiceRegistry:
    users: UserService
    permissions: PermissionService
    clients: ClientService
    inventory: InventoryService
    orders: OrderService
    bills: BillService


def init_services(app: Flask) -> ServiceRegistry:
    cfg = app.config
    default_range = tuple(cfg["DEFAULT_ADJUSTMENT_RANGE"])

    permissions = PermissionService(default_range=default_range)
    inventory = InventoryService()
    orders = OrderService(
        tax_rate=cfg["TAX_RATE"],
        default_range=default_range,
        inventory=inventory,
    )

    registry = ServiceRegistry(
        users=UserService(
            admin_registration_code=cfg["ADMIN_REGISTRATION_CODE"],
            salesman_email_domain=cfg["SALESMAN_EMAIL_DOMAIN"],
            permissions=permissions,
        ),
        permissions=permissions,
        clients=ClientService(),
        inventory=inventory,
        orders=orders,
        bills=BillService(
            orders=orders,
            bill_policy=cfg["BILL_POLICY"],
            completion_policy=cfg["ORDER_COMPLETION_POLICY"],
        ),
    )
    app.extensions["wims"] = registry
    return registry


def services() -> ServiceRegistry:
    return current_app.extensions["wims"]
