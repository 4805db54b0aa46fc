# wims/services/clients.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from flask import current_app

from ..errors import DuplicateError, NotFoundError, PermissionDenied, ValidationError
from ..extensions import db
from ..models import Client, Order
from ..utils.parsers import clean_str, first_present
from .store import unit_of_work

ON_DUPLICATE_REJECT = "reject"
ON_DUPLICATE_USE_EXISTING = "use_existing"
ON_DUPLICATE_OVERWRITE = "overwrite"
ON_DUPLICATE_CHOICES = {ON_DUPLICATE_REJECT, ON_DUPLICATE_USE_EXISTING, ON_DUPLICATE_OVERWRITE}

# canonical field -> accepted payload keys, first wins
_CLIENT_FIELDS = {
    "name": ("name", "clientName", "partyName"),
    "email": ("email",),
    "phone": ("phone", "contactNumber"),
    "address": ("address",),
    "contact_person": ("contactPerson", "contact_person"),
    "gst_number": ("gstNumber", "gst_number"),
    "city": ("city",),
    "area": ("area",),
}


def normalize_client_input(raw: Optional[dict]) -> dict:
    """
    Collapse the aliases older forms sent (clientName, partyName,
    contactNumber) into canonical client fields. Everything is trimmed and
    empties become None; a client must at least have a name.
    """
    raw = raw or {}
    data = {field: clean_str(first_present(raw, *keys)) for field, keys in _CLIENT_FIELDS.items()}
    if not data["name"]:
        raise ValidationError("Client name is required", field="name")
    if data["email"]:
        data["email"] = data["email"].lower()
    return data


class ClientService:
    def find_duplicate(self, name: Optional[str], email: Optional[str] = None) -> Optional[Client]:
        name = clean_str(name)
        email = clean_str(email)

        conditions = []
        if name:
            conditions.append(sa.func.lower(Client.name) == name.lower())
        if email:
            conditions.append(sa.func.lower(Client.email) == email.lower())
        if not conditions:
            return None
        return Client.query.filter(sa.or_(*conditions)).order_by(Client.id.asc()).first()

    def create_client(self, raw: dict, created_by, *, on_duplicate: str = ON_DUPLICATE_REJECT) -> Client:
        if on_duplicate not in ON_DUPLICATE_CHOICES:
            raise ValidationError(f"Unknown duplicate action '{on_duplicate}'", field="onDuplicate")

        data = normalize_client_input(raw)
        existing = self.find_duplicate(data["name"], data["email"])

        if existing is not None:
            if on_duplicate == ON_DUPLICATE_REJECT:
                raise DuplicateError(
                    f"A client named '{existing.name}' already exists",
                    existing=existing,
                    field="name",
                )
            if on_duplicate == ON_DUPLICATE_USE_EXISTING:
                current_app.logger.info("Client %s reused", existing.name)
                return existing

        client = Client(created_by_user_id=created_by.id if created_by else None, **data)

        with unit_of_work("Create client"):
            if existing is not None:
                # overwrite: no merge, orders keep their client_name
                self._detach_orders(existing)
                db.session.delete(existing)
                db.session.flush()
            db.session.add(client)

        current_app.logger.info("Client %s created", client.name)
        return client

    def update_client(self, client: Client, raw: dict, actor) -> Client:
        self._require_can_edit(client, actor)
        data = normalize_client_input(raw)

        clash = self.find_duplicate(data["name"], data["email"])
        if clash is not None and clash.id != client.id:
            raise DuplicateError(f"A client named '{clash.name}' already exists", existing=clash, field="name")

        with unit_of_work("Update client"):
            for field, value in data.items():
                setattr(client, field, value)

        return client

    def delete_client(self, client: Client, actor) -> None:
        self._require_can_edit(client, actor)
        name = client.name

        with unit_of_work("Delete client"):
            self._detach_orders(client)
            db.session.delete(client)

        current_app.logger.info("Client %s deleted", name)

    def _detach_orders(self, client: Client) -> None:
        Order.query.filter(Order.client_id == client.id).update(
            {Order.client_id: None}, synchronize_session="fetch"
        )

    def _require_can_edit(self, client: Client, actor) -> None:
        if actor is None:
            raise PermissionDenied("Login required")
        if actor.is_admin or client.created_by_user_id == actor.id:
            return
        raise PermissionDenied("Only an admin or the salesman who added this client can change it")

    # ======================
    # Queries
    # ======================
    def get_client(self, client_id: int) -> Client:
        client = db.session.get(Client, client_id)
        if client is None:
            raise NotFoundError("Client", client_id)
        return client

    def list_clients(self, q: Optional[str] = None) -> list[Client]:
        query = Client.query
        q = clean_str(q)
        if q:
            like = f"%{q}%"
            query = query.filter(
                sa.or_(
                    Client.name.ilike(like),
                    Client.email.ilike(like),
                    Client.phone.ilike(like),
                    Client.city.ilike(like),
                )
            )
        # Most recently used first, then busiest.
        return query.order_by(
            Client.last_used_at.is_(None),
            Client.last_used_at.desc(),
            Client.order_count.desc(),
            Client.name.asc(),
        ).all()
