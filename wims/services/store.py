# wims/services/store.py
"""
Commit boundary and backup snapshots.

Every mutating service command runs inside ``unit_of_work``: the command
mutates ORM objects, the block commits on exit, and any failure rolls the
session back before the error propagates. Domain errors pass through as they
are; database failures become ``PersistenceError``.

Backups are a single JSON document keyed like the browser build's storage
keys, so an export from one database can be loaded into another.
"""

from __future__ import annotations

import enum
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

import sqlalchemy as sa
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import PersistenceError, ValidationError, WimsError
from ..extensions import db
from ..models import (
    Bill,
    BillItem,
    Client,
    InventoryItem,
    Order,
    OrderItem,
    PermissionRequest,
    StockMovement,
    User,
    utcnow_naive,
)

BACKUP_VERSION = 1


@contextmanager
def unit_of_work(action: str) -> Iterator:
    try:
        yield db.session
        db.session.commit()
    except WimsError:
        db.session.rollback()
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("%s failed", action)
        raise PersistenceError(action) from exc
    except Exception:
        db.session.rollback()
        current_app.logger.exception("%s failed", action)
        raise


# =========================================================
# Backup export / import
# =========================================================
# (storage key, model, nested children relationship, child model)
_SECTIONS = [
    ("wims-users-v4", User, None, None),
    ("wims-clients", Client, None, None),
    ("wims-inventory-v2", InventoryItem, None, None),
    ("wims-orders", Order, "items", OrderItem),
    ("wims-bills", Bill, "items", BillItem),
    ("wims-permission-requests", PermissionRequest, None, None),
    ("wims-movements-v2", StockMovement, None, None),
]


def _dump_row(obj) -> dict:
    out = {}
    for col in obj.__table__.columns:
        value = getattr(obj, col.key)
        if isinstance(value, datetime):
            value = value.isoformat()
        elif isinstance(value, enum.Enum):
            value = value.value
        out[col.key] = value
    return out


def _load_row(key: str, model, data):
    if not isinstance(data, dict):
        raise ValidationError(f"Backup section {key} holds a row that is not an object")

    kwargs = {}
    for col in model.__table__.columns:
        if col.key not in data:
            continue
        value = data[col.key]
        if value is not None:
            try:
                if isinstance(col.type, sa.DateTime):
                    value = datetime.fromisoformat(value)
                elif isinstance(col.type, sa.Enum) and col.type.enum_class is not None:
                    value = col.type.enum_class(value)
            except (TypeError, ValueError) as exc:
                raise ValidationError(
                    f"Backup section {key}: bad {col.key} {value!r} in row {data.get('id')!r}"
                ) from exc
        kwargs[col.key] = value
    return model(**kwargs)


def export_snapshot() -> dict:
    snapshot: dict = {
        "version": BACKUP_VERSION,
        "exportedAt": utcnow_naive().isoformat(),
    }
    for key, model, children, _child_model in _SECTIONS:
        rows = []
        for obj in model.query.order_by(model.id.asc()).all():
            row = _dump_row(obj)
            if children:
                row[children] = [_dump_row(child) for child in getattr(obj, children)]
            rows.append(row)
        snapshot[key] = rows
    return snapshot


def _database_is_empty() -> bool:
    return all(model.query.first() is None for _key, model, _c, _cm in _SECTIONS)


def _reset_sequences() -> None:
    # Explicit ids leave postgres serial sequences behind.
    if db.engine.dialect.name != "postgresql":
        return
    for _key, model, _children, child_model in _SECTIONS:
        for m in filter(None, (model, child_model)):
            table = m.__table__.name
            db.session.execute(
                sa.text(
                    f"SELECT setval(pg_get_serial_sequence('\"{table}\"', 'id'), "
                    f"COALESCE((SELECT MAX(id) FROM \"{table}\"), 0) + 1, false)"
                )
            )


def import_snapshot(snapshot: dict, *, replace: bool = False) -> dict[str, int]:
    """
    Load a backup produced by ``export_snapshot``.

    Refuses to load into a non-empty database unless ``replace`` is set, in
    which case every WIMS table is cleared first. Returns row counts per key.
    """
    if not isinstance(snapshot, dict) or "version" not in snapshot:
        raise ValidationError("Not a WIMS backup document")
    if snapshot["version"] != BACKUP_VERSION:
        raise ValidationError(f"Unsupported backup version {snapshot['version']!r}")

    if not replace and not _database_is_empty():
        raise ValidationError("Database is not empty; use --replace to overwrite it")

    counts: dict[str, int] = {}
    with unit_of_work("Import backup"):
        if replace:
            for _key, model, _children, child_model in reversed(_SECTIONS):
                if child_model is not None:
                    db.session.execute(sa.delete(child_model))
                db.session.execute(sa.delete(model))

        for key, model, children, child_model in _SECTIONS:
            rows = snapshot.get(key) or []
            if not isinstance(rows, list):
                raise ValidationError(f"Backup section {key} must be a list")
            for row in rows:
                nested = []
                data = row
                if isinstance(row, dict):
                    data = dict(row)
                    if children:
                        nested = data.pop(children, None) or []
                db.session.add(_load_row(key, model, data))
                for child in nested:
                    db.session.add(_load_row(key, child_model, child))
            # Parents must exist before the next section references them.
            db.session.flush()
            counts[key] = len(rows)

        _reset_sequences()

    current_app.logger.info("Backup imported: %s", counts)
    return counts
