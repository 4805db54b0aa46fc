# wims/cli.py
"""
flask wims create-admin | seed-catalog | export-backup | import-backup
"""

from __future__ import annotations

import json

import click
from flask.cli import AppGroup

from .errors import WimsError
from .services import services
from .services.store import export_snapshot, import_snapshot

wims_cli = AppGroup("wims", help="WIMS maintenance commands.")


@wims_cli.command("create-admin")
@click.option("--name", prompt=True)
@click.option("--email", prompt=True)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option("--phone", default=None)
def create_admin(name, email, password, phone):
    """Create an approved admin account."""
    from flask import current_app

    try:
        user = services().users.register_user(
            name=name,
            email=email,
            phone=phone,
            role="admin",
            password=password,
            admin_code=current_app.config["ADMIN_REGISTRATION_CODE"],
        )
    except WimsError as exc:
        raise click.ClickException(exc.message)

    click.echo(f"Admin created: {user.email}")


@wims_cli.command("seed-catalog")
def seed_catalog():
    """Add the default juice lines to inventory."""
    added = services().inventory.seed_default_catalog()
    click.echo(f"Catalog seeded: {added} item(s) added")


@wims_cli.command("export-backup")
@click.argument("path", type=click.Path(dir_okay=False, writable=True))
def export_backup(path):
    """Write every WIMS table to a JSON backup file."""
    snapshot = export_snapshot()
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(snapshot, fh, indent=2, ensure_ascii=False)

    counts = ", ".join(f"{k}={len(v)}" for k, v in snapshot.items() if isinstance(v, list))
    click.echo(f"Backup written to {path} ({counts})")


@wims_cli.command("import-backup")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--replace", is_flag=True, help="Clear existing data before loading.")
def import_backup(path, replace):
    """Load a JSON backup produced by export-backup."""
    with open(path, encoding="utf-8") as fh:
        try:
            snapshot = json.load(fh)
        except json.JSONDecodeError as exc:
            raise click.ClickException(f"{path} is not valid JSON: {exc}")

    try:
        counts = import_snapshot(snapshot, replace=replace)
    except WimsError as exc:
        raise click.ClickException(exc.message)

    click.echo("Backup imported: " + ", ".join(f"{k}={v}" for k, v in counts.items()))
