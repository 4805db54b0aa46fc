# tests/test_cli.py
import json

from wims.models import InventoryItem, User


def test_create_admin(app):
    runner = app.test_cli_runner()
    result = runner.invoke(
        args=["wims", "create-admin", "--name", "Owner", "--email", "owner@wims.com", "--password", "Owner12345"]
    )
    assert result.exit_code == 0, result.output
    assert "owner@wims.com" in result.output

    with app.app_context():
        owner = User.query.filter_by(email="owner@wims.com").one()
        assert owner.is_admin and owner.is_approved


def test_create_admin_reports_policy_errors(app):
    runner = app.test_cli_runner()
    result = runner.invoke(
        args=["wims", "create-admin", "--name", "Owner", "--email", "owner@wims.com", "--password", "weak"]
    )
    assert result.exit_code != 0
    assert "at least" in result.output


def test_seed_catalog(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["wims", "seed-catalog"])
    assert result.exit_code == 0
    assert "5 item(s)" in result.output

    with app.app_context():
        assert InventoryItem.query.count() == 5


def test_export_then_import_backup(app, tmp_path):
    runner = app.test_cli_runner()
    runner.invoke(args=["wims", "seed-catalog"])

    path = tmp_path / "backup.json"
    result = runner.invoke(args=["wims", "export-backup", str(path)])
    assert result.exit_code == 0, result.output

    data = json.loads(path.read_text(encoding="utf-8"))
    assert len(data["wims-inventory-v2"]) == 5

    refused = runner.invoke(args=["wims", "import-backup", str(path)])
    assert refused.exit_code != 0
    assert "--replace" in refused.output

    replaced = runner.invoke(args=["wims", "import-backup", str(path), "--replace"])
    assert replaced.exit_code == 0, replaced.output
    assert "wims-inventory-v2=5" in replaced.output


def test_import_backup_reports_bad_rows(app, tmp_path):
    runner = app.test_cli_runner()
    runner.invoke(args=["wims", "seed-catalog"])

    path = tmp_path / "backup.json"
    runner.invoke(args=["wims", "export-backup", str(path)])
    data = json.loads(path.read_text(encoding="utf-8"))
    data["wims-inventory-v2"][0]["created_at"] = "yesterday"
    path.write_text(json.dumps(data), encoding="utf-8")

    result = runner.invoke(args=["wims", "import-backup", str(path), "--replace"])
    assert result.exit_code == 1
    assert "created_at" in result.output

    with app.app_context():
        assert InventoryItem.query.count() == 5
