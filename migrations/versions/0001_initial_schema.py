"""initial WIMS schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # =========================
    # user
    # =========================
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("email", sa.String(length=120), nullable=False),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("email", name="user_email_key"),
        sa.CheckConstraint("role in ('admin','salesman')", name="ck_user_role"),
    )

    # =========================
    # client
    # =========================
    op.create_table(
        "client",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("email", sa.String(length=120), nullable=True),
        sa.Column("phone", sa.String(length=30), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("contact_person", sa.String(length=120), nullable=True),
        sa.Column("gst_number", sa.String(length=20), nullable=True),
        sa.Column("city", sa.String(length=80), nullable=True),
        sa.Column("area", sa.String(length=80), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="SET NULL"), nullable=True),
        sa.Column("order_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_used_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_client_name", "client", ["name"])
    op.create_index("ix_client_email", "client", ["email"])

    # =========================
    # order + order_item
    # =========================
    op.create_table(
        "order",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_number", sa.String(length=20), nullable=False, unique=True),
        sa.Column("salesman_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=False),
        sa.Column("salesman_name", sa.String(length=120), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("client.id", ondelete="SET NULL"), nullable=True),
        sa.Column("client_name", sa.String(length=160), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="pending"),
        sa.Column("with_gst", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("gst_number", sa.String(length=20), nullable=True),
        sa.Column("salesman_pricing", sa.JSON(), nullable=True),
        sa.Column("admin_pricing", sa.JSON(), nullable=True),
        sa.Column("final_pricing", sa.JSON(), nullable=True),
        sa.Column("allow_price_adjustment", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("adjustment_min", sa.Float(), nullable=True),
        sa.Column("adjustment_max", sa.Float(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("salesman_adjustment_notes", sa.Text(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("admin_priced_at", sa.DateTime(), nullable=True),
        sa.Column("salesman_adjusted_at", sa.DateTime(), nullable=True),
        sa.Column("approved_at", sa.DateTime(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint(
            "status in ('pending','admin_priced','salesman_adjusted','approved','rejected','completed')",
            name="ck_order_status",
        ),
    )
    op.create_index("ix_order_salesman_id", "order", ["salesman_id"])
    op.create_index("ix_order_client_id", "order", ["client_id"])
    op.create_index("ix_order_status", "order", ["status"])
    op.create_index("ix_order_is_deleted", "order", ["is_deleted"])

    op.create_table(
        "order_item",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sku", sa.String(length=40), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("category", sa.String(length=80), nullable=True),
        sa.Column("volume", sa.String(length=40), nullable=True),
        sa.Column("bottles_per_case", sa.Integer(), nullable=True),
        sa.Column("requested_quantity", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False, server_default="cases"),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("salesman_price", sa.Float(), nullable=True),
        sa.Column("admin_price", sa.Float(), nullable=True),
        sa.Column("final_price", sa.Float(), nullable=True),
        sa.UniqueConstraint("order_id", "sku", name="uq_order_item_sku"),
        sa.CheckConstraint("requested_quantity > 0", name="ck_order_item_quantity"),
    )
    op.create_index("ix_order_item_order_id", "order_item", ["order_id"])

    # =========================
    # bill + bill_item
    # =========================
    op.create_table(
        "bill",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("bill_number", sa.String(length=40), nullable=False, unique=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id"), nullable=False),
        sa.Column("order_number", sa.String(length=20), nullable=False),
        sa.Column("client_name", sa.String(length=160), nullable=False),
        sa.Column("bill_type", sa.String(length=10), nullable=False, server_default="regular"),
        sa.Column("gst_number", sa.String(length=20), nullable=True),
        sa.Column("status", sa.String(length=9), nullable=False, server_default="generated"),
        sa.Column("subtotal", sa.Float(), nullable=False, server_default="0"),
        sa.Column("tax", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total", sa.Float(), nullable=False, server_default="0"),
        sa.Column("generated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("status_changed_at", sa.DateTime(), nullable=True),
        sa.Column("generated_by_user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=True),
        sa.UniqueConstraint("order_id", "bill_type", name="uq_bill_order_type"),
        sa.CheckConstraint("bill_type in ('regular','gst')", name="ck_bill_type"),
        sa.CheckConstraint(
            "status in ('generated','verified','processed','rejected')",
            name="ck_bill_status",
        ),
    )
    op.create_index("ix_bill_order_id", "bill", ["order_id"])

    op.create_table(
        "bill_item",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("bill_id", sa.Integer(), sa.ForeignKey("bill.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sku", sa.String(length=40), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=True),
        sa.Column("unit_price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("line_total", sa.Float(), nullable=False, server_default="0"),
    )
    op.create_index("ix_bill_item_bill_id", "bill_item", ["bill_id"])

    # =========================
    # permission_request
    # =========================
    op.create_table(
        "permission_request",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("salesman_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False),
        sa.Column("salesman_name", sa.String(length=120), nullable=False),
        sa.Column("request_type", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("resolved_by_user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=True),
        sa.CheckConstraint(
            "request_type in ('login','order_edit','price_adjustment')",
            name="ck_permission_request_type",
        ),
        sa.CheckConstraint(
            "status in ('pending','approved','rejected')",
            name="ck_permission_request_status",
        ),
    )
    op.create_index("ix_permission_request_salesman_id", "permission_request", ["salesman_id"])
    op.create_index("ix_permission_request_status", "permission_request", ["status"])

    # =========================
    # inventory_item + stock_movement
    # =========================
    op.create_table(
        "inventory_item",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sku", sa.String(length=40), nullable=False, unique=True),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("category", sa.String(length=80), nullable=True),
        sa.Column("volume", sa.String(length=40), nullable=True),
        sa.Column("bottles_per_case", sa.Integer(), nullable=True),
        sa.Column("unit", sa.String(length=20), nullable=False, server_default="cases"),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("current_stock", sa.Float(), nullable=False, server_default="0"),
        sa.Column("min_stock", sa.Float(), nullable=False, server_default="0"),
        sa.Column("max_stock", sa.Float(), nullable=False, server_default="0"),
        sa.Column("reorder_point", sa.Float(), nullable=False, server_default="0"),
        sa.Column("unit_cost", sa.Float(), nullable=False, server_default="0"),
        sa.Column("location", sa.String(length=120), nullable=True),
        sa.Column("supplier", sa.String(length=160), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "stock_movement",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("inventory_item.id", ondelete="CASCADE"), nullable=False),
        sa.Column("movement_type", sa.String(length=20), nullable=False),
        sa.Column("quantity", sa.Float(), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=False),
        sa.Column("location", sa.String(length=120), nullable=True),
        sa.Column("performed_by_user_id", sa.Integer(), sa.ForeignKey("user.id"), nullable=True),
        sa.Column("order_id", sa.Integer(), sa.ForeignKey("order.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_stock_movement_item_id", "stock_movement", ["item_id"])


def downgrade():
    op.drop_index("ix_stock_movement_item_id", table_name="stock_movement")
    op.drop_table("stock_movement")
    op.drop_table("inventory_item")

    op.drop_index("ix_permission_request_status", table_name="permission_request")
    op.drop_index("ix_permission_request_salesman_id", table_name="permission_request")
    op.drop_table("permission_request")

    op.drop_index("ix_bill_item_bill_id", table_name="bill_item")
    op.drop_table("bill_item")
    op.drop_index("ix_bill_order_id", table_name="bill")
    op.drop_table("bill")

    op.drop_index("ix_order_item_order_id", table_name="order_item")
    op.drop_table("order_item")
    op.drop_index("ix_order_is_deleted", table_name="order")
    op.drop_index("ix_order_status", table_name="order")
    op.drop_index("ix_order_client_id", table_name="order")
    op.drop_index("ix_order_salesman_id", table_name="order")
    op.drop_table("order")

    op.drop_index("ix_client_email", table_name="client")
    op.drop_index("ix_client_name", table_name="client")
    op.drop_table("client")

    op.drop_table("user")
