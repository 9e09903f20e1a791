"""Initial schema: tenants, users, inventory, menus, operations and HR.

Revision ID: 0001
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

sppg_status = sa.Enum("ACTIVE", "INACTIVE", "SUSPENDED", name="sppgstatus")
user_role = sa.Enum(
    "PLATFORM_SUPERADMIN",
    "PLATFORM_SUPPORT",
    "PLATFORM_ANALYST",
    "SPPG_KEPALA",
    "SPPG_ADMIN",
    "SPPG_AHLI_GIZI",
    "SPPG_AKUNTAN",
    "SPPG_PRODUKSI_MANAGER",
    "SPPG_DISTRIBUSI_MANAGER",
    "SPPG_HRD_MANAGER",
    "SPPG_STAFF_DAPUR",
    "SPPG_STAFF_DISTRIBUSI",
    "SPPG_STAFF_ADMIN",
    "SPPG_STAFF_QC",
    "SPPG_VIEWER",
    "DEMO_USER",
    name="userrole",
)
procurement_status = sa.Enum(
    "DRAFT",
    "PENDING_APPROVAL",
    "APPROVED",
    "ORDERED",
    "RECEIVED",
    "CANCELLED",
    name="procurementstatus",
)
production_status = sa.Enum(
    "PLANNED",
    "PREPARING",
    "COOKING",
    "QUALITY_CHECK",
    "COMPLETED",
    "CANCELLED",
    name="productionstatus",
)
distribution_status = sa.Enum(
    "SCHEDULED", "IN_TRANSIT", "DELIVERED", "CANCELLED", name="distributionstatus"
)
attendance_status = sa.Enum("PRESENT", "ABSENT", "LATE", "LEAVE", name="attendancestatus")


def upgrade() -> None:
    # ── sppgs ──
    op.create_table(
        "sppgs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("code", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("status", sppg_status, server_default="ACTIVE"),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )

    # ── users ──
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("email", sa.String(), nullable=False, unique=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("user_role", user_role, nullable=False),
        sa.Column("sppg_id", sa.String(), sa.ForeignKey("sppgs.id"), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )

    # ── inventory_items ──
    op.create_table(
        "inventory_items",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("sppg_id", sa.String(), sa.ForeignKey("sppgs.id"), nullable=False),
        sa.Column("item_name", sa.String(), nullable=False),
        sa.Column("category", sa.String(), server_default="LAINNYA"),
        sa.Column("unit", sa.String(), server_default="kg"),
        sa.Column("current_stock", sa.Float(), server_default="0"),
        sa.Column("min_stock", sa.Float(), server_default="0"),
        sa.Column("max_stock", sa.Float(), server_default="0"),
        sa.Column("last_price", sa.Float(), nullable=True),
        sa.Column("average_price", sa.Float(), nullable=True),
        sa.Column("calories", sa.Float(), nullable=True),
        sa.Column("protein", sa.Float(), nullable=True),
        sa.Column("carbohydrates", sa.Float(), nullable=True),
        sa.Column("fat", sa.Float(), nullable=True),
        sa.Column("fiber", sa.Float(), nullable=True),
        sa.Column("calcium", sa.Float(), nullable=True),
        sa.Column("iron", sa.Float(), nullable=True),
        sa.Column("vitamin_a", sa.Float(), nullable=True),
        sa.Column("vitamin_c", sa.Float(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.CheckConstraint("current_stock >= 0", name="ck_inventory_current_stock"),
        sa.CheckConstraint("min_stock >= 0", name="ck_inventory_min_stock"),
        sa.CheckConstraint("max_stock >= 0", name="ck_inventory_max_stock"),
    )
    op.create_index("ix_inventory_sppg", "inventory_items", ["sppg_id"])

    # ── menus ──
    op.create_table(
        "menus",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("sppg_id", sa.String(), sa.ForeignKey("sppgs.id"), nullable=False),
        sa.Column("menu_code", sa.String(), nullable=False),
        sa.Column("menu_name", sa.String(), nullable=False),
        sa.Column("meal_type", sa.String(), server_default="MAKAN_SIANG"),
        sa.Column("serving_size", sa.Float(), server_default="100"),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.UniqueConstraint("sppg_id", "menu_code", name="uq_menu_code_per_sppg"),
        sa.CheckConstraint("serving_size > 0", name="ck_menu_serving_size"),
    )

    # ── menu_ingredients ──
    op.create_table(
        "menu_ingredients",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("menu_id", sa.String(), sa.ForeignKey("menus.id"), nullable=False),
        sa.Column(
            "inventory_item_id",
            sa.String(),
            sa.ForeignKey("inventory_items.id"),
            nullable=True,
        ),
        sa.Column("ingredient_name", sa.String(), nullable=False),
        sa.Column("quantity", sa.Float(), server_default="0"),
        sa.Column("unit", sa.String(), server_default="gram"),
        sa.Column("cost_per_unit", sa.Float(), server_default="0"),
        sa.Column("total_cost", sa.Float(), server_default="0"),
        sa.CheckConstraint("quantity >= 0", name="ck_ingredient_quantity"),
    )

    # ── procurements ──
    op.create_table(
        "procurements",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("sppg_id", sa.String(), sa.ForeignKey("sppgs.id"), nullable=False),
        sa.Column("procurement_code", sa.String(), nullable=False),
        sa.Column("supplier_name", sa.String(), nullable=True),
        sa.Column("status", procurement_status, server_default="DRAFT"),
        sa.Column("total_amount", sa.Float(), server_default="0"),
        sa.Column("procurement_date", sa.Date(), server_default=sa.text("CURRENT_DATE")),
        sa.CheckConstraint("total_amount >= 0", name="ck_procurement_amount"),
    )

    # ── productions ──
    op.create_table(
        "productions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("sppg_id", sa.String(), sa.ForeignKey("sppgs.id"), nullable=False),
        sa.Column("menu_id", sa.String(), sa.ForeignKey("menus.id"), nullable=True),
        sa.Column("status", production_status, server_default="PLANNED"),
        sa.Column("planned_portions", sa.Integer(), server_default="0"),
        sa.Column("actual_portions", sa.Integer(), server_default="0"),
        sa.Column("production_date", sa.Date(), server_default=sa.text("CURRENT_DATE")),
        sa.CheckConstraint("planned_portions >= 0", name="ck_production_planned"),
        sa.CheckConstraint("actual_portions >= 0", name="ck_production_actual"),
    )

    # ── distributions ──
    op.create_table(
        "distributions",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("sppg_id", sa.String(), sa.ForeignKey("sppgs.id"), nullable=False),
        sa.Column("destination", sa.String(), nullable=False),
        sa.Column("status", distribution_status, server_default="SCHEDULED"),
        sa.Column("portions", sa.Integer(), server_default="0"),
        sa.Column("distribution_date", sa.Date(), server_default=sa.text("CURRENT_DATE")),
        sa.CheckConstraint("portions >= 0", name="ck_distribution_portions"),
    )

    # ── feedback ──
    op.create_table(
        "feedback",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("sppg_id", sa.String(), sa.ForeignKey("sppgs.id"), nullable=False),
        sa.Column("menu_id", sa.String(), sa.ForeignKey("menus.id"), nullable=True),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.CheckConstraint("rating >= 1 AND rating <= 5", name="ck_feedback_rating"),
    )

    # ── employees ──
    op.create_table(
        "employees",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("sppg_id", sa.String(), sa.ForeignKey("sppgs.id"), nullable=False),
        sa.Column("employee_code", sa.String(), nullable=False),
        sa.Column("full_name", sa.String(), nullable=False),
        sa.Column("position", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true")),
        sa.UniqueConstraint("sppg_id", "employee_code", name="uq_employee_code_per_sppg"),
    )

    # ── attendances ──
    op.create_table(
        "attendances",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("sppg_id", sa.String(), sa.ForeignKey("sppgs.id"), nullable=False),
        sa.Column("employee_id", sa.String(), sa.ForeignKey("employees.id"), nullable=False),
        sa.Column("attendance_date", sa.Date(), server_default=sa.text("CURRENT_DATE")),
        sa.Column("status", attendance_status, server_default="PRESENT"),
        sa.UniqueConstraint("employee_id", "attendance_date", name="uq_attendance_per_day"),
    )


def downgrade() -> None:
    op.drop_table("attendances")
    op.drop_table("employees")
    op.drop_table("feedback")
    op.drop_table("distributions")
    op.drop_table("productions")
    op.drop_table("procurements")
    op.drop_table("menu_ingredients")
    op.drop_table("menus")
    op.drop_index("ix_inventory_sppg", table_name="inventory_items")
    op.drop_table("inventory_items")
    op.drop_table("users")
    op.drop_table("sppgs")
    for enum in (
        attendance_status,
        distribution_status,
        production_status,
        procurement_status,
        user_role,
        sppg_status,
    ):
        enum.drop(op.get_bind(), checkfirst=True)
