"""SQLAlchemy ORM models for Bergizi-ID.

Every tenant-owned record carries an ``sppg_id`` foreign key. Queries in
the API layer always filter on the caller's SPPG, so rows from other
tenants are indistinguishable from missing rows.

Nutrition values on InventoryItem are per 100 g; prices are per kg.
"""

from __future__ import annotations

import enum
from datetime import UTC, date, datetime
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _uuid() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Declarative base for all models."""


# ─── Enums ───


class SppgStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class UserRole(str, enum.Enum):
    PLATFORM_SUPERADMIN = "PLATFORM_SUPERADMIN"
    PLATFORM_SUPPORT = "PLATFORM_SUPPORT"
    PLATFORM_ANALYST = "PLATFORM_ANALYST"
    SPPG_KEPALA = "SPPG_KEPALA"
    SPPG_ADMIN = "SPPG_ADMIN"
    SPPG_AHLI_GIZI = "SPPG_AHLI_GIZI"
    SPPG_AKUNTAN = "SPPG_AKUNTAN"
    SPPG_PRODUKSI_MANAGER = "SPPG_PRODUKSI_MANAGER"
    SPPG_DISTRIBUSI_MANAGER = "SPPG_DISTRIBUSI_MANAGER"
    SPPG_HRD_MANAGER = "SPPG_HRD_MANAGER"
    SPPG_STAFF_DAPUR = "SPPG_STAFF_DAPUR"
    SPPG_STAFF_DISTRIBUSI = "SPPG_STAFF_DISTRIBUSI"
    SPPG_STAFF_ADMIN = "SPPG_STAFF_ADMIN"
    SPPG_STAFF_QC = "SPPG_STAFF_QC"
    SPPG_VIEWER = "SPPG_VIEWER"
    DEMO_USER = "DEMO_USER"


class ProcurementStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    ORDERED = "ORDERED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class ProductionStatus(str, enum.Enum):
    PLANNED = "PLANNED"
    PREPARING = "PREPARING"
    COOKING = "COOKING"
    QUALITY_CHECK = "QUALITY_CHECK"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class DistributionStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    IN_TRANSIT = "IN_TRANSIT"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    LEAVE = "LEAVE"


# ─── Tenant & Users ───


class Sppg(Base):
    __tablename__ = "sppgs"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    code: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[SppgStatus] = mapped_column(Enum(SppgStatus), default=SppgStatus.ACTIVE)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    users: Mapped[list[User]] = relationship(back_populates="sppg")


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    user_role: Mapped[UserRole] = mapped_column(Enum(UserRole), nullable=False)
    sppg_id: Mapped[str | None] = mapped_column(ForeignKey("sppgs.id"), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    sppg: Mapped[Sppg | None] = relationship(back_populates="users")


# ─── Inventory ───


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="ck_inventory_current_stock"),
        CheckConstraint("min_stock >= 0", name="ck_inventory_min_stock"),
        CheckConstraint("max_stock >= 0", name="ck_inventory_max_stock"),
        Index("ix_inventory_sppg", "sppg_id"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    sppg_id: Mapped[str] = mapped_column(ForeignKey("sppgs.id"), nullable=False)
    item_name: Mapped[str] = mapped_column(String, nullable=False)
    category: Mapped[str] = mapped_column(String, default="LAINNYA")
    unit: Mapped[str] = mapped_column(String, default="kg")
    current_stock: Mapped[float] = mapped_column(Float, default=0.0)
    min_stock: Mapped[float] = mapped_column(Float, default=0.0)
    max_stock: Mapped[float] = mapped_column(Float, default=0.0)
    last_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    average_price: Mapped[float | None] = mapped_column(Float, nullable=True)
    calories: Mapped[float | None] = mapped_column(Float, nullable=True)
    protein: Mapped[float | None] = mapped_column(Float, nullable=True)
    carbohydrates: Mapped[float | None] = mapped_column(Float, nullable=True)
    fat: Mapped[float | None] = mapped_column(Float, nullable=True)
    fiber: Mapped[float | None] = mapped_column(Float, nullable=True)
    calcium: Mapped[float | None] = mapped_column(Float, nullable=True)
    iron: Mapped[float | None] = mapped_column(Float, nullable=True)
    vitamin_a: Mapped[float | None] = mapped_column(Float, nullable=True)
    vitamin_c: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, onupdate=_now
    )


# ─── Menu ───


class Menu(Base):
    __tablename__ = "menus"
    __table_args__ = (
        UniqueConstraint("sppg_id", "menu_code", name="uq_menu_code_per_sppg"),
        CheckConstraint("serving_size > 0", name="ck_menu_serving_size"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    sppg_id: Mapped[str] = mapped_column(ForeignKey("sppgs.id"), nullable=False)
    menu_code: Mapped[str] = mapped_column(String, nullable=False)
    menu_name: Mapped[str] = mapped_column(String, nullable=False)
    meal_type: Mapped[str] = mapped_column(String, default="MAKAN_SIANG")
    serving_size: Mapped[float] = mapped_column(Float, default=100.0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    ingredients: Mapped[list[MenuIngredient]] = relationship(
        back_populates="menu", cascade="all, delete-orphan"
    )


class MenuIngredient(Base):
    __tablename__ = "menu_ingredients"
    __table_args__ = (CheckConstraint("quantity >= 0", name="ck_ingredient_quantity"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    menu_id: Mapped[str] = mapped_column(ForeignKey("menus.id"), nullable=False)
    inventory_item_id: Mapped[str | None] = mapped_column(
        ForeignKey("inventory_items.id"), nullable=True
    )
    ingredient_name: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[float] = mapped_column(Float, default=0.0)
    unit: Mapped[str] = mapped_column(String, default="gram")
    cost_per_unit: Mapped[float] = mapped_column(Float, default=0.0)
    total_cost: Mapped[float] = mapped_column(Float, default=0.0)

    menu: Mapped[Menu] = relationship(back_populates="ingredients")
    inventory_item: Mapped[InventoryItem | None] = relationship()


# ─── Operations ───


class Procurement(Base):
    __tablename__ = "procurements"
    __table_args__ = (CheckConstraint("total_amount >= 0", name="ck_procurement_amount"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    sppg_id: Mapped[str] = mapped_column(ForeignKey("sppgs.id"), nullable=False)
    procurement_code: Mapped[str] = mapped_column(String, nullable=False)
    supplier_name: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[ProcurementStatus] = mapped_column(
        Enum(ProcurementStatus), default=ProcurementStatus.DRAFT
    )
    total_amount: Mapped[float] = mapped_column(Float, default=0.0)
    procurement_date: Mapped[date] = mapped_column(Date, default=date.today)


class Production(Base):
    __tablename__ = "productions"
    __table_args__ = (
        CheckConstraint("planned_portions >= 0", name="ck_production_planned"),
        CheckConstraint("actual_portions >= 0", name="ck_production_actual"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    sppg_id: Mapped[str] = mapped_column(ForeignKey("sppgs.id"), nullable=False)
    menu_id: Mapped[str | None] = mapped_column(ForeignKey("menus.id"), nullable=True)
    status: Mapped[ProductionStatus] = mapped_column(
        Enum(ProductionStatus), default=ProductionStatus.PLANNED
    )
    planned_portions: Mapped[int] = mapped_column(Integer, default=0)
    actual_portions: Mapped[int] = mapped_column(Integer, default=0)
    production_date: Mapped[date] = mapped_column(Date, default=date.today)


class Distribution(Base):
    __tablename__ = "distributions"
    __table_args__ = (CheckConstraint("portions >= 0", name="ck_distribution_portions"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    sppg_id: Mapped[str] = mapped_column(ForeignKey("sppgs.id"), nullable=False)
    destination: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[DistributionStatus] = mapped_column(
        Enum(DistributionStatus), default=DistributionStatus.SCHEDULED
    )
    portions: Mapped[int] = mapped_column(Integer, default=0)
    distribution_date: Mapped[date] = mapped_column(Date, default=date.today)


class Feedback(Base):
    __tablename__ = "feedback"
    __table_args__ = (CheckConstraint("rating >= 1 AND rating <= 5", name="ck_feedback_rating"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    sppg_id: Mapped[str] = mapped_column(ForeignKey("sppgs.id"), nullable=False)
    menu_id: Mapped[str | None] = mapped_column(ForeignKey("menus.id"), nullable=True)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)


# ─── HR ───


class Employee(Base):
    __tablename__ = "employees"
    __table_args__ = (
        UniqueConstraint("sppg_id", "employee_code", name="uq_employee_code_per_sppg"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    sppg_id: Mapped[str] = mapped_column(ForeignKey("sppgs.id"), nullable=False)
    employee_code: Mapped[str] = mapped_column(String, nullable=False)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[str | None] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class Attendance(Base):
    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("employee_id", "attendance_date", name="uq_attendance_per_day"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=_uuid)
    sppg_id: Mapped[str] = mapped_column(ForeignKey("sppgs.id"), nullable=False)
    employee_id: Mapped[str] = mapped_column(ForeignKey("employees.id"), nullable=False)
    attendance_date: Mapped[date] = mapped_column(Date, default=date.today)
    status: Mapped[AttendanceStatus] = mapped_column(
        Enum(AttendanceStatus), default=AttendanceStatus.PRESENT
    )
