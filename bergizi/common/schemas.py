"""Pydantic schemas shared across modules.

Nutrition, inventory, dashboard and realtime code exchange these types
instead of ad-hoc dicts. API request/response wrappers live in
bergizi/api/response_schemas.py.

Units:
- Nutrient values on a NutrientProfile are per 100 g of the item.
- Prices are per kg (IDR).
- Ingredient quantities are in the ingredient's own unit and are
  normalized to grams by bergizi.nutrition.units.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field

# ─── Literal Types ───

AgeGroup = Literal["BALITA_2_5", "ANAK_6_12", "REMAJA_13_18", "DEWASA_19_59"]
ComplianceStatus = Literal["LOW", "ADEQUATE", "EXCESSIVE"]
QualityLevel = Literal["EXCELLENT", "GOOD", "FAIR", "POOR"]
StockStatus = Literal["OUT_OF_STOCK", "LOW_STOCK", "IN_STOCK"]
ReorderUrgency = Literal["CRITICAL", "HIGH", "LOW"]
ChangeType = Literal["create", "update", "delete", "view", "export"]

NutrientAmount = Annotated[float, Field(ge=0, allow_inf_nan=False)]


# ─── Nutrition Schemas ───


class NutrientProfile(BaseModel):
    """Per-100 g nutrient and price data for one inventory item."""

    calories: float | None = None
    protein: float | None = None
    carbohydrates: float | None = None
    fat: float | None = None
    fiber: float | None = None
    calcium: float | None = None
    iron: float | None = None
    vitamin_a: float | None = None
    vitamin_c: float | None = None
    last_price: float | None = None
    average_price: float | None = None


class IngredientInput(BaseModel):
    """One ingredient line fed into the nutrition calculator."""

    quantity: float
    unit: str = "gram"
    total_cost: float = 0.0
    item: NutrientProfile | None = None


class NutritionValues(BaseModel):
    """Absolute nutrient amounts for a serving or a whole recipe."""

    calories: NutrientAmount = 0.0
    protein: NutrientAmount = 0.0
    carbohydrates: NutrientAmount = 0.0
    fat: NutrientAmount = 0.0
    fiber: NutrientAmount = 0.0
    calcium: NutrientAmount = 0.0
    iron: NutrientAmount = 0.0
    vitamin_a: NutrientAmount = 0.0
    vitamin_c: NutrientAmount = 0.0


class NutritionResult(NutritionValues):
    """Output of calculate_from_ingredients, scaled to serving_size grams."""

    total_cost: float
    cost_per_serving: float
    serving_size: float


class ValidationResult(BaseModel):
    """Outcome of validating nutrition against an age-group standard."""

    is_valid: bool
    age_group: AgeGroup
    recommendations: list[str]
    warnings: list[str]


class NutritionDensity(BaseModel):
    """Nutrient amounts per 1000 kcal plus an overall quality grade."""

    protein_density: float
    vitamin_a_density: float
    vitamin_c_density: float
    calcium_density: float
    iron_density: float
    overall_quality: QualityLevel


class CostBreakdown(BaseModel):
    """Ingredient cost rolled up per serving and per whole portion."""

    total_cost: float
    cost_per_serving: float
    cost_per_portion: float


class NutrientTargets(BaseModel):
    """Target daily amounts used for compliance comparison."""

    calories: NutrientAmount
    protein: NutrientAmount
    carbohydrates: NutrientAmount
    fat: NutrientAmount
    fiber: NutrientAmount


class NutrientCompliance(BaseModel):
    actual: float
    target: float
    percentage: int
    status: ComplianceStatus


class ComplianceResult(BaseModel):
    """Per-nutrient compliance against targets with recommendations."""

    compliant: bool
    percentage: int
    calories: NutrientCompliance
    protein: NutrientCompliance
    carbohydrates: NutrientCompliance
    fat: NutrientCompliance
    fiber: NutrientCompliance
    recommendations: list[str]


# ─── Inventory Schemas ───


class ReorderRecommendation(BaseModel):
    item_id: str
    item_name: str
    status: StockStatus
    reorder_suggested: bool
    quantity_to_order: float
    urgency: ReorderUrgency


# ─── Dashboard Schemas ───


class DashboardSummary(BaseModel):
    """Operational counters for one SPPG, cached in Redis."""

    sppg_id: str
    active_menus: int
    productions_in_progress: int
    distributions_today: int
    low_stock_items: int
    pending_procurements: int
    average_feedback_rating: float | None = None
    employees_present_today: int
    generated_at: datetime


class ActivityInput(BaseModel):
    """A dashboard activity posted by a client or emitted by the backend."""

    title: str
    description: str = ""
    change_type: ChangeType = Field(default="view", alias="changeType")
    data: dict[str, Any] | None = None

    model_config = {"populate_by_name": True}
