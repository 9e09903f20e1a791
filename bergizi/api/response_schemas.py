"""API response and request schemas -- types used only by the REST layer."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from bergizi.common.schemas import CostBreakdown, NutrientTargets, NutritionResult, NutritionValues


class IngredientLine(BaseModel):
    """One ingredient referenced by inventory item id."""

    inventory_item_id: str
    quantity: float = Field(ge=0)
    unit: str = "gram"


class CalculateRequest(BaseModel):
    ingredients: list[IngredientLine]
    serving_size: float = 100


class CalculateResponse(BaseModel):
    nutrition: NutritionResult
    cost: CostBreakdown


class MenuNutritionResponse(CalculateResponse):
    menu_id: str
    menu_name: str


class ValidateRequest(BaseModel):
    nutrition: NutritionValues
    age_group: str = "BALITA_2_5"


class ComplianceRequest(BaseModel):
    nutrition: NutritionValues
    targets: NutrientTargets


class SuccessResponse(BaseModel):
    success: bool = True
    message: str


class HistoryResponse(BaseModel):
    history: list[dict[str, Any]]
    total: int


class CacheInvalidationResponse(BaseModel):
    success: bool = True
    keys_invalidated: int = Field(alias="keysInvalidated")

    model_config = {"populate_by_name": True}
