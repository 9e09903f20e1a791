"""Nutrition endpoints -- calculate, validate and grade menu nutrition.

Inventory items and menus are always loaded within the caller's SPPG;
ids from another tenant behave as missing (404).
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bergizi.api.deps import require_tenant_user
from bergizi.api.response_schemas import (
    CalculateRequest,
    CalculateResponse,
    ComplianceRequest,
    MenuNutritionResponse,
    ValidateRequest,
)
from bergizi.common.database import get_db
from bergizi.common.exceptions import NotFoundError
from bergizi.common.logging import get_logger
from bergizi.common.models import InventoryItem, Menu, MenuIngredient, User
from bergizi.common.schemas import (
    ComplianceResult,
    IngredientInput,
    NutrientProfile,
    NutritionDensity,
    NutritionValues,
    ValidationResult,
)
from bergizi.nutrition.calculator import (
    calculate_cost,
    calculate_from_ingredients,
    calculate_nutrition_density,
    compare_to_standards,
    validate_nutrition,
)
from bergizi.nutrition.units import to_grams

logger = get_logger("API")

router = APIRouter()


def _profile(item: InventoryItem) -> NutrientProfile:
    return NutrientProfile(
        calories=item.calories,
        protein=item.protein,
        carbohydrates=item.carbohydrates,
        fat=item.fat,
        fiber=item.fiber,
        calcium=item.calcium,
        iron=item.iron,
        vitamin_a=item.vitamin_a,
        vitamin_c=item.vitamin_c,
        last_price=item.last_price,
        average_price=item.average_price,
    )


def _line_cost(quantity: float, unit: str, profile: NutrientProfile) -> float:
    price = profile.last_price or profile.average_price or 0.0
    return to_grams(quantity, unit) / 1000 * price


@router.post("/calculate", response_model=CalculateResponse)
async def calculate(
    body: CalculateRequest,
    user: User = Depends(require_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> CalculateResponse:
    """Calculate per-serving nutrition and cost for ad-hoc ingredient lines."""
    ids = {line.inventory_item_id for line in body.ingredients}
    result = await db.execute(
        select(InventoryItem).where(
            InventoryItem.id.in_(ids),
            InventoryItem.sppg_id == user.sppg_id,
        )
    )
    items = {item.id: item for item in result.scalars().all()}

    missing = sorted(ids - items.keys())
    if missing:
        raise NotFoundError(
            "Inventory item not found",
            context={"inventory_item_ids": missing},
        )

    ingredients: list[IngredientInput] = []
    for line in body.ingredients:
        profile = _profile(items[line.inventory_item_id])
        ingredients.append(
            IngredientInput(
                quantity=line.quantity,
                unit=line.unit,
                total_cost=_line_cost(line.quantity, line.unit, profile),
                item=profile,
            )
        )

    return CalculateResponse(
        nutrition=calculate_from_ingredients(ingredients, body.serving_size),
        cost=calculate_cost(ingredients, body.serving_size),
    )


@router.post("/validate", response_model=ValidationResult)
async def validate(
    body: ValidateRequest,
    user: User = Depends(require_tenant_user),
) -> ValidationResult:
    return validate_nutrition(body.nutrition, body.age_group)


@router.post("/density", response_model=NutritionDensity)
async def density(
    body: NutritionValues,
    user: User = Depends(require_tenant_user),
) -> NutritionDensity:
    return calculate_nutrition_density(body)


@router.post("/compliance", response_model=ComplianceResult)
async def compliance(
    body: ComplianceRequest,
    user: User = Depends(require_tenant_user),
) -> ComplianceResult:
    return compare_to_standards(body.nutrition, body.targets)


@router.get("/menus/{menu_id}", response_model=MenuNutritionResponse)
async def menu_nutrition(
    menu_id: str,
    user: User = Depends(require_tenant_user),
    db: AsyncSession = Depends(get_db),
) -> MenuNutritionResponse:
    """Calculate nutrition from a stored menu's ingredients.

    Uses the stored line ``total_cost`` for nutrition cost and item
    prices for the per-kg cost breakdown.
    """
    result = await db.execute(
        select(Menu)
        .where(Menu.id == menu_id, Menu.sppg_id == user.sppg_id)
        .options(selectinload(Menu.ingredients).selectinload(MenuIngredient.inventory_item))
    )
    menu = result.scalar_one_or_none()
    if menu is None:
        raise NotFoundError("Menu not found", context={"menu_id": menu_id})

    ingredients = [
        IngredientInput(
            quantity=ing.quantity,
            unit=ing.unit,
            total_cost=ing.total_cost,
            item=_profile(ing.inventory_item) if ing.inventory_item is not None else None,
        )
        for ing in menu.ingredients
    ]

    logger.info(
        "Menu nutrition calculated",
        extra={"data": {"menu_id": menu.id, "ingredients": len(ingredients)}},
    )
    return MenuNutritionResponse(
        menu_id=menu.id,
        menu_name=menu.menu_name,
        nutrition=calculate_from_ingredients(ingredients, menu.serving_size),
        cost=calculate_cost(ingredients, menu.serving_size),
    )
