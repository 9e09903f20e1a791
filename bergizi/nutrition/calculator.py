"""Nutrition aggregation over menu ingredients.

Every ingredient line is normalized to grams, multiplied against its
item's per-100 g nutrient profile, summed, and scaled to the requested
serving size. Results are rounded half-up to 2 decimals.

Usage:
    from bergizi.nutrition.calculator import calculate_from_ingredients, validate_nutrition

    result = calculate_from_ingredients(ingredients, serving_size=250)
    check = validate_nutrition(result, age_group="ANAK_6_12")
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from bergizi.common.logging import get_logger
from bergizi.common.metrics import NUTRITION_CALCULATIONS_TOTAL
from bergizi.common.schemas import (
    ComplianceResult,
    CostBreakdown,
    IngredientInput,
    NutrientCompliance,
    NutrientTargets,
    NutritionDensity,
    NutritionResult,
    NutritionValues,
    ValidationResult,
)
from bergizi.nutrition.exceptions import NutritionCalculationError
from bergizi.nutrition.standards import (
    AGE_GROUP_STANDARDS,
    COMPLIANCE_HIGH_PCT,
    COMPLIANCE_LOW_PCT,
    COMPLIANCE_RECOMMENDATIONS,
    DENSITY_THRESHOLDS,
    VALIDATED_NUTRIENTS,
)
from bergizi.nutrition.units import to_grams

logger = get_logger("NUTRITION")

NUTRIENT_FIELDS: tuple[str, ...] = (
    "calories",
    "protein",
    "carbohydrates",
    "fat",
    "fiber",
    "calcium",
    "iron",
    "vitamin_a",
    "vitamin_c",
)

COMPLIANCE_FIELDS: tuple[str, ...] = ("calories", "protein", "carbohydrates", "fat", "fiber")


def round_half_up(value: float, digits: int = 2) -> float:
    """Round like the frontend does: halves go up, not to even.

    Raises:
        NutritionCalculationError: If the value is not finite.
    """
    scale = 10**digits
    scaled = value * scale
    if not math.isfinite(scaled):
        raise NutritionCalculationError("Nutrition value out of range", context={"value": value})
    return math.floor(scaled + 0.5) / scale


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def calculate_from_ingredients(
    ingredients: Sequence[IngredientInput],
    serving_size: float = 100,
) -> NutritionResult:
    """Aggregate ingredient nutrients and scale them to one serving.

    Ingredients without an item or with zero grams add cost but no
    nutrients. Their grams still count toward total weight.

    Args:
        ingredients: Ingredient lines with quantity, unit and optional item profile.
        serving_size: Serving size in grams.

    Returns:
        NutritionResult scaled to ``serving_size``. When total weight is
        zero the unscaled sums are returned with cost_per_serving 0.

    Raises:
        NutritionCalculationError: If the list is empty, serving_size is
            not positive, or a quantity is negative.
        UnitConversionError: If an ingredient unit is unknown.
    """
    try:
        if not ingredients:
            raise NutritionCalculationError("Ingredients list is required and cannot be empty")
        if serving_size <= 0:
            raise NutritionCalculationError(
                "Serving size must be greater than 0",
                context={"serving_size": serving_size},
            )

        totals = dict.fromkeys(NUTRIENT_FIELDS, 0.0)
        total_cost = 0.0
        total_weight = 0.0

        for ing in ingredients:
            grams = to_grams(ing.quantity, ing.unit)
            total_weight += grams
            total_cost += ing.total_cost or 0.0

            if ing.item is None or grams <= 0:
                continue

            multiplier = grams / 100
            for name in NUTRIENT_FIELDS:
                totals[name] += (getattr(ing.item, name) or 0.0) * multiplier
    except NutritionCalculationError:
        NUTRITION_CALCULATIONS_TOTAL.labels(operation="calculate", outcome="error").inc()
        raise

    if total_weight <= 0:
        scale = 1.0
        cost_per_serving = 0.0
    else:
        scale = serving_size / total_weight
        cost_per_serving = round_half_up(total_cost * scale)

    result = NutritionResult(
        **{name: round_half_up(totals[name] * scale) for name in NUTRIENT_FIELDS},
        total_cost=round_half_up(total_cost),
        cost_per_serving=cost_per_serving,
        serving_size=serving_size,
    )

    NUTRITION_CALCULATIONS_TOTAL.labels(operation="calculate", outcome="success").inc()
    logger.debug(
        "Nutrition calculated",
        extra={
            "data": {
                "ingredients": len(ingredients),
                "total_weight_g": total_weight,
                "serving_size": serving_size,
                "calories": result.calories,
            }
        },
    )
    return result


def validate_nutrition(
    nutrition: NutritionValues,
    age_group: str = "BALITA_2_5",
) -> ValidationResult:
    """Check calories and macronutrients against an age-group range.

    Raises:
        NutritionCalculationError: If ``age_group`` has no standard.
    """
    standard = AGE_GROUP_STANDARDS.get(age_group)
    if standard is None:
        NUTRITION_CALCULATIONS_TOTAL.labels(operation="validate", outcome="error").inc()
        raise NutritionCalculationError(
            f"Unknown age group: {age_group}",
            context={"age_group": age_group, "known": sorted(AGE_GROUP_STANDARDS)},
        )

    recommendations: list[str] = []
    warnings: list[str] = []

    for field, label, suffix in VALIDATED_NUTRIENTS:
        value = getattr(nutrition, field)
        low = standard[field]["min"]
        high = standard[field]["max"]
        shown = f"{_fmt(value)}{suffix}"
        if value < low:
            warnings.append(f"{label} terlalu rendah ({shown}). Minimum: {_fmt(low)}{suffix}")
        elif value > high:
            warnings.append(f"{label} terlalu tinggi ({shown}). Maksimum: {_fmt(high)}{suffix}")
        else:
            recommendations.append(f"✓ {label} sesuai standar ({shown})")

    NUTRITION_CALCULATIONS_TOTAL.labels(operation="validate", outcome="success").inc()
    return ValidationResult(
        is_valid=not warnings,
        age_group=age_group,
        recommendations=recommendations,
        warnings=warnings,
    )


def calculate_nutrition_density(nutrition: NutritionValues) -> NutritionDensity:
    """Nutrients per 1000 kcal, graded by how many thresholds are met."""
    if nutrition.calories <= 0:
        return NutritionDensity(
            protein_density=0.0,
            vitamin_a_density=0.0,
            vitamin_c_density=0.0,
            calcium_density=0.0,
            iron_density=0.0,
            overall_quality="POOR",
        )

    per_kcal = 1000 / nutrition.calories
    densities = {
        "protein_density": nutrition.protein * per_kcal,
        "vitamin_a_density": nutrition.vitamin_a * per_kcal,
        "vitamin_c_density": nutrition.vitamin_c * per_kcal,
        "calcium_density": nutrition.calcium * per_kcal,
        "iron_density": nutrition.iron * per_kcal,
    }

    score = sum(1 for name, floor in DENSITY_THRESHOLDS.items() if densities[name] >= floor)
    if score >= 4:
        quality = "EXCELLENT"
    elif score >= 3:
        quality = "GOOD"
    elif score >= 2:
        quality = "FAIR"
    else:
        quality = "POOR"

    try:
        rounded = {name: round_half_up(v) for name, v in densities.items()}
    except NutritionCalculationError:
        NUTRITION_CALCULATIONS_TOTAL.labels(operation="density", outcome="error").inc()
        raise

    NUTRITION_CALCULATIONS_TOTAL.labels(operation="density", outcome="success").inc()
    return NutritionDensity(
        **rounded,
        overall_quality=quality,
    )


def calculate_cost(ingredients: Sequence[IngredientInput], serving_size: float) -> CostBreakdown:
    """Cost ingredients from per-kg item prices.

    The item's ``last_price`` is used, falling back to ``average_price``
    and then 0.

    Raises:
        NutritionCalculationError: If serving_size is not positive.
    """
    if serving_size <= 0:
        raise NutritionCalculationError(
            "Serving size must be greater than 0",
            context={"serving_size": serving_size},
        )

    total_cost = 0.0
    total_grams = 0.0
    for ing in ingredients:
        grams = to_grams(ing.quantity, ing.unit)
        total_grams += grams
        if ing.item is None:
            continue
        price = ing.item.last_price or ing.item.average_price or 0.0
        total_cost += grams / 1000 * price

    if total_grams <= 0:
        return CostBreakdown(total_cost=0.0, cost_per_serving=0.0, cost_per_portion=0.0)

    portions = math.floor(total_grams / serving_size)
    cost_per_portion = total_cost / portions if portions > 0 else 0.0

    NUTRITION_CALCULATIONS_TOTAL.labels(operation="cost", outcome="success").inc()
    return CostBreakdown(
        total_cost=round_half_up(total_cost),
        cost_per_serving=round_half_up(total_cost / total_grams * serving_size),
        cost_per_portion=round_half_up(cost_per_portion),
    )


def _percentage(actual: float, target: float) -> int:
    if target == 0:
        return 0
    ratio = actual / target * 100
    if not math.isfinite(ratio):
        raise NutritionCalculationError(
            "Nutrient ratio out of range",
            context={"actual": actual, "target": target},
        )
    return math.floor(ratio + 0.5)


def _status(percentage: int) -> str:
    if percentage < COMPLIANCE_LOW_PCT:
        return "LOW"
    if percentage <= COMPLIANCE_HIGH_PCT:
        return "ADEQUATE"
    return "EXCESSIVE"


def compare_to_standards(nutrition: NutritionValues, targets: NutrientTargets) -> ComplianceResult:
    """Compare actual nutrients to targets (80-120% counts as adequate)."""
    per_nutrient: dict[str, NutrientCompliance] = {}
    recommendations: list[str] = []

    for field in COMPLIANCE_FIELDS:
        actual = getattr(nutrition, field)
        target = getattr(targets, field)
        try:
            pct = _percentage(actual, target)
        except NutritionCalculationError:
            NUTRITION_CALCULATIONS_TOTAL.labels(operation="compliance", outcome="error").inc()
            raise
        status = _status(pct)
        per_nutrient[field] = NutrientCompliance(
            actual=actual, target=target, percentage=pct, status=status
        )
        advice = COMPLIANCE_RECOMMENDATIONS.get((field, status))
        if advice:
            recommendations.append(advice)

    overall = math.floor(sum(c.percentage for c in per_nutrient.values()) / len(per_nutrient) + 0.5)
    compliant = all(c.status == "ADEQUATE" for c in per_nutrient.values())

    NUTRITION_CALCULATIONS_TOTAL.labels(operation="compliance", outcome="success").inc()
    return ComplianceResult(
        compliant=compliant,
        percentage=overall,
        recommendations=recommendations,
        **per_nutrient,
    )
