"""Ingredient unit normalization to grams.

Liquids are converted at water density (1 ml = 1 g).
"""

from __future__ import annotations

from bergizi.nutrition.exceptions import NutritionCalculationError, UnitConversionError

GRAMS_PER_UNIT: dict[str, float] = {
    "g": 1.0,
    "gr": 1.0,
    "gram": 1.0,
    "kg": 1000.0,
    "kilogram": 1000.0,
    "mg": 0.001,
    "milligram": 0.001,
    "ons": 100.0,
    "ml": 1.0,
    "milliliter": 1.0,
    "l": 1000.0,
    "liter": 1000.0,
    "litre": 1000.0,
}


def to_grams(quantity: float, unit: str) -> float:
    """Convert ``quantity`` expressed in ``unit`` to grams.

    Args:
        quantity: Non-negative amount.
        unit: Unit name, case-insensitive, surrounding whitespace ignored.

    Raises:
        NutritionCalculationError: If ``quantity`` is negative.
        UnitConversionError: If ``unit`` is not recognised.
    """
    if quantity < 0:
        raise NutritionCalculationError(
            "Ingredient quantity cannot be negative",
            context={"quantity": quantity, "unit": unit},
        )

    factor = GRAMS_PER_UNIT.get(unit.strip().lower())
    if factor is None:
        raise UnitConversionError(
            f"Unknown unit: {unit!r}",
            context={"unit": unit, "known_units": sorted(GRAMS_PER_UNIT)},
        )
    return quantity * factor
