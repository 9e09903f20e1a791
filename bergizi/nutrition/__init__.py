"""Nutrition engine: unit conversion, ingredient aggregation and standards checks.

Flow: ingredient lines → grams → per-serving nutrients → validation and grading.
"""

from __future__ import annotations

from bergizi.nutrition.calculator import calculate_from_ingredients

__all__ = ["calculate_from_ingredients"]
