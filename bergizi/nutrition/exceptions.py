"""Nutrition-specific exceptions.

Both subclass BergiziBaseException, so the API layer returns them as
400 responses with a structured body.
"""

from __future__ import annotations

from bergizi.common.exceptions import BergiziBaseException


class NutritionCalculationError(BergiziBaseException):
    """Raised when inputs cannot produce a meaningful nutrition result."""


class UnitConversionError(NutritionCalculationError):
    """Raised when an ingredient unit has no known gram equivalent."""
