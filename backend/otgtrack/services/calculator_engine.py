"""
calculator_engine.py — Cliché plate cost estimate.

Covers:
  - Plate area from width (laize) and circumference (coupe) in mm
  - Total area for a plate count and cost at a price per m²
  - Dimension range checks (100–3000 mm) and a finite, non-negative price

Reference case: 403 × 1325 mm, 2 plates at 2900 DH/m² → 3097 DH.
"""

import math
from dataclasses import asdict, dataclass
from typing import Any, Dict

MIN_DIMENSION_MM: float = 100.0
MAX_DIMENSION_MM: float = 3000.0

DEFAULT_PRICE_PER_M2: float = 2900.0


class CalculatorInputError(ValueError):
    """Dimensions out of range; ``errors`` maps field name to message."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))


@dataclass(frozen=True)
class ClicheEstimate:
    width_mm: float
    circumference_mm: float
    quantity: int
    price_per_m2: float
    area_per_plate_m2: float
    total_area_m2: float
    total_cost: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def validate_dimensions(width_mm: float, circumference_mm: float) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    if not MIN_DIMENSION_MM <= width_mm <= MAX_DIMENSION_MM:
        errors["width_mm"] = (
            f"width must be between {MIN_DIMENSION_MM:.0f} and {MAX_DIMENSION_MM:.0f} mm"
        )
    if not MIN_DIMENSION_MM <= circumference_mm <= MAX_DIMENSION_MM:
        errors["circumference_mm"] = (
            f"circumference must be between {MIN_DIMENSION_MM:.0f} and {MAX_DIMENSION_MM:.0f} mm"
        )
    return errors


def estimate_cliche_cost(
    width_mm: float,
    circumference_mm: float,
    quantity: int = 1,
    price_per_m2: float = DEFAULT_PRICE_PER_M2,
) -> ClicheEstimate:
    """
    Cost of ``quantity`` plates, rounded to the whole currency unit
    (halves up). ``quantity`` below 1 counts as 1.

    Raises:
        CalculatorInputError: width or circumference out of range, a negative
            or non-finite price, or a plate count too large to price.
    """
    errors = validate_dimensions(width_mm, circumference_mm)
    if not (math.isfinite(price_per_m2) and price_per_m2 >= 0):
        errors["price_per_m2"] = "price must be a finite amount, 0 or more"
    if errors:
        raise CalculatorInputError(errors)

    quantity = max(1, int(quantity))
    area = (width_mm / 1000) * (circumference_mm / 1000)
    try:
        total_area = area * quantity
    except OverflowError:
        total_area = math.inf
    if not math.isfinite(total_area * price_per_m2):
        raise CalculatorInputError({"quantity": "too many plates to price"})
    return ClicheEstimate(
        width_mm=width_mm,
        circumference_mm=circumference_mm,
        quantity=quantity,
        price_per_m2=price_per_m2,
        area_per_plate_m2=round(area, 4),
        total_area_m2=round(total_area, 4),
        total_cost=math.floor(total_area * price_per_m2 + 0.5),
    )
