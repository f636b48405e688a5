"""Calculator routes — cliché plate cost estimate."""
from typing import Any, Dict

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from otgtrack.services.calculator_engine import (
    DEFAULT_PRICE_PER_M2,
    CalculatorInputError,
    estimate_cliche_cost,
)

router = APIRouter(prefix="/api/calculator", tags=["Calculator"])


class ClicheCostRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    width_mm: float = Field(..., description="Laize, mm")
    circumference_mm: float = Field(..., description="Coupe (circumference), mm")
    quantity: int = 1
    price_per_m2: float = Field(DEFAULT_PRICE_PER_M2, ge=0, allow_inf_nan=False)


@router.post("/cliche")
async def cliche_cost(payload: ClicheCostRequest) -> Dict[str, Any]:
    try:
        estimate = estimate_cliche_cost(
            payload.width_mm,
            payload.circumference_mm,
            payload.quantity,
            payload.price_per_m2,
        )
    except CalculatorInputError as e:
        raise HTTPException(status_code=422, detail={"errors": e.errors})
    return estimate.to_dict()
