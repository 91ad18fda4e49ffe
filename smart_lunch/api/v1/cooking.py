from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter
from pydantic import Field

from smart_lunch.core.cooking import (
    MAX_MULTIPLIER,
    MIN_MULTIPLIER,
    PRESET_MINUTES,
    detect_step_durations,
    scale_amount,
)
from smart_lunch.core.models import CamelModel, Ingredient

router = APIRouter(tags=["cooking"])


class ScaleRequest(CamelModel):
    ingredients: List[Ingredient] = Field(default_factory=list)
    multiplier: float = Field(1.0, ge=MIN_MULTIPLIER, le=MAX_MULTIPLIER)


class TimerRequest(CamelModel):
    step: str


@router.post("/api/v1/cooking/scale")
def scale_ingredients(body: ScaleRequest):
    scaled = [
        i.model_copy(update={"amount": scale_amount(i.amount, body.multiplier)})
        for i in body.ingredients
    ]
    return {
        "multiplier": body.multiplier,
        "ingredients": [i.to_document() for i in scaled],
    }


@router.post("/api/v1/cooking/timer")
def suggest_timer(body: TimerRequest):
    suggestion = detect_step_durations(body.step)
    minutes: Optional[List[int]] = suggestion.minutes if suggestion else None
    return {
        "minutes": minutes,
        "autoStart": bool(suggestion and suggestion.auto_start),
        "presets": list(PRESET_MINUTES),
    }
