from __future__ import annotations

import datetime as dt
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import Field, ValidationError

from smart_lunch.api.deps import get_chef, get_metrics, get_settings
from smart_lunch.config import Settings
from smart_lunch.core.models import CamelModel, ChatMessage, Recipe, UserPreferences
from smart_lunch.core.prompts import MISSING_KEY_MESSAGE, missing_key_message
from smart_lunch.services.exceptions import LLMError
from smart_lunch.services.llm import RecipeChef
from smart_lunch.services.metrics import MetricsLogger

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ai"])

CHAT_ERROR_MESSAGE = "Sorry, I encountered an error. Please try again."
MEAL_PLAN_COMING_SOON = (
    "Meal plans are coming soon! We're working hard to bring you this feature. If you'd like to see it "
    "sooner, let us know - we release features based on user requests. For now, you can use our recipe "
    "search to find individual recipes!"
)

# ---- Models ------------------------------------------------------------------

class ChatRequest(CamelModel):
    messages: List[ChatMessage] = Field(default_factory=list)
    current_recipe: Optional[Recipe] = None
    available_ingredients: List[str] = Field(default_factory=list)
    user_preferences: Optional[UserPreferences] = None
    removed_ingredients: List[str] = Field(default_factory=list)


class SearchRequest(CamelModel):
    query: str = Field(..., min_length=1)
    available_ingredients: List[str] = Field(default_factory=list)
    user_preferences: Optional[UserPreferences] = None


class DetailRequest(CamelModel):
    recipe: Optional[dict] = None
    user_preferences: Optional[UserPreferences] = None


class MealPlanRequest(CamelModel):
    duration: Optional[str] = None
    user_preferences: Optional[UserPreferences] = None
    start_date: Optional[dt.date] = None


def _error(status: int, **body) -> JSONResponse:
    return JSONResponse(status_code=status, content=body)

# ---- Routes ------------------------------------------------------------------

@router.post("/api/v1/ai/chat")
def recipe_chat(
    body: ChatRequest,
    chef: Optional[RecipeChef] = Depends(get_chef),
    metrics: MetricsLogger = Depends(get_metrics),
):
    if chef is None:
        last = body.messages[-1].content if body.messages else ""
        return {"message": missing_key_message(last), "recipe": None}

    try:
        with metrics.timed("recipe_chat", modifying=body.current_recipe is not None) as extra:
            result = chef.chat(
                body.messages,
                current_recipe=body.current_recipe,
                available_ingredients=body.available_ingredients,
                removed_ingredients=body.removed_ingredients,
                preferences=body.user_preferences,
            )
            extra["recipe_found"] = result.recipe is not None
    except LLMError as e:
        logger.exception("Recipe chat failed")
        return _error(500, error=str(e), message=CHAT_ERROR_MESSAGE, recipe=None)

    return {
        "message": result.message,
        "recipe": result.recipe.to_document() if result.recipe else None,
    }


@router.post("/api/v1/ai/search")
def recipe_search(
    body: SearchRequest,
    chef: Optional[RecipeChef] = Depends(get_chef),
    metrics: MetricsLogger = Depends(get_metrics),
):
    if chef is None:
        return _error(400, error=MISSING_KEY_MESSAGE, recipe=None)
    try:
        with metrics.timed("recipe_search"):
            recipe = chef.search(body.query, body.available_ingredients, body.user_preferences)
    except LLMError as e:
        logger.exception("Recipe search failed for %r", body.query)
        return _error(500, error=str(e) or "Failed to generate recipe", recipe=None)
    return {"recipe": recipe.to_document()}


@router.post("/api/v1/ai/meal-plan-detail")
def meal_plan_detail(
    body: DetailRequest,
    chef: Optional[RecipeChef] = Depends(get_chef),
    metrics: MetricsLogger = Depends(get_metrics),
):
    if not body.recipe or not body.recipe.get("name"):
        return _error(400, error="Recipe name is required")
    try:
        lightweight = Recipe.model_validate(body.recipe)
    except ValidationError as e:
        return _error(400, error=f"Invalid recipe: {e}")
    if chef is None:
        return _error(400, error=MISSING_KEY_MESSAGE)
    try:
        with metrics.timed("recipe_detail"):
            recipe = chef.complete_detail(lightweight, body.user_preferences)
    except LLMError as e:
        logger.exception("Recipe detail failed for %r", lightweight.name)
        return _error(500, error=str(e) or "Failed to generate recipe detail")
    return {"recipe": recipe.to_document()}


@router.post("/api/v1/ai/meal-plan")
async def meal_plan(
    request: Request,
    settings: Settings = Depends(get_settings),
    chef: Optional[RecipeChef] = Depends(get_chef),
):
    if not settings.meal_plan_generation_enabled:
        return _error(503, error=MEAL_PLAN_COMING_SOON)

    try:
        body = MealPlanRequest.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        return _error(400, error=f"Invalid request: {e}")
    if body.duration not in ("day", "week", "month"):
        return _error(400, error='Invalid duration. Must be "day", "week", or "month"')
    if chef is None:
        return _error(400, error=MISSING_KEY_MESSAGE)
    try:
        plan = chef.generate_meal_plan(body.duration, body.user_preferences, body.start_date)
    except LLMError as e:
        logger.exception("Meal plan generation failed")
        return _error(500, error=str(e) or "Failed to generate meal plan")
    return {"mealPlan": plan.to_document()}
