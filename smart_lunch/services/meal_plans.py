from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from smart_lunch.core.models import UserPreferences
from .exceptions import LLMError, RepoError
from .llm import RecipeChef
from .repo.recipes import MealPlanRepo

logger = logging.getLogger(__name__)


def complete_meal_plan_item(
    chef: RecipeChef,
    repo: MealPlanRepo,
    caller_id: str,
    user_id: str,
    plan_id: str,
    date: dt.date,
    meal_type: str,
    preferences: Optional[UserPreferences] = None,
) -> bool:
    """
    Background fill-in of one lightweight meal-plan recipe.

    Races against the user navigating elsewhere, so failures are logged and
    dropped rather than reported. Returns True when the plan was patched.
    """
    try:
        plan = repo.get(caller_id, user_id, plan_id)
        if plan is None:
            logger.info("Meal plan %s vanished before detail completion", plan_id)
            return False
        item = next((i for i in plan.items if i.date == date and i.meal_type == meal_type), None)
        if item is None or not item.recipe.is_lightweight:
            return False
        full = chef.complete_detail(item.recipe, preferences)
        patched = repo.replace_item_recipe(caller_id, user_id, plan_id, date, meal_type, full)
        return patched is not None
    except (LLMError, RepoError) as e:
        logger.warning("Background completion of %s %s/%s failed: %s", plan_id, date, meal_type, e)
        return False
