from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Response

from smart_lunch.api.deps import get_caller_id, get_chef, get_meal_plan_repo, repo_http_error
from smart_lunch.core.models import CamelModel, MealPlan, MealType, UserPreferences
from smart_lunch.services.exceptions import RepoError
from smart_lunch.services.llm import RecipeChef
from smart_lunch.services.meal_plans import complete_meal_plan_item
from smart_lunch.services.repo.recipes import MealPlanRepo

logger = logging.getLogger(__name__)

router = APIRouter(tags=["meal-plans"])


class CompleteItemRequest(CamelModel):
    date: dt.date
    meal_type: MealType
    user_preferences: Optional[UserPreferences] = None

# ---- Routes ------------------------------------------------------------------

@router.get("/api/v1/users/{user_id}/meal-plans")
def list_meal_plans(
    user_id: str,
    caller_id: str = Depends(get_caller_id),
    repo: MealPlanRepo = Depends(get_meal_plan_repo),
):
    try:
        plans = repo.list(caller_id, user_id)
    except RepoError as e:
        raise repo_http_error(e)
    return {"mealPlans": [p.to_document() for p in plans]}


@router.put("/api/v1/users/{user_id}/meal-plans")
def save_meal_plan(
    user_id: str,
    plan: MealPlan,
    caller_id: str = Depends(get_caller_id),
    repo: MealPlanRepo = Depends(get_meal_plan_repo),
):
    try:
        return repo.save(caller_id, user_id, plan).to_document()
    except RepoError as e:
        raise repo_http_error(e)


@router.get("/api/v1/users/{user_id}/meal-plans/{plan_id}")
def get_meal_plan(
    user_id: str,
    plan_id: str,
    caller_id: str = Depends(get_caller_id),
    repo: MealPlanRepo = Depends(get_meal_plan_repo),
):
    try:
        plan = repo.get(caller_id, user_id, plan_id)
    except RepoError as e:
        raise repo_http_error(e)
    if plan is None:
        raise HTTPException(status_code=404, detail="Meal plan not found")
    return plan.to_document()


@router.patch("/api/v1/users/{user_id}/meal-plans/{plan_id}")
def update_meal_plan(
    user_id: str,
    plan_id: str,
    changes: Dict[str, Any] = Body(...),
    caller_id: str = Depends(get_caller_id),
    repo: MealPlanRepo = Depends(get_meal_plan_repo),
):
    try:
        plan = repo.update(caller_id, user_id, plan_id, changes)
    except RepoError as e:
        raise repo_http_error(e)
    if plan is None:
        raise HTTPException(status_code=404, detail="Meal plan not found")
    return plan.to_document()


@router.delete("/api/v1/users/{user_id}/meal-plans/{plan_id}", status_code=204)
def delete_meal_plan(
    user_id: str,
    plan_id: str,
    caller_id: str = Depends(get_caller_id),
    repo: MealPlanRepo = Depends(get_meal_plan_repo),
):
    try:
        repo.remove(caller_id, user_id, plan_id)
    except RepoError as e:
        raise repo_http_error(e)
    return Response(status_code=204)


@router.post("/api/v1/users/{user_id}/meal-plans/{plan_id}/items/complete", status_code=202)
def complete_item(
    user_id: str,
    plan_id: str,
    body: CompleteItemRequest,
    background: BackgroundTasks,
    caller_id: str = Depends(get_caller_id),
    repo: MealPlanRepo = Depends(get_meal_plan_repo),
    chef: Optional[RecipeChef] = Depends(get_chef),
):
    """Accept now, fill in the lightweight recipe after the response is sent."""
    try:
        plan = repo.get(caller_id, user_id, plan_id)
    except RepoError as e:
        raise repo_http_error(e)
    if plan is None:
        raise HTTPException(status_code=404, detail="Meal plan not found")
    if chef is None:
        raise HTTPException(status_code=400, detail="OpenAI API key not configured")

    background.add_task(
        complete_meal_plan_item,
        chef, repo, caller_id, user_id, plan_id,
        body.date, body.meal_type, body.user_preferences,
    )
    logger.info("Queued detail completion for %s %s/%s", plan_id, body.date, body.meal_type)
    return {"accepted": True}
