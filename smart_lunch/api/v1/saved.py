from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from smart_lunch.api.deps import get_caller_id, get_saved_repo, repo_http_error
from smart_lunch.core.models import Recipe
from smart_lunch.services.exceptions import RepoError
from smart_lunch.services.repo.recipes import SavedRecipeRepo

logger = logging.getLogger(__name__)

router = APIRouter(tags=["saved-recipes"])

# ---- Routes ------------------------------------------------------------------

@router.get("/api/v1/users/{user_id}/saved-recipes")
def list_saved_recipes(
    user_id: str,
    caller_id: str = Depends(get_caller_id),
    repo: SavedRecipeRepo = Depends(get_saved_repo),
):
    try:
        recipes: List[Recipe] = repo.list(caller_id, user_id)
    except RepoError as e:
        raise repo_http_error(e)
    return {"recipes": [r.to_document() for r in recipes]}


@router.put("/api/v1/users/{user_id}/saved-recipes")
def save_recipe(
    user_id: str,
    recipe: Recipe,
    caller_id: str = Depends(get_caller_id),
    repo: SavedRecipeRepo = Depends(get_saved_repo),
):
    try:
        saved = repo.save(caller_id, user_id, recipe)
    except RepoError as e:
        logger.warning("Saving recipe %s for %s failed: %s", recipe.id, user_id, e)
        raise repo_http_error(e)
    return saved.to_document()


@router.put("/api/v1/users/{user_id}/saved-recipes/{recipe_id}")
def update_saved_recipe(
    user_id: str,
    recipe_id: str,
    recipe: Recipe,
    caller_id: str = Depends(get_caller_id),
    repo: SavedRecipeRepo = Depends(get_saved_repo),
):
    if recipe.id != recipe_id:
        raise HTTPException(status_code=400, detail="Recipe id does not match the path")
    try:
        updated = repo.update(caller_id, user_id, recipe)
    except RepoError as e:
        raise repo_http_error(e)
    if not updated:
        raise HTTPException(status_code=404, detail="Recipe is not saved")
    return {"updated": True}


@router.get("/api/v1/users/{user_id}/saved-recipes/{recipe_id}")
def is_recipe_saved(
    user_id: str,
    recipe_id: str,
    caller_id: str = Depends(get_caller_id),
    repo: SavedRecipeRepo = Depends(get_saved_repo),
):
    try:
        return {"saved": repo.is_saved(caller_id, user_id, recipe_id)}
    except RepoError as e:
        raise repo_http_error(e)


@router.delete("/api/v1/users/{user_id}/saved-recipes/{recipe_id}", status_code=204)
def unsave_recipe(
    user_id: str,
    recipe_id: str,
    caller_id: str = Depends(get_caller_id),
    repo: SavedRecipeRepo = Depends(get_saved_repo),
):
    try:
        repo.remove(caller_id, user_id, recipe_id)
    except RepoError as e:
        raise repo_http_error(e)
    return Response(status_code=204)
