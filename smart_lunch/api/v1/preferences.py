from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from smart_lunch.api.deps import get_caller_id, get_preferences_repo, repo_http_error
from smart_lunch.core.models import UserPreferences
from smart_lunch.services.exceptions import RepoError
from smart_lunch.services.repo.recipes import PreferencesRepo

router = APIRouter(tags=["preferences"])


@router.get("/api/v1/users/{user_id}/preferences")
def get_preferences(
    user_id: str,
    caller_id: str = Depends(get_caller_id),
    repo: PreferencesRepo = Depends(get_preferences_repo),
):
    try:
        prefs = repo.get(caller_id, user_id)
    except RepoError as e:
        raise repo_http_error(e)
    if prefs is None:
        raise HTTPException(status_code=404, detail="No preferences saved yet")
    return prefs.to_document()


@router.put("/api/v1/users/{user_id}/preferences")
def save_preferences(
    user_id: str,
    preferences: UserPreferences,
    caller_id: str = Depends(get_caller_id),
    repo: PreferencesRepo = Depends(get_preferences_repo),
):
    try:
        return repo.save(caller_id, user_id, preferences).to_document()
    except RepoError as e:
        raise repo_http_error(e)
