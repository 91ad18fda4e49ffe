from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request

from smart_lunch.config import Settings
from smart_lunch.services.auth import AuthError, resolve_caller_id
from smart_lunch.services.exceptions import (
    ConfigurationError,
    InvalidDocumentError,
    LLMError,
    PermissionDeniedError,
    RepoError,
    StoreUnavailableError,
)
from smart_lunch.services.llm import RecipeChef
from smart_lunch.services.metrics import MetricsLogger
from smart_lunch.services.repo.recipes import MealPlanRepo, PreferencesRepo, SavedRecipeRepo
from smart_lunch.services.repo.store import DocumentStore, create_store

logger = logging.getLogger(__name__)

# ---- DI helpers --------------------------------------------------------------

def get_settings() -> Settings:
    return Settings()


def get_metrics(settings: Settings = Depends(get_settings)) -> MetricsLogger:
    return MetricsLogger(settings)


def get_store(settings: Settings = Depends(get_settings)) -> DocumentStore:
    try:
        return create_store(settings)
    except ConfigurationError as e:
        logger.error("Document store unavailable: %s", e)
        raise HTTPException(status_code=503, detail=str(e))


def get_saved_repo(store: DocumentStore = Depends(get_store)) -> SavedRecipeRepo:
    return SavedRecipeRepo(store)


def get_preferences_repo(store: DocumentStore = Depends(get_store)) -> PreferencesRepo:
    return PreferencesRepo(store)


def get_meal_plan_repo(store: DocumentStore = Depends(get_store)) -> MealPlanRepo:
    return MealPlanRepo(store)


def get_chef(
    settings: Settings = Depends(get_settings),
    metrics: MetricsLogger = Depends(get_metrics),
) -> Optional[RecipeChef]:
    """None when no API key is configured; handlers answer with canned text."""
    if not settings.openai_api_key:
        return None
    try:
        return RecipeChef(settings, metrics=metrics)
    except (ConfigurationError, LLMError) as e:
        logger.error("Recipe chef unavailable: %s", e)
        return None


def get_caller_id(request: Request, settings: Settings = Depends(get_settings)) -> str:
    try:
        return resolve_caller_id(request.headers, settings)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))


def repo_http_error(e: RepoError) -> HTTPException:
    """Map the persistence taxonomy onto HTTP statuses; not-found is handled by callers."""
    if isinstance(e, InvalidDocumentError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, PermissionDeniedError):
        return HTTPException(status_code=403, detail=str(e))
    if isinstance(e, StoreUnavailableError):
        return HTTPException(status_code=503, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))
