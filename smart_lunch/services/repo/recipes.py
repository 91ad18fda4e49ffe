from __future__ import annotations

import datetime as dt
import logging
from typing import List, Optional

from pydantic import ValidationError

from smart_lunch.core.models import (
    MealPlan,
    Recipe,
    SavedRecipe,
    UserPreferences,
    utc_now_iso,
)
from smart_lunch.services.exceptions import InvalidDocumentError, PermissionDeniedError, RepoError
from .store import DocumentStore

logger = logging.getLogger(__name__)

SAVED_RECIPES = "savedRecipes"
USER_PREFERENCES = "userPreferences"
MEAL_PLANS = "mealPlans"


def ensure_owner(caller_id: Optional[str], user_id: str) -> None:
    """Writes and reads are only ever attributed to the authenticated caller."""
    if not caller_id or caller_id != user_id:
        raise PermissionDeniedError("Permission denied. You can only access your own data.")


class SavedRecipeRepo:
    """One `savedRecipes` document per (user, recipe), keyed `{userId}_{recipeId}`."""

    def __init__(self, store: DocumentStore):
        self._store = store

    @staticmethod
    def key(user_id: str, recipe_id: str) -> str:
        return f"{user_id}_{recipe_id}"

    def _write(self, user_id: str, recipe: Recipe, saved_at: str) -> SavedRecipe:
        doc = SavedRecipe(
            user_id=user_id,
            recipe_id=recipe.id,
            recipe=recipe,
            saved_at=saved_at,
            updated_at=utc_now_iso(),
        )
        self._store.set(SAVED_RECIPES, self.key(user_id, recipe.id), doc.to_document())
        return doc

    def save(self, caller_id: str, user_id: str, recipe: Recipe) -> SavedRecipe:
        """Create or overwrite; the first `savedAt` survives every later save."""
        ensure_owner(caller_id, user_id)
        existing = self._store.get(SAVED_RECIPES, self.key(user_id, recipe.id))
        saved_at = (existing or {}).get("savedAt") or utc_now_iso()
        return self._write(user_id, recipe, saved_at)

    def update(self, caller_id: str, user_id: str, recipe: Recipe) -> bool:
        """Like save, but only when the recipe is already saved."""
        ensure_owner(caller_id, user_id)
        existing = self._store.get(SAVED_RECIPES, self.key(user_id, recipe.id))
        if existing is None:
            return False
        self._write(user_id, recipe, existing.get("savedAt") or utc_now_iso())
        return True

    def remove(self, caller_id: str, user_id: str, recipe_id: str) -> None:
        ensure_owner(caller_id, user_id)
        self._store.delete(SAVED_RECIPES, self.key(user_id, recipe_id))

    def is_saved(self, caller_id: str, user_id: str, recipe_id: str) -> bool:
        ensure_owner(caller_id, user_id)
        return self._store.get(SAVED_RECIPES, self.key(user_id, recipe_id)) is not None

    def list(self, caller_id: str, user_id: str) -> List[Recipe]:
        """Most recently saved first. The store's own ordering is not trusted."""
        ensure_owner(caller_id, user_id)
        rows: List[SavedRecipe] = []
        for doc in self._store.query(SAVED_RECIPES, "userId", user_id):
            try:
                rows.append(SavedRecipe.model_validate(doc))
            except ValidationError as e:
                logger.warning("Skipping malformed saved recipe %s: %s", doc.get("recipeId"), e)
        rows.sort(key=lambda r: r.saved_at, reverse=True)
        return [r.recipe for r in rows]


class PreferencesRepo:
    def __init__(self, store: DocumentStore):
        self._store = store

    def get(self, caller_id: str, user_id: str) -> Optional[UserPreferences]:
        ensure_owner(caller_id, user_id)
        doc = self._store.get(USER_PREFERENCES, user_id)
        if doc is None:
            return None
        try:
            return UserPreferences.model_validate(doc)
        except ValidationError as e:
            raise RepoError(f"Stored preferences for {user_id} are invalid: {e}") from e

    def save(self, caller_id: str, user_id: str, preferences: UserPreferences) -> UserPreferences:
        ensure_owner(caller_id, user_id)
        self._store.set(
            USER_PREFERENCES,
            user_id,
            {**preferences.to_document(), "updatedAt": utc_now_iso()},
            merge=True,
        )
        return preferences


class MealPlanRepo:
    def __init__(self, store: DocumentStore):
        self._store = store

    def _load(self, user_id: str, plan_id: str) -> Optional[dict]:
        doc = self._store.get(MEAL_PLANS, plan_id)
        if doc is not None and doc.get("userId") != user_id:
            raise PermissionDeniedError("Permission denied. This meal plan belongs to another user.")
        return doc

    def _put(self, plan: MealPlan) -> MealPlan:
        self._store.set(MEAL_PLANS, plan.id, plan.to_document())
        return plan

    def save(self, caller_id: str, user_id: str, plan: MealPlan) -> MealPlan:
        ensure_owner(caller_id, user_id)
        existing = self._load(user_id, plan.id)
        now = utc_now_iso()
        plan = plan.model_copy(update={
            "user_id": user_id,
            "created_at": (existing or {}).get("createdAt") or plan.created_at or now,
            "updated_at": now,
        })
        return self._put(plan)

    def get(self, caller_id: str, user_id: str, plan_id: str) -> Optional[MealPlan]:
        ensure_owner(caller_id, user_id)
        doc = self._load(user_id, plan_id)
        if doc is None:
            return None
        try:
            return MealPlan.model_validate(doc)
        except ValidationError as e:
            raise RepoError(f"Stored meal plan {plan_id} is invalid: {e}") from e

    def list(self, caller_id: str, user_id: str) -> List[MealPlan]:
        ensure_owner(caller_id, user_id)
        docs = self._store.query(MEAL_PLANS, "userId", user_id, order_by="createdAt", descending=True)
        plans: List[MealPlan] = []
        for doc in docs:
            try:
                plans.append(MealPlan.model_validate(doc))
            except ValidationError as e:
                logger.warning("Skipping malformed meal plan %s: %s", doc.get("id"), e)
        return plans

    def update(self, caller_id: str, user_id: str, plan_id: str, changes: dict) -> Optional[MealPlan]:
        """Merge camelCase `changes` (e.g. {"items": [...]}) into a stored plan."""
        ensure_owner(caller_id, user_id)
        existing = self._load(user_id, plan_id)
        if existing is None:
            return None
        protected = {"id", "userId", "createdAt"}
        merged = {**existing, **{k: v for k, v in changes.items() if k not in protected}}
        merged["updatedAt"] = utc_now_iso()
        try:
            plan = MealPlan.model_validate(merged)
        except ValidationError as e:
            raise InvalidDocumentError(f"Invalid meal plan update: {e}") from e
        return self._put(plan)

    def replace_item_recipe(self, caller_id: str, user_id: str, plan_id: str,
                            date: dt.date, meal_type: str, recipe: Recipe) -> Optional[MealPlan]:
        plan = self.get(caller_id, user_id, plan_id)
        if plan is None:
            return None
        items = [
            item.model_copy(update={"recipe": recipe})
            if item.date == date and item.meal_type == meal_type else item
            for item in plan.items
        ]
        return self.update(caller_id, user_id, plan_id,
                           {"items": [i.to_document() for i in items]})

    def remove(self, caller_id: str, user_id: str, plan_id: str) -> None:
        ensure_owner(caller_id, user_id)
        if self._load(user_id, plan_id) is not None:
            self._store.delete(MEAL_PLANS, plan_id)
