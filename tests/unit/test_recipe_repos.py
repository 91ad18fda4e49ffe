# tests/unit/test_recipe_repos.py
import datetime as dt

import pytest
from google.api_core import exceptions as google_exceptions

from smart_lunch.core.models import MealPlan, Recipe, UserPreferences
from smart_lunch.services.exceptions import (
    InvalidDocumentError,
    PermissionDeniedError,
    RepoError,
    StoreUnavailableError,
)
from smart_lunch.services.repo.recipes import MealPlanRepo, PreferencesRepo, SavedRecipeRepo
from smart_lunch.services.repo.store import FirestoreDocumentStore, JSONDocumentStore


@pytest.fixture
def store(settings):
    return JSONDocumentStore(settings)


def wrap(recipe_id="recipe_1", name="Veggie Wrap"):
    return Recipe(id=recipe_id, name=name, ingredients=[{"name": "Tortilla", "amount": "1"}])


def test_saved_recipe_listed_exactly_once(store):
    repo = SavedRecipeRepo(store)
    repo.save("u1", "u1", wrap())
    repo.save("u1", "u1", wrap(name="Veggie Wrap v2"))
    recipes = repo.list("u1", "u1")
    assert [r.id for r in recipes] == ["recipe_1"]
    assert recipes[0].name == "Veggie Wrap v2"


def test_removed_recipe_is_excluded(store):
    repo = SavedRecipeRepo(store)
    repo.save("u1", "u1", wrap())
    repo.remove("u1", "u1", "recipe_1")
    assert repo.list("u1", "u1") == []
    assert not repo.is_saved("u1", "u1", "recipe_1")


def test_saved_at_survives_resave(store):
    repo = SavedRecipeRepo(store)
    first = repo.save("u1", "u1", wrap())
    second = repo.save("u1", "u1", wrap(name="Renamed"))
    assert second.saved_at == first.saved_at
    assert store.get("savedRecipes", "u1_recipe_1")["recipe"]["name"] == "Renamed"


def test_list_is_most_recent_first_and_per_user(store):
    repo = SavedRecipeRepo(store)
    repo.save("u1", "u1", wrap("recipe_a"))
    repo.save("u1", "u1", wrap("recipe_b"))
    repo.save("u2", "u2", wrap("recipe_c"))
    assert [r.id for r in repo.list("u1", "u1")] == ["recipe_b", "recipe_a"]


def test_update_only_touches_existing(store):
    repo = SavedRecipeRepo(store)
    assert repo.update("u1", "u1", wrap()) is False
    assert store.get("savedRecipes", "u1_recipe_1") is None
    repo.save("u1", "u1", wrap())
    assert repo.update("u1", "u1", wrap(name="Updated")) is True
    assert repo.list("u1", "u1")[0].name == "Updated"


def test_cannot_touch_someone_elses_recipes(store):
    repo = SavedRecipeRepo(store)
    with pytest.raises(PermissionDeniedError):
        repo.save("intruder", "u1", wrap())
    with pytest.raises(PermissionDeniedError):
        repo.list("intruder", "u1")


def test_malformed_documents_are_skipped(store):
    store.set("savedRecipes", "u1_bad", {"userId": "u1", "recipeId": "bad"})
    repo = SavedRecipeRepo(store)
    repo.save("u1", "u1", wrap())
    assert [r.id for r in repo.list("u1", "u1")] == ["recipe_1"]


def test_preferences_merge(store):
    repo = PreferencesRepo(store)
    assert repo.get("u1", "u1") is None
    repo.save("u1", "u1", UserPreferences(allergies=["nuts", "nuts"], number_of_people=3))
    prefs = repo.get("u1", "u1")
    assert prefs.allergies == ["nuts"]
    assert prefs.number_of_people == 3
    assert "updatedAt" in store.get("userPreferences", "u1")


def test_meal_plan_lifecycle(store):
    repo = MealPlanRepo(store)
    day = dt.date(2026, 10, 19)
    plan = MealPlan(
        name="Day Meal Plan",
        duration="day",
        start_date=day,
        end_date=day,
        items=[{"date": day, "mealType": "lunch", "recipe": {"name": "Wrap"}}],
    )
    saved = repo.save("u1", "u1", plan)
    assert saved.user_id == "u1"
    assert [p.id for p in repo.list("u1", "u1")] == [plan.id]

    full = wrap("recipe_full", "Wrap")
    patched = repo.replace_item_recipe("u1", "u1", plan.id, day, "lunch", full)
    assert patched.items[0].recipe.id == "recipe_full"
    assert patched.created_at == saved.created_at

    renamed = repo.update("u1", "u1", plan.id, {"name": "Renamed", "userId": "u2"})
    assert renamed.name == "Renamed" and renamed.user_id == "u1"

    with pytest.raises(PermissionDeniedError):
        repo.get("u2", "u2", plan.id)

    repo.remove("u1", "u1", plan.id)
    assert repo.get("u1", "u1", plan.id) is None
    assert repo.update("u1", "u1", plan.id, {"name": "x"}) is None


def test_unreadable_collection_is_permission_denied(store, settings, monkeypatch):
    def deny(*args, **kwargs):
        raise PermissionError("read-only volume")

    store.set("savedRecipes", "k", {"userId": "u1"})
    monkeypatch.setattr("smart_lunch.services.repo.store.open", deny, raising=False)
    with pytest.raises(PermissionDeniedError):
        store.get("savedRecipes", "k")


class _Ref:
    def __init__(self, error):
        self._error = error

    def document(self, key):
        return self

    def collection(self, name):
        return self

    def get(self):
        raise self._error

    def set(self, data, merge=False):
        raise self._error

    def delete(self):
        raise self._error


@pytest.mark.parametrize("error,expected", [
    (google_exceptions.PermissionDenied("rules"), PermissionDeniedError),
    (google_exceptions.ServiceUnavailable("offline"), StoreUnavailableError),
    (google_exceptions.InternalServerError("boom"), RepoError),
])
def test_firestore_errors_are_classified(error, expected):
    store = FirestoreDocumentStore(_Ref(error))
    with pytest.raises(expected) as info:
        store.get("savedRecipes", "u1_recipe_1")
    assert info.value.code == expected.code


def test_firestore_permission_message_is_readable():
    store = FirestoreDocumentStore(_Ref(google_exceptions.PermissionDenied("rules")))
    with pytest.raises(PermissionDeniedError, match="security rules"):
        store.set("savedRecipes", "k", {})


def test_malformed_stored_meal_plan_is_repo_error(store):
    store.set("mealPlans", "mealplan_bad", {"id": "mealplan_bad", "userId": "u1", "name": "Broken"})
    repo = MealPlanRepo(store)
    with pytest.raises(RepoError, match="is invalid"):
        repo.get("u1", "u1", "mealplan_bad")


def test_invalid_meal_plan_patch_is_rejected(store):
    repo = MealPlanRepo(store)
    day = dt.date(2026, 10, 19)
    plan = repo.save("u1", "u1", MealPlan(name="Plan", duration="day", start_date=day, end_date=day))
    with pytest.raises(InvalidDocumentError):
        repo.update("u1", "u1", plan.id, {"duration": "fortnight"})
    assert repo.get("u1", "u1", plan.id).duration == "day"
