# smart_lunch/core/models.py
from __future__ import annotations

import datetime as dt
import random
import string
import time
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, validator
from pydantic.alias_generators import to_camel


Difficulty = Literal["Easy", "Medium", "Hard"]
MealType = Literal["breakfast", "lunch", "dinner", "snack"]
MealPlanDuration = Literal["day", "week", "month"]

DEFAULT_EMOJI = "\U0001F371"  # bento box


def new_recipe_id() -> str:
    """`recipe_<epoch ms>_<9 base36 chars>`, unique enough for per-user keys."""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"recipe_{int(time.time() * 1000)}_{suffix}"


def new_meal_plan_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"mealplan_{int(time.time() * 1000)}_{suffix}"


def utc_now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _as_text(v: Any) -> str:
    # LLMs happily emit 4 or 4.0 where a string is expected
    if v is None:
        return ""
    if isinstance(v, bool):
        return str(v).lower()
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)


def _unique(values: List[str]) -> List[str]:
    seen: List[str] = []
    for v in values:
        v = v.strip()
        if v and v not in seen:
            seen.append(v)
    return seen


class CamelModel(BaseModel):
    """Documents travel camelCased (`imageUrl`, `presentationTips`, ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------- Recipe ----------

class Ingredient(CamelModel):
    name: str = Field(..., description="Display name, e.g. 'Tortilla wraps'")
    amount: Optional[str] = Field(None, description="Free-text quantity, e.g. '1/2 cup'")

    @validator("name", pre=True)
    def _name_text(cls, v: Any) -> str:
        return _as_text(v).strip()

    @validator("amount", pre=True)
    def _amount_text(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return _as_text(v).strip() or None


class Instruction(CamelModel):
    step: str
    tip: Optional[str] = None

    @validator("step", pre=True)
    def _step_text(cls, v: Any) -> str:
        return _as_text(v).strip()

    @validator("tip", pre=True)
    def _tip_text(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        return _as_text(v).strip() or None


class Nutrition(CamelModel):
    calories: str = ""
    protein: str = ""
    carbs: str = ""
    fat: str = ""

    @validator("calories", "protein", "carbs", "fat", pre=True)
    def _text(cls, v: Any) -> str:
        return _as_text(v)


DEFAULT_NUTRITION = Nutrition(calories="250", protein="10g", carbs="30g", fat="8g")


class Recipe(CamelModel):
    id: str = Field(default_factory=new_recipe_id)
    name: str = Field(..., min_length=1)
    description: str = ""
    emoji: str = DEFAULT_EMOJI
    image_url: Optional[str] = None
    time: str = "20 min"
    servings: str = "2-3"
    difficulty: Difficulty = "Easy"
    rating: float = 4.5
    tags: List[str] = Field(default_factory=list)
    ingredients: List[Ingredient] = Field(default_factory=list)
    instructions: List[Instruction] = Field(default_factory=list)
    presentation_tips: List[str] = Field(default_factory=list)
    nutrition: Optional[Nutrition] = None

    @validator("name", pre=True)
    def _strip_name(cls, v: Any) -> str:
        v = _as_text(v).strip()
        if not v:
            raise ValueError("Recipe.name cannot be blank")
        return v

    @validator("description", "time", "servings", pre=True)
    def _free_text(cls, v: Any) -> str:
        return _as_text(v).strip()

    @validator("emoji", pre=True)
    def _emoji(cls, v: Any) -> str:
        return _as_text(v).strip() or DEFAULT_EMOJI

    @validator("difficulty", pre=True)
    def _difficulty(cls, v: Any) -> str:
        v = _as_text(v).strip().capitalize()
        return v if v in ("Easy", "Medium", "Hard") else "Easy"

    @validator("rating", pre=True)
    def _rating(cls, v: Any) -> float:
        try:
            return float(v)
        except (TypeError, ValueError):
            return 4.5

    @validator("tags", "presentation_tips", pre=True)
    def _string_list(cls, v: Any) -> List[str]:
        if not isinstance(v, list):
            return []
        return [_as_text(x).strip() for x in v if _as_text(x).strip()]

    @validator("ingredients", pre=True)
    def _ingredient_rows(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        return [{"name": row} if isinstance(row, str) else row for row in v]

    @validator("instructions", pre=True)
    def _instruction_rows(cls, v: Any) -> list:
        if not isinstance(v, list):
            return []
        return [{"step": row} if isinstance(row, str) else row for row in v]

    @property
    def is_lightweight(self) -> bool:
        """Placeholder recipe awaiting background completion."""
        return not self.ingredients or not self.instructions


# ---------- Users ----------

class UserPreferences(CamelModel):
    dietary_restrictions: List[str] = Field(default_factory=list)
    allergies: List[str] = Field(default_factory=list)  # never to be violated
    number_of_people: int = Field(1, ge=1)
    has_kids: bool = False
    has_partner: bool = False
    kids_ages: List[str] = Field(default_factory=list)
    kitchen_equipment: List[str] = Field(default_factory=list)
    health_goals: List[str] = Field(default_factory=list)
    preferences: List[str] = Field(default_factory=list)
    theme: Literal["light", "dark"] = "light"
    onboarding_completed: bool = False
    meal_plan_query: Optional[str] = None

    @validator("dietary_restrictions", "allergies", "kitchen_equipment", "health_goals", "preferences")
    def _as_set(cls, v: List[str]) -> List[str]:
        return _unique(v)


# ---------- Meal plans ----------

class MealPlanItem(CamelModel):
    date: dt.date
    meal_type: MealType
    recipe: Recipe


class MealPlan(CamelModel):
    id: str = Field(default_factory=new_meal_plan_id)
    user_id: str = ""
    name: str
    duration: MealPlanDuration
    start_date: dt.date
    end_date: dt.date
    items: List[MealPlanItem] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


class SavedRecipe(CamelModel):
    """One document per (user, recipe) pair."""

    user_id: str
    recipe_id: str
    recipe: Recipe
    saved_at: str
    updated_at: str


# ---------- Chat ----------

class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system"]
    content: str


class ChatReply(CamelModel):
    message: str
    recipe: Optional[Recipe] = None
