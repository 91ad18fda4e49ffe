# smart_lunch/core/planning.py
from __future__ import annotations

import calendar
import datetime as dt
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .models import (
    DEFAULT_NUTRITION,
    _as_text,
    MealPlan,
    MealPlanItem,
    Recipe,
    new_recipe_id,
)

MEAL_TYPES = ("breakfast", "lunch", "dinner")


def plan_dates(duration: str, start: Optional[dt.date] = None) -> Tuple[dt.date, dt.date, List[dt.date]]:
    """
    (start, end, dates) for a plan.

    day -> just start; week -> seven days; month -> start through the last
    day of start's month.
    """
    start = start or dt.date.today()
    if duration == "day":
        return start, start, [start]
    if duration == "week":
        dates = [start + dt.timedelta(days=i) for i in range(7)]
        return start, dates[-1], dates
    if duration == "month":
        last = calendar.monthrange(start.year, start.month)[1]
        end = start.replace(day=last)
        dates = [start + dt.timedelta(days=i) for i in range((end - start).days + 1)]
        return start, end, dates
    raise ValueError(f'Invalid duration {duration!r}. Must be "day", "week", or "month"')


def _recipe_row(value: Any) -> Optional[dict]:
    # models sometimes send just the dish name
    if isinstance(value, dict):
        return value
    if isinstance(value, str) and value.strip():
        return {"name": value}
    return None


def lightweight_recipe(raw: dict) -> Recipe:
    """Summary-only recipe; ingredients and instructions come later."""
    return Recipe(
        id=str(raw.get("id") or new_recipe_id()),
        name=_as_text(raw.get("name")).strip() or "Untitled Recipe",
        description=raw.get("description") or "",
        emoji=raw.get("emoji") or "",
        time=raw.get("time") or "20 min",
        servings=raw.get("servings") or "2-3",
        difficulty=raw.get("difficulty") or "Easy",
        rating=raw.get("rating") if isinstance(raw.get("rating"), (int, float)) else 4.5,
        tags=raw.get("tags") or [],
        nutrition=DEFAULT_NUTRITION.model_copy(),
    )


def _parse_date(value) -> Optional[dt.date]:
    try:
        return dt.date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def assemble_items(rows: Iterable[dict], dates: List[dt.date],
                   meal_types: Iterable[str] = MEAL_TYPES) -> List[MealPlanItem]:
    """
    Lay generated rows onto the date x meal grid. Exact (date, mealType)
    matches win; empty slots cycle through the generated recipes in order.
    """
    meal_types = list(meal_types)
    slots: Dict[Tuple[dt.date, str], Recipe] = {}
    pool: List[Recipe] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        raw = _recipe_row(row.get("recipe"))
        if raw is None:
            continue
        recipe = lightweight_recipe(raw)
        pool.append(recipe)
        date = _parse_date(row.get("date"))
        meal_type = row.get("mealType")
        if date is not None and meal_type in meal_types:
            slots.setdefault((date, meal_type), recipe)

    items: List[MealPlanItem] = []
    if not pool:
        return items
    cursor = 0
    for date in dates:
        for meal_type in meal_types:
            recipe = slots.get((date, meal_type))
            if recipe is None:
                recipe = pool[cursor % len(pool)]
                cursor += 1
            items.append(MealPlanItem(date=date, meal_type=meal_type, recipe=recipe))
    return items


def build_meal_plan(duration: str, rows: Iterable[dict], start: Optional[dt.date] = None) -> MealPlan:
    start, end, dates = plan_dates(duration, start)
    return MealPlan(
        name=f"{duration.capitalize()} Meal Plan - {start.isoformat()}",
        duration=duration,
        start_date=start,
        end_date=end,
        items=assemble_items(rows, dates),
    )
