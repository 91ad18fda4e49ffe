# smart_lunch/core/cooking.py
"""
Cooking mode: one-step-at-a-time guidance for a single recipe.

`CookingSession` only tracks presentation state. It never mutates the recipe
it was given; scaling and ingredient removal are views over it.
"""
from __future__ import annotations

import asyncio
import logging
import math
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Set

from .models import Ingredient, Instruction, Recipe

logger = logging.getLogger(__name__)

PRESET_MINUTES = (1, 3, 5, 10, 15)
MIN_MULTIPLIER = 0.5
MAX_MULTIPLIER = 4.0
MULTIPLIER_STEP = 0.5
ALARM_BEEPS = 3

_MINUTE_UNIT = r"(?:minutes?|mins?)\b"
RANGE_RE = re.compile(rf"(\d+)\s*(?:-|–|—|to)\s*(\d+)[\s-]*{_MINUTE_UNIT}", re.IGNORECASE)
SINGLE_RE = re.compile(rf"(\d+)[\s-]*{_MINUTE_UNIT}", re.IGNORECASE)
# the unit may follow directly ("200g"); ranges like "2-3" are left alone
QUANTITY_RE = re.compile(r"^\s*(\d+\s+\d+/\d+|\d+/\d+|\d+(?:\.\d+)?|\.\d+)(?![\d/.\-])(\s*)(.*)$", re.DOTALL)


# ---------- Pure helpers ----------

def _round_half(value: float) -> float:
    # half-up, not banker's rounding
    return math.floor(value * 2 + 0.5) / 2


def _format_quantity(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def _parse_quantity(token: str) -> Optional[float]:
    token = token.strip()
    whole = 0
    if " " in token:
        head, token = token.split(None, 1)
        whole = int(head)
    if "/" in token:
        num, den = token.split("/")
        if int(den) == 0:
            return None
        return whole + int(num) / int(den)
    return whole + float(token)


def scale_amount(amount: Optional[str], multiplier: float) -> Optional[str]:
    """
    Multiply a leading quantity ("2", "1/2", "1 1/2", "0.5") by `multiplier`,
    rounding to the nearest half. Amounts without a leading quantity
    ("to taste", "a pinch") come back unchanged.
    """
    if not amount or multiplier == 1:
        return amount
    m = QUANTITY_RE.match(amount)
    if not m:
        return amount
    number, gap, unit = m.groups()
    value = _parse_quantity(number)
    if value is None:
        return amount
    scaled = _round_half(value * multiplier)
    return f"{_format_quantity(scaled)}{gap}{unit}".rstrip()


def format_clock(seconds: int) -> str:
    return f"{seconds // 60}:{seconds % 60:02d}"


@dataclass
class TimerSuggestion:
    minutes: List[int]
    auto_start: bool


def detect_step_durations(step: str) -> Optional[TimerSuggestion]:
    """
    Find "N minutes" or "N-M minutes" / "N to M min" in a step.

    A fixed duration can start straight away; a range offers low, midpoint
    (when distinct) and high for the cook to pick from.
    """
    m = RANGE_RE.search(step)
    if m:
        low, high = sorted((int(m.group(1)), int(m.group(2))))
        if low != high:
            options = [low]
            mid = (low + high) // 2
            if low < mid < high:
                options.append(mid)
            options.append(high)
            return TimerSuggestion(minutes=options, auto_start=False)
        return TimerSuggestion(minutes=[low], auto_start=True) if low > 0 else None
    m = SINGLE_RE.search(step)
    if m and int(m.group(1)) > 0:
        return TimerSuggestion(minutes=[int(m.group(1))], auto_start=True)
    return None


# ---------- Timer ----------

class CountdownTimer:
    """Seconds-resolution countdown. Ticks are driven from outside (see run_ticker)."""

    def __init__(self, on_alarm: Optional[Callable[[int], None]] = None):
        self._on_alarm = on_alarm
        self.total_seconds: Optional[int] = None
        self.remaining: Optional[int] = None
        self.running = False
        self.finished = False

    @property
    def active(self) -> bool:
        return self.remaining is not None

    def start(self, seconds: int) -> None:
        if seconds <= 0:
            raise ValueError("timer duration must be positive")
        self.total_seconds = seconds
        self.remaining = seconds
        self.running = True
        self.finished = False

    def pause(self) -> None:
        self.running = False

    def resume(self) -> None:
        if self.remaining:
            self.running = True

    def reset(self) -> None:
        if self.total_seconds is None:
            return
        self.remaining = self.total_seconds
        self.running = False
        self.finished = False

    def dismiss(self) -> None:
        self.total_seconds = None
        self.remaining = None
        self.running = False
        self.finished = False

    def tick(self, seconds: int = 1) -> None:
        if not self.running or self.remaining is None:
            return
        self.remaining = max(0, self.remaining - seconds)
        if self.remaining == 0:
            self.running = False
            self.finished = True
            if self._on_alarm is not None:
                self._on_alarm(ALARM_BEEPS)

    def display(self) -> str:
        return format_clock(self.remaining or 0)


# ---------- Session ----------

class CookingSession:
    def __init__(
        self,
        recipe: Recipe,
        on_substitution_request: Optional[Callable[[str], None]] = None,
        on_alarm: Optional[Callable[[int], None]] = None,
    ):
        self._on_substitution_request = on_substitution_request
        self.timer = CountdownTimer(on_alarm)
        self.serving_multiplier = 1.0
        self._ticker: Optional[asyncio.Task] = None
        self._load(recipe)

    def _load(self, recipe: Recipe) -> None:
        self.recipe = recipe
        self.current_step = 0
        self.completed_steps: Set[int] = set()
        self.checked_ingredients: Set[int] = set()
        self.removed_ingredients: Set[int] = set()
        self.timer_options: Optional[List[int]] = None
        self.timer.dismiss()

    # -- navigation

    @property
    def step_count(self) -> int:
        return len(self.recipe.instructions)

    @property
    def current_instruction(self) -> Optional[Instruction]:
        if not self.step_count:
            return None
        return self.recipe.instructions[self.current_step]

    def _move_to(self, index: int) -> None:
        if index != self.current_step:
            self.current_step = index
            self.timer.dismiss()
            self.timer_options = None

    def advance(self) -> None:
        """Complete the current step and move on; stays put on the last step."""
        if not self.step_count:
            return
        self.completed_steps.add(self.current_step)
        self._move_to(min(self.step_count - 1, self.current_step + 1))

    def retreat(self) -> None:
        if not self.step_count:
            return
        self._move_to(max(0, self.current_step - 1))

    def jump(self, index: int) -> None:
        if not 0 <= index < self.step_count:
            raise IndexError(f"step {index} out of range (0..{self.step_count - 1})")
        self._move_to(index)

    def toggle_step(self, index: int) -> None:
        if index in self.completed_steps:
            self.completed_steps.discard(index)
        else:
            self.completed_steps.add(index)

    @property
    def progress(self) -> float:
        if not self.step_count:
            return 0.0
        return (self.current_step + 1) / self.step_count

    @property
    def is_complete(self) -> bool:
        return self.step_count > 0 and len(self.completed_steps) == self.step_count

    # -- ingredients

    def _check_ingredient_index(self, index: int) -> Ingredient:
        if not 0 <= index < len(self.recipe.ingredients):
            raise IndexError(f"ingredient {index} out of range")
        return self.recipe.ingredients[index]

    def toggle_ingredient(self, index: int) -> None:
        self._check_ingredient_index(index)
        if index in self.checked_ingredients:
            self.checked_ingredients.discard(index)
        else:
            self.checked_ingredients.add(index)

    def remove_ingredient(self, index: int) -> Optional[str]:
        """Mark an ingredient as missing and ask the chat for a substitute."""
        ingredient = self._check_ingredient_index(index)
        if index in self.removed_ingredients:
            return None
        self.removed_ingredients.add(index)
        message = f"I don't have {ingredient.name}, what can I substitute?"
        if self._on_substitution_request is not None:
            self._on_substitution_request(message)
        return message

    def restore_ingredient(self, index: int) -> None:
        self._check_ingredient_index(index)
        self.removed_ingredients.discard(index)

    @property
    def removed_ingredient_names(self) -> List[str]:
        return [self.recipe.ingredients[i].name for i in sorted(self.removed_ingredients)]

    # -- servings

    def adjust_servings(self, direction: str) -> float:
        if direction == "up":
            self.serving_multiplier = min(MAX_MULTIPLIER, self.serving_multiplier + MULTIPLIER_STEP)
        elif direction == "down":
            self.serving_multiplier = max(MIN_MULTIPLIER, self.serving_multiplier - MULTIPLIER_STEP)
        else:
            raise ValueError(f"direction must be 'up' or 'down', got {direction!r}")
        return self.serving_multiplier

    def scaled_ingredients(self) -> List[Ingredient]:
        return [
            Ingredient(name=i.name, amount=scale_amount(i.amount, self.serving_multiplier))
            for i in self.recipe.ingredients
        ]

    # -- timer

    def start_timer_for_current_step(self) -> Optional[TimerSuggestion]:
        """Auto-start a fixed duration; remember range options for the cook to choose."""
        instruction = self.current_instruction
        if instruction is None:
            return None
        suggestion = detect_step_durations(instruction.step)
        if suggestion is None:
            return None
        if suggestion.auto_start:
            self.timer_options = None
            self.timer.start(suggestion.minutes[0] * 60)
        else:
            self.timer_options = suggestion.minutes
        return suggestion

    def start_timer_minutes(self, minutes: float) -> None:
        """Preset, custom, or one of the offered range options."""
        if minutes <= 0:
            raise ValueError("minutes must be positive")
        seconds = int(round(minutes * 60))
        if seconds <= 0:
            raise ValueError(f"{minutes} minutes is less than one second")
        self.timer_options = None
        self.timer.start(seconds)

    def start_preset_timer(self, minutes: int) -> None:
        if minutes not in PRESET_MINUTES:
            raise ValueError(f"{minutes} is not a preset; choose one of {PRESET_MINUTES}")
        self.start_timer_minutes(minutes)

    def tick(self, seconds: int = 1) -> None:
        self.timer.tick(seconds)

    # -- lifecycle

    def replace_recipe(self, recipe: Recipe) -> None:
        """An edited recipe invalidates all step and ingredient progress."""
        self._load(recipe)

    def start_ticker(self, interval: float = 1.0) -> asyncio.Task:
        if self._ticker is None or self._ticker.done():
            self._ticker = asyncio.get_running_loop().create_task(run_ticker(self, interval))
        return self._ticker

    def close(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        self.timer.dismiss()


async def run_ticker(session: CookingSession, interval: float = 1.0) -> None:
    """Tick the session timer once per `interval` until cancelled."""
    while True:
        await asyncio.sleep(interval)
        if session.timer.running:
            session.tick()
