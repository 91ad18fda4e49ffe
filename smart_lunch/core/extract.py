# smart_lunch/core/extract.py
"""
Recover recipe JSON from free-form completion text.

The completion service is asked for JSON but routinely wraps it in prose or
markdown fences, leaves raw newlines inside string values, or adds trailing
commas. `repair_json` is a two-state scanner (inside / outside a string
literal) that fixes exactly those problems and nothing else.
"""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError

from smart_lunch.services.exceptions import RecipeValidationError
from .models import Recipe, new_recipe_id

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(\{[\s\S]*\})\s*```")
BRACE_RE = re.compile(r"\{[\s\S]*\}")
FENCE_MARK_RE = re.compile(r"```(?:json|JSON)?")
PREAMBLE_RE = re.compile(
    r"^[ \t]*(?:(?:sure|okay|ok|great|absolutely|of course)[!,.]?[ \t]*)?"
    r"here(?:'s|’s| is| are)[^\n]*?recipe[^\n]*$",
    re.IGNORECASE | re.MULTILINE,
)

MAX_CHAT_MESSAGE_CHARS = 100
NEW_RECIPE_ACK = "Here's your recipe!"
UPDATED_RECIPE_ACK = "Recipe updated to your preference!"

_STRING_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}
_WHITESPACE = " \t\r\n"


@dataclass
class ChatExtraction:
    recipe: Optional[Recipe]
    message: str
    error: Optional[str] = None


def find_json_block(text: str) -> Optional[Tuple[str, Tuple[int, int]]]:
    """Fenced ```json block first, else the greedy first-`{` to last-`}` span."""
    m = FENCE_RE.search(text)
    if m:
        return m.group(1), m.span()
    m = BRACE_RE.search(text)
    if m:
        return m.group(0), m.span()
    return None


def strip_fences(text: str) -> str:
    m = FENCE_RE.search(text)
    return m.group(1) if m else text


def _next_significant(text: str, i: int) -> str:
    # skips whitespace and further commas so ",,]" collapses in one pass
    n = len(text)
    while i < n and (text[i] in _WHITESPACE or text[i] == ","):
        i += 1
    return text[i] if i < n else ""


def repair_json(text: str) -> str:
    """
    Make near-valid JSON parseable.

    Inside a string literal raw newline, carriage return, tab and other control
    characters become escapes; backslash escapes are copied through untouched.
    Outside strings, commas directly before `}` or `]` are dropped. Valid JSON
    comes back byte-identical.
    """
    text = strip_fences(text)
    out: List[str] = []
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                out.append(ch)
                escaped = False
            elif ch == "\\":
                out.append(ch)
                escaped = True
            elif ch == '"':
                out.append(ch)
                in_string = False
            elif ch in _STRING_ESCAPES:
                out.append(_STRING_ESCAPES[ch])
            elif ord(ch) < 0x20:
                out.append(f"\\u{ord(ch):04x}")
            else:
                out.append(ch)
            continue

        if ch == '"':
            in_string = True
        elif ch == "," and _next_significant(text, i + 1) in ("}", "]"):
            continue
        out.append(ch)
    return "".join(out)


def loads_lenient(text: str) -> Any:
    """json.loads, then the embedded block, then the repaired block. Raises JSONDecodeError."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    block = find_json_block(text)
    candidate = block[0] if block else text
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return json.loads(repair_json(candidate))


def parse_recipe(data: Any, fallback_id: Optional[str] = None) -> Recipe:
    """Validate a decoded object into a Recipe or raise RecipeValidationError."""
    if not isinstance(data, dict):
        raise RecipeValidationError("recipe must be a JSON object")
    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        raise RecipeValidationError("recipe has no name")
    if not isinstance(data.get("ingredients"), list):
        raise RecipeValidationError("recipe ingredients must be an array")

    payload = dict(data)
    if not payload.get("id"):
        payload["id"] = fallback_id or new_recipe_id()
    else:
        payload["id"] = str(payload["id"])
    try:
        return Recipe.model_validate(payload)
    except ValidationError as e:
        raise RecipeValidationError(str(e)) from e


def _clean_chat_text(text: str) -> str:
    text = PREAMBLE_RE.sub("", text)
    text = FENCE_MARK_RE.sub("", text)
    return text.strip()


def extract_recipe_reply(text: str, current_recipe: Optional[Recipe] = None) -> ChatExtraction:
    """
    Split a chat reply into (recipe, short message).

    When no usable recipe is found the original text is returned untouched.
    """
    block = find_json_block(text)
    if block is None:
        return ChatExtraction(recipe=None, message=text)

    json_text, (start, end) = block
    try:
        data = loads_lenient(json_text)
        recipe = parse_recipe(data, fallback_id=current_recipe.id if current_recipe else None)
    except json.JSONDecodeError as e:
        logger.warning("Could not parse recipe JSON from reply: %s", e)
        return ChatExtraction(recipe=None, message=text, error=f"invalid JSON: {e}")
    except RecipeValidationError as e:
        logger.info("Reply JSON is not a recipe: %s", e)
        return ChatExtraction(recipe=None, message=text, error=str(e))

    message = _clean_chat_text(text[:start] + text[end:])
    if not message or len(message) > MAX_CHAT_MESSAGE_CHARS or "{" in message:
        message = UPDATED_RECIPE_ACK if current_recipe is not None else NEW_RECIPE_ACK
    return ChatExtraction(recipe=recipe, message=message)


def sanitize_strings(value: Any) -> Any:
    """Flatten control characters in every string of a decoded structure."""
    if isinstance(value, str):
        return value.replace("\n", " ").replace("\r", "").replace("\t", " ").strip()
    if isinstance(value, list):
        return [sanitize_strings(v) for v in value]
    if isinstance(value, dict):
        return {k: sanitize_strings(v) for k, v in value.items()}
    return value


def extract_meal_plan_items(text: str) -> List[dict]:
    """Raw meal-plan rows from a (possibly large, possibly malformed) reply."""
    parsed = loads_lenient(text)
    items: Any = []
    if isinstance(parsed, list):
        items = parsed
    elif isinstance(parsed, dict):
        if isinstance(parsed.get("items"), list):
            items = parsed["items"]
        elif isinstance(parsed.get("recipes"), list):
            items = parsed["recipes"]
        elif isinstance(parsed.get("mealPlan"), dict) and isinstance(parsed["mealPlan"].get("items"), list):
            items = parsed["mealPlan"]["items"]
    return [row for row in sanitize_strings(items) if isinstance(row, dict)]
