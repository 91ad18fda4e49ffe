# tests/unit/test_extract.py
import json

import pytest

from smart_lunch.core.extract import (
    NEW_RECIPE_ACK,
    UPDATED_RECIPE_ACK,
    extract_meal_plan_items,
    extract_recipe_reply,
    find_json_block,
    loads_lenient,
    parse_recipe,
    repair_json,
)
from smart_lunch.core.models import Recipe
from smart_lunch.services.exceptions import RecipeValidationError

VEGGIE_WRAP = '{"name":"Veggie Wrap","ingredients":[{"name":"Tortilla","amount":"1"}],"instructions":[{"step":"Roll it"}]}'


def test_veggie_wrap_in_prose_is_extracted_and_message_is_clean():
    reply = f"Sure! Here's a quick lunch idea:\n{VEGGIE_WRAP}\nEnjoy it!"
    result = extract_recipe_reply(reply)
    assert result.recipe is not None
    assert result.recipe.name == "Veggie Wrap"
    assert result.recipe.ingredients[0].amount == "1"
    assert "{" not in result.message


def test_reply_without_json_keeps_text_unchanged():
    reply = "What ingredients do you have in your fridge today?"
    result = extract_recipe_reply(reply)
    assert result.recipe is None
    assert result.message == reply


def test_fenced_block_is_preferred_and_fences_removed():
    reply = f"Here is your recipe:\n```json\n{VEGGIE_WRAP}\n```\nHappy cooking"
    result = extract_recipe_reply(reply)
    assert result.recipe.name == "Veggie Wrap"
    assert "```" not in result.message
    assert result.message == "Happy cooking"


def test_long_or_empty_message_is_replaced_by_acknowledgement():
    result = extract_recipe_reply(VEGGIE_WRAP)
    assert result.message == NEW_RECIPE_ACK

    current = Recipe(id="recipe_1", name="Old Wrap")
    chatter = "This is a very long explanation. " * 5
    result = extract_recipe_reply(chatter + VEGGIE_WRAP, current_recipe=current)
    assert result.message == UPDATED_RECIPE_ACK


def test_modified_recipe_keeps_current_id_when_reply_has_none():
    current = Recipe(id="recipe_42", name="Veggie Wrap")
    result = extract_recipe_reply(VEGGIE_WRAP, current_recipe=current)
    assert result.recipe.id == "recipe_42"


def test_new_recipe_gets_generated_id():
    result = extract_recipe_reply(VEGGIE_WRAP)
    assert result.recipe.id.startswith("recipe_")


def test_json_without_ingredients_is_not_a_recipe():
    reply = 'Try this: {"name": "Mystery"}'
    result = extract_recipe_reply(reply)
    assert result.recipe is None
    assert result.message == reply
    assert result.error


def test_unrepairable_json_degrades_to_chat_text():
    reply = 'Oops {"name": "Broken", "ingredients": [ }'
    result = extract_recipe_reply(reply)
    assert result.recipe is None
    assert result.message == reply


def test_repair_escapes_raw_newlines_inside_strings():
    raw = '{"name": "Soup", "description": "line one\nline two", "ingredients": []}'
    expected = '{"name": "Soup", "description": "line one\\nline two", "ingredients": []}'
    assert json.loads(repair_json(raw)) == json.loads(expected)


def test_repair_drops_trailing_commas_outside_strings_only():
    raw = '{"tags": ["a, b", "c",], "note": "ends with,]",}'
    assert json.loads(repair_json(raw)) == {"tags": ["a, b", "c"], "note": "ends with,]"}


def test_repair_leaves_valid_json_alone():
    valid = '{"a": "x\\ny", "b": [1, 2], "c": "quote \\" inside"}'
    assert repair_json(valid) == valid


def test_repair_escapes_tabs_and_control_characters():
    raw = '{"step": "stir\tthen\x01wait"}'
    assert json.loads(repair_json(raw)) == {"step": "stir\tthen\x01wait"}


def test_raw_newlines_in_chat_reply_still_yield_a_recipe():
    reply = 'Here you go {"name": "Wrap", "description": "crunchy\nand fresh", "ingredients": ["Tortilla"]}'
    result = extract_recipe_reply(reply)
    assert result.recipe.name == "Wrap"
    assert result.recipe.description == "crunchy\nand fresh"
    assert result.recipe.ingredients[0].name == "Tortilla"


def test_find_json_block_returns_none_without_braces():
    assert find_json_block("no json here") is None


def test_loads_lenient_handles_prose_and_trailing_commas():
    assert loads_lenient('Result: {"a": 1,}') == {"a": 1}
    with pytest.raises(json.JSONDecodeError):
        loads_lenient("not json at all")


@pytest.mark.parametrize("data", [
    [],
    {"ingredients": []},
    {"name": "   ", "ingredients": []},
    {"name": "Wrap", "ingredients": "tortilla"},
])
def test_parse_recipe_rejects_invalid_shapes(data):
    with pytest.raises(RecipeValidationError):
        parse_recipe(data)


def test_parse_recipe_fills_defaults():
    recipe = parse_recipe({"name": "Toast", "ingredients": [{"name": "Bread", "amount": 2}], "rating": "n/a"})
    assert recipe.ingredients[0].amount == "2"
    assert recipe.rating == 4.5
    assert recipe.difficulty == "Easy"
    assert recipe.time == "20 min"


def test_meal_plan_items_accepts_wrapped_shapes():
    row = {"date": "2026-10-19", "mealType": "lunch", "recipe": {"name": "Bowl\nof rice"}}
    for payload in ([row], {"items": [row]}, {"recipes": [row]}, {"mealPlan": {"items": [row]}}):
        items = extract_meal_plan_items(json.dumps(payload))
        assert items[0]["recipe"]["name"] == "Bowl of rice"
