# tests/unit/test_cooking.py
import asyncio

import pytest

from smart_lunch.core.cooking import (
    ALARM_BEEPS,
    CookingSession,
    CountdownTimer,
    detect_step_durations,
    format_clock,
    run_ticker,
    scale_amount,
)
from smart_lunch.core.models import Recipe


def make_recipe(**overrides):
    data = {
        "id": "recipe_1",
        "name": "Pasta Salad",
        "ingredients": [
            {"name": "Pasta", "amount": "2 cup"},
            {"name": "Olive oil", "amount": "1/2 tbsp"},
            {"name": "Salt", "amount": "to taste"},
        ],
        "instructions": [
            {"step": "Boil the pasta for 8 minutes."},
            {"step": "Let it cool for 5 to 10 minutes."},
            {"step": "Toss everything together."},
        ],
    }
    data.update(overrides)
    return Recipe.model_validate(data)


@pytest.mark.parametrize("amount,multiplier,expected", [
    ("2 cup", 1.5, "3 cup"),
    ("1/2 tsp", 2, "1 tsp"),
    ("to taste", 3, "to taste"),
    ("1 1/2 cups", 2, "3 cups"),
    ("3 eggs", 0.5, "1.5 eggs"),
    ("1", 1.5, "1.5"),
    ("2", 1, "2"),
    ("200g", 2, "400g"),
    ("250ml", 1.5, "375ml"),
    ("2tbsp", 0.5, "1tbsp"),
    ("2-3 cups", 2, "2-3 cups"),
])
def test_scale_amount(amount, multiplier, expected):
    assert scale_amount(amount, multiplier) == expected


def test_scale_amount_passes_none_through():
    assert scale_amount(None, 2) is None


def test_range_offers_low_mid_and_high():
    suggestion = detect_step_durations("Simmer for 5 to 10 minutes until thick.")
    assert suggestion.minutes == [5, 7, 10]
    assert not suggestion.auto_start


def test_dash_range_with_adjacent_values_has_no_midpoint():
    suggestion = detect_step_durations("Bake 3-4 mins")
    assert suggestion.minutes == [3, 4]


def test_fixed_duration_auto_starts():
    suggestion = detect_step_durations("Boil for 8 minutes")
    assert suggestion.minutes == [8]
    assert suggestion.auto_start


def test_step_without_duration():
    assert detect_step_durations("Serve with a smile") is None


def test_format_clock():
    assert format_clock(0) == "0:00"
    assert format_clock(65) == "1:05"
    assert format_clock(600) == "10:00"


def test_timer_alarm_fires_once_at_zero():
    beeps = []
    timer = CountdownTimer(on_alarm=beeps.append)
    timer.start(2)
    timer.tick()
    assert timer.display() == "0:01"
    timer.tick()
    assert timer.finished and not timer.running
    assert beeps == [ALARM_BEEPS]
    timer.tick()
    assert beeps == [ALARM_BEEPS]


def test_timer_pause_resume_reset():
    timer = CountdownTimer()
    timer.start(10)
    timer.tick(3)
    timer.pause()
    timer.tick(3)
    assert timer.remaining == 7
    timer.resume()
    timer.tick()
    assert timer.remaining == 6
    timer.reset()
    assert timer.remaining == 10 and not timer.running


def test_timer_rejects_non_positive_duration():
    with pytest.raises(ValueError):
        CountdownTimer().start(0)


def test_advance_on_last_step_marks_complete_without_moving():
    session = CookingSession(make_recipe())
    session.jump(2)
    session.advance()
    assert session.current_step == 2
    assert 2 in session.completed_steps


def test_retreat_on_first_step_is_noop():
    session = CookingSession(make_recipe())
    session.retreat()
    assert session.current_step == 0
    assert session.completed_steps == set()


def test_jump_does_not_touch_completion_and_checks_bounds():
    session = CookingSession(make_recipe())
    session.jump(1)
    assert session.completed_steps == set()
    with pytest.raises(IndexError):
        session.jump(3)


def test_walking_through_all_steps_completes_session():
    session = CookingSession(make_recipe())
    for _ in range(3):
        session.advance()
    assert session.is_complete
    assert session.progress == 1.0


def test_fixed_duration_step_starts_timer_immediately():
    session = CookingSession(make_recipe())
    suggestion = session.start_timer_for_current_step()
    assert suggestion.auto_start
    assert session.timer.running
    assert session.timer.remaining == 8 * 60
    assert session.timer_options is None


def test_range_step_waits_for_selection():
    session = CookingSession(make_recipe())
    session.advance()
    session.start_timer_for_current_step()
    assert not session.timer.active
    assert 5 in session.timer_options and 10 in session.timer_options
    session.start_timer_minutes(10)
    assert session.timer.remaining == 600
    assert session.timer_options is None


def test_changing_step_dismisses_timer():
    session = CookingSession(make_recipe())
    session.start_timer_for_current_step()
    session.advance()
    assert not session.timer.active


def test_preset_timer_only_accepts_presets():
    session = CookingSession(make_recipe())
    session.start_preset_timer(3)
    assert session.timer.remaining == 180
    with pytest.raises(ValueError):
        session.start_preset_timer(7)
    with pytest.raises(ValueError):
        session.start_timer_minutes(0)


def test_custom_timer_under_one_second_is_rejected():
    session = CookingSession(make_recipe())
    with pytest.raises(ValueError, match="less than one second"):
        session.start_timer_minutes(0.005)
    assert not session.timer.active
    session.start_timer_minutes(0.5)
    assert session.timer.remaining == 30


def test_remove_ingredient_requests_substitution():
    sent = []
    session = CookingSession(make_recipe(), on_substitution_request=sent.append)
    message = session.remove_ingredient(1)
    assert message == "I don't have Olive oil, what can I substitute?"
    assert sent == [message]
    assert session.removed_ingredient_names == ["Olive oil"]
    assert session.remove_ingredient(1) is None
    session.restore_ingredient(1)
    assert session.removed_ingredient_names == []


def test_toggle_ingredient_and_step():
    session = CookingSession(make_recipe())
    session.toggle_ingredient(0)
    assert session.checked_ingredients == {0}
    session.toggle_ingredient(0)
    assert session.checked_ingredients == set()
    session.toggle_step(1)
    assert session.completed_steps == {1}
    with pytest.raises(IndexError):
        session.toggle_ingredient(9)


def test_serving_multiplier_is_bounded():
    session = CookingSession(make_recipe())
    for _ in range(10):
        session.adjust_servings("up")
    assert session.serving_multiplier == 4.0
    for _ in range(10):
        session.adjust_servings("down")
    assert session.serving_multiplier == 0.5
    with pytest.raises(ValueError):
        session.adjust_servings("sideways")


def test_scaled_ingredients_do_not_mutate_recipe():
    recipe = make_recipe()
    session = CookingSession(recipe)
    session.adjust_servings("up")
    scaled = session.scaled_ingredients()
    assert [i.amount for i in scaled] == ["3 cup", "1 tbsp", "to taste"]
    assert recipe.ingredients[0].amount == "2 cup"


def test_replace_recipe_resets_progress():
    session = CookingSession(make_recipe())
    session.advance()
    session.toggle_ingredient(0)
    session.remove_ingredient(2)
    session.start_timer_minutes(1)
    session.adjust_servings("up")

    session.replace_recipe(make_recipe(name="Pasta Salad (no salt)"))
    assert session.current_step == 0
    assert session.completed_steps == set()
    assert session.checked_ingredients == set()
    assert session.removed_ingredients == set()
    assert not session.timer.active
    assert session.recipe.name == "Pasta Salad (no salt)"
    assert session.serving_multiplier == 1.5


def test_ticker_counts_down_until_closed():
    async def scenario():
        session = CookingSession(make_recipe())
        session.start_timer_minutes(1)
        task = session.start_ticker(interval=0.01)
        await asyncio.sleep(0.1)
        remaining = session.timer.remaining
        session.close()
        await asyncio.gather(task, return_exceptions=True)
        return remaining, task

    remaining, task = asyncio.run(scenario())
    assert remaining < 60
    assert task.cancelled()


def test_run_ticker_is_cancellable():
    async def scenario():
        session = CookingSession(make_recipe())
        task = asyncio.ensure_future(run_ticker(session, interval=0.01))
        await asyncio.sleep(0.03)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())
