from __future__ import annotations

import datetime as dt
import json
import logging
from typing import List, Optional, Sequence

from pydantic import ValidationError

from smart_lunch.config import Settings
from smart_lunch.core.extract import (
    ChatExtraction,
    extract_meal_plan_items,
    extract_recipe_reply,
    loads_lenient,
    parse_recipe,
    sanitize_strings,
)
from smart_lunch.core.models import DEFAULT_NUTRITION, ChatMessage, MealPlan, Recipe, UserPreferences
from smart_lunch.core.planning import MEAL_TYPES, build_meal_plan, plan_dates
from smart_lunch.core.prompts import (
    build_chat_system_prompt,
    build_detail_prompts,
    build_image_prompt,
    build_meal_plan_prompts,
    build_search_system_prompt,
)
from .exceptions import ConfigurationError, LLMError, RecipeValidationError
from .metrics import MetricsLogger

# OpenAI SDK v1+
try:
    from openai import OpenAI
except ImportError as e:  # pragma: no cover
    raise LLMError("Failed to import OpenAI SDK. Install with `pip install openai`") from e

logger = logging.getLogger(__name__)

NO_REPLY_MESSAGE = "Sorry, I could not generate a response."


def _openai_client(settings: Settings) -> OpenAI:
    if not settings.openai_api_key:
        raise ConfigurationError("OPENAI_API_KEY is not set")
    try:
        return OpenAI(api_key=settings.openai_api_key)
    except Exception as e:
        raise LLMError("Could not initialize OpenAI client") from e


class ImageGenerator:
    """
    Best-effort dish photo. Waits at most `image_timeout_seconds` (no retries)
    and returns None on any failure; a recipe is never held back by its image.
    """

    def __init__(self, settings: Settings, client=None, metrics: Optional[MetricsLogger] = None):
        self._enabled = settings.image_enabled
        self._client = client
        self._model = settings.openai_model_image
        self._size = settings.image_size
        self._quality = settings.image_quality
        self._timeout = settings.image_timeout_seconds
        self._metrics = metrics

    def generate(self, recipe: Recipe) -> Optional[str]:
        if not self._enabled or self._client is None:
            return None
        prompt = build_image_prompt(recipe)
        logger.debug("Generating image for %r", recipe.name)
        try:
            if self._metrics is not None:
                with self._metrics.timed("image_generate", model=self._model):
                    resp = self._request(prompt)
            else:
                resp = self._request(prompt)
        except Exception as e:  # upstream failures of any kind degrade to "no image"
            logger.warning("Image generation failed for %r: %s", recipe.name, e)
            return None
        data = getattr(resp, "data", None) or []
        url = getattr(data[0], "url", None) if data else None
        if not url:
            logger.warning("No image URL in response for %r", recipe.name)
        return url

    def _request(self, prompt: str):
        client = self._client.with_options(timeout=self._timeout, max_retries=0)
        return client.images.generate(
            model=self._model,
            prompt=prompt,
            n=1,
            size=self._size,
            quality=self._quality,
        )

    def attach(self, recipe: Recipe) -> Recipe:
        url = self.generate(recipe)
        return recipe.model_copy(update={"image_url": url}) if url else recipe


class RecipeChef:
    """Completion-service front end: chat edits, one-shot search, detail fill-in, meal plans."""

    def __init__(self, settings: Settings, client=None, images: Optional[ImageGenerator] = None,
                 metrics: Optional[MetricsLogger] = None):
        self._settings = settings
        self._client = client if client is not None else _openai_client(settings)
        self._model = settings.openai_model_chat
        self._images = images if images is not None else ImageGenerator(settings, self._client, metrics)

    def _complete(self, messages: List[dict], temperature: float, max_tokens: int,
                  json_mode: bool = False) -> str:
        kwargs = {}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        try:
            resp = self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                **kwargs,
            )
        except Exception as e:
            raise LLMError(f"OpenAI completion failed: {e}") from e
        if not resp.choices:
            return ""
        return resp.choices[0].message.content or ""

    def chat(
        self,
        messages: Sequence[ChatMessage],
        current_recipe: Optional[Recipe] = None,
        available_ingredients: Sequence[str] = (),
        removed_ingredients: Sequence[str] = (),
        preferences: Optional[UserPreferences] = None,
    ) -> ChatExtraction:
        system = build_chat_system_prompt(current_recipe, available_ingredients, removed_ingredients, preferences)
        text = self._complete(
            [{"role": "system", "content": system}] + [m.model_dump() for m in messages],
            temperature=self._settings.chat_temperature,
            max_tokens=self._settings.chat_max_tokens,
        ) or NO_REPLY_MESSAGE
        result = extract_recipe_reply(text, current_recipe)
        if result.recipe is not None:
            result.recipe = self._images.attach(result.recipe)
        return result

    def search(
        self,
        query: str,
        available_ingredients: Sequence[str] = (),
        preferences: Optional[UserPreferences] = None,
    ) -> Recipe:
        system = build_search_system_prompt(query, available_ingredients, preferences)
        content = self._complete(
            [{"role": "system", "content": system},
             {"role": "user", "content": f"Generate a recipe for: {query}"}],
            temperature=self._settings.search_temperature,
            max_tokens=self._settings.search_max_tokens,
            json_mode=True,
        )
        if not content:
            raise LLMError("No response from AI")
        try:
            data = loads_lenient(content)
        except json.JSONDecodeError as e:
            raise LLMError("Could not parse recipe JSON") from e
        if not isinstance(data, dict) or not isinstance(data.get("instructions"), list):
            raise LLMError("Invalid recipe format")
        data = {k: v for k, v in data.items() if k != "id"}  # search results always get a fresh id
        try:
            recipe = parse_recipe(data)
        except RecipeValidationError as e:
            raise LLMError(f"Invalid recipe format: {e}") from e
        if recipe.nutrition is None:
            recipe.nutrition = DEFAULT_NUTRITION.model_copy()
        return self._images.attach(recipe)

    def complete_detail(self, recipe: Recipe, preferences: Optional[UserPreferences] = None) -> Recipe:
        """Fill in a lightweight recipe. Keeps its id (and image, if it has one)."""
        system, user = build_detail_prompts(recipe, preferences)
        content = self._complete(
            [{"role": "system", "content": system}, {"role": "user", "content": user}],
            temperature=self._settings.chat_temperature,
            max_tokens=self._settings.detail_max_tokens,
            json_mode=True,
        )
        if not content:
            raise LLMError("No response from AI")
        try:
            data = sanitize_strings(loads_lenient(content))
        except json.JSONDecodeError as e:
            raise LLMError("Could not parse recipe JSON") from e
        if not isinstance(data, dict):
            raise LLMError("Invalid recipe format")

        merged = recipe.to_document()
        merged.update({k: v for k, v in data.items() if v not in (None, "", [], {})})
        merged["id"] = recipe.id
        merged.setdefault("ingredients", [])
        if recipe.image_url:
            merged["imageUrl"] = recipe.image_url
        if not merged.get("nutrition"):
            merged["nutrition"] = DEFAULT_NUTRITION.to_document()
        try:
            complete = parse_recipe(merged)
        except RecipeValidationError as e:
            raise LLMError(f"Invalid recipe format: {e}") from e
        if complete.image_url:
            return complete
        return self._images.attach(complete)

    def generate_meal_plan(
        self,
        duration: str,
        preferences: Optional[UserPreferences] = None,
        start: Optional[dt.date] = None,
    ) -> MealPlan:
        start, _end, dates = plan_dates(duration, start)
        system, user = build_meal_plan_prompts(duration, start, dates, MEAL_TYPES, preferences)
        content = self._complete(
            [{"role": "system", "content": system}, {"role": "user", "content": user}],
            temperature=self._settings.chat_temperature,
            max_tokens=self._settings.meal_plan_max_tokens,
            json_mode=True,
        )
        if not content:
            raise LLMError("No response from AI")
        try:
            rows = extract_meal_plan_items(content)
        except json.JSONDecodeError as e:
            logger.error("Meal plan JSON unrecoverable (%d chars): %s", len(content), e)
            raise LLMError(f"Failed to parse JSON response: {e}. The AI may have generated invalid JSON.") from e
        try:
            return build_meal_plan(duration, rows, start)
        except ValidationError as e:
            raise LLMError(f"Invalid meal plan format: {e}") from e
