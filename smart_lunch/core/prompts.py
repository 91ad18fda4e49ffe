# smart_lunch/core/prompts.py
"""
Prompt construction for the completion service.

Everything here is pure string assembly. User free text is interpolated as-is;
allergies and dietary restrictions are phrased as hard constraints but the
completion service is the only thing that can honour them.
"""
from __future__ import annotations

import datetime as dt
import json
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import Recipe, UserPreferences

EQUIPMENT_NAMES = {
    "oven": "Oven",
    "stovetop": "Stovetop",
    "microwave": "Microwave",
    "toaster": "Toaster",
    "air_fryer": "Air Fryer",
    "slow_cooker": "Slow Cooker",
    "instant_pot": "Instant Pot",
    "blender": "Blender",
    "food_processor": "Food Processor",
    "grill": "Grill",
    "rice_cooker": "Rice Cooker",
    "steamer": "Steamer",
}

RECIPE_JSON_FORMAT = """{
  "name": "Recipe Name",
  "description": "Brief description emphasizing ease for busy parents",
  "emoji": "\U0001F371",
  "time": "15 min",
  "servings": "2-3 kids",
  "difficulty": "Easy",
  "rating": 4.8,
  "tags": ["tag1", "tag2"],
  "ingredients": [{"name": "Ingredient", "amount": "1 cup"}],
  "instructions": [
    {"step": "Clear instruction with timing if needed (e.g., 'cook for 3-4 minutes')", "tip": "Helpful tip for busy parents"}
  ],
  "presentationTips": ["Quick tip 1", "Quick tip 2"],
  "nutrition": {"calories": "250", "protein": "10g", "carbs": "30g", "fat": "8g"}
}"""

MISSING_KEY_RECIPE_MESSAGE = (
    "I'd love to help you create a recipe! To enable AI-powered recipe generation, "
    "please set up your OpenAI API key.\n\n"
    "For now, here's what I can tell you:\n\n"
    "1. Browse the existing recipes - they're all kid-friendly and healthy!\n"
    "2. Use the ingredient filter to find recipes based on what you have\n"
    "3. Each recipe has step-by-step instructions and presentation tips\n\n"
    "To enable AI features:\n"
    "1. Get an API key from https://platform.openai.com/api-keys\n"
    "2. Add OPENAI_API_KEY=your_key_here to the server's .env file\n"
    "3. Restart the server"
)

MISSING_KEY_MESSAGE = (
    "To use AI features, please set up your OpenAI API key. Add "
    "`OPENAI_API_KEY=your_key_here` to the server's `.env` file. "
    "Get your key from https://platform.openai.com/api-keys"
)


def missing_key_message(last_user_message: str) -> str:
    """Canned reply used instead of calling the network when no key is configured."""
    text = last_user_message.lower()
    if any(word in text for word in ("recipe", "make", "lunch")):
        return MISSING_KEY_RECIPE_MESSAGE
    return MISSING_KEY_MESSAGE


def format_equipment(tokens: Iterable[str]) -> str:
    return ", ".join(EQUIPMENT_NAMES.get(t, t) for t in tokens)


def _join(values: Sequence[str], empty: str = "not specified") -> str:
    return ", ".join(values) if values else empty


def preferences_block(prefs: Optional[UserPreferences], equipment_fallback: str = "skip that recipe") -> str:
    """Personalisation block shared by the chat and search prompts."""
    if prefs is None:
        return ""
    lines = [
        "USER PREFERENCES (IMPORTANT - USE THESE TO PERSONALIZE RECIPES):",
        f"- Number of people: {prefs.number_of_people}",
    ]
    if prefs.has_kids:
        lines.append(f"- Has kids (ages: {_join(prefs.kids_ages)})")
    if prefs.has_partner:
        lines.append("- Has a partner")
    if prefs.allergies:
        lines.append(
            f"- ALLERGIES: {', '.join(prefs.allergies)} - ABSOLUTELY DO NOT include these "
            "ingredients or anything derived from them, in any form!"
        )
    if prefs.dietary_restrictions:
        lines.append(
            f"- Dietary restrictions: {', '.join(prefs.dietary_restrictions)} - MUST respect these restrictions!"
        )
    if prefs.kitchen_equipment:
        lines.append(
            f"- Available kitchen equipment: {format_equipment(prefs.kitchen_equipment)} - ONLY suggest "
            "recipes that can be made with these tools! If a recipe requires equipment they don't have, "
            f"suggest an alternative cooking method or {equipment_fallback}."
        )
    else:
        lines.append("- No specific kitchen equipment specified - assume basic stovetop and microwave available")
    if prefs.health_goals:
        lines.append(f"- Health goals: {', '.join(prefs.health_goals)}")
    if prefs.preferences:
        lines.append(f"- Food preferences: {', '.join(prefs.preferences)}")
    lines.append(f"- Always adjust serving sizes to match {prefs.number_of_people} people")
    lines.append(f"- Make recipes appropriate for {'kids and adults' if prefs.has_kids else 'adults'}")
    return "\n".join(lines)


def _hard_constraints_sentence(prefs: Optional[UserPreferences]) -> str:
    """One-line constraint summary used by the detail and meal-plan prompts."""
    if prefs is None:
        return ""
    parts = []
    if prefs.dietary_restrictions:
        parts.append(f"Dietary restrictions: {', '.join(prefs.dietary_restrictions)}. ")
    if prefs.allergies:
        parts.append(f"Allergies: {', '.join(prefs.allergies)} - ABSOLUTELY DO NOT include these. ")
    noun = "person" if prefs.number_of_people == 1 else "people"
    parts.append(f"Cooking for {prefs.number_of_people} {noun}. ")
    if prefs.has_kids:
        parts.append("Includes kids. ")
    if prefs.health_goals:
        parts.append(f"Health goals: {', '.join(prefs.health_goals)}. ")
    return "".join(parts)


def build_chat_system_prompt(
    current_recipe: Optional[Recipe],
    available_ingredients: Sequence[str] = (),
    removed_ingredients: Sequence[str] = (),
    preferences: Optional[UserPreferences] = None,
) -> str:
    sections: List[str] = [
        "You are a helpful AI assistant for Smart Lunch, an app that helps busy parents create fun, "
        "healthy, kid-friendly lunch recipes.",
        "CRITICAL: BE CONCISE AND BRIEF!\n"
        "- When modifying an existing recipe, just say \"Recipe updated!\" or \"Changed to your preference\" "
        "- DO NOT repeat the recipe details\n"
        "- The recipe will automatically update on screen, so you don't need to show it in chat\n"
        "- Only provide detailed explanations when the user explicitly asks for help or clarification",
        "Your role:\n"
        "- Generate creative, kid-friendly lunch recipes that are EASY for busy parents to make\n"
        "- Modify existing recipes based on user preferences (be brief!)\n"
        "- Suggest recipes based on available ingredients (if provided)\n"
        "- Provide practical cooking tips ONLY when asked",
        "When modifying recipes:\n"
        "- ALWAYS return the COMPLETE updated recipe in JSON format - never return partial recipes\n"
        "- Make the change requested (e.g., \"turkey to chicken\" = replace turkey with chicken)\n"
        "- For dietary changes (vegan, vegetarian, gluten-free, dairy-free), replace ALL non-compliant ingredients\n"
        "- Update instructions to reflect ingredient changes and adjust cooking times if needed\n"
        "- Keep all other aspects the same unless specifically asked to change them\n"
        "- Your chat message should be VERY SHORT - just acknowledge the change",
        f"When generating recipes, always return them in this JSON format:\n{RECIPE_JSON_FORMAT}",
    ]
    if current_recipe is not None:
        body = json.dumps(current_recipe.to_document(), indent=2, ensure_ascii=False)
        sections.append(
            "CURRENT RECIPE TO MODIFY (IMPORTANT - USE THIS AS THE BASE):\n"
            f"{body}\n\n"
            "When modifying this recipe:\n"
            "- Preserve the recipe structure (name, description, emoji, time, servings, difficulty, rating, tags)\n"
            "- Update ingredients list completely - replace all non-compliant items\n"
            "- Keep presentation tips relevant and adjust nutrition info if significant changes are made\n"
            "- ALWAYS return the complete recipe with ALL fields filled in"
        )
    if available_ingredients:
        sections.append(f"Available ingredients: {', '.join(available_ingredients)}")
    if removed_ingredients:
        sections.append(
            f"The user does NOT have these ingredients: {', '.join(removed_ingredients)}. "
            "Suggest substitutes and do not use them in the recipe."
        )
    block = preferences_block(preferences, equipment_fallback="substitute")
    if block:
        sections.append(block)
    sections.append(
        "Focus on making recipes that are:\n"
        "1. Quick to prepare (15-25 minutes max)\n"
        "2. Easy to follow (clear steps, no complex techniques)\n"
        "3. Kid-approved (fun shapes, colors, flavors)\n"
        "4. Parent-friendly (minimal cleanup, can multitask)\n"
        "5. Realistic for busy families (common ingredients, simple tools)"
    )
    return "\n\n".join(sections)


def build_search_system_prompt(
    query: str,
    available_ingredients: Sequence[str] = (),
    preferences: Optional[UserPreferences] = None,
) -> str:
    requirements = [
        "- Keep total time under 30 minutes (prep + cook)",
        "- Use simple, common ingredients found in most kitchens",
        "- Include specific times in instructions when cooking/heating (e.g., \"cook for 3-4 minutes\")",
        "- Make instructions clear enough to follow while multitasking",
        "- Keep difficulty at \"Easy\" or \"Medium\" - avoid complex techniques",
        "- Make it fun for kids but realistic for busy parents",
    ]
    if available_ingredients:
        requirements.append(f"- Prioritize using these available ingredients: {', '.join(available_ingredients)}")
    parts = [
        "You are a recipe generator for Smart Lunch app - helping busy parents create fun, healthy, "
        "kid-friendly lunch recipes.",
        "Always return ONLY valid JSON in this exact format (no markdown, no code blocks, just pure JSON):\n"
        + RECIPE_JSON_FORMAT,
        "CRITICAL REQUIREMENTS FOR PARENTS:\n" + "\n".join(requirements),
    ]
    block = preferences_block(preferences)
    if block:
        parts.append(block)
    parts.append(f'Generate a recipe based on: "{query}"')
    return "\n\n".join(parts)


def build_detail_prompts(recipe: Recipe, preferences: Optional[UserPreferences] = None) -> Tuple[str, str]:
    """(system, user) prompts that fill in a lightweight recipe."""
    system = (
        "You are an expert recipe AI. Generate a complete, detailed recipe based on the recipe name provided.\n\n"
        f"{_hard_constraints_sentence(preferences)}\n\n"
        "Requirements:\n"
        "- Provide detailed, beginner-friendly step-by-step instructions\n"
        "- Include specific ingredient amounts\n"
        "- Make it quick and practical (15-30 minutes)\n"
        "- Ensure it's kid-friendly if cooking for families\n"
        "- Consider dietary restrictions and allergies strictly\n"
        "- Do NOT hallucinate ingredients - use real alternatives\n\n"
        "For the recipe, provide:\n"
        f"- name: {recipe.name}\n"
        "- description, emoji, time, servings, difficulty (\"Easy\", \"Medium\" or \"Hard\"), rating (4.0-5.0)\n"
        "- tags: 3-5 relevant tags\n"
        "- ingredients: array of {name, amount}\n"
        "- instructions: array of {step, tip}\n"
        "- presentationTips: 2-3 tips\n"
        "- nutrition: {calories, protein, carbs, fat}\n\n"
        "Return ONLY a valid JSON object with the complete recipe."
    )
    hints = [
        f"Description: {recipe.description}" if recipe.description else "",
        f"Time: {recipe.time}" if recipe.time else "",
        f"Servings: {recipe.servings}" if recipe.servings else "",
        f"Difficulty: {recipe.difficulty}",
        f"Tags: {', '.join(recipe.tags)}" if recipe.tags else "",
    ]
    user = (
        f'Generate a complete recipe for: "{recipe.name}"\n\n'
        + "\n".join(h for h in hints if h)
        + "\n\nCreate a complete recipe with all ingredients, detailed instructions, and presentation tips."
    )
    return system, user


def build_meal_plan_prompts(
    duration: str,
    start: dt.date,
    dates: Sequence[dt.date],
    meal_types: Sequence[str],
    preferences: Optional[UserPreferences] = None,
) -> Tuple[str, str]:
    total = len(dates) * len(meal_types)
    query = ""
    if preferences is not None and preferences.meal_plan_query:
        query = (
            f'User\'s specific request: "{preferences.meal_plan_query}". '
            "Please incorporate this into the meal plan."
        )
    system = (
        "You are an expert meal planning AI that creates personalized meal plans. "
        f"Generate a {duration} meal plan with {total} recipes total.\n\n"
        f"{query}\n\n{_hard_constraints_sentence(preferences)}\n\n"
        "Requirements:\n"
        "- Create unique, varied recipes appropriate for each meal type\n"
        "- Consider dietary restrictions and allergies strictly\n"
        "- Make recipes quick and practical (15-30 minutes)\n\n"
        "For each recipe provide ONLY: name, description, emoji, time, servings, difficulty, rating, tags.\n"
        "DO NOT include ingredients, instructions, or nutrition - these are generated later.\n\n"
        "Return ONLY a valid JSON object with an items array."
    )
    user = (
        f"Create a {duration} meal plan starting {start.isoformat()}. Generate {total} recipes:\n"
        f"- {len(dates)} days\n"
        f"- {len(meal_types)} meals per day ({', '.join(meal_types)})\n\n"
        'Return a JSON object: {"items": [{"date": "YYYY-MM-DD", "mealType": "breakfast" | "lunch" | "dinner", '
        '"recipe": { ... }}]}\n\n'
        "IMPORTANT: escape all special characters in strings, use double quotes, no text outside the JSON object."
    )
    return system, user


def build_image_prompt(recipe: Recipe) -> str:
    main = ", ".join(i.name for i in recipe.ingredients[:5])
    presentation = recipe.presentation_tips[0] if recipe.presentation_tips else "beautifully arranged on a plate"
    return (
        f"Professional food photography of {recipe.name}, a delicious cooked and prepared dish. "
        f"The final prepared meal showing {main} as they appear when cooked and ready to eat. "
        f"{presentation}. Realistic food photography, natural lighting, appetizing colors, kid-friendly "
        "lunch presentation, on a clean white plate or colorful bento box, overhead or 45-degree angle view, "
        "sharp focus, photorealistic, no illustrations or drawings."
    )
