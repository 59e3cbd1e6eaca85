from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List

from pantry_chef.ai import AIClient
from pantry_chef.errors import SynthesisError, SynthesisFailure
from pantry_chef.schemas import RecipeConstraints

log = logging.getLogger("pantry_chef.synthesizer")

JSON_ONLY = "Return ONLY valid JSON. No markdown, no extra text."

RECIPE_SHAPE = """Analyze the following request and return a valid JSON object with two top-level keys: "recipe" and "nutrition".
- The "nutrition" value must be a JSON object with keys for "calories", "protein", "carbs", and "fat". It may also include "vitaminC", "iron" and "calcium". Each key's value must be an object with "value" (a number) and "unit" (a string).
- The "recipe" value must ALSO BE A JSON OBJECT with the following keys:
  - "title": A string for the recipe title.
  - "description": A short, engaging one-sentence string describing the dish.
  - "prepTime": A string for preparation time (e.g., "15 minutes").
  - "cookTime": A string for cooking time (e.g., "30 minutes").
  - "servings": A string for the number of servings (e.g., "4 servings").
  - "ingredients": An array of strings, with each string being one ingredient and its quantity.
  - "instructions": An array of strings, with each string being one step in the recipe.
"""

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


@dataclass(frozen=True)
class SynthesizedRecipe:
    recipe: Dict[str, Any]
    nutrition: Dict[str, Any]


def _as_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def build_recipe_prompt(ingredients: List[str], constraints: RecipeConstraints) -> str:
    lines = [RECIPE_SHAPE, "Recipe Request Details:", f"- Ingredients: {', '.join(ingredients)}"]
    # "Any" and "None" are the client's "no preference" values
    if constraints.time and constraints.time != "Any":
        lines.append(f"- Max Cooking Time: {_as_text(constraints.time)}")
    if constraints.diet and constraints.diet != "None":
        lines.append(f"- Dietary Preference: {_as_text(constraints.diet)}")
    if constraints.allergies:
        lines.append(f"- Allergies to avoid: {_as_text(constraints.allergies)}.")
    if constraints.cooking_style:
        lines.append(f"- The recipe should be in the style of: {_as_text(constraints.cooking_style)}.")
    return "\n".join(lines) + "\n"


def build_repair_prompt(broken: str) -> str:
    return (
        "The following text was supposed to be a single valid JSON object but it "
        "could not be parsed. Fix it and return only the corrected JSON object, "
        "with no explanation and no Markdown.\n\n"
        f"Broken JSON:\n{broken}"
    )


def clean_response(text: str) -> str:
    text = _FENCE_RE.sub("", text or "").strip()
    return text.replace("\n", "").replace("\r", "")


class RecipeSynthesizer:
    """
    Generates a recipe + nutrition object with the AI client.

    Parsing runs as a fixed two-step machine: the first reply is parsed; if
    that fails, the broken text goes back to the model once for repair; if
    the repaired reply fails too, the error is fatal. There is no third try.
    """

    def __init__(self, ai: AIClient) -> None:
        self._ai = ai

    def synthesize(self, ingredients: List[str], constraints: RecipeConstraints) -> SynthesizedRecipe:
        raw = self._ai.complete(build_recipe_prompt(ingredients, constraints), system=JSON_ONLY)
        data = self._parse_with_repair(raw)

        recipe = data.get("recipe") if isinstance(data, dict) else None
        nutrition = data.get("nutrition") if isinstance(data, dict) else None
        if not isinstance(recipe, dict) or not isinstance(nutrition, dict):
            raise SynthesisError(
                SynthesisFailure.INCOMPLETE_RESPONSE,
                "AI response was missing structured recipe or nutrition data.",
            )
        return SynthesizedRecipe(recipe=recipe, nutrition=nutrition)

    def _parse_with_repair(self, raw: str) -> Any:
        text = clean_response(raw)
        try:
            return json.loads(text)
        except ValueError as e:
            log.warning("Recipe JSON did not parse (%s), asking the model to repair it", e)

        repaired = clean_response(self._ai.complete(build_repair_prompt(text), system=JSON_ONLY))
        try:
            return json.loads(repaired)
        except ValueError as e:
            raise SynthesisError(
                SynthesisFailure.MALFORMED_JSON,
                f"AI response was not valid JSON after a repair attempt: {e}",
            ) from e
