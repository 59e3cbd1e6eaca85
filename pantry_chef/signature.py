from __future__ import annotations

import hashlib
import json
from typing import List

from pantry_chef.schemas import RecipeConstraints


def recipe_signature(ingredients: List[str], constraints: RecipeConstraints) -> str:
    """
    Content address of a recipe request.

    Ingredient order does not matter, duplicates do. Constraint values are
    JSON-encoded so an absent value (null) never collides with "" or "null".
    """
    payload = [
        sorted(ingredients),
        [
            constraints.time,
            constraints.diet,
            constraints.allergies,
            constraints.cooking_style,
        ],
    ]
    canonical = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
