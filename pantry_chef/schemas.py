from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, StrictBool
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # snake_case in Python, camelCase on the wire
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RecipeConstraints(CamelModel):
    # Any JSON value: clients send "30 minutes", 30 or ["nuts", "shellfish"] alike
    time: Any = None
    diet: Any = None
    allergies: Any = None
    cooking_style: Any = None


class GetRecipeRequest(CamelModel):
    # Optional so a missing list is answered with our own 400, not a 422
    ingredients: Optional[List[str]] = None
    time: Any = None
    diet: Any = None
    allergies: Any = None
    cooking_style: Any = None

    def constraints(self) -> RecipeConstraints:
        return RecipeConstraints(
            time=self.time,
            diet=self.diet,
            allergies=self.allergies,
            cooking_style=self.cooking_style,
        )


class RecipeOut(CamelModel):
    id: int
    ingredients: List[str]
    # {title, description, prepTime, cookTime, servings, ingredients, instructions}
    recipe: Dict[str, Any]
    # nutrient name -> {value, unit}
    nutrition: Dict[str, Any]
    constraints: RecipeConstraints
    created_at: datetime
    is_favourite: bool = False
    generation_count: int = 1
    signature: str


class ScrapeRequest(CamelModel):
    url: Optional[str] = None


class ScrapeOut(CamelModel):
    ingredients: List[str] = []


class FavouriteUpdate(CamelModel):
    is_favourite: Optional[StrictBool] = None


class FavouriteOut(CamelModel):
    success: bool
    message: str
