from __future__ import annotations

import logging
from typing import Callable, List, Tuple

from pantry_chef.ai import AIClient
from pantry_chef.config import PAGE_TEXT_LIMIT
from pantry_chef.errors import ValidationError
from pantry_chef.recipe_store import NewRecipe, RecipeStore
from pantry_chef.schemas import RecipeConstraints, RecipeOut
from pantry_chef.scraper import extract_ingredients_with_ai, extract_structured_ingredients, fetch_page
from pantry_chef.signature import recipe_signature
from pantry_chef.synthesizer import RecipeSynthesizer

log = logging.getLogger("pantry_chef.pipeline")


class RecipePipeline:
    def __init__(
        self,
        store: RecipeStore,
        ai: AIClient,
        synthesizer: RecipeSynthesizer,
        fetch: Callable[[str], str] = fetch_page,
        page_text_limit: int = PAGE_TEXT_LIMIT,
    ) -> None:
        self.store = store
        self.ai = ai
        self.synthesizer = synthesizer
        self.fetch = fetch
        self.page_text_limit = page_text_limit

    def generate(self, ingredients: List[str], constraints: RecipeConstraints) -> Tuple[RecipeOut, bool]:
        """Return (record, cached). A cached record has had its popularity bumped."""
        if not ingredients:
            raise ValidationError("Ingredients are required and must be an array.")

        signature = recipe_signature(ingredients, constraints)
        existing = self.store.lookup(signature)
        if existing is not None:
            log.info("Cache hit %s -> recipe id=%s", signature[:12], existing.id)
            return self.store.touch(existing), True

        # Lookup then insert is not atomic: concurrent misses may both insert
        log.info("Cache miss %s, generating recipe", signature[:12])
        result = self.synthesizer.synthesize(ingredients, constraints)
        record = self.store.insert(
            NewRecipe(
                ingredients=list(ingredients),
                constraints=constraints,
                signature=signature,
                recipe=result.recipe,
                nutrition=result.nutrition,
            )
        )
        return record, False

    def scrape(self, url: str) -> List[str]:
        log.info("Scraping URL: %s", url)
        html = self.fetch(url)

        ingredients = extract_structured_ingredients(html)
        if ingredients:
            log.info("Extracted %d ingredients from structured JSON-LD data", len(ingredients))
            return ingredients

        log.info("Structured data not found, falling back to AI text extraction")
        return extract_ingredients_with_ai(html, self.ai, self.page_text_limit)
