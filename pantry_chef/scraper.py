from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterator, List

import requests
from bs4 import BeautifulSoup

from pantry_chef.ai import AIClient
from pantry_chef.config import PAGE_TEXT_LIMIT, SCRAPE_TIMEOUT_SECONDS
from pantry_chef.errors import ExtractionError, ExtractionFailure

log = logging.getLogger("pantry_chef.scraper")

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

INGREDIENTS_PROMPT = (
    "From the following website text, extract only the cooking ingredients. "
    "List them in a single line, separated by commas. "
    "Ignore all other text like instructions, titles, and comments.\n\n"
    "Website Text:\n{text}"
)


def fetch_page(url: str, timeout: float = SCRAPE_TIMEOUT_SECONDS) -> str:
    headers = {"User-Agent": USER_AGENT}
    r = requests.get(url, headers=headers, timeout=timeout)
    r.raise_for_status()
    return r.text


def _collapse(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip()


def _clean_lines(lines: List[Any]) -> List[str]:
    out = []
    for line in lines or []:
        if not isinstance(line, str):
            continue
        s = _collapse(line)
        if s:
            out.append(s)
    return out


# ---------------- JSON-LD ----------------


def _iter_jsonld_blocks(soup: BeautifulSoup) -> Iterator[Any]:
    for sc in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = sc.string or sc.get_text()
        if not raw or not raw.strip():
            continue
        try:
            yield json.loads(raw)
        except ValueError:
            log.debug("Skipping unparsable JSON-LD block")


def _iter_candidates(data: Any) -> Iterator[Dict[str, Any]]:
    # A block is one item, an @graph of items, or a bare list of items
    if isinstance(data, list):
        for item in data:
            yield from _iter_candidates(item)
    elif isinstance(data, dict):
        graph = data.get("@graph")
        if isinstance(graph, list):
            yield from _iter_candidates(graph)
        else:
            yield data


def _is_recipe(item: Dict[str, Any]) -> bool:
    t = item.get("@type")
    return t == "Recipe" or (isinstance(t, list) and "Recipe" in t)


def _recipe_ingredients(item: Dict[str, Any]) -> List[str]:
    raw = item.get("recipeIngredient")
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    return _clean_lines(raw)


def extract_structured_ingredients(html: str) -> List[str]:
    """
    Ingredients of the first JSON-LD Recipe (document order) that has any.

    Everything is lazy, so blocks after the first match are never parsed.
    An empty list means the page has no usable structured data.
    """
    soup = BeautifulSoup(html, "lxml")
    recipes = (
        item
        for block in _iter_jsonld_blocks(soup)
        for item in _iter_candidates(block)
        if _is_recipe(item)
    )
    found = (ings for ings in map(_recipe_ingredients, recipes) if ings)
    return next(found, [])


# ---------------- AI fallback ----------------


def page_text(html: str, limit: int = PAGE_TEXT_LIMIT) -> str:
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style"]):
        tag.decompose()
    root = soup.body or soup
    return _collapse(root.get_text(" "))[:limit]


def extract_ingredients_with_ai(html: str, ai: AIClient, limit: int = PAGE_TEXT_LIMIT) -> List[str]:
    text = page_text(html, limit)
    if not text:
        raise ExtractionError(
            ExtractionFailure.EMPTY_PAGE,
            "Could not extract any text from the provided URL.",
        )

    reply = ai.complete(INGREDIENTS_PROMPT.format(text=text))
    ingredients = [t.strip() for t in (reply or "").split(",") if t.strip()]
    if not ingredients:
        raise ExtractionError(
            ExtractionFailure.NO_INGREDIENTS_FOUND,
            "AI could not identify ingredients from the website content.",
        )
    return ingredients
