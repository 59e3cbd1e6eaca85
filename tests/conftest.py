import json
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from pantry_chef.app import create_app
from pantry_chef.models import ensure_schema
from pantry_chef.recipe_store import RecipeStore


class FakeAI:
    """Stands in for AIClient: returns scripted replies in order and records prompts."""

    def __init__(self):
        self.replies = []
        self.prompts = []

    def complete(self, prompt, system=None):
        self.prompts.append(prompt)
        if not self.replies:
            raise AssertionError("AI called more times than scripted")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeFetcher:
    def __init__(self):
        self.pages = {}
        self.urls = []

    def __call__(self, url):
        self.urls.append(url)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return page


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return RecipeStore(engine)


@pytest.fixture
def ai():
    return FakeAI()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def client(engine, ai, fetcher):
    app = create_app(engine=engine, ai=ai, fetch=fetcher)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def recipe_payload() -> Dict[str, Any]:
    return {
        "recipe": {
            "title": "Tomato Basil Pasta",
            "description": "A bright weeknight pasta.",
            "prepTime": "10 minutes",
            "cookTime": "15 minutes",
            "servings": "2 servings",
            "ingredients": ["200g pasta", "3 tomatoes", "1 handful basil"],
            "instructions": ["Boil the pasta.", "Toss with tomatoes and basil."],
        },
        "nutrition": {
            "calories": {"value": 520, "unit": "kcal"},
            "protein": {"value": 16, "unit": "g"},
            "carbs": {"value": 92, "unit": "g"},
            "fat": {"value": 9, "unit": "g"},
        },
    }


@pytest.fixture
def recipe_reply(recipe_payload) -> str:
    # Shaped the way models tend to answer: fenced and pretty-printed
    return "```json\n" + json.dumps(recipe_payload, indent=2) + "\n```"
