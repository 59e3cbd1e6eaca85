import json
from unittest.mock import MagicMock, patch

import pytest

from pantry_chef.errors import ExtractionError, ExtractionFailure
from pantry_chef.scraper import (
    USER_AGENT,
    extract_ingredients_with_ai,
    extract_structured_ingredients,
    fetch_page,
    page_text,
)


def ld(data) -> str:
    raw = data if isinstance(data, str) else json.dumps(data)
    return f'<script type="application/ld+json">{raw}</script>'


def page(*head, body="") -> str:
    return f"<html><head>{''.join(head)}</head><body>{body}</body></html>"


def test_recipe_ingredients_are_whitespace_normalized():
    html = page(ld({"@type": "Recipe", "recipeIngredient": ["1 cup flour", "  2  eggs "]}))
    assert extract_structured_ingredients(html) == ["1 cup flour", "2 eggs"]


def test_graph_documents_are_scanned():
    html = page(
        ld(
            {
                "@context": "https://schema.org",
                "@graph": [
                    {"@type": "WebPage", "name": "Pancakes"},
                    {"@type": "Recipe", "recipeIngredient": ["milk", "flour"]},
                ],
            }
        )
    )
    assert extract_structured_ingredients(html) == ["milk", "flour"]


def test_type_may_be_a_list():
    html = page(ld({"@type": ["Recipe", "NewsArticle"], "recipeIngredient": ["salt"]}))
    assert extract_structured_ingredients(html) == ["salt"]


def test_top_level_list_block():
    html = page(ld([{"@type": "Organization"}, {"@type": "Recipe", "recipeIngredient": ["oil"]}]))
    assert extract_structured_ingredients(html) == ["oil"]


def test_unparsable_blocks_are_skipped():
    html = page(
        ld("{not json at all"),
        ld({"@type": "Recipe", "recipeIngredient": ["butter"]}),
    )
    assert extract_structured_ingredients(html) == ["butter"]


def test_first_matching_recipe_wins():
    html = page(
        ld({"@type": "Recipe", "recipeIngredient": ["first"]}),
        ld({"@type": "Recipe", "recipeIngredient": ["second"]}),
    )
    assert extract_structured_ingredients(html) == ["first"]


def test_recipe_without_ingredients_does_not_stop_the_scan():
    html = page(
        ld({"@type": "Recipe", "name": "Teaser", "recipeIngredient": []}),
        ld({"@type": "Recipe", "recipeIngredient": ["  ", "sugar"]}),
    )
    assert extract_structured_ingredients(html) == ["sugar"]


def test_single_string_ingredient():
    html = page(ld({"@type": "Recipe", "recipeIngredient": "1 lemon"}))
    assert extract_structured_ingredients(html) == ["1 lemon"]


def test_non_recipe_structured_data_yields_nothing():
    html = page(ld({"@type": "Article", "recipeIngredient": ["ignored"]}), body="<p>hi</p>")
    assert extract_structured_ingredients(html) == []


def test_page_text_drops_scripts_and_styles():
    html = page(
        "<style>body { color: red; }</style>",
        body="<script>var x = 1;</script><h1>Soup</h1>\n\n<p>Add   water.</p>",
    )
    assert page_text(html) == "Soup Add water."


def test_page_text_is_truncated():
    html = page(body="<p>" + "word " * 5000 + "</p>")
    assert len(page_text(html, limit=100)) == 100
    assert len(page_text(html)) == 15000


def test_ai_fallback_splits_comma_list(ai):
    ai.replies.append("eggs, flour")
    html = page(body="<p>Mix 2 eggs, 1 cup flour and bake.</p>")

    assert extract_ingredients_with_ai(html, ai) == ["eggs", "flour"]
    assert len(ai.prompts) == 1
    assert "Mix 2 eggs, 1 cup flour and bake." in ai.prompts[0]


def test_ai_fallback_discards_empty_tokens(ai):
    ai.replies.append(" eggs ,, flour , ")
    html = page(body="<p>Some recipe text</p>")
    assert extract_ingredients_with_ai(html, ai) == ["eggs", "flour"]


def test_empty_page_fails_without_calling_ai(ai):
    html = page("<script>var onlyCode = true;</script>", body="   ")

    with pytest.raises(ExtractionError) as exc:
        extract_ingredients_with_ai(html, ai)

    assert exc.value.kind is ExtractionFailure.EMPTY_PAGE
    assert exc.value.status_code == 400
    assert ai.prompts == []


@pytest.mark.parametrize("reply", ["", "  ", " , , "])
def test_ai_without_usable_text_fails(ai, reply):
    ai.replies.append(reply)
    html = page(body="<p>A page about nothing edible.</p>")

    with pytest.raises(ExtractionError) as exc:
        extract_ingredients_with_ai(html, ai)

    assert exc.value.kind is ExtractionFailure.NO_INGREDIENTS_FOUND
    assert exc.value.status_code == 500


def test_fetch_page_sends_browser_user_agent():
    response = MagicMock(text="<html></html>")
    with patch("pantry_chef.scraper.requests.get", return_value=response) as get:
        assert fetch_page("https://example.com/r", timeout=5) == "<html></html>"

    get.assert_called_once_with(
        "https://example.com/r", headers={"User-Agent": USER_AGENT}, timeout=5
    )
    response.raise_for_status.assert_called_once()
