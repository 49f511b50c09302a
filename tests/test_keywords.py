"""Tests for the keyword lookup analyzer."""

import asyncio

import pytest

from meal_analyzer.domain.analysis import BasisKind
from meal_analyzer.domain.errors import UnsupportedInputError
from meal_analyzer.domain.food import FoodSource
from meal_analyzer.services.keywords import (
    KeywordAnalyzer,
    clean_description,
    load_keyword_table,
)


@pytest.fixture(scope="module")
def table():
    return load_keyword_table()


def test_clean_description() -> None:
    assert clean_description("  Chicken,   RICE & beans! ") == "chicken rice beans"


def test_word_hits_score_one(table) -> None:
    hits = table.lookup("Chicken and rice")

    assert [(food.label, score) for food, score in hits] == [
        ("Chicken Breast", 1.0),
        ("White Rice", 1.0),
    ]


def test_duplicate_keywords_map_to_one_food(table) -> None:
    hits = table.lookup("chicken breast")

    assert [food.label for food, _ in hits] == ["Chicken Breast"]


def test_substring_hit_when_no_word_matches(table) -> None:
    hits = table.lookup("bananasplit")

    assert [(food.label, score) for food, score in hits] == [("Banana", 0.8)]


def test_fuzzy_hit_for_misspelling(table) -> None:
    scores = {food.label: score for food, score in table.lookup("brocoli")}

    assert scores["Broccoli"] == pytest.approx(0.93)


def test_lookup_caps_items(table) -> None:
    hits = table.lookup("chicken rice salmon egg")

    assert [food.label for food, _ in hits] == [
        "Chicken Breast",
        "White Rice",
        "Salmon",
    ]


def test_lookup_without_words(table) -> None:
    assert table.lookup("!!!") == []


def test_index_is_read_only(table) -> None:
    with pytest.raises(TypeError):
        table.index["soup"] = ()


def test_analyzer_scales_typical_portion(table) -> None:
    analyzer = KeywordAnalyzer(table)

    result = asyncio.run(analyzer.analyze_text("chicken and rice"))

    chicken, rice = result.items
    assert chicken.portion_grams == 120
    assert chicken.nutrients.calories == pytest.approx(198)
    assert chicken.nutrients.protein == pytest.approx(37.2)
    assert chicken.source == FoodSource.KEYWORD_TABLE
    assert chicken.basis_used == BasisKind.COMPOSITION_PER_100G
    assert rice.nutrients.calories == pytest.approx(195)
    assert result.totals.calories == pytest.approx(393)
    assert result.totals.portion_grams == pytest.approx(270)
    assert result.health_score is not None
    assert result.debug is not None
    assert result.debug.outcome == "analyzed"


def test_analyzer_reports_nothing_detected(table) -> None:
    analyzer = KeywordAnalyzer(table)

    result = asyncio.run(analyzer.analyze_text("qqq"))

    assert result.items == []
    assert result.health_score is None
    assert result.debug is not None
    assert result.debug.outcome == "nothing_detected"


def test_analyzer_rejects_images(table) -> None:
    analyzer = KeywordAnalyzer(table)

    with pytest.raises(UnsupportedInputError):
        asyncio.run(analyzer.analyze_image(image_bytes=b"\xff\xd8\xff"))
