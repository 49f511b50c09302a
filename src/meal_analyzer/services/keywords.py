"""Keyword lookup analyzer backed by a small packaged food table."""

import json
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from difflib import SequenceMatcher
from pathlib import Path
from types import MappingProxyType

from meal_analyzer.domain.analysis import (
    AnalysisDebug,
    AnalysisResult,
    AnalyzedItem,
    BasisKind,
    NutrientTuple,
)
from meal_analyzer.domain.errors import UnsupportedInputError
from meal_analyzer.domain.food import FoodSource
from meal_analyzer.services.health import compute_health_score
from meal_analyzer.services.sanity import check_sanity, is_suspicious
from meal_analyzer.services.scaling import scale_nutrients, sum_totals

MAX_ITEMS = 3
FUZZY_THRESHOLD = 0.6
WORD_MATCH_SCORE = 1.0
SUBSTRING_MATCH_SCORE = 0.8

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_DATA_DIR = Path(__file__).resolve().parents[1] / "data"

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeywordFood:
    """A table entry with per-100 g values and a typical serving."""

    label: str
    keywords: tuple[str, ...]
    typical_grams: float
    per_100g: NutrientTuple


@dataclass(frozen=True)
class KeywordTable:
    """Immutable keyword index over ``KeywordFood`` entries."""

    foods: tuple[KeywordFood, ...]
    index: Mapping[str, tuple[KeywordFood, ...]]

    @classmethod
    def from_foods(cls, foods: Sequence[KeywordFood]) -> "KeywordTable":
        index: dict[str, list[KeywordFood]] = {}
        for food in foods:
            for keyword in food.keywords:
                index.setdefault(keyword, []).append(food)
        return cls(
            foods=tuple(foods),
            index=MappingProxyType(
                {keyword: tuple(entries) for keyword, entries in index.items()}
            ),
        )

    def lookup(self, description: str) -> list[tuple[KeywordFood, float]]:
        """Return up to ``MAX_ITEMS`` foods with a match score.

        Exact word hits win. Only when there are none are keywords searched
        as substrings, and only when that fails too are words compared
        fuzzily against keywords.
        """
        cleaned = clean_description(description)
        if not cleaned:
            return []
        words = cleaned.split(" ")

        hits = self._collect(
            (keyword, WORD_MATCH_SCORE) for keyword in words if keyword in self.index
        )
        if not hits:
            hits = self._collect(
                (keyword, SUBSTRING_MATCH_SCORE)
                for keyword in self.index
                if keyword in cleaned
            )
        if not hits:
            hits = self._collect(
                (keyword, ratio)
                for keyword in self.index
                for word in words
                if (ratio := SequenceMatcher(None, word, keyword).ratio())
                > FUZZY_THRESHOLD
            )
        return hits[:MAX_ITEMS]

    def _collect(self, matches) -> list[tuple[KeywordFood, float]]:
        seen: set[str] = set()
        hits: list[tuple[KeywordFood, float]] = []
        for keyword, score in matches:
            for food in self.index[keyword]:
                if food.label in seen:
                    continue
                seen.add(food.label)
                hits.append((food, round(score, 2)))
        return hits


def clean_description(description: str) -> str:
    """Lowercase, drop punctuation and collapse whitespace."""
    lowered = _NON_WORD.sub(" ", description.lower())
    return _WHITESPACE.sub(" ", lowered).strip()


def load_keyword_table(resource: str = "food_keywords.json") -> KeywordTable:
    """Load the packaged keyword table."""
    path = _DATA_DIR / resource
    entries = json.loads(path.read_text(encoding="utf-8"))
    foods = [_parse_entry(entry) for entry in entries]
    _logger.info("Loaded %s foods into keyword table", len(foods))
    return KeywordTable.from_foods(foods)


def _parse_entry(entry: dict[str, object]) -> KeywordFood:
    per_100g = entry.get("per_100g")
    if not isinstance(per_100g, dict):
        label = entry.get("label")
        raise ValueError(f"Keyword entry {label!r} has no per_100g values")
    keywords = entry.get("keywords") or []
    return KeywordFood(
        label=str(entry["label"]),
        keywords=tuple(str(keyword).lower() for keyword in keywords),
        typical_grams=float(entry.get("typical_grams") or 100),
        per_100g=NutrientTuple.model_validate(per_100g),
    )


@dataclass
class KeywordAnalyzer:
    """Text-only analyzer that needs no external services."""

    table: KeywordTable

    async def analyze_image(
        self, image_bytes: bytes | None = None, image_url: str | None = None
    ) -> AnalysisResult:
        raise UnsupportedInputError("Keyword analyzer does not support image input")

    async def analyze_text(self, description: str) -> AnalysisResult:
        """Match a description against the keyword table."""
        items = [
            AnalyzedItem(
                name=food.label,
                label=food.label,
                portion_grams=food.typical_grams,
                nutrients=scale_nutrients(food.per_100g, food.typical_grams),
                source=FoodSource.KEYWORD_TABLE,
                basis_used=BasisKind.COMPOSITION_PER_100G,
                match_score=score,
            )
            for food, score in self.table.lookup(description)
        ]
        timestamp = datetime.now(tz=UTC).isoformat()
        totals = sum_totals(items)
        if not items:
            _logger.info("No keyword matches for %r", description)
            return AnalysisResult(
                items=[],
                totals=totals,
                debug=AnalysisDebug(timestamp=timestamp, outcome="nothing_detected"),
            )
        sanity = check_sanity(items, totals)
        return AnalysisResult(
            items=items,
            totals=totals,
            health_score=compute_health_score(totals, [item.name for item in items]),
            debug=AnalysisDebug(sanity=sanity, timestamp=timestamp),
            is_suspicious=is_suspicious(sanity),
        )
