"""End-to-end meal analysis: extract, match, scale, aggregate, score."""

import asyncio
import hashlib
import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime

from meal_analyzer.domain.analysis import (
    AnalysisDebug,
    AnalysisResult,
    AnalyzedItem,
    ComponentTrace,
)
from meal_analyzer.domain.errors import ExtractionError
from meal_analyzer.domain.food import FoodRecord
from meal_analyzer.domain.vision import FoodComponent
from meal_analyzer.services.basis import resolve_basis
from meal_analyzer.services.cache import Cache
from meal_analyzer.services.health import compute_health_score
from meal_analyzer.services.matching import FoodMatcher, FoodRepository
from meal_analyzer.services.nutrition import NutritionService
from meal_analyzer.services.portions import select_portion
from meal_analyzer.services.sanity import check_sanity, is_suspicious
from meal_analyzer.services.scaling import scale_nutrients, sum_totals
from meal_analyzer.services.text import content_key, normalize_food_name
from meal_analyzer.services.vision import VisionService

TEXT_DEFAULT_PORTION_GRAMS = 100.0
TEXT_DEFAULT_CONFIDENCE = 0.7
TRANSIENT_TRACE_TYPES = frozenset({"error", "rate_limited"})

_SPLIT_PATTERN = re.compile(r"[,;\n]")

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComponentResolution:
    """Outcome for one component: an item when matched, always a trace."""

    trace: ComponentTrace
    item: AnalyzedItem | None = None


@dataclass
class AnalysisService:
    """Hybrid pipeline analyzer backed by the nutrition database."""

    vision_service: VisionService
    matcher: FoodMatcher
    repository: FoodRepository
    nutrition_service: NutritionService
    cache: Cache
    cache_ttl_seconds: int = 86400
    match_limit: int = 5
    match_min_score: float = 0.7
    call_timeout_seconds: float = 10.0

    async def analyze_image(
        self, image_bytes: bytes | None = None, image_url: str | None = None
    ) -> AnalysisResult:
        """Analyze a meal photo given as raw bytes or a URL."""
        if image_bytes:
            cache_key = f"analysis:image:{hashlib.sha256(image_bytes).hexdigest()}"
        elif image_url:
            digest = hashlib.sha256(image_url.encode("utf-8")).hexdigest()
            cache_key = f"analysis:image:{digest}"
        else:
            raise ExtractionError("Either image bytes or an image URL must be provided")

        cached = await self._cache_get(cache_key)
        if cached is not None:
            _logger.debug("Cache hit for image analysis %s", cache_key)
            return cached

        components = await self.vision_service.extract_components(
            image_bytes=image_bytes, image_url=image_url
        )
        return await self._analyze_components(
            components, cache_key, model=self.vision_service.model
        )

    async def analyze_text(self, description: str) -> AnalysisResult:
        """Analyze a free-text meal description."""
        digest = hashlib.sha256(content_key(description).encode("utf-8")).hexdigest()
        cache_key = f"analysis:text:{digest}"
        cached = await self._cache_get(cache_key)
        if cached is not None:
            _logger.debug("Cache hit for text analysis %s", cache_key)
            return cached

        components = split_description(description)
        return await self._analyze_components(components, cache_key, model=None)

    async def _analyze_components(
        self, components: list[FoodComponent], cache_key: str, model: str | None
    ) -> AnalysisResult:
        timestamp = datetime.now(tz=UTC).isoformat()
        if not components:
            _logger.info("Nothing detected for %s", cache_key)
            return AnalysisResult(
                items=[],
                totals=sum_totals([]),
                health_score=None,
                debug=AnalysisDebug(
                    timestamp=timestamp, model=model, outcome="nothing_detected"
                ),
            )

        resolutions = await asyncio.gather(
            *(self._resolve_component(component) for component in components)
        )
        items = [resolution.item for resolution in resolutions if resolution.item]
        totals = sum_totals(items)
        health_score = compute_health_score(
            totals, [_score_label(item) for item in items]
        )
        sanity = check_sanity(items, totals)
        result = AnalysisResult(
            items=items,
            totals=totals,
            health_score=health_score,
            debug=AnalysisDebug(
                components=[resolution.trace for resolution in resolutions],
                sanity=sanity,
                timestamp=timestamp,
                model=model,
            ),
            is_suspicious=is_suspicious(sanity),
        )
        failed = [
            resolution.trace.component_name
            for resolution in resolutions
            if resolution.trace.type in TRANSIENT_TRACE_TYPES
        ]
        if failed:
            _logger.info(
                "Not caching %s: lookups failed for %s", cache_key, ", ".join(failed)
            )
        else:
            await self._cache_set(cache_key, result)
        return result

    async def _resolve_component(self, component: FoodComponent) -> ComponentResolution:
        query = build_query(component)
        try:
            outcome = await self.matcher.match(
                query, limit=self.match_limit, min_score=self.match_min_score
            )
            if not outcome.candidates:
                _logger.warning("No matches for: %s (%s)", query, outcome.status)
                trace_type = (
                    "rate_limited" if outcome.status == "rate_limited" else "no_match"
                )
                return ComponentResolution(
                    trace=ComponentTrace(
                        type=trace_type,
                        component_name=component.name,
                        query=query,
                        original_portion_grams=component.estimated_portion_grams,
                    )
                )

            best = outcome.candidates[0]
            record = await self._load_record(best.record)
            resolved = resolve_basis(record)
            portion_grams = select_portion(
                component.estimated_portion_grams, record.portions
            )
            item = AnalyzedItem(
                name=normalize_food_name(record.description) or component.name,
                label=query,
                portion_grams=portion_grams,
                nutrients=scale_nutrients(resolved.nutrients, portion_grams),
                source=best.record.source,
                basis_used=resolved.basis,
                match_score=best.score,
                external_id=record.external_id,
                data_type=record.data_type.value if record.data_type else None,
                trace_info={
                    "component": component.name,
                    "preparation": component.preparation,
                    "confidence": component.confidence,
                    "energySource": resolved.energy_source,
                    "labelServingGrams": record.serving_size_grams,
                    "matchStage": outcome.stage,
                },
            )
        except Exception as exc:
            _logger.warning("Error analyzing component %s: %s", component.name, exc)
            return ComponentResolution(
                trace=ComponentTrace(
                    type="error",
                    component_name=component.name,
                    query=query,
                    error=str(exc) or type(exc).__name__,
                    original_portion_grams=component.estimated_portion_grams,
                )
            )

        return ComponentResolution(
            item=item,
            trace=ComponentTrace(
                type="matched",
                component_name=component.name,
                query=query,
                external_id=record.external_id,
                score=best.score,
                source=best.record.source,
                original_portion_grams=component.estimated_portion_grams,
                final_portion_grams=portion_grams,
            ),
        )

    async def _load_record(self, candidate: FoodRecord) -> FoodRecord:
        """Fetch the full record locally, falling back to the remote API."""
        record = await asyncio.wait_for(
            asyncio.to_thread(self.repository.get_food, candidate.external_id),
            timeout=self.call_timeout_seconds,
        )
        if record is not None:
            return record
        record = await asyncio.wait_for(
            self.nutrition_service.get_record(candidate.external_id),
            timeout=self.call_timeout_seconds,
        )
        try:
            return await asyncio.to_thread(self.repository.upsert_food, record)
        except Exception:
            _logger.exception("Failed to store food %s", record.external_id)
            return record

    async def _cache_get(self, key: str) -> AnalysisResult | None:
        try:
            cached = await self.cache.get(key)
            if cached is None:
                return None
            return AnalysisResult.model_validate_json(cached)
        except Exception:
            _logger.warning("Analysis cache read failed for %s", key, exc_info=True)
            return None

    async def _cache_set(self, key: str, result: AnalysisResult) -> None:
        try:
            await self.cache.set(
                key, result.to_json(), ttl_seconds=self.cache_ttl_seconds
            )
        except Exception:
            _logger.warning("Analysis cache write failed for %s", key, exc_info=True)


def split_description(description: str) -> list[FoodComponent]:
    """Split a description on commas, semicolons and newlines."""
    return [
        FoodComponent(
            name=part,
            preparation="unknown",
            estimated_portion_grams=TEXT_DEFAULT_PORTION_GRAMS,
            confidence=TEXT_DEFAULT_CONFIDENCE,
        )
        for part in (chunk.strip() for chunk in _SPLIT_PATTERN.split(description))
        if part
    ]


def build_query(component: FoodComponent) -> str:
    """Combine name and preparation, skipping unknown or redundant preparation."""
    name = component.name.strip()
    preparation = component.preparation.strip()
    if not preparation or preparation == "unknown":
        return name
    if preparation.lower() in name.lower():
        return name
    return f"{name} {preparation}"


def _score_label(item: AnalyzedItem) -> str:
    return f"{item.label or ''} {item.name}".strip()
