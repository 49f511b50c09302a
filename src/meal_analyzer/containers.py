"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from meal_analyzer.adapters.fdc_client import HttpxFdcClient
from meal_analyzer.adapters.openai_embedding_client import OpenAIEmbeddingClient
from meal_analyzer.adapters.openai_vision_client import OpenAIVisionClient
from meal_analyzer.adapters.supabase_food_repository import SupabaseFoodRepository
from meal_analyzer.config import Settings, parse_analyzer_chain
from meal_analyzer.services.analysis import AnalysisService
from meal_analyzer.services.analyzers import Analyzer, FallbackAnalyzer
from meal_analyzer.services.cache import InMemoryCache
from meal_analyzer.services.keywords import KeywordAnalyzer, load_keyword_table
from meal_analyzer.services.matching import FoodMatcher, FoodRepository
from meal_analyzer.services.nutrition import NutritionService
from meal_analyzer.services.quota import InMemoryDailyQuota, QuotaGate
from meal_analyzer.services.vision import VisionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    food_repository: FoodRepository
    nutrition_service: NutritionService
    vision_service: VisionService
    matcher: FoodMatcher
    analysis_service: AnalysisService
    keyword_analyzer: KeywordAnalyzer
    analyzer: FallbackAnalyzer
    quota_gate: QuotaGate
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    timeout = resolved_settings.external_call_timeout_seconds
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    food_repository = SupabaseFoodRepository(supabase_client)
    cache = InMemoryCache(max_entries=resolved_settings.cache_max_entries)

    fdc_client = HttpxFdcClient.create(
        api_key=resolved_settings.fdc_api_key,
        base_url=resolved_settings.fdc_base_url,
        timeout_seconds=timeout,
    )
    nutrition_service = NutritionService(fdc_client=fdc_client, cache=cache)

    vision_client = OpenAIVisionClient.create(resolved_settings.openai_api_key)
    vision_service = VisionService(
        client=vision_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
        confidence_floor=resolved_settings.vision_confidence_floor,
    )

    embedding_client = None
    if resolved_settings.embeddings_enabled:
        embedding_client = OpenAIEmbeddingClient.create(
            api_key=resolved_settings.openai_api_key,
            model=resolved_settings.openai_embedding_model,
            timeout_seconds=timeout,
        )
    matcher = FoodMatcher(
        repository=food_repository,
        nutrition_service=nutrition_service,
        embedding_client=embedding_client,
        call_timeout_seconds=timeout,
    )
    analysis_service = AnalysisService(
        vision_service=vision_service,
        matcher=matcher,
        repository=food_repository,
        nutrition_service=nutrition_service,
        cache=cache,
        cache_ttl_seconds=resolved_settings.analysis_cache_ttl_seconds,
        match_limit=resolved_settings.match_limit,
        match_min_score=resolved_settings.match_min_score,
        call_timeout_seconds=timeout,
    )
    keyword_analyzer = KeywordAnalyzer(load_keyword_table())
    available: dict[str, Analyzer] = {
        "pipeline": analysis_service,
        "keyword": keyword_analyzer,
    }
    analyzer = FallbackAnalyzer(
        [
            (name, available[name])
            for name in parse_analyzer_chain(resolved_settings.analyzer_chain)
        ]
    )
    quota_gate = InMemoryDailyQuota(resolved_settings.daily_analysis_limit)

    async def close_resources() -> None:
        await fdc_client.close()
        await vision_client.close()
        if embedding_client is not None:
            await embedding_client.close()

    return AppContainer(
        settings=resolved_settings,
        food_repository=food_repository,
        nutrition_service=nutrition_service,
        vision_service=vision_service,
        matcher=matcher,
        analysis_service=analysis_service,
        keyword_analyzer=keyword_analyzer,
        analyzer=analyzer,
        quota_gate=quota_gate,
        close_resources=close_resources,
    )
