"""Resolve free-text food queries to nutrition records.

Lookup order: local description search (after an embedding call used as an
intent signal), rerank by data type tier and text overlap, then the remote
FDC API as a fallback whose hits are upserted into the local database.
Nothing in here raises to the caller; failures degrade to the next stage
and finally to an empty result.
"""

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from typing import Literal, Protocol

from meal_analyzer.domain.errors import RemoteApiRateLimitedError
from meal_analyzer.domain.food import (
    DataTypeClass,
    FoodRecord,
    FoodSource,
    MatchCandidate,
)
from meal_analyzer.services.nutrition import NutritionService

DATA_TYPE_PRIORITY = {
    DataTypeClass.BRANDED: 4,
    DataTypeClass.FOUNDATION: 3,
    DataTypeClass.SURVEY: 2,
    DataTypeClass.LEGACY: 1,
}
LOCAL_TEXT_MATCH_SCORE = 0.8
REMOTE_MATCH_SCORE = 0.9
REMOTE_DATA_TYPES = (DataTypeClass.BRANDED.value, DataTypeClass.FOUNDATION.value)

_logger = logging.getLogger(__name__)


class FoodRepository(Protocol):
    """Local nutrition database."""

    def search_by_description(self, query: str, limit: int) -> list[FoodRecord]:
        """Return foods whose description contains ``query``, case-insensitively."""

    def get_food(self, external_id: int) -> FoodRecord | None:
        """Return the full record for an external id, if stored."""

    def upsert_food(self, record: FoodRecord) -> FoodRecord:
        """Insert or replace a record, including all of its child rows."""


class EmbeddingClient(Protocol):
    """Text embedding provider."""

    async def embed(self, text: str) -> list[float]:
        """Return an embedding vector for ``text``."""


MatchStatus = Literal["matched", "no_match", "rate_limited"]


@dataclass(frozen=True)
class MatchOutcome:
    """Result of a lookup, with the reason when nothing matched."""

    status: MatchStatus
    candidates: list[MatchCandidate] = field(default_factory=list)
    stage: Literal["local", "remote", "none"] = "none"


@dataclass
class FoodMatcher:
    """Hybrid local/remote food lookup."""

    repository: FoodRepository
    nutrition_service: NutritionService
    embedding_client: EmbeddingClient | None = None
    call_timeout_seconds: float = 10.0

    async def find_by_text(
        self, query: str, limit: int = 5, min_score: float = 0.7
    ) -> list[MatchCandidate]:
        """Return ranked candidates for ``query``; empty when nothing matched."""
        outcome = await self.match(query, limit=limit, min_score=min_score)
        return outcome.candidates

    async def match(
        self, query: str, limit: int = 5, min_score: float = 0.7
    ) -> MatchOutcome:
        """Look ``query`` up locally, falling back to the remote API."""
        try:
            local = await self._search_local(query, limit, min_score)
        except Exception as exc:
            _logger.warning(
                "Local lookup failed for %r, using remote API: %s", query, exc
            )
        else:
            if local:
                return MatchOutcome(status="matched", candidates=local, stage="local")
            _logger.info("No local results for %r, falling back to remote API", query)
        return await self._search_remote(query, limit)

    async def _search_local(
        self, query: str, limit: int, min_score: float
    ) -> list[MatchCandidate]:
        if self.embedding_client is not None:
            # The vector is not used for retrieval until a vector index exists.
            await asyncio.wait_for(
                self.embedding_client.embed(query), timeout=self.call_timeout_seconds
            )
        records = await asyncio.wait_for(
            asyncio.to_thread(self.repository.search_by_description, query, limit * 2),
            timeout=self.call_timeout_seconds,
        )
        candidates = [
            MatchCandidate(record=record, score=LOCAL_TEXT_MATCH_SCORE)
            for record in records
        ]
        filtered = [c for c in candidates if c.score >= min_score][:limit]
        return rerank(filtered, query)[:limit]

    async def _search_remote(self, query: str, limit: int) -> MatchOutcome:
        try:
            records = await asyncio.wait_for(
                self.nutrition_service.search_records(
                    query, page_size=limit, data_types=REMOTE_DATA_TYPES
                ),
                timeout=self.call_timeout_seconds,
            )
        except RemoteApiRateLimitedError:
            _logger.warning("Remote nutrition API rate limited for %r", query)
            return MatchOutcome(status="rate_limited", stage="remote")
        except Exception as exc:
            _logger.warning("Remote nutrition lookup failed for %r: %s", query, exc)
            return MatchOutcome(status="no_match", stage="remote")

        saved: list[MatchCandidate] = []
        for record in records[:limit]:
            try:
                stored = await asyncio.to_thread(self.repository.upsert_food, record)
            except Exception:
                _logger.exception("Failed to store remote food %s", record.external_id)
                continue
            saved.append(
                MatchCandidate(
                    record=replace(stored, source=FoodSource.REMOTE_API),
                    score=REMOTE_MATCH_SCORE,
                )
            )
        if not saved:
            return MatchOutcome(status="no_match", stage="remote")
        return MatchOutcome(status="matched", candidates=saved, stage="remote")


def rerank(candidates: Sequence[MatchCandidate], query: str) -> list[MatchCandidate]:
    """Order by data type tier, then query containment, then score.

    Containment outranking the raw score is a heuristic kept for
    compatibility with existing rankings.
    """
    needle = query.lower()

    def sort_key(candidate: MatchCandidate) -> tuple[int, int, float]:
        record = candidate.record
        priority = (
            DATA_TYPE_PRIORITY.get(record.data_type, 0) if record.data_type else 0
        )
        contains = 1 if needle in record.description.lower() else 0
        return (-priority, -contains, -candidate.score)

    return sorted(candidates, key=sort_key)
