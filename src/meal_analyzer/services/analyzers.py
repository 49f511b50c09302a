"""Analyzer strategies and ordered fallback between them."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Protocol

from meal_analyzer.domain.analysis import AnalysisResult
from meal_analyzer.domain.errors import ExtractionError

_logger = logging.getLogger(__name__)


class Analyzer(Protocol):
    """Turns a meal photo or description into an analysis envelope."""

    async def analyze_image(
        self, image_bytes: bytes | None = None, image_url: str | None = None
    ) -> AnalysisResult:
        """Analyze an image."""

    async def analyze_text(self, description: str) -> AnalysisResult:
        """Analyze a free-text description."""


@dataclass
class FallbackAnalyzer:
    """Try analyzers in order until one returns at least one item.

    A failing analyzer is logged and skipped. When every analyzer failed the
    last extraction error is raised; when some succeeded without items the
    last empty result is returned.
    """

    analyzers: Sequence[tuple[str, Analyzer]]

    async def analyze_image(
        self, image_bytes: bytes | None = None, image_url: str | None = None
    ) -> AnalysisResult:
        return await self._run(
            "image",
            lambda analyzer: analyzer.analyze_image(
                image_bytes=image_bytes, image_url=image_url
            ),
        )

    async def analyze_text(self, description: str) -> AnalysisResult:
        return await self._run(
            "text", lambda analyzer: analyzer.analyze_text(description)
        )

    async def _run(
        self, kind: str, call: Callable[[Analyzer], Awaitable[AnalysisResult]]
    ) -> AnalysisResult:
        if not self.analyzers:
            raise ExtractionError("No analyzers configured")

        empty_result: AnalysisResult | None = None
        last_error: Exception | None = None
        last_extraction_error: ExtractionError | None = None
        for name, analyzer in self.analyzers:
            try:
                result = await call(analyzer)
            except ExtractionError as exc:
                _logger.warning("Analyzer %s failed for %s input: %s", name, kind, exc)
                last_error = last_extraction_error = exc
                continue
            except Exception as exc:
                _logger.warning("Analyzer %s failed for %s input: %s", name, kind, exc)
                last_error = exc
                continue
            if result.items:
                _logger.info("Analyzer %s produced %s items", name, len(result.items))
                return result
            _logger.info("Analyzer %s produced no items", name)
            empty_result = result

        if empty_result is not None:
            return empty_result
        raise last_extraction_error or last_error
