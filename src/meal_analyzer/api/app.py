"""FastAPI application factory."""

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, Response

from meal_analyzer.api.models import (
    FoodCandidate,
    FoodSearchResponse,
    ImageAnalysisRequest,
    TextAnalysisRequest,
)
from meal_analyzer.app_logging import configure_logging
from meal_analyzer.containers import AppContainer
from meal_analyzer.domain.analysis import AnalysisResult
from meal_analyzer.domain.errors import (
    ExtractionError,
    QuotaExceededError,
    UnsupportedInputError,
)

_HTTP_UNPROCESSABLE = 422

_logger = logging.getLogger(__name__)


def _get_container(request: Request) -> AppContainer:
    return request.app.state.container


async def require_identity(x_user_id: str | None = Header(default=None)) -> str:
    """Ensure requests carry a caller identity."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="missing X-User-Id"
        )
    return x_user_id.strip()


async def enforce_quota(
    identity: str = Depends(require_identity),
    container: AppContainer = Depends(_get_container),
) -> str:
    """Consume one analysis from the caller's daily quota."""
    decision = container.quota_gate.consume(identity)
    if not decision.allowed:
        raise QuotaExceededError(f"daily analysis limit of {decision.limit} reached")
    return identity


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(ExtractionError)
    async def extraction_error_handler(
        request: Request, exc: ExtractionError
    ) -> JSONResponse:
        _logger.error("Analysis failed for %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": f"analysis failed: {exc}"},
        )

    @app.exception_handler(QuotaExceededError)
    async def quota_exceeded_handler(
        request: Request, exc: QuotaExceededError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"detail": str(exc)},
        )

    @app.exception_handler(UnsupportedInputError)
    async def unsupported_input_handler(
        request: Request, exc: UnsupportedInputError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=_HTTP_UNPROCESSABLE,
            content={"detail": str(exc)},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/analysis/text", dependencies=[Depends(enforce_quota)])
    async def analyze_text(body: TextAnalysisRequest, request: Request) -> Response:
        """Analyze a free-text meal description."""
        state_container: AppContainer = request.app.state.container
        result = await state_container.analyzer.analyze_text(body.description)
        return _envelope_response(result)

    @app.post("/analysis/image", dependencies=[Depends(enforce_quota)])
    async def analyze_image(body: ImageAnalysisRequest, request: Request) -> Response:
        """Analyze a meal photo sent inline or by URL."""
        state_container: AppContainer = request.app.state.container
        image_bytes = _decode_image(body.image_base64) if body.image_base64 else None
        result = await state_container.analyzer.analyze_image(
            image_bytes=image_bytes, image_url=None if image_bytes else body.image_url
        )
        return _envelope_response(result)

    @app.get("/foods/search")
    async def search_foods(
        request: Request,
        q: str = Query(min_length=1),
        limit: int = Query(default=5, ge=1, le=25),
    ) -> dict[str, object]:
        """Look a food up in the local database, falling back to FDC."""
        state_container: AppContainer = request.app.state.container
        candidates = await state_container.matcher.find_by_text(
            q, limit=limit, min_score=state_container.settings.match_min_score
        )
        response = FoodSearchResponse(
            candidates=[FoodCandidate.from_match(candidate) for candidate in candidates]
        )
        return response.model_dump(by_alias=True)

    return app


def _envelope_response(result: AnalysisResult) -> Response:
    return Response(content=result.to_json(), media_type="application/json")


def _decode_image(raw: str) -> bytes:
    """Decode base64 image data, accepting an optional data URL prefix."""
    payload = raw.partition(",")[2] if raw.startswith("data:") else raw
    try:
        image_bytes = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(
            status_code=_HTTP_UNPROCESSABLE,
            detail="imageBase64 is not valid base64",
        ) from exc
    if not image_bytes:
        raise HTTPException(
            status_code=_HTTP_UNPROCESSABLE,
            detail="imageBase64 is empty",
        )
    return image_bytes
