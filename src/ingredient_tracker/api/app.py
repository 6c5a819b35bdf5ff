"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ingredient_tracker.api.foods import router as foods_router
from ingredient_tracker.api.inventory import router as inventory_router
from ingredient_tracker.api.nutrition import router as nutrition_router
from ingredient_tracker.api.recipes import router as recipes_router
from ingredient_tracker.app_logging import configure_logging
from ingredient_tracker.containers import AppContainer
from ingredient_tracker.domain.errors import (
    AIServiceUnavailableError,
    InputValidationError,
    InsufficientIngredientError,
    InsufficientStockError,
    MalformedAIResponseError,
    NotFoundOrForbiddenError,
)

RETRY_AFTER_SECONDS = 30


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(inventory_router)
    app.include_router(foods_router)
    app.include_router(nutrition_router)
    app.include_router(recipes_router)

    @app.exception_handler(InsufficientStockError)
    async def insufficient_stock(
        _request: Request, exc: InsufficientStockError
    ) -> JSONResponse:
        content: dict[str, object] = {
            "detail": str(exc),
            "ingredient_id": exc.ingredient_id,
            "requested": str(exc.requested),
            "available": str(exc.available),
        }
        if isinstance(exc, InsufficientIngredientError):
            content["ingredient_name"] = exc.name
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=content)

    @app.exception_handler(NotFoundOrForbiddenError)
    async def not_found(
        _request: Request, exc: NotFoundOrForbiddenError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)}
        )

    @app.exception_handler(InputValidationError)
    async def invalid_input(
        _request: Request, exc: InputValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc)},
        )

    @app.exception_handler(AIServiceUnavailableError)
    async def ai_unavailable(
        _request: Request, exc: AIServiceUnavailableError
    ) -> JSONResponse:
        logger.warning("AI provider unavailable: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": str(exc)},
            headers={"Retry-After": str(RETRY_AFTER_SECONDS)},
        )

    @app.exception_handler(MalformedAIResponseError)
    async def malformed_ai_response(
        _request: Request, exc: MalformedAIResponseError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY, content={"detail": str(exc)}
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
