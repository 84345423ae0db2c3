"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from album_delivery.api.console import router as console_router
from album_delivery.api.models import StorageStatsModel
from album_delivery.app_logging import configure_logging
from album_delivery.containers import AppContainer
from album_delivery.domain.errors import (
    AlbumWorkflowError,
    CatalogIntegrityError,
    NoApprovedContent,
    QuotaExceeded,
    SequenceViolation,
    TransportError,
    ValidationError,
)

_STATUS_CODES: dict[type[AlbumWorkflowError], int] = {
    ValidationError: 422,
    SequenceViolation: 409,
    NoApprovedContent: 409,
    QuotaExceeded: 402,
    CatalogIntegrityError: 500,
    TransportError: 502,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            await app.state.container.catalog_service.load()
        except AlbumWorkflowError:
            logger.exception("Failed to preload status catalogs")
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(console_router)

    @app.exception_handler(AlbumWorkflowError)
    async def workflow_error(request: Request, exc: AlbumWorkflowError) -> JSONResponse:
        status_code = status.HTTP_400_BAD_REQUEST
        for error_type, code in _STATUS_CODES.items():
            if isinstance(exc, error_type):
                status_code = code
                break
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Request failed: path=%s error=%s", request.url.path, exc)
        return JSONResponse(status_code=status_code, content=_error_body(exc))

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app


def _error_body(exc: AlbumWorkflowError) -> dict[str, object]:
    body: dict[str, object] = {"error": type(exc).__name__, "message": str(exc)}
    identifiers = getattr(exc, "identifiers", None)
    if identifiers:
        body["identifiers"] = identifiers
    if isinstance(exc, SequenceViolation) and exc.expected is not None:
        body["expectedStatusId"] = exc.expected.status_id
        body["expectedStatus"] = exc.expected.status_description
    if isinstance(exc, QuotaExceeded):
        body["uploadSizeBytes"] = exc.total_bytes
        if exc.stats is not None:
            body["storage"] = StorageStatsModel.from_stats(exc.stats).model_dump(
                by_alias=True
            )
    return body
