"""FastAPI application factory and global exception handling."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from app import __version__ as app_version
from app.api.routes import router
from app.config import Settings, get_settings
from app.presets.loader import PresetRegistry
from app.summarizer.client import CompletionClient
from app.summarizer.service import SummarizerService

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_application(
    settings: Optional[Settings] = None,
    client: Optional[CompletionClient] = None,
    service: Optional[SummarizerService] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application instance.

    The summarizer service (and with it the request cache) is built here, once
    per application, and published on ``app.state``.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    summarizer = service or SummarizerService.from_settings(settings, client=client)
    presets = PresetRegistry(base=summarizer.options.constraints)
    presets.load_from_directory(settings.presets_dir)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"{settings.app_name} started: model={summarizer.options.model} "
            f"presets={len(presets.get_available_ids())}"
        )
        yield
        await summarizer.aclose()

    app = FastAPI(
        title=settings.app_name,
        description="Word-budgeted text summarization backed by a chat-completion model.",
        version=app_version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.summarizer = summarizer
    app.state.presets = presets

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "validation_error", "details": exc.errors()},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        detail = exc.detail
        if isinstance(detail, dict) and "error" in detail:
            payload = detail
        elif detail == "There was an error parsing the body":
            payload = {"error": "invalid_json", "details": detail}
        else:
            payload = {"error": "http_error", "details": detail}
        return JSONResponse(status_code=exc.status_code, content=payload)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "details": "Unexpected server error."},
        )

    @app.get("/healthz", tags=["health"])
    @app.get("/", include_in_schema=False)
    async def healthz() -> dict[str, Any]:
        constraints = summarizer.options.constraints
        return {
            "status": "ok",
            "version": app_version,
            "model": summarizer.options.model,
            "shape": constraints.shape,
            "min_words": constraints.min_words,
            "max_words": constraints.max_words,
            "cache": summarizer.cache.stats(),
            "presets": presets.get_available_ids(),
        }

    app.include_router(router)
    return app


app = create_application()
