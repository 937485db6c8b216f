"""HTTP route handlers for the summarization API."""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Type

import orjson
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from app.config import Settings, get_settings
from app.presets.loader import PresetRegistry
from app.summarizer.errors import (
    InputError,
    SummarizerError,
    UpstreamQuotaError,
)
from app.summarizer.models import BatchItem, SummaryOptions
from app.summarizer.service import SummarizerService

from .schemas import (
    BatchSummarizeRequestModel,
    BatchSummaryResponseModel,
    PresetModel,
    SummarizeRequestModel,
    SummaryResponseModel,
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_request_model(
    http_request: Request, model_cls: Type[BaseModel], settings: Settings
) -> BaseModel:
    header_length = http_request.headers.get("content-length")
    if header_length:
        try:
            content_length = int(header_length)
        except ValueError:
            content_length = None
        else:
            if (
                content_length is not None
                and content_length > settings.max_payload_bytes
            ):
                raise HTTPException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    detail={
                        "error": "payload_too_large",
                        "limit_bytes": settings.max_payload_bytes,
                    },
                )

    body_bytes = await http_request.body()
    if body_bytes and len(body_bytes) > settings.max_payload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={
                "error": "payload_too_large",
                "limit_bytes": settings.max_payload_bytes,
            },
        )

    if not body_bytes:
        data: Dict[str, Any] = {}
    else:
        try:
            data = orjson.loads(body_bytes)
        except orjson.JSONDecodeError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"error": "invalid_json", "details": str(exc)},
            ) from exc

    if not isinstance(data, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_request", "details": "Body must be a JSON object."},
        )

    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        raise RequestValidationError(
            exc.errors(include_url=False, include_context=False)
        ) from exc


def _settings_from(http_request: Request) -> Settings:
    return getattr(http_request.app.state, "settings", None) or get_settings()


async def load_summary_request(http_request: Request) -> SummarizeRequestModel:
    settings = _settings_from(http_request)
    return await _load_request_model(http_request, SummarizeRequestModel, settings)


async def load_batch_request(http_request: Request) -> BatchSummarizeRequestModel:
    settings = _settings_from(http_request)
    return await _load_request_model(
        http_request, BatchSummarizeRequestModel, settings
    )


def get_service(http_request: Request) -> SummarizerService:
    return http_request.app.state.summarizer


def get_presets(http_request: Request) -> PresetRegistry:
    return http_request.app.state.presets


def _resolve_options(
    service: SummarizerService, presets: PresetRegistry, preset_id: Optional[str]
) -> SummaryOptions:
    if not preset_id:
        return service.options
    preset = presets.get(preset_id)
    if preset is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "unknown_preset",
                "details": f"Unknown preset: {preset_id}",
                "available": presets.get_available_ids(),
            },
        )
    try:
        return service.options_for(preset)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_preset", "details": str(exc)},
        ) from exc


def _error_status(exc: SummarizerError) -> int:
    if isinstance(exc, InputError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, UpstreamQuotaError):
        return status.HTTP_402_PAYMENT_REQUIRED
    return status.HTTP_502_BAD_GATEWAY


def _to_http_exception(exc: SummarizerError) -> HTTPException:
    detail: Dict[str, Any] = {
        "error": exc.error_code,
        "details": exc.details if exc.details is not None else exc.message,
    }
    if isinstance(exc, UpstreamQuotaError):
        detail["hint"] = exc.hint
    return HTTPException(status_code=_error_status(exc), detail=detail)


@router.post("/v1/summarize", response_model=SummaryResponseModel)
@router.post("/summarize", include_in_schema=False)
async def summarize_text(
    summary_request: SummarizeRequestModel = Depends(load_summary_request),
    service: SummarizerService = Depends(get_service),
    presets: PresetRegistry = Depends(get_presets),
):
    try:
        options = _resolve_options(service, presets, summary_request.preset)
        start_time = time.perf_counter()
        try:
            summary = await service.summarize(summary_request.text, options)
        except SummarizerError as exc:
            raise _to_http_exception(exc) from exc
        elapsed_ms = int((time.perf_counter() - start_time) * 1000)

        logger.info(
            f"Summarize 200 words={summary.word_count} lines={summary.line_count} "
            f"passes={summary.passes} elapsed_ms={elapsed_ms}"
        )
        response_payload = SummaryResponseModel.from_domain(summary)
        return JSONResponse(content=response_payload.model_dump())
    except HTTPException as exc:
        if isinstance(exc.detail, dict) and "error" in exc.detail:
            return JSONResponse(status_code=exc.status_code, content=exc.detail)
        raise


@router.post("/v1/summarize/batch", response_model=BatchSummaryResponseModel)
@router.post("/summarize/batch", include_in_schema=False)
async def summarize_batch(
    batch_request: BatchSummarizeRequestModel = Depends(load_batch_request),
    service: SummarizerService = Depends(get_service),
    presets: PresetRegistry = Depends(get_presets),
):
    try:
        options = _resolve_options(service, presets, batch_request.preset)
        items = [BatchItem(id=item.id, text=item.text) for item in batch_request.items]
        start_time = time.perf_counter()
        try:
            summaries = await service.summarize_batch(items, options)
        except SummarizerError as exc:
            raise _to_http_exception(exc) from exc
        elapsed_ms = int((time.perf_counter() - start_time) * 1000)

        logger.info(
            f"Batch 200 items={len(items)} summarized={len(summaries)} "
            f"elapsed_ms={elapsed_ms}"
        )
        response_payload = BatchSummaryResponseModel(
            summaries={item_id: summary.text for item_id, summary in summaries.items()}
        )
        return JSONResponse(content=response_payload.model_dump())
    except HTTPException as exc:
        if isinstance(exc.detail, dict) and "error" in exc.detail:
            return JSONResponse(status_code=exc.status_code, content=exc.detail)
        raise


@router.get("/v1/presets", response_model=List[PresetModel])
async def list_presets(presets: PresetRegistry = Depends(get_presets)):
    return [PresetModel(**summary.model_dump()) for summary in presets.list_presets()]
