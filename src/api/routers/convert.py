from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_service
from api.schemas import (
    BatchFailurePayload,
    BatchRequest,
    BatchResponse,
    BatchSuccessPayload,
    ConvertRequest,
    TemplateSummary,
)
from api.utils import run_sync
from core.bee_converter.core import PERSISTENCE_ERROR, ConversionError, ConversionService
from core.bee_converter.models import BatchItem, EmailTemplateRecord, ErrorType

router = APIRouter(tags=["conversion"])


@router.post("/convert", summary="Convert one HTML email into a template", response_model=TemplateSummary)
async def convert_html(
    request: ConvertRequest,
    service: ConversionService = Depends(get_service),
) -> TemplateSummary:
    options = request.options.to_options() if request.options else None
    try:
        outcome = await run_sync(
            service.convert,
            request.html,
            name=request.name,
            category=request.category,
            options=options,
            created_by=request.created_by,
        )
    except ConversionError as exc:
        raise _http_error(exc) from exc
    return _summarize(outcome.template)


@router.post("/batch", summary="Convert several HTML emails", response_model=BatchResponse)
async def batch_convert(
    request: BatchRequest,
    service: ConversionService = Depends(get_service),
) -> BatchResponse:
    items = [BatchItem(html=item.html, name=item.name, category=item.category) for item in request.items]
    outcome = await run_sync(service.batch_convert, items, parallelism=request.parallelism)
    return BatchResponse(
        successes=[
            BatchSuccessPayload(index=s.index, template=_summarize(s.outcome.template))
            for s in outcome.successes
        ],
        failures=[BatchFailurePayload(index=f.index, name=f.name, error=f.error) for f in outcome.failures],
        total=outcome.total,
        success_rate=outcome.success_rate,
    )


def _summarize(template: EmailTemplateRecord) -> TemplateSummary:
    return TemplateSummary(
        id=template.id,
        name=template.name,
        subject=template.subject,
        category=template.category,
        editor_type=template.editor_type,
        document=template.json,
    )


def _http_error(exc: ConversionError) -> HTTPException:
    detail = {"code": exc.code, "message": str(exc)}
    if exc.code == ErrorType.VALIDATION.value:
        return HTTPException(status_code=400, detail=detail)
    if exc.code == ErrorType.RATE_LIMIT.value:
        retry_after = getattr(getattr(exc.__cause__, "failure", None), "retry_after_s", None)
        headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
        return HTTPException(status_code=429, detail=detail, headers=headers)
    if exc.code == PERSISTENCE_ERROR:
        return HTTPException(status_code=500, detail=detail)
    return HTTPException(status_code=502, detail=detail)


__all__ = [
    "router",
]
