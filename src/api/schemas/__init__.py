"""Request and response bodies for the conversion API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from core.bee_converter.models import ConversionOptions, MergeTagFormat


class OptionsPayload(BaseModel):
    minify: bool | None = None
    prettify: bool | None = None
    preserve_comments: bool | None = None
    inline_css: bool | None = None
    preserve_merge_tags: bool | None = None
    merge_tag_format: MergeTagFormat | None = None
    timeout_s: float | None = Field(default=None, gt=0)

    def to_options(self) -> ConversionOptions:
        return ConversionOptions(**self.model_dump())


class ConvertRequest(BaseModel):
    html: str
    name: str | None = None
    category: str = "Other"
    created_by: str | None = None
    options: OptionsPayload | None = None


class TemplateSummary(BaseModel):
    id: str
    name: str
    subject: str
    category: str
    editor_type: str
    document: dict[str, Any]


class BatchItemPayload(BaseModel):
    html: str
    name: str | None = None
    category: str | None = None


class BatchRequest(BaseModel):
    items: list[BatchItemPayload]
    parallelism: int | None = Field(default=None, ge=1)


class BatchSuccessPayload(BaseModel):
    index: int
    template: TemplateSummary


class BatchFailurePayload(BaseModel):
    index: int
    name: str | None
    error: str


class BatchResponse(BaseModel):
    successes: list[BatchSuccessPayload]
    failures: list[BatchFailurePayload]
    total: int
    success_rate: float


class ConnectionResponse(BaseModel):
    status: str
    message: str
    response_time_ms: float | None = None
    error_type: str | None = None


class HealthStatus(BaseModel):
    status: str


__all__ = [
    "BatchFailurePayload",
    "BatchItemPayload",
    "BatchRequest",
    "BatchResponse",
    "BatchSuccessPayload",
    "ConnectionResponse",
    "ConvertRequest",
    "HealthStatus",
    "OptionsPayload",
    "TemplateSummary",
]
