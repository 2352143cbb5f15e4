"""Domain models for HTML to Bee JSON conversion."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union


class MergeTagFormat(str, Enum):
    LIQUID = "liquid"
    HANDLEBARS = "handlebars"
    MUSTACHE = "mustache"


class ErrorType(str, Enum):
    VALIDATION = "validation_error"
    AUTHENTICATION = "authentication_error"
    CONTENT = "content_error"
    RATE_LIMIT = "rate_limit"
    SERVER = "server_error"
    TIMEOUT = "timeout"
    UNKNOWN_RESPONSE = "unknown_error"
    UNKNOWN = "unknown"


class ConversionStage(str, Enum):
    VALIDATING = "validating"
    NORMALIZING = "normalizing"
    CONVERTING = "converting"
    ADAPTING = "adapting"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


_OPTION_DEFAULTS: dict[str, object] = {
    "minify": False,
    "prettify": True,
    "preserve_comments": False,
    "inline_css": True,
    "preserve_merge_tags": True,
    "merge_tag_format": MergeTagFormat.LIQUID.value,
}


@dataclass(slots=True)
class ConversionOptions:
    """Options forwarded to the remote converter.

    ``None`` means "use the default". ``timeout_s`` bounds the HTTP call and
    is never sent to the remote service.
    """

    minify: bool | None = None
    prettify: bool | None = None
    preserve_comments: bool | None = None
    inline_css: bool | None = None
    preserve_merge_tags: bool | None = None
    merge_tag_format: MergeTagFormat | None = None
    timeout_s: float | None = None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {}
        for key, default in _OPTION_DEFAULTS.items():
            value = getattr(self, key)
            if isinstance(value, MergeTagFormat):
                value = value.value
            resolved = default if value is None else value
            if resolved is not None:
                payload[key] = resolved
        return payload


@dataclass(slots=True)
class ConversionSuccess:
    json: dict[str, Any]
    html: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    response_time_ms: float | None = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(slots=True)
class ConversionFailure:
    error_type: ErrorType
    message: str
    details: list[str] = field(default_factory=list)
    retry_after_s: int | None = None

    @property
    def ok(self) -> bool:
        return False


ConversionResult = Union[ConversionSuccess, ConversionFailure]


@dataclass(slots=True)
class ConnectionReport:
    status: str
    message: str
    response_time_ms: float | None = None
    error_type: ErrorType | None = None


@dataclass(slots=True)
class EmailTemplateRecord:
    id: str
    name: str
    editor_type: str
    json: dict[str, Any]
    source_html: str | None
    subject: str
    category: str
    created_by: str | None
    created_at: datetime


@dataclass(slots=True)
class ConversionOutcome:
    """Everything produced by one successful conversion."""

    normalized_html: str
    result: ConversionSuccess
    document: dict[str, Any]
    template: EmailTemplateRecord


@dataclass(slots=True)
class BatchItem:
    html: str
    name: str | None = None
    category: str | None = None


@dataclass(slots=True)
class BatchSuccess:
    index: int
    outcome: ConversionOutcome
    item: BatchItem


@dataclass(slots=True)
class BatchFailure:
    index: int
    name: str | None
    error: str


@dataclass(slots=True)
class BatchOutcome:
    successes: list[BatchSuccess]
    failures: list[BatchFailure]
    total: int
    success_rate: float


__all__ = [
    "BatchFailure",
    "BatchItem",
    "BatchOutcome",
    "BatchSuccess",
    "ConnectionReport",
    "ConversionFailure",
    "ConversionOptions",
    "ConversionOutcome",
    "ConversionResult",
    "ConversionStage",
    "ConversionSuccess",
    "EmailTemplateRecord",
    "ErrorType",
    "MergeTagFormat",
]
