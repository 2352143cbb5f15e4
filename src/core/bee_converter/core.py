from __future__ import annotations

import concurrent.futures
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from .adapter import EDITOR_TYPE, Clock, ResponseAdapter, utc_now
from .client import ConversionClient
from .config import AppConfig
from .logging import EventSink, GuardedEventSink, LoggingEventSink
from .models import (
    BatchFailure,
    BatchItem,
    BatchOutcome,
    BatchSuccess,
    ConnectionReport,
    ConversionFailure,
    ConversionOptions,
    ConversionOutcome,
    ConversionStage,
    EmailTemplateRecord,
    ErrorType,
)
from .normalizer import extract_subject, normalize
from .repository import TemplateRepository
from .utils import byte_size

COMPONENT = "ConversionService"
DEFAULT_CATEGORY = "Other"
PERSISTENCE_ERROR = "persistence_error"


class ConversionError(RuntimeError):
    def __init__(
        self,
        code: str,
        message: str,
        stage: ConversionStage = ConversionStage.FAILED,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.stage = stage


class HtmlValidationError(ConversionError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorType.VALIDATION.value, message, ConversionStage.VALIDATING)


class RemoteConversionError(ConversionError):
    def __init__(self, failure: ConversionFailure) -> None:
        super().__init__(failure.error_type.value, failure.message, ConversionStage.CONVERTING)
        self.failure = failure


@dataclass(slots=True)
class _ConversionContext:
    name: str
    category: str
    created_by: str | None
    options: ConversionOptions
    stage: ConversionStage = ConversionStage.VALIDATING


class ConversionService:
    def __init__(
        self,
        config: AppConfig,
        client: ConversionClient,
        repository: TemplateRepository,
        *,
        clock: Clock | None = None,
        events: EventSink | None = None,
    ) -> None:
        self._config = config
        self._client = client
        self._repository = repository
        self._clock = clock or utc_now
        self._adapter = ResponseAdapter(self._clock)
        self._events = GuardedEventSink(events or LoggingEventSink())

    def convert(
        self,
        html: str,
        *,
        name: str | None = None,
        category: str = DEFAULT_CATEGORY,
        options: ConversionOptions | None = None,
        created_by: str | None = None,
    ) -> ConversionOutcome:
        context = _ConversionContext(
            name=name or self._default_name(self._clock()),
            category=category or DEFAULT_CATEGORY,
            created_by=created_by,
            options=options or ConversionOptions(),
        )
        self._events.emit(
            COMPONENT,
            "pipeline.start",
            name=context.name,
            organization_id=self._config.runtime.organization_id,
        )
        start = time.perf_counter()
        try:
            outcome = self._convert_internal(html, context)
        except ConversionError as exc:
            raise self._fail(context, exc.code, str(exc)) from exc
        except Exception as exc:
            code = PERSISTENCE_ERROR if context.stage is ConversionStage.PERSISTING else ErrorType.UNKNOWN.value
            raise self._fail(context, code, str(exc)) from exc

        self._events.emit(
            COMPONENT,
            "pipeline.complete",
            name=context.name,
            template_id=outcome.template.id,
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return outcome

    def _convert_internal(self, html: str, context: _ConversionContext) -> ConversionOutcome:
        self._validate(html)

        context.stage = ConversionStage.NORMALIZING
        normalized = normalize(html)

        context.stage = ConversionStage.CONVERTING
        result = self._client.convert(normalized, context.options)
        if isinstance(result, ConversionFailure):
            raise RemoteConversionError(result)

        context.stage = ConversionStage.ADAPTING
        document = self._adapter.adapt(result.json, html, self._config.runtime.organization_id)

        context.stage = ConversionStage.PERSISTING
        template = self._persist(document, html, context)

        context.stage = ConversionStage.DONE
        return ConversionOutcome(
            normalized_html=normalized,
            result=result,
            document=document,
            template=template,
        )

    def _validate(self, html: str) -> None:
        if html is None or not html.strip():
            raise HtmlValidationError("HTML content cannot be empty")
        max_bytes = self._config.runtime.max_html_bytes
        if byte_size(html) > max_bytes:
            raise HtmlValidationError(
                f"HTML content exceeds maximum size of {self._config.runtime.max_html_size_mb}MB"
            )
        lowered = html.lower()
        if "<html" not in lowered or "<body" not in lowered:
            raise HtmlValidationError(
                "HTML must contain proper document structure with <html> and <body> tags"
            )

    def _persist(self, document: dict, html: str, context: _ConversionContext) -> EmailTemplateRecord:
        return self._repository.create_template(
            name=context.name,
            editor_type=EDITOR_TYPE,
            json=document,
            source_html=html if self._config.runtime.preserve_html else None,
            subject=extract_subject(html),
            category=context.category,
            created_by=context.created_by,
        )

    def _fail(self, context: _ConversionContext, code: str, message: str) -> ConversionError:
        failed_stage = context.stage
        context.stage = ConversionStage.FAILED
        self._events.emit(
            COMPONENT,
            "pipeline.failed",
            name=context.name,
            stage=failed_stage.value,
            code=code,
            message=message,
        )
        return ConversionError(code, f"HTML to Bee conversion failed: {message}", failed_stage)

    @staticmethod
    def _default_name(moment: datetime) -> str:
        return f"HTML Import {moment.strftime('%Y%m%d_%H%M%S')}"

    def test_connection(self) -> ConnectionReport:
        return self._client.test_connection()

    def close(self) -> None:
        self._client.close()

    def batch_convert(
        self,
        items: Sequence[BatchItem],
        *,
        parallelism: int | None = None,
    ) -> BatchOutcome:
        items = list(items)
        parallelism = max(1, parallelism or self._config.runtime.batch.default_parallelism)
        if parallelism == 1 or len(items) <= 1:
            attempts = self._run_sequential_batch(items)
        else:
            attempts = self._run_parallel_batch(items, parallelism)

        successes: list[BatchSuccess] = []
        failures: list[BatchFailure] = []
        for index in sorted(attempts):
            attempt = attempts[index]
            if isinstance(attempt, BatchFailure):
                failures.append(attempt)
            else:
                successes.append(attempt)

        total = len(items)
        rate = round(len(successes) / total * 100, 1) if total else 0.0
        self._events.emit(
            COMPONENT,
            "batch.complete",
            total=total,
            successes=len(successes),
            failures=len(failures),
            success_rate=rate,
        )
        return BatchOutcome(successes=successes, failures=failures, total=total, success_rate=rate)

    def _convert_item(self, index: int, item: BatchItem) -> BatchSuccess | BatchFailure:
        try:
            outcome = self.convert(
                item.html,
                name=item.name or f"Imported Template {index + 1}",
                category=item.category or DEFAULT_CATEGORY,
            )
        except ConversionError as exc:
            return BatchFailure(index=index, name=item.name, error=str(exc))
        return BatchSuccess(index=index, outcome=outcome, item=item)

    def _run_sequential_batch(self, items: Sequence[BatchItem]) -> dict[int, BatchSuccess | BatchFailure]:
        return {index: self._convert_item(index, item) for index, item in enumerate(items)}

    def _run_parallel_batch(
        self, items: Sequence[BatchItem], parallelism: int
    ) -> dict[int, BatchSuccess | BatchFailure]:
        attempts: dict[int, BatchSuccess | BatchFailure] = {}
        with concurrent.futures.ThreadPoolExecutor(max_workers=parallelism) as executor:
            future_map = {
                executor.submit(self._convert_item, index, item): index
                for index, item in enumerate(items)
            }
            for future in concurrent.futures.as_completed(future_map):
                attempts[future_map[future]] = future.result()
        return attempts


__all__ = [
    "ConversionError",
    "ConversionService",
    "HtmlValidationError",
    "RemoteConversionError",
]
