"""HTTP client for the remote HTML-to-JSON conversion endpoint.

:meth:`ConversionClient.convert` never raises: every call ends in a
:class:`ConversionSuccess` or :class:`ConversionFailure`.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx

from .config import DEFAULT_BASE_URL
from .logging import EventSink, GuardedEventSink, LoggingEventSink
from .models import (
    ConnectionReport,
    ConversionFailure,
    ConversionOptions,
    ConversionResult,
    ConversionSuccess,
    ErrorType,
)

logger = logging.getLogger(__name__)

COMPONENT = "ConversionClient"
HTML_TO_JSON_ENDPOINT = "/conversion/html-to-json"
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_RETRY_AFTER_S = 60
CONNECTION_TEST_TIMEOUT_S = 10.0
RAW_BODY_PREVIEW = 200
CONNECTION_TEST_HTML = (
    '<!DOCTYPE html><html><head><meta charset="UTF-8"><title>Test</title></head>'
    "<body><p>Test</p></body></html>"
)


class ConversionClient:
    def __init__(
        self,
        api_token: str | None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        transport: httpx.BaseTransport | None = None,
        events: EventSink | None = None,
    ) -> None:
        if not api_token:
            raise ValueError("Conversion API token is required")
        self._timeout_s = timeout_s
        self._events = GuardedEventSink(events or LoggingEventSink())
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={
                "Authorization": f"Bearer {api_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            transport=transport,
        )

    def __enter__(self) -> ConversionClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def convert(self, html: str, options: ConversionOptions | None = None) -> ConversionResult:
        opts = options or ConversionOptions()
        timeout = opts.timeout_s if opts.timeout_s is not None else self._timeout_s
        body = {"html": html, "options": opts.to_payload()}
        self._events.emit(COMPONENT, "conversion.request.start", html_bytes=len(html.encode("utf-8")))
        start = time.perf_counter()
        try:
            response = self._http.post(HTML_TO_JSON_ENDPOINT, json=body, timeout=timeout)
        except httpx.TimeoutException as exc:
            result: ConversionResult = ConversionFailure(
                error_type=ErrorType.TIMEOUT,
                message=f"API request timed out after {_format_seconds(timeout)}s",
                details=[str(exc)] if str(exc) else [],
            )
        except Exception as exc:
            result = ConversionFailure(
                error_type=ErrorType.UNKNOWN,
                message=f"Unexpected error: {exc}",
            )
        else:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self._events.emit(
                COMPONENT,
                "conversion.request.complete",
                status_code=response.status_code,
                duration_ms=round(elapsed_ms, 1),
            )
            try:
                result = self._classify(response)
            except Exception as exc:
                result = ConversionFailure(
                    error_type=ErrorType.UNKNOWN,
                    message=f"Unexpected error: {exc}",
                    details=[response.text[:RAW_BODY_PREVIEW]],
                )

        if not result.ok:
            self._events.emit(
                COMPONENT,
                "conversion.request.failed",
                error_type=result.error_type.value,
                message=result.message,
            )
        return result

    def test_connection(self) -> ConnectionReport:
        result = self.convert(CONNECTION_TEST_HTML, ConversionOptions(timeout_s=CONNECTION_TEST_TIMEOUT_S))
        if isinstance(result, ConversionSuccess):
            return ConnectionReport(
                status="connected",
                message="Successfully connected to conversion API",
                response_time_ms=result.response_time_ms,
            )
        return ConnectionReport(
            status="error",
            message=f"Connection failed: {result.message}",
            error_type=result.error_type,
        )

    def _classify(self, response: httpx.Response) -> ConversionResult:
        status = response.status_code
        if 200 <= status < 300:
            return self._parse_success(response)
        if status == 400:
            message, details = _parse_error_body(response)
            return ConversionFailure(ErrorType.VALIDATION, message, details)
        if status == 401:
            return ConversionFailure(ErrorType.AUTHENTICATION, "Invalid or expired API token")
        if status == 422:
            message, details = _parse_error_body(response)
            return ConversionFailure(ErrorType.CONTENT, message, details)
        if status == 429:
            retry_after = _parse_retry_after(response.headers.get("Retry-After"))
            return ConversionFailure(
                ErrorType.RATE_LIMIT,
                f"Rate limit exceeded. Retry after {retry_after} seconds",
                retry_after_s=retry_after,
            )
        if 500 <= status < 600:
            return ConversionFailure(ErrorType.SERVER, f"Conversion API server error ({status})")
        return ConversionFailure(ErrorType.UNKNOWN_RESPONSE, f"Unexpected API response ({status})")

    def _parse_success(self, response: httpx.Response) -> ConversionResult:
        try:
            parsed = response.json()
        except ValueError as exc:
            return ConversionFailure(
                ErrorType.UNKNOWN,
                f"Unexpected error: invalid JSON in success response ({exc})",
                [response.text[:RAW_BODY_PREVIEW]],
            )
        if not isinstance(parsed, dict):
            return ConversionFailure(
                ErrorType.UNKNOWN,
                "Unexpected error: success response is not a JSON object",
                [response.text[:RAW_BODY_PREVIEW]],
            )
        payload = parsed["json"] if parsed.get("json") is not None else parsed
        if not isinstance(payload, dict):
            return ConversionFailure(
                ErrorType.UNKNOWN,
                "Unexpected error: converted json is not a JSON object",
                [response.text[:RAW_BODY_PREVIEW]],
            )
        metadata = parsed.get("metadata")
        return ConversionSuccess(
            json=payload,
            html=parsed.get("html"),
            metadata=metadata if isinstance(metadata, dict) else {},
            response_time_ms=parsed.get("response_time"),
        )


def _parse_error_body(response: httpx.Response) -> tuple[str, list[str]]:
    try:
        parsed: Any = json.loads(response.text)
    except ValueError:
        return "API returned non-JSON error response", [response.text[:RAW_BODY_PREVIEW]]
    if not isinstance(parsed, dict):
        return "Unknown error", []
    message = parsed.get("error") or parsed.get("message") or "Unknown error"
    details = parsed.get("details") or parsed.get("errors") or []
    if not isinstance(details, list):
        details = [details]
    return str(message), [_detail_text(d) for d in details]


def _detail_text(detail: Any) -> str:
    if isinstance(detail, (dict, list)):
        return json.dumps(detail, default=str)
    return str(detail)


def _parse_retry_after(value: str | None) -> int:
    if value is None:
        return DEFAULT_RETRY_AFTER_S
    try:
        return int(value.strip())
    except ValueError:
        logger.debug("Ignoring unparsable Retry-After header: %r", value)
        return DEFAULT_RETRY_AFTER_S


def _format_seconds(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


__all__ = [
    "CONNECTION_TEST_HTML",
    "ConversionClient",
    "HTML_TO_JSON_ENDPOINT",
]
