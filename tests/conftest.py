from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import httpx
import pytest

from core.bee_converter.client import ConversionClient
from core.bee_converter.config import AppConfig, RuntimeConfig
from core.bee_converter.core import ConversionService
from core.bee_converter.logging import MemoryEventSink
from core.bee_converter.repository import InMemoryTemplateRepository

BASE_URL = "https://api.test/v1"
FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc)

BEE_JSON = {"page": {"rows": [{"type": "one-column-empty"}]}}

SAMPLE_HTML = (
    "<html><head><title>Spring Sale</title></head>"
    "<body><p>Hi {{ first_name }}</p>"
    '<a href="https://example.com/unsubscribe?u=1">Unsubscribe</a></body></html>'
)

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingTransport(httpx.MockTransport):
    def __init__(self, handler: Handler) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def bodies(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]


def success_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"json": BEE_JSON, "metadata": {"rows": 1}, "response_time": 42})


class BrokenEventSink:
    def emit(self, component: str, event: str, **fields) -> None:
        raise OSError("log disk full")


def build_client(transport: httpx.MockTransport, events=None) -> ConversionClient:
    return ConversionClient("secret-token", base_url=BASE_URL, transport=transport, events=events)


def build_service(
    transport: httpx.MockTransport,
    *,
    repository=None,
    config: AppConfig | None = None,
    events=None,
) -> ConversionService:
    config = config or AppConfig(runtime=RuntimeConfig(organization_id="org-1"))
    return ConversionService(
        config,
        build_client(transport, events),
        repository if repository is not None else InMemoryTemplateRepository(),
        clock=lambda: FIXED_NOW,
        events=events,
    )


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport(success_handler)


@pytest.fixture
def repository() -> InMemoryTemplateRepository:
    return InMemoryTemplateRepository()


@pytest.fixture
def events() -> MemoryEventSink:
    return MemoryEventSink()


@pytest.fixture
def service(transport, repository, events) -> ConversionService:
    return build_service(transport, repository=repository, events=events)


@pytest.fixture
def missing_config(tmp_path: Path) -> Path:
    return tmp_path / "absent.toml"
