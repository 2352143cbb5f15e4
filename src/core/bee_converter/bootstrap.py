"""Wiring of configuration, credentials and collaborators into a service."""

from __future__ import annotations

from pathlib import Path

import httpx

from core.settings import Settings

from .client import ConversionClient
from .config import AppConfig, load_config
from .core import ConversionService
from .logging import EventSink, build_event_sink
from .repository import JsonFileTemplateRepository, TemplateRepository


def prepare_config(settings: Settings, path: Path | None = None) -> AppConfig:
    config = load_config(path or settings.config_path)
    if settings.organization_id:
        config.runtime.organization_id = settings.organization_id
    if settings.enable_local_api is not None:
        config.runtime.enable_local_api = settings.enable_local_api
    return config


def build_service(
    config: AppConfig,
    settings: Settings,
    *,
    repository: TemplateRepository | None = None,
    transport: httpx.BaseTransport | None = None,
    events: EventSink | None = None,
) -> ConversionService:
    """Build a :class:`ConversionService`.

    The API token is resolved once here; a missing token raises ``ValueError``.
    """

    events = events or build_event_sink(config.runtime.event_log)
    client = ConversionClient(
        settings.api_token,
        base_url=config.api.base_url,
        timeout_s=config.api.timeout_s,
        transport=transport,
        events=events,
    )
    return ConversionService(
        config,
        client,
        repository if repository is not None else JsonFileTemplateRepository(config.runtime.templates_dir),
        events=events,
    )


__all__ = ["build_service", "prepare_config"]
