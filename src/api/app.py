from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from core.bee_converter.bootstrap import build_service, prepare_config
from core.bee_converter.core import ConversionService
from core.settings import Settings, get_settings

from .routers import convert, health


def create_app(
    settings: Settings | None = None,
    *,
    service: ConversionService | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    config = prepare_config(settings)
    if not config.runtime.enable_local_api:
        raise RuntimeError("Local API is disabled. Enable it via configuration or environment.")

    service = service or build_service(config, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        service.close()

    app = FastAPI(title="HTML to Bee Converter", version="0.1.0", lifespan=lifespan)
    app.state.config = config
    app.state.service = service

    app.include_router(health.router)
    app.include_router(convert.router)
    return app


__all__ = ["create_app"]
