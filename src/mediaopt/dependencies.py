"""Dependency wiring helpers."""

from __future__ import annotations

from fastapi import FastAPI

from .api.media_api import router as media_router
from .config import AppConfig
from .media.filesystem import Filesystem
from .optimization.factory import ProcessFactory
from .optimization.hooks import ProcessHooks
from .providers.api_client import OptimizationApi, OptimizationApiClient
from .queue.jobs import OptimizationQueue


def build_process_factory(
    config: AppConfig,
    *,
    api: OptimizationApi | None = None,
    hooks: ProcessHooks | None = None,
) -> ProcessFactory:
    """Assemble the collaborators shared by every optimization process."""
    settings = config.settings
    return ProcessFactory(
        settings=settings,
        session_factory=config.session_factory,
        api=api
        or OptimizationApiClient(
            api_endpoint=settings.api_endpoint,
            api_key=settings.api_key,
            timeout_seconds=settings.api_timeout_seconds,
        ),
        queue=OptimizationQueue(config.session_factory),
        filesystem=Filesystem(root=settings.media_root),
        hooks=hooks or ProcessHooks(),
    )


def include_routers(app: FastAPI, config: AppConfig, factory: ProcessFactory | None = None) -> None:
    """Mount routers and attach services."""
    app.state.config = config
    app.state.process_factory = factory or build_process_factory(config)
    app.include_router(media_router)
