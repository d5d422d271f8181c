"""FastAPI application entry point."""

from __future__ import annotations

from fastapi import FastAPI

from .config import AppConfig, load_config
from .dependencies import include_routers
from .logging import configure_logging
from .optimization.factory import ProcessFactory


def create_app(config: AppConfig | None = None, factory: ProcessFactory | None = None) -> FastAPI:
    """Build FastAPI instance with configured dependencies."""
    configure_logging()
    cfg = config or load_config()
    app = FastAPI(title="mediaopt")
    include_routers(app, cfg, factory)
    return app
