"""Application configuration.

``OptimizerSettings`` reads ``MEDIAOPT_*`` environment variables. Values that
fail validation fall back to their reset value instead of raising, the same
way the options screen treats a bad submission. ``load_config`` turns the
settings into an :class:`AppConfig` holding the database engine and session
factory.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db.db_init import init_db
from .domain.models import NextGenFormat

DEFAULT_OPTIMIZATION_LEVEL = 2
DEFAULT_THUMBNAIL_SIZES: Dict[str, Dict[str, Any]] = {
    "thumbnail": {"width": 150, "height": 150, "crop": True},
    "medium": {"width": 300, "height": 300, "crop": False},
    "medium_large": {"width": 768, "height": 0, "crop": False},
    "large": {"width": 1024, "height": 1024, "crop": False},
}


class OptimizerSettings(BaseSettings):
    """Plugin-wide options."""

    model_config = SettingsConfigDict(env_prefix="MEDIAOPT_")

    database_url: str = Field(
        default="sqlite:///mediaopt.db",
        description="SQLAlchemy URL of the media, optimization data, lock and queue tables.",
    )
    media_root: Path = Field(
        default=Path("./var/uploads"),
        description="Root directory of the media library files.",
    )
    backup_root: Path = Field(
        default=Path("./var/backup"),
        description="Directory receiving backups of the original files.",
    )
    api_endpoint: str = Field(
        default="https://app.imagify.io/api/",
        description="Base URL of the remote optimization API.",
    )
    api_key: str = Field(default="", description="Bearer token for the remote API.")
    api_timeout_seconds: float = Field(default=45.0, gt=0)
    optimization_level: int = Field(
        default=DEFAULT_OPTIMIZATION_LEVEL,
        description="Default level: 0 normal (lossless), 1 aggressive, 2 ultra.",
    )
    lossless: bool = Field(default=False, description="Force level 0 when no level is given.")
    backup: bool = Field(default=True, description="Keep a backup of the original files.")
    resize_larger: bool = Field(default=False, description="Resize main files wider than the threshold.")
    resize_larger_w: int = Field(default=2560, description="Resizing threshold in pixels.")
    optimization_format: Literal["off", "webp", "avif"] = Field(
        default="webp",
        description="Next-gen format generated alongside each optimized image.",
    )
    keep_large_next_gen: bool = Field(
        default=True,
        description="Keep next-gen files even when they are heavier than their source.",
    )
    disallowed_sizes: List[str] = Field(
        default_factory=list,
        description="Thumbnail sizes that must not be optimized.",
    )
    thumbnail_sizes: Dict[str, Dict[str, Any]] = Field(
        default_factory=lambda: dict(DEFAULT_THUMBNAIL_SIZES),
        description="Registered thumbnail sizes: name -> width/height/crop.",
    )
    lock_ttl_seconds: int = Field(default=10 * 60, ge=1)
    network_wide: bool = Field(default=False, description="Store locks network-wide.")
    bulk_limit: int = Field(default=10_000, ge=1)
    worker_poll_interval_ms: int = Field(default=1_000, ge=10)
    worker_stale_after_s: int = Field(
        default=3_600, ge=1, description="Seconds before a running unit is handed out again."
    )

    @field_validator("optimization_level", mode="before")
    @classmethod
    def _reset_invalid_level(cls, value: Any) -> int:
        try:
            level = int(value)
        except (TypeError, ValueError):
            return DEFAULT_OPTIMIZATION_LEVEL
        if level < 0 or level > 2:
            return DEFAULT_OPTIMIZATION_LEVEL
        return level

    @field_validator("optimization_format", mode="before")
    @classmethod
    def _reset_invalid_format(cls, value: Any) -> str:
        if value not in ("off", "webp", "avif"):
            return "webp"
        return value

    @field_validator("resize_larger_w", mode="before")
    @classmethod
    def _positive_width(cls, value: Any) -> int:
        try:
            width = int(value)
        except (TypeError, ValueError):
            return 0
        return max(width, 0)

    @property
    def resizing_enabled(self) -> bool:
        return self.resize_larger and self.resize_larger_w > 0


@dataclass(frozen=True, slots=True)
class ProcessSettings:
    """Options resolved once and handed to each optimization process."""

    optimization_level: int = DEFAULT_OPTIMIZATION_LEVEL
    lossless: bool = False
    formats: tuple[NextGenFormat, ...] = (NextGenFormat.WEBP,)
    current_format: NextGenFormat = NextGenFormat.WEBP
    keep_large_next_gen: bool = True
    lock_ttl_seconds: int = 10 * 60

    @classmethod
    def from_settings(cls, settings: OptimizerSettings) -> ProcessSettings:
        if settings.optimization_format == "off":
            formats: tuple[NextGenFormat, ...] = ()
        else:
            formats = (NextGenFormat(settings.optimization_format),)
        current = NextGenFormat.AVIF if settings.optimization_format == "avif" else NextGenFormat.WEBP
        return cls(
            optimization_level=settings.optimization_level,
            lossless=settings.lossless,
            formats=formats,
            current_format=current,
            keep_large_next_gen=settings.keep_large_next_gen,
            lock_ttl_seconds=settings.lock_ttl_seconds,
        )


@dataclass(slots=True)
class AppConfig:
    settings: OptimizerSettings
    engine: Engine
    session_factory: sessionmaker[Session]

    @property
    def process_settings(self) -> ProcessSettings:
        return ProcessSettings.from_settings(self.settings)


def load_config(settings: OptimizerSettings | None = None) -> AppConfig:
    """Build the application configuration (SQLite by default)."""
    settings = settings or OptimizerSettings()
    settings.media_root.mkdir(parents=True, exist_ok=True)
    settings.backup_root.mkdir(parents=True, exist_ok=True)

    engine = create_engine(settings.database_url, future=True)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)
    init_db(engine)

    return AppConfig(settings=settings, engine=engine, session_factory=session_factory)
