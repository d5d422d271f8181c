"""Context policies: what a media source is allowed to do."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from ..config import OptimizerSettings

LIBRARY_CONTEXT = "wp"
FOLDERS_CONTEXT = "custom-folders"

IMAGE_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
LIBRARY_MIME_TYPES = IMAGE_MIME_TYPES | {"application/pdf"}


@dataclass(frozen=True, slots=True)
class Context:
    name: str
    backup: bool
    resize: bool
    resizing_threshold: int
    network_wide: bool = False
    thumbnail_sizes: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    allowed_mime_types: frozenset[str] = IMAGE_MIME_TYPES
    disallowed_sizes: frozenset[str] = frozenset()

    def can_backup(self) -> bool:
        return self.backup

    def can_resize(self) -> bool:
        return self.resize and self.resizing_threshold > 0

    def get_resizing_threshold(self) -> int:
        return self.resizing_threshold

    def is_network_wide(self) -> bool:
        return self.network_wide

    def get_thumbnail_sizes(self) -> Mapping[str, Mapping[str, Any]]:
        return self.thumbnail_sizes

    def get_allowed_mime_types(self) -> frozenset[str]:
        return self.allowed_mime_types


def build_context(name: str, settings: OptimizerSettings) -> Context:
    """Return the policy object for ``name`` ("wp" or "custom-folders")."""
    if name == LIBRARY_CONTEXT:
        return Context(
            name=LIBRARY_CONTEXT,
            backup=settings.backup,
            resize=settings.resizing_enabled,
            resizing_threshold=settings.resize_larger_w,
            network_wide=settings.network_wide,
            thumbnail_sizes={key: dict(value) for key, value in settings.thumbnail_sizes.items()},
            allowed_mime_types=LIBRARY_MIME_TYPES,
            disallowed_sizes=frozenset(settings.disallowed_sizes),
        )
    if name == FOLDERS_CONTEXT:
        # Custom folders keep their files as uploaded: no thumbnails, no resizing.
        return Context(
            name=FOLDERS_CONTEXT,
            backup=settings.backup,
            resize=False,
            resizing_threshold=0,
            network_wide=True,
            allowed_mime_types=IMAGE_MIME_TYPES,
        )
    raise ValueError(f"Unsupported context '{name}'")
