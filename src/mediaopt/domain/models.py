"""Domain models for the media optimization process.

Lightweight dataclasses and enums shared by the process, the data store, the
queue and the HTTP layer. Persistence lives in ``repositories``; these types
carry no I/O.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping


class OptimizationStatus(str, Enum):
    """Outcome stored for each size of a media."""

    SUCCESS = "success"
    ALREADY_OPTIMIZED = "already_optimized"
    ERROR = "error"


class LockAction(str, Enum):
    """Action tag stored behind a media lock."""

    OPTIMIZING = "optimizing"
    RESTORING = "restoring"

    @classmethod
    def normalize(cls, action: str | LockAction | None) -> LockAction:
        value = action.value if isinstance(action, LockAction) else action
        if value in ("restore", "restoring"):
            return cls.RESTORING
        return cls.OPTIMIZING


class NextGenFormat(str, Enum):
    """Next-gen formats the remote API can convert to."""

    WEBP = "webp"
    AVIF = "avif"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"


class OptimizationLevel(int, Enum):
    """Compression aggressiveness sent to the remote API."""

    NORMAL = 0
    AGGRESSIVE = 1
    ULTRA = 2

    @property
    def api_name(self) -> str:
        return self.name.lower()


@dataclass(slots=True)
class SizeFile:
    """One physical file of a media ("full", a thumbnail, ...)."""

    path: Path
    mime_type: str
    disabled: bool = False
    width: int = 0
    height: int = 0
    crop: bool | None = None


@dataclass(slots=True)
class SizeOptimizationData:
    """Stored outcome for one size; always replaced wholesale."""

    level: int
    status: OptimizationStatus
    success: bool
    error: str | None = None
    original_size: int | None = None
    optimized_size: int | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status.value
        if self.message is None:
            payload.pop("message")
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> SizeOptimizationData:
        return cls(
            level=int(payload.get("level") or 0),
            status=OptimizationStatus(payload.get("status") or OptimizationStatus.ERROR.value),
            success=bool(payload.get("success")),
            error=payload.get("error"),
            original_size=payload.get("original_size"),
            optimized_size=payload.get("optimized_size"),
            message=payload.get("message"),
        )


@dataclass(slots=True)
class OptimizedFile:
    """Success payload returned by the remote optimization API.

    A non-empty ``message`` flags an informational outcome (the file came back
    untouched) rather than a regular compression.
    """

    original_size: int = 0
    new_size: int = 0
    percent: float = 0.0
    message: str | None = None


@dataclass(slots=True)
class ResizeOutcome:
    """Result of :meth:`OptimizationProcess.maybe_resize`."""

    resized: bool = False
    backuped: bool = False
    file_size: int = 0


@dataclass(slots=True)
class MediaRecord:
    """Attachment row from the media library (the CMS side of a media)."""

    id: int
    context: str
    path: Path
    mime_type: str
    width: int = 0
    height: int = 0
    original_path: Path | None = None
    thumbnails: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass(slots=True)
class OptimizationJob:
    """One queued unit: every size of one media, processed in order."""

    media_id: int
    context: str
    sizes: list[str]
    optimization_level: int
    data: dict[str, Any] = field(default_factory=dict)
    id: int | None = None
    status: str = "pending"
    error: str | None = None


__all__ = [
    "LockAction",
    "MediaRecord",
    "NextGenFormat",
    "OptimizationJob",
    "OptimizationLevel",
    "OptimizationStatus",
    "OptimizedFile",
    "ResizeOutcome",
    "SizeFile",
    "SizeOptimizationData",
]
