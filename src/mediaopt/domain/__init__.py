"""Domain models shared across the optimization layers."""

from .models import (
    LockAction,
    MediaRecord,
    NextGenFormat,
    OptimizationJob,
    OptimizationLevel,
    OptimizationStatus,
    OptimizedFile,
    ResizeOutcome,
    SizeFile,
    SizeOptimizationData,
)

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
