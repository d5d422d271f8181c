"""Database models and bootstrap helpers."""

from .db_init import init_db
from .db_models import Base, MediaModel, MediaOptimizationModel, OptimizationJobModel, TransientModel

__all__ = [
    "Base",
    "MediaModel",
    "MediaOptimizationModel",
    "OptimizationJobModel",
    "TransientModel",
    "init_db",
]
