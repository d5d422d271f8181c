"""SQLAlchemy-backed repositories."""

from .media_repository import MediaRepository
from .optimization_repository import OptimizationRepository

__all__ = ["MediaRepository", "OptimizationRepository"]
