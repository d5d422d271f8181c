"""Background workers."""

from .optimization_worker import OptimizationWorker

__all__ = ["OptimizationWorker"]
