"""Background queue of optimization units."""

from .jobs import OptimizationQueue

__all__ = ["OptimizationQueue"]
