"""Remote optimization API client."""

from .api_client import ApiImageResult, OptimizationApi, OptimizationApiClient

__all__ = ["ApiImageResult", "OptimizationApi", "OptimizationApiClient"]
