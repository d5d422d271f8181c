"""HTTP routes."""

from .media_api import router

__all__ = ["router"]
