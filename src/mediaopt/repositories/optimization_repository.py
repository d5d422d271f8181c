"""Persistence layer for per-media optimization records."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from ..db.db_models import MediaOptimizationModel
from ..exceptions import handle_sqlalchemy_errors


class OptimizationRepository:
    """One ``media_optimization`` row per media: level, status and the sizes mapping."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, media_id: int) -> dict[str, Any] | None:
        with self._session_factory() as session:
            model = session.get(MediaOptimizationModel, media_id)
            if model is None:
                return None
            return {
                "level": model.level,
                "status": model.status,
                "sizes": {name: dict(record) for name, record in (model.sizes or {}).items()},
            }

    def save_size(
        self,
        media_id: int,
        size: str,
        record: dict[str, Any],
        *,
        level: int | None = None,
        status: str | None = None,
    ) -> None:
        """Replace the record stored for ``size``.

        ``level``/``status`` are written on the media row when given.
        """
        with handle_sqlalchemy_errors(entity="media_optimization"), self._session_factory() as session:
            model = session.get(MediaOptimizationModel, media_id)
            if model is None:
                model = MediaOptimizationModel(media_id=media_id, sizes={})
                session.add(model)
            sizes = dict(model.sizes or {})
            sizes[size] = dict(record)
            # JSON columns are not mutation-tracked: assign a new mapping.
            model.sizes = sizes
            if level is not None:
                model.level = level
            if status is not None:
                model.status = status
            model.updated_at = datetime.utcnow()
            session.commit()

    def delete(self, media_id: int) -> None:
        with handle_sqlalchemy_errors(entity="media_optimization"), self._session_factory() as session:
            model = session.get(MediaOptimizationModel, media_id)
            if model is not None:
                session.delete(model)
                session.commit()
