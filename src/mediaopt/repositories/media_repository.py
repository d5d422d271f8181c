"""Persistence layer for media library records."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

from sqlalchemy.orm import Session

from ..db.db_models import MediaModel
from ..domain.models import MediaRecord
from ..exceptions import handle_sqlalchemy_errors


class MediaRepository:
    """Attachment rows: main file path, mime type, dimensions and thumbnails."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def add(
        self,
        *,
        context: str,
        path: Path,
        mime_type: str,
        width: int = 0,
        height: int = 0,
        original_path: Path | None = None,
        thumbnails: dict[str, dict[str, Any]] | None = None,
        media_id: int | None = None,
    ) -> int:
        with handle_sqlalchemy_errors(entity="media"), self._session_factory() as session:
            model = MediaModel(
                id=media_id,
                context=context,
                path=str(path),
                original_path=str(original_path) if original_path else None,
                mime_type=mime_type,
                width=width,
                height=height,
                thumbnails=dict(thumbnails or {}),
            )
            session.add(model)
            session.commit()
            return model.id

    def get(self, media_id: int) -> MediaRecord:
        with self._session_factory() as session:
            model = session.get(MediaModel, media_id)
            if model is None:
                raise KeyError(f"Media '{media_id}' not found")
            return self._to_domain(model)

    def find(self, media_id: int) -> MediaRecord | None:
        try:
            return self.get(media_id)
        except KeyError:
            return None

    def update_dimensions(self, media_id: int, width: int, height: int) -> None:
        with handle_sqlalchemy_errors(entity="media"), self._session_factory() as session:
            model = session.get(MediaModel, media_id)
            if model is None:
                raise KeyError(f"Media '{media_id}' not found")
            model.width = width
            model.height = height
            session.commit()

    def update_thumbnails(self, media_id: int, thumbnails: dict[str, dict[str, Any]]) -> None:
        with handle_sqlalchemy_errors(entity="media"), self._session_factory() as session:
            model = session.get(MediaModel, media_id)
            if model is None:
                raise KeyError(f"Media '{media_id}' not found")
            model.thumbnails = dict(thumbnails)
            session.commit()

    @staticmethod
    def _to_domain(model: MediaModel) -> MediaRecord:
        return MediaRecord(
            id=model.id,
            context=model.context,
            path=Path(model.path),
            mime_type=model.mime_type,
            width=model.width,
            height=model.height,
            original_path=Path(model.original_path) if model.original_path else None,
            thumbnails={name: dict(data) for name, data in (model.thumbnails or {}).items()},
        )
