"""Selection of the media a bulk run should (re)optimize or convert."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from ..config import OptimizerSettings
from ..db.db_models import MediaModel, MediaOptimizationModel
from ..domain.models import NextGenFormat, OptimizationStatus
from ..media.context import Context
from ..media.filesystem import Filesystem
from ..media.media import MediaSource, create_media
from ..repositories.media_repository import MediaRepository
from .process import format_suffix

logger = logging.getLogger(__name__)

PROCESSED_STATUSES = (OptimizationStatus.SUCCESS.value, OptimizationStatus.ALREADY_OPTIMIZED.value)


@dataclass(slots=True)
class NextGenSelection:
    """Media ids eligible for next-gen generation, plus the ones rejected and why."""

    ids: list[int] = field(default_factory=list)
    no_file_path: list[int] = field(default_factory=list)
    no_backup: list[int] = field(default_factory=list)


def needs_optimization(
    *,
    target_level: int,
    status: str | None,
    level: int | None,
    full_error: str | None,
    has_backup: bool,
) -> bool:
    """Whether a media with this stored state belongs in a bulk run at ``target_level``."""
    if status is None:
        return True
    if status == OptimizationStatus.ERROR.value:
        return bool((full_error or "").strip())
    if status == OptimizationStatus.SUCCESS.value:
        return level != target_level and has_backup
    if status == OptimizationStatus.ALREADY_OPTIMIZED.value:
        return level is None or level < target_level
    return False


def has_successful_next_gen(sizes: dict, suffix: str) -> bool:
    return any(
        name.endswith(suffix) and (record or {}).get("status") == OptimizationStatus.SUCCESS.value
        for name, record in (sizes or {}).items()
    )


class BulkSelector:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        filesystem: Filesystem,
        context: Context,
        settings: OptimizerSettings,
    ) -> None:
        self._session_factory = session_factory
        self.filesystem = filesystem
        self.context = context
        self.settings = settings
        self._media_repository = MediaRepository(session_factory)

    def _media(self, model: MediaModel) -> MediaSource:
        return create_media(
            MediaRepository._to_domain(model),
            context=self.context,
            repository=self._media_repository,
            filesystem=self.filesystem,
            media_root=self.settings.media_root,
            backup_root=self.settings.backup_root,
        )

    def _current_suffix(self, format: NextGenFormat | str | None = None) -> str:
        if format is None:
            format = NextGenFormat.AVIF if self.settings.optimization_format == "avif" else NextGenFormat.WEBP
        return format_suffix(format)

    def get_unoptimized_media_ids(self, optimization_level: int, limit: int | None = None) -> list[int]:
        """Ids of media with no record, a different level, or a retryable error."""
        limit = limit or self.settings.bulk_limit
        stmt = (
            select(MediaModel, MediaOptimizationModel)
            .outerjoin(MediaOptimizationModel, MediaOptimizationModel.media_id == MediaModel.id)
            .where(MediaModel.context == self.context.name)
            .where(
                or_(
                    MediaOptimizationModel.media_id.is_(None),
                    MediaOptimizationModel.level != optimization_level,
                    MediaOptimizationModel.status == OptimizationStatus.ERROR.value,
                )
            )
            .order_by(MediaModel.id)
            .limit(limit)
        )
        with self._session_factory() as session:
            rows = session.execute(stmt).all()

        ids: list[int] = []
        for media_model, optimization in rows:
            media = self._media(media_model)
            file_path = media.get_raw_fullsize_path()
            if not file_path or not self.filesystem.exists(file_path):
                continue
            sizes = (optimization.sizes or {}) if optimization is not None else {}
            if not needs_optimization(
                target_level=optimization_level,
                status=optimization.status if optimization is not None else None,
                level=optimization.level if optimization is not None else None,
                full_error=(sizes.get("full") or {}).get("error"),
                has_backup=self.filesystem.exists(media.get_raw_backup_path()),
            ):
                continue
            ids.append(media_model.id)

        logger.info(
            "bulk.unoptimized.selected",
            extra={"context": self.context.name, "level": optimization_level, "count": len(ids)},
        )
        return ids

    def _processed_without_next_gen(self, suffix: str) -> list[tuple[MediaModel, MediaOptimizationModel]]:
        stmt = (
            select(MediaModel, MediaOptimizationModel)
            .join(MediaOptimizationModel, MediaOptimizationModel.media_id == MediaModel.id)
            .where(MediaModel.context == self.context.name)
            .where(MediaOptimizationModel.status.in_(PROCESSED_STATUSES))
            .order_by(MediaModel.id.desc())
        )
        with self._session_factory() as session:
            rows = session.execute(stmt).all()
        return [
            (media_model, optimization)
            for media_model, optimization in rows
            if not has_successful_next_gen(optimization.sizes, suffix)
        ]

    def get_optimized_media_ids_without_format(self, format: NextGenFormat | str | None = None) -> NextGenSelection:
        """Processed media lacking a successful next-gen size in ``format``."""
        selection = NextGenSelection()
        for media_model, _ in self._processed_without_next_gen(self._current_suffix(format)):
            media = self._media(media_model)
            if not media.get_raw_fullsize_path():
                selection.no_file_path.append(media_model.id)
                continue
            if not self.filesystem.exists(media.get_raw_backup_path()):
                # No backup, no next-gen.
                selection.no_backup.append(media_model.id)
                continue
            selection.ids.append(media_model.id)
        return selection

    def has_optimized_media_without_nextgen(self, format: NextGenFormat | str | None = None) -> int:
        return len(self._processed_without_next_gen(self._current_suffix(format)))

    def get_context_data(self) -> dict[str, int]:
        """Counters shown next to a bulk run: optimized, errors and byte totals."""
        with self._session_factory() as session:
            base = (
                select(MediaOptimizationModel)
                .join(MediaModel, MediaModel.id == MediaOptimizationModel.media_id)
                .where(MediaModel.context == self.context.name)
            )
            rows = session.execute(base).scalars().all()
            total = session.execute(
                select(func.count()).select_from(MediaModel).where(MediaModel.context == self.context.name)
            ).scalar_one()

        original_size = optimized_size = 0
        for row in rows:
            for record in (row.sizes or {}).values():
                if record.get("success"):
                    original_size += int(record.get("original_size") or 0)
                    optimized_size += int(record.get("optimized_size") or 0)
        return {
            "count_total": int(total),
            "count_optimized": sum(1 for row in rows if row.status in PROCESSED_STATUSES),
            "count_errors": sum(1 for row in rows if row.status == OptimizationStatus.ERROR.value),
            "original_size": original_size,
            "optimized_size": optimized_size,
        }


__all__ = ["BulkSelector", "NextGenSelection", "has_successful_next_gen", "needs_optimization"]
