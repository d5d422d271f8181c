"""Optimization data store: the per-size outcome records of one media."""

from __future__ import annotations

from typing import Any

from ..domain.models import OptimizationStatus, SizeOptimizationData
from ..repositories.optimization_repository import OptimizationRepository


class OptimizationData:
    """View over the stored optimization data of a single media.

    Records are replaced wholesale: :meth:`update_size_optimization_data`
    never merges fields from a previous run.
    """

    def __init__(self, repository: OptimizationRepository, media_id: int) -> None:
        self.repository = repository
        self.media_id = media_id

    def get_optimization_data(self) -> dict[str, Any]:
        stored = self.repository.get(self.media_id)
        if stored is None:
            return {"status": None, "level": None, "sizes": {}}
        return stored

    def get_size_data(self, size: str, key: str | None = None) -> Any:
        """Return the record of ``size`` (or one of its fields); ``{}``/``None`` when absent."""
        record = self.get_optimization_data()["sizes"].get(size) or {}
        if key is None:
            return record
        return record.get(key)

    def update_size_optimization_data(self, size: str, record: SizeOptimizationData | dict[str, Any]) -> None:
        payload = record.to_dict() if isinstance(record, SizeOptimizationData) else dict(record)
        if size == "full":
            # The full size drives the media-level status and level.
            self.repository.save_size(
                self.media_id,
                size,
                payload,
                level=payload.get("level"),
                status=payload.get("status"),
            )
        else:
            self.repository.save_size(self.media_id, size, payload)

    def delete_optimization_data(self) -> None:
        self.repository.delete(self.media_id)

    def get_optimization_status(self) -> str | None:
        return self.get_optimization_data()["status"]

    def get_optimization_level(self) -> int | None:
        level = self.get_optimization_data()["level"]
        return None if level is None else int(level)

    def is_optimized(self) -> bool:
        return self.get_optimization_status() == OptimizationStatus.SUCCESS.value

    def is_already_optimized(self) -> bool:
        return self.get_optimization_status() == OptimizationStatus.ALREADY_OPTIMIZED.value

    def is_error(self) -> bool:
        return self.get_optimization_status() == OptimizationStatus.ERROR.value

    def _successful_sizes(self) -> list[dict[str, Any]]:
        sizes = self.get_optimization_data()["sizes"]
        return [record for record in sizes.values() if record.get("success")]

    def get_original_size(self) -> int:
        """Sum of the original byte counts of every successfully optimized size."""
        return sum(int(record.get("original_size") or 0) for record in self._successful_sizes())

    def get_optimized_size(self) -> int:
        return sum(int(record.get("optimized_size") or 0) for record in self._successful_sizes())

    def get_saving_percent(self) -> float:
        original = self.get_original_size()
        if not original:
            return 0.0
        return round((original - self.get_optimized_size()) / original * 100, 2)
