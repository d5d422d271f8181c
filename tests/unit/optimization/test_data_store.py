from __future__ import annotations

from mediaopt.domain.models import OptimizationStatus, SizeOptimizationData
from mediaopt.optimization.data import OptimizationData
from mediaopt.repositories.optimization_repository import OptimizationRepository


def _success(level: int, original: int, optimized: int) -> SizeOptimizationData:
    return SizeOptimizationData(
        level=level,
        status=OptimizationStatus.SUCCESS,
        success=True,
        original_size=original,
        optimized_size=optimized,
    )


def test_empty_store_has_no_status(session_factory) -> None:
    data = OptimizationData(OptimizationRepository(session_factory), 7)

    assert data.get_optimization_data() == {"status": None, "level": None, "sizes": {}}
    assert data.get_size_data("full") == {}
    assert data.get_size_data("full", "success") is None
    assert not data.is_optimized()
    assert data.get_optimization_level() is None


def test_full_size_drives_media_status(session_factory) -> None:
    data = OptimizationData(OptimizationRepository(session_factory), 7)

    data.update_size_optimization_data("thumbnail", _success(1, 100, 50))
    assert data.get_optimization_status() is None

    data.update_size_optimization_data("full", _success(1, 1000, 400))

    assert data.is_optimized()
    assert data.get_optimization_level() == 1
    assert set(data.get_optimization_data()["sizes"]) == {"full", "thumbnail"}


def test_record_is_replaced_not_merged(session_factory) -> None:
    data = OptimizationData(OptimizationRepository(session_factory), 7)
    data.update_size_optimization_data("full", _success(2, 1000, 400))

    data.update_size_optimization_data(
        "full",
        SizeOptimizationData(level=2, status=OptimizationStatus.ERROR, success=False, error="boom"),
    )

    record = data.get_size_data("full")
    assert record["error"] == "boom"
    assert record["original_size"] is None
    assert record["optimized_size"] is None
    assert "message" not in record
    assert data.is_error()


def test_totals_only_count_successful_sizes(session_factory) -> None:
    data = OptimizationData(OptimizationRepository(session_factory), 7)
    data.update_size_optimization_data("full", _success(2, 1000, 400))
    data.update_size_optimization_data("thumbnail", _success(2, 200, 100))
    data.update_size_optimization_data(
        "medium",
        SizeOptimizationData(level=2, status=OptimizationStatus.ERROR, success=False, error="nope"),
    )

    assert data.get_original_size() == 1200
    assert data.get_optimized_size() == 500
    assert data.get_saving_percent() == 58.33


def test_delete_forgets_everything(session_factory) -> None:
    data = OptimizationData(OptimizationRepository(session_factory), 7)
    data.update_size_optimization_data("full", _success(2, 1000, 400))

    data.delete_optimization_data()

    assert data.get_optimization_status() is None
    assert data.get_saving_percent() == 0.0
