from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import inspect

from mediaopt.config import OptimizerSettings, ProcessSettings, load_config
from mediaopt.domain.models import NextGenFormat


@pytest.mark.parametrize(("value", "expected"), [(7, 2), (-1, 2), ("abc", 2), ("1", 1), (0, 0)])
def test_invalid_level_resets_to_default(value, expected) -> None:
    assert OptimizerSettings(optimization_level=value).optimization_level == expected


def test_invalid_format_resets_to_webp() -> None:
    assert OptimizerSettings(optimization_format="gif").optimization_format == "webp"
    assert OptimizerSettings(optimization_format="avif").optimization_format == "avif"


def test_negative_resize_width_disables_resizing() -> None:
    settings = OptimizerSettings(resize_larger=True, resize_larger_w=-5)

    assert settings.resize_larger_w == 0
    assert not settings.resizing_enabled


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("MEDIAOPT_OPTIMIZATION_LEVEL", "1")
    monkeypatch.setenv("MEDIAOPT_OPTIMIZATION_FORMAT", "avif")
    monkeypatch.setenv("MEDIAOPT_DISALLOWED_SIZES", '["medium"]')

    settings = OptimizerSettings()

    assert settings.optimization_level == 1
    assert settings.optimization_format == "avif"
    assert settings.disallowed_sizes == ["medium"]


def test_process_settings_formats() -> None:
    off = ProcessSettings.from_settings(OptimizerSettings(optimization_format="off"))
    avif = ProcessSettings.from_settings(OptimizerSettings(optimization_format="avif", lossless=True))

    assert off.formats == ()
    assert off.current_format is NextGenFormat.WEBP
    assert avif.formats == (NextGenFormat.AVIF,)
    assert avif.current_format is NextGenFormat.AVIF
    assert avif.lossless is True


def test_load_config_creates_storage_and_tables(tmp_path: Path) -> None:
    settings = OptimizerSettings(
        database_url=f"sqlite:///{tmp_path / 'app.db'}",
        media_root=tmp_path / "media",
        backup_root=tmp_path / "backup",
    )

    config = load_config(settings)

    assert (tmp_path / "media").is_dir()
    assert (tmp_path / "backup").is_dir()
    assert {"media", "media_optimization", "transient", "optimization_job"} <= set(
        inspect(config.engine).get_table_names()
    )
    config.engine.dispose()
