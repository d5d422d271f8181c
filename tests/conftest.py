from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from mediaopt.config import AppConfig, OptimizerSettings
from mediaopt.db.db_init import init_db
from mediaopt.media.filesystem import Filesystem
from mediaopt.optimization.factory import ProcessFactory
from mediaopt.optimization.locks import TransientStore
from mediaopt.queue.jobs import OptimizationQueue
from mediaopt.repositories.media_repository import MediaRepository
from tests.helpers.media import FakeClock
from tests.mocks.api import FakeOptimizationApi


@pytest.fixture()
def media_root(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture()
def backup_root(tmp_path: Path) -> Path:
    root = tmp_path / "backup"
    root.mkdir()
    return root


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    # A file database: worker threads and the test client need a shared store.
    return f"sqlite:///{tmp_path / 'mediaopt.db'}"


@pytest.fixture()
def session_factory(database_url: str):
    engine = create_engine(database_url, future=True)
    init_db(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture()
def settings(database_url: str, media_root: Path, backup_root: Path) -> OptimizerSettings:
    return OptimizerSettings(
        database_url=database_url,
        media_root=media_root,
        backup_root=backup_root,
        optimization_level=2,
        optimization_format="webp",
        backup=True,
    )


@pytest.fixture()
def app_config(settings: OptimizerSettings, session_factory) -> AppConfig:
    return AppConfig(settings=settings, engine=session_factory.kw["bind"], session_factory=session_factory)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_api() -> FakeOptimizationApi:
    return FakeOptimizationApi()


@pytest.fixture()
def media_repo(session_factory) -> MediaRepository:
    return MediaRepository(session_factory)


@pytest.fixture()
def queue(session_factory) -> OptimizationQueue:
    return OptimizationQueue(session_factory)


@pytest.fixture()
def process_factory(settings, session_factory, fake_api, queue, clock, media_root) -> ProcessFactory:
    return ProcessFactory(
        settings=settings,
        session_factory=session_factory,
        api=fake_api,
        queue=queue,
        filesystem=Filesystem(root=media_root),
        lock_store=TransientStore(session_factory, clock=clock),
    )
