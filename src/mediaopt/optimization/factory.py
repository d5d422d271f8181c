"""Build optimization processes for a (context, media id) pair."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from ..config import OptimizerSettings, ProcessSettings
from ..exceptions import InvalidMedia
from ..media.context import Context, build_context
from ..media.filesystem import Filesystem
from ..media.media import MediaSource, create_media
from ..providers.api_client import OptimizationApi
from ..queue.jobs import JobQueue
from ..repositories.media_repository import MediaRepository
from ..repositories.optimization_repository import OptimizationRepository
from .data import OptimizationData
from .hooks import ProcessHooks
from .locks import TransientStore
from .process import OptimizationProcess


@dataclass(slots=True)
class ProcessFactory:
    """Wires a media, its data store and the shared collaborators into a process."""

    settings: OptimizerSettings
    session_factory: Callable[[], Session]
    api: OptimizationApi
    queue: JobQueue
    filesystem: Filesystem = field(default_factory=Filesystem)
    hooks: ProcessHooks = field(default_factory=ProcessHooks)
    lock_store: TransientStore | None = None
    _contexts: dict[str, Context] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.lock_store is None:
            self.lock_store = TransientStore(self.session_factory)

    @property
    def process_settings(self) -> ProcessSettings:
        return ProcessSettings.from_settings(self.settings)

    def get_context(self, name: str) -> Context:
        if name not in self._contexts:
            self._contexts[name] = build_context(name, self.settings)
        return self._contexts[name]

    def get_media(self, context: str, media_id: int) -> MediaSource:
        repository = MediaRepository(self.session_factory)
        record = repository.find(media_id)
        if record is None or record.context != context:
            raise InvalidMedia()
        try:
            context_instance = self.get_context(context)
        except ValueError as exc:
            raise InvalidMedia() from exc
        return create_media(
            record,
            context=context_instance,
            repository=repository,
            filesystem=self.filesystem,
            media_root=self.settings.media_root,
            backup_root=self.settings.backup_root,
        )

    def get_process(self, context: str, media_id: int) -> OptimizationProcess:
        media = self.get_media(context, media_id)
        data = OptimizationData(OptimizationRepository(self.session_factory), media.get_id())
        return OptimizationProcess(
            media,
            data,
            settings=self.process_settings,
            filesystem=self.filesystem,
            api=self.api,
            queue=self.queue,
            lock_store=self.lock_store,
            hooks=self.hooks,
        )


__all__ = ["ProcessFactory"]
