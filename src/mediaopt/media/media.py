"""Media sources: the files of one media item and the policy that applies to them.

``LibraryMedia`` is an attachment of the media library (main file plus
generated thumbnails, possibly a down-scaled "full" file next to the
original upload). ``FolderMedia`` is a single file picked from a custom
folder. Both satisfy :class:`MediaSource`; :func:`create_media` picks one
by context name.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..domain.models import MediaRecord, SizeFile
from ..exceptions import ResizeFailure, ThumbnailsNotGenerated
from ..repositories.media_repository import MediaRepository
from .context import FOLDERS_CONTEXT, LIBRARY_CONTEXT, Context
from .file import File
from .filesystem import Filesystem

logger = logging.getLogger(__name__)


@runtime_checkable
class MediaSource(Protocol):
    """Capabilities the optimization process needs from a media."""

    def get_id(self) -> int: ...

    def get_context(self) -> str: ...

    def get_context_instance(self) -> Context: ...

    def is_valid(self) -> bool: ...

    def is_supported(self) -> bool: ...

    def is_image(self) -> bool: ...

    def get_media_files(self) -> dict[str, SizeFile]: ...

    def get_raw_original_path(self) -> Path | None: ...

    def get_original_path(self) -> Path | None: ...

    def get_raw_fullsize_path(self) -> Path | None: ...

    def get_raw_backup_path(self) -> Path | None: ...

    def get_backup_path(self) -> Path | None: ...

    def has_backup(self) -> bool: ...

    def get_allowed_mime_types(self) -> frozenset[str]: ...

    def update_dimensions(self) -> None: ...

    def generate_thumbnails(self) -> bool: ...


class _BaseMedia:
    def __init__(
        self,
        record: MediaRecord,
        *,
        context: Context,
        repository: MediaRepository,
        filesystem: Filesystem,
        media_root: Path,
        backup_root: Path,
    ) -> None:
        self.record = record
        self.context = context
        self.repository = repository
        self.filesystem = filesystem
        self.media_root = Path(media_root)
        self.backup_root = Path(backup_root)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.record.id}, context={self.context.name!r})"

    def get_id(self) -> int:
        return self.record.id

    def get_context(self) -> str:
        return self.context.name

    def get_context_instance(self) -> Context:
        return self.context

    def is_valid(self) -> bool:
        return self.record.id > 0 and bool(self.record.path)

    def is_image(self) -> bool:
        return self.record.mime_type.startswith("image/")

    def is_supported(self) -> bool:
        return self.record.mime_type in self.get_allowed_mime_types()

    def get_allowed_mime_types(self) -> frozenset[str]:
        return self.context.get_allowed_mime_types()

    def get_raw_fullsize_path(self) -> Path | None:
        return self.record.path or None

    def get_raw_original_path(self) -> Path | None:
        return self.record.original_path or self.record.path or None

    def get_original_path(self) -> Path | None:
        path = self.get_raw_original_path()
        return path if self.filesystem.exists(path) else None

    def get_backup_path(self) -> Path | None:
        path = self.get_raw_backup_path()
        return path if self.filesystem.exists(path) else None

    def has_backup(self) -> bool:
        return self.get_backup_path() is not None

    def _relative_to_root(self, path: Path) -> Path:
        try:
            return path.relative_to(self.media_root)
        except ValueError:
            return Path(path.name)

    def update_dimensions(self) -> None:
        path = self.get_raw_fullsize_path()
        if not self.is_image() or path is None:
            return
        size = self.filesystem.get_image_size(path)
        if not size:
            return
        width, height = size
        self.repository.update_dimensions(self.record.id, width, height)
        self.record.width, self.record.height = width, height


class LibraryMedia(_BaseMedia):
    """An attachment of the media library."""

    def get_raw_backup_path(self) -> Path | None:
        original = self.get_raw_original_path()
        if original is None:
            return None
        return self.backup_root / self._relative_to_root(original)

    def get_media_files(self) -> dict[str, SizeFile]:
        fullsize = self.get_raw_fullsize_path()
        if fullsize is None:
            return {}
        files = {
            "full": SizeFile(
                path=fullsize,
                mime_type=self.record.mime_type,
                width=self.record.width,
                height=self.record.height,
            )
        }
        if not self.is_image():
            return files

        registered = self.context.get_thumbnail_sizes()
        for name, data in self.record.thumbnails.items():
            if not data.get("file"):
                continue
            crop = registered.get(name, {}).get("crop")
            files[name] = SizeFile(
                path=fullsize.parent / data["file"],
                mime_type=data.get("mime_type") or self.record.mime_type,
                disabled=name in self.context.disallowed_sizes,
                width=int(data.get("width") or 0),
                height=int(data.get("height") or 0),
                crop=None if crop is None else bool(crop),
            )
        return files

    def generate_thumbnails(self) -> bool:
        """Rebuild the scaled full size and every registered thumbnail from the original."""
        if not self.is_image():
            return True
        original = self.get_raw_original_path()
        fullsize = self.get_raw_fullsize_path()
        if original is None or fullsize is None or not self.filesystem.exists(original):
            raise ThumbnailsNotGenerated()

        source = File(original, self.filesystem)
        try:
            if fullsize != original:
                dimensions = source.get_dimensions()
                threshold = self.context.get_resizing_threshold() or dimensions[0]
                if dimensions[0] > threshold:
                    resized = source.resize(dimensions, threshold)
                    if not self.filesystem.move(resized, fullsize, overwrite=True):
                        raise ThumbnailsNotGenerated()
                elif not self.filesystem.copy(original, fullsize, overwrite=True):
                    raise ThumbnailsNotGenerated()

            base = File(fullsize, self.filesystem)
            width, height = base.get_dimensions()
            thumbnails: dict[str, dict] = {}
            for name, size in self.context.get_thumbnail_sizes().items():
                max_w = int(size.get("width") or 0)
                max_h = int(size.get("height") or 0)
                if (max_w and width <= max_w) and (not max_h or height <= max_h):
                    continue
                tmp = fullsize.with_name(f"{fullsize.stem}-{name}{fullsize.suffix}")
                base.create_thumbnail(path=tmp, width=max_w, height=max_h, crop=bool(size.get("crop")))
                thumb_w, thumb_h = File(tmp, self.filesystem).get_dimensions()
                target = fullsize.with_name(f"{fullsize.stem}-{thumb_w}x{thumb_h}{fullsize.suffix}")
                self.filesystem.move(tmp, target, overwrite=True)
                thumbnails[name] = {
                    "file": target.name,
                    "width": thumb_w,
                    "height": thumb_h,
                    "mime_type": self.record.mime_type,
                }
        except ResizeFailure as exc:
            logger.warning(
                "media.thumbnails.failed",
                extra={"media_id": self.record.id, "error": str(exc)},
            )
            raise ThumbnailsNotGenerated() from exc

        self.repository.update_thumbnails(self.record.id, thumbnails)
        self.record.thumbnails = thumbnails
        self.update_dimensions()
        return True


class FolderMedia(_BaseMedia):
    """A single file from a custom folder."""

    def get_raw_backup_path(self) -> Path | None:
        path = self.get_raw_fullsize_path()
        if path is None:
            return None
        return self.backup_root / FOLDERS_CONTEXT / self._relative_to_root(path)

    def get_raw_original_path(self) -> Path | None:
        return self.get_raw_fullsize_path()

    def get_media_files(self) -> dict[str, SizeFile]:
        path = self.get_raw_fullsize_path()
        if path is None:
            return {}
        return {
            "full": SizeFile(
                path=path,
                mime_type=self.record.mime_type,
                width=self.record.width,
                height=self.record.height,
            )
        }

    def generate_thumbnails(self) -> bool:
        return True


MEDIA_CLASSES: dict[str, type[_BaseMedia]] = {
    LIBRARY_CONTEXT: LibraryMedia,
    FOLDERS_CONTEXT: FolderMedia,
}


def create_media(
    record: MediaRecord,
    *,
    context: Context,
    repository: MediaRepository,
    filesystem: Filesystem,
    media_root: Path,
    backup_root: Path,
) -> MediaSource:
    """Instantiate the media class registered for ``context.name``."""
    try:
        media_class = MEDIA_CLASSES[context.name]
    except KeyError:
        raise ValueError(f"Unsupported context '{context.name}'") from None
    return media_class(
        record,
        context=context,
        repository=repository,
        filesystem=filesystem,
        media_root=media_root,
        backup_root=backup_root,
    )
