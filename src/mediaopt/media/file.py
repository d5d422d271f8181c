"""File abstraction: one path, its type, and what can be done with it."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from PIL import Image, ImageOps, UnidentifiedImageError

from ..domain.models import NextGenFormat, OptimizedFile
from ..exceptions import BackupFailure, FileNotExists, FileNotWritable, ResizeFailure
from .filesystem import Filesystem

if TYPE_CHECKING:
    from ..providers.api_client import OptimizationApi

logger = logging.getLogger(__name__)

MIME_TYPES: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "jpe": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "avif": "image/avif",
    "pdf": "application/pdf",
}

RESIZED_SUFFIX = "-resized"


class File:
    """A file on disk handled by the optimization process."""

    def __init__(self, path: Path | str, filesystem: Filesystem | None = None) -> None:
        self.path = Path(path)
        self.filesystem = filesystem or Filesystem()

    def __repr__(self) -> str:
        return f"File({str(self.path)!r})"

    @property
    def extension(self) -> str:
        return self.path.suffix.lstrip(".").lower()

    @property
    def mime_type(self) -> str | None:
        return MIME_TYPES.get(self.extension)

    def is_image(self) -> bool:
        mime = self.mime_type
        return bool(mime) and mime.startswith("image/")

    def is_pdf(self) -> bool:
        return self.mime_type == "application/pdf"

    def is_supported(self, allowed_mime_types: set[str] | frozenset[str]) -> bool:
        mime = self.mime_type
        return mime is not None and mime in allowed_mime_types

    def get_dimensions(self) -> tuple[int, int]:
        if not self.is_image():
            return 0, 0
        return self.filesystem.get_image_size(self.path) or (0, 0)

    def get_path_to_nextgen(self, format: NextGenFormat | str | None) -> Path | None:
        """``photo.jpg`` -> ``photo.jpg.webp``."""
        if not format:
            return None
        value = format.value if isinstance(format, NextGenFormat) else str(format)
        return self.path.with_name(f"{self.path.name}.{value}")

    def is_animated_gif(self) -> bool | None:
        return self.filesystem.is_animated_gif(self.path)

    def backup(self, backup_path: Path | str | None, backup_source: Path | str | None = None) -> bool:
        """Copy the original bytes to ``backup_path``.

        An existing backup is never overwritten: it holds the oldest bytes
        known for this media.
        """
        if not backup_path:
            raise BackupFailure("no backup path available")
        source = Path(backup_source) if backup_source else self.path
        if not self.filesystem.exists(source):
            raise BackupFailure(f"the file {self.filesystem.make_path_relative(source)} does not exist")
        if self.filesystem.exists(backup_path):
            return True
        if not self.filesystem.copy(source, backup_path):
            raise BackupFailure(
                f"could not copy {self.filesystem.make_path_relative(source)} "
                f"to {self.filesystem.make_path_relative(backup_path)}"
            )
        return True

    def resize(self, dimensions: tuple[int, int], max_width: int) -> Path:
        """Write a copy resized to ``max_width`` next to the file and return its path."""
        width, height = dimensions
        if not width or not height or max_width <= 0:
            raise ResizeFailure("invalid dimensions")
        new_height = max(1, round(height * max_width / width))
        destination = self.path.with_name(f"{self.path.stem}{RESIZED_SUFFIX}{self.path.suffix}")
        try:
            with Image.open(self.path) as image:
                exif = image.info.get("exif")
                resized = image.resize((max_width, new_height), Image.LANCZOS)
                save_kwargs = {"format": image.format}
                if exif:
                    save_kwargs["exif"] = exif
                resized.save(destination, **save_kwargs)
        except (OSError, UnidentifiedImageError, ValueError) as exc:
            raise ResizeFailure(str(exc)) from exc
        return destination

    def create_thumbnail(self, *, path: Path | str, width: int, height: int, crop: bool) -> Path:
        """Render a thumbnail of this file to ``path``.

        A zero ``width`` or ``height`` means "unconstrained" on that axis.
        """
        destination = Path(path)
        try:
            with Image.open(self.path) as image:
                source_format = image.format
                target_w = width or image.width
                target_h = height or image.height
                if crop and width and height:
                    thumb = ImageOps.fit(image, (width, height), Image.LANCZOS)
                else:
                    thumb = image.copy()
                    thumb.thumbnail((target_w, target_h), Image.LANCZOS)
                thumb.save(destination, format=source_format)
        except (OSError, UnidentifiedImageError, ValueError) as exc:
            raise ResizeFailure(str(exc)) from exc
        return destination

    def optimize(
        self,
        api: OptimizationApi,
        *,
        backup: bool = False,
        backup_path: Path | str | None = None,
        backup_source: Path | str | None = None,
        optimization_level: int = 2,
        convert: NextGenFormat | str | None = None,
        keep_exif: bool = True,
        context: str = "wp",
        original_size: int = 0,
    ) -> OptimizedFile:
        """Send the file to the remote API and store the bytes it returns.

        With ``convert`` the output goes to the next-gen path and the file
        itself is left untouched. ``original_size`` is the byte count before a
        resize; when given it replaces the size the API saw.
        """
        if not self.filesystem.exists(self.path):
            raise FileNotExists(self.filesystem.make_path_relative(self.path))

        if backup:
            self.backup(backup_path, backup_source)

        fmt = NextGenFormat(convert) if convert else None
        result = api.upload_image(
            self.path,
            optimization_level=optimization_level,
            keep_exif=keep_exif,
            convert=fmt,
            context=context,
        )

        if result.message is None and result.content is not None:
            destination = self.get_path_to_nextgen(fmt) if fmt else self.path
            if not self.filesystem.put_contents(destination, result.content):
                raise FileNotWritable(self.filesystem.make_path_relative(destination))
            logger.debug(
                "media.file.optimized",
                extra={"path": str(destination), "new_size": result.new_size},
            )

        source_size = original_size or result.original_size
        percent = result.percent
        if original_size and source_size:
            percent = round((1 - result.new_size / source_size) * 100, 2)
        return OptimizedFile(
            original_size=source_size,
            new_size=result.new_size,
            percent=percent,
            message=result.message,
        )
