"""Filesystem primitives used by the optimization process.

Every method reports failure through its return value (``False``/``None``)
so the process decides which error to record; nothing here raises for a
missing or unwritable file.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from PIL import Image, UnidentifiedImageError

FILE_PERMISSIONS = 0o644


@dataclass(slots=True)
class Filesystem:
    """Thin wrapper over :mod:`pathlib`/:mod:`shutil` with Pillow probing."""

    root: Path | None = None
    log: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def exists(self, path: Path | str | None) -> bool:
        return bool(path) and Path(path).exists()

    def is_file(self, path: Path | str) -> bool:
        return Path(path).is_file()

    def is_writable(self, path: Path | str) -> bool:
        return os.access(Path(path), os.W_OK)

    def size(self, path: Path | str) -> int:
        try:
            return Path(path).stat().st_size
        except OSError:
            return 0

    def dir_path(self, path: Path | str) -> Path:
        return Path(path).parent

    def make_dir(self, path: Path | str) -> bool:
        try:
            Path(path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self.log.warning("filesystem.mkdir.failed", extra={"path": str(path), "error": str(exc)})
            return False
        return True

    def copy(self, source: Path | str, destination: Path | str, overwrite: bool = False) -> bool:
        source, destination = Path(source), Path(destination)
        if destination.exists() and not overwrite:
            return False
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
        except OSError as exc:
            self.log.warning(
                "filesystem.copy.failed",
                extra={"source": str(source), "destination": str(destination), "error": str(exc)},
            )
            return False
        return True

    def put_contents(self, path: Path | str, content: bytes) -> bool:
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as exc:
            self.log.warning("filesystem.put_contents.failed", extra={"path": str(target), "error": str(exc)})
            return False
        return True

    def move(self, source: Path | str, destination: Path | str, overwrite: bool = False) -> bool:
        source, destination = Path(source), Path(destination)
        if source == destination:
            return True
        if destination.exists() and not overwrite:
            return False
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            os.replace(source, destination)
        except OSError as exc:
            self.log.warning(
                "filesystem.move.failed",
                extra={"source": str(source), "destination": str(destination), "error": str(exc)},
            )
            return False
        return True

    def delete(self, path: Path | str | None) -> bool:
        """Remove a file; a path that is already gone counts as deleted."""
        if not path:
            return True
        target = Path(path)
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink(missing_ok=True)
        except OSError as exc:
            self.log.warning("filesystem.delete.failed", extra={"path": str(target), "error": str(exc)})
            return False
        return True

    def chmod_file(self, path: Path | str) -> bool:
        try:
            os.chmod(path, FILE_PERMISSIONS)
        except OSError:
            return False
        return True

    def make_path_relative(self, path: Path | str) -> str:
        target = Path(path)
        if self.root is not None:
            try:
                return str(target.relative_to(self.root))
            except ValueError:
                pass
        return str(target)

    def get_image_size(self, path: Path | str) -> tuple[int, int] | None:
        try:
            with Image.open(path) as image:
                return image.size
        except (OSError, UnidentifiedImageError):
            return None

    def is_animated_gif(self, path: Path | str) -> bool | None:
        """``None`` when the file cannot be read (yet)."""
        try:
            with Image.open(path) as image:
                if image.format != "GIF":
                    return False
                return bool(getattr(image, "is_animated", False))
        except (OSError, UnidentifiedImageError):
            return None
