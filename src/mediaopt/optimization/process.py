"""Optimization process of one media.

The process validates a media, locks it, expands the requested sizes with
their next-gen counterparts and queues them as one unit. The worker then
calls :meth:`OptimizationProcess.optimize_size` for each size in order; every
outcome, success or failure, is stored in the size's optimization record.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ..config import DEFAULT_OPTIMIZATION_LEVEL, ProcessSettings
from ..domain.models import (
    LockAction,
    NextGenFormat,
    OptimizationJob,
    OptimizationStatus,
    OptimizedFile,
    ResizeOutcome,
    SizeFile,
    SizeOptimizationData,
)
from ..exceptions import (
    ALREADY_COMPRESSED_MESSAGE,
    AlreadyOptimized,
    BackupFailure,
    CopyFailed,
    DestinationNotWritable,
    ExtensionNotMime,
    ExtensionNotSupported,
    FileNotDeleted,
    FileNotExists,
    FileNotWritable,
    FilesNotDeleted,
    HasNextGen,
    IdenticalLevel,
    InvalidMedia,
    IsAnimatedGif,
    MediaLocked,
    MediaNotAnImage,
    MediaNotSupported,
    MediaOptError,
    NextGenHeavy,
    NextGenNotDeleted,
    NoBackup,
    NoDimensions,
    NoExtension,
    NoNextGen,
    NonNextGenCopyFailed,
    NoPath,
    NoSizes,
    NotAFile,
    NotOptimized,
    NotProcessedYet,
    OptimizationError,
    ResizeFailure,
    ResizeMoveFailure,
    SamePath,
    SizeAlreadyOptimized,
    UnauthorizedSize,
    UnknownSize,
)
from ..media.file import File
from ..media.filesystem import Filesystem
from ..media.media import MediaSource
from ..providers.api_client import OptimizationApi
from ..queue.jobs import JobQueue
from .data import OptimizationData
from .hooks import ProcessHooks
from .locks import MediaLock, TransientStore

logger = logging.getLogger(__name__)

TMP_SUFFIX = "@mediaopt-tmp"
WEBP_SUFFIX = "@mediaopt-webp"
AVIF_SUFFIX = "@mediaopt-avif"

FORMAT_SUFFIXES: dict[NextGenFormat, str] = {
    NextGenFormat.WEBP: WEBP_SUFFIX,
    NextGenFormat.AVIF: AVIF_SUFFIX,
}


def format_suffix(format: NextGenFormat | str) -> str:
    return FORMAT_SUFFIXES[NextGenFormat(format)]


class OptimizationProcess:
    """Optimize, re-optimize, restore and convert the files of one media."""

    TMP_SUFFIX = TMP_SUFFIX
    WEBP_SUFFIX = WEBP_SUFFIX
    AVIF_SUFFIX = AVIF_SUFFIX

    def __init__(
        self,
        media: MediaSource,
        data: OptimizationData,
        *,
        settings: ProcessSettings,
        filesystem: Filesystem,
        api: OptimizationApi,
        queue: JobQueue,
        lock_store: TransientStore,
        hooks: ProcessHooks | None = None,
    ) -> None:
        self.media = media
        self.data = data
        self.settings = settings
        self.filesystem = filesystem
        self.api = api
        self.queue = queue
        self.hooks = hooks or ProcessHooks()
        self.format = format_suffix(settings.current_format)
        self._lock = MediaLock(
            lock_store,
            context=media.get_context(),
            media_id=media.get_id(),
            network_wide=media.get_context_instance().is_network_wide(),
            ttl_seconds=settings.lock_ttl_seconds,
        )

    def __repr__(self) -> str:
        return f"OptimizationProcess(media={self.media!r})"

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------
    def is_valid(self) -> bool:
        return self.media.is_valid()

    def _check_media(self) -> None:
        if not self.is_valid():
            raise InvalidMedia()
        if not self.media.is_supported():
            raise MediaNotSupported()

    def _log_extra(self, **extra: Any) -> dict[str, Any]:
        return {"media_id": self.media.get_id(), "context": self.media.get_context(), **extra}

    # ------------------------------------------------------------------
    # High-level operations
    # ------------------------------------------------------------------
    def optimize(self, optimization_level: int | None = None, args: dict[str, Any] | None = None) -> OptimizationJob:
        """Queue every size of the media."""
        self._check_media()

        if self.data.is_optimized():
            raise AlreadyOptimized()

        if self.data.is_already_optimized() and not self.has_next_gen():
            # Let a media stuck in "already optimized" gain next-gen versions.
            self.data.delete_optimization_data()
            if self.media.is_image():
                try:
                    self.delete_nextgen_files()
                except OptimizationError as exc:
                    raise NextGenNotDeleted() from exc

        args = dict(args or {})
        args["hook_suffix"] = "optimize_media"
        return self.optimize_sizes(list(self.media.get_media_files()), optimization_level, args)

    def reoptimize(self, optimization_level: int | None = None, args: dict[str, Any] | None = None) -> OptimizationJob:
        """Restore the media then queue every size with a different level."""
        self._check_media()

        if not self.data.get_optimization_status():
            raise NotProcessedYet()

        optimization_level = self.sanitize_optimization_level(optimization_level)
        if self.data.get_optimization_level() == optimization_level:
            raise IdenticalLevel()

        try:
            self.restore()
        except OptimizationError as exc:
            logger.warning("media.reoptimize.restore_failed", extra=self._log_extra(code=exc.code, error=exc.message))

        args = dict(args or {})
        args["hook_suffix"] = "reoptimize_media"
        return self.optimize_sizes(list(self.media.get_media_files()), optimization_level, args)

    def optimize_sizes(
        self,
        sizes: Iterable[str],
        optimization_level: int | None = None,
        args: dict[str, Any] | None = None,
    ) -> OptimizationJob:
        """Lock the media and queue ``sizes`` (plus their next-gen versions) as one unit."""
        self._check_media()

        sizes = list(sizes)
        if not sizes:
            raise NoSizes()

        args = dict(args or {})
        locked_here = False
        if not args.get("locked"):
            if self.is_locked():
                raise MediaLocked()
            self.lock()
            locked_here = True

        if self.media.is_image():
            sizes = self._add_next_gen_sizes(sizes)
            if self._needs_temporary_backup(sizes):
                try:
                    self.get_original_file().backup(self.media.get_raw_backup_path())
                except BackupFailure as exc:
                    logger.warning("media.optimize.temporary_backup_failed", extra=self._log_extra(error=exc.message))
                else:
                    args["delete_backup"] = True

        sizes = list(dict.fromkeys(sizes))
        optimization_level = self.sanitize_optimization_level(optimization_level)

        if self.hooks.optimize_sizes_args is not None:
            extra_args = self.hooks.optimize_sizes_args(self, args, sizes, optimization_level)
            if extra_args:
                args = {**extra_args, **args}

        job = OptimizationJob(
            media_id=self.media.get_id(),
            context=self.media.get_context(),
            sizes=sizes,
            optimization_level=optimization_level,
            data=args,
        )
        try:
            job = self.queue.enqueue(job)
        except MediaOptError:
            if locked_here:
                self.unlock()
            raise

        logger.info(
            "media.optimize.enqueued",
            extra=self._log_extra(job_id=job.id, sizes=sizes, level=optimization_level),
        )
        return job

    def _add_next_gen_sizes(self, sizes: list[str]) -> list[str]:
        files = self.media.get_media_files()
        sizes = list(sizes)
        for fmt in self.settings.formats:
            suffix = format_suffix(fmt)
            for size_name in list(sizes):
                size_file = files.get(size_name)
                if size_file is None:
                    continue
                if size_file.mime_type == fmt.mime_type:
                    continue
                if size_name + suffix in sizes:
                    continue
                sizes.insert(0, size_name + suffix)
        return sizes

    def _needs_temporary_backup(self, sizes: list[str]) -> bool:
        if self.media.get_context_instance().can_backup():
            return False
        if self.media.get_backup_path() or self.data.get_size_data("full", "success"):
            return False
        return any(self.is_size_next_gen(size) for size in sizes)

    def generate_nextgen_versions(self) -> OptimizationJob:
        """Queue the next-gen versions of an already optimized media."""
        if not self.is_valid():
            raise InvalidMedia()
        if not self.media.is_image():
            raise NoNextGen("This media is not an image and cannot be converted to next-gen format.")
        if not self.media.has_backup():
            raise NoBackup()
        if not self.data.is_optimized() and not self.data.is_already_optimized():
            raise NotOptimized()
        if self.has_next_gen():
            raise HasNextGen()

        sizes: list[str] = []
        for size_name, size_file in self.media.get_media_files().items():
            for fmt in self.settings.formats:
                if size_file.mime_type == fmt.mime_type:
                    continue
                sizes.insert(0, size_name + format_suffix(fmt))

        if not sizes:
            raise NoSizes("This media does not have files that can be converted to next-gen format.")

        return self.optimize_sizes(
            sizes,
            self.data.get_optimization_level(),
            {"hook_suffix": "generate_nextgen_versions"},
        )

    # ------------------------------------------------------------------
    # Single size
    # ------------------------------------------------------------------
    def optimize_size(self, size: str, optimization_level: int | None = None) -> dict[str, Any]:
        """Optimize one size and return the record stored for it."""
        if not self.is_valid():
            raise InvalidMedia()

        sizes = self.media.get_media_files()
        thumb_size = size
        base_size = self.is_size_next_gen(size)
        next_gen = base_size is not None
        if next_gen:
            thumb_size = base_size

        if thumb_size not in sizes or not sizes[thumb_size].path:
            raise UnknownSize(thumb_size)

        if self.data.get_size_data(size, "success"):
            raise SizeAlreadyOptimized(thumb_size, next_gen=next_gen)

        path = Path(sizes[thumb_size].path)
        optimization_level = self.sanitize_optimization_level(optimization_level)
        path_is_temp = False

        if next_gen and self.data.get_size_data(thumb_size, "success"):
            # The source is already optimized: derive the next-gen file from the backup.
            if not self.create_temporary_copy(thumb_size, sizes):
                return self.update_size_optimization_data(
                    NonNextGenCopyFailed(thumb_size), size, optimization_level
                )
            path = self.get_temporary_copy_path(thumb_size, sizes)
            path_is_temp = True

        file = File(path, self.filesystem)

        if not file.is_supported(self.media.get_allowed_mime_types()):
            if path_is_temp:
                self.filesystem.delete(path)
            return self.update_size_optimization_data(
                self._unsupported_file_error(file), size, optimization_level
            )

        if next_gen and not file.is_image():
            if path_is_temp:
                self.filesystem.delete(path)
            return self.update_size_optimization_data(NoNextGen(), size, optimization_level)

        is_disabled = sizes[thumb_size].disabled
        convert = self._format_of_size(size) if next_gen else None
        response: OptimizedFile | OptimizationError

        try:
            veto = None
            if self.hooks.before_optimize_size is not None:
                veto = self.hooks.before_optimize_size(
                    self, file, thumb_size, optimization_level, next_gen, is_disabled
                )
            if veto is not None:
                raise veto
            if is_disabled:
                raise UnauthorizedSize(thumb_size)
            if not self.filesystem.exists(file.path):
                raise FileNotExists(self.filesystem.make_path_relative(file.path))
            if next_gen and not self.can_create_next_gen_version(file.path):
                raise IsAnimatedGif()
            if not self.filesystem.is_writable(file.path):
                raise FileNotWritable(self.filesystem.make_path_relative(file.path))

            resized = self.maybe_resize(thumb_size, file)
            response = file.optimize(
                self.api,
                backup=not resized.backuped and self.can_backup(size),
                backup_path=self.media.get_raw_backup_path(),
                backup_source=self.media.get_original_path() if thumb_size == "full" else None,
                optimization_level=optimization_level,
                convert=convert,
                keep_exif=True,
                context=self.media.get_context(),
                original_size=resized.file_size,
            )
            response = self.compare_next_gen_file_size(
                response,
                file=file,
                is_next_gen=next_gen,
                next_gen_format=convert,
                non_next_gen_thumb_size=thumb_size,
                # Not ``file.path``: it may point to the temporary copy.
                non_next_gen_file_path=sizes[thumb_size].path,
                optimization_level=optimization_level,
            )
            if isinstance(response, OptimizedFile) and response.message is not None:
                path_is_temp = False
                if path != sizes[thumb_size].path:
                    self.filesystem.delete(path)
                path = Path(sizes[thumb_size].path)
        except OptimizationError as exc:
            response = exc

        record = self.update_size_optimization_data(response, size, optimization_level)

        if self.hooks.after_optimize_size is not None:
            self.hooks.after_optimize_size(self, file, thumb_size, optimization_level, next_gen, is_disabled)

        if isinstance(response, OptimizationError):
            logger.info(
                "media.size.failed",
                extra=self._log_extra(size=size, code=response.code, error=response.message),
            )
        else:
            logger.info(
                "media.size.optimized",
                extra=self._log_extra(size=size, original_size=response.original_size, new_size=response.new_size),
            )

        if not path_is_temp:
            return record

        self.filesystem.delete(path)
        if isinstance(response, OptimizationError):
            return record

        produced = file.get_path_to_nextgen(convert)
        if produced is not None:
            destination = produced.with_name(produced.name.replace(TMP_SUFFIX + ".", "."))
            self.filesystem.move(produced, destination, overwrite=True)
        return record

    @staticmethod
    def _unsupported_file_error(file: File) -> OptimizationError:
        extension = file.extension
        if not extension:
            return NoExtension()
        if file.mime_type is None:
            return ExtensionNotMime()
        return ExtensionNotSupported(extension)

    def _format_of_size(self, size: str) -> NextGenFormat | None:
        if size.endswith(AVIF_SUFFIX):
            return NextGenFormat.AVIF
        if size.endswith(WEBP_SUFFIX):
            return NextGenFormat.WEBP
        return None

    # ------------------------------------------------------------------
    # Resize and next-gen comparison
    # ------------------------------------------------------------------
    def maybe_resize(self, size: str, file: File) -> ResizeOutcome:
        """Shrink the main file to the context's threshold width when it is wider."""
        if not self.can_resize(size, file):
            return ResizeOutcome()

        width, height = file.get_dimensions()
        if not width:
            raise NoDimensions()

        resize_width = self.media.get_context_instance().get_resizing_threshold()
        if resize_width >= width:
            return ResizeOutcome()

        resized_path = file.resize((width, height), resize_width)

        backuped = False
        if self.can_backup(size):
            source = self.media.get_original_path() if size == "full" else None
            file.backup(self.media.get_raw_backup_path(), source)
            backuped = True

        file_size = self.filesystem.size(file.path)
        if not self.filesystem.move(resized_path, file.path, overwrite=True):
            raise ResizeMoveFailure()

        self.media.update_dimensions()
        logger.info(
            "media.size.resized",
            extra=self._log_extra(size=size, width=resize_width, previous_width=width),
        )
        return ResizeOutcome(resized=True, backuped=backuped, file_size=file_size)

    def compare_next_gen_file_size(
        self,
        response: OptimizedFile | OptimizationError,
        *,
        file: File,
        is_next_gen: bool,
        next_gen_format: NextGenFormat | None,
        non_next_gen_thumb_size: str,
        non_next_gen_file_path: Path,
        optimization_level: int,
    ) -> OptimizedFile | OptimizationError:
        """Drop next-gen files that are not lighter than their source.

        Only active when large next-gen files must not be kept. A next-gen
        result that is not strictly lighter than its sibling becomes a
        ``NextGenHeavy`` error; a regular result that is lighter than (or as
        heavy as) the stored next-gen file evicts that file and flags its
        record instead.
        """
        if self.settings.keep_large_next_gen or isinstance(response, OptimizationError) or not file.is_image():
            return response

        if response.message is None and is_next_gen:
            sibling = self.data.get_size_data(non_next_gen_thumb_size)
            if not sibling:
                return response
            if sibling.get("optimized_size"):
                sibling_size = int(sibling["optimized_size"])
            else:
                # "already optimized" or "error": read the file itself.
                sibling_size = self.filesystem.size(non_next_gen_file_path)
            if not sibling_size or sibling_size > response.new_size:
                return response
            self.filesystem.delete(file.get_path_to_nextgen(next_gen_format))
            return NextGenHeavy(non_next_gen_thumb_size)

        if response.message is not None:
            return response

        next_gen_size = non_next_gen_thumb_size + self.format
        next_gen_file_size = self.data.get_size_data(next_gen_size, "optimized_size")
        if not next_gen_file_size or next_gen_file_size < response.new_size:
            return response

        next_gen_path = file.get_path_to_nextgen(self.settings.current_format)
        if next_gen_path and self.filesystem.is_writable(next_gen_path):
            self.filesystem.delete(next_gen_path)
        self.update_size_optimization_data(
            NextGenHeavy(non_next_gen_thumb_size), next_gen_size, optimization_level
        )
        return response

    # ------------------------------------------------------------------
    # Restore and cleanup
    # ------------------------------------------------------------------
    def restore(self) -> bool:
        """Put the backup back in place, forget the optimization data, rebuild thumbnails."""
        self._check_media()
        if not self.media.has_backup():
            raise NoBackup()
        if self.is_locked():
            raise MediaLocked()

        self.lock(LockAction.RESTORING)
        try:
            backup_path = self.media.get_backup_path()
            original_path = self.media.get_raw_original_path()
            if backup_path == original_path:
                raise SamePath()

            dest_dir = self.filesystem.dir_path(original_path)
            if not self.filesystem.exists(dest_dir):
                self.filesystem.make_dir(dest_dir)
            dest_file_is_writable = (
                not self.filesystem.exists(original_path) or self.filesystem.is_writable(original_path)
            )
            if not dest_file_is_writable or not self.filesystem.is_writable(dest_dir):
                raise DestinationNotWritable()

            previous_data = self.data.get_optimization_data()
            files = self.media.get_media_files()
            error: OptimizationError | None = None
            try:
                veto = self.hooks.before_restore(self) if self.hooks.before_restore is not None else None
                if veto is not None:
                    raise veto
                self._restore_files(backup_path, original_path)
            except OptimizationError as exc:
                error = exc

            if self.hooks.after_restore is not None:
                self.hooks.after_restore(self, error, files, previous_data)
            if error is not None:
                raise error
        finally:
            self.unlock()

        logger.info("media.restore.done", extra=self._log_extra(backup=str(backup_path)))
        return True

    def _restore_files(self, backup_path: Path, original_path: Path) -> None:
        if not self.filesystem.copy(backup_path, original_path, overwrite=True):
            raise CopyFailed()
        self.filesystem.chmod_file(original_path)
        self.data.delete_optimization_data()

        if not self.media.is_image():
            return

        self.media.update_dimensions()
        failures = self.delete_nextgen_file(original_path, all_next_gen=True)
        keep_full_next_gen = self.media.get_raw_original_path() == self.media.get_raw_fullsize_path()
        try:
            self.delete_nextgen_files(keep_full_next_gen, all_next_gen=True)
        except FilesNotDeleted as exc:
            failures += exc.count
        self.media.generate_thumbnails()
        if failures:
            raise FilesNotDeleted(failures)

    def delete_backup(self) -> None:
        if not self.is_valid():
            return
        backup_path = self.media.get_backup_path()
        if not backup_path:
            return
        self.filesystem.delete(backup_path)
        scaled_backup_path = backup_path.with_name(f"{backup_path.stem}-scaled{backup_path.suffix}")
        if self.filesystem.exists(scaled_backup_path):
            self.filesystem.delete(scaled_backup_path)

    def delete_nextgen_files(self, keep_full: bool = False, all_next_gen: bool = False) -> bool:
        """Delete the next-gen files of every image size; raise ``FilesNotDeleted`` with the failure count."""
        if not self.is_valid():
            raise InvalidMedia()
        if not self.media.is_image():
            raise MediaNotAnImage()

        files = dict(self.media.get_media_files())
        if keep_full:
            files.pop("full", None)

        error_count = 0
        for size_file in files.values():
            if size_file.mime_type.startswith("image/"):
                error_count += self.delete_nextgen_file(size_file.path, all_next_gen)

        if error_count:
            raise FilesNotDeleted(error_count)
        return True

    def delete_nextgen_file(self, file_path: Path | None, all_next_gen: bool = False) -> int:
        """Delete the next-gen versions of ``file_path``; return how many could not be deleted."""
        if not file_path:
            raise NoPath()
        source = File(file_path, self.filesystem)
        formats = tuple(NextGenFormat) if all_next_gen else self.settings.formats
        failures = 0
        for fmt in formats:
            path = source.get_path_to_nextgen(fmt)
            if path is None:
                continue
            try:
                self._delete_file(path)
            except OptimizationError as exc:
                logger.warning("media.nextgen.delete_failed", extra=self._log_extra(path=str(path), error=exc.message))
                failures += 1
        return failures

    def _delete_file(self, path: Path) -> None:
        if not self.filesystem.exists(path):
            return
        relative = self.filesystem.make_path_relative(path)
        if not self.filesystem.is_writable(path):
            raise FileNotWritable(relative)
        if not self.filesystem.is_file(path):
            raise NotAFile(relative)
        if not self.filesystem.delete(path):
            raise FileNotDeleted(relative)

    # ------------------------------------------------------------------
    # Temporary copies
    # ------------------------------------------------------------------
    def get_original_file(self) -> File:
        return File(self.media.get_raw_original_path(), self.filesystem)

    def get_temporary_copy_path(self, size: str, sizes: dict[str, SizeFile] | None = None) -> Path | None:
        if size == "full":
            path = self.media.get_raw_fullsize_path()
        else:
            if sizes is None:
                sizes = self.media.get_media_files()
            size_file = sizes.get(size)
            path = size_file.path if size_file else None
        if not path:
            return None
        path = Path(path)
        if not path.stem:
            return None
        return path.with_name(f"{path.stem}{TMP_SUFFIX}{path.suffix}")

    def create_temporary_copy(self, size: str, sizes: dict[str, SizeFile] | None = None) -> bool:
        """Build an unoptimized copy of ``size`` from the backup, next to the real file."""
        if sizes is None:
            sizes = self.media.get_media_files()
        if size not in sizes:
            return False

        tmp_path = self.get_temporary_copy_path(size, sizes)
        if tmp_path is None:
            return False
        if self.filesystem.exists(tmp_path):
            return True

        tmp_file = File(tmp_path, self.filesystem)
        if not tmp_file.is_image() or not tmp_file.is_supported(self.media.get_allowed_mime_types()):
            return False

        backup_path = self.media.get_backup_path()
        if not backup_path:
            return False

        if size == "full":
            return self.filesystem.copy(backup_path, tmp_path, overwrite=True)

        size_file = sizes[size]
        size_data: dict[str, Any] = {
            "path": size_file.path,
            "width": size_file.width,
            "height": size_file.height,
            "crop": size_file.crop,
        }
        context_sizes = self.media.get_context_instance().get_thumbnail_sizes()
        if context_sizes.get(size):
            size_data.update(context_sizes[size])
        if not size_data.get("path"):
            return False

        if size_data.get("crop") is None and self.hooks.crop_thumbnail is not None:
            crop = self.hooks.crop_thumbnail(size, size_data, self.media)
            if crop is not None:
                size_data["crop"] = bool(crop)

        if size_data.get("crop") is None:
            width = int(size_data.get("width") or 0)
            height = int(size_data.get("height") or 0)
            if not width or not height:
                # One unconstrained axis: the size is not cropped.
                size_data["crop"] = False
            else:
                if not self.filesystem.exists(size_data["path"]):
                    return False
                dimensions = self.filesystem.get_image_size(size_data["path"])
                if not dimensions or not dimensions[0] or not dimensions[1]:
                    return False
                expected_height = dimensions[0] * height / width
                size_data["crop"] = abs(dimensions[1] - expected_height) > 1

        try:
            File(backup_path, self.filesystem).create_thumbnail(
                path=tmp_path,
                width=int(size_data.get("width") or 0),
                height=int(size_data.get("height") or 0),
                crop=bool(size_data["crop"]),
            )
        except ResizeFailure as exc:
            logger.warning("media.tmp_copy.failed", extra=self._log_extra(size=size, error=exc.message))
            self.filesystem.delete(tmp_path)
            return False
        return True

    # ------------------------------------------------------------------
    # Next-gen state
    # ------------------------------------------------------------------
    def is_size_next_gen(self, size_name: str) -> str | None:
        """Return the base size name when ``size_name`` is a next-gen size."""
        for fmt in self.settings.formats:
            suffix = format_suffix(fmt)
            if size_name.endswith(suffix) and len(size_name) > len(suffix):
                return size_name[: -len(suffix)]
        return None

    def _has_successful_suffix(self, suffix: str) -> bool:
        if not self.is_valid() or not self.media.is_image():
            return False
        sizes = self.data.get_optimization_data()["sizes"]
        return any(
            name.endswith(suffix) and record.get("status") == OptimizationStatus.SUCCESS.value
            for name, record in sizes.items()
        )

    def has_next_gen(self) -> bool:
        return self._has_successful_suffix(self.format)

    def has_avif(self) -> bool:
        return self._has_successful_suffix(AVIF_SUFFIX)

    def is_full_next_gen(self) -> bool:
        """Every regular size has a successful next-gen counterpart in the current format."""
        if not self.is_valid() or not self.media.is_image():
            return False
        sizes = self.data.get_optimization_data()["sizes"]
        if not sizes:
            return False
        regular = [name for name in sizes if self.format not in name]
        return all(
            (sizes.get(name + self.format) or {}).get("status") == OptimizationStatus.SUCCESS.value
            for name in regular
        )

    def can_create_next_gen_version(self, file_path: Path | None) -> bool:
        if not file_path:
            return False
        if self.hooks.can_create_next_gen_version is not None:
            can = self.hooks.can_create_next_gen_version(Path(file_path))
            if can is not None:
                return bool(can)
        is_animated_gif = self.filesystem.is_animated_gif(file_path)
        if is_animated_gif is None:
            # Unreadable (yet): let the API decide.
            return True
        return not is_animated_gif

    # ------------------------------------------------------------------
    # Locks
    # ------------------------------------------------------------------
    def is_locked(self) -> LockAction | None:
        return self._lock.is_locked()

    def lock(self, action: str | LockAction = LockAction.OPTIMIZING) -> None:
        self._lock.lock(action)

    def unlock(self) -> None:
        self._lock.unlock()

    # ------------------------------------------------------------------
    # Records and policies
    # ------------------------------------------------------------------
    def update_size_optimization_data(
        self,
        response: OptimizedFile | OptimizationError,
        size: str,
        optimization_level: int | None,
    ) -> dict[str, Any]:
        """Replace the stored record of ``size`` with ``response`` and return it."""
        if isinstance(optimization_level, int) and not isinstance(optimization_level, bool):
            level = optimization_level
        else:
            level = self.settings.optimization_level

        if isinstance(response, OptimizationError):
            status = (
                OptimizationStatus.ALREADY_OPTIMIZED
                if ALREADY_COMPRESSED_MESSAGE in response.message
                else OptimizationStatus.ERROR
            )
            record = SizeOptimizationData(level=level, status=status, success=False, error=response.message)
        else:
            record = SizeOptimizationData(
                level=level,
                status=OptimizationStatus.SUCCESS,
                success=True,
                error=None,
                original_size=response.original_size,
                optimized_size=response.new_size,
                message=response.message,
            )
            if response.message is not None:
                # Informational outcome: the file is unchanged, the record belongs to the base size.
                size = size.replace(self.format, "")

        self.data.update_size_optimization_data(size, record)
        return record.to_dict()

    def sanitize_optimization_level(self, optimization_level: Any) -> int:
        if optimization_level is None or isinstance(optimization_level, bool):
            return 0 if self.settings.lossless else self.settings.optimization_level
        try:
            level = int(optimization_level)
        except (TypeError, ValueError):
            return 0 if self.settings.lossless else self.settings.optimization_level
        if level < 0 or level > 2:
            return DEFAULT_OPTIMIZATION_LEVEL
        return level

    def can_resize(self, size: str, file: File) -> bool:
        if not self.is_valid():
            return False
        if size != "full" and size not in {"full" + suffix for suffix in FORMAT_SUFFIXES.values()}:
            return False
        if not file.is_image():
            return False
        return self.media.get_context_instance().can_resize()

    def can_backup(self, size: str) -> bool:
        if not self.is_valid():
            return False
        if size != "full":
            return False
        return self.media.get_context_instance().can_backup()


__all__ = [
    "AVIF_SUFFIX",
    "OptimizationProcess",
    "TMP_SUFFIX",
    "WEBP_SUFFIX",
    "format_suffix",
]
