"""Domain level exceptions for the optimization process and repository layers."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from sqlalchemy import exc as sa_exc

__all__ = [
    "MediaOptError",
    "RepositoryError",
    "NotFoundError",
    "DatabaseOperationError",
    "handle_sqlalchemy_errors",
    "OptimizationError",
    "InvalidMedia",
    "MediaNotSupported",
    "AlreadyOptimized",
    "SizeAlreadyOptimized",
    "NoSizes",
    "MediaLocked",
    "UnknownSize",
    "NonNextGenCopyFailed",
    "ExtensionNotMime",
    "NoExtension",
    "ExtensionNotSupported",
    "NoNextGen",
    "UnauthorizedSize",
    "FileNotExists",
    "IsAnimatedGif",
    "FileNotWritable",
    "NoDimensions",
    "ResizeFailure",
    "ResizeMoveFailure",
    "BackupFailure",
    "NextGenHeavy",
    "NoBackup",
    "SamePath",
    "DestinationNotWritable",
    "CopyFailed",
    "NotProcessedYet",
    "IdenticalLevel",
    "NextGenNotDeleted",
    "FilesNotDeleted",
    "NotOptimized",
    "HasNextGen",
    "MediaNotAnImage",
    "NoPath",
    "NotAFile",
    "FileNotDeleted",
    "ThumbnailsNotGenerated",
    "ApiError",
    "ALREADY_COMPRESSED_MESSAGE",
]

ALREADY_COMPRESSED_MESSAGE = "This image is already compressed"


class MediaOptError(Exception):
    """Base class for application specific errors."""


class RepositoryError(MediaOptError):
    """Base class for persistence layer failures."""


class NotFoundError(RepositoryError):
    """Raised when a record could not be located."""


class DatabaseOperationError(RepositoryError):
    """Raised for unexpected database errors."""


@dataclass(slots=True)
class _EntityContext:
    entity: str | None = None

    def format(self, message: str) -> str:
        if self.entity:
            return f"{self.entity}: {message}"
        return message


@contextmanager
def handle_sqlalchemy_errors(*, entity: str | None = None) -> Iterator[None]:
    """Translate SQLAlchemy errors into repository errors."""

    context = _EntityContext(entity)
    try:
        yield
    except sa_exc.DBAPIError as exc:
        raise DatabaseOperationError(context.format("database operation failed")) from exc
    except sa_exc.SQLAlchemyError as exc:
        raise RepositoryError(context.format(str(exc))) from exc


class OptimizationError(MediaOptError):
    """Failure of an optimization process operation.

    ``code`` is a stable identifier (stored nowhere, used by the HTTP layer and
    the logs); the message is built when the error is raised and embeds the
    size name or path involved.
    """

    code = "optimization_error"
    default_message = "The operation failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidMedia(OptimizationError):
    code = "invalid_media"
    default_message = "This media is not valid."


class MediaNotSupported(OptimizationError):
    code = "media_not_supported"
    default_message = "This media is not supported."


class AlreadyOptimized(OptimizationError):
    code = "optimized"
    default_message = "This media has already been optimized."


class SizeAlreadyOptimized(AlreadyOptimized):
    code = "size_is_successfully_optimized"

    def __init__(self, size: str, *, next_gen: bool = False) -> None:
        if next_gen:
            message = f"The Next-Gen format for the size {size} already exists."
        else:
            message = f"The size {size} is already optimized."
        super().__init__(message)
        self.size = size


class NoSizes(OptimizationError):
    code = "no_sizes"
    default_message = "No sizes given to be optimized."


class MediaLocked(OptimizationError):
    code = "media_locked"
    default_message = "This media is already being processed."


class UnknownSize(OptimizationError):
    code = "unknown_size"

    def __init__(self, size: str) -> None:
        super().__init__(f"The size {size} is unknown.")
        self.size = size


class NonNextGenCopyFailed(OptimizationError):
    code = "non_next_gen_copy_failed"

    def __init__(self, size: str) -> None:
        super().__init__(f"Could not create an unoptimized copy of the size {size}.")
        self.size = size


class ExtensionNotMime(OptimizationError):
    code = "extension_not_mime"
    default_message = "This file has an extension that does not match a mime type."


class NoExtension(OptimizationError):
    code = "no_extension"
    default_message = "With no extension, this file cannot be optimized."


class ExtensionNotSupported(OptimizationError):
    code = "extension_not_supported"

    def __init__(self, extension: str) -> None:
        super().__init__(f"{extension.lower()} cannot be optimized.")
        self.extension = extension


class NoNextGen(OptimizationError):
    code = "no_next_gen"
    default_message = "This file is not an image and cannot be converted to Next-Gen format."


class UnauthorizedSize(OptimizationError):
    code = "unauthorized_size"

    def __init__(self, size: str) -> None:
        super().__init__(
            f"The size {size} is not authorized to be optimized. "
            "Update your settings if you want to optimize it."
        )
        self.size = size


class FileNotExists(OptimizationError):
    code = "file_not_exists"

    def __init__(self, path: str) -> None:
        super().__init__(f"The file {path} does not seem to exist.")
        self.path = path


class IsAnimatedGif(OptimizationError):
    code = "is_animated_gif"
    default_message = (
        "This file is an animated gif: since animated WebP/AVIF are not supported, "
        "WebP/AVIF creation for animated gif is disabled."
    )


class FileNotWritable(OptimizationError):
    code = "file_not_writable"

    def __init__(self, path: str) -> None:
        super().__init__(f"The file {path} does not seem to be writable.")
        self.path = path


class NoDimensions(OptimizationError):
    code = "no_dimensions"
    default_message = "Resizing failed: could not get the image dimensions."


class ResizeFailure(OptimizationError):
    code = "resize_failure"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Resizing failed: {reason}")


class ResizeMoveFailure(OptimizationError):
    code = "resize_move_failure"
    default_message = "The image could not be replaced by the resized one."


class BackupFailure(OptimizationError):
    code = "backup_failure"

    def __init__(self, reason: str) -> None:
        super().__init__(f"Backup failed: {reason}")


class NextGenHeavy(OptimizationError):
    code = "next_gen_heavy"

    def __init__(self, size: str) -> None:
        super().__init__(
            f"The Next-Gen version of the size {size} is heavier than its non-next-gen version."
        )
        self.size = size


class NoBackup(OptimizationError):
    code = "no_backup"
    default_message = "This media has no backup file."


class SamePath(OptimizationError):
    code = "same_path"
    default_message = "Image path and backup path are identical."


class DestinationNotWritable(OptimizationError):
    code = "destination_not_writable"
    default_message = "The image to replace is not writable."


class CopyFailed(OptimizationError):
    code = "copy_failed"
    default_message = "The backup file could not be copied over the optimized one."


class NotProcessedYet(OptimizationError):
    code = "not_processed_yet"
    default_message = "This media has not been processed yet."


class IdenticalLevel(OptimizationError):
    code = "identical_optimization_level"
    default_message = "This media is already optimized with this level."


class NextGenNotDeleted(OptimizationError):
    code = "next_gen_not_deleted"
    default_message = "Previous Next-Gen files could not be deleted."


class FilesNotDeleted(OptimizationError):
    code = "files_not_deleted"

    def __init__(self, count: int) -> None:
        noun = "file" if count == 1 else "files"
        super().__init__(f"{count} {noun} could not be deleted.")
        self.count = count


class NotOptimized(OptimizationError):
    code = "not_optimized"
    default_message = "This media has not been optimized yet."


class HasNextGen(OptimizationError):
    code = "has_next_gen"
    default_message = "This media already has next-gen versions."


class MediaNotAnImage(OptimizationError):
    code = "media_not_an_image"
    default_message = "This media is not an image."


class NoPath(OptimizationError):
    code = "no_path"
    default_message = "Path to non-next-gen file not provided."


class NotAFile(OptimizationError):
    code = "not_a_file"

    def __init__(self, path: str) -> None:
        super().__init__(f"This does not seem to be a file: {path}.")
        self.path = path


class FileNotDeleted(OptimizationError):
    code = "file_not_deleted"

    def __init__(self, path: str) -> None:
        super().__init__(f"The file {path} could not be deleted.")
        self.path = path


class ThumbnailsNotGenerated(OptimizationError):
    code = "thumbnails_not_generated"
    default_message = "The thumbnails could not be regenerated."


class ApiError(OptimizationError):
    """Raised by the remote API client; the API's own message is kept verbatim."""

    code = "api_error"
    default_message = "The optimization API returned an error."

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
