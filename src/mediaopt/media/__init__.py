"""Media files, their contexts and the filesystem they live on."""

from .context import FOLDERS_CONTEXT, LIBRARY_CONTEXT, Context, build_context
from .file import File
from .filesystem import Filesystem
from .media import FolderMedia, LibraryMedia, MediaSource, create_media

__all__ = [
    "Context",
    "FOLDERS_CONTEXT",
    "File",
    "Filesystem",
    "FolderMedia",
    "LIBRARY_CONTEXT",
    "LibraryMedia",
    "MediaSource",
    "build_context",
    "create_media",
]
