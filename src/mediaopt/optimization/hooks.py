"""Extension points queried synchronously by the optimization process.

Every callback is optional. A callback returning ``None`` has no opinion and
the process carries on with its default behaviour; any other value
short-circuits it.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from ..exceptions import OptimizationError

if TYPE_CHECKING:
    from ..media.file import File
    from ..media.media import MediaSource
    from .process import OptimizationProcess

BeforeOptimizeSize = Callable[
    ["OptimizationProcess", "File", str, int, bool, bool], Optional[OptimizationError]
]
AfterOptimizeSize = Callable[["OptimizationProcess", "File", str, int, bool, bool], None]
CropThumbnail = Callable[[str, Mapping[str, Any], "MediaSource"], Optional[bool]]
CanCreateNextGen = Callable[[Path], Optional[bool]]
OptimizeSizesArgs = Callable[["OptimizationProcess", dict, list, int], Optional[dict]]
BeforeRestore = Callable[["OptimizationProcess"], Optional[OptimizationError]]
AfterRestore = Callable[["OptimizationProcess", Optional[OptimizationError], dict, dict], None]


@dataclass(slots=True)
class ProcessHooks:
    before_optimize_size: BeforeOptimizeSize | None = None
    after_optimize_size: AfterOptimizeSize | None = None
    crop_thumbnail: CropThumbnail | None = None
    can_create_next_gen_version: CanCreateNextGen | None = None
    optimize_sizes_args: OptimizeSizesArgs | None = None
    before_restore: BeforeRestore | None = None
    after_restore: AfterRestore | None = None


__all__ = ["ProcessHooks"]
