"""Test double for the remote optimization API."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Deque

from mediaopt.domain.models import NextGenFormat
from mediaopt.exceptions import ApiError
from mediaopt.providers.api_client import ApiImageResult


@dataclass(slots=True)
class UploadCall:
    path: Path
    optimization_level: int
    keep_exif: bool
    convert: NextGenFormat | None
    context: str


@dataclass
class FakeOptimizationApi:
    """Shrinks every file by ``ratio`` unless a scripted response is queued.

    Queued items are either :class:`ApiImageResult` instances or exceptions to
    raise; they are consumed in call order.
    """

    ratio: float = 0.6
    calls: list[UploadCall] = field(default_factory=list)
    scripted: Deque[ApiImageResult | Exception] = field(default_factory=deque)

    def queue_result(self, result: ApiImageResult | Exception) -> None:
        self.scripted.append(result)

    def fail_with(self, message: str) -> None:
        self.scripted.append(ApiError(message, status_code=400))

    def upload_image(
        self,
        path: Path,
        *,
        optimization_level: int,
        keep_exif: bool,
        convert: NextGenFormat | None,
        context: str,
    ) -> ApiImageResult:
        self.calls.append(
            UploadCall(
                path=Path(path),
                optimization_level=optimization_level,
                keep_exif=keep_exif,
                convert=convert,
                context=context,
            )
        )
        if self.scripted:
            item = self.scripted.popleft()
            if isinstance(item, Exception):
                raise item
            return item

        original = Path(path).stat().st_size
        new_size = max(1, int(original * self.ratio))
        return ApiImageResult(
            original_size=original,
            new_size=new_size,
            percent=round((1 - new_size / original) * 100, 2),
            content=b"\0" * new_size,
        )

    @property
    def converted_sizes(self) -> list[tuple[str, str | None]]:
        return [(call.path.name, call.convert.value if call.convert else None) for call in self.calls]
