"""Builders for on-disk images and media records used across the suite."""

from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

from PIL import Image

from mediaopt.repositories.media_repository import MediaRepository


class FakeClock:
    """Naive-UTC clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_image(
    path: Path,
    size: tuple[int, int] = (400, 300),
    *,
    fmt: str = "JPEG",
    color: tuple[int, int, int] = (200, 40, 40),
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    image = Image.new("RGB", size, color)
    if fmt == "GIF":
        image = image.convert("P")
    image.save(path, format=fmt)
    return path


def make_animated_gif(path: Path, size: tuple[int, int] = (60, 40)) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    frames = [Image.new("RGB", size, color).convert("P") for color in ((255, 0, 0), (0, 255, 0), (0, 0, 255))]
    frames[0].save(path, format="GIF", save_all=True, append_images=frames[1:], duration=100, loop=0)
    return path


def register_library_image(
    repository: MediaRepository,
    media_root: Path,
    *,
    name: str = "photo",
    size: tuple[int, int] = (400, 300),
    with_thumbnail: bool = True,
    media_id: int | None = None,
) -> int:
    """Write ``<name>.jpg`` (plus a 150x150 thumbnail) and register it as library media."""
    full = make_image(media_root / "2024" / "01" / f"{name}.jpg", size)
    thumbnails = {}
    if with_thumbnail:
        thumb = make_image(media_root / "2024" / "01" / f"{name}-150x150.jpg", (150, 150))
        thumbnails["thumbnail"] = {
            "file": thumb.name,
            "width": 150,
            "height": 150,
            "mime_type": "image/jpeg",
        }
    return repository.add(
        context="wp",
        path=full,
        mime_type="image/jpeg",
        width=size[0],
        height=size[1],
        thumbnails=thumbnails,
        media_id=media_id,
    )
