from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest
from PIL import Image

from mediaopt.media.context import FOLDERS_CONTEXT, LIBRARY_CONTEXT, build_context
from mediaopt.media.filesystem import Filesystem
from mediaopt.media.media import FolderMedia, LibraryMedia, MediaSource, create_media
from tests.helpers.media import make_image, register_library_image


def _library_media(settings, media_repo, media_id: int, **context_overrides) -> LibraryMedia:
    context = build_context(LIBRARY_CONTEXT, settings)
    if context_overrides:
        context = replace(context, **context_overrides)
    media = create_media(
        media_repo.get(media_id),
        context=context,
        repository=media_repo,
        filesystem=Filesystem(),
        media_root=settings.media_root,
        backup_root=settings.backup_root,
    )
    assert isinstance(media, LibraryMedia)
    return media


def test_library_media_lists_full_and_thumbnails(settings, media_repo, media_root: Path) -> None:
    media_id = register_library_image(media_repo, media_root)
    media = _library_media(settings, media_repo, media_id)

    files = media.get_media_files()

    assert isinstance(media, MediaSource)
    assert list(files) == ["full", "thumbnail"]
    assert files["full"].path == media_root / "2024" / "01" / "photo.jpg"
    assert files["thumbnail"].path == media_root / "2024" / "01" / "photo-150x150.jpg"
    assert files["thumbnail"].crop is True
    assert not files["thumbnail"].disabled


def test_disallowed_sizes_are_disabled(settings, media_repo, media_root: Path) -> None:
    media_id = register_library_image(media_repo, media_root)
    media = _library_media(settings, media_repo, media_id, disallowed_sizes=frozenset({"thumbnail"}))

    assert media.get_media_files()["thumbnail"].disabled


def test_library_backup_path_mirrors_upload_tree(settings, media_repo, media_root: Path, backup_root: Path) -> None:
    media_id = register_library_image(media_repo, media_root)
    media = _library_media(settings, media_repo, media_id)

    assert media.get_raw_backup_path() == backup_root / "2024" / "01" / "photo.jpg"
    assert media.get_backup_path() is None
    assert not media.has_backup()


def test_folder_media_has_single_file(settings, media_repo, media_root: Path, backup_root: Path) -> None:
    path = make_image(media_root / "custom" / "banner.png", fmt="PNG")
    media_id = media_repo.add(context=FOLDERS_CONTEXT, path=path, mime_type="image/png", width=400, height=300)
    media = create_media(
        media_repo.get(media_id),
        context=build_context(FOLDERS_CONTEXT, settings),
        repository=media_repo,
        filesystem=Filesystem(),
        media_root=media_root,
        backup_root=backup_root,
    )

    assert isinstance(media, FolderMedia)
    assert list(media.get_media_files()) == ["full"]
    assert media.get_raw_backup_path() == backup_root / FOLDERS_CONTEXT / "custom" / "banner.png"
    assert media.get_context_instance().is_network_wide()
    assert not media.get_context_instance().can_resize()
    assert media.generate_thumbnails() is True


def test_create_media_rejects_unknown_context(settings, media_repo, media_root: Path) -> None:
    media_id = register_library_image(media_repo, media_root)
    context = build_context(LIBRARY_CONTEXT, settings)

    with pytest.raises(ValueError):
        create_media(
            media_repo.get(media_id),
            context=replace(context, name="ngg"),
            repository=media_repo,
            filesystem=Filesystem(),
            media_root=media_root,
            backup_root=settings.backup_root,
        )


def test_pdf_is_supported_but_not_an_image(settings, media_repo, media_root: Path) -> None:
    path = media_root / "doc.pdf"
    path.write_bytes(b"%PDF-1.4")
    media_id = media_repo.add(context=LIBRARY_CONTEXT, path=path, mime_type="application/pdf")
    media = _library_media(settings, media_repo, media_id)

    assert media.is_supported()
    assert not media.is_image()
    assert list(media.get_media_files()) == ["full"]


def test_generate_thumbnails_rebuilds_registered_sizes(settings, media_repo, media_root: Path) -> None:
    media_id = register_library_image(media_repo, media_root, size=(800, 600), with_thumbnail=False)
    media = _library_media(settings, media_repo, media_id)

    assert media.generate_thumbnails() is True

    stored = media_repo.get(media_id).thumbnails
    # 800x600 is larger than thumbnail/medium/medium_large but fits "large".
    assert set(stored) == {"thumbnail", "medium", "medium_large"}
    assert stored["thumbnail"]["file"] == "photo-150x150.jpg"
    with Image.open(media_root / "2024" / "01" / stored["medium"]["file"]) as image:
        assert image.size == (300, 225)


def test_update_dimensions_reads_file(settings, media_repo, media_root: Path) -> None:
    media_id = register_library_image(media_repo, media_root, size=(400, 300))
    make_image(media_root / "2024" / "01" / "photo.jpg", (200, 100))
    media = _library_media(settings, media_repo, media_id)

    media.update_dimensions()

    record = media_repo.get(media_id)
    assert (record.width, record.height) == (200, 100)
