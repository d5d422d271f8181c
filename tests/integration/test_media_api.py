from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from mediaopt.main import create_app
from tests.helpers.media import register_library_image


@pytest.fixture()
def client(app_config, process_factory):
    with TestClient(create_app(app_config, process_factory)) as test_client:
        yield test_client


def test_optimize_returns_the_queued_unit(client, media_repo, media_root) -> None:
    media_id = register_library_image(media_repo, media_root)

    response = client.post(f"/api/media/wp/{media_id}/optimize", json={"optimization_level": 1})

    assert response.status_code == 202
    body = response.json()
    assert body["media_id"] == media_id
    assert body["optimization_level"] == 1
    assert body["sizes"] == ["thumbnail@mediaopt-webp", "full@mediaopt-webp", "full", "thumbnail"]
    assert body["job_id"] is not None


def test_optimize_without_body_uses_default_level(client, media_repo, media_root) -> None:
    media_id = register_library_image(media_repo, media_root)

    response = client.post(f"/api/media/wp/{media_id}/optimize")

    assert response.status_code == 202
    assert response.json()["optimization_level"] == 2


def test_locked_media_conflicts(client, media_repo, media_root) -> None:
    media_id = register_library_image(media_repo, media_root)
    client.post(f"/api/media/wp/{media_id}/optimize")

    response = client.post(f"/api/media/wp/{media_id}/optimize")

    assert response.status_code == 409
    assert response.json()["detail"]["code"] == "media_locked"


@pytest.mark.parametrize("path", ["/api/media/wp/999/optimize", "/api/media/custom-folders/1/restore"])
def test_unknown_media_is_not_found(client, media_repo, media_root, path) -> None:
    register_library_image(media_repo, media_root)

    response = client.post(path)

    assert response.status_code == 404
    assert response.json()["detail"] == {"code": "invalid_media", "message": "This media is not valid."}


def test_restore_without_backup(client, media_repo, media_root) -> None:
    media_id = register_library_image(media_repo, media_root)

    response = client.post(f"/api/media/wp/{media_id}/restore")

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "no_backup"


def test_reoptimize_unprocessed_media(client, media_repo, media_root) -> None:
    media_id = register_library_image(media_repo, media_root)

    response = client.post(f"/api/media/wp/{media_id}/reoptimize", json={"optimization_level": 0})

    assert response.status_code == 422
    assert response.json()["detail"]["code"] == "not_processed_yet"


def test_status_of_a_queued_media(client, media_repo, media_root) -> None:
    media_id = register_library_image(media_repo, media_root)
    client.post(f"/api/media/wp/{media_id}/optimize")

    response = client.get(f"/api/media/wp/{media_id}/status")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] is None
    assert body["locked"] == "optimizing"
    assert body["has_backup"] is False
    assert body["sizes"] == {}
