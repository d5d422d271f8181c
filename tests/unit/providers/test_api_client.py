from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from mediaopt.domain.models import NextGenFormat
from mediaopt.exceptions import ApiError
from mediaopt.providers.api_client import OptimizationApiClient
from tests.helpers.media import make_image


def _client(handler) -> OptimizationApiClient:
    return OptimizationApiClient(
        api_endpoint="https://api.example.test/v1/",
        api_key="secret-key",
        transport=httpx.MockTransport(handler),
    )


def test_build_payload_maps_levels_and_format() -> None:
    assert OptimizationApiClient.build_payload(
        optimization_level=0, keep_exif=True, convert=None, context="wp"
    ) == {"normal": True, "keep_exif": True, "context": "wp"}
    assert OptimizationApiClient.build_payload(
        optimization_level=7, keep_exif=False, convert=NextGenFormat.AVIF, context="custom-folders"
    ) == {"ultra": True, "keep_exif": False, "context": "custom-folders", "convert": "avif"}


def test_upload_then_download(tmp_path: Path) -> None:
    path = make_image(tmp_path / "photo.jpg")
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.method == "POST":
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "original_size": 1000,
                    "new_size": 400,
                    "percent": 60.0,
                    "image": "https://cdn.example.test/out/photo.jpg",
                },
            )
        return httpx.Response(200, content=b"optimized")

    result = _client(handler).upload_image(path, optimization_level=1, convert=NextGenFormat.WEBP)

    assert (result.original_size, result.new_size, result.percent) == (1000, 400, 60.0)
    assert result.content == b"optimized"
    assert result.message is None
    upload, download = requests
    assert str(upload.url) == "https://api.example.test/v1/upload/"
    assert upload.headers["Authorization"] == "Bearer secret-key"
    assert b'name="image"; filename="photo.jpg"' in upload.content
    assert json.dumps({"aggressive": True, "keep_exif": True, "context": "wp", "convert": "webp"}).encode() in upload.content
    assert str(download.url) == "https://cdn.example.test/out/photo.jpg"


def test_informational_message_skips_download(tmp_path: Path) -> None:
    path = make_image(tmp_path / "photo.jpg")
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(
            200,
            json={"success": True, "original_size": 500, "new_size": 500, "percent": 0, "message": "Unchanged"},
        )

    result = _client(handler).upload_image(path, optimization_level=2)

    assert result.message == "Unchanged"
    assert result.content is None
    assert methods == ["POST"]


def test_api_error_keeps_the_message(tmp_path: Path) -> None:
    path = make_image(tmp_path / "photo.jpg")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"success": False, "detail": "This image is already compressed"})

    with pytest.raises(ApiError) as excinfo:
        _client(handler).upload_image(path, optimization_level=2)

    assert excinfo.value.message == "This image is already compressed"
    assert excinfo.value.status_code == 400


def test_unreachable_api(tmp_path: Path) -> None:
    path = make_image(tmp_path / "photo.jpg")

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ApiError) as excinfo:
        _client(handler).upload_image(path, optimization_level=2)

    assert "Could not reach the optimization API" in excinfo.value.message


def test_failed_download(tmp_path: Path) -> None:
    path = make_image(tmp_path / "photo.jpg")

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json={"success": True, "new_size": 1, "image": "https://cdn.example.test/x"})
        return httpx.Response(404)

    with pytest.raises(ApiError) as excinfo:
        _client(handler).upload_image(path, optimization_level=2)

    assert excinfo.value.status_code == 404


def test_non_json_error_body(tmp_path: Path) -> None:
    path = make_image(tmp_path / "photo.jpg")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="Bad gateway")

    with pytest.raises(ApiError) as excinfo:
        _client(handler).upload_image(path, optimization_level=2)

    assert excinfo.value.message == "Bad gateway"
    assert excinfo.value.status_code == 502
