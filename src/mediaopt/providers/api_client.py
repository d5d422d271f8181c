"""Client of the remote optimization API."""

from __future__ import annotations

import json
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import httpx

from ..domain.models import NextGenFormat, OptimizationLevel
from ..exceptions import ApiError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApiImageResult:
    """Decoded upload response.

    ``content`` holds the optimized bytes; it is ``None`` when the API sent an
    informational ``message`` instead of a new file.
    """

    original_size: int
    new_size: int
    percent: float
    content: bytes | None = None
    message: str | None = None


class OptimizationApi(Protocol):
    def upload_image(
        self,
        path: Path,
        *,
        optimization_level: int,
        keep_exif: bool,
        convert: NextGenFormat | None,
        context: str,
    ) -> ApiImageResult: ...


@dataclass(slots=True)
class OptimizationApiClient:
    """Upload files to the API and download the optimized result (blocking)."""

    api_endpoint: str
    api_key: str
    timeout_seconds: float = 45.0
    transport: httpx.BaseTransport | None = None
    log: logging.Logger = field(default_factory=lambda: logger)

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.api_endpoint,
            timeout=self.timeout_seconds,
            headers={"Authorization": f"Bearer {self.api_key}"},
            transport=self.transport,
        )

    @staticmethod
    def build_payload(
        *,
        optimization_level: int,
        keep_exif: bool,
        convert: NextGenFormat | None,
        context: str,
    ) -> dict[str, Any]:
        try:
            level = OptimizationLevel(int(optimization_level))
        except ValueError:
            level = OptimizationLevel.ULTRA
        payload: dict[str, Any] = {
            level.api_name: True,
            "keep_exif": keep_exif,
            "context": context,
        }
        if convert:
            payload["convert"] = NextGenFormat(convert).value
        return payload

    def upload_image(
        self,
        path: Path,
        *,
        optimization_level: int,
        keep_exif: bool = True,
        convert: NextGenFormat | None = None,
        context: str = "wp",
    ) -> ApiImageResult:
        path = Path(path)
        payload = self.build_payload(
            optimization_level=optimization_level,
            keep_exif=keep_exif,
            convert=convert,
            context=context,
        )
        mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        files = {"image": (path.name, path.read_bytes(), mime_type)}

        with self._client() as client:
            try:
                response = client.post("upload/", data={"data": json.dumps(payload)}, files=files)
            except httpx.HTTPError as exc:
                raise ApiError(f"Could not reach the optimization API: {exc}") from exc

            body = _decode(response)
            if response.status_code >= 400 or not body.get("success", True):
                detail = _extract_error(body) or f"HTTP {response.status_code}"
                self.log.warning(
                    "api.upload.failed",
                    extra={"path": str(path), "http_status": response.status_code, "detail": detail},
                )
                raise ApiError(detail, status_code=response.status_code)

            result = ApiImageResult(
                original_size=int(body.get("original_size") or 0),
                new_size=int(body.get("new_size") or 0),
                percent=float(body.get("percent") or 0.0),
                message=body.get("message") or None,
            )
            if result.message is None:
                result.content = self._download(client, body.get("image"))
            self.log.info(
                "api.upload.success",
                extra={
                    "path": str(path),
                    "original_size": result.original_size,
                    "new_size": result.new_size,
                    "convert": payload.get("convert"),
                },
            )
            return result

    def _download(self, client: httpx.Client, url: str | None) -> bytes:
        if not url:
            raise ApiError("The optimization API did not return a file URL.")
        try:
            response = client.get(url)
        except httpx.HTTPError as exc:
            raise ApiError(f"Could not download the optimized file: {exc}") from exc
        if response.status_code != 200:
            raise ApiError(
                f"Could not download the optimized file (status={response.status_code}).",
                status_code=response.status_code,
            )
        return response.content


def _decode(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {"success": False, "detail": response.text[:500]}
    return data if isinstance(data, dict) else {"success": False, "detail": str(data)}


def _extract_error(body: dict[str, Any]) -> str:
    detail = body.get("detail") or body.get("error") or body.get("message")
    if isinstance(detail, dict):
        return str(detail.get("message") or detail)
    return str(detail or "").strip()


__all__ = ["ApiImageResult", "OptimizationApi", "OptimizationApiClient"]
