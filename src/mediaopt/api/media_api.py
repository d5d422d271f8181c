"""HTTP routes driving the optimization process of one media."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from ..domain.models import OptimizationJob
from ..exceptions import (
    AlreadyOptimized,
    HasNextGen,
    IdenticalLevel,
    InvalidMedia,
    MediaLocked,
    OptimizationError,
)
from ..optimization.factory import ProcessFactory
from ..optimization.process import OptimizationProcess

router = APIRouter(prefix="/api/media", tags=["media"])

CONFLICT_ERRORS = (AlreadyOptimized, HasNextGen, IdenticalLevel, MediaLocked)


class OptimizeRequest(BaseModel):
    optimization_level: Optional[int] = Field(default=None, description="0 normal, 1 aggressive, 2 ultra")


class JobResponse(BaseModel):
    job_id: Optional[int]
    media_id: int
    context: str
    sizes: list[str]
    optimization_level: int
    data: dict[str, Any]


class RestoreResponse(BaseModel):
    media_id: int
    context: str
    restored: bool


class StatusResponse(BaseModel):
    media_id: int
    context: str
    status: Optional[str]
    level: Optional[int]
    sizes: dict[str, dict[str, Any]]
    locked: Optional[str]
    has_backup: bool
    has_next_gen: bool
    is_full_next_gen: bool
    original_size: int
    optimized_size: int
    percent: float


def get_process_factory(request: Request) -> ProcessFactory:
    try:
        return request.app.state.process_factory  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover
        raise RuntimeError("ProcessFactory is not configured") from exc


def _error_status(exc: OptimizationError) -> int:
    if isinstance(exc, InvalidMedia):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, CONFLICT_ERRORS):
        return status.HTTP_409_CONFLICT
    return status.HTTP_422_UNPROCESSABLE_ENTITY


def _http_error(exc: OptimizationError) -> HTTPException:
    return HTTPException(
        status_code=_error_status(exc),
        detail={"code": exc.code, "message": exc.message},
    )


def _load_process(factory: ProcessFactory, context: str, media_id: int) -> OptimizationProcess:
    try:
        return factory.get_process(context, media_id)
    except OptimizationError as exc:
        raise _http_error(exc) from exc


def _job_response(job: OptimizationJob) -> JobResponse:
    return JobResponse(
        job_id=job.id,
        media_id=job.media_id,
        context=job.context,
        sizes=list(job.sizes),
        optimization_level=job.optimization_level,
        data=dict(job.data),
    )


@router.post("/{context}/{media_id}/optimize", response_model=JobResponse, status_code=status.HTTP_202_ACCEPTED)
def optimize_media(
    context: str,
    media_id: int,
    payload: OptimizeRequest | None = None,
    factory: ProcessFactory = Depends(get_process_factory),
) -> JobResponse:
    process = _load_process(factory, context, media_id)
    level = payload.optimization_level if payload else None
    try:
        job = process.optimize(level)
    except OptimizationError as exc:
        raise _http_error(exc) from exc
    return _job_response(job)


@router.post("/{context}/{media_id}/reoptimize", response_model=JobResponse, status_code=status.HTTP_202_ACCEPTED)
def reoptimize_media(
    context: str,
    media_id: int,
    payload: OptimizeRequest | None = None,
    factory: ProcessFactory = Depends(get_process_factory),
) -> JobResponse:
    process = _load_process(factory, context, media_id)
    level = payload.optimization_level if payload else None
    try:
        job = process.reoptimize(level)
    except OptimizationError as exc:
        raise _http_error(exc) from exc
    return _job_response(job)


@router.post("/{context}/{media_id}/restore", response_model=RestoreResponse)
def restore_media(
    context: str,
    media_id: int,
    factory: ProcessFactory = Depends(get_process_factory),
) -> RestoreResponse:
    process = _load_process(factory, context, media_id)
    try:
        process.restore()
    except OptimizationError as exc:
        raise _http_error(exc) from exc
    return RestoreResponse(media_id=media_id, context=context, restored=True)


@router.post(
    "/{context}/{media_id}/generate-nextgen",
    response_model=JobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def generate_nextgen(
    context: str,
    media_id: int,
    factory: ProcessFactory = Depends(get_process_factory),
) -> JobResponse:
    process = _load_process(factory, context, media_id)
    try:
        job = process.generate_nextgen_versions()
    except OptimizationError as exc:
        raise _http_error(exc) from exc
    return _job_response(job)


@router.get("/{context}/{media_id}/status", response_model=StatusResponse)
def media_status(
    context: str,
    media_id: int,
    factory: ProcessFactory = Depends(get_process_factory),
) -> StatusResponse:
    process = _load_process(factory, context, media_id)
    stored = process.data.get_optimization_data()
    locked = process.is_locked()
    return StatusResponse(
        media_id=media_id,
        context=context,
        status=stored["status"],
        level=stored["level"],
        sizes=stored["sizes"],
        locked=locked.value if locked else None,
        has_backup=process.media.has_backup(),
        has_next_gen=process.has_next_gen(),
        is_full_next_gen=process.is_full_next_gen(),
        original_size=process.data.get_original_size(),
        optimized_size=process.data.get_optimized_size(),
        percent=process.data.get_saving_percent(),
    )


__all__ = ["router", "get_process_factory"]
