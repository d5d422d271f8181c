"""Background queue of optimization units.

A unit holds every size of one media; the worker processes the sizes in the
stored order. Units are handed out FIFO by insertion id.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..db.db_models import OptimizationJobModel
from ..domain.models import OptimizationJob
from ..exceptions import NotFoundError, handle_sqlalchemy_errors

PENDING = "pending"
RUNNING = "running"
DONE = "done"
FAILED = "failed"


class JobQueue(Protocol):
    def enqueue(self, job: OptimizationJob) -> OptimizationJob: ...


class OptimizationQueue:
    """SQL-backed FIFO queue of :class:`OptimizationJob` units."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock or datetime.utcnow

    def enqueue(self, job: OptimizationJob) -> OptimizationJob:
        now = self._clock()
        with handle_sqlalchemy_errors(entity="optimization_job"), self._session_factory() as session:
            model = OptimizationJobModel(
                media_id=job.media_id,
                context=job.context,
                sizes=list(job.sizes),
                optimization_level=job.optimization_level,
                data=dict(job.data),
                status=PENDING,
                created_at=now,
                updated_at=now,
            )
            session.add(model)
            session.commit()
            job.id = model.id
            job.status = PENDING
            return job

    def acquire_next(self) -> OptimizationJob | None:
        """Claim the oldest pending unit and return it.

        The claim is a conditional update on the pending status, so a unit
        taken by another worker between the select and the update is skipped.
        """
        with handle_sqlalchemy_errors(entity="optimization_job"), self._session_factory() as session:
            while True:
                stmt = (
                    select(OptimizationJobModel.id)
                    .where(OptimizationJobModel.status == PENDING)
                    .order_by(OptimizationJobModel.id)
                    .limit(1)
                    .with_for_update(skip_locked=True)
                )
                job_id = session.execute(stmt).scalar_one_or_none()
                if job_id is None:
                    session.rollback()
                    return None
                claim = (
                    update(OptimizationJobModel)
                    .where(OptimizationJobModel.id == job_id, OptimizationJobModel.status == PENDING)
                    .values(status=RUNNING, updated_at=self._clock())
                    .execution_options(synchronize_session=False)
                )
                claimed = session.execute(claim).rowcount == 1
                session.commit()
                if claimed:
                    return self._to_domain(session.get(OptimizationJobModel, job_id))

    def release_stale(self, *, older_than: timedelta, now: datetime | None = None) -> list[OptimizationJob]:
        """Put back to pending the running units not touched for ``older_than``."""
        now = now or self._clock()
        cutoff = now - older_than
        with handle_sqlalchemy_errors(entity="optimization_job"), self._session_factory() as session:
            stmt = select(OptimizationJobModel).where(
                OptimizationJobModel.status == RUNNING,
                OptimizationJobModel.updated_at < cutoff,
            )
            models = list(session.execute(stmt).scalars())
            for model in models:
                model.status = PENDING
                model.updated_at = now
            session.commit()
            return [self._to_domain(model) for model in models]

    def mark_done(self, job: OptimizationJob) -> OptimizationJob:
        return self._finalize(job, status=DONE, error=None)

    def mark_failed(self, job: OptimizationJob, error: str) -> OptimizationJob:
        return self._finalize(job, status=FAILED, error=error)

    def _finalize(self, job: OptimizationJob, *, status: str, error: str | None) -> OptimizationJob:
        with handle_sqlalchemy_errors(entity="optimization_job"), self._session_factory() as session:
            model = session.get(OptimizationJobModel, job.id)
            if model is None:
                raise NotFoundError(f"optimization_job: '{job.id}' not found")
            model.status = status
            model.error = error
            model.is_finalized = True
            model.updated_at = self._clock()
            session.commit()
            job.status = status
            job.error = error
            return job

    def pending_count(self) -> int:
        with self._session_factory() as session:
            stmt = select(func.count()).select_from(OptimizationJobModel).where(
                OptimizationJobModel.status == PENDING
            )
            return int(session.execute(stmt).scalar_one())

    def list_for_media(self, media_id: int) -> list[OptimizationJob]:
        with self._session_factory() as session:
            stmt = (
                select(OptimizationJobModel)
                .where(OptimizationJobModel.media_id == media_id)
                .order_by(OptimizationJobModel.id)
            )
            return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    @staticmethod
    def _to_domain(model: OptimizationJobModel) -> OptimizationJob:
        return OptimizationJob(
            id=model.id,
            media_id=model.media_id,
            context=model.context,
            sizes=list(model.sizes or []),
            optimization_level=model.optimization_level,
            data=dict(model.data or {}),
            status=model.status,
            error=model.error,
        )


__all__ = ["JobQueue", "OptimizationQueue", "PENDING", "RUNNING", "DONE", "FAILED"]
