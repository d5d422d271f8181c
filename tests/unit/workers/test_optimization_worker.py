from __future__ import annotations

import asyncio
from pathlib import Path

from mediaopt.domain.models import LockAction, OptimizationJob
from mediaopt.optimization.hooks import ProcessHooks
from mediaopt.optimization.process import OptimizationProcess
from mediaopt.queue.jobs import DONE, FAILED, OptimizationQueue
from mediaopt.workers.optimization_worker import OptimizationWorker
from tests.helpers.media import register_library_image

UPLOADS = Path("2024") / "01"


def _worker(queue, process_factory) -> OptimizationWorker:
    return OptimizationWorker(queue=queue, factory=process_factory)


def test_run_once_on_empty_queue(queue, process_factory) -> None:
    assert asyncio.run(_worker(queue, process_factory).run_once()) is False


def test_unit_is_processed_in_order(queue, process_factory, media_repo, media_root, fake_api) -> None:
    media_id = register_library_image(media_repo, media_root)
    process_factory.get_process("wp", media_id).optimize()

    assert asyncio.run(_worker(queue, process_factory).run_once()) is True

    process = process_factory.get_process("wp", media_id)
    sizes = process.data.get_optimization_data()["sizes"]
    assert {name: record["status"] for name, record in sizes.items()} == {
        "thumbnail@mediaopt-webp": "success",
        "full@mediaopt-webp": "success",
        "full": "success",
        "thumbnail": "success",
    }
    assert [call.path.name for call in fake_api.calls] == [
        "photo-150x150.jpg",
        "photo.jpg",
        "photo.jpg",
        "photo-150x150.jpg",
    ]
    assert (media_root / UPLOADS / "photo.jpg.webp").exists()
    assert process.is_locked() is None
    assert [job.status for job in queue.list_for_media(media_id)] == [DONE]


def test_temporary_backup_is_deleted_after_unit(queue, process_factory, settings, media_repo, media_root, backup_root) -> None:
    settings.backup = False
    media_id = register_library_image(media_repo, media_root)
    job = process_factory.get_process("wp", media_id).optimize()
    assert job.data["delete_backup"] is True

    asyncio.run(_worker(queue, process_factory).run_once())

    assert not (backup_root / UPLOADS / "photo.jpg").exists()
    assert process_factory.get_process("wp", media_id).has_next_gen()


def test_size_failures_do_not_stop_the_unit(queue, process_factory, media_repo, media_root, fake_api) -> None:
    media_id = register_library_image(media_repo, media_root)
    fake_api.fail_with("Quota exceeded")
    queue.enqueue(
        OptimizationJob(media_id=media_id, context="wp", sizes=["thumbnail", "medium", "full"], optimization_level=1)
    )

    asyncio.run(_worker(queue, process_factory).run_once())

    data = process_factory.get_process("wp", media_id).data
    assert data.get_size_data("thumbnail", "error") == "Quota exceeded"
    assert data.get_size_data("medium") == {}
    assert data.get_size_data("full", "status") == "success"
    assert [job.status for job in queue.list_for_media(media_id)] == [DONE]


def test_invalid_media_fails_the_unit(queue, process_factory) -> None:
    queue.enqueue(OptimizationJob(media_id=404, context="wp", sizes=["full"], optimization_level=2))

    asyncio.run(_worker(queue, process_factory).run_once())

    [job] = queue.list_for_media(404)
    assert job.status == FAILED
    assert job.error == "This media is not valid."


def test_expired_lock_is_taken_again_before_processing(queue, process_factory, media_repo, media_root) -> None:
    seen = []

    def before(process, file, size, level, next_gen, disabled):
        seen.append(process.is_locked())
        return None

    process_factory.hooks = ProcessHooks(before_optimize_size=before)
    media_id = register_library_image(media_repo, media_root)
    queue.enqueue(OptimizationJob(media_id=media_id, context="wp", sizes=["full"], optimization_level=2))

    asyncio.run(_worker(queue, process_factory).run_once())

    assert seen == [LockAction.OPTIMIZING]
    assert process_factory.get_process("wp", media_id).is_locked() is None



def test_unexpected_error_fails_the_unit_and_worker_goes_on(
    queue, process_factory, media_repo, media_root, monkeypatch
) -> None:
    broken = register_library_image(media_repo, media_root, name="broken")
    healthy = register_library_image(media_repo, media_root, name="healthy")
    original = OptimizationProcess.optimize_size

    def optimize_size(self, size, optimization_level=None):
        if self.media.get_id() == broken:
            raise RuntimeError("image exceeds the pixel limit")
        return original(self, size, optimization_level)

    monkeypatch.setattr(OptimizationProcess, "optimize_size", optimize_size)
    queue.enqueue(OptimizationJob(media_id=broken, context="wp", sizes=["full"], optimization_level=2))
    queue.enqueue(OptimizationJob(media_id=healthy, context="wp", sizes=["full"], optimization_level=2))
    worker = _worker(queue, process_factory)

    assert asyncio.run(worker.run_once()) is True
    assert asyncio.run(worker.run_once()) is True

    [failed] = queue.list_for_media(broken)
    assert (failed.status, failed.error) == (FAILED, "image exceeds the pixel limit")
    assert process_factory.get_process("wp", broken).is_locked() is None
    assert [job.status for job in queue.list_for_media(healthy)] == [DONE]
    assert queue.pending_count() == 0


def test_unit_left_running_is_processed_again(session_factory, process_factory, media_repo, media_root, clock) -> None:
    queue = OptimizationQueue(session_factory, clock=clock)
    media_id = register_library_image(media_repo, media_root)
    queue.enqueue(OptimizationJob(media_id=media_id, context="wp", sizes=["full"], optimization_level=2))
    queue.acquire_next()
    worker = OptimizationWorker(queue=queue, factory=process_factory, stale_after=600)

    assert asyncio.run(worker.run_once()) is False

    clock.advance(601)

    assert asyncio.run(worker.run_once()) is True
    assert [job.status for job in queue.list_for_media(media_id)] == [DONE]
    assert process_factory.get_process("wp", media_id).data.get_size_data("full", "status") == "success"

def test_run_forever_stops_on_shutdown(queue, process_factory) -> None:
    sleeps = []

    async def scenario() -> None:
        shutdown = asyncio.Event()

        def fake_sleep(seconds: float) -> None:
            sleeps.append(seconds)
            shutdown.set()

        worker = OptimizationWorker(queue=queue, factory=process_factory, sleep=fake_sleep, poll_interval=0.5)
        await asyncio.wait_for(worker.run_forever(shutdown_event=shutdown), timeout=5)

    asyncio.run(scenario())

    assert sleeps == [0.5]
