"""Run the optimization worker until interrupted."""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys

from mediaopt.config import load_config
from mediaopt.dependencies import build_process_factory
from mediaopt.logging import configure_logging
from mediaopt.workers.optimization_worker import OptimizationWorker


async def run(*, once: bool) -> int:
    config = load_config()
    factory = build_process_factory(config)
    worker = OptimizationWorker(
        queue=factory.queue,
        factory=factory,
        poll_interval=config.settings.worker_poll_interval_ms / 1000,
        stale_after=config.settings.worker_stale_after_s,
    )

    if once:
        processed = 0
        while await worker.run_once():
            processed += 1
        print(f"worker drained queue, units={processed}", file=sys.stdout)
        return processed

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)
    await worker.run_forever(shutdown_event=shutdown_event)
    return 0


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Process queued optimization units.")
    parser.add_argument("--once", action="store_true", help="Drain the queue then exit.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    configure_logging()
    try:
        asyncio.run(run(once=args.once))
    except Exception as exc:
        print(f"worker failed: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
