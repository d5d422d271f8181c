"""Queue a bulk optimization (or next-gen generation) run."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass, field

from mediaopt.config import load_config
from mediaopt.dependencies import build_process_factory
from mediaopt.exceptions import MediaOptError, OptimizationError
from mediaopt.logging import configure_logging
from mediaopt.media.context import LIBRARY_CONTEXT
from mediaopt.optimization.bulk import BulkSelector


@dataclass(slots=True)
class BulkSummary:
    selected: int
    queued: int
    skipped: dict[str, int] = field(default_factory=dict)
    dry_run: bool = False


def _needs_reoptimize(process, target_level: int) -> bool:
    data = process.data
    if not (data.is_optimized() or data.is_already_optimized()):
        return False
    return data.get_optimization_level() != target_level


def perform_bulk(*, context: str, level: int | None, nextgen: bool, dry_run: bool) -> BulkSummary:
    """Select the media of ``context`` and queue them; return summary counters."""
    config = load_config()
    factory = build_process_factory(config)
    selector = BulkSelector(
        config.session_factory,
        factory.filesystem,
        factory.get_context(context),
        config.settings,
    )
    target_level = config.settings.optimization_level if level is None else level

    if nextgen:
        selection = selector.get_optimized_media_ids_without_format()
        media_ids = selection.ids
        skipped = {"no_file_path": len(selection.no_file_path), "no_backup": len(selection.no_backup)}
    else:
        media_ids = selector.get_unoptimized_media_ids(target_level)
        skipped = {}

    if dry_run:
        return BulkSummary(selected=len(media_ids), queued=0, skipped=skipped, dry_run=True)

    queued = 0
    for media_id in media_ids:
        try:
            process = factory.get_process(context, media_id)
            if nextgen:
                process.generate_nextgen_versions()
            elif _needs_reoptimize(process, target_level):
                process.reoptimize(target_level)
            else:
                process.optimize(target_level)
        except OptimizationError as exc:
            skipped[exc.code] = skipped.get(exc.code, 0) + 1
            continue
        queued += 1
    return BulkSummary(selected=len(media_ids), queued=queued, skipped=skipped)


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Queue media for optimization.")
    parser.add_argument("--context", default=LIBRARY_CONTEXT, help="Media context (wp or custom-folders).")
    parser.add_argument("--level", type=int, choices=(0, 1, 2), default=None, help="Target optimization level.")
    parser.add_argument("--nextgen", action="store_true", help="Generate missing next-gen versions instead.")
    parser.add_argument("--dry-run", action="store_true", help="Only report how many media would be queued.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    configure_logging()
    try:
        summary = perform_bulk(
            context=args.context,
            level=args.level,
            nextgen=args.nextgen,
            dry_run=args.dry_run,
        )
    except (MediaOptError, ValueError) as exc:
        print(f"bulk optimization failed: {exc}", file=sys.stderr)
        return 2

    skipped = ", ".join(f"{code}={count}" for code, count in sorted(summary.skipped.items())) or "none"
    mode = "dry-run" if summary.dry_run else "done"
    print(
        f"bulk {mode}, selected={summary.selected}, queued={summary.queued}, skipped={skipped}",
        file=sys.stdout,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
