"""RU: Консольная точка входа VideoGoFaster.

EN: Console entry point for VideoGoFaster.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from functools import partial
from pathlib import Path

from tqdm import tqdm

from video_go_faster.config import DEFAULT_CONFIG_PATH, load_config, parse_speeds
from video_go_faster.pipeline import Orchestrator
from video_go_faster.scripts.video_processor import SUPPORTED_BLEND_FACTORS, execute
from video_go_faster.stages.video_stage import ProgressState, RunState
from video_go_faster.utils.logging_utils import setup_logging
from video_go_faster.utils.storage import LocalStorage

log = logging.getLogger(__name__)


def status(msg: str, *, quiet: bool) -> None:
    """RU: Печатает короткое статус-сообщение (если не quiet).

    EN: Emit a short status line.
    """
    if not quiet:
        print(msg, flush=True)


class ConsoleReporter:
    """RU: Наблюдатель, печатающий прогресс в консоль.

    EN: Observer that renders run progress to the console.
    """

    def __init__(self, total: int, *, quiet: bool = False, progress: bool = True):
        self.quiet = quiet
        self._last_step: str | None = None
        self._seen_logs = 0
        self._bar = tqdm(
            total=total,
            disable=(not progress) or quiet,
            desc="VideoGoFaster",
            unit="clip",
        )

    def _emit(self, msg: str) -> None:
        # tqdm.write keeps status lines from tearing an active bar.
        if not self.quiet:
            tqdm.write(msg)

    def __call__(self, state: ProgressState) -> None:
        if state.current_step != self._last_step:
            self._last_step = state.current_step
            self._emit(f"[gofaster] {state.current_step}")
        new_logs = state.output_logs[self._seen_logs:]
        for line in new_logs:
            self._emit(f"  {line}")
            self._bar.update(1)
        self._seen_logs = len(state.output_logs)

    def close(self) -> None:
        self._bar.close()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        description="VideoGoFaster - make 2x/4x/8x frame-blended copies of a video",
    )
    ap.add_argument("--input", type=Path, help="Source video file")
    ap.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to config.yaml")
    ap.add_argument("--cache-dir", type=Path, help="Directory for working files")
    ap.add_argument("--shared-dir", type=Path, help="Directory for finished clips")
    ap.add_argument("--ffmpeg", help="FFmpeg executable")
    ap.add_argument(
        "--speeds",
        type=int,
        nargs="+",
        choices=SUPPORTED_BLEND_FACTORS,
        help="Speeds to produce (default: 2 4 8)",
    )
    ap.add_argument("--quiet", action="store_true", help="Only errors")
    ap.add_argument("--verbose", action="store_true", help="Verbose logs")
    ap.add_argument("--no-progress", action="store_true", help="Disable progress bar")
    ap.add_argument("--version", action="store_true")
    return ap.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    if args.version:
        from . import __version__

        print(__version__)
        return 0

    if args.input is None:
        print("error: --input is required", file=sys.stderr)
        return 2

    try:
        conf = load_config(args.config)
        if args.speeds:
            conf = replace(conf, speeds=parse_speeds(args.speeds))
    except ValueError as exc:
        setup_logging(quiet=args.quiet)
        log.error("Invalid config %s: %s", args.config, exc)
        return 1

    quiet = bool(args.quiet or conf.quiet)
    verbose = bool(args.verbose or conf.verbose)
    setup_logging(verbose=verbose, quiet=quiet)

    storage = LocalStorage(
        cache_dir=args.cache_dir.expanduser() if args.cache_dir else conf.cache_dir,
        shared_dir=args.shared_dir.expanduser() if args.shared_dir else conf.shared_dir,
    )
    engine = partial(execute, ffmpeg_bin=args.ffmpeg or conf.ffmpeg_bin)

    reporter = ConsoleReporter(len(conf.speeds), quiet=quiet, progress=not args.no_progress)
    try:
        with Orchestrator(storage, engine=engine, speeds=conf.speeds) as orchestrator:
            orchestrator.subscribe(reporter)
            future = orchestrator.start(args.input)
            if future is None:
                return 1
            final = future.result()
    finally:
        reporter.close()

    if final.state is RunState.ERROR:
        return 1
    if not any(line.startswith("Saved: ") for line in final.output_logs):
        log.error("No clip was saved")
        return 1
    status(f"[gofaster] saved to {storage.shared_dir}", quiet=quiet)
    return 0


if __name__ == "__main__":
    sys.exit(main())
