#!/usr/bin/env python3
"""RU: Ускорение видео через FFmpeg: смешивание кадров, прореживание и setpts.

EN: Speed up video with FFmpeg: blend frames, decimate and rescale timestamps.
"""

from __future__ import annotations

import argparse
import logging
import shlex
import subprocess
import sys
from pathlib import Path
from typing import Final

from video_go_faster.stages.video_stage import ProcessingRequest, ProcessingResult
from video_go_faster.utils.logging_utils import setup_logging

LOG = logging.getLogger(__name__)

SUPPORTED_BLEND_FACTORS: Final = (2, 4, 8)
PIXEL_FORMAT: Final = "yuv420p10le"
DEFAULT_FFMPEG: Final = "ffmpeg"


def _check_blend_factor(blend_factor: int) -> None:
    # bool is an int subclass; True would otherwise pass as 1.
    if isinstance(blend_factor, bool) or not isinstance(blend_factor, int):
        message = f"blend factor must be an int, got {blend_factor!r}"
        raise ValueError(message)
    if blend_factor not in SUPPORTED_BLEND_FACTORS:
        message = (
            f"unsupported blend factor {blend_factor}; "
            f"expected one of {', '.join(map(str, SUPPORTED_BLEND_FACTORS))}"
        )
        raise ValueError(message)


def build_filter_chain(blend_factor: int) -> str:
    """Build the `-vf` chain for one speed-up factor.

    - format: promote 8-bit input to 10-bit before blending.
    - tmix: average `blend_factor` consecutive frames.
    - select: keep one frame out of every `blend_factor`; the comma inside
      mod() is escaped because the chain itself is comma separated.
    - setpts: shrink timestamps so duration divides by `blend_factor`.
    """
    _check_blend_factor(blend_factor)
    pts_modifier = 1.0 / blend_factor
    return (
        f"format=pix_fmts={PIXEL_FORMAT},"
        f"tmix=frames={blend_factor},"
        f"select='not(mod(n\\,{blend_factor}))',"
        f"setpts={pts_modifier}*PTS"
    )


def generate_command(input_path: str, output_path: str, blend_factor: int) -> str:
    """RU: Строит строку аргументов FFmpeg. Чистая функция, без I/O.

    EN: Build the FFmpeg argument string. Pure function, no I/O.

    libx265 is used for consistent 10-bit output; crf 18 with preset slow;
    audio is dropped. Paths are passed through verbatim.
    """
    filter_chain = build_filter_chain(blend_factor)
    return (
        f'-y -i "{input_path}" -vf "{filter_chain}" '
        f"-c:v libx265 -crf 18 -preset slow -pix_fmt {PIXEL_FORMAT} -an "
        f'"{output_path}"'
    )


def _run_subprocess(cmd: list[str]) -> subprocess.CompletedProcess[str]:
    """Run a subprocess command with safe defaults."""

    normalized_cmd = [str(part) for part in cmd]
    return subprocess.run(normalized_cmd, capture_output=True, text=True, check=False)


def execute(command: str, *, ffmpeg_bin: str = DEFAULT_FFMPEG) -> ProcessingResult:
    """RU: Синхронно выполняет команду FFmpeg (без ретраев и таймаута).

    EN: Run an FFmpeg command synchronously (no retries, no timeout).
    """
    cmd = [ffmpeg_bin, *shlex.split(command)]
    LOG.debug("Running: %s %s", ffmpeg_bin, command)
    try:
        res = _run_subprocess(cmd)
    except OSError as exc:
        LOG.error("Could not launch %s: %s", ffmpeg_bin, exc)
        return ProcessingResult(
            succeeded=False,
            command_text=command,
            log_text=f"could not launch {ffmpeg_bin}: {exc}",
        )

    log_text = "\n".join(part.strip() for part in (res.stderr, res.stdout) if part and part.strip())
    if res.returncode != 0:
        LOG.warning("%s exited with code %s", ffmpeg_bin, res.returncode)
    return ProcessingResult(
        succeeded=res.returncode == 0,
        command_text=command,
        log_text=log_text,
        return_code=res.returncode,
    )


def process_video(
    request: ProcessingRequest, *, ffmpeg_bin: str = DEFAULT_FFMPEG,
) -> ProcessingResult:
    """Generate the command for `request` and run it."""

    return execute(request.command(), ffmpeg_bin=ffmpeg_bin)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""

    ap = argparse.ArgumentParser(description="Speed up one video by a fixed factor")
    ap.add_argument("--input", type=Path, required=True, help="Input video file")
    ap.add_argument("--output", type=Path, required=True, help="Output .mp4 file")
    ap.add_argument(
        "--factor",
        type=int,
        choices=SUPPORTED_BLEND_FACTORS,
        default=2,
        help="Speed multiplier / frames blended (default: 2)",
    )
    ap.add_argument("--ffmpeg", default=DEFAULT_FFMPEG, help="FFmpeg executable")
    ap.add_argument(
        "--dry-run", action="store_true", help="Print the FFmpeg arguments and exit",
    )
    ap.add_argument("--quiet", action="store_true", help="Suppress non-error output")
    ap.add_argument("--verbose", action="store_true", help="Verbose output")
    return ap.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the single-factor video processor."""

    args = parse_args(argv)
    setup_logging(verbose=args.verbose, quiet=args.quiet)

    request = ProcessingRequest(
        input_path=str(args.input),
        output_path=str(args.output),
        blend_factor=args.factor,
    )
    if args.dry_run:
        print(request.command())
        return 0

    if not args.input.exists():
        LOG.error("input file not found: %s", args.input)
        return 1

    args.output.parent.mkdir(parents=True, exist_ok=True)
    result = process_video(request, ffmpeg_bin=args.ffmpeg)
    if not result.succeeded:
        LOG.error("processing %sx failed:\n%s", args.factor, result.log_text)
        return 1
    if not args.quiet:
        LOG.info("done: %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
