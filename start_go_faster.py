#!/usr/bin/env python3
"""RU: Удобный лаунчер VideoGoFaster из корня репозитория.

См. `python3 start_go_faster.py --help`.

EN: Convenience launcher for VideoGoFaster from the repository root.

See `python3 start_go_faster.py --help`.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

ENV_FLAG = "GOFASTER_VENV_ACTIVE"


def ensure_venv() -> None:
    """Re-exec into the repo venv if not already in a venv."""

    if os.environ.get(ENV_FLAG) == "1":
        return

    # venv interpreters are often symlinks to the system python, so compare
    # prefixes rather than executable paths.
    if sys.prefix != sys.base_prefix:
        os.environ[ENV_FLAG] = "1"
        return

    repo_dir = Path(__file__).resolve().parent
    venv_python = repo_dir / ".venv" / "bin" / "python"
    if venv_python.exists():
        os.environ[ENV_FLAG] = "1"
        os.execv(str(venv_python), [str(venv_python), *sys.argv])  # noqa: S606


def main() -> None:
    ensure_venv()
    from video_go_faster.cli import main as _main

    sys.exit(_main())


if __name__ == "__main__":
    main()
