"""RU: Работа с файлами: рабочая копия исходника и сохранение результатов.

Оркестратор не знает, откуда берутся байты и куда они уходят; он видит только
протокол `StorageAdapter`. `LocalStorage` — реализация поверх файловой системы:
приватный кэш для рабочих файлов и общая папка для готовых роликов.

EN: File handling: the working copy of the source and persisting results.

The orchestrator does not know where bytes come from or where they go; it only
sees the `StorageAdapter` protocol. `LocalStorage` is the filesystem
implementation: a private cache for working files and a shared folder for
finished clips.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Final, Protocol

LOG = logging.getLogger(__name__)

WORKING_COPY_NAME: Final = "source_video.mp4"
DEFAULT_DISPLAY_NAME: Final = "video"


class StorageAdapter(Protocol):
    """RU: Минимальный интерфейс хранилища для оркестратора.

    EN: Minimal storage interface used by the orchestrator.
    """

    def copy_source_to_local(self, source: str | Path) -> Path | None: ...

    def copy_local_to_shared(
        self, local_path: Path, display_name_base: str, speed: int,
    ) -> str | None: ...

    def resolve_display_name(self, source: str | Path) -> str: ...


def shared_file_name(display_name_base: str, speed: int) -> str:
    return f"{display_name_base}_{speed}x_10bit.mp4"


def strip_extension(name: str) -> str:
    """Drop the last `.ext` suffix, keeping names without a dot as-is."""

    head, sep, _ext = name.rpartition(".")
    return head if sep else name


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError:
        LOG.warning("Could not remove partial file %s", path)


def _free_destination(directory: Path, name: str) -> Path:
    """Return `directory/name`, or `name (N).ext` when it is taken."""

    candidate = directory / name
    if not candidate.exists():
        return candidate
    stem, suffix = candidate.stem, candidate.suffix
    n = 1
    while True:
        candidate = directory / f"{stem} ({n}){suffix}"
        if not candidate.exists():
            return candidate
        n += 1


class LocalStorage:
    """RU: Хранилище на файловой системе.

    EN: Filesystem-backed storage.

    Args:
        cache_dir: Private directory for the working copy and temp outputs.
        shared_dir: Destination for finished clips.
    """

    def __init__(self, cache_dir: Path, shared_dir: Path):
        self.cache_dir = Path(cache_dir)
        self.shared_dir = Path(shared_dir)

    def copy_source_to_local(self, source: str | Path) -> Path | None:
        """Copy the selected video into the cache; None if it cannot be read."""

        working = self.cache_dir / WORKING_COPY_NAME
        src = Path(source)
        if src.exists() and src.resolve() == working.resolve():
            LOG.error("Source %s is the working copy location; refusing to use it", src)
            return None
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(src, working)
        except shutil.SameFileError:
            # Hard link or similar alias of the source: never unlink it.
            LOG.error("Source %s is the same file as %s", src, working)
            return None
        except OSError:
            LOG.exception("Could not copy %s into %s", source, self.cache_dir)
            _unlink_quietly(working)
            return None
        return working

    def copy_local_to_shared(
        self, local_path: Path, display_name_base: str, speed: int,
    ) -> str | None:
        """Copy a finished clip into the shared folder; return its saved name."""

        dest: Path | None = None
        try:
            self.shared_dir.mkdir(parents=True, exist_ok=True)
            dest = _free_destination(self.shared_dir, shared_file_name(display_name_base, speed))
            shutil.copyfile(local_path, dest)
        except OSError:
            LOG.exception("Could not save %s into %s", local_path, self.shared_dir)
            if dest is not None:
                _unlink_quietly(dest)
            return None
        return dest.name

    def resolve_display_name(self, source: str | Path) -> str:
        name = strip_extension(Path(source).name)
        return name or DEFAULT_DISPLAY_NAME
