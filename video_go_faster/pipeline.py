"""RU: Оркестрация прогона VideoGoFaster.

Один прогон:
1) Копирование исходника во временную рабочую копию
2) Для каждой скорости (2x, 4x, 8x) по очереди: FFmpeg → сохранение результата
3) Удаление рабочей копии

Ошибка FFmpeg или сохранения для одной скорости не останавливает остальные.
Одновременно выполняется не больше одного прогона; повторный старт во время
работы игнорируется.

EN: Run orchestration for VideoGoFaster.

A single run:
1) Copy the source into a temporary working copy
2) For each speed (2x, 4x, 8x) in turn: FFmpeg → persist the result
3) Remove the working copy

An FFmpeg or save failure for one speed does not stop the others.
At most one run is in flight; a start request while busy is ignored.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import replace
from pathlib import Path

from video_go_faster.config import parse_speeds
from video_go_faster.scripts.video_processor import (
    SUPPORTED_BLEND_FACTORS,
    execute,
    generate_command,
)
from video_go_faster.stages.video_stage import (
    ProcessingRequest,
    ProcessingResult,
    ProgressState,
    RunState,
)
from video_go_faster.utils.storage import StorageAdapter

LOG = logging.getLogger(__name__)

Engine = Callable[[str], ProcessingResult]
Observer = Callable[[ProgressState], None]

_STARTABLE = frozenset({RunState.IDLE, RunState.COMPLETED, RunState.ERROR})


def temp_output_path(working_input: Path, speed: int) -> Path:
    return working_input.parent / f"temp_{speed}x.mp4"


def _remove(path: Path) -> None:
    if path.exists():
        path.unlink()


class Orchestrator:
    """RU: Последовательно прогоняет FFmpeg по всем скоростям.

    EN: Drives FFmpeg across every speed, one after another.

    Args:
        storage: Storage adapter for the working copy and saved clips.
        engine: Callable running an FFmpeg argument string synchronously.
        speeds: Speed factors to produce; run in ascending order.
    """

    def __init__(
        self,
        storage: StorageAdapter,
        *,
        engine: Engine = execute,
        speeds: Iterable[int] = SUPPORTED_BLEND_FACTORS,
    ) -> None:
        self.storage = storage
        self.engine = engine
        self.speeds = parse_speeds(list(speeds))
        self._lock = threading.Lock()
        self._state = ProgressState()
        self._observers: list[Observer] = []
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gofaster")

    # -- observation -------------------------------------------------------

    @property
    def state(self) -> ProgressState:
        return self._state

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register `observer`; it is called with every new state snapshot."""

        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def _notify(self, snapshot: ProgressState) -> None:
        with self._lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(snapshot)
            except Exception:
                LOG.exception("Progress observer %r failed", observer)

    def _update(self, **changes: object) -> None:
        with self._lock:
            self._state = replace(self._state, **changes)
            snapshot = self._state
        self._notify(snapshot)

    def _log(self, message: str) -> None:
        with self._lock:
            self._state = replace(self._state, output_logs=(*self._state.output_logs, message))
            snapshot = self._state
        self._notify(snapshot)

    # -- entry points ------------------------------------------------------

    def _try_begin(self) -> bool:
        with self._lock:
            if self._state.state not in _STARTABLE:
                return False
            self._state = ProgressState(
                state=RunState.PREPARING, current_step="Preparing...",
            )
            snapshot = self._state
        self._notify(snapshot)
        return True

    def start(self, source: str | Path) -> Future[ProgressState] | None:
        """RU: Запускает прогон в фоне. Возвращает None, если прогон уже идёт.

        EN: Start a run on the background worker. Returns None when busy.
        """
        if not self._try_begin():
            LOG.info("Run already in progress; ignoring start for %s", source)
            return None
        try:
            return self._executor.submit(self._run, source)
        except RuntimeError as exc:
            # Worker already shut down; leave a restartable state behind.
            self._update(state=RunState.ERROR, current_step=f"Error: {exc}", factor=None)
            raise

    def run(self, source: str | Path) -> ProgressState:
        """Run synchronously in the calling thread; no-op while busy."""

        if not self._try_begin():
            LOG.info("Run already in progress; ignoring run for %s", source)
            return self._state
        return self._run(source)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> Orchestrator:
        return self

    def __exit__(self, _exc_type: object, _exc: object, _tb: object) -> None:
        self.close()

    # -- the run -----------------------------------------------------------

    def _run(self, source: str | Path) -> ProgressState:
        working = self.storage.copy_source_to_local(source)
        if working is None:
            LOG.error("Could not access %s", source)
            self._update(
                state=RunState.ERROR,
                current_step="Error: Could not access video file.",
                factor=None,
            )
            return self._state

        try:
            display_name = self.storage.resolve_display_name(source)
            for speed in self.speeds:
                self._process_speed(working, display_name, speed)
            self._update(state=RunState.COMPLETED, current_step="All Completed.", factor=None)
        except Exception as exc:
            LOG.exception("Run for %s aborted", source)
            self._update(state=RunState.ERROR, current_step=f"Error: {exc}", factor=None)
        finally:
            try:
                _remove(working)
            except OSError:
                LOG.exception("Could not remove working copy %s", working)
        return self._state

    def _process_speed(self, working: Path, display_name: str, speed: int) -> None:
        self._update(
            state=RunState.PROCESSING,
            current_step=f"Blending {speed}x (High Quality)...",
            factor=speed,
        )
        output = temp_output_path(working, speed)
        request = ProcessingRequest(
            input_path=str(working), output_path=str(output), blend_factor=speed,
        )
        try:
            command = generate_command(request.input_path, request.output_path, request.blend_factor)
            result = self.engine(command)

            if result.succeeded:
                self._update(state=RunState.SAVING, current_step=f"Saving {speed}x...")
                saved_name = self.storage.copy_local_to_shared(output, display_name, speed)
                if saved_name is not None:
                    LOG.info("Saved %sx as %s", speed, saved_name)
                    self._log(f"Saved: {saved_name}")
                else:
                    LOG.error("Saving %sx failed", speed)
                    self._log(f"Error saving {speed}x video.")
            else:
                LOG.error("Processing %sx failed (code %s)", speed, result.return_code)
                self._update(state=RunState.FAILED)
                self._log(f"Error processing {speed}x: {result.log_text}")
        finally:
            _remove(output)
