"""Tests for the speed-up run orchestrator."""

from __future__ import annotations

import shlex
import threading
from pathlib import Path

import pytest

from video_go_faster import pipeline
from video_go_faster.pipeline import Orchestrator
from video_go_faster.stages.video_stage import ProcessingResult, ProgressState, RunState
from video_go_faster.utils.storage import WORKING_COPY_NAME, LocalStorage


class FakeEngine:
    """Engine stub that writes the output file named in the command."""

    def __init__(self, failing: set[int] | None = None) -> None:
        self.failing = failing or set()
        self.commands: list[str] = []

    def __call__(self, command: str) -> ProcessingResult:
        self.commands.append(command)
        factor = int(command.split("tmix=frames=")[1].split(",")[0])
        if factor in self.failing:
            return ProcessingResult(
                succeeded=False, command_text=command, log_text="encoder exploded", return_code=1,
            )
        Path(shlex.split(command)[-1]).write_bytes(b"fast")
        return ProcessingResult(succeeded=True, command_text=command, log_text="", return_code=0)


@pytest.fixture
def source(tmp_path: Path) -> Path:
    src = tmp_path / "picked" / "Holiday Clip.MOV"
    src.parent.mkdir()
    src.write_bytes(b"original video bytes")
    return src


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(cache_dir=tmp_path / "cache", shared_dir=tmp_path / "shared")


def test_all_speeds_succeed(source: Path, storage: LocalStorage) -> None:
    engine = FakeEngine()
    with Orchestrator(storage, engine=engine) as orch:
        final = orch.run(source)

    assert final.state is RunState.COMPLETED
    assert final.current_step == "All Completed."
    assert final.output_logs == (
        "Saved: Holiday Clip_2x_10bit.mp4",
        "Saved: Holiday Clip_4x_10bit.mp4",
        "Saved: Holiday Clip_8x_10bit.mp4",
    )
    assert [int(c.split("tmix=frames=")[1][0]) for c in engine.commands] == [2, 4, 8]
    # Working copy and per-speed temp outputs are gone.
    assert list(storage.cache_dir.iterdir()) == []
    assert sorted(p.name for p in storage.shared_dir.iterdir()) == [
        "Holiday Clip_2x_10bit.mp4",
        "Holiday Clip_4x_10bit.mp4",
        "Holiday Clip_8x_10bit.mp4",
    ]


def test_engine_failure_does_not_stop_other_speeds(source: Path, storage: LocalStorage) -> None:
    engine = FakeEngine(failing={4})
    with Orchestrator(storage, engine=engine) as orch:
        final = orch.run(source)

    assert final.state is RunState.COMPLETED
    assert len(engine.commands) == 3
    assert len(final.output_logs) == 3
    assert final.output_logs[0].startswith("Saved: ")
    assert final.output_logs[1] == "Error processing 4x: encoder exploded"
    assert final.output_logs[2].startswith("Saved: ")
    assert not (storage.cache_dir / WORKING_COPY_NAME).exists()


def test_commands_use_working_copy_and_temp_outputs(source: Path, storage: LocalStorage) -> None:
    engine = FakeEngine()
    with Orchestrator(storage, engine=engine) as orch:
        orch.run(source)

    working = storage.cache_dir / WORKING_COPY_NAME
    for factor, command in zip((2, 4, 8), engine.commands):
        args = shlex.split(command)
        assert args[args.index("-i") + 1] == str(working)
        assert args[-1] == str(storage.cache_dir / f"temp_{factor}x.mp4")


def test_start_while_running_is_a_noop(source: Path, storage: LocalStorage) -> None:
    entered = threading.Event()
    release = threading.Event()
    inner = FakeEngine()

    def blocking_engine(command: str) -> ProcessingResult:
        entered.set()
        release.wait(timeout=10)
        return inner(command)

    with Orchestrator(storage, engine=blocking_engine) as orch:
        future = orch.start(source)
        assert future is not None
        assert entered.wait(timeout=10)

        before = orch.state
        assert before.is_loading
        assert orch.start(source) is None
        assert orch.run(source) == before
        assert orch.state == before

        release.set()
        final = future.result(timeout=10)

    assert final.state is RunState.COMPLETED
    assert len(inner.commands) == 3
    assert len(final.output_logs) == 3


def test_copy_failure_never_reaches_engine(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, storage: LocalStorage,
) -> None:
    generated: list[int] = []
    original = pipeline.generate_command

    def counting_generate(input_path: str, output_path: str, blend_factor: int) -> str:
        generated.append(blend_factor)
        return original(input_path, output_path, blend_factor)

    monkeypatch.setattr(pipeline, "generate_command", counting_generate)
    engine = FakeEngine()

    with Orchestrator(storage, engine=engine) as orch:
        final = orch.run(tmp_path / "does-not-exist.mp4")

    assert generated == []
    assert engine.commands == []
    assert final.state is RunState.ERROR
    assert final.current_step == "Error: Could not access video file."
    assert final.output_logs == ()
    assert not (storage.cache_dir / WORKING_COPY_NAME).exists()


def test_save_failure_is_logged_and_run_continues(
    monkeypatch: pytest.MonkeyPatch, source: Path, storage: LocalStorage,
) -> None:
    real_save = storage.copy_local_to_shared

    def flaky_save(local_path: Path, display_name_base: str, speed: int) -> str | None:
        if speed == 2:
            return None
        return real_save(local_path, display_name_base, speed)

    monkeypatch.setattr(storage, "copy_local_to_shared", flaky_save)

    with Orchestrator(storage, engine=FakeEngine()) as orch:
        final = orch.run(source)

    assert final.state is RunState.COMPLETED
    assert final.output_logs[0] == "Error saving 2x video."
    assert final.output_logs[1] == "Saved: Holiday Clip_4x_10bit.mp4"
    assert not (storage.cache_dir / "temp_2x.mp4").exists()


def test_unexpected_error_still_removes_working_copy(source: Path, storage: LocalStorage) -> None:
    def broken_engine(command: str) -> ProcessingResult:
        raise RuntimeError("engine crashed")

    with Orchestrator(storage, engine=broken_engine) as orch:
        final = orch.run(source)

    assert final.state is RunState.ERROR
    assert final.current_step == "Error: engine crashed"
    assert not (storage.cache_dir / WORKING_COPY_NAME).exists()


def test_observers_see_every_transition(source: Path, storage: LocalStorage) -> None:
    seen: list[ProgressState] = []
    with Orchestrator(storage, engine=FakeEngine(failing={8})) as orch:
        orch.subscribe(seen.append)
        orch.run(source)

    states = [(s.state, s.factor) for s in seen]
    assert states[0] == (RunState.PREPARING, None)
    assert (RunState.PROCESSING, 2) in states
    assert (RunState.SAVING, 4) in states
    assert (RunState.FAILED, 8) in states
    assert states[-1] == (RunState.COMPLETED, None)
    assert seen[0].current_step == "Preparing..."
    assert "Blending 4x (High Quality)..." in [s.current_step for s in seen]
    # The log only ever grows during a run.
    lengths = [len(s.output_logs) for s in seen]
    assert lengths == sorted(lengths)


def test_failing_observer_does_not_break_run(source: Path, storage: LocalStorage) -> None:
    def bad_observer(_state: ProgressState) -> None:
        raise RuntimeError("render failed")

    with Orchestrator(storage, engine=FakeEngine()) as orch:
        orch.subscribe(bad_observer)
        final = orch.run(source)

    assert final.state is RunState.COMPLETED


def test_unsubscribe_stops_updates(source: Path, storage: LocalStorage) -> None:
    seen: list[ProgressState] = []
    with Orchestrator(storage, engine=FakeEngine()) as orch:
        unsubscribe = orch.subscribe(seen.append)
        unsubscribe()
        orch.run(source)

    assert seen == []


def test_new_run_after_completion_clears_log(source: Path, storage: LocalStorage) -> None:
    with Orchestrator(storage, engine=FakeEngine(), speeds=[2]) as orch:
        first = orch.run(source)
        second = orch.run(source)

    assert first.output_logs == ("Saved: Holiday Clip_2x_10bit.mp4",)
    # The first clip is still in the shared folder, so the second one is renamed.
    assert second.output_logs == ("Saved: Holiday Clip_2x_10bit (1).mp4",)
    assert second.state is RunState.COMPLETED


def test_speeds_run_in_ascending_order(source: Path, storage: LocalStorage) -> None:
    engine = FakeEngine()
    with Orchestrator(storage, engine=engine, speeds=[8, 2]) as orch:
        orch.run(source)

    assert [int(c.split("tmix=frames=")[1][0]) for c in engine.commands] == [2, 8]


def test_unsupported_speed_rejected(storage: LocalStorage) -> None:
    with pytest.raises(ValueError):
        Orchestrator(storage, speeds=[3])


def test_start_after_close_leaves_restartable_state(source: Path, storage: LocalStorage) -> None:
    orch = Orchestrator(storage, engine=FakeEngine(), speeds=[2])
    orch.close()

    with pytest.raises(RuntimeError):
        orch.start(source)

    assert orch.state.state is RunState.ERROR
    assert not orch.state.is_loading
    # A synchronous run is still accepted afterwards.
    assert orch.run(source).state is RunState.COMPLETED
