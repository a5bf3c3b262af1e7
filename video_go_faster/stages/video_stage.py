"""RU: Общие структуры для стадии ускорения видео.

EN: Shared structures for the video speed-up stage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class ProcessingRequest:
    """RU: Один запуск FFmpeg: вход, выход и коэффициент смешивания.

    EN: A single FFmpeg run: input, output and blend factor.
    """

    input_path: str
    output_path: str
    blend_factor: int

    def command(self) -> str:
        from video_go_faster.scripts.video_processor import generate_command

        return generate_command(self.input_path, self.output_path, self.blend_factor)


@dataclass(frozen=True)
class ProcessingResult:
    """Outcome of one engine invocation."""

    succeeded: bool
    command_text: str
    log_text: str
    # None when the engine binary could not be launched at all.
    return_code: int | None = None


class RunState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    PROCESSING = "processing"
    SAVING = "saving"
    FAILED = "failed"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class ProgressState:
    """RU: Снимок состояния прогона для наблюдателей (UI).

    `output_logs` — только дописываемый журнал текущего прогона.

    EN: Snapshot of the run state published to observers (UI).

    `output_logs` is the append-only progress log of the current run.
    """

    state: RunState = RunState.IDLE
    current_step: str = "Idle"
    factor: int | None = None
    output_logs: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_loading(self) -> bool:
        return self.state not in (RunState.IDLE, RunState.COMPLETED, RunState.ERROR)
