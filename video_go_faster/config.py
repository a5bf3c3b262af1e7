"""RU: Загрузка config.yaml.

EN: config.yaml loading.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import yaml

from video_go_faster.scripts.video_processor import DEFAULT_FFMPEG, SUPPORTED_BLEND_FACTORS

LOG = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH: Final = Path("config.yaml")
DEFAULT_CACHE_DIR: Final = Path("~/.cache/video-go-faster")
DEFAULT_SHARED_DIR: Final = Path("~/Movies/VideoGoFaster")


@dataclass(frozen=True)
class AppConfig:
    """Resolved application settings."""

    cache_dir: Path = DEFAULT_CACHE_DIR.expanduser()
    shared_dir: Path = DEFAULT_SHARED_DIR.expanduser()
    ffmpeg_bin: str = DEFAULT_FFMPEG
    speeds: tuple[int, ...] = SUPPORTED_BLEND_FACTORS
    quiet: bool = False
    verbose: bool = False


def _section(conf: dict[str, Any], name: str) -> dict[str, Any]:
    value = conf.get(name, {})
    if value is None:
        return {}
    if not isinstance(value, dict):
        message = f"config section '{name}' must be a mapping"
        raise ValueError(message)
    return value


def parse_speeds(raw: object) -> tuple[int, ...]:
    """RU: Проверяет список скоростей и сортирует его по возрастанию.

    EN: Validate a speeds list and return it sorted ascending, deduplicated.
    """
    if not isinstance(raw, (list, tuple)) or not raw:
        message = "speeds must be a non-empty list"
        raise ValueError(message)
    speeds: set[int] = set()
    for item in raw:
        if isinstance(item, bool) or not isinstance(item, int):
            message = f"speed must be an integer, got {item!r}"
            raise ValueError(message)
        if item not in SUPPORTED_BLEND_FACTORS:
            message = (
                f"unsupported speed {item}; allowed: "
                + ", ".join(map(str, SUPPORTED_BLEND_FACTORS))
            )
            raise ValueError(message)
        speeds.add(item)
    return tuple(sorted(speeds))


def config_from_dict(conf: dict[str, Any]) -> AppConfig:
    """Build an `AppConfig` from a parsed YAML document."""

    if not isinstance(conf, dict):
        message = "config root must be a mapping"
        raise ValueError(message)

    paths = _section(conf, "paths")
    ffmpeg_conf = _section(conf, "ffmpeg")
    p_conf = _section(conf, "processing")
    cli_conf = _section(conf, "cli")

    defaults = AppConfig()
    cache_dir = paths.get("cache_dir")
    shared_dir = paths.get("shared_dir")
    speeds = p_conf.get("speeds")
    return AppConfig(
        cache_dir=Path(str(cache_dir)).expanduser() if cache_dir else defaults.cache_dir,
        shared_dir=Path(str(shared_dir)).expanduser() if shared_dir else defaults.shared_dir,
        ffmpeg_bin=str(ffmpeg_conf.get("binary") or defaults.ffmpeg_bin),
        speeds=parse_speeds(speeds) if speeds is not None else defaults.speeds,
        quiet=bool(cli_conf.get("quiet", False)),
        verbose=bool(cli_conf.get("verbose", False)),
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    """RU: Читает YAML-конфиг; если файла нет — значения по умолчанию.

    EN: Read the YAML config; fall back to defaults when the file is absent.
    """
    if not path.exists():
        LOG.debug("Config %s not found; using defaults", path)
        return AppConfig()
    with path.open(encoding="utf-8") as f:
        conf = yaml.safe_load(f) or {}
    return config_from_dict(conf)
