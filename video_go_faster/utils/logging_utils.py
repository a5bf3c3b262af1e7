"""RU: Утилиты настройки логирования.

EN: Logging setup utilities.
"""

from __future__ import annotations

import logging
from typing import Final

import coloredlogs

DEFAULT_LOGGER_NAME: Final = "video_go_faster"


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> logging.Logger:
    """RU: Настраивает логирование c учётом флагов.

    EN: Configure logging according to verbosity flags.
    """
    level = logging.INFO
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = logging.DEBUG

    logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    logger.setLevel(level)

    # RU: Избегаем двойных handlers при повторном вызове.
    # EN: Avoid double handlers if called multiple times.
    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    coloredlogs.install(
        level=level,
        logger=logger,
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    return logger
