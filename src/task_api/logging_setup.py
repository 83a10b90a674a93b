from __future__ import annotations

import logging
import sys
from typing import Union

_PACKAGE_LOGGER = "task_api"


# PUBLIC_INTERFACE
def setup_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Configure the application's package logger.

    Only the 'task_api' logger is touched; records still propagate to the root
    logger, so handlers installed by the hosting server (or by pytest) keep
    receiving them. Calling this more than once only updates the level.
    """
    logger = logging.getLogger(_PACKAGE_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    if not any(getattr(h, "_task_api_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        handler._task_api_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger
