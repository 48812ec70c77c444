#!/usr/bin/env python3
"""
logging_setup.py
================
Log wiring for the traffic simulation.

Everything goes to the console and to ``traffic.log``.  The ``world``
logger additionally writes its periodic per-agent dump (positions,
states, segment progress) to ``traffic_debug.log`` at DEBUG level,
whatever the console level is, so a long run can be replayed tick by
tick without flooding the terminal.

Call :func:`setup_logging` once from the entry point, before the
simulation is built.
"""

import logging
from logging.handlers import RotatingFileHandler
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

TRAFFIC_LOG = "traffic.log"
TRAFFIC_DEBUG_LOG = "traffic_debug.log"


def _rotating(
    path: str, max_bytes: int, level: int, fmt: logging.Formatter,
) -> RotatingFileHandler:
    handler = RotatingFileHandler(path, maxBytes=max_bytes, backupCount=2)
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logging(
    level: int = logging.INFO,
    log_file: str = TRAFFIC_LOG,
    debug_file: Optional[str] = TRAFFIC_DEBUG_LOG,
) -> None:
    """Route simulation logs to the console, the main log and the tick dump.

    Parameters
    ----------
    level : int
        Console and main-log threshold (e.g. ``logging.INFO``).
    log_file : str
        Path of the main rotating log (1 MB, 2 backups).
    debug_file : str or None
        Path of the ``world`` tick-dump log (5 MB, 2 backups); *None*
        disables it.
    """
    fmt = logging.Formatter(LOG_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(console)
    root.addHandler(_rotating(log_file, 1_000_000, level, fmt))

    # The tick dump is DEBUG traffic; only the dump file takes all of it.
    world_logger = logging.getLogger("world")
    for handler in list(world_logger.handlers):
        world_logger.removeHandler(handler)
        handler.close()
    if debug_file is None:
        world_logger.setLevel(logging.NOTSET)
        return
    world_logger.setLevel(logging.DEBUG)
    world_logger.addHandler(_rotating(debug_file, 5_000_000, logging.DEBUG, fmt))
