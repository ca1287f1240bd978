"""Shared logging helpers for the migrator."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(
    *,
    level: int = logging.INFO,
    log_file: Path | None = None,
    force: bool = False,
) -> None:
    """Initialise the root logger once with sensible defaults.

    Console output always goes to stderr. When ``log_file`` is given every record
    is appended there as well, which is how operators keep a per-day migration
    log. Pass ``force=True`` to reconfigure during tests.
    """

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        handlers=handlers,
        force=force,
    )
