from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from identity_migrator.common.logging import configure_logging

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        yield
    finally:
        for handler in list(root.handlers):
            if handler not in handlers:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(level)


@pytest.mark.usefixtures("restore_root_logger")
def test_log_file_receives_records(tmp_path: Path) -> None:
    log_file = tmp_path / "migration-log-20240101.txt"

    configure_logging(level=logging.DEBUG, log_file=log_file, force=True)
    logging.getLogger("identity_migrator.test").debug("hello %s", "file")
    for handler in logging.getLogger().handlers:
        handler.flush()

    content = log_file.read_text(encoding="utf-8")
    assert "DEBUG [identity_migrator.test] hello file" in content


@pytest.mark.usefixtures("restore_root_logger")
def test_level_is_applied_to_root_logger() -> None:
    configure_logging(level=logging.WARNING, force=True)

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert not any(isinstance(handler, logging.FileHandler) for handler in root.handlers)
