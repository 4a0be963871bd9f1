"""Tests for log handler installation."""

import logging
import logging.handlers

import pytest

from hdrmerge.utils.logging_setup import setup_logging


@pytest.fixture
def root_handlers():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers[len(before):]:
        handler.close()
    root.handlers[:] = before
    root.setLevel(level)
    logging.getLogger("hdrmerge").setLevel(logging.NOTSET)


def test_setup_logging_writes_log_file(tmp_path, root_handlers):
    setup_logging(0, str(tmp_path))

    added = [h for h in root_handlers.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
    assert len(added) == 1
    assert added[0].baseFilename == str(tmp_path / "hdrmerge.log")
    assert logging.getLogger("hdrmerge").level == logging.INFO
    assert logging.getLogger("exifread").level == logging.WARNING


def test_verbose_levels(tmp_path, root_handlers):
    setup_logging(2, str(tmp_path))
    assert logging.getLogger("hdrmerge").level == logging.DEBUG
    assert logging.getLogger("PIL").level == logging.DEBUG
    logging.getLogger("exifread").setLevel(logging.NOTSET)
    logging.getLogger("PIL").setLevel(logging.NOTSET)


def test_repeated_setup_replaces_handlers(tmp_path, root_handlers):
    before = len(root_handlers.handlers)

    setup_logging(0, str(tmp_path))
    setup_logging(1, str(tmp_path))

    assert len(root_handlers.handlers) == before + 2
    console = [h for h in root_handlers.handlers[before:] if not isinstance(h, logging.handlers.RotatingFileHandler)]
    assert len(console) == 1
    assert console[0].level == logging.DEBUG
