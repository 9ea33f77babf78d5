"""Tests for CLI logging setup."""

import logging
from pathlib import Path

import pytest

from src.review_monitor.logging_config import get_logger, log_path, setup_logging


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = logging.getLogger("review_monitor")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_log_path_places_bare_names_under_log_dir(tmp_path):
    assert log_path(None, tmp_path) == tmp_path / "review_monitor.log"
    assert log_path("run.log", tmp_path) == tmp_path / "run.log"
    assert log_path(tmp_path / "elsewhere" / "run.log", Path("logs")) == tmp_path / "elsewhere" / "run.log"
    assert log_path(Path("nested/run.log"), tmp_path) == Path("nested/run.log")


def test_verbose_switches_handlers_to_debug(tmp_path):
    logger = setup_logging(verbose=True, log_file=tmp_path / "run.log")
    assert logger.level == logging.DEBUG
    assert all(handler.level == logging.DEBUG for handler in logger.handlers)

    logger = setup_logging(log_file=tmp_path / "run.log", console=False)
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 1


def test_module_loggers_write_to_the_log_file(tmp_path):
    path = tmp_path / "logs" / "run.log"
    setup_logging(log_file=str(path), console=False)

    get_logger("scraper").info("crawled 3 pages")
    for handler in logging.getLogger("review_monitor").handlers:
        handler.flush()

    assert " - review_monitor.scraper - INFO - crawled 3 pages" in path.read_text(encoding="utf-8")
