"""Tests for the log formatting of the front-end and workers."""

import logging
import os

from argpane.ansi import CYAN, LogStyles, colorize, make_style
from argpane.logging_setup import ScreenLogFormatter, get_logger, init_logger, is_debug


def record(level=logging.INFO, message="hello"):
    return logging.LogRecord("argpane.test", level, __file__, 10, message, None, None)


def test_debug_format_shows_the_source():
    # the test session forces debug mode
    assert is_debug()
    text = ScreenLogFormatter(colors=False).format(record())
    assert text == "argpane.test - hello // test_logging_setup.py:10"


def test_worker_records_are_tagged():
    text = ScreenLogFormatter(worker=True, colors=False).format(record())
    assert text.startswith(f"[worker {os.getpid()}] argpane.test - hello")


def test_worker_tag_color():
    text = ScreenLogFormatter(worker=True, colors=True).format(record())
    assert text.startswith(colorize(f"[worker {os.getpid()}]", CYAN))


def test_level_colors():
    formatter = ScreenLogFormatter(colors=True)
    prefix, suffix = make_style(*LogStyles.ERROR)
    assert formatter.format(record(logging.ERROR)).startswith(prefix)
    assert formatter.format(record(logging.ERROR)).endswith(suffix)
    assert formatter.format(record(logging.INFO)).startswith("argpane.test")


def test_handlers_attached():
    init_logger("/dev/null", force_debug=True, worker=True)
    try:
        logger = get_logger("argpane.handlers")
        assert logger.level == logging.DEBUG
        assert not logger.propagate
        formatters = [handler.formatter for handler in logger.handlers]
        assert any(isinstance(formatter, ScreenLogFormatter) for formatter in formatters)
        assert any(isinstance(handler, logging.FileHandler) for handler in logger.handlers)
    finally:
        init_logger("/dev/null", force_debug=True, worker=False)
