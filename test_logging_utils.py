#!/usr/bin/env python3
"""ABOUTME: Tests for the file logger setup."""
import logging
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from logging_utils import LOG_DIR_ENV, default_log_dir, log_path, setup_file_logger


@pytest.fixture
def logger_name(request):
    name = f"toy_piano_test.{request.node.name}"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_log_dir_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv(LOG_DIR_ENV, str(tmp_path))
    assert default_log_dir() == tmp_path


def test_explicit_log_dir_wins(tmp_path, monkeypatch):
    monkeypatch.setenv(LOG_DIR_ENV, "/somewhere/else")
    assert log_path("x.log", str(tmp_path)) == tmp_path / "x.log"


def test_messages_land_in_file(tmp_path, logger_name):
    path = setup_file_logger(logger_name, "piano.log", level="DEBUG", log_dir=str(tmp_path / "logs"))
    logging.getLogger(f"{logger_name}.audio").debug("stream opened at %d Hz", 48000)
    for handler in logging.getLogger(logger_name).handlers:
        handler.flush()

    assert path == tmp_path / "logs" / "piano.log"
    text = path.read_text(encoding="utf-8")
    assert "stream opened at 48000 Hz" in text
    assert "DEBUG" in text


def test_second_setup_keeps_single_handler(tmp_path, logger_name):
    setup_file_logger(logger_name, level=logging.INFO, log_dir=str(tmp_path))
    setup_file_logger(logger_name, level=logging.INFO, log_dir=str(tmp_path))

    assert len(logging.getLogger(logger_name).handlers) == 1


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
