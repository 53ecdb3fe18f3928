#!/usr/bin/env python3
"""ABOUTME: Tests for the read-only configuration layer.
ABOUTME: Defaults, config.json values, environment overrides and invalid input."""
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from config_manager import ConfigManager


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("TOY_PIANO_SOUNDFONT", "TOY_PIANO_ENGINE", "TOY_PIANO_BUFFER_SIZE",
                 "TOY_PIANO_LOG_LEVEL", "TOY_PIANO_LOG_DIR"):
        monkeypatch.delenv(name, raising=False)


def write_config(tmp_path, content):
    path = tmp_path / "config.json"
    path.write_text(content if isinstance(content, str) else json.dumps(content))
    return path


def test_defaults_without_file(tmp_path):
    config = ConfigManager(tmp_path / "absent.json")

    assert config.get_soundfont_path() is None
    assert config.get_engine() == "soundfont"
    assert config.get_buffer_size() == 256
    assert config.get_sample_rate() is None
    assert config.get_channels() is None
    assert config.get_gain() == 0.5
    assert config.get_startup_jingle() is True
    assert config.get_auto_connect() is True
    assert config.get_log_level() == "INFO"
    assert config.get_log_dir() is None


def test_values_from_file(tmp_path):
    path = write_config(tmp_path, {
        "soundfont_path": "/opt/banks/grand.sf2",
        "engine": "Tone",
        "buffer_size": 512,
        "sample_rate": 44100,
        "channels": 1,
        "startup_jingle": False,
        "log_level": "debug",
    })

    config = ConfigManager(path)

    assert config.get_soundfont_path() == "/opt/banks/grand.sf2"
    assert config.get_engine() == "tone"
    assert config.get_buffer_size() == 512
    assert config.get_sample_rate() == 44100
    assert config.get_channels() == 1
    assert config.get_startup_jingle() is False
    assert config.get_log_level() == "DEBUG"


def test_environment_overrides_file(tmp_path, monkeypatch):
    path = write_config(tmp_path, {"engine": "soundfont", "buffer_size": 512})
    monkeypatch.setenv("TOY_PIANO_ENGINE", "tone")
    monkeypatch.setenv("TOY_PIANO_BUFFER_SIZE", "128")
    monkeypatch.setenv("TOY_PIANO_SOUNDFONT", "/tmp/other.sf2")
    monkeypatch.setenv("TOY_PIANO_LOG_DIR", "/tmp/piano-logs")

    config = ConfigManager(path)

    assert config.get_engine() == "tone"
    assert config.get_buffer_size() == 128
    assert config.get_soundfont_path() == "/tmp/other.sf2"
    assert config.get_log_dir() == "/tmp/piano-logs"


def test_bad_environment_value_is_ignored(tmp_path, monkeypatch):
    monkeypatch.setenv("TOY_PIANO_BUFFER_SIZE", "lots")

    config = ConfigManager(tmp_path / "absent.json")

    assert config.get_buffer_size() == 256


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
def test_unusable_file_falls_back_to_defaults(tmp_path, content):
    config = ConfigManager(write_config(tmp_path, content))

    assert config.get_engine() == "soundfont"
    assert config.get_buffer_size() == 256


def test_unknown_engine_falls_back(tmp_path):
    config = ConfigManager(write_config(tmp_path, {"engine": "theremin"}))
    assert config.get_engine() == "soundfont"


@pytest.mark.parametrize("size,expected", [(1, 16), (100000, 8192), (300, 300)])
def test_buffer_size_is_clamped(tmp_path, size, expected):
    config = ConfigManager(write_config(tmp_path, {"buffer_size": size}))
    assert config.get_buffer_size() == expected


@pytest.mark.parametrize("gain,expected", [(-1, 0.0), (42, 10.0), (1.5, 1.5)])
def test_gain_is_clamped(tmp_path, gain, expected):
    config = ConfigManager(write_config(tmp_path, {"gain": gain}))
    assert config.get_gain() == expected


@pytest.mark.parametrize("key,getter,expected", [
    ("buffer_size", "get_buffer_size", 256),
    ("gain", "get_gain", 0.5),
    ("sample_rate", "get_sample_rate", None),
    ("channels", "get_channels", None),
])
def test_non_numeric_values_fall_back_to_defaults(tmp_path, key, getter, expected):
    config = ConfigManager(write_config(tmp_path, {key: "big"}))
    assert getattr(config, getter)() == expected


def test_unknown_log_level_falls_back(tmp_path):
    config = ConfigManager(write_config(tmp_path, {"log_level": "chatty"}))
    assert config.get_log_level() == "INFO"


def test_config_is_never_written(tmp_path):
    path = write_config(tmp_path, {"engine": "tone"})
    before = path.read_text()

    config = ConfigManager(path)
    config.get_engine()
    config.get_buffer_size()

    assert path.read_text() == before


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
