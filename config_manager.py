"""Configuration file management."""
import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

_LOGGER = logging.getLogger("toy_piano.config")

ENGINES = ("soundfont", "tone")

# Environment variable -> (config key, converter)
_ENV_OVERRIDES = {
    "TOY_PIANO_SOUNDFONT": ("soundfont_path", str),
    "TOY_PIANO_ENGINE": ("engine", str),
    "TOY_PIANO_BUFFER_SIZE": ("buffer_size", int),
    "TOY_PIANO_LOG_LEVEL": ("log_level", str),
    "TOY_PIANO_LOG_DIR": ("log_dir", str),
}


class ConfigManager:
    """Read-only application configuration.

    Values come from the defaults, then ``config.json`` (if present), then the
    environment. Nothing is ever written back.
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        if config_file is None:
            config_file = Path(__file__).parent / "config.json"
        self.config_file = Path(config_file)
        self.config = self._load_config()
        self._apply_env_overrides()

    def _load_config(self) -> dict:
        """Load configuration from file."""
        config = self._default_config()
        if self.config_file.exists():
            try:
                with open(self.config_file, 'r', encoding="utf-8") as f:
                    loaded = json.load(f)
            except (OSError, ValueError) as e:
                _LOGGER.warning("Ignoring unreadable config %s: %s", self.config_file, e)
                return config
            if isinstance(loaded, dict):
                config.update(loaded)
            else:
                _LOGGER.warning("Ignoring config %s: top level is not an object", self.config_file)
        return config

    def _default_config(self) -> dict:
        """Return default configuration."""
        return {
            "soundfont_path": None,
            "engine": "soundfont",
            "buffer_size": 256,
            "sample_rate": None,
            "channels": None,
            "gain": 0.5,
            "startup_jingle": True,
            "auto_connect": True,
            "log_level": "INFO",
            "log_dir": None,
        }

    def _apply_env_overrides(self):
        for env_name, (key, convert) in _ENV_OVERRIDES.items():
            raw = os.environ.get(env_name)
            if not raw:
                continue
            try:
                self.config[key] = convert(raw)
            except ValueError:
                _LOGGER.warning("Ignoring %s=%r: not a valid %s", env_name, raw, convert.__name__)

    def _number(self, key: str, convert, default):
        """``convert(config[key])``, or ``default`` if the value is unusable."""
        value = self.config.get(key, default)
        if value is None:
            return default
        try:
            return convert(value)
        except (TypeError, ValueError):
            _LOGGER.warning("Ignoring %s=%r: not a valid %s", key, value, convert.__name__)
            return default

    # ── Instrument ───────────────────────────────────────────────

    def get_soundfont_path(self) -> Optional[str]:
        """Configured SoundFont path, or None to search the default locations."""
        return self.config.get("soundfont_path") or None

    def get_engine(self) -> str:
        """Synthesis engine name; unknown values fall back to 'soundfont'."""
        engine = str(self.config.get("engine") or "soundfont").lower()
        if engine not in ENGINES:
            _LOGGER.warning("Unknown engine %r, using 'soundfont'", engine)
            return "soundfont"
        return engine

    def get_gain(self) -> float:
        """Master gain handed to the SoundFont engine. Clamped to [0.0, 10.0]."""
        return max(0.0, min(10.0, self._number("gain", float, 0.5)))

    # ── Audio stream ─────────────────────────────────────────────

    def get_buffer_size(self) -> int:
        """Frames per audio callback. Clamped to [16, 8192]."""
        return max(16, min(8192, self._number("buffer_size", int, 256)))

    def get_sample_rate(self) -> Optional[int]:
        """Requested sample rate, or None for the device default."""
        return self._number("sample_rate", int, None) or None

    def get_channels(self) -> Optional[int]:
        """Requested output channel count, or None to negotiate."""
        return self._number("channels", int, None) or None

    # ── Behaviour ────────────────────────────────────────────────

    def get_startup_jingle(self) -> bool:
        return bool(self.config.get("startup_jingle", True))

    def get_auto_connect(self) -> bool:
        return bool(self.config.get("auto_connect", True))

    # ── Logging ──────────────────────────────────────────────────

    def get_log_level(self) -> str:
        level = str(self.config.get("log_level") or "INFO").upper()
        return level if isinstance(logging.getLevelName(level), int) else "INFO"

    def get_log_dir(self) -> Optional[str]:
        return self.config.get("log_dir") or None
