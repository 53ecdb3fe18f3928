#!/usr/bin/env python3
"""Toy Piano - Main Entry Point."""
import logging
import sys

from textual.app import App

from audio.audio_engine import AudioEngine
from config_manager import ConfigManager
from errors import MIDIConnectionError, StartupError
from logging_utils import setup_file_logger
from midi.connection import MIDIConnection
from midi.device_manager import MIDIDeviceManager
from modes.connection_mode import ConnectionMode

_LOGGER = logging.getLogger("toy_piano")


class ToyPianoApp(App):
    """Terminal front end: pick the MIDI input that plays the piano."""

    VERSION = "0.1.0"

    def __init__(self, audio_engine: AudioEngine, connection: MIDIConnection,
                 auto_connect: bool = True):
        super().__init__()
        self.title = f"Toy Piano v{self.VERSION}"
        self.audio_engine = audio_engine
        self.connection = connection
        self.auto_connect = auto_connect

    def on_mount(self):
        """Scan inputs, connect the first one, then show the selection screen."""
        sources = self.connection.rescan()
        if self.auto_connect and sources:
            try:
                self.connection.select(sources[0])
            except MIDIConnectionError as e:
                _LOGGER.warning("Auto-connect to %s failed: %s", sources[0], e.reason)
        self.push_screen(ConnectionMode(self.connection))


def main() -> int:
    """Main entry point.

    Shutdown order is fixed: input source first, then the audio stream, then
    the synthesizer handle.
    """
    config = ConfigManager()
    log_file = setup_file_logger(level=config.get_log_level(), log_dir=config.get_log_dir())
    _LOGGER.info("Toy Piano starting up...")

    try:
        audio_engine = AudioEngine.init(config)
    except StartupError as e:
        _LOGGER.error("Startup failed: %s", e)
        print(f"Toy Piano could not start: {e}", file=sys.stderr)
        print(f"Details in {log_file}", file=sys.stderr)
        return 1

    connection = MIDIConnection(MIDIDeviceManager(), audio_engine.get_shared_handle())
    try:
        ToyPianoApp(audio_engine, connection, auto_connect=config.get_auto_connect()).run()
    finally:
        connection.close()
        audio_engine.close()
    _LOGGER.info("Toy Piano stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
