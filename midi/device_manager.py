"""MIDI input enumeration and port management (mido)."""
import logging
import os
import sys
from typing import Callable, List, Optional

import mido

from errors import SourceUnavailableError

_LOGGER = logging.getLogger("toy_piano.midi")


class MIDIDeviceManager:
    """Input backend: lists sources, opens them with a byte callback, closes them."""

    def __init__(self):
        self.last_error: Optional[str] = None

    def list_sources(self) -> List[str]:
        """Get list of available MIDI input names.

        Returns:
            List of MIDI input names; empty when the backend is unavailable,
            in which case ``last_error`` holds a user-friendly explanation.
        """
        try:
            # Suppress ALSA error messages to stderr
            stderr_backup = sys.stderr
            with open(os.devnull, 'w') as devnull:
                sys.stderr = devnull
                try:
                    devices = mido.get_input_names()
                finally:
                    sys.stderr = stderr_backup

            self.last_error = None
            return list(devices)
        except Exception as e:
            # Store user-friendly error message
            error_msg = str(e).lower()
            if "no such file" in error_msg and "snd/seq" in error_msg:
                self.last_error = "ALSA sequencer not available. Run: sudo modprobe snd-seq"
            else:
                self.last_error = f"Error: {e}"
            _LOGGER.warning("MIDI scan failed: %s", self.last_error)
            return []

    def open_source(self, name: str, callback: Callable[[List[int]], None]):
        """Open ``name``; ``callback`` receives each message's raw bytes.

        The callback runs on the backend's input thread.

        Raises:
            SourceUnavailableError: the backend could not open the port.
        """
        def _on_message(msg):
            callback(msg.bytes())

        try:
            return mido.open_input(name, callback=_on_message)
        except Exception as e:
            raise SourceUnavailableError(str(e) or type(e).__name__) from e

    def close_source(self, port):
        """Close a port returned by ``open_source``."""
        try:
            port.close()
        except Exception as e:
            _LOGGER.warning("Error closing MIDI port: %s", e)
