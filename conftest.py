"""ABOUTME: Shared fakes for the test suite - engine, MIDI backend and ports.
ABOUTME: Lets the real-time pipeline be exercised without audio or MIDI hardware."""
import sys
import threading
from pathlib import Path

import numpy as np
import pytest

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent))

from errors import SourceUnavailableError  # noqa: E402


class RecordingEngine:
    """Engine double: records calls and renders a constant level per held note."""

    def __init__(self, level: float = 0.25):
        self.level = level
        self.calls = []
        self.held = set()
        self.render_calls = 0
        self.fail_on_render = False

    def note_on(self, channel, note, velocity):
        self.calls.append(("on", channel, note, velocity))
        self.held.add((channel, note))

    def note_off(self, channel, note):
        self.calls.append(("off", channel, note))
        self.held.discard((channel, note))

    def all_notes_off(self):
        self.calls.append(("all_off",))
        self.held.clear()

    def render(self, left, right):
        self.render_calls += 1
        if self.fail_on_render:
            raise RuntimeError("engine blew up")
        value = self.level * len(self.held)
        left.fill(value)
        right.fill(-value)


class FakePort:
    def __init__(self, name, callback):
        self.name = name
        self.callback = callback
        self.closed = False

    def fire(self, message):
        """Deliver ``message`` as the input driver would, even after close."""
        self.callback(list(message))


class FakeBackend:
    """Input backend double with scriptable sources and open failures."""

    def __init__(self, sources=("Keyboard A", "Keyboard B")):
        self.sources = list(sources)
        self.failing = {}
        self.ports = []
        self.last_error = None
        self._lock = threading.Lock()

    def list_sources(self):
        return list(self.sources)

    def open_source(self, name, callback):
        if name in self.failing:
            raise SourceUnavailableError(self.failing[name])
        port = FakePort(name, callback)
        with self._lock:
            self.ports.append(port)
        return port

    def close_source(self, port):
        port.closed = True

    def open_ports(self):
        return [p for p in self.ports if not p.closed]


@pytest.fixture
def engine():
    return RecordingEngine()


@pytest.fixture
def handle(engine):
    from audio.shared_handle import SharedSynthHandle
    return SharedSynthHandle(engine)


@pytest.fixture
def backend():
    return FakeBackend()


def block_is_silent(block: np.ndarray, tolerance: float = 0.0) -> bool:
    return bool(np.all(np.abs(block) <= tolerance))
