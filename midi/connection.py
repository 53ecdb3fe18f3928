"""Which MIDI input source feeds the dispatcher, and switching between them."""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, TYPE_CHECKING

from errors import MIDIConnectionError, SourceNotFoundError
from midi.dispatcher import MIDIDispatcher

if TYPE_CHECKING:
    from audio.shared_handle import SharedSynthHandle

_LOGGER = logging.getLogger("toy_piano.midi")


class ConnectionStatus(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"


@dataclass(frozen=True)
class ConnectionState:
    """Snapshot of the connection. ``source`` is the port name involved, if any."""

    status: ConnectionStatus
    source: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def disconnected(cls) -> 'ConnectionState':
        return cls(ConnectionStatus.DISCONNECTED)

    @classmethod
    def connecting(cls, source: str) -> 'ConnectionState':
        return cls(ConnectionStatus.CONNECTING, source)

    @classmethod
    def connected(cls, source: str) -> 'ConnectionState':
        return cls(ConnectionStatus.CONNECTED, source)

    @classmethod
    def failed(cls, reason: str, source: Optional[str] = None) -> 'ConnectionState':
        return cls(ConnectionStatus.FAILED, source, reason)

    def describe(self) -> str:
        """Human-readable status line."""
        if self.status is ConnectionStatus.CONNECTING:
            return f"Connecting to {self.source}..."
        if self.status is ConnectionStatus.CONNECTED:
            return f"Connected to {self.source}"
        if self.status is ConnectionStatus.FAILED:
            return f"Failed to connect: {self.reason}"
        return "Ready. Select a MIDI Input."


class _SourceGate:
    """Sits between one open port's callback and the dispatcher.

    ``sever`` waits for any delivery in progress; after it returns, nothing
    from this port reaches the dispatcher again. Lock order is gate, then
    synthesizer handle.
    """

    def __init__(self, source: str, dispatcher: MIDIDispatcher):
        self.source = source
        self._dispatcher = dispatcher
        self._lock = threading.Lock()
        self._live = True

    def deliver(self, message: Sequence[int]):
        with self._lock:
            if self._live:
                self._dispatcher.handle_message(message)

    def sever(self):
        with self._lock:
            self._live = False


def _all_notes_off(engine):
    engine.all_notes_off()


class MIDIConnection:
    """Connection lifecycle for the single active input source.

    ``select`` and ``disconnect`` run on the UI thread and tear the previous
    source down synchronously before anything new is opened.
    """

    def __init__(self, backend, handle: 'SharedSynthHandle'):
        self.backend = backend
        self.handle = handle
        self.sources: List[str] = []
        self._port = None
        self._gate: Optional[_SourceGate] = None
        self._state = ConnectionState.disconnected()
        self._status_message = self._state.describe()
        self._listeners: List[Callable[[ConnectionState], None]] = []
        self._state_lock = threading.Lock()
        self._select_lock = threading.Lock()

    @property
    def state(self) -> ConnectionState:
        with self._state_lock:
            return self._state

    @property
    def status_message(self) -> str:
        with self._state_lock:
            return self._status_message

    def is_connected(self) -> bool:
        return self.state.status is ConnectionStatus.CONNECTED

    def add_listener(self, listener: Callable[[ConnectionState], None]):
        """Call ``listener(state)`` after every transition (on the calling thread)."""
        self._listeners.append(listener)

    def _set_state(self, state: ConnectionState, message: Optional[str] = None):
        with self._state_lock:
            self._state = state
            self._status_message = message or state.describe()
            status_message = self._status_message
            listeners = list(self._listeners)
        _LOGGER.info("MIDI connection: %s", status_message)
        for listener in listeners:
            listener(state)

    def list_sources(self) -> List[str]:
        return self.backend.list_sources()

    def rescan(self) -> List[str]:
        """Re-enumerate sources. The connection itself is left alone."""
        self.sources = self.backend.list_sources()
        if self.sources:
            message = f"Found {len(self.sources)} MIDI ports."
        else:
            message = getattr(self.backend, "last_error", None) or "No MIDI ports found."
        self._set_state(self.state, message)
        return list(self.sources)

    def select(self, name: str) -> ConnectionState:
        """Connect to ``name``, replacing the current source.

        Returns:
            The ``Connected`` state.

        Raises:
            MIDIConnectionError: the source is missing or could not be opened;
                the state is then ``Failed`` and ``select`` may be retried.
        """
        with self._select_lock:
            # Disconnect old
            self._teardown()
            self._set_state(ConnectionState.connecting(name))

            # Connect new
            if name not in self.backend.list_sources():
                error = SourceNotFoundError(f"MIDI port {name!r} not found")
                self._set_state(ConnectionState.failed(error.reason, name))
                raise error
            gate = _SourceGate(name, MIDIDispatcher(self.handle))
            try:
                port = self.backend.open_source(name, gate.deliver)
            except MIDIConnectionError as e:
                gate.sever()
                self._set_state(ConnectionState.failed(e.reason, name))
                raise
            self._port = port
            self._gate = gate
            state = ConnectionState.connected(name)
            self._set_state(state)
            return state

    def disconnect(self):
        """Tear down the active source, if any, and return to ``Disconnected``."""
        with self._select_lock:
            self._teardown()
            self._set_state(ConnectionState.disconnected())

    def report_failure(self, source: str, reason: str) -> bool:
        """Mark ``source`` as failed if it is still the active source.

        Reports about a source that has already been replaced or disconnected
        are ignored. The gate is severed and held notes are released; the port
        itself is closed by the next ``select`` or ``disconnect``.

        Returns:
            True if the active source was marked failed.
        """
        with self._select_lock:
            gate = self._gate
            if gate is None or gate.source != source or not self.is_connected():
                _LOGGER.debug("Ignoring failure report for inactive source %s: %s", source, reason)
                return False
            gate.sever()
            self.handle.with_lock(_all_notes_off)
            self._set_state(ConnectionState.failed(reason, source))
            return True

    def check_source(self) -> bool:
        """Fail the connection if the backend no longer lists its source.

        Polled from the UI. Returns False when the source has gone away.
        """
        state = self.state
        if state.status is not ConnectionStatus.CONNECTED:
            return True
        if state.source in self.backend.list_sources():
            return True
        return not self.report_failure(state.source, f"{state.source} was disconnected")

    def _teardown(self):
        gate, port = self._gate, self._port
        self._gate = None
        self._port = None
        if gate is not None:
            gate.sever()
            # Keys held on the old controller would otherwise hang.
            self.handle.with_lock(_all_notes_off)
        if port is not None:
            self.backend.close_source(port)

    def close(self):
        """Shutdown hook: disconnect without keeping any port open."""
        self.disconnect()
