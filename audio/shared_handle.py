"""Lock-guarded access to the synthesis engine shared across threads."""
import logging
import threading
from typing import Any, Callable

_LOGGER = logging.getLogger("toy_piano.audio")


class SharedSynthHandle:
    """Single-lock wrapper around a synthesis engine.

    The audio callback, every MIDI input callback and the startup jingle all go
    through ``with_lock``. Rendering advances voice state too, so every access
    is exclusive.

    If a call raises inside the critical section the engine may be half-updated.
    The handle is then poisoned: the error is logged once and every later call
    is a no-op that returns its ``default``. Exceptions never reach the driver
    threads.
    """

    def __init__(self, engine):
        self._engine = engine
        self._lock = threading.Lock()
        self._poisoned = False

    @property
    def poisoned(self) -> bool:
        return self._poisoned

    def with_lock(self, fn: Callable[..., Any], *args, default: Any = None) -> Any:
        """Run ``fn(engine, *args)`` under the lock and return its result."""
        with self._lock:
            if self._poisoned or self._engine is None:
                _LOGGER.debug("Synthesizer unavailable; skipping %s", getattr(fn, "__name__", fn))
                return default
            try:
                return fn(self._engine, *args)
            except Exception:
                self._poisoned = True
                _LOGGER.exception("Synthesizer call failed; further calls are ignored")
                return default

    def release(self):
        """Drop the engine reference. Later calls become no-ops."""
        with self._lock:
            self._engine = None
