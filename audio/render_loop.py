"""Audio callback body: render from the shared synthesizer into the output block."""
import logging
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from audio.shared_handle import SharedSynthHandle

_LOGGER = logging.getLogger("toy_piano.audio")


def _render_engine(engine, left: np.ndarray, right: np.ndarray) -> bool:
    engine.render(left, right)
    return True


class AudioRenderLoop:
    """Fills one interleaved float32 block per audio callback.

    Scratch buffers for the left/right engine output and the interleaved
    output block are allocated once, sized for ``capacity`` frames, and reused
    on every call. The lock is held only for the engine's ``render``.

    Any failure produces a silent block. Failures are logged when they start
    and when rendering recovers, not on every block.
    """

    def __init__(self, handle: 'SharedSynthHandle', capacity: int, channels: int):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if channels < 1:
            raise ValueError(f"channels must be >= 1, got {channels}")
        self.handle = handle
        self.channels = channels
        self._failing = False
        self._allocate(capacity)

    def _allocate(self, capacity: int):
        self.capacity = capacity
        self._left = np.zeros(capacity, dtype=np.float32)
        self._right = np.zeros(capacity, dtype=np.float32)
        self._output = np.zeros((capacity, self.channels), dtype=np.float32)

    def render(self, frame_count: int) -> np.ndarray:
        """Render ``frame_count`` frames.

        Returns a ``(frame_count, channels)`` view of the reused output block;
        the caller must copy it out before the next call.
        """
        if frame_count > self.capacity:
            _LOGGER.warning("Host asked for %d frames, negotiated %d; growing buffers",
                            frame_count, self.capacity)
            self._allocate(frame_count)

        out = self._output[:frame_count]
        left = self._left[:frame_count]
        right = self._right[:frame_count]
        try:
            rendered = self.handle.with_lock(_render_engine, left, right, default=False)
            if not rendered:
                self._report_failure("synthesizer unavailable")
            elif not (np.isfinite(left).all() and np.isfinite(right).all()):
                self._report_failure("synthesizer produced non-finite samples")
            else:
                self._interleave(out, left, right)
                if self._failing:
                    _LOGGER.info("Audio rendering recovered")
                    self._failing = False
                return out
        except Exception as e:
            self._report_failure(f"{type(e).__name__}: {e}")
        out.fill(0.0)
        return out

    def _interleave(self, out: np.ndarray, left: np.ndarray, right: np.ndarray):
        if self.channels >= 2:
            out[:, 0] = left
            out[:, 1] = right
            if self.channels > 2:
                out[:, 2:] = 0.0
        else:
            # Mono fallback: mix down
            np.add(left, right, out=out[:, 0])
            out[:, 0] *= 0.5

    def _report_failure(self, reason: str):
        if not self._failing:
            _LOGGER.error("Audio render failed (%s); emitting silence", reason)
            self._failing = True
