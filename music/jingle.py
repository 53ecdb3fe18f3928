"""Startup jingle played through the shared synthesizer."""
import logging
import threading
import time
from typing import Callable, Sequence, Tuple, TYPE_CHECKING

from midi.note_event import NoteOff, NoteOn

if TYPE_CHECKING:
    from audio.shared_handle import SharedSynthHandle

_LOGGER = logging.getLogger("toy_piano.music")

# A little "question-answer" motif: G4-B4-D5-G5 leaps up, F5-E5-D5 steps down.
STARTUP_JINGLE: Sequence[Tuple[int, int]] = (
    (67, 70),   # G4 - soft start
    (71, 80),   # B4 - building
    (74, 90),   # D5 - peak approach
    (79, 100),  # G5 - peak (loudest)
    (77, 85),   # F5 - start descent
    (76, 75),   # E5 - softer
    (74, 65),   # D5 - gentle landing
)


def play_jingle(handle: 'SharedSynthHandle',
                notes: Sequence[Tuple[int, int]] = STARTUP_JINGLE,
                note_duration: float = 0.1,
                sleep: Callable[[float], None] = time.sleep):
    """Play ``notes`` on channel 0, one after another.

    The lock is taken separately for each note-on and note-off; the sleep
    happens outside it.
    """
    for note, velocity in notes:
        handle.with_lock(NoteOn(0, note, velocity).apply)
        sleep(note_duration)
        handle.with_lock(NoteOff(0, note).apply)
    _LOGGER.info("Startup jingle played!")


def start_jingle(handle: 'SharedSynthHandle', **kwargs) -> threading.Thread:
    """Play the jingle on a daemon thread and return the thread."""
    thread = threading.Thread(target=play_jingle, args=(handle,), kwargs=kwargs,
                              name="startup-jingle", daemon=True)
    thread.start()
    return thread
