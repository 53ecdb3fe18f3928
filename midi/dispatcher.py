"""Decoding of raw MIDI bytes and dispatch to the shared synthesizer."""
from typing import Optional, Sequence, TYPE_CHECKING

from midi.note_event import NoteEvent, NoteOff, NoteOn

if TYPE_CHECKING:
    from audio.shared_handle import SharedSynthHandle

NOTE_OFF = 0x80
NOTE_ON = 0x90


def decode(message: Sequence[int]) -> Optional[NoteEvent]:
    """Decode a 3-byte note-on/note-off message.

    Short messages, other statuses and data bytes with the high bit set
    yield None. A note-on with velocity 0 is a note-off.
    """
    if len(message) < 3:
        return None

    status = message[0] & 0xF0
    channel = message[0] & 0x0F
    note = message[1]
    velocity = message[2]
    if note > 0x7F or velocity > 0x7F:
        return None

    if status == NOTE_ON:
        if velocity > 0:
            return NoteOn(channel, note, velocity)
        return NoteOff(channel, note)
    if status == NOTE_OFF:
        return NoteOff(channel, note)
    return None


class MIDIDispatcher:
    """Applies decoded note events to the shared synthesizer.

    Called from input-driver threads. The critical section is a single
    note_on/note_off call on the engine.
    """

    def __init__(self, handle: 'SharedSynthHandle'):
        self.handle = handle

    def handle_message(self, message: Sequence[int]) -> Optional[NoteEvent]:
        """Decode ``message`` and apply it. Returns the applied event, if any."""
        event = decode(message)
        if event is None:
            return None
        self.handle.with_lock(event.apply)
        return event
