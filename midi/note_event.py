"""Note events decoded from MIDI channel-voice messages."""
from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class NoteOn:
    """A key press on ``channel`` (0-15) with ``velocity`` (1-127)."""

    channel: int
    note: int
    velocity: int

    def apply(self, engine):
        engine.note_on(self.channel, self.note, self.velocity)


@dataclass(frozen=True)
class NoteOff:
    """A key release on ``channel`` (0-15)."""

    channel: int
    note: int

    def apply(self, engine):
        engine.note_off(self.channel, self.note)


NoteEvent = Union[NoteOn, NoteOff]
