"""SoundFont instrument bank loading and FluidSynth-backed synthesis."""
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np

from errors import EngineError, InstrumentBankError

try:
    import fluidsynth
    HAS_FLUIDSYNTH = True
except ImportError:
    fluidsynth = None
    HAS_FLUIDSYNTH = False

_LOGGER = logging.getLogger("toy_piano.music")

DEFAULT_SOUNDFONT = "SalamanderGrandPiano-V3+20200602.sf2"
_INT16_SCALE = 1.0 / 32768.0
MIDI_CHANNELS = 16


@dataclass(frozen=True)
class InstrumentBank:
    """A validated SoundFont file, ready to hand to an engine."""

    path: Path

    @property
    def name(self) -> str:
        return self.path.stem


def candidate_soundfont_paths(configured: Optional[str] = None) -> List[Path]:
    """Locations searched for the instrument bank, in priority order."""
    if configured:
        return [Path(configured).expanduser()]
    paths = [Path.cwd() / "assets" / DEFAULT_SOUNDFONT]
    if getattr(sys, "frozen", False):
        paths.append(Path(sys.executable).parent / "assets" / DEFAULT_SOUNDFONT)
    paths.append(Path(__file__).resolve().parent.parent / "assets" / DEFAULT_SOUNDFONT)
    return paths


def resolve_soundfont_path(configured: Optional[str] = None) -> Path:
    """First existing candidate path, or the first candidate if none exist."""
    candidates = candidate_soundfont_paths(configured)
    for path in candidates:
        if path.exists():
            return path
    return candidates[0]


def load_instrument_bank(path) -> InstrumentBank:
    """Validate that ``path`` is a readable RIFF ``sfbk`` container.

    Raises:
        InstrumentBankError: the file is missing, unreadable or not a SoundFont.
    """
    path = Path(path)
    _LOGGER.info("Loading SoundFont from: %s", path)
    if not path.is_file():
        raise InstrumentBankError(f"SoundFont not found: {path}")
    try:
        with open(path, 'rb') as f:
            header = f.read(12)
    except OSError as e:
        raise InstrumentBankError(f"Failed to open SoundFont at {path}: {e}") from e
    if len(header) < 12 or header[:4] != b"RIFF" or header[8:12] != b"sfbk":
        raise InstrumentBankError(f"Failed to parse SoundFont: {path} is not an SF2 file")
    return InstrumentBank(path=path)


class SoundFontEngine:
    """FluidSynth synthesizer driven block-by-block from the audio callback.

    No FluidSynth audio driver is started; samples are pulled with
    ``get_samples`` so the render loop stays in control of timing.
    """

    def __init__(self, bank: InstrumentBank, sample_rate: int, gain: float = 0.5):
        if not HAS_FLUIDSYNTH:
            raise EngineError("pyfluidsynth is not installed (pip install pyfluidsynth)")
        self.bank = bank
        self.sample_rate = sample_rate
        try:
            self.fs = fluidsynth.Synth(gain=gain, samplerate=float(sample_rate))
        except Exception as e:
            raise EngineError(f"Failed to create Synthesizer: {e}") from e

        self.sfid = self.fs.sfload(str(bank.path), update_midi_preset=1)
        if self.sfid < 0:
            self.fs.delete()
            raise EngineError(f"FluidSynth could not load {bank.path}")
        # Every channel plays the piano, including the GM drum channel.
        for channel in range(MIDI_CHANNELS):
            self.fs.program_select(channel, self.sfid, 0, 0)
        _LOGGER.info("SoundFont %s loaded at %d Hz", bank.name, sample_rate)

    def note_on(self, channel: int, note: int, velocity: int):
        self.fs.noteon(channel, note, velocity)

    def note_off(self, channel: int, note: int):
        self.fs.noteoff(channel, note)

    def all_notes_off(self):
        for channel in range(MIDI_CHANNELS):
            self.fs.cc(channel, 123, 0)  # All Notes Off

    def render(self, left: np.ndarray, right: np.ndarray):
        """Render ``len(left)`` frames into ``left`` and ``right`` in place."""
        if len(left) == 0:
            return
        block = self.fs.get_samples(len(left))  # interleaved int16 stereo
        np.multiply(block[0::2], _INT16_SCALE, out=left, dtype=np.float32)
        np.multiply(block[1::2], _INT16_SCALE, out=right, dtype=np.float32)

    def close(self):
        if self.fs is not None:
            self.fs.delete()
            self.fs = None
