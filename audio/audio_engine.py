"""Startup and shutdown of the audio side: bank, engine, handle, stream."""
import logging
import threading
from typing import Optional, TYPE_CHECKING

from audio.audio_output import AudioOutput
from audio.render_loop import AudioRenderLoop
from audio.shared_handle import SharedSynthHandle
from music.jingle import start_jingle
from music.soundfont_engine import (
    InstrumentBank,
    SoundFontEngine,
    load_instrument_bank,
    resolve_soundfont_path,
)
from music.synth_engine import SynthEngine

if TYPE_CHECKING:
    from config_manager import ConfigManager

_LOGGER = logging.getLogger("toy_piano.audio")


def create_engine(config: 'ConfigManager', sample_rate: int,
                  bank: Optional[InstrumentBank] = None):
    """Build the synthesis engine named by the configuration."""
    if config.get_engine() == "tone":
        return SynthEngine(sample_rate=sample_rate)
    if bank is None:
        bank = load_instrument_bank(resolve_soundfont_path(config.get_soundfont_path()))
    return SoundFontEngine(bank, sample_rate, gain=config.get_gain())


class AudioEngine:
    """Owns the output stream and the shared synthesizer handle.

    Created once by ``init``; ``close`` stops the stream before dropping the
    handle, so the audio callback never sees a released engine mid-block.
    """

    def __init__(self, output, handle: SharedSynthHandle,
                 render_loop: AudioRenderLoop, engine):
        self.output = output
        self.handle = handle
        self.render_loop = render_loop
        self.engine = engine
        self.jingle_thread: Optional[threading.Thread] = None
        self._closed = False

    @classmethod
    def init(cls, config: 'ConfigManager', output=None) -> 'AudioEngine':
        """Load the bank, open the stream and start playback.

        Raises:
            StartupError: any failure that leaves the instrument unplayable.
        """
        _LOGGER.info("Initializing Audio Engine...")

        # 1. Load SoundFont
        bank = None
        if config.get_engine() == "soundfont":
            bank = load_instrument_bank(resolve_soundfont_path(config.get_soundfont_path()))

        # 2. Negotiate the output stream
        if output is None:
            output = AudioOutput(buffer_size=config.get_buffer_size(),
                                 sample_rate=config.get_sample_rate(),
                                 channels=config.get_channels())
        stream_format = output.open()

        # 3. Initialize Synthesizer
        try:
            engine = create_engine(config, stream_format.sample_rate, bank)
        except Exception:
            output.stop()
            raise
        handle = SharedSynthHandle(engine)
        render_loop = AudioRenderLoop(handle, stream_format.frames_per_buffer,
                                      stream_format.channels)

        # 4. Start the stream
        try:
            output.start(render_loop)
        except Exception:
            output.stop()
            _close_engine(engine)
            raise

        audio_engine = cls(output, handle, render_loop, engine)
        if config.get_startup_jingle():
            audio_engine.jingle_thread = start_jingle(handle)
        _LOGGER.info("Audio Engine initialized.")
        return audio_engine

    def get_shared_handle(self) -> SharedSynthHandle:
        return self.handle

    def close(self):
        """Stop the stream, then drop the handle. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        self.output.stop()
        self.handle.release()
        _close_engine(self.engine)
        _LOGGER.info("Audio Engine closed.")


def _close_engine(engine):
    close = getattr(engine, "close", None)
    if close is not None:
        close()
