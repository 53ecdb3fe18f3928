"""PyAudio output stream that pulls blocks from the render loop."""
import logging
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from errors import AudioDeviceError, UnsupportedFormatError

# Check for PyAudio availability
try:
    import pyaudio
    AUDIO_AVAILABLE = True
except ImportError:
    AUDIO_AVAILABLE = False
    pyaudio = None

if TYPE_CHECKING:
    from audio.render_loop import AudioRenderLoop

_LOGGER = logging.getLogger("toy_piano.audio")

_FLOAT32_BYTES = 4


@dataclass(frozen=True)
class StreamFormat:
    """Parameters agreed with the output device when the stream opens."""

    sample_rate: int
    channels: int
    frames_per_buffer: int
    device_name: str


class AudioOutput:
    """Default output device, float32, fixed frames per buffer."""

    def __init__(self, buffer_size: int = 256, sample_rate: Optional[int] = None,
                 channels: Optional[int] = None):
        self.buffer_size = buffer_size
        self.requested_sample_rate = sample_rate
        self.requested_channels = channels
        self.audio = None
        self.stream = None
        self.format: Optional[StreamFormat] = None
        self.running = False
        self._device_index: Optional[int] = None
        self._render_loop: Optional['AudioRenderLoop'] = None

    def open(self) -> StreamFormat:
        """Pick the default output device and negotiate the stream format.

        Raises:
            AudioDeviceError: PyAudio is missing or there is no output device.
            UnsupportedFormatError: the device cannot play float32 samples.
        """
        if not AUDIO_AVAILABLE:
            raise AudioDeviceError("PyAudio is not installed (pip install pyaudio)")

        self.audio = pyaudio.PyAudio()
        try:
            info = self.audio.get_default_output_device_info()
        except OSError as e:
            self._terminate()
            raise AudioDeviceError("No output audio device found") from e

        max_channels = int(info.get('maxOutputChannels', 0))
        if max_channels < 1:
            self._terminate()
            raise AudioDeviceError(f"Output device {info.get('name')!r} has no output channels")
        channels = min(self.requested_channels or 2, max_channels)
        sample_rate = int(self.requested_sample_rate or info['defaultSampleRate'])

        try:
            self.audio.is_format_supported(
                sample_rate, output_device=info['index'],
                output_channels=channels, output_format=pyaudio.paFloat32,
            )
        except ValueError as e:
            self._terminate()
            raise UnsupportedFormatError(
                f"Unsupported sample format (only float32 supported for now): {e}") from e

        self._device_index = info['index']
        self.format = StreamFormat(
            sample_rate=sample_rate,
            channels=channels,
            frames_per_buffer=self.buffer_size,
            device_name=str(info.get('name', '')),
        )
        _LOGGER.info("Using audio device: %s", self.format.device_name)
        _LOGGER.info("Audio Config: Sample Rate: %d, Channels: %d, Buffer: %d",
                     sample_rate, channels, self.buffer_size)
        return self.format

    def start(self, render_loop: 'AudioRenderLoop'):
        """Register the render loop as the stream callback and start playback."""
        if self.format is None:
            self.open()
        self._render_loop = render_loop
        try:
            self.stream = self.audio.open(
                format=pyaudio.paFloat32, channels=self.format.channels,
                rate=self.format.sample_rate, output=True,
                output_device_index=self._device_index,
                frames_per_buffer=self.format.frames_per_buffer,
                stream_callback=self._audio_callback, start=False,
            )
            self.stream.start_stream()
        except (OSError, ValueError) as e:
            self.stop()
            raise AudioDeviceError(f"Failed to start audio stream: {e}") from e
        self.running = True

    def _audio_callback(self, in_data, frame_count, time_info, status):
        try:
            block = self._render_loop.render(frame_count)
            return (block.tobytes(), pyaudio.paContinue)
        except Exception:
            # Never let the callback raise: PortAudio would stop the stream.
            silence = bytes(frame_count * self.format.channels * _FLOAT32_BYTES)
            return (silence, pyaudio.paContinue)

    def stop(self):
        """Stop and close the stream, then release PortAudio. Idempotent."""
        self.running = False
        if self.stream is not None:
            try:
                self.stream.stop_stream()
                self.stream.close()
            except OSError as e:
                _LOGGER.warning("Error closing audio stream: %s", e)
            finally:
                self.stream = None
        self._terminate()

    def _terminate(self):
        if self.audio is not None:
            self.audio.terminate()
            self.audio = None
