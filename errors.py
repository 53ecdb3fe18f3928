"""Exception hierarchy for the toy piano."""


class ToyPianoError(Exception):
    """Base error for the application."""


class StartupError(ToyPianoError):
    """Raised when the application cannot reach a playable state."""


class AudioDeviceError(StartupError):
    """Raised when no usable audio output device is available."""


class UnsupportedFormatError(StartupError):
    """Raised when the output device cannot play float32 samples."""


class InstrumentBankError(StartupError):
    """Raised when the SoundFont file is missing or not a SoundFont."""


class EngineError(StartupError):
    """Raised when the synthesis engine cannot be constructed."""


class MIDIConnectionError(ToyPianoError):
    """Raised when an input source cannot be connected.

    The reason string is what the connection status shows to the user.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class SourceNotFoundError(MIDIConnectionError):
    """Raised when the requested input source is not listed by the backend."""


class SourceUnavailableError(MIDIConnectionError):
    """Raised when the backend fails to open a listed source."""
