"""Polyphonic oscillator engine, playable without a SoundFont."""
from typing import List, Optional, Tuple

import numpy as np

VoiceKey = Tuple[int, int]


class Voice:
    """Individual synthesizer voice with its own oscillator and envelope."""

    def __init__(self, sample_rate: int, voice_index: int = 0):
        self.sample_rate = sample_rate
        self.voice_index = voice_index
        self.key: Optional[VoiceKey] = None
        self.frequency: Optional[float] = None
        self.phase = 0.0
        self.envelope_time = 0.0
        self.note_active = False
        self.is_releasing = False
        self.release_start_level = 0.0
        self.steal_start_level = 0.0
        self.velocity = 1.0
        self.last_envelope_level = 0.0
        # Trigger order; lower is older. Used for voice stealing.
        self.age = 0

        # Stereo spread table: voice 0 sits dead-centre, later voices spread
        # outward in symmetric pairs so the full-polyphony image stays balanced.
        _pan_table = [0.5, 0.5, 0.44, 0.56, 0.38, 0.62, 0.32, 0.68]
        self.pan = _pan_table[voice_index] if voice_index < len(_pan_table) else 0.5

    def is_available(self) -> bool:
        return not self.note_active and not self.is_releasing

    def is_playing(self, key: VoiceKey) -> bool:
        return self.key == key and (self.note_active or self.is_releasing)

    def trigger(self, key: VoiceKey, frequency: float, velocity: float, age: int):
        """Trigger a new note. The oscillator keeps its phase to avoid clicks."""
        was_silent = self.is_available()
        self.steal_start_level = 0.0 if was_silent else self.last_envelope_level
        self.key = key
        self.frequency = frequency
        self.velocity = velocity
        self.note_active = True
        self.is_releasing = False
        self.envelope_time = 0.0
        self.age = age

    def release(self, sustain_level: float):
        if self.note_active:
            self.is_releasing = True
            self.note_active = False
            # A note released before its first block still gets a tail.
            self.release_start_level = (self.last_envelope_level
                                        if self.last_envelope_level > 0.0001 else sustain_level)
            self.envelope_time = 0.0

    def reset(self):
        self.key = None
        self.frequency = None
        self.note_active = False
        self.is_releasing = False
        self.envelope_time = 0.0
        self.release_start_level = 0.0
        self.steal_start_level = 0.0
        self.last_envelope_level = 0.0


class SynthEngine:
    """8-voice polyphonic sine engine with ADSR envelopes.

    Implements the same engine interface as the SoundFont engine:
    ``note_on``, ``note_off``, ``all_notes_off`` and ``render``. It is not
    thread-safe; callers go through the shared synthesizer handle.
    """

    def __init__(self, sample_rate: int = 48000, num_voices: int = 8):
        self.sample_rate = sample_rate
        self.num_voices = num_voices

        self.attack = 0.01
        self.decay = 0.2
        self.sustain = 0.7
        self.release = 0.1
        self.intensity = 0.8

        self.master_gain_current = 1.0
        self._trigger_count = 0
        self.voices: List[Voice] = [Voice(sample_rate, i) for i in range(num_voices)]

    def _midi_to_frequency(self, midi_note: int) -> float:
        return 440.0 * (2.0 ** ((midi_note - 69) / 12.0))

    def _velocity_level(self, velocity: float) -> float:
        VEL_C, VEL_F = 1.3, 0.15
        return self.intensity * (VEL_F + (1.0 - VEL_F) * (velocity ** VEL_C))

    def note_on(self, channel: int, note: int, velocity: int = 127):
        if velocity <= 0:
            self.note_off(channel, note)
            return
        key = (channel, note)
        freq = self._midi_to_frequency(note)
        vel = min(velocity, 127) / 127.0
        self._trigger_count += 1
        voice = self._find_voice(key)
        voice.trigger(key, freq, vel, self._trigger_count)

    def _find_voice(self, key: VoiceKey) -> Voice:
        for v in self.voices:
            if v.key == key and v.note_active:
                return v
        for v in self.voices:
            if v.is_available():
                return v
        # Steal: longest-releasing voice first, otherwise the oldest held one.
        releasing = [v for v in self.voices if v.is_releasing]
        if releasing:
            return max(releasing, key=lambda v: v.envelope_time)
        return min(self.voices, key=lambda v: v.age)

    def note_off(self, channel: int, note: int):
        key = (channel, note)
        for v in self.voices:
            if v.key == key and v.note_active:
                v.release(self._velocity_level(v.velocity) * self.sustain)

    def all_notes_off(self):
        for v in self.voices:
            v.reset()

    def active_voice_count(self) -> int:
        return sum(1 for v in self.voices if not v.is_available())

    def _generate_waveform(self, frequency: float, num_samples: int,
                           start_phase: float) -> Tuple[np.ndarray, float]:
        phase_inc = 2 * np.pi * frequency / self.sample_rate
        phases = start_phase + np.arange(num_samples) * phase_inc
        # Vintage-warm sine: fundamental + 1% 2nd harmonic for subtle colour.
        samples = np.sin(phases) * 0.99 + np.sin(2.0 * phases) * 0.01
        final_phase = (start_phase + num_samples * phase_inc) % (2 * np.pi)
        return samples.astype(np.float32), final_phase

    def _apply_envelope(self, voice: Voice, samples: np.ndarray, num_samples: int) -> np.ndarray:
        dt = 1.0 / self.sample_rate
        times = voice.envelope_time + np.arange(num_samples) * dt
        if voice.is_releasing:
            time_const = max(0.005, self.release)
            envelope = voice.release_start_level * np.exp(-times / time_const)
            voice.envelope_time = times[-1] + dt
            voice.last_envelope_level = float(envelope[-1])
            if envelope[-1] < 0.001 or times[-1] > self.release * 5:
                voice.reset()
            return samples * envelope.astype(np.float32)

        v_int = self._velocity_level(voice.velocity)
        envelope = np.full(num_samples, v_int * self.sustain, dtype=np.float32)
        atk_mask = times < self.attack
        if self.attack > 0:
            envelope[atk_mask] = (times[atk_mask] / self.attack) * v_int
        else:
            envelope[atk_mask] = v_int
        dec_end = self.attack + self.decay
        dec_mask = (times >= self.attack) & (times < dec_end)
        if self.decay > 0:
            p = (times[dec_mask] - self.attack) / self.decay
            envelope[dec_mask] = v_int * (1.0 - p * (1.0 - self.sustain))
        if voice.steal_start_level > 0.001:
            # 8ms linear crossfade from the stolen note's last level.
            CROSS = 0.008
            mask = times < CROSS
            p = times[mask] / CROSS
            envelope[mask] = voice.steal_start_level * (1.0 - p) + envelope[mask] * p
            if times[-1] >= CROSS:
                voice.steal_start_level = 0.0
        voice.envelope_time = times[-1] + dt
        voice.last_envelope_level = float(envelope[-1])
        return samples * envelope

    def render(self, left: np.ndarray, right: np.ndarray):
        """Render ``len(left)`` frames into ``left`` and ``right`` in place."""
        frame_count = len(left)
        left.fill(0.0)
        right.fill(0.0)

        active = [v for v in self.voices if not v.is_available()]
        if frame_count == 0:
            return
        if not active:
            # Decay master gain back toward 1.0 so the next note does not
            # start with a gain step.
            self.master_gain_current = self.master_gain_current * 0.90 + 0.10
            return

        gain_target = 1.0 / np.sqrt(len(active)) if len(active) > 1 else 1.0
        gain_prev = self.master_gain_current
        self.master_gain_current = self.master_gain_current * 0.80 + gain_target * 0.20
        gain_ramp = np.linspace(gain_prev, self.master_gain_current, frame_count, dtype=np.float32)

        for v in active:
            samples, v.phase = self._generate_waveform(v.frequency, frame_count, v.phase)
            samples = self._apply_envelope(v, samples, frame_count)
            ang = v.pan * np.pi / 2
            left += samples * np.float32(np.cos(ang))
            right += samples * np.float32(np.sin(ang))

        left *= gain_ramp
        right *= gain_ramp
        np.tanh(left, out=left)
        np.tanh(right, out=right)
