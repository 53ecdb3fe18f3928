#!/usr/bin/env python3
"""ABOUTME: Stress test - several input threads and a render thread share one synthesizer.
ABOUTME: Checks nothing deadlocks, nothing raises, and a final flush leaves silence."""
import random
import sys
import threading
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent))

from audio.render_loop import AudioRenderLoop
from audio.shared_handle import SharedSynthHandle
from conftest import block_is_silent
from midi.dispatcher import MIDIDispatcher
from music.synth_engine import SynthEngine

INPUT_THREADS = 4
MESSAGES_PER_THREAD = 10_000


def _random_messages(seed):
    rng = random.Random(seed)
    for _ in range(MESSAGES_PER_THREAD):
        status = rng.choice((0x80, 0x90)) | rng.randrange(16)
        yield [status, rng.randrange(128), rng.randrange(128)]


def test_inputs_and_render_share_engine_without_deadlock():
    engine = SynthEngine(sample_rate=8000)
    handle = SharedSynthHandle(engine)
    loop = AudioRenderLoop(handle, capacity=64, channels=2)
    errors = []
    done = threading.Event()

    def feed(seed):
        dispatcher = MIDIDispatcher(handle)
        try:
            for message in _random_messages(seed):
                dispatcher.handle_message(message)
        except Exception as e:  # pragma: no cover - failure path
            errors.append(e)

    def render():
        try:
            while not done.is_set():
                block = loop.render(64)
                assert block.shape == (64, 2)
                assert np.isfinite(block).all()
        except Exception as e:  # pragma: no cover - failure path
            errors.append(e)

    renderer = threading.Thread(target=render, name="render")
    feeders = [threading.Thread(target=feed, args=(seed,)) for seed in range(INPUT_THREADS)]
    renderer.start()
    for t in feeders:
        t.start()
    for t in feeders:
        t.join(timeout=120)
    done.set()
    renderer.join(timeout=10)

    assert not any(t.is_alive() for t in feeders + [renderer])
    assert errors == []
    assert not handle.poisoned

    handle.with_lock(lambda e: e.all_notes_off())
    assert block_is_silent(loop.render(64))


if __name__ == "__main__":
    sys.exit(pytest.main([__file__, "-v"]))
