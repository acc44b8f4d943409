"""Pytest configuration and fixtures for Guardian Voice tests."""

from datetime import datetime

import numpy as np
import pytest

from errors import RecognizerBusy
from recognition import (
    RecognitionAlternative,
    RecognitionErrorEvent,
    RecognitionResultEvent,
    RecognitionSegment,
    SpeechRecognizer,
)
from sources.base import AudioSource


class FakeSource(AudioSource):
    """In-memory audio source; stop() ends the stream synchronously."""

    def __init__(self, config: dict = None):
        super().__init__(config or {})
        self.start_calls = 0
        self.stop_calls = 0

    def start(self, audio_callback, end_callback=None):
        self.start_calls += 1
        self._audio_callback = audio_callback
        self._end_callback = end_callback
        self._running = True

    def stop(self):
        self.stop_calls += 1
        if not self._running:
            return
        self._finish()

    def feed(self, samples: np.ndarray):
        self._audio_callback(samples)

    def fail(self):
        """End the stream as a device error would."""
        self.failed = True
        self._finish()


class FakeRecognizer(SpeechRecognizer):
    """Scriptable recognizer driven directly by tests."""

    def __init__(self, fail_start: bool = False):
        super().__init__()
        self.fail_start = fail_start
        self.fail_restart = False
        self.running = False
        self.start_calls = 0
        self.stop_calls = 0

    def start(self):
        if self.running:
            raise RecognizerBusy("already running")
        if self.fail_start or (self.fail_restart and self.start_calls > 0):
            raise RuntimeError("recognizer refused to start")
        self.start_calls += 1
        self.running = True
        self._emit("start")

    def stop(self):
        self.stop_calls += 1
        if self.running:
            self.running = False
            self._emit("end")

    def final(self, text: str):
        segment = RecognitionSegment((RecognitionAlternative(text),), is_final=True)
        self._emit("result", RecognitionResultEvent(0, (segment,)))

    def interim(self, text: str):
        segment = RecognitionSegment((RecognitionAlternative(text),), is_final=False)
        self._emit("result", RecognitionResultEvent(0, (segment,)))

    def error(self, code: str):
        self._emit("error", RecognitionErrorEvent(code))

    def end(self):
        """The stream ends on its own."""
        self.running = False
        self._emit("end")


@pytest.fixture
def fake_source():
    """Fixture providing a single fake audio source."""
    return FakeSource()


@pytest.fixture
def source_factory():
    """Fixture providing a factory that records every source it creates."""
    created = []

    def factory():
        source = FakeSource()
        created.append(source)
        return source

    factory.created = created
    return factory


@pytest.fixture
def recognizer_factory():
    """Fixture providing a factory that records every recognizer it creates."""
    created = []

    def factory():
        recognizer = FakeRecognizer()
        created.append(recognizer)
        return recognizer

    factory.created = created
    return factory


@pytest.fixture
def fixed_clock():
    """Fixture providing a clock that always returns the same instant."""
    instant = datetime(2026, 10, 19, 12, 0, 0)
    return lambda: instant


@pytest.fixture
def loud_noise():
    """Fixture providing a full-scale white noise chunk (int16)."""
    rng = np.random.default_rng(1234)
    return (rng.uniform(-1.0, 1.0, 1024) * 32767).astype(np.int16)


@pytest.fixture
def quiet_noise():
    """Fixture providing very low level white noise (int16)."""
    rng = np.random.default_rng(4321)
    return (rng.uniform(-1.0, 1.0, 1024) * 30).astype(np.int16)


@pytest.fixture
def failing_recognizer_factory():
    """Fixture providing a factory whose recognizers refuse to start."""
    return lambda: FakeRecognizer(fail_start=True)
