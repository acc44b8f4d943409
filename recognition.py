#!/usr/bin/env python3
"""
Speech recognition capability for Guardian Voice.

A recognizer runs a continuous session and reports through four handlers:
on_start(), on_result(RecognitionResultEvent), on_error(RecognitionErrorEvent)
and on_end(). Handlers are plain attributes so they can be detached at any
time; they are looked up when each event fires.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np

from errors import RecognizerBusy
from sources.base import AudioSource


@dataclass(frozen=True)
class RecognitionAlternative:
    """One candidate text for a segment."""
    transcript: str
    confidence: float = 0.0


@dataclass(frozen=True)
class RecognitionSegment:
    """A recognized segment, either final or interim."""
    alternatives: tuple
    is_final: bool

    @property
    def transcript(self) -> str:
        """Text of the first alternative."""
        return self.alternatives[0].transcript if self.alternatives else ""


@dataclass(frozen=True)
class RecognitionResultEvent:
    """Results delivered by one recognition callback."""
    result_index: int
    results: Sequence[RecognitionSegment]


@dataclass(frozen=True)
class RecognitionErrorEvent:
    """Named recognition error (e.g. 'no-speech', 'network')."""
    error: str
    message: str = ""


class SpeechRecognizer(ABC):
    """Abstract base class for speech recognizers."""

    def __init__(self):
        self.continuous = True
        self.interim_results = True
        self.lang = "en-IN"
        self.max_alternatives = 1

        self.on_start: Optional[Callable[[], None]] = None
        self.on_result: Optional[Callable[[RecognitionResultEvent], None]] = None
        self.on_error: Optional[Callable[[RecognitionErrorEvent], None]] = None
        self.on_end: Optional[Callable[[], None]] = None

    @abstractmethod
    def start(self):
        """
        Start a recognition session.

        Raises:
            RecognizerBusy: If a session is already running
        """
        pass

    @abstractmethod
    def stop(self):
        """Stop the session; on_end fires once it has ended."""
        pass

    def _emit(self, name: str, *args):
        handler = getattr(self, f"on_{name}")
        if handler:
            handler(*args)


class StreamingRecognizer(SpeechRecognizer):
    """
    Recognizer that streams microphone audio into a transcriber.

    The transcriber must provide process_audio(bytes) -> (final_alternatives,
    partial) and get_final_result() -> str (see transcription.Transcriber).
    """

    # ~0.25 seconds of 16-bit audio at 16kHz
    CHUNK_BYTES = 8000

    def __init__(self, transcriber, source_factory: Callable[[], AudioSource]):
        super().__init__()
        self.transcriber = transcriber
        self.source_factory = source_factory

        self._source = None
        self._audio_buffer = b""
        self._last_partial = ""
        self._lock = threading.RLock()

    @property
    def is_running(self) -> bool:
        return self._source is not None

    def start(self):
        """
        Open the microphone and begin recognition.

        Raises:
            RecognizerBusy: If already running
            AudioCaptureUnavailable: If the microphone cannot be opened
        """
        with self._lock:
            if self._source is not None:
                raise RecognizerBusy("Recognition session already running")

            source = self.source_factory()
            self._audio_buffer = b""
            self._last_partial = ""
            self._source = source

        try:
            source.start(self._on_audio, self._on_source_end)
        except Exception:
            with self._lock:
                self._source = None
            raise

        logging.debug(f"Recognition session started (lang={self.lang}, continuous={self.continuous})")
        self._emit("start")

    def stop(self):
        """Stop the microphone; on_end fires when the stream has closed."""
        with self._lock:
            source = self._source
        if source is not None:
            source.stop()

    def _on_audio(self, audio_samples: np.ndarray):
        """Buffer audio and hand fixed-size chunks to the transcriber."""
        with self._lock:
            if self._source is None:
                return
            self._audio_buffer += audio_samples.tobytes()

            while len(self._audio_buffer) >= self.CHUNK_BYTES:
                chunk = self._audio_buffer[:self.CHUNK_BYTES]
                self._audio_buffer = self._audio_buffer[self.CHUNK_BYTES:]

                final, partial = self.transcriber.process_audio(chunk)

                if final:
                    self._last_partial = ""
                    self._emit_final(final)
                    if not self.continuous:
                        # Single-utterance mode ends after the first final result
                        self._source.stop()
                        return
                elif partial and partial != self._last_partial and self.interim_results:
                    self._last_partial = partial
                    segment = RecognitionSegment((RecognitionAlternative(partial),), is_final=False)
                    self._emit("result", RecognitionResultEvent(0, (segment,)))

    def _emit_final(self, alternatives: list):
        texts = [text for text in alternatives[:max(1, self.max_alternatives)] if text]
        if not texts:
            return
        segment = RecognitionSegment(
            tuple(RecognitionAlternative(text) for text in texts), is_final=True
        )
        self._emit("result", RecognitionResultEvent(0, (segment,)))

    def _on_source_end(self):
        """Audio stream closed: flush pending speech and end the session."""
        with self._lock:
            source, self._source = self._source, None
            if source is None:
                return
            try:
                remaining = self.transcriber.get_final_result()
            except Exception as e:
                logging.debug(f"Could not flush transcriber: {e}")
                remaining = ""
            if remaining:
                self._emit_final([remaining])

        if source.failed:
            self._emit("error", RecognitionErrorEvent("audio-capture", "Audio stream ended unexpectedly"))
        self._emit("end")
