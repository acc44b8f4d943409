#!/usr/bin/env python3
"""
Recognition session control for Guardian Voice.

Owns the live speech session: starts and stops it, restarts it whenever the
recognizer ends on its own in continuous mode, feeds finalized text to the
scoring engine and reports transcripts, confidence and errors to the caller.

Nothing raised inside the session crosses back to the caller; failures show
up in the `error` observable or as the absence of a detection.
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from energy import AudioEnergyMonitor
from errors import RecoverableRecognitionError, UnsupportedCapability, is_transient
from lexicon import all_keywords
from recognition import RecognitionErrorEvent, RecognitionResultEvent, SpeechRecognizer
from scoring import DEFAULT_SENSITIVITY_THRESHOLD, DetectionResult, ScoringEngine

RECOGNITION_LANG = "en-IN"
MAX_ALTERNATIVES = 3

UNSUPPORTED_MESSAGE = "Speech recognition not supported on this platform"
START_FAILED_MESSAGE = "Failed to start voice recognition"


class SessionState(Enum):
    """Lifecycle states of a recognition session."""
    IDLE = "idle"                # No session
    STARTING = "starting"        # start() issued, waiting for the recognizer
    LISTENING = "listening"      # Recognizer running
    STOPPING = "stopping"        # stop() in progress


# (state, event) -> next state
TRANSITIONS = {
    (SessionState.IDLE, "start"): SessionState.STARTING,
    (SessionState.STARTING, "started"): SessionState.LISTENING,
    (SessionState.STARTING, "start_failed"): SessionState.IDLE,
    (SessionState.STARTING, "restart"): SessionState.STARTING,
    (SessionState.STARTING, "ended"): SessionState.IDLE,
    (SessionState.STARTING, "restart_failed"): SessionState.IDLE,
    (SessionState.STARTING, "stop"): SessionState.STOPPING,
    (SessionState.LISTENING, "started"): SessionState.LISTENING,
    (SessionState.LISTENING, "restart"): SessionState.LISTENING,
    (SessionState.LISTENING, "ended"): SessionState.IDLE,
    (SessionState.LISTENING, "restart_failed"): SessionState.IDLE,
    (SessionState.LISTENING, "stop"): SessionState.STOPPING,
    (SessionState.STOPPING, "stopped"): SessionState.IDLE,
}


def should_restart(continuous: bool, explicitly_stopped: bool) -> bool:
    """Whether a session that ended on its own is restarted."""
    return continuous and not explicitly_stopped


@dataclass(frozen=True)
class DetectorOptions:
    """Caller-facing detection settings."""
    continuous: bool = True
    sensitivity_threshold: float = DEFAULT_SENSITIVITY_THRESHOLD

    def __post_init__(self):
        if not 0 <= self.sensitivity_threshold <= 1:
            raise ValueError(
                f"Sensitivity threshold must be between 0 and 1, got {self.sensitivity_threshold}"
            )


class VoiceDetectionSession:
    """
    Continuous voice emergency detection.

    Usage:
        with VoiceDetectionSession(make_recognizer,
                                   on_emergency_detected=raise_alert) as session:
            session.start()
            ...
    """

    def __init__(self, recognizer_factory: Optional[Callable[[], SpeechRecognizer]],
                 engine: Optional[ScoringEngine] = None,
                 energy_monitor: Optional[AudioEnergyMonitor] = None,
                 options: Optional[DetectorOptions] = None,
                 on_transcript: Optional[Callable[[str], None]] = None,
                 on_emergency_detected: Optional[Callable[[DetectionResult], None]] = None,
                 on_final_transcript: Optional[Callable[[str], None]] = None,
                 lang: str = RECOGNITION_LANG):
        self.options = options or DetectorOptions()
        self.recognizer_factory = recognizer_factory
        self.energy_monitor = energy_monitor or AudioEnergyMonitor()
        self.engine = engine or ScoringEngine(
            sensitivity_threshold=self.options.sensitivity_threshold,
            energy_reader=lambda: self.energy_monitor.energy,
        )
        self.on_transcript = on_transcript
        self.on_emergency_detected = on_emergency_detected
        self.on_final_transcript = on_final_transcript
        self.lang = lang

        # Checked once; a platform does not gain recognition mid-session
        self.is_supported = recognizer_factory is not None

        self.state = SessionState.IDLE
        self.last_transcript = ""
        self.error: Optional[str] = None

        self._recognizer = None
        self._explicitly_stopped = False
        self._lock = threading.RLock()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()

    @property
    def is_listening(self) -> bool:
        return self.state == SessionState.LISTENING

    @property
    def current_confidence(self) -> float:
        return self.engine.current_confidence

    @property
    def emergency_keywords(self) -> list:
        return all_keywords(self.engine.lexicon)

    def _transition(self, event: str) -> bool:
        """Apply a state machine event; unknown transitions are ignored."""
        next_state = TRANSITIONS.get((self.state, event))
        if next_state is None:
            logging.debug(f"Ignoring '{event}' in state {self.state.value}")
            return False
        if next_state != self.state:
            logging.debug(f"Session {self.state.value} -> {next_state.value} ({event})")
        self.state = next_state
        return True

    def _create_recognizer(self) -> SpeechRecognizer:
        if self.recognizer_factory is None:
            raise UnsupportedCapability(UNSUPPORTED_MESSAGE)
        recognizer = self.recognizer_factory()
        recognizer.continuous = self.options.continuous
        recognizer.interim_results = True
        recognizer.lang = self.lang
        recognizer.max_alternatives = MAX_ALTERNATIVES
        recognizer.on_start = self._handle_start
        recognizer.on_result = self._handle_result
        recognizer.on_error = self._handle_error
        recognizer.on_end = self._handle_end
        return recognizer

    def start(self) -> bool:
        """
        Start listening.

        Returns:
            True if a session is starting or already running, False if
            recognition is unsupported or failed to start (see `error`).
        """
        with self._lock:
            if self.state != SessionState.IDLE:
                return True

            try:
                recognizer = self._create_recognizer()
            except UnsupportedCapability as e:
                self.error = str(e)
                logging.warning(self.error)
                return False

            self._explicitly_stopped = False
            self._recognizer = recognizer
            self._transition("start")

            try:
                recognizer.start()
            except Exception as e:
                logging.error(f"{START_FAILED_MESSAGE}: {e}")
                self.error = START_FAILED_MESSAGE
                self._release_recognizer()
                self._release_resources()
                self._transition("start_failed")
                return False

            # Loudness is optional; it fails on its own without affecting recognition
            if self.state != SessionState.IDLE:
                self.energy_monitor.start()
        return True

    def stop(self):
        """Stop listening and release the microphone. No-op when idle."""
        with self._lock:
            if self.state == SessionState.IDLE and self._recognizer is None:
                return
            self._explicitly_stopped = True
            self._transition("stop")
            recognizer = self._release_recognizer()

        # Outside the lock: stopping joins the audio thread, which may be
        # waiting to deliver a result.
        if recognizer is not None:
            try:
                recognizer.stop()
            except Exception as e:
                logging.debug(f"Error stopping recognizer: {e}")

        with self._lock:
            self._release_resources()
            self._transition("stopped")
        logging.info("Voice monitoring stopped")

    def _release_recognizer(self) -> Optional[SpeechRecognizer]:
        """Detach the end handler first so no restart can race the stop."""
        recognizer, self._recognizer = self._recognizer, None
        if recognizer is not None:
            recognizer.on_end = None
        return recognizer

    def _release_resources(self):
        self.engine.reset()
        self.energy_monitor.stop()

    def _handle_start(self):
        with self._lock:
            if self._transition("started"):
                self.error = None
                logging.info("Voice monitoring active")

    def _handle_result(self, event: RecognitionResultEvent):
        with self._lock:
            if self.state not in (SessionState.STARTING, SessionState.LISTENING):
                return

            final_transcript = ""
            interim_transcript = ""
            for segment in event.results[event.result_index:]:
                if segment.is_final:
                    final_transcript += segment.transcript
                else:
                    interim_transcript += segment.transcript

            current_text = interim_transcript or final_transcript
            self.last_transcript = current_text

            result = None
            if final_transcript:
                result = self.engine.score(final_transcript)

        self._notify(self.on_transcript, current_text)
        if final_transcript:
            self._notify(self.on_final_transcript, final_transcript)
        if result is not None:
            logging.warning(f"Emergency detected: {result}")
            self._notify(self.on_emergency_detected, result)

    def _handle_error(self, event: RecognitionErrorEvent):
        if is_transient(event.error):
            return
        error = RecoverableRecognitionError(event.error)
        logging.warning(f"{error}{': ' + event.message if event.message else ''}")
        with self._lock:
            self.error = str(error)

    def _handle_end(self):
        with self._lock:
            recognizer = self._recognizer
            if recognizer is None:
                return

            if should_restart(self.options.continuous, self._explicitly_stopped):
                self._transition("restart")
                try:
                    recognizer.start()
                    return
                except Exception as e:
                    logging.error(f"Could not restart recognition: {e}")
                    self._release_recognizer()
                    self._release_resources()
                    self._transition("restart_failed")
                    return

            logging.info("Recognition session ended")
            self._release_recognizer()
            self._release_resources()
            self._transition("ended")

    @staticmethod
    def _notify(callback, *args):
        """Invoke a caller callback without letting its errors reach the recognizer."""
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logging.exception("Detection callback failed")
