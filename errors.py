#!/usr/bin/env python3
"""
Error types for Guardian Voice.

None of these escape a VoiceDetectionSession: the session turns them into
its `error` observable, or swallows them when only the audio energy signal
is affected.
"""

# Recognition error codes that happen routinely in continuous mode
TRANSIENT_RECOGNITION_ERRORS = frozenset({"aborted", "no-speech"})


def is_transient(code: str) -> bool:
    """Check if a recognition error code should be silently absorbed."""
    return code in TRANSIENT_RECOGNITION_ERRORS


class VoiceDetectionError(Exception):
    """Base class for detection pipeline errors."""


class UnsupportedCapability(VoiceDetectionError):
    """No speech recognition is available on this platform."""


class RecoverableRecognitionError(VoiceDetectionError):
    """A named recognition error that leaves the session running."""

    def __init__(self, code: str):
        super().__init__(f"Voice recognition error: {code}")
        self.code = code


class AudioCaptureUnavailable(VoiceDetectionError):
    """Microphone permission denied or no capture device."""


class RecognizerBusy(VoiceDetectionError):
    """start() called on a recognizer that is already running."""
