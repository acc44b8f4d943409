#!/usr/bin/env python3
"""
Sound card microphone source for Guardian Voice.

Requires the 'soundcard' package: pip install soundcard>=0.4.5
"""

import logging
import threading
from typing import Callable, Optional

import numpy as np
import soundcard

from errors import AudioCaptureUnavailable
from .base import AudioSource


class SoundCardSource(AudioSource):
    """Sound card audio source implementation."""

    def __init__(self, config: dict):
        """
        Initialize sound card source.

        Config keys:
            microphone_substring: Substring to match microphone name (e.g., "USB Audio")
            samplerate: Sample rate in Hz (default: 48000)

        Raises:
            AudioCaptureUnavailable: If no matching microphone can be opened
        """
        super().__init__(config)

        microphone_substring = config.get("microphone_substring", "")
        try:
            if microphone_substring:
                logging.info(f"Looking for microphone matching: {microphone_substring}")
                microphone = soundcard.get_microphone(microphone_substring)
            else:
                logging.debug("Using default microphone")
                microphone = soundcard.default_microphone()
        except IndexError:
            names = ", ".join(mic.name for mic in soundcard.all_microphones())
            raise AudioCaptureUnavailable(
                f"No microphone matching '{microphone_substring}' found (available: {names})"
            )
        except Exception as e:
            raise AudioCaptureUnavailable(f"Microphone unavailable: {e}") from e

        if microphone is None:
            raise AudioCaptureUnavailable("No default microphone")

        self._samplerate = config.get("samplerate", 48000)
        self._recorder = microphone.recorder(samplerate=self._samplerate, channels=1)
        self._process_thread = None

    def start(self, audio_callback: Callable[[np.ndarray], None],
              end_callback: Optional[Callable[[], None]] = None):
        """Start streaming from sound card."""
        self._audio_callback = audio_callback
        self._end_callback = end_callback
        self._running = True

        self._process_thread = threading.Thread(
            target=self._process_audio,
            daemon=True,
            name="soundcard-read"
        )
        self._process_thread.start()

        logging.debug(f"SoundCard source started ({self._samplerate} Hz)")

    def _process_audio(self):
        """Read and process audio from the sound card."""
        try:
            with self._recorder as recorder:
                while self._running:
                    # Record a chunk of float32 samples, flatten from (N,1) to (N,)
                    samples = recorder.record(numframes=1024).flatten()

                    # Convert float32 [-1.0, 1.0] to int16
                    samples_int16 = (np.clip(samples, -1.0, 1.0) * 32767).astype(np.int16)

                    # Resample to Vosk's expected rate
                    resampled = self.resample_audio(
                        samples_int16, self._samplerate, self.VOSK_SAMPLE_RATE
                    )

                    if len(resampled) > 0:
                        self._audio_callback(resampled)
        except Exception as e:
            if self._running:
                logging.error(f"Sound card read error: {e}")
                self.failed = True
        finally:
            self._finish()

    def stop(self):
        """Stop streaming and wait for the recorder to be released."""
        if not self._running:
            return
        self._running = False
        thread = self._process_thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=2.0)
        logging.debug("SoundCard source stopped")
