#!/usr/bin/env python3
"""
Microphone loudness monitoring for Guardian Voice.

Runs independently of speech recognition. Every audio chunk delivered by the
microphone is one sampling tick: the chunk goes through a small frequency
analyser and the RMS of its byte magnitudes overwrites the energy reading.
Loudness is an optional signal, so a missing microphone leaves the energy at 0
rather than failing anything.
"""

import logging
from typing import Callable, Optional

import numpy as np

from sources.base import AudioSource


class FrequencyAnalyser:
    """
    Byte frequency analysis of the most recent samples.

    Mirrors the usual analyser node behaviour: Blackman window, magnitude
    spectrum smoothed against the previous frame, then the dB range mapped
    onto 0..255. A low smoothing constant makes loud transients register
    immediately.
    """

    def __init__(self, fft_size: int = 256, smoothing_time_constant: float = 0.3,
                 min_decibels: float = -100.0, max_decibels: float = -30.0):
        if fft_size < 32 or fft_size & (fft_size - 1):
            raise ValueError(f"FFT size must be a power of two >= 32, got {fft_size}")
        if not 0 <= smoothing_time_constant <= 1:
            raise ValueError(f"Smoothing constant must be in [0, 1], got {smoothing_time_constant}")
        if min_decibels >= max_decibels:
            raise ValueError("min_decibels must be below max_decibels")

        self.fft_size = fft_size
        self.smoothing_time_constant = smoothing_time_constant
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels

        self._window = np.blackman(fft_size)
        self._buffer = np.zeros(fft_size, dtype=np.float64)
        self._smoothed = np.zeros(fft_size // 2, dtype=np.float64)

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def reset(self):
        self._buffer[:] = 0
        self._smoothed[:] = 0

    def byte_frequency_data(self, samples: np.ndarray) -> np.ndarray:
        """
        Push new samples and return the current byte spectrum.

        Args:
            samples: int16 PCM or float samples in [-1, 1]

        Returns:
            uint8 array of frequency_bin_count magnitudes
        """
        if samples.dtype == np.int16:
            samples = samples.astype(np.float64) / 32768.0
        else:
            samples = samples.astype(np.float64)

        if len(samples) >= self.fft_size:
            self._buffer = samples[-self.fft_size:].copy()
        elif len(samples) > 0:
            self._buffer = np.concatenate([self._buffer[len(samples):], samples])

        spectrum = np.fft.rfft(self._buffer * self._window)[:self.frequency_bin_count]
        magnitude = np.abs(spectrum) / self.fft_size

        tau = self.smoothing_time_constant
        self._smoothed = tau * self._smoothed + (1 - tau) * magnitude

        with np.errstate(divide='ignore'):
            decibels = 20 * np.log10(self._smoothed)
        scaled = 255 * (decibels - self.min_decibels) / (self.max_decibels - self.min_decibels)
        return np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8)


def rms_energy(byte_data: np.ndarray) -> float:
    """Root mean square of byte magnitudes, normalized to [0, 1]."""
    if len(byte_data) == 0:
        return 0.0
    values = byte_data.astype(np.float64)
    return float(np.sqrt(np.mean(values * values)) / 255)


class AudioEnergyMonitor:
    """
    Continuously samples microphone loudness.

    Usage:
        monitor = AudioEnergyMonitor(lambda: SoundCardSource(config))
        monitor.start()
        ...
        level = monitor.energy
        monitor.stop()
    """

    def __init__(self, source_factory: Optional[Callable[[], AudioSource]] = None,
                 analyser: Optional[FrequencyAnalyser] = None):
        self.source_factory = source_factory
        self.analyser = analyser or FrequencyAnalyser()
        self._source = None
        self._energy = 0.0

    @property
    def energy(self) -> float:
        """Most recent energy sample in [0, 1]."""
        return self._energy

    @property
    def is_running(self) -> bool:
        return self._source is not None and self._source.is_running

    def start(self) -> bool:
        """
        Acquire the microphone and begin sampling.

        Returns:
            True if sampling started. Failures are logged and swallowed.
        """
        if self._source is not None:
            return True
        if self.source_factory is None:
            logging.debug("No microphone source configured; audio energy disabled")
            return False

        source = None
        try:
            source = self.source_factory()
            self._source = source
            source.start(self._on_samples, self._on_source_end)
        except Exception as e:
            logging.debug(f"Audio energy monitoring unavailable: {e}")
            self._release(source)
            return False

        logging.debug("Audio energy monitoring started")
        return True

    def stop(self):
        """Stop sampling and release the microphone. Safe to call repeatedly."""
        self._release(self._source)

    def _release(self, source: Optional[AudioSource]):
        self._source = None
        if source is not None:
            try:
                source.stop()
            except Exception as e:
                logging.debug(f"Error releasing energy source: {e}")
        self.analyser.reset()
        self._energy = 0.0

    def _on_samples(self, samples: np.ndarray):
        if self._source is None:
            return
        self._energy = rms_energy(self.analyser.byte_frequency_data(samples))

    def _on_source_end(self):
        if self._source is not None:
            logging.debug("Audio energy source ended")
        self._source = None
        self._energy = 0.0
