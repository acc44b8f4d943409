#!/usr/bin/env python3
"""
Vosk speech-to-text for Guardian Voice.
"""

import json
import logging
import os
from vosk import Model, KaldiRecognizer


class Transcriber:
    """Speech-to-text transcription using Vosk."""

    def __init__(self, model_path: str, sample_rate: int = 16000, max_alternatives: int = 3):
        self.model_path = model_path
        self.sample_rate = sample_rate
        self.max_alternatives = max_alternatives
        self.model = None
        self.recognizer = None

    def start(self):
        """Initialize the Vosk model and recognizer."""
        if not os.path.exists(self.model_path):
            raise FileNotFoundError(
                f"Vosk model not found at '{self.model_path}'. "
                f"Download from https://alphacephei.com/vosk/models"
            )

        logging.info(f"Loading Vosk model from: {self.model_path}")
        self.model = Model(self.model_path)
        self.recognizer = KaldiRecognizer(self.model, self.sample_rate)
        if self.max_alternatives > 1:
            self.recognizer.SetMaxAlternatives(self.max_alternatives)
        logging.info("Vosk model loaded successfully")

    @staticmethod
    def _result_texts(result: dict) -> list:
        """Texts of a Vosk final result, best alternative first."""
        if "alternatives" in result:
            return [alt.get("text", "") for alt in result["alternatives"] if alt.get("text")]
        text = result.get("text", "")
        return [text] if text else []

    def process_audio(self, audio_data: bytes) -> tuple[list, str]:
        """
        Process audio data and return (final_alternatives, partial_text).

        Args:
            audio_data: Raw PCM audio bytes (16-bit signed, mono)

        Returns:
            Tuple of (final_alternatives, partial_text). Only one will be non-empty.
        """
        if self.recognizer.AcceptWaveform(audio_data):
            result = json.loads(self.recognizer.Result())
            return self._result_texts(result), ""
        else:
            partial = json.loads(self.recognizer.PartialResult())
            return [], partial.get("partial", "")

    def get_final_result(self) -> str:
        """Get any remaining text after processing is complete."""
        result = json.loads(self.recognizer.FinalResult())
        texts = self._result_texts(result)
        return texts[0] if texts else ""
