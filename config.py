#!/usr/bin/env python3
"""
Configuration for Guardian Voice.
"""

from pathlib import Path

import yaml

from session import DetectorOptions, RECOGNITION_LANG


class Config:
    """Configuration manager for Guardian Voice."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self.data = self._load_config()

    def _load_config(self) -> dict:
        if self.config_path.exists():
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
            if not isinstance(data, dict):
                raise ValueError(f"{self.config_path}: expected a mapping at top level")
            return data
        return {}

    def _section(self, name: str) -> dict:
        section = self.data.get(name) or {}
        if not isinstance(section, dict):
            raise ValueError(f"{self.config_path}: '{name}' must be a mapping")
        return section

    @property
    def detection(self) -> dict:
        """Get detection settings."""
        return self._section("detection")

    @property
    def vosk(self) -> dict:
        """Get Vosk configuration."""
        return self._section("vosk")

    @property
    def microphone(self) -> dict:
        """Get microphone configuration."""
        return self._section("microphone")

    @property
    def keywords(self) -> dict:
        """Get extra keywords as {language: {phrase: weight}}."""
        return self._section("keywords")

    @property
    def location(self) -> dict:
        """Get location configuration."""
        return self._section("location")

    @property
    def lang(self) -> str:
        """Get the recognition locale."""
        return self.detection.get("lang", RECOGNITION_LANG)

    @property
    def audio_energy(self) -> bool:
        """Whether microphone loudness is used as a signal."""
        return bool(self.detection.get("audio_energy", True))

    def detector_options(self) -> DetectorOptions:
        """Build detection options from the config."""
        detection = self.detection
        return DetectorOptions(
            continuous=bool(detection.get("continuous", True)),
            sensitivity_threshold=float(detection.get("sensitivity_threshold", 0.6)),
        )
