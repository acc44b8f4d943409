"""
Audio sources for Guardian Voice.

Source classes are imported lazily so the app can boot even if
optional dependencies (soundcard) are missing.
"""

from .base import AudioSource

__all__ = ['AudioSource']
