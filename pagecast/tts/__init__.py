"""Text-to-speech client abstractions.

This package contains the speech engine client used by the audio assembler.
"""

from .client import SpeechClient, SpeechSynthesizer

__all__ = ["SpeechClient", "SpeechSynthesizer"]
