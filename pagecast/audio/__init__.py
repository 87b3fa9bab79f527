"""Audio assembly components.

This package synthesizes per-segment audio and joins it into one track with
type-aware pauses.
"""

from .assembler import AudioAssembler
from .concat import FfmpegConcatenator, resolve_ffmpeg
from .silence import SilencePolicy

__all__ = ["AudioAssembler", "FfmpegConcatenator", "SilencePolicy", "resolve_ffmpeg"]
