"""Audio post-synthesis components.

This package contains sound-effect detection and synthesis and the `ffmpeg`
based combiner and effects mixer.
"""

from .effects import EffectSynthesizer, detect_effects
from .merger import AudioMerger

__all__ = ["AudioMerger", "EffectSynthesizer", "detect_effects"]
