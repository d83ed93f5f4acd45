"""Speech-synthesis components.

This package contains the voice catalog and assignment rules, the emotion
adjuster, the ElevenLabs client, and the segment synthesizer used by the
audio stage.
"""

from .elevenlabs_client import ElevenLabsProviderError, ElevenLabsSpeechClient
from .emotion import adjust_voice_settings
from .synthesizer import SegmentSynthesizer
from .voices import VoiceCast, VoiceProfile, build_voice_cast

__all__ = [
    "ElevenLabsProviderError",
    "ElevenLabsSpeechClient",
    "SegmentSynthesizer",
    "VoiceCast",
    "VoiceProfile",
    "adjust_voice_settings",
    "build_voice_cast",
]
