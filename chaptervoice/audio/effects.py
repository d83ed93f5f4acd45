"""Sound-effect detection and ambient clip synthesis.

Responsibilities:
- Detect effect opportunities in segment text through a fixed keyword table.
- Synthesize one short ambient clip per detected effect, skipping failures.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger

from ..errors import ProviderError
from ..io.storage import ArtifactStore
from ..pacing import CallPacer
from ..models.datatypes import EffectArtifact, EffectDescriptor, Segment, VoiceSettings
from ..tts.synthesizer import DEFAULT_TTS_MODEL, SpeechClient
from ..tts.voices import NARRATOR_VOICE

EFFECTS_DIR = Path("effects")
EFFECT_SETTINGS = VoiceSettings(
    stability=0.9, similarity_boost=0.3, style=0.1, use_speaker_boost=False
)

# (triggers, description, duration); every matching row yields one descriptor
EFFECT_TRIGGERS: tuple[tuple[tuple[str, ...], str, str], ...] = (
    (("door", "stepped in", "entered"), "door opening or closing", "short"),
    (("walked", "stepped", "paced"), "footsteps on hard floor", "short"),
    (("rain", "raining", "water dropping"), "gentle rain on window", "medium"),
    (("murder", "died", "killed"), "ominous tension, dramatic pause", "short"),
    (
        ("tape reeled", "instrument searched"),
        "futuristic computer processing sounds",
        "short",
    ),
    (("window", "glass", "transparent"), "subtle glass or window sound", "short"),
)


def detect_effects(segments: list[Segment]) -> list[EffectDescriptor]:
    """Return effect descriptors for segments whose text contains a trigger word.

    Matching is a lower-cased substring test, so `rain` also fires inside
    `brain`. Results are not deduplicated.
    """

    descriptors: list[EffectDescriptor] = []
    for segment in sorted(segments, key=lambda item: item.index):
        lowered = segment.text.lower()
        for triggers, description, duration in EFFECT_TRIGGERS:
            if any(trigger in lowered for trigger in triggers):
                descriptors.append(
                    EffectDescriptor(
                        after_segment=segment.index,
                        description=description,
                        duration=duration,
                    )
                )
    return descriptors


def effect_prompt(description: str) -> str:
    """Return the text sent to the speech provider for one effect."""

    return f"*{description}*"


class EffectSynthesizer:
    """Synthesize ambient effect clips with the narrator voice."""

    def __init__(
        self,
        client: SpeechClient,
        store: ArtifactStore,
        *,
        model_id: str = DEFAULT_TTS_MODEL,
        pacer: CallPacer | None = None,
    ) -> None:
        self.client = client
        self.store = store
        self.model_id = model_id
        self.pacer = pacer if pacer is not None else CallPacer(delay_seconds=1.0)

    def synthesize(self, descriptors: list[EffectDescriptor]) -> list[EffectArtifact]:
        """Synthesize every descriptor; a failed effect is logged and left out."""

        artifacts: list[EffectArtifact] = []
        for index, descriptor in enumerate(descriptors):
            logger.info(
                "Generating sound effect {}/{}: {}", index + 1, len(descriptors), descriptor.description
            )
            artifact = self._synthesize_one(index, descriptor)
            self.pacer.after_call()
            if artifact is not None:
                artifacts.append(artifact)
        return artifacts

    def _synthesize_one(self, index: int, descriptor: EffectDescriptor) -> EffectArtifact | None:
        try:
            audio_bytes = self.client.synthesize_speech(
                voice_id=NARRATOR_VOICE.provider_voice_id,
                text=effect_prompt(descriptor.description),
                model_id=self.model_id,
                voice_settings=EFFECT_SETTINGS,
            )
        except ProviderError as exc:
            logger.warning("Sound effect '{}' failed: {}", descriptor.description, exc)
            return None

        filename = f"effect_{index:04d}_ambient.mp3"
        filepath = self.store.save_audio(EFFECTS_DIR / filename, audio_bytes)
        return EffectArtifact(
            index=index,
            description=descriptor.description,
            duration=descriptor.duration,
            after_segment=descriptor.after_segment,
            filename=filename,
            filepath=filepath,
        )
