"""Voice catalog and character-to-voice assignment.

Responsibilities:
- Hold the static catalog of synthesis voices.
- Select a voice per character by ordered rule precedence.
- Resolve speakers through an exact alias table, falling back to the narrator.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from loguru import logger

from ..models.datatypes import (
    NARRATOR,
    CharacterProfile,
    VoiceAssignment,
    VoiceSettings,
)


@dataclass(frozen=True, slots=True)
class VoiceProfile:
    """Catalog entry for one provider voice.

    Attributes:
        name: Human-readable voice name.
        provider_voice_id: Provider-native voice identifier.
        description: Short description of the voice character.
    """

    name: str
    provider_voice_id: str
    description: str


MALE_DEEP = VoiceProfile("Adam", "pNInz6obpgDQGcFmaJgB", "Deep, mature male voice")
MALE_MIDDLE = VoiceProfile("Arnold", "VR6AewLTigWG4xSOukaG", "Clear, middle-aged male voice")
MALE_YOUNG = VoiceProfile("Antoni", "ErXwobaYiN019PkySvjV", "Young, energetic male voice")
FEMALE_MATURE = VoiceProfile("Elli", "MF3mGyEYCl7XYWbV9V6O", "Mature, professional female voice")
FEMALE_MIDDLE = VoiceProfile("Matilda", "XrExE9yKIg1WjnnlVkGX", "Warm, middle-aged female voice")
FEMALE_YOUNG = VoiceProfile("Rachel", "21m00Tcm4TlvDq8ikWAM", "Young, clear female voice")
NARRATOR_VOICE = VoiceProfile("Bella", "EXAVITQu4vr4xnSDxMaL", "Clear, professional narrator voice")
ROBOTIC_VOICE = VoiceProfile(
    "Brian", "nPczCjzI2devNBz1zQrb", "Slightly mechanical, precise voice for robot characters"
)

# gender -> age class -> voice
VOICE_BANK: Mapping[str, Mapping[str, VoiceProfile]] = {
    "male": {"mature": MALE_DEEP, "middle": MALE_MIDDLE, "young": MALE_YOUNG},
    "female": {"mature": FEMALE_MATURE, "middle": FEMALE_MIDDLE, "young": FEMALE_YOUNG},
}

DEFAULT_SETTINGS = VoiceSettings(stability=0.75, similarity_boost=0.75, style=0.5)
NARRATOR_SETTINGS = VoiceSettings(stability=0.75, similarity_boost=0.75, style=0.5)
PROTAGONIST_SETTINGS = VoiceSettings(stability=0.65, similarity_boost=0.75, style=0.6)
ROBOTIC_SETTINGS = VoiceSettings(
    stability=0.95, similarity_boost=0.85, style=0.2, use_speaker_boost=False
)

PROTAGONIST_NAME_MARKERS = ("elijah", "baley")
ROBOTIC_NAME_MARKERS = ("daneel", "r.")
ROBOTIC_TEXT_MARKERS = ("robot",)
FEMALE_MARKERS = ("woman", "female", "she", "her")
YOUNG_MARKERS = ("young", "youth")
MATURE_MARKERS = ("old", "mature", "senior")

# canonical-name substring -> aliases registered for it
ALIAS_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Baley", ("Baley", "Lije")),
    ("Enderby", ("Enderby", "Commissioner")),
    ("Daneel", ("Daneel", "R. Daneel Olivaw")),
    ("Simpson", ("Simpson",)),
    ("R. Sammy", ("R. Sammy",)),
)


def _assignment(voice: VoiceProfile, settings: VoiceSettings) -> VoiceAssignment:
    return VoiceAssignment(
        voice_id=voice.provider_voice_id,
        voice_name=voice.name,
        settings=settings,
    )


def narrator_assignment() -> VoiceAssignment:
    """Return the fixed narrator assignment."""

    return _assignment(NARRATOR_VOICE, NARRATOR_SETTINGS)


def select_voice(character: CharacterProfile) -> VoiceAssignment:
    """Select a voice for one character by ordered rule precedence.

    1. Protagonist names get a dedicated hand-tuned voice.
    2. Robotic names or descriptions get the robotic profile.
    3. Otherwise gender and age signals in the description pick from the bank.
    """

    name = character.name.lower()
    description = character.description.lower()
    role = character.role.lower()

    if any(marker in name for marker in PROTAGONIST_NAME_MARKERS):
        return _assignment(MALE_MIDDLE, PROTAGONIST_SETTINGS)

    if any(marker in name for marker in ROBOTIC_NAME_MARKERS) or any(
        marker in description or marker in role for marker in ROBOTIC_TEXT_MARKERS
    ):
        return _assignment(ROBOTIC_VOICE, ROBOTIC_SETTINGS)

    gender = "female" if any(marker in description for marker in FEMALE_MARKERS) else "male"
    if any(marker in description for marker in YOUNG_MARKERS):
        age = "young"
    elif any(marker in description for marker in MATURE_MARKERS):
        age = "mature"
    else:
        age = "middle"
    return _assignment(VOICE_BANK[gender][age], DEFAULT_SETTINGS)


def aliases_for(canonical_name: str) -> tuple[str, ...]:
    """Return the fixed aliases registered for a canonical character name."""

    aliases: list[str] = []
    for marker, names in ALIAS_RULES:
        if marker in canonical_name:
            aliases.extend(name for name in names if name != canonical_name)
    return tuple(aliases)


@dataclass(frozen=True)
class VoiceCast:
    """Read-only voice lookup: canonical assignments plus an exact alias table.

    Attributes:
        assignments: Canonical character name mapped to its assignment;
            always contains `Narrator`.
        aliases: Alias string mapped to a canonical name in `assignments`.
    """

    assignments: Mapping[str, VoiceAssignment]
    aliases: Mapping[str, str] = field(default_factory=dict)
    _warned: set[str] = field(default_factory=set, compare=False, repr=False)

    @property
    def narrator(self) -> VoiceAssignment:
        return self.assignments[NARRATOR]

    def lookup(self, speaker: str) -> VoiceAssignment | None:
        """Return the assignment for an exact canonical name or alias."""

        assignment = self.assignments.get(speaker)
        if assignment is not None:
            return assignment
        canonical = self.aliases.get(speaker)
        if canonical is None:
            return None
        return self.assignments.get(canonical)

    def resolve(self, speaker: str) -> VoiceAssignment:
        """Return the speaker's assignment, or the narrator's with a warning."""

        assignment = self.lookup(speaker)
        if assignment is not None:
            return assignment
        if speaker not in self._warned:
            self._warned.add(speaker)
            logger.warning("No voice mapping found for {}, using narrator voice", speaker)
        return self.narrator

    def flattened(self) -> dict[str, VoiceAssignment]:
        """Return every name and alias mapped to its assignment."""

        flat = dict(self.assignments)
        for alias, canonical in self.aliases.items():
            flat.setdefault(alias, self.assignments[canonical])
        return flat


def build_voice_cast(characters: tuple[CharacterProfile, ...] | list[CharacterProfile]) -> VoiceCast:
    """Assign voices to every character, register aliases, and add the narrator."""

    # Names are registered in roster order and a later character takes over
    # any name or alias already registered by an earlier one.
    selected: dict[str, VoiceAssignment] = {}
    owners: dict[str, str] = {}
    for character in characters:
        selected[character.name] = select_voice(character)
        owners[character.name] = character.name
        for alias in aliases_for(character.name):
            owners[alias] = character.name
    owners.pop(NARRATOR, None)

    assignments = {name: selected[name] for name, owner in owners.items() if name == owner}
    aliases: dict[str, str] = {}
    for name, owner in owners.items():
        if name == owner:
            continue
        if owner in assignments:
            aliases[name] = owner
        else:
            assignments[name] = selected[owner]

    assignments[NARRATOR] = narrator_assignment()
    return VoiceCast(assignments=assignments, aliases=aliases)


def narrator_only_cast() -> VoiceCast:
    """Return a cast with only the narrator, used when no roster is available."""

    return VoiceCast(assignments={NARRATOR: narrator_assignment()})
