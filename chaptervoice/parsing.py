"""Shared parsing helpers for CLI stage arguments and config value normalization."""

from __future__ import annotations


_TRUE_BOOLEAN_TOKENS = frozenset({"1", "true", "yes", "on"})
_FALSE_BOOLEAN_TOKENS = frozenset({"0", "false", "no", "off"})

STAGE_COUNT = 8


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_permissive_boolean(value: object) -> bool | None:
    """Parse a permissive boolean token and return `None` for invalid values."""

    if isinstance(value, bool):
        return value

    normalized = normalize_optional_string(value)
    if normalized is None:
        return None

    token = normalized.lower()
    if token in _TRUE_BOOLEAN_TOKENS:
        return True
    if token in _FALSE_BOOLEAN_TOKENS:
        return False
    return None


def parse_start_stage(value: object) -> int:
    """Parse a 1-based start stage, falling back to stage 1 for invalid input.

    Non-numeric tokens, zero, negatives, and numbers past the last stage all
    resolve to `1` so that a typo never silently skips work.
    """

    normalized = normalize_optional_string(value)
    if normalized is None:
        return 1
    try:
        number = int(normalized)
    except ValueError:
        return 1
    if number < 1 or number > STAGE_COUNT:
        return 1
    return number


def parse_stage_list(value: object) -> frozenset[int]:
    """Parse a comma-separated stage list such as `2,3,6` into stage numbers.

    Invalid or out-of-range entries are dropped; an empty or missing value
    yields an empty set.
    """

    normalized = normalize_optional_string(value)
    if normalized is None:
        return frozenset()

    stages: set[int] = set()
    for token in normalized.split(","):
        candidate = token.strip()
        if not candidate:
            continue
        try:
            number = int(candidate)
        except ValueError:
            continue
        if 1 <= number <= STAGE_COUNT:
            stages.add(number)
    return frozenset(stages)
