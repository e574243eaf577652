from __future__ import annotations

from mcpm.regions.records import HEART_PREFIX, KIND_HEART, RegionRecord

COMMAND_ID_PREFIX = "discover"
NAME_FIELD_PREFIX = "discover_"
LOWERCASE_JOINER = "of"


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def canonical_id(raw: str) -> str:
    return raw.strip().lower()


def is_heart_id(region_id: str) -> bool:
    return region_id.startswith(HEART_PREFIX)


def title_case(value: str) -> str:
    words = value.split("_")
    return " ".join(
        LOWERCASE_JOINER if index > 0 and word.lower() == LOWERCASE_JOINER else _capitalize(word)
        for index, word in enumerate(words)
    )


def command_id(region_id: str) -> str:
    # Hearts capitalize "Of"; every other id keeps a non-leading "of" lowercase.
    heart = is_heart_id(region_id)
    parts = [
        LOWERCASE_JOINER if not heart and index > 0 and word.lower() == LOWERCASE_JOINER else _capitalize(word)
        for index, word in enumerate(region_id.split("_"))
    ]
    return COMMAND_ID_PREFIX + "".join(parts)


def parent_title(region_id: str) -> str:
    """Title of the region a heart belongs to: ``heart_of_cherrybrook`` -> ``Cherrybrook``."""
    if is_heart_id(region_id):
        return title_case(region_id[len(HEART_PREFIX):])
    return title_case(region_id)


def display_title(region_id: str, kind: str) -> str:
    if kind == KIND_HEART and is_heart_id(region_id):
        return f"Heart of {parent_title(region_id)}"
    return title_case(region_id)


def name_field(region_id: str) -> str:
    return NAME_FIELD_PREFIX + region_id.lower()


def resolved_command_id(record: RegionRecord) -> str:
    return record.discover.command_id_override or command_id(record.id)


def resolved_display_title(record: RegionRecord) -> str:
    return record.discover.display_name_override or display_title(record.id, record.kind)
