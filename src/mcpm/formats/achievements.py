from __future__ import annotations

import copy
from typing import Any, Iterable

from mcpm.content.documents import DocumentPath
from mcpm.regions.naming import display_title, name_field, resolved_command_id
from mcpm.regions.records import KIND_HEART, KIND_VILLAGE, WORLD_NETHER, RegionRecord

FORMAT_NAME = "aa"
FORMAT_LABEL = "AdvancedAchievements"
TEMPLATE_FILENAME = "advancedachievements-config.yml"
COMMANDS_KEY = "Commands"
COMMAND_TYPE = "normal"


def is_owned(path: DocumentPath, value: Any) -> bool:
    return path == (COMMANDS_KEY,)


def normalize(document: dict[Any, Any]) -> dict[Any, Any]:
    return copy.deepcopy(document)


def _command_text(record: RegionRecord) -> tuple[str, str, str]:
    # Goal and Message always use the derived title; the override only renames DisplayName.
    title = display_title(record.id, record.kind)
    nether = record.world == WORLD_NETHER
    if record.kind == KIND_HEART:
        goal, message = f"Discover the {title}", f"You discovered the {title}"
        display_name = "Nether Heart Discovery" if nether else "Heart Discovery"
    elif record.kind == KIND_VILLAGE:
        goal, message = f"Discover {title} Village", f"You discovered the village of {title}"
        display_name = "Village Discovery"
    elif nether:
        goal, message = f"Discover {title} Nether Region", f"You discovered the nether region of {title}"
        display_name = "Nether Region Discovery"
    else:
        goal, message = f"Discover {title} Region", f"You discovered the region of {title}"
        display_name = "Region Discovery"
    return goal, message, record.discover.display_name_override or display_name


def generate_commands(regions: Iterable[RegionRecord]) -> dict[str, dict[str, str]]:
    active = sorted(
        (record for record in regions if record.is_active),
        key=lambda record: (resolved_command_id(record), record.world, record.id),
    )
    commands: dict[str, dict[str, str]] = {}
    for record in active:
        goal, message, display_name = _command_text(record)
        commands[resolved_command_id(record)] = {
            "Goal": goal,
            "Message": message,
            "Name": name_field(record.id),
            "DisplayName": display_name,
            "Type": COMMAND_TYPE,
        }
    return commands


def merge_achievements(existing: dict[Any, Any], commands: dict[str, dict[str, str]]) -> dict[Any, Any]:
    merged = normalize(existing)
    merged[COMMANDS_KEY] = copy.deepcopy(commands)
    return merged
