from __future__ import annotations

import copy
import re
from typing import Any, Iterable

from mcpm.content.documents import DocumentPath, ensure_sequence
from mcpm.regions.naming import resolved_display_title
from mcpm.regions.records import (
    KIND_HEART,
    KIND_REGION,
    KIND_VILLAGE,
    WORLD_END,
    WORLD_NETHER,
    LevelledMobsSettings,
    RegionRecord,
)

FORMAT_NAME = "lm"
FORMAT_LABEL = "LevelledMobs"
TEMPLATE_FILENAME = "levelledmobs-rules.yml"
RULES_KEY = "custom-rules"
REGIONS_CONDITION = "worldguard-regions"

LEVELS = ("easy", "normal", "hard", "severe", "deadly")
DEFAULT_VILLAGE_LEVEL = "easy"
DEFAULT_REGION_LEVEL = "normal"
PRESET_PREFIX = "lvlstrategy-"
PRESET_PATTERN = re.compile(rf"^{PRESET_PREFIX}(?:{'|'.join(LEVELS)})$")

LM_WORLD_NAMES = {WORLD_NETHER: "world_nether", WORLD_END: "world_the_end"}
DEFAULT_LM_WORLD = "world"


def resolve_level(value: str | None, default: str) -> str:
    if value is None:
        return default
    level = value.strip().lower()
    return level if level in LEVELS else default


def preset_name(level: str) -> str:
    return f"{PRESET_PREFIX}{level}"


def is_owned_rule(rule: Any) -> bool:
    # recognized by shape: a villages list, or one region paired with an lvlstrategy preset
    if not isinstance(rule, dict):
        return False
    conditions = rule.get("conditions")
    if not isinstance(conditions, dict):
        return False
    regions = conditions.get(REGIONS_CONDITION)
    if isinstance(regions, list):
        return True
    if isinstance(regions, str) and regions:
        preset = rule.get("use-preset")
        return isinstance(preset, str) and PRESET_PATTERN.match(preset) is not None
    return False


def is_owned(path: DocumentPath, value: Any) -> bool:
    return len(path) == 2 and path[0] == RULES_KEY and isinstance(path[1], int) and is_owned_rule(value)


def normalize(document: dict[Any, Any]) -> dict[Any, Any]:
    normalized = copy.deepcopy(document)
    ensure_sequence(normalized, RULES_KEY, field_name=RULES_KEY)
    return normalized


def _villages_rule(village_ids: list[str], level: str) -> dict[str, Any]:
    return {
        "custom-rule": f"Villages - {level.capitalize()} Band",
        "is-enabled": True,
        "use-preset": preset_name(level),
        "conditions": {
            "worlds": DEFAULT_LM_WORLD,
            "entities": {"included-groups": ["all_hostile_mobs"]},
            REGIONS_CONDITION: village_ids,
        },
    }


def _band_rule(record: RegionRecord, level: str) -> dict[str, Any]:
    return {
        "custom-rule": f"{resolved_display_title(record)} - {level.capitalize()}",
        "is-enabled": True,
        "use-preset": preset_name(level),
        "conditions": {
            "worlds": LM_WORLD_NAMES.get(record.world, DEFAULT_LM_WORLD),
            REGIONS_CONDITION: record.id,
        },
    }


def generate_rules(
    regions: Iterable[RegionRecord],
    settings: LevelledMobsSettings | None = None,
) -> list[dict[str, Any]]:
    """Villages rule first (when any village is active), then band rules sorted by name."""
    settings = settings or LevelledMobsSettings()
    active = [record for record in regions if record.is_active]

    rules: list[dict[str, Any]] = []
    village_ids = sorted({record.id for record in active if record.kind == KIND_VILLAGE})
    if village_ids:
        rules.append(_villages_rule(village_ids, resolve_level(settings.village_band_strategy, DEFAULT_VILLAGE_LEVEL)))

    bands = [
        _band_rule(record, resolve_level(settings.region_bands.get(record.id), DEFAULT_REGION_LEVEL))
        for record in active
        if record.kind in {KIND_REGION, KIND_HEART}
    ]
    bands.sort(key=lambda rule: (rule["custom-rule"], rule["conditions"]["worlds"], rule["conditions"][REGIONS_CONDITION]))
    rules.extend(bands)
    return rules


def merge_rules(existing: dict[Any, Any], rules: list[dict[str, Any]]) -> dict[Any, Any]:
    merged = normalize(existing)
    preserved = [rule for rule in merged[RULES_KEY] if not is_owned_rule(rule)]
    merged[RULES_KEY] = preserved + copy.deepcopy(rules)
    return merged
