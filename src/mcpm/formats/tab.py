from __future__ import annotations

import copy
from dataclasses import asdict, dataclass
from typing import Any, Iterable

from mcpm.content.documents import DocumentPath, ensure_mapping
from mcpm.errors import MissingStructureError
from mcpm.regions.records import KIND_HEART, KIND_REGION, KIND_VILLAGE, WORLD_NETHER, RegionRecord

FORMAT_NAME = "tab"
FORMAT_LABEL = "TAB"
TEMPLATE_FILENAME = "tab-config.yml"

HEADER_FOOTER_KEY = "header-footer"
SCOREBOARD_KEY = "scoreboard"
SCOREBOARDS_KEY = "scoreboards"
CONDITIONS_KEY = "conditions"

OVERWORLD_SCOREBOARD = "scoreboard-overworld"
NETHER_SCOREBOARD = "scoreboard-nether"

TOP_EXPLORERS_TITLE = "top-explorers-title"
TOP_EXPLORER_RANKS = range(1, 6)
TOP_EXPLORER_KEYS = (TOP_EXPLORERS_TITLE, *(f"top-explorer-{rank}" for rank in TOP_EXPLORER_RANKS))

DIVIDER = "<#FFFFFF>&m                                                </#FFFF00>"
COMPASS_LINE = "&2\U0001f9ed %player_direction%||&7%player_x% %player_y% %player_z%"
ANIMATION_LINE = "%animation:MyAnimation1%"

HEADER_FOOTER_DEFAULTS: dict[str, Any] = {"enabled": True}
SCOREBOARD_DEFAULTS: dict[str, Any] = {
    "enabled": True,
    "toggle-command": "/sb",
    "remember-toggle-choice": False,
    "hidden-by-default": False,
    "use-numbers": True,
    "static-number": 0,
    "delay-on-join-milliseconds": 0,
    "scoreboards": {},
}

# Scoreboard lines reference these; operators may customize them once present.
STATIC_CONDITIONS: dict[str, dict[str, Any]] = {
    "region-name": {
        "conditions": ["%worldguard_region_name_2%!="],
        "type": "AND",
        "yes": "%capitalize_pascal-case-forced_{worldguard_region_name_2}%",
        "no": "%capitalize_pascal-case-forced_{worldguard_region_name_1}%",
    },
    "village-name": {
        "conditions": [
            "%worldguard_region_name_2%!=",
            "%worldguard_region_name_1%!=%worldguard_region_name_2%",
            "%worldguard_region_name_1%!=spawn",
        ],
        "type": "AND",
        "yes": "%condition:heart-region%",
        "no": "-",
    },
    "heart-region": {
        "conditions": ["%worldguard_region_name_1%|-heart"],
        "yes": "-",
        "no": "%capitalize_pascal-case-forced_{worldguard_region_name_1}%",
    },
}


@dataclass(frozen=True)
class RegionCounts:
    overworld_regions: int = 0
    overworld_hearts: int = 0
    nether_regions: int = 0
    nether_hearts: int = 0
    villages: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class TabSections:
    header: list[str]
    footer: list[str]
    scoreboards: dict[str, dict[str, Any]]
    conditions: dict[str, dict[str, Any]]


def compute_region_counts(regions: Iterable[RegionRecord]) -> RegionCounts:
    tally = {field_name: 0 for field_name in RegionCounts.__dataclass_fields__}
    for record in regions:
        if not record.is_active:
            continue
        nether = record.world == WORLD_NETHER
        if record.kind == KIND_VILLAGE:
            tally["villages"] += 1
        elif record.kind == KIND_HEART:
            tally["nether_hearts" if nether else "overworld_hearts"] += 1
        elif record.kind == KIND_REGION:
            tally["nether_regions" if nether else "overworld_regions"] += 1
        tally["total"] += 1
    return RegionCounts(**tally)


def is_owned(path: DocumentPath, value: Any) -> bool:
    if len(path) != 2:
        return False
    section, key = path
    if section == HEADER_FOOTER_KEY:
        return key in {"header", "footer"}
    if section == SCOREBOARD_KEY:
        return key in {SCOREBOARDS_KEY, "enabled"}
    if section == CONDITIONS_KEY:
        return key in TOP_EXPLORER_KEYS
    return False


def _ensure_section(document: dict[Any, Any], key: str, defaults: dict[str, Any]) -> dict[Any, Any]:
    if document.get(key) is None:
        document[key] = copy.deepcopy(defaults)
    section = document[key]
    if not isinstance(section, dict):
        raise MissingStructureError(f"{key} must be a mapping")
    return section


def normalize(document: dict[Any, Any]) -> dict[Any, Any]:
    """Insert default header-footer and scoreboard scaffolding and the static conditions."""
    normalized = copy.deepcopy(document)
    _ensure_section(normalized, HEADER_FOOTER_KEY, HEADER_FOOTER_DEFAULTS)
    _ensure_section(normalized, SCOREBOARD_KEY, SCOREBOARD_DEFAULTS)
    conditions = ensure_mapping(normalized, CONDITIONS_KEY, field_name=CONDITIONS_KEY)
    for key, definition in STATIC_CONDITIONS.items():
        if conditions.get(key) is None:
            conditions[key] = copy.deepcopy(definition)
    return normalized


def _header(server_name: str) -> list[str]:
    return [
        DIVIDER,
        f"&3&l{server_name}",
        "&r&7&l>> %animation:Welcome%&3 &l%player%&7&l! &7&l<<",
        "&r&7Online players: &f%online%",
        "",
    ]


def _footer() -> list[str]:
    return [
        "",
        f"&d%condition:{TOP_EXPLORERS_TITLE}%",
        *(f"&b%condition:top-explorer-{rank}%" for rank in TOP_EXPLORER_RANKS),
        "",
        DIVIDER,
    ]


def _scoreboard(server_name: str, world_name: str, lines: list[str]) -> dict[str, Any]:
    return {
        "title": f"<#E0B11E>{server_name}</#FF0000>",
        "display-condition": f"%player-version-id%>=765;%bedrock%=false;%world%={world_name}",
        "lines": [ANIMATION_LINE, *lines, ANIMATION_LINE, COMPASS_LINE],
    }


def _overworld_scoreboard(server_name: str, counts: RegionCounts) -> dict[str, Any]:
    return _scoreboard(
        server_name,
        "world",
        [
            "&bRegions",
            "&eCurrent&7:||%condition:region-name%",
            f"&eDiscovered&7:||%aach_custom_regions_discovered%/{counts.overworld_regions}",
            "",
            "&bVillages",
            "&eCurrent&7:||%condition:village-name%",
            f"&eDiscovered&7:||%aach_custom_villages_discovered%/{counts.villages}",
            "",
            "&bRegion Hearts",
            f"&eDiscovered&7:||%aach_custom_hearts_discovered%/{counts.overworld_hearts}",
        ],
    )


def _nether_scoreboard(server_name: str, counts: RegionCounts) -> dict[str, Any]:
    return _scoreboard(
        server_name,
        "world_nether",
        [
            "&bNether Regions",
            "&eCurrent&7:||%condition:region-name%",
            f"&eDiscovered&7:||%aach_custom_nether_regions_discovered%/{counts.nether_regions}",
            "",
            "&bNether Region Hearts",
            f"&eDiscovered&7:||%aach_custom_nether_hearts_discovered%/{counts.nether_hearts}",
        ],
    )


def _leaderboard_name(rank: int) -> str:
    return f"%ajlb_lb_aach_custom_total_discovered_{rank}_alltime_name%"


def top_explorer_conditions(total: int) -> dict[str, dict[str, Any]]:
    conditions: dict[str, dict[str, Any]] = {
        TOP_EXPLORERS_TITLE: {
            "conditions": [f"{_leaderboard_name(1)}!="],
            "yes": "TOP EXPLORERS",
            "no": "",
        }
    }
    for rank in TOP_EXPLORER_RANKS:
        # rank 1 is shown whenever it exists; lower ranks hide the leaderboard's "---" filler
        empty_marker = "" if rank == 1 else "---"
        value = f"{{ajlb_lb_aach_custom_total_discovered_{rank}_alltime_value}}"
        conditions[f"top-explorer-{rank}"] = {
            "conditions": [f"{_leaderboard_name(rank)}!={empty_marker}"],
            "yes": f"{rank}. {_leaderboard_name(rank)} - %math_0_round({value}/{total}*100,0)%%",
            "no": "",
        }
    return conditions


def generate_tab_sections(regions: Iterable[RegionRecord], server_name: str) -> TabSections:
    counts = compute_region_counts(regions)
    scoreboards: dict[str, dict[str, Any]] = {}
    if counts.overworld_regions or counts.overworld_hearts or counts.villages:
        scoreboards[OVERWORLD_SCOREBOARD] = _overworld_scoreboard(server_name, counts)
    if counts.nether_regions or counts.nether_hearts:
        scoreboards[NETHER_SCOREBOARD] = _nether_scoreboard(server_name, counts)
    return TabSections(
        header=_header(server_name),
        footer=_footer(),
        scoreboards=scoreboards,
        conditions=top_explorer_conditions(counts.total),
    )


def merge_tab(existing: dict[Any, Any], sections: TabSections) -> dict[Any, Any]:
    merged = normalize(existing)

    header_footer = merged[HEADER_FOOTER_KEY]
    header_footer["header"] = list(sections.header)
    header_footer["footer"] = list(sections.footer)

    scoreboard = merged[SCOREBOARD_KEY]
    scoreboard["enabled"] = True
    scoreboard[SCOREBOARDS_KEY] = {key: copy.deepcopy(sections.scoreboards[key]) for key in sorted(sections.scoreboards)}

    preserved = {key: value for key, value in merged[CONDITIONS_KEY].items() if key not in TOP_EXPLORER_KEYS}
    owned = {key: copy.deepcopy(sections.conditions[key]) for key in sorted(sections.conditions)}
    merged[CONDITIONS_KEY] = {**preserved, **owned}
    return merged
