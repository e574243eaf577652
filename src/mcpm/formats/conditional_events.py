from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Iterable

from mcpm.content.documents import DocumentPath, ensure_mapping, replace_tokens
from mcpm.regions.naming import canonical_id, command_id, resolved_command_id, resolved_display_title, title_case
from mcpm.regions.records import (
    DEFAULT_TELEPORT_Y,
    KIND_HEART,
    KIND_REGION,
    KIND_VILLAGE,
    METHOD_FIRST_JOIN,
    METHOD_ON_ENTER,
    WORLD_NETHER,
    WORLD_OVERWORLD,
    OnboardingConfig,
    RegionRecord,
    Teleport,
)

FORMAT_NAME = "ce"
FORMAT_LABEL = "ConditionalEvents"
TEMPLATE_FILENAME = "conditionalevents-config.yml"
EVENTS_KEY = "Events"
FIRST_JOIN_KEY = "first_join"
HEART_TIP_KEY = "region_heart_discover_once"
DISCOVER_ONCE_SUFFIX = "_discover_once"

SERVER_NAME_TOKEN = "{SERVER_NAME}"
START_REGION_TOKEN = "{START_REGION_AACH}"

REGION_ENTER_EVENT = "wgevents_region_enter"
PLAYER_JOIN_EVENT = "player_join"
DISCOVERY_DELAY = "wait: 5"


@dataclass(frozen=True)
class DiscoveryRecipe:
    counters: tuple[str, ...]
    crate: str | None


NO_REWARD = DiscoveryRecipe(counters=(), crate=None)

# (kind, in_nether) -> progress counters and reward crate
DISCOVERY_RECIPES: dict[tuple[str, bool], DiscoveryRecipe] = {
    (KIND_VILLAGE, False): DiscoveryRecipe(
        counters=("Custom.villages_discovered", "Custom.total_discovered"), crate="VillageCrate"
    ),
    (KIND_VILLAGE, True): DiscoveryRecipe(
        counters=("Custom.villages_discovered", "Custom.total_discovered"), crate="VillageCrate"
    ),
    (KIND_HEART, False): DiscoveryRecipe(counters=("Custom.hearts_discovered",), crate="HeartCrate"),
    (KIND_HEART, True): DiscoveryRecipe(counters=("Custom.nether_hearts_discovered",), crate="HeartCrate"),
    (KIND_REGION, False): DiscoveryRecipe(
        counters=("Custom.regions_discovered", "Custom.total_discovered"), crate="RegionCrate"
    ),
    (KIND_REGION, True): DiscoveryRecipe(
        counters=("Custom.nether_regions_discovered", "Custom.total_discovered"), crate="RegionCrate"
    ),
}

HEART_TIP_MESSAGES = (
    "message: &7Region hearts have an unbreakable lodestone",
    "message: &dBind a compass to it to always find this region again",
)


def is_owned_event_key(key: Any) -> bool:
    if not isinstance(key, str):
        return False
    return key in {FIRST_JOIN_KEY, HEART_TIP_KEY} or key.endswith(DISCOVER_ONCE_SUFFIX)


def is_owned(path: DocumentPath, value: Any) -> bool:
    return len(path) == 2 and path[0] == EVENTS_KEY and is_owned_event_key(path[1])


def normalize(document: dict[Any, Any]) -> dict[Any, Any]:
    normalized = copy.deepcopy(document)
    ensure_mapping(normalized, EVENTS_KEY, field_name=EVENTS_KEY)
    return normalized


def recipe_for(record: RegionRecord) -> DiscoveryRecipe:
    return DISCOVERY_RECIPES.get((record.kind, record.world == WORLD_NETHER), NO_REWARD)


def _reward_actions(command: str, recipe: DiscoveryRecipe) -> list[str]:
    actions = [f"console_command: aach give {command} %player%"]
    actions.extend(f"console_command: aach add 1 {counter} %player%" for counter in recipe.counters)
    if recipe.crate:
        actions.append(f"console_command: cc give virtual {recipe.crate} 1 %player%")
    return actions


def _coordinate(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def teleport_command(teleport: Teleport) -> str:
    y = DEFAULT_TELEPORT_Y if teleport.y is None else teleport.y
    command = f"console_command: tp %player% {_coordinate(teleport.x)} {_coordinate(y)} {_coordinate(teleport.z)}"
    if teleport.yaw is not None and teleport.pitch is not None:
        command += f" {_coordinate(teleport.yaw)} {_coordinate(teleport.pitch)}"
    return command


def start_region_record(regions: Iterable[RegionRecord], onboarding: OnboardingConfig) -> RegionRecord | None:
    start_id = canonical_id(onboarding.start_region_id)
    if not start_id:
        return None
    candidates = [record for record in regions if record.id == start_id]
    for preferred in (
        lambda record: record.discover.method == METHOD_FIRST_JOIN,
        lambda record: record.world == WORLD_OVERWORLD,
        lambda record: True,
    ):
        for record in candidates:
            if preferred(record):
                return record
    return None


def start_region_command_id(regions: Iterable[RegionRecord], onboarding: OnboardingConfig) -> str:
    record = start_region_record(regions, onboarding)
    if record is not None:
        return resolved_command_id(record)
    return command_id(canonical_id(onboarding.start_region_id))


def _first_join_event(
    regions: tuple[RegionRecord, ...], onboarding: OnboardingConfig, server_name: str
) -> dict[str, Any]:
    record = start_region_record(regions, onboarding)
    start_id = canonical_id(onboarding.start_region_id)
    title = resolved_display_title(record) if record is not None else title_case(start_id)
    recipe = recipe_for(record) if record is not None else DISCOVERY_RECIPES[(KIND_REGION, False)]
    actions = [
        teleport_command(onboarding.teleport),
        "wait: 2",
        f"title: 20;60;20;&3Welcome to {server_name};&7You arrived in {title}",
        f"message: &7Welcome to &3{server_name}&7, &f%player%&7!",
        DISCOVERY_DELAY,
        *_reward_actions(start_region_command_id(regions, onboarding), recipe),
    ]
    return {
        "type": PLAYER_JOIN_EVENT,
        "one_time": True,
        "actions": {"default": actions},
    }


def _heart_tip_event() -> dict[str, Any]:
    return {
        "type": REGION_ENTER_EVENT,
        "one_time": True,
        "conditions": ["%region% startsWith heart"],
        "actions": {"default": list(HEART_TIP_MESSAGES)},
    }


def _discover_once_event(record: RegionRecord) -> dict[str, Any]:
    return {
        "type": REGION_ENTER_EVENT,
        "one_time": True,
        "conditions": [f"%region% == {record.id}"],
        "actions": {"default": [DISCOVERY_DELAY, *_reward_actions(resolved_command_id(record), recipe_for(record))]},
    }


def generate_events(
    regions: Iterable[RegionRecord], onboarding: OnboardingConfig, server_name: str = ""
) -> dict[str, dict[str, Any]]:
    """Owned events in emission order: first_join, heart tip, then sorted discover-once events."""
    records = tuple(regions)
    start_id = canonical_id(onboarding.start_region_id)
    events: dict[str, dict[str, Any]] = {}
    if start_id:
        events[FIRST_JOIN_KEY] = _first_join_event(records, onboarding, server_name)
    events[HEART_TIP_KEY] = _heart_tip_event()

    discover_once = sorted(
        (
            (f"{record.id}{DISCOVER_ONCE_SUFFIX}", record)
            for record in records
            if record.discover.method == METHOD_ON_ENTER and record.id != start_id
        ),
        key=lambda item: (item[0], item[1].world),
    )
    for key, record in discover_once:
        # the same id in two worlds shares one region-enter event; the first world wins
        events.setdefault(key, _discover_once_event(record))
    return events


def merge_events(existing: dict[Any, Any], owned: dict[str, dict[str, Any]]) -> dict[Any, Any]:
    merged = normalize(existing)
    preserved = {key: value for key, value in merged[EVENTS_KEY].items() if not is_owned_event_key(key)}
    merged[EVENTS_KEY] = {**copy.deepcopy(owned), **preserved}
    return merged


def substitute_placeholders(document: dict[Any, Any], *, server_name: str, start_command_id: str) -> dict[Any, Any]:
    # parsed strings only; serialized text is never patched
    return replace_tokens(document, {SERVER_NAME_TOKEN: server_name, START_REGION_TOKEN: start_command_id})
