from __future__ import annotations

import pytest

from mcpm.formats.conditional_events import (
    generate_events,
    is_owned,
    merge_events,
    start_region_command_id,
    substitute_placeholders,
    teleport_command,
)
from mcpm.regions.records import DiscoverSpec, OnboardingConfig, RegionRecord, Teleport


def _record(world: str, region_id: str, kind: str, method: str = "on_enter") -> RegionRecord:
    recipe = "none" if method == "disabled" else "region"
    return RegionRecord(world=world, id=region_id, kind=kind, discover=DiscoverSpec(method=method, recipe_id=recipe))


REGIONS = (
    _record("overworld", "spawn", "system", method="disabled"),
    _record("overworld", "north_watch", "region", method="first_join"),
    _record("overworld", "cherrybrook", "village"),
    _record("overworld", "heart_of_cherrybrook", "heart"),
    _record("nether", "ashen", "region"),
    _record("nether", "heart_of_ashen", "heart"),
)
ONBOARDING = OnboardingConfig(
    start_region_id="north_watch",
    teleport=Teleport(world="world", x=100, z=-20.0, yaw=90, pitch=0),
)


def test_generate_events_order_and_keys() -> None:
    events = generate_events(REGIONS, ONBOARDING)

    assert list(events) == [
        "first_join",
        "region_heart_discover_once",
        "ashen_discover_once",
        "cherrybrook_discover_once",
        "heart_of_ashen_discover_once",
        "heart_of_cherrybrook_discover_once",
    ]


def test_every_generated_event_is_owned() -> None:
    for key, value in generate_events(REGIONS, ONBOARDING).items():
        assert is_owned(("Events", key), value)


def test_ownership_predicate_ignores_other_paths() -> None:
    assert not is_owned(("Events", "join_welcome_back"), {})
    assert not is_owned(("Config", "first_join"), {})
    assert not is_owned(("Events", "first_join", "type"), "player_join")


@pytest.mark.parametrize(
    ("key", "counters", "crate"),
    [
        ("cherrybrook_discover_once", ["villages_discovered", "total_discovered"], "VillageCrate"),
        ("heart_of_cherrybrook_discover_once", ["hearts_discovered"], "HeartCrate"),
        ("heart_of_ashen_discover_once", ["nether_hearts_discovered"], "HeartCrate"),
        ("ashen_discover_once", ["nether_regions_discovered", "total_discovered"], "RegionCrate"),
    ],
)
def test_discover_once_recipes(key: str, counters: list[str], crate: str) -> None:
    event = generate_events(REGIONS, ONBOARDING)[key]
    actions = event["actions"]["default"]

    assert event["type"] == "wgevents_region_enter"
    assert event["one_time"] is True
    assert actions[0] == "wait: 5"
    assert actions[2:-1] == [f"console_command: aach add 1 Custom.{counter} %player%" for counter in counters]
    assert actions[-1] == f"console_command: cc give virtual {crate} 1 %player%"


def test_discover_once_condition_and_command() -> None:
    event = generate_events(REGIONS, ONBOARDING)["heart_of_cherrybrook_discover_once"]
    assert event["conditions"] == ["%region% == heart_of_cherrybrook"]
    assert event["actions"]["default"][1] == "console_command: aach give discoverHeartOfCherrybrook %player%"


def test_first_join_teleports_and_grants_start_region() -> None:
    actions = generate_events(REGIONS, ONBOARDING, "Mor'gath Realm")["first_join"]["actions"]["default"]

    assert actions[0] == "console_command: tp %player% 100 64 -20 90 0"
    assert "message: &7Welcome to &3Mor'gath Realm&7, &f%player%&7!" in actions
    assert not any("{SERVER_NAME}" in action for action in actions)
    assert "console_command: aach give discoverNorthWatch %player%" in actions
    assert actions[-1] == "console_command: cc give virtual RegionCrate 1 %player%"


def test_no_first_join_without_start_region() -> None:
    events = generate_events(REGIONS[2:], OnboardingConfig())
    assert "first_join" not in events
    assert "region_heart_discover_once" in events


def test_start_region_is_excluded_from_discover_once() -> None:
    regions = (_record("overworld", "cherrybrook", "region"), _record("nether", "ashen", "region"))
    events = generate_events(regions, OnboardingConfig(start_region_id="cherrybrook"))
    assert "cherrybrook_discover_once" not in events
    assert "ashen_discover_once" in events


def test_teleport_command_omits_partial_rotation() -> None:
    assert teleport_command(Teleport(world="", x=1.5, z=2, yaw=10)) == "console_command: tp %player% 1.5 64 2"
    assert teleport_command(Teleport(world="", x=0, z=0, y=70)) == "console_command: tp %player% 0 70 0"


def test_start_region_command_id_prefers_override_and_falls_back_to_derivation() -> None:
    record = RegionRecord(
        world="overworld",
        id="north_watch",
        kind="region",
        discover=DiscoverSpec(method="first_join", recipe_id="region", command_id_override="discoverNW"),
    )
    assert start_region_command_id([record], OnboardingConfig(start_region_id="north_watch")) == "discoverNW"
    assert start_region_command_id([], OnboardingConfig(start_region_id="old_town")) == "discoverOldTown"


def test_merge_puts_owned_events_first_and_preserves_the_rest() -> None:
    existing = {
        "Config": {"debug_actions": False},
        "Events": {
            "join_welcome_back": {"type": "player_join"},
            "stale_discover_once": {"type": "wgevents_region_enter"},
            "first_join": {"type": "player_join"},
        },
    }

    merged = merge_events(existing, generate_events(REGIONS, ONBOARDING))

    keys = list(merged["Events"])
    assert keys[0] == "first_join"
    assert keys[-1] == "join_welcome_back"
    assert "stale_discover_once" not in keys
    assert merged["Config"] == {"debug_actions": False}
    assert "stale_discover_once" in existing["Events"]


def test_merge_creates_events_section() -> None:
    merged = merge_events({"Config": {}}, {})
    assert merged == {"Config": {}, "Events": {}}


def test_substitute_placeholders_replaces_inside_keys_and_values() -> None:
    document = {
        "Events": {
            "welcome": {"actions": {"default": ["message: {SERVER_NAME} {START_REGION_AACH} {SERVER_NAME}"]}},
            "{SERVER_NAME}_tour": {"one_time": True},
        }
    }

    substituted = substitute_placeholders(document, server_name="Mor'gath", start_command_id="discoverX")

    assert substituted["Events"]["welcome"]["actions"]["default"] == ["message: Mor'gath discoverX Mor'gath"]
    assert substituted["Events"]["Mor'gath_tour"] == {"one_time": True}
    assert "{SERVER_NAME}_tour" in document["Events"]
