from __future__ import annotations

import pytest

from mcpm.regions.records import (
    DiscoverSpec,
    LevelledMobsSettings,
    OnboardingConfig,
    RegionRecord,
    RegionSet,
)


def _record(world: str, region_id: str, kind: str = "region", method: str = "on_enter") -> RegionRecord:
    recipe = "none" if method == "disabled" else "region"
    return RegionRecord(world=world, id=region_id, kind=kind, discover=DiscoverSpec(method=method, recipe_id=recipe))


def test_region_set_rejects_duplicate_world_and_id() -> None:
    with pytest.raises(ValueError, match="duplicate region overworld:cherrybrook"):
        RegionSet(regions=(_record("overworld", "cherrybrook"), _record("overworld", "cherrybrook")))


def test_region_set_allows_same_id_in_different_worlds() -> None:
    regions = RegionSet(regions=(_record("overworld", "ashen"), _record("nether", "ashen")))
    assert len(regions) == 2


def test_region_set_rejects_second_first_join_region() -> None:
    with pytest.raises(ValueError, match="at most one first_join region"):
        RegionSet(
            regions=(
                _record("overworld", "cherrybrook", method="first_join"),
                _record("nether", "ashen", method="first_join"),
            )
        )


def test_spawn_region_must_be_system() -> None:
    with pytest.raises(ValueError, match="spawn region must have kind system"):
        _record("overworld", "spawn", kind="region")


def test_region_id_must_be_lowercase() -> None:
    with pytest.raises(ValueError, match="must be lowercase"):
        _record("overworld", "Cherrybrook")


def test_unknown_discover_method_is_rejected() -> None:
    with pytest.raises(ValueError, match="discover.method must be one of"):
        DiscoverSpec(method="sometimes", recipe_id="region")


def test_replace_world_leaves_other_worlds_untouched() -> None:
    regions = RegionSet(regions=(_record("overworld", "cherrybrook"), _record("nether", "ashen")))

    replaced = regions.replace_world("overworld", [_record("overworld", "north_watch")])

    assert [record.key for record in replaced] == [("nether", "ashen"), ("overworld", "north_watch")]
    assert [record.key for record in regions] == [("overworld", "cherrybrook"), ("nether", "ashen")]


def test_replace_world_rejects_foreign_records() -> None:
    with pytest.raises(ValueError, match="does not belong to world overworld"):
        RegionSet().replace_world("overworld", [_record("nether", "ashen")])


def test_active_excludes_disabled_regions() -> None:
    regions = RegionSet(
        regions=(
            RegionRecord(
                world="overworld", id="spawn", kind="system", discover=DiscoverSpec(method="disabled", recipe_id="none")
            ),
            _record("overworld", "cherrybrook"),
        )
    )
    assert [record.id for record in regions.active()] == ["cherrybrook"]


def test_with_overrides_returns_new_set() -> None:
    regions = RegionSet(regions=(_record("overworld", "cherrybrook"),))

    updated = regions.with_overrides(
        "overworld",
        "cherrybrook",
        display_name_override="Cherry Brook",
        description="A quiet valley.",
        lore_book_anchors=["valley."],
    )

    record = updated.get("overworld", "cherrybrook")
    assert record is not None
    assert record.discover.display_name_override == "Cherry Brook"
    assert record.description == "A quiet valley."
    assert record.lore_book_anchors == ("valley.",)
    assert regions.get("overworld", "cherrybrook").description is None


def test_with_overrides_rejects_unknown_region() -> None:
    with pytest.raises(ValueError, match="unknown region overworld:missing"):
        RegionSet().with_overrides("overworld", "missing", description="x")


def test_region_set_list_round_trip_preserves_records() -> None:
    regions = RegionSet(
        regions=(
            _record("overworld", "cherrybrook"),
            RegionRecord(
                world="nether",
                id="heart_of_ashen",
                kind="heart",
                discover=DiscoverSpec(method="on_enter", recipe_id="nether_heart", command_id_override="discoverAsh"),
                description="Embers.",
                lore_book_anchors=("Embers.",),
            ),
        )
    )
    assert RegionSet.from_list(regions.to_list()) == regions


def test_onboarding_defaults_when_missing() -> None:
    onboarding = OnboardingConfig.from_dict(None)
    assert onboarding.start_region_id == ""
    assert onboarding.teleport.y is None


def test_levelled_mobs_settings_merge_is_key_by_key() -> None:
    base = LevelledMobsSettings(village_band_strategy="easy", region_bands={"a": "hard", "b": "easy"})
    incoming = LevelledMobsSettings(village_band_strategy=None, region_bands={"b": "deadly"})

    merged = base.merged_with(incoming)

    assert merged.village_band_strategy == "easy"
    assert merged.region_bands == {"a": "hard", "b": "deadly"}
