from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from pathlib import Path

import pytest

from mcpm.errors import ParseError
from mcpm.regions.importer import import_region_file, world_name_from_path
from mcpm.regions.meta import import_regions_meta
from mcpm.regions.records import OnboardingConfig, RegionSet, SpawnCenter

FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)

EXPORT = """regions:
  spawn:
    type: cuboid
    min: {x: 0, y: 0, z: 0}
    max: {x: 10, y: 255, z: 20}
  cherrybrook:
    flags:
      greeting: Welcome to the Village of Cherrybrook
  heart_of_cherrybrook: {}
"""

META = """world: overworld
spawn_center: {world: world, x: 10, z: -4}
onboarding:
  start_region_id: cherrybrook
  teleport: {world: world, x: 10, z: -4, yaw: 90, pitch: 0}
levelled_mobs:
  village_band_strategy: hard
  region_bands: {Cherrybrook: severe}
regions:
- id: Cherrybrook
  kind: region
  discover: {method: first_join, recipe_id: region}
  description: A quiet valley.
  lore_book_anchors: [valley.]
- id: spawn
  kind: system
  discover: {method: disabled, recipe_id: none}
"""


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_world_name_from_path() -> None:
    assert world_name_from_path("/srv/mc/worlds/survival/regions.yml") == "survival"
    assert world_name_from_path("/tmp/regions.yml") == "world"
    assert world_name_from_path("/srv/worlds/regions.yml") == "world"


def test_import_region_file_records_provenance(tmp_path: Path) -> None:
    path = _write(tmp_path / "worlds" / "survival" / "regions.yml", EXPORT)

    result = import_region_file(path, world="overworld", existing=RegionSet(), onboarding=OnboardingConfig(), now=FIXED_NOW)

    assert result.world_region_count == 3
    assert result.source.original_filename == "regions.yml"
    assert result.source.imported_at_iso == "2026-01-02T03:04:05+00:00"
    assert result.source.file_hash == hashlib.sha256(path.read_bytes()).hexdigest()[:16]
    assert result.spawn_center == SpawnCenter(world="survival", x=5, z=10)
    assert result.regions.get("overworld", "cherrybrook").kind == "village"


def test_import_region_file_rejects_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="region export does not exist"):
        import_region_file(tmp_path / "nope.yml", world="overworld", existing=RegionSet(), onboarding=OnboardingConfig())


def test_import_region_file_rejects_unknown_world(tmp_path: Path) -> None:
    path = _write(tmp_path / "regions.yml", EXPORT)
    with pytest.raises(ValueError, match="unsupported world: moon"):
        import_region_file(path, world="moon", existing=RegionSet(), onboarding=OnboardingConfig())


def test_import_regions_meta_reads_profile_settings(tmp_path: Path) -> None:
    path = _write(tmp_path / "regions-meta.yml", META)

    result = import_regions_meta(path, world="overworld", now=FIXED_NOW)

    assert [record.id for record in result.records] == ["cherrybrook", "spawn"]
    start = result.records[0]
    assert start.discover.method == "first_join"
    assert start.lore_book_anchors == ("valley.",)
    assert result.spawn_center == SpawnCenter(world="world", x=10, z=-4)
    assert result.onboarding.start_region_id == "cherrybrook"
    assert result.onboarding.teleport.y is None
    assert result.levelled_mobs.village_band_strategy == "hard"
    assert result.levelled_mobs.region_bands == {"cherrybrook": "severe"}


def test_import_regions_meta_rejects_world_mismatch(tmp_path: Path) -> None:
    path = _write(tmp_path / "regions-meta.yml", META)
    with pytest.raises(ParseError, match="declares world 'overworld'"):
        import_regions_meta(path, world="nether")


def test_import_regions_meta_rejects_invalid_record(tmp_path: Path) -> None:
    path = _write(
        tmp_path / "regions-meta.yml",
        "regions:\n- id: spawn\n  kind: region\n  discover: {method: on_enter, recipe_id: region}\n",
    )
    with pytest.raises(ParseError, match=r"regions\[0\]: spawn region must have kind system"):
        import_regions_meta(path, world="overworld")


def test_import_regions_meta_requires_regions_list(tmp_path: Path) -> None:
    path = _write(tmp_path / "regions-meta.yml", "world: overworld\n")
    with pytest.raises(ParseError, match="list field: regions"):
        import_regions_meta(path, world="overworld")
