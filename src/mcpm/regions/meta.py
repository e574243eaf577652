from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from mcpm.content.hash import file_hash
from mcpm.content.io import load_document_file
from mcpm.errors import ParseError
from mcpm.regions.importer import utc_timestamp
from mcpm.regions.naming import canonical_id
from mcpm.regions.records import (
    VALID_WORLDS,
    ImportedSource,
    LevelledMobsSettings,
    OnboardingConfig,
    RegionRecord,
    RegionSet,
    SpawnCenter,
)


@dataclass(frozen=True)
class RegionsMetaImport:
    world: str
    records: tuple[RegionRecord, ...]
    source: ImportedSource
    spawn_center: SpawnCenter | None = None
    onboarding: OnboardingConfig | None = None
    levelled_mobs: LevelledMobsSettings | None = None


def _region_rows(document: dict[Any, Any], *, world: str, source: str) -> tuple[RegionRecord, ...]:
    rows = document.get("regions")
    if not isinstance(rows, list):
        raise ParseError("regions-meta must contain list field: regions", source=source)

    records: list[RegionRecord] = []
    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            raise ParseError(f"regions[{index}] must be a mapping", source=source)
        row_world = row.get("world", world)
        if row_world != world:
            raise ParseError(f"regions[{index}].world {row_world!r} does not match import world {world!r}", source=source)
        raw_id = row.get("id")
        if not isinstance(raw_id, str) or not raw_id.strip():
            raise ParseError(f"regions[{index}].id must be a non-empty string", source=source)
        try:
            records.append(RegionRecord.from_dict({**row, "world": world, "id": canonical_id(raw_id)}))
        except ValueError as exc:
            raise ParseError(f"regions[{index}]: {exc}", source=source) from exc

    try:
        RegionSet(regions=tuple(records))
    except ValueError as exc:
        raise ParseError(str(exc), source=source) from exc
    return tuple(records)


def import_regions_meta(
    path: str | Path,
    *,
    world: str,
    now: datetime | None = None,
) -> RegionsMetaImport:
    if world not in VALID_WORLDS:
        raise ValueError(f"unsupported world: {world}")
    source_path = Path(path)
    if not source_path.exists():
        raise ValueError(f"regions-meta file does not exist: {source_path}")

    source = str(source_path)
    document = load_document_file(source_path)
    declared_world = document.get("world", world)
    if declared_world != world:
        raise ParseError(f"file declares world {declared_world!r} but was imported as {world!r}", source=source)

    try:
        spawn_center = SpawnCenter.from_dict(document.get("spawn_center"))
        onboarding_payload = document.get("onboarding")
        onboarding = None if onboarding_payload is None else OnboardingConfig.from_dict(onboarding_payload)
        levelled_payload = document.get("levelled_mobs")
        levelled_mobs = None if levelled_payload is None else LevelledMobsSettings.from_dict(levelled_payload)
    except ValueError as exc:
        raise ParseError(str(exc), source=source) from exc

    return RegionsMetaImport(
        world=world,
        records=_region_rows(document, world=world, source=source),
        source=ImportedSource(
            label=world,
            original_filename=source_path.name,
            imported_at_iso=utc_timestamp(now),
            file_hash=file_hash(source_path),
            spawn_center=spawn_center,
        ),
        spawn_center=spawn_center,
        onboarding=onboarding,
        levelled_mobs=levelled_mobs,
    )
