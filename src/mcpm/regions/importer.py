from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from mcpm.content.hash import file_hash
from mcpm.errors import ParseError
from mcpm.regions.classify import DEFAULT_WORLD_NAME, classify_export, parse_region_export, spawn_center_hint
from mcpm.regions.records import VALID_WORLDS, ImportedSource, OnboardingConfig, RegionSet, SpawnCenter

logger = logging.getLogger(__name__)

WORLDS_DIRECTORY_NAME = "worlds"


@dataclass(frozen=True)
class RegionImport:
    world: str
    regions: RegionSet
    source: ImportedSource
    spawn_center: SpawnCenter | None

    @property
    def world_region_count(self) -> int:
        return len(self.regions.for_world(self.world))


def world_name_from_path(path: str | Path) -> str:
    """Server world folder for ``.../worlds/<name>/regions.yml``, else ``world``."""
    parts = Path(path).parts
    for index, part in enumerate(parts[:-1]):
        if part == WORLDS_DIRECTORY_NAME and index + 1 < len(parts) - 1:
            return parts[index + 1]
    return DEFAULT_WORLD_NAME


def utc_timestamp(now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    return moment.isoformat()


def import_region_file(
    path: str | Path,
    *,
    world: str,
    existing: RegionSet,
    onboarding: OnboardingConfig,
    now: datetime | None = None,
) -> RegionImport:
    if world not in VALID_WORLDS:
        raise ValueError(f"unsupported world: {world}")
    source_path = Path(path)
    if not source_path.exists():
        raise ValueError(f"region export does not exist: {source_path}")

    try:
        text = source_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError("file is not valid UTF-8", source=str(source_path)) from exc
    exported = parse_region_export(text, source=str(source_path))

    regions = classify_export(exported, world=world, existing=existing, onboarding=onboarding)
    spawn_center = spawn_center_hint(exported, world_name=world_name_from_path(source_path))
    source = ImportedSource(
        label=world,
        original_filename=source_path.name,
        imported_at_iso=utc_timestamp(now),
        file_hash=file_hash(source_path),
        spawn_center=spawn_center,
    )
    result = RegionImport(world=world, regions=regions, source=source, spawn_center=spawn_center)
    logger.info(
        "imported %d %s regions from %s (hash=%s)",
        result.world_region_count,
        world,
        source_path.name,
        source.file_hash,
    )
    return result
