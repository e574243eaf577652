from __future__ import annotations

import logging
import math
from typing import Any

from mcpm.content.io import load_document
from mcpm.errors import ParseError
from mcpm.regions.naming import canonical_id, is_heart_id
from mcpm.regions.records import (
    KIND_HEART,
    KIND_REGION,
    KIND_SYSTEM,
    KIND_VILLAGE,
    METHOD_DISABLED,
    METHOD_FIRST_JOIN,
    METHOD_ON_ENTER,
    RECIPE_HEART,
    RECIPE_NETHER_HEART,
    RECIPE_NETHER_REGION,
    RECIPE_NONE,
    RECIPE_REGION,
    SPAWN_REGION_ID,
    WORLD_OVERWORLD,
    DiscoverSpec,
    OnboardingConfig,
    RegionRecord,
    RegionSet,
    SpawnCenter,
)

logger = logging.getLogger(__name__)

VILLAGE_MARKER = "village"
CUBOID_SHAPE = "cuboid"
DEFAULT_WORLD_NAME = "world"


def parse_region_export(text: str, *, source: str | None = None) -> dict[str, dict[str, Any]]:
    """Parse a Region Forge export into ``{region_id: region_data}``."""
    document = load_document(text, source=source)
    regions = document.get("regions")
    if not isinstance(regions, dict):
        raise ParseError('invalid Region Forge export: missing "regions" mapping', source=source)

    normalized: dict[str, dict[str, Any]] = {}
    for raw_id, region_data in regions.items():
        if not isinstance(raw_id, str) or not raw_id.strip():
            raise ParseError(f"region ids must be non-empty strings, found {raw_id!r}", source=source)
        if region_data is None:
            region_data = {}
        if not isinstance(region_data, dict):
            raise ParseError(f"regions.{raw_id} must be a mapping", source=source)
        normalized[raw_id] = region_data
    return normalized


def _world_recipe(world: str, *, overworld: str, other: str) -> str:
    return overworld if world == WORLD_OVERWORLD else other


def _greeting(region_data: dict[str, Any]) -> str:
    flags = region_data.get("flags")
    if not isinstance(flags, dict):
        return ""
    greeting = flags.get("greeting")
    return "" if greeting is None else str(greeting)


def classify_region(
    region_id: str,
    region_data: dict[str, Any],
    *,
    world: str,
    onboarding: OnboardingConfig,
    allow_first_join: bool = True,
) -> RegionRecord:
    """Classify one exported region; the first matching rule wins."""
    region = canonical_id(region_id)

    if region == SPAWN_REGION_ID:
        return RegionRecord(
            world=world,
            id=region,
            kind=KIND_SYSTEM,
            discover=DiscoverSpec(method=METHOD_DISABLED, recipe_id=RECIPE_NONE),
        )

    if is_heart_id(region):
        return RegionRecord(
            world=world,
            id=region,
            kind=KIND_HEART,
            discover=DiscoverSpec(
                method=METHOD_ON_ENTER,
                recipe_id=_world_recipe(world, overworld=RECIPE_HEART, other=RECIPE_NETHER_HEART),
            ),
        )

    region_recipe = _world_recipe(world, overworld=RECIPE_REGION, other=RECIPE_NETHER_REGION)
    start_region = canonical_id(onboarding.start_region_id)
    if allow_first_join and start_region and region == start_region:
        return RegionRecord(
            world=world,
            id=region,
            kind=KIND_REGION,
            discover=DiscoverSpec(method=METHOD_FIRST_JOIN, recipe_id=region_recipe),
        )

    kind = KIND_VILLAGE if VILLAGE_MARKER in _greeting(region_data).lower() else KIND_REGION
    return RegionRecord(
        world=world,
        id=region,
        kind=kind,
        discover=DiscoverSpec(method=METHOD_ON_ENTER, recipe_id=region_recipe),
    )


def classify_export(
    regions: dict[str, dict[str, Any]],
    *,
    world: str,
    existing: RegionSet,
    onboarding: OnboardingConfig,
) -> RegionSet:
    """Classify ``regions`` for ``world`` and swap them into ``existing``."""
    first_join_elsewhere = any(
        record.world != world and record.discover.method == METHOD_FIRST_JOIN for record in existing
    )
    if first_join_elsewhere:
        logger.info("first_join region already assigned outside %s; start region rule skipped", world)

    records = [
        classify_region(
            region_id,
            region_data,
            world=world,
            onboarding=onboarding,
            allow_first_join=not first_join_elsewhere,
        )
        for region_id, region_data in regions.items()
    ]
    return existing.replace_world(world, records)


def _corner(region_data: dict[str, Any], name: str) -> tuple[int | float, int | float] | None:
    corner = region_data.get(name)
    if not isinstance(corner, dict):
        return None
    x, z = corner.get("x"), corner.get("z")
    for value in (x, z):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
    return x, z


def spawn_center_hint(
    regions: dict[str, dict[str, Any]],
    *,
    world_name: str = DEFAULT_WORLD_NAME,
) -> SpawnCenter | None:
    spawn = next((data for region_id, data in regions.items() if canonical_id(region_id) == SPAWN_REGION_ID), None)
    if spawn is None or spawn.get("type") != CUBOID_SHAPE:
        return None
    low, high = _corner(spawn, "min"), _corner(spawn, "max")
    if low is None or high is None:
        return None
    return SpawnCenter(
        world=world_name,
        x=math.floor((low[0] + high[0]) / 2),
        z=math.floor((low[1] + high[1]) / 2),
    )
