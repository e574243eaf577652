from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable

WORLD_OVERWORLD = "overworld"
WORLD_NETHER = "nether"
WORLD_END = "end"
VALID_WORLDS = (WORLD_OVERWORLD, WORLD_NETHER, WORLD_END)

KIND_SYSTEM = "system"
KIND_REGION = "region"
KIND_VILLAGE = "village"
KIND_HEART = "heart"
VALID_KINDS = {KIND_SYSTEM, KIND_REGION, KIND_VILLAGE, KIND_HEART}

METHOD_DISABLED = "disabled"
METHOD_ON_ENTER = "on_enter"
METHOD_FIRST_JOIN = "first_join"
VALID_METHODS = {METHOD_DISABLED, METHOD_ON_ENTER, METHOD_FIRST_JOIN}

RECIPE_REGION = "region"
RECIPE_HEART = "heart"
RECIPE_NETHER_REGION = "nether_region"
RECIPE_NETHER_HEART = "nether_heart"
RECIPE_VILLAGE = "village"
RECIPE_NONE = "none"
VALID_RECIPES = {
    RECIPE_REGION,
    RECIPE_HEART,
    RECIPE_NETHER_REGION,
    RECIPE_NETHER_HEART,
    RECIPE_VILLAGE,
    RECIPE_NONE,
}

SPAWN_REGION_ID = "spawn"
HEART_PREFIX = "heart_of_"
DEFAULT_TELEPORT_Y = 64


def _require_choice(value: Any, choices: Iterable[str], *, field_name: str) -> str:
    if not isinstance(value, str) or value not in choices:
        raise ValueError(f"{field_name} must be one of: {', '.join(sorted(choices))}")
    return value


def _optional_string(value: Any, *, field_name: str) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string when present")
    return value


def _optional_number(value: Any, *, field_name: str) -> int | float | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{field_name} must be numeric when present")
    return value


@dataclass(frozen=True)
class DiscoverSpec:
    method: str
    recipe_id: str
    command_id_override: str | None = None
    display_name_override: str | None = None

    def __post_init__(self) -> None:
        _require_choice(self.method, VALID_METHODS, field_name="discover.method")
        _require_choice(self.recipe_id, VALID_RECIPES, field_name="discover.recipe_id")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"method": self.method, "recipe_id": self.recipe_id}
        if self.command_id_override is not None:
            payload["command_id_override"] = self.command_id_override
        if self.display_name_override is not None:
            payload["display_name_override"] = self.display_name_override
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "DiscoverSpec":
        if not isinstance(payload, dict):
            raise ValueError("discover must be an object")
        return cls(
            method=payload.get("method"),
            recipe_id=payload.get("recipe_id"),
            command_id_override=_optional_string(
                payload.get("command_id_override"), field_name="discover.command_id_override"
            ),
            display_name_override=_optional_string(
                payload.get("display_name_override"), field_name="discover.display_name_override"
            ),
        )


@dataclass(frozen=True)
class RegionRecord:
    world: str
    id: str
    kind: str
    discover: DiscoverSpec
    description: str | None = None
    lore_book_anchors: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        _require_choice(self.world, VALID_WORLDS, field_name="region.world")
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("region.id must be a non-empty string")
        if self.id != self.id.lower():
            raise ValueError(f"region.id must be lowercase: {self.id}")
        _require_choice(self.kind, VALID_KINDS, field_name="region.kind")
        if self.id == SPAWN_REGION_ID and self.kind != KIND_SYSTEM:
            raise ValueError("spawn region must have kind system")
        if self.kind == KIND_SYSTEM and self.discover.method == METHOD_FIRST_JOIN:
            raise ValueError(f"system region cannot be the first-join region: {self.id}")

    @property
    def key(self) -> tuple[str, str]:
        return (self.world, self.id)

    @property
    def is_active(self) -> bool:
        return self.discover.method != METHOD_DISABLED

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "world": self.world,
            "id": self.id,
            "kind": self.kind,
            "discover": self.discover.to_dict(),
        }
        if self.description is not None:
            payload["description"] = self.description
        if self.lore_book_anchors:
            payload["lore_book_anchors"] = list(self.lore_book_anchors)
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "RegionRecord":
        if not isinstance(payload, dict):
            raise ValueError("region record must be an object")
        anchors = payload.get("lore_book_anchors", [])
        if not isinstance(anchors, list) or not all(isinstance(anchor, str) and anchor for anchor in anchors):
            raise ValueError("region.lore_book_anchors must be a list of non-empty strings")
        return cls(
            world=payload.get("world"),
            id=payload.get("id"),
            kind=payload.get("kind"),
            discover=DiscoverSpec.from_dict(payload.get("discover")),
            description=_optional_string(payload.get("description"), field_name="region.description"),
            lore_book_anchors=tuple(anchors),
        )


@dataclass(frozen=True)
class RegionSet:
    """Immutable snapshot of every classified region in a profile."""

    regions: tuple[RegionRecord, ...] = ()

    def __post_init__(self) -> None:
        seen: set[tuple[str, str]] = set()
        first_join: list[RegionRecord] = []
        for record in self.regions:
            if record.key in seen:
                raise ValueError(f"duplicate region {record.world}:{record.id}")
            seen.add(record.key)
            if record.discover.method == METHOD_FIRST_JOIN:
                first_join.append(record)
        if len(first_join) > 1:
            names = ", ".join(f"{record.world}:{record.id}" for record in first_join)
            raise ValueError(f"at most one first_join region is allowed, found: {names}")

    def __iter__(self):
        return iter(self.regions)

    def __len__(self) -> int:
        return len(self.regions)

    def active(self) -> tuple[RegionRecord, ...]:
        return tuple(record for record in self.regions if record.is_active)

    def for_world(self, world: str) -> tuple[RegionRecord, ...]:
        return tuple(record for record in self.regions if record.world == world)

    def get(self, world: str, region_id: str) -> RegionRecord | None:
        for record in self.regions:
            if record.key == (world, region_id):
                return record
        return None

    def first_join_record(self) -> RegionRecord | None:
        for record in self.regions:
            if record.discover.method == METHOD_FIRST_JOIN:
                return record
        return None

    def replace_world(self, world: str, records: Iterable[RegionRecord]) -> "RegionSet":
        """Drop every record of ``world`` and add ``records``; the last duplicate wins."""
        _require_choice(world, VALID_WORLDS, field_name="world")
        incoming: dict[tuple[str, str], RegionRecord] = {}
        for record in records:
            if record.world != world:
                raise ValueError(f"record {record.world}:{record.id} does not belong to world {world}")
            incoming[record.key] = record
        kept = tuple(record for record in self.regions if record.world != world)
        return RegionSet(regions=kept + tuple(incoming.values()))

    def with_overrides(
        self,
        world: str,
        region_id: str,
        *,
        command_id_override: str | None = None,
        display_name_override: str | None = None,
        description: str | None = None,
        lore_book_anchors: Iterable[str] | None = None,
    ) -> "RegionSet":
        current = self.get(world, region_id)
        if current is None:
            raise ValueError(f"unknown region {world}:{region_id}")
        discover = replace(
            current.discover,
            command_id_override=command_id_override or current.discover.command_id_override,
            display_name_override=display_name_override or current.discover.display_name_override,
        )
        updated = replace(
            current,
            discover=discover,
            description=current.description if description is None else description,
            lore_book_anchors=(
                current.lore_book_anchors if lore_book_anchors is None else tuple(lore_book_anchors)
            ),
        )
        return RegionSet(regions=tuple(updated if record.key == current.key else record for record in self.regions))

    def to_list(self) -> list[dict[str, Any]]:
        return [record.to_dict() for record in self.regions]

    @classmethod
    def from_list(cls, payload: Any) -> "RegionSet":
        if payload is None:
            return cls()
        if not isinstance(payload, list):
            raise ValueError("regions must be a list")
        return cls(regions=tuple(RegionRecord.from_dict(row) for row in payload))


@dataclass(frozen=True)
class Teleport:
    world: str
    x: int | float
    z: int | float
    y: int | float | None = None
    yaw: int | float | None = None
    pitch: int | float | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"world": self.world, "x": self.x, "z": self.z}
        for name in ("y", "yaw", "pitch"):
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> "Teleport":
        if payload is None:
            return cls(world="", x=0, z=0)
        if not isinstance(payload, dict):
            raise ValueError("onboarding.teleport must be an object")
        world = payload.get("world", "")
        if not isinstance(world, str):
            raise ValueError("onboarding.teleport.world must be a string")
        return cls(
            world=world,
            x=_optional_number(payload.get("x", 0), field_name="onboarding.teleport.x") or 0,
            z=_optional_number(payload.get("z", 0), field_name="onboarding.teleport.z") or 0,
            y=_optional_number(payload.get("y"), field_name="onboarding.teleport.y"),
            yaw=_optional_number(payload.get("yaw"), field_name="onboarding.teleport.yaw"),
            pitch=_optional_number(payload.get("pitch"), field_name="onboarding.teleport.pitch"),
        )


@dataclass(frozen=True)
class OnboardingConfig:
    start_region_id: str = ""
    teleport: Teleport = field(default_factory=lambda: Teleport(world="", x=0, z=0))

    def to_dict(self) -> dict[str, Any]:
        return {"start_region_id": self.start_region_id, "teleport": self.teleport.to_dict()}

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> "OnboardingConfig":
        if payload is None:
            return cls()
        if not isinstance(payload, dict):
            raise ValueError("onboarding must be an object")
        start_region_id = payload.get("start_region_id") or ""
        if not isinstance(start_region_id, str):
            raise ValueError("onboarding.start_region_id must be a string")
        return cls(start_region_id=start_region_id, teleport=Teleport.from_dict(payload.get("teleport")))


@dataclass(frozen=True)
class SpawnCenter:
    world: str
    x: int
    z: int

    def to_dict(self) -> dict[str, Any]:
        return {"world": self.world, "x": self.x, "z": self.z}

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> "SpawnCenter | None":
        if payload is None:
            return None
        if not isinstance(payload, dict):
            raise ValueError("spawn_center must be an object")
        x, z = payload.get("x"), payload.get("z")
        if isinstance(x, bool) or isinstance(z, bool) or not isinstance(x, int) or not isinstance(z, int):
            raise ValueError("spawn_center.x and spawn_center.z must be integers")
        return cls(world=str(payload.get("world", "world")), x=x, z=z)


@dataclass(frozen=True)
class ImportedSource:
    label: str
    original_filename: str
    imported_at_iso: str
    file_hash: str
    spawn_center: SpawnCenter | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "label": self.label,
            "original_filename": self.original_filename,
            "imported_at_iso": self.imported_at_iso,
            "file_hash": self.file_hash,
        }
        if self.spawn_center is not None:
            payload["spawn_center"] = self.spawn_center.to_dict()
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ImportedSource":
        if not isinstance(payload, dict):
            raise ValueError("source must be an object")
        return cls(
            label=str(payload.get("label", "")),
            original_filename=str(payload.get("original_filename", "")),
            imported_at_iso=str(payload.get("imported_at_iso", "")),
            file_hash=str(payload.get("file_hash", "")),
            spawn_center=SpawnCenter.from_dict(payload.get("spawn_center")),
        )


@dataclass(frozen=True)
class LevelledMobsSettings:
    village_band_strategy: str | None = None
    region_bands: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"region_bands": dict(sorted(self.region_bands.items()))}
        if self.village_band_strategy is not None:
            payload["village_band_strategy"] = self.village_band_strategy
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> "LevelledMobsSettings":
        if payload is None:
            return cls()
        if not isinstance(payload, dict):
            raise ValueError("levelled_mobs must be an object")
        bands = payload.get("region_bands") or {}
        if not isinstance(bands, dict):
            raise ValueError("levelled_mobs.region_bands must be an object")
        normalized: dict[str, str] = {}
        for region_id, level in bands.items():
            if not isinstance(region_id, str) or not isinstance(level, str):
                raise ValueError("levelled_mobs.region_bands must map region ids to strings")
            normalized[region_id.lower()] = level
        return cls(
            village_band_strategy=_optional_string(
                payload.get("village_band_strategy"), field_name="levelled_mobs.village_band_strategy"
            ),
            region_bands=normalized,
        )

    def merged_with(self, other: "LevelledMobsSettings") -> "LevelledMobsSettings":
        return LevelledMobsSettings(
            village_band_strategy=other.village_band_strategy or self.village_band_strategy,
            region_bands={**self.region_bands, **other.region_bands},
        )
