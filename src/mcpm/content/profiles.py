from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from mcpm.content.io import read_json, write_atomic_json
from mcpm.regions.importer import RegionImport
from mcpm.regions.meta import RegionsMetaImport
from mcpm.regions.records import (
    WORLD_OVERWORLD,
    ImportedSource,
    LevelledMobsSettings,
    OnboardingConfig,
    RegionSet,
    SpawnCenter,
)

PROFILE_SCHEMA_VERSION = 1
SERVERS_DIRECTORY_NAME = "servers"
BUILDS_DIRECTORY_NAME = "builds"
PROFILE_FILENAME = "profile.json"
REPORT_FILENAME = "report.json"
PROFILE_ID_SUFFIX_LENGTH = 8

_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9]")


def slugify_name(name: str) -> str:
    """Lowercase ``name`` with every character outside ``[a-z0-9]`` replaced by ``-``."""
    return _UNSAFE_NAME_CHARS.sub("-", name.lower())


@dataclass(frozen=True)
class ServerProfile:
    id: str
    name: str
    sources: dict[str, ImportedSource] = field(default_factory=dict)
    regions: RegionSet = field(default_factory=RegionSet)
    onboarding: OnboardingConfig = field(default_factory=OnboardingConfig)
    spawn_center: SpawnCenter | None = None
    levelled_mobs: LevelledMobsSettings = field(default_factory=LevelledMobsSettings)
    last_build_id: str | None = None
    output_directory: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "schema_version": PROFILE_SCHEMA_VERSION,
            "id": self.id,
            "name": self.name,
            "sources": {label: source.to_dict() for label, source in sorted(self.sources.items())},
            "regions": self.regions.to_list(),
            "onboarding": self.onboarding.to_dict(),
            "levelled_mobs": self.levelled_mobs.to_dict(),
            "build": {},
        }
        if self.spawn_center is not None:
            payload["spawn_center"] = self.spawn_center.to_dict()
        if self.last_build_id is not None:
            payload["build"]["last_build_id"] = self.last_build_id
        if self.output_directory is not None:
            payload["build"]["output_directory"] = self.output_directory
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ServerProfile":
        if not isinstance(payload, dict):
            raise ValueError("profile must be an object")
        schema_version = payload.get("schema_version", PROFILE_SCHEMA_VERSION)
        if schema_version != PROFILE_SCHEMA_VERSION:
            raise ValueError(f"unsupported profile schema_version: {schema_version}")
        profile_id, name = payload.get("id"), payload.get("name")
        if not isinstance(profile_id, str) or not profile_id:
            raise ValueError("profile.id must be a non-empty string")
        if not isinstance(name, str):
            raise ValueError("profile.name must be a string")
        sources = payload.get("sources") or {}
        if not isinstance(sources, dict):
            raise ValueError("profile.sources must be an object")
        build = payload.get("build") or {}
        if not isinstance(build, dict):
            raise ValueError("profile.build must be an object")
        return cls(
            id=profile_id,
            name=name,
            sources={str(label): ImportedSource.from_dict(source) for label, source in sources.items()},
            regions=RegionSet.from_list(payload.get("regions")),
            onboarding=OnboardingConfig.from_dict(payload.get("onboarding")),
            spawn_center=SpawnCenter.from_dict(payload.get("spawn_center")),
            levelled_mobs=LevelledMobsSettings.from_dict(payload.get("levelled_mobs")),
            last_build_id=build.get("last_build_id"),
            output_directory=build.get("output_directory"),
        )


def create_profile(name: str) -> ServerProfile:
    if not name.strip():
        raise ValueError("server name must be non-empty")
    suffix = uuid.uuid4().hex[:PROFILE_ID_SUFFIX_LENGTH]
    return ServerProfile(id=f"{slugify_name(name)}-{suffix}", name=name)


def servers_directory(data_dir: str | Path) -> Path:
    return Path(data_dir) / SERVERS_DIRECTORY_NAME


def server_directory(data_dir: str | Path, server_id: str) -> Path:
    if not server_id or Path(server_id).name != server_id or server_id in {".", ".."}:
        raise ValueError(f"invalid server id: {server_id!r}")
    return servers_directory(data_dir) / server_id


def profile_path(data_dir: str | Path, server_id: str) -> Path:
    return server_directory(data_dir, server_id) / PROFILE_FILENAME


def build_directory(data_dir: str | Path, server_id: str, build_id: str) -> Path:
    return server_directory(data_dir, server_id) / BUILDS_DIRECTORY_NAME / build_id


def build_report_path(data_dir: str | Path, server_id: str, build_id: str) -> Path:
    return build_directory(data_dir, server_id, build_id) / REPORT_FILENAME


def save_profile(data_dir: str | Path, profile: ServerProfile) -> Path:
    path = profile_path(data_dir, profile.id)
    write_atomic_json(path, profile.to_dict())
    return path


def load_profile(data_dir: str | Path, server_id: str) -> ServerProfile:
    path = profile_path(data_dir, server_id)
    if not path.exists():
        raise ValueError(f"server profile not found: {server_id}")
    return ServerProfile.from_dict(read_json(path))


def list_server_ids(data_dir: str | Path) -> list[str]:
    root = servers_directory(data_dir)
    if not root.is_dir():
        return []
    return sorted(entry.name for entry in root.iterdir() if entry.is_dir() and (entry / PROFILE_FILENAME).exists())


def list_build_ids(data_dir: str | Path, server_id: str) -> list[str]:
    root = server_directory(data_dir, server_id) / BUILDS_DIRECTORY_NAME
    if not root.is_dir():
        return []
    return sorted(entry.name for entry in root.iterdir() if (entry / REPORT_FILENAME).exists())


def load_build_report(data_dir: str | Path, server_id: str, build_id: str) -> dict[str, Any]:
    path = build_report_path(data_dir, server_id, build_id)
    if not path.exists():
        raise ValueError(f"build report not found: {server_id}/{build_id}")
    return read_json(path)


def apply_region_import(profile: ServerProfile, result: RegionImport) -> ServerProfile:
    return replace(
        profile,
        regions=result.regions,
        sources={**profile.sources, result.world: result.source},
    )


def _merged_onboarding(current: OnboardingConfig, incoming: OnboardingConfig) -> OnboardingConfig:
    teleport = incoming.teleport
    if teleport.y is None:
        teleport = replace(teleport, y=current.teleport.y)
    return OnboardingConfig(
        start_region_id=incoming.start_region_id or current.start_region_id,
        teleport=teleport,
    )


def apply_regions_meta(profile: ServerProfile, result: RegionsMetaImport) -> ServerProfile:
    """Replace the imported world's records and fold in the file's profile settings.

    Spawn center and onboarding are only taken from overworld imports.
    """
    updated = replace(
        profile,
        regions=profile.regions.replace_world(result.world, result.records),
        sources={**profile.sources, result.world: result.source},
    )
    if result.world == WORLD_OVERWORLD:
        if result.spawn_center is not None:
            updated = replace(updated, spawn_center=result.spawn_center)
        if result.onboarding is not None:
            updated = replace(updated, onboarding=_merged_onboarding(updated.onboarding, result.onboarding))
    if result.levelled_mobs is not None:
        updated = replace(updated, levelled_mobs=updated.levelled_mobs.merged_with(result.levelled_mobs))
    return updated


def update_onboarding(profile: ServerProfile, onboarding: OnboardingConfig) -> ServerProfile:
    return replace(profile, onboarding=onboarding)
