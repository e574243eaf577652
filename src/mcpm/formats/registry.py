from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from mcpm.formats import achievements, conditional_events, levelled_mobs, tab
from mcpm.regions.records import LevelledMobsSettings, OnboardingConfig, RegionSet

OwnershipPredicate = Callable[[tuple[Any, ...], Any], bool]
Normalizer = Callable[[dict[Any, Any]], dict[Any, Any]]


@dataclass(frozen=True)
class GenerationContext:
    regions: RegionSet
    onboarding: OnboardingConfig = field(default_factory=OnboardingConfig)
    server_name: str = ""
    levelled_mobs: LevelledMobsSettings = field(default_factory=LevelledMobsSettings)


@dataclass(frozen=True)
class TargetFormat:
    """One merge target: how to recognize, scaffold and regenerate its owned content."""

    name: str
    label: str
    template_filename: str
    is_owned: OwnershipPredicate
    normalize: Normalizer
    render: Callable[[GenerationContext, dict[Any, Any]], dict[Any, Any]]
    substitute: Callable[[GenerationContext, dict[Any, Any]], dict[Any, Any]] = lambda context, document: document


def _render_achievements(context: GenerationContext, existing: dict[Any, Any]) -> dict[Any, Any]:
    return achievements.merge_achievements(existing, achievements.generate_commands(context.regions))


def _render_events(context: GenerationContext, existing: dict[Any, Any]) -> dict[Any, Any]:
    events = conditional_events.generate_events(context.regions, context.onboarding, context.server_name)
    return conditional_events.merge_events(existing, events)


def _substitute_events(context: GenerationContext, document: dict[Any, Any]) -> dict[Any, Any]:
    return conditional_events.substitute_placeholders(
        document,
        server_name=context.server_name,
        start_command_id=conditional_events.start_region_command_id(context.regions, context.onboarding),
    )


def _render_tab(context: GenerationContext, existing: dict[Any, Any]) -> dict[Any, Any]:
    return tab.merge_tab(existing, tab.generate_tab_sections(context.regions, context.server_name))


def _render_levelled_mobs(context: GenerationContext, existing: dict[Any, Any]) -> dict[Any, Any]:
    return levelled_mobs.merge_rules(existing, levelled_mobs.generate_rules(context.regions, context.levelled_mobs))


TARGET_FORMATS: dict[str, TargetFormat] = {
    target.name: target
    for target in (
        TargetFormat(
            name=achievements.FORMAT_NAME,
            label=achievements.FORMAT_LABEL,
            template_filename=achievements.TEMPLATE_FILENAME,
            is_owned=achievements.is_owned,
            normalize=achievements.normalize,
            render=_render_achievements,
        ),
        TargetFormat(
            name=conditional_events.FORMAT_NAME,
            label=conditional_events.FORMAT_LABEL,
            template_filename=conditional_events.TEMPLATE_FILENAME,
            is_owned=conditional_events.is_owned,
            normalize=conditional_events.normalize,
            render=_render_events,
            substitute=_substitute_events,
        ),
        TargetFormat(
            name=tab.FORMAT_NAME,
            label=tab.FORMAT_LABEL,
            template_filename=tab.TEMPLATE_FILENAME,
            is_owned=tab.is_owned,
            normalize=tab.normalize,
            render=_render_tab,
        ),
        TargetFormat(
            name=levelled_mobs.FORMAT_NAME,
            label=levelled_mobs.FORMAT_LABEL,
            template_filename=levelled_mobs.TEMPLATE_FILENAME,
            is_owned=levelled_mobs.is_owned,
            normalize=levelled_mobs.normalize,
            render=_render_levelled_mobs,
        ),
    )
}


def get_target_format(name: str) -> TargetFormat:
    target = TARGET_FORMATS.get(name)
    if target is None:
        raise ValueError(f"unknown target format: {name}")
    return target
