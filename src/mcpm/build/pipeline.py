from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from mcpm.build.diff import Difference, validate_merge
from mcpm.content.hash import region_set_hash
from mcpm.content.io import dump_document, load_document_file, write_atomic_json, write_atomic_text
from mcpm.content.profiles import ServerProfile, build_directory, build_report_path, save_profile, slugify_name
from mcpm.errors import OwnershipViolation
from mcpm.formats import my_command
from mcpm.formats.lore_books import DEFAULT_AUTHOR, LORE_DIRECTORY_NAME, generate_lore_books, lore_book_filename
from mcpm.formats.registry import TARGET_FORMATS, GenerationContext, TargetFormat
from mcpm.formats.tab import RegionCounts, compute_region_counts
from mcpm.regions.records import KIND_HEART, KIND_REGION, KIND_SYSTEM, KIND_VILLAGE, VALID_WORLDS, RegionRecord, RegionSet

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
FORMAT_ORDER = ("aa", "ce", "tab", "lm", my_command.FORMAT_NAME)
TEMPLATE_FILENAMES = {
    **{name: target.template_filename for name, target in TARGET_FORMATS.items()},
    my_command.FORMAT_NAME: my_command.TEMPLATE_FILENAME,
}
FORMAT_LABELS = {
    **{name: target.label for name, target in TARGET_FORMATS.items()},
    my_command.FORMAT_NAME: my_command.FORMAT_LABEL,
}
BUILD_ID_PREFIX = "build-"


@dataclass(frozen=True)
class ResolvedPath:
    """A base document location, tagged with whether it is the bundled default."""

    path: Path
    is_default: bool

    @classmethod
    def default(cls, path: str | Path) -> "ResolvedPath":
        return cls(path=Path(path), is_default=True)

    @classmethod
    def custom(cls, path: str | Path) -> "ResolvedPath":
        return cls(path=Path(path), is_default=False)

    def to_dict(self) -> dict[str, Any]:
        return {"path": str(self.path), "default": self.is_default}


def resolve_template_path(
    format_name: str,
    custom_path: str | Path | None = None,
    *,
    templates_dir: str | Path = DEFAULT_TEMPLATES_DIR,
) -> ResolvedPath:
    if format_name not in TEMPLATE_FILENAMES:
        raise ValueError(f"unknown target format: {format_name}")
    if custom_path is not None and str(custom_path).strip():
        path = Path(custom_path)
        if not path.is_file():
            raise ValueError(f"{FORMAT_LABELS[format_name]} config file not found: {path}")
        return ResolvedPath.custom(path)
    path = Path(templates_dir) / TEMPLATE_FILENAMES[format_name]
    if not path.is_file():
        raise ValueError(f"bundled {FORMAT_LABELS[format_name]} template not found: {path}")
    return ResolvedPath.default(path)


def output_filename(server_name: str, template_filename: str) -> str:
    return f"{slugify_name(server_name)}-{template_filename}"


@dataclass(frozen=True)
class FormatOutcome:
    format_name: str
    success: bool
    source: ResolvedPath | None = None
    output_path: Path | None = None
    differences: tuple[Difference, ...] = ()
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"format": self.format_name, "success": self.success}
        if self.source is not None:
            payload["source"] = self.source.to_dict()
        if self.output_path is not None:
            payload["output_path"] = str(self.output_path)
        if self.differences:
            payload["differences"] = [difference.to_dict() for difference in self.differences]
        if self.error is not None:
            payload["error"] = self.error
        return payload


def _write_outputs(text: str, filename: str, out_dir: Path, snapshot_dir: Path | None) -> Path:
    output_path = out_dir / filename
    write_atomic_text(output_path, text)
    if snapshot_dir is not None:
        write_atomic_text(snapshot_dir / filename, text)
    return output_path


def build_format(
    target: TargetFormat,
    context: GenerationContext,
    source: ResolvedPath,
    out_dir: str | Path,
    *,
    snapshot_dir: str | Path | None = None,
) -> FormatOutcome:
    snapshot = None if snapshot_dir is None else Path(snapshot_dir)
    try:
        original = load_document_file(source.path)
        merged = target.render(context, original)
        validate_merge(target, original, dump_document(merged)).raise_for_violations(target.label)
        text = dump_document(target.substitute(context, merged))
        output_path = _write_outputs(
            text, output_filename(context.server_name, target.template_filename), Path(out_dir), snapshot
        )
    except OwnershipViolation as exc:
        logger.warning("%s; nothing written", exc)
        for difference in exc.differences:
            logger.warning("  %s", difference.describe())
        return FormatOutcome(target.name, False, source=source, differences=exc.differences, error=str(exc))
    except (ValueError, OSError, yaml.YAMLError) as exc:
        logger.warning("%s build failed: %s", target.label, exc)
        return FormatOutcome(target.name, False, source=source, error=str(exc))

    logger.info("wrote %s config to %s", target.label, output_path)
    return FormatOutcome(target.name, True, source=source, output_path=output_path)


def build_my_command(
    context: GenerationContext,
    source: ResolvedPath,
    out_dir: str | Path,
    *,
    snapshot_dir: str | Path | None = None,
) -> FormatOutcome:
    snapshot = None if snapshot_dir is None else Path(snapshot_dir)
    try:
        template_text = source.path.read_text(encoding="utf-8")
        text = my_command.render_commands(template_text, context.server_name, source=str(source.path))
        output_path = _write_outputs(
            text, output_filename(context.server_name, my_command.TEMPLATE_FILENAME), Path(out_dir), snapshot
        )
    except (ValueError, OSError) as exc:
        logger.warning("%s build failed: %s", my_command.FORMAT_LABEL, exc)
        return FormatOutcome(my_command.FORMAT_NAME, False, source=source, error=str(exc))

    logger.info("wrote %s config to %s", my_command.FORMAT_LABEL, output_path)
    return FormatOutcome(my_command.FORMAT_NAME, True, source=source, output_path=output_path)


def export_lore_books(regions: Iterable[RegionRecord], out_dir: str | Path, *, author: str = DEFAULT_AUTHOR) -> tuple[Path, ...]:
    directory = Path(out_dir) / LORE_DIRECTORY_NAME
    written: list[Path] = []
    for region_id, book in generate_lore_books(regions, author).items():
        path = directory / lore_book_filename(region_id)
        write_atomic_text(path, dump_document(book))
        written.append(path)
    logger.info("wrote %d lore books to %s", len(written), directory)
    return tuple(written)


@dataclass(frozen=True)
class BuildRequest:
    out_dir: Path
    formats: tuple[str, ...] = FORMAT_ORDER
    custom_paths: Mapping[str, str | Path] = field(default_factory=dict)
    templates_dir: Path = DEFAULT_TEMPLATES_DIR
    lore_books: bool = False
    lore_author: str = DEFAULT_AUTHOR

    def __post_init__(self) -> None:
        if not str(self.out_dir).strip():
            raise ValueError("output directory must be set")
        if not self.formats and not self.lore_books:
            raise ValueError("at least one target format must be selected")
        unknown = sorted(set(self.formats) - set(FORMAT_ORDER))
        if unknown:
            raise ValueError(f"unknown target formats: {', '.join(unknown)}")


def region_counts(regions: RegionSet) -> dict[str, int]:
    counts = {world: len(regions.for_world(world)) for world in VALID_WORLDS}
    for label, kind in (("regions", KIND_REGION), ("villages", KIND_VILLAGE), ("hearts", KIND_HEART), ("system", KIND_SYSTEM)):
        counts[label] = sum(1 for record in regions if record.kind == kind)
    return counts


@dataclass(frozen=True)
class BuildReport:
    build_id: str
    timestamp: str
    region_counts: dict[str, int]
    computed_counts: RegionCounts
    outcomes: tuple[FormatOutcome, ...]
    region_set_hash: str
    lore_books: tuple[Path, ...] = ()
    errors: tuple[str, ...] = ()

    @property
    def success(self) -> bool:
        return not self.errors and all(outcome.success for outcome in self.outcomes)

    def outcome(self, format_name: str) -> FormatOutcome | None:
        for outcome in self.outcomes:
            if outcome.format_name == format_name:
                return outcome
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "build_id": self.build_id,
            "timestamp": self.timestamp,
            "region_counts": dict(self.region_counts),
            "computed_counts": self.computed_counts.to_dict(),
            "generated": {outcome.format_name: outcome.success for outcome in self.outcomes},
            "config_sources": {
                outcome.format_name: outcome.source.to_dict() for outcome in self.outcomes if outcome.source is not None
            },
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
            "errors": [
                *(f"{outcome.format_name}: {outcome.error}" for outcome in self.outcomes if outcome.error),
                *self.errors,
            ],
            "lore_books": [str(path) for path in self.lore_books],
            "region_set_hash": self.region_set_hash,
        }


def new_build_id(now: datetime) -> str:
    return f"{BUILD_ID_PREFIX}{int(now.timestamp() * 1000)}"


def run_build(
    profile: ServerProfile,
    request: BuildRequest,
    *,
    data_dir: str | Path,
    now: datetime | None = None,
) -> tuple[ServerProfile, BuildReport]:
    """Build every requested format, save the report and record the build on the profile."""
    moment = now or datetime.now(timezone.utc)
    build_id = new_build_id(moment)
    snapshot_dir = build_directory(data_dir, profile.id, build_id)
    context = GenerationContext(
        regions=profile.regions,
        onboarding=profile.onboarding,
        server_name=profile.name,
        levelled_mobs=profile.levelled_mobs,
    )
    logger.info("starting %s for %s (%d regions)", build_id, profile.id, len(profile.regions))

    outcomes: list[FormatOutcome] = []
    for format_name in FORMAT_ORDER:
        if format_name not in request.formats:
            continue
        try:
            source = resolve_template_path(
                format_name, request.custom_paths.get(format_name), templates_dir=request.templates_dir
            )
        except ValueError as exc:
            outcomes.append(FormatOutcome(format_name, False, error=str(exc)))
            continue
        if format_name == my_command.FORMAT_NAME:
            outcomes.append(build_my_command(context, source, request.out_dir, snapshot_dir=snapshot_dir))
        else:
            target = TARGET_FORMATS[format_name]
            outcomes.append(build_format(target, context, source, request.out_dir, snapshot_dir=snapshot_dir))

    lore_paths: tuple[Path, ...] = ()
    errors: list[str] = []
    if request.lore_books:
        try:
            lore_paths = export_lore_books(profile.regions, request.out_dir, author=request.lore_author)
        except (ValueError, OSError) as exc:
            logger.warning("lore book export failed: %s", exc)
            errors.append(f"lore-books: {exc}")

    report = BuildReport(
        build_id=build_id,
        timestamp=moment.isoformat(),
        region_counts=region_counts(profile.regions),
        computed_counts=compute_region_counts(profile.regions),
        outcomes=tuple(outcomes),
        region_set_hash=region_set_hash(profile.regions),
        lore_books=lore_paths,
        errors=tuple(errors),
    )
    try:
        write_atomic_json(build_report_path(data_dir, profile.id, build_id), report.to_dict())
    except OSError as exc:
        logger.warning("could not save report for %s: %s", build_id, exc)
        errors.append(f"report: {exc}")

    updated = replace(profile, last_build_id=build_id, output_directory=str(request.out_dir))
    try:
        save_profile(data_dir, updated)
    except OSError as exc:
        logger.warning("could not save profile %s: %s", profile.id, exc)
        errors.append(f"profile: {exc}")
        updated = profile

    logger.info("finished %s: %d/%d formats written", build_id, sum(o.success for o in outcomes), len(outcomes))
    return updated, replace(report, errors=tuple(errors))
