from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from mcpm.build.pipeline import (
    DEFAULT_TEMPLATES_DIR,
    BuildRequest,
    ResolvedPath,
    build_format,
    build_my_command,
    output_filename,
    resolve_template_path,
    run_build,
)
from mcpm.content.io import load_document, read_json
from mcpm.content.profiles import ServerProfile, build_report_path, list_build_ids, load_build_report, load_profile
from mcpm.formats.registry import GenerationContext, TargetFormat, get_target_format
from mcpm.regions.records import DiscoverSpec, OnboardingConfig, RegionRecord, RegionSet, Teleport

FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _record(world: str, region_id: str, kind: str, method: str = "on_enter", **extra) -> RegionRecord:
    recipe = "none" if method == "disabled" else "region"
    return RegionRecord(world=world, id=region_id, kind=kind, discover=DiscoverSpec(method=method, recipe_id=recipe), **extra)


def _profile() -> ServerProfile:
    return ServerProfile(
        id="aurora-1234abcd",
        name="Aurora SMP",
        regions=RegionSet(
            regions=(
                _record("overworld", "spawn", "system", method="disabled"),
                _record("overworld", "north_watch", "region", method="first_join"),
                _record("overworld", "cherrybrook", "village", description="Orchards. Bees.", lore_book_anchors=("Orchards.",)),
                _record("overworld", "heart_of_cherrybrook", "heart"),
                _record("nether", "ashen", "region"),
            )
        ),
        onboarding=OnboardingConfig(start_region_id="north_watch", teleport=Teleport(world="world", x=10, z=20)),
    )


def _context() -> GenerationContext:
    profile = _profile()
    return GenerationContext(regions=profile.regions, onboarding=profile.onboarding, server_name=profile.name)


def test_resolve_template_path_default_and_custom(tmp_path: Path) -> None:
    default = resolve_template_path("aa")
    assert default.is_default
    assert default.path == DEFAULT_TEMPLATES_DIR / "advancedachievements-config.yml"

    custom_file = tmp_path / "aa.yml"
    custom_file.write_text("Commands: {}\n", encoding="utf-8")
    assert resolve_template_path("aa", custom_file) == ResolvedPath.custom(custom_file)
    assert resolve_template_path("aa", "  ").is_default


def test_resolve_template_path_rejects_missing_custom_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="AdvancedAchievements config file not found"):
        resolve_template_path("aa", tmp_path / "missing.yml")


def test_output_filename_sanitizes_server_name() -> None:
    assert output_filename("Aurora SMP", "tab-config.yml") == "aurora-smp-tab-config.yml"


def test_build_format_writes_merged_aa_config(tmp_path: Path) -> None:
    outcome = build_format(get_target_format("aa"), _context(), resolve_template_path("aa"), tmp_path)

    assert outcome.success
    assert outcome.output_path == tmp_path / "aurora-smp-advancedachievements-config.yml"
    written = load_document(outcome.output_path.read_text(encoding="utf-8"))
    assert "exampleAch" not in written["Commands"]
    assert "discoverHeartOfCherrybrook" in written["Commands"]
    assert written["ExcludedWorlds"] == []


def test_build_format_substitutes_conditional_events_placeholders(tmp_path: Path) -> None:
    outcome = build_format(get_target_format("ce"), _context(), resolve_template_path("ce"), tmp_path)

    assert outcome.success
    text = outcome.output_path.read_text(encoding="utf-8")
    assert "{SERVER_NAME}" not in text
    assert "Aurora SMP" in text
    events = load_document(text)["Events"]
    assert list(events)[:2] == ["first_join", "region_heart_discover_once"]
    assert "join_welcome_back" in events


@pytest.mark.parametrize("format_name", ["ce", "mc"])
def test_server_name_with_apostrophe_builds_valid_yaml(tmp_path: Path, format_name: str) -> None:
    context = GenerationContext(regions=_profile().regions, onboarding=_profile().onboarding, server_name="Mor'gath Realm")
    source = resolve_template_path(format_name)
    if format_name == "mc":
        outcome = build_my_command(context, source, tmp_path)
    else:
        outcome = build_format(get_target_format(format_name), context, source, tmp_path)

    assert outcome.success, outcome.error
    text = outcome.output_path.read_text(encoding="utf-8")
    assert "{SERVER_NAME}" not in text
    assert "Mor'gath Realm" in str(load_document(text))


def test_build_format_blocks_write_when_gate_fails(tmp_path: Path) -> None:
    aa = get_target_format("aa")

    def tampering_render(context: GenerationContext, existing: dict) -> dict:
        merged = aa.render(context, existing)
        merged["RestrictCreative"] = not merged.get("RestrictCreative", False)
        return merged

    target = TargetFormat(
        name=aa.name,
        label=aa.label,
        template_filename=aa.template_filename,
        is_owned=aa.is_owned,
        normalize=aa.normalize,
        render=tampering_render,
    )

    outcome = build_format(target, _context(), resolve_template_path("aa"), tmp_path)

    assert not outcome.success
    assert [difference.path for difference in outcome.differences] == [("RestrictCreative",)]
    assert list(tmp_path.iterdir()) == []


def test_build_format_reports_invalid_base_document(tmp_path: Path) -> None:
    base = tmp_path / "bad.yml"
    base.write_text("Commands: [unclosed\n", encoding="utf-8")
    out_dir = tmp_path / "out"

    outcome = build_format(get_target_format("aa"), _context(), ResolvedPath.custom(base), out_dir)

    assert not outcome.success
    assert "invalid YAML" in outcome.error
    assert not out_dir.exists()


def test_build_format_reports_wrong_structure(tmp_path: Path) -> None:
    base = tmp_path / "lm.yml"
    base.write_text("custom-rules: not-a-list\n", encoding="utf-8")

    outcome = build_format(get_target_format("lm"), _context(), ResolvedPath.custom(base), tmp_path / "out")

    assert not outcome.success
    assert "custom-rules must be a list" in outcome.error


def test_build_request_validation(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="at least one target format"):
        BuildRequest(out_dir=tmp_path, formats=())
    with pytest.raises(ValueError, match="unknown target formats: zz"):
        BuildRequest(out_dir=tmp_path, formats=("aa", "zz"))


def test_run_build_writes_everything_and_records_report(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    out_dir = tmp_path / "out"
    request = BuildRequest(out_dir=out_dir, lore_books=True)

    updated, report = run_build(_profile(), request, data_dir=data_dir, now=FIXED_NOW)

    assert report.success
    assert [outcome.format_name for outcome in report.outcomes] == ["aa", "ce", "tab", "lm", "mc"]
    assert sorted(path.name for path in out_dir.glob("*.yml")) == [
        "aurora-smp-advancedachievements-config.yml",
        "aurora-smp-conditionalevents-config.yml",
        "aurora-smp-levelledmobs-rules.yml",
        "aurora-smp-mycommand-commands.yml",
        "aurora-smp-tab-config.yml",
    ]
    lore = load_document((out_dir / "lore-books" / "cherrybrook.yml").read_text(encoding="utf-8"))
    assert lore == {"title": "Cherrybrook", "author": "Admin", "pages": ["Orchards.", "Bees."]}
    assert "{SERVER_NAME}" not in (out_dir / "aurora-smp-mycommand-commands.yml").read_text(encoding="utf-8")

    assert report.build_id == "build-1767323045000"
    assert list_build_ids(data_dir, _profile().id) == [report.build_id]
    saved = load_build_report(data_dir, _profile().id, report.build_id)
    assert saved == read_json(build_report_path(data_dir, _profile().id, report.build_id))
    assert saved["generated"] == {"aa": True, "ce": True, "tab": True, "lm": True, "mc": True}
    assert saved["region_counts"]["overworld"] == 4
    assert saved["computed_counts"]["total"] == 4
    assert saved["config_sources"]["aa"]["default"] is True
    snapshot = build_report_path(data_dir, _profile().id, report.build_id).parent
    assert (snapshot / "aurora-smp-tab-config.yml").exists()

    assert updated.last_build_id == report.build_id
    assert load_profile(data_dir, updated.id).output_directory == str(out_dir)


def test_run_build_continues_after_a_failed_format(tmp_path: Path) -> None:
    broken = tmp_path / "broken-tab.yml"
    broken.write_text("scoreboard: [1, 2]\n", encoding="utf-8")
    request = BuildRequest(out_dir=tmp_path / "out", formats=("aa", "tab"), custom_paths={"tab": broken})

    _, report = run_build(_profile(), request, data_dir=tmp_path / "data", now=FIXED_NOW)

    assert not report.success
    assert report.outcome("aa").success
    assert not report.outcome("tab").success
    assert "scoreboard must be a mapping" in report.outcome("tab").error
    assert not (tmp_path / "out" / "aurora-smp-tab-config.yml").exists()


def test_run_build_records_lore_book_failure_instead_of_raising(tmp_path: Path) -> None:
    out_dir = tmp_path / "out"
    out_dir.mkdir()
    (out_dir / "lore-books").write_text("not a directory", encoding="utf-8")
    request = BuildRequest(out_dir=out_dir, formats=("aa",), lore_books=True)

    updated, report = run_build(_profile(), request, data_dir=tmp_path / "data", now=FIXED_NOW)

    assert report.outcome("aa").success
    assert not report.success
    assert report.lore_books == ()
    assert [error.split(":")[0] for error in report.errors] == ["lore-books"]
    assert load_build_report(tmp_path / "data", updated.id, report.build_id)["errors"][0].startswith("lore-books: ")


def test_run_build_records_unwritable_data_dir_instead_of_raising(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    data_dir.write_text("not a directory", encoding="utf-8")
    profile = _profile()
    request = BuildRequest(out_dir=tmp_path / "out", formats=("aa",))

    updated, report = run_build(profile, request, data_dir=data_dir, now=FIXED_NOW)

    assert updated == profile
    assert not report.success
    assert [error.split(":")[0] for error in report.errors] == ["report", "profile"]
