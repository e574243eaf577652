from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from mcpm.cli.common import add_common_arguments, configure_logging
from mcpm.content.profiles import apply_region_import, apply_regions_meta, load_profile, save_profile
from mcpm.regions.importer import import_region_file
from mcpm.regions.meta import import_regions_meta
from mcpm.regions.records import VALID_WORLDS


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcpm-import",
        description=(
            "Import a Region Forge export (or a pre-classified regions-meta file with --meta) "
            "into a server profile, replacing that world's regions."
        ),
    )
    parser.add_argument("server_id", help="Profile id, as printed by mcpm-new-profile")
    parser.add_argument("world", choices=VALID_WORLDS, help="World the file describes")
    parser.add_argument("path", help="Path to regions.yml or regions-meta.yml")
    parser.add_argument("--meta", action="store_true", help="Treat the file as a regions-meta document")
    add_common_arguments(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        profile = load_profile(args.data_dir, args.server_id)
        if args.meta:
            meta = import_regions_meta(Path(args.path), world=args.world)
            profile = apply_regions_meta(profile, meta)
            source = meta.source
        else:
            result = import_region_file(
                Path(args.path),
                world=args.world,
                existing=profile.regions,
                onboarding=profile.onboarding,
            )
            profile = apply_region_import(profile, result)
            source = result.source
        save_profile(args.data_dir, profile)

        print(
            "ok "
            f"server_id={profile.id} "
            f"world={args.world} "
            f"region_count={len(profile.regions.for_world(args.world))} "
            f"total_regions={len(profile.regions)} "
            f"file_hash={source.file_hash}"
        )
    except Exception as exc:
        print(f"error: {exc}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
