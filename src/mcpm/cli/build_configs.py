from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from mcpm.build.pipeline import DEFAULT_TEMPLATES_DIR, FORMAT_ORDER, BuildRequest, run_build
from mcpm.cli.common import add_common_arguments, configure_logging
from mcpm.content.profiles import load_profile


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcpm-build",
        description=(
            "Regenerate the owned sections of each selected plugin config, verify that no "
            "operator-authored content changed, and write the results to the output directory."
        ),
    )
    parser.add_argument("server_id", help="Profile id")
    parser.add_argument("--out", required=True, help="Output directory")
    parser.add_argument(
        "--format",
        dest="formats",
        action="append",
        choices=FORMAT_ORDER,
        help="Target format to build; repeatable (default: all)",
    )
    for format_name in FORMAT_ORDER:
        parser.add_argument(
            f"--{format_name}-path",
            dest=f"{format_name}_path",
            help=f"Existing {format_name} config to merge into (default: bundled template)",
        )
    parser.add_argument("--templates-dir", default=str(DEFAULT_TEMPLATES_DIR), help="Bundled template directory")
    parser.add_argument("--lore-books", action="store_true", help="Also export lore books for described regions")
    parser.add_argument("--lore-author", default="Admin", help="Lore book author (default: Admin)")
    add_common_arguments(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        profile = load_profile(args.data_dir, args.server_id)
        custom_paths = {
            format_name: getattr(args, f"{format_name}_path")
            for format_name in FORMAT_ORDER
            if getattr(args, f"{format_name}_path")
        }
        request = BuildRequest(
            out_dir=Path(args.out),
            formats=tuple(args.formats) if args.formats else FORMAT_ORDER,
            custom_paths=custom_paths,
            templates_dir=Path(args.templates_dir),
            lore_books=args.lore_books,
            lore_author=args.lore_author,
        )
        _, report = run_build(profile, request, data_dir=args.data_dir)

        for outcome in report.outcomes:
            if outcome.success:
                print(f"format={outcome.format_name} output_path={outcome.output_path}")
            else:
                print(f"format={outcome.format_name} error={outcome.error}")
                for difference in outcome.differences:
                    print(f"  {difference.describe()}")
        for error in report.errors:
            print(f"error={error}")
        if report.lore_books:
            print(f"lore_books={len(report.lore_books)}")
        if not report.success:
            raise ValueError(f"{report.build_id} finished with errors")

        print(f"ok build_id={report.build_id} formats={len(report.outcomes)} region_set_hash={report.region_set_hash}")
    except Exception as exc:
        print(f"error: {exc}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
