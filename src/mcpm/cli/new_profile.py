from __future__ import annotations

import argparse
from typing import Sequence

from mcpm.cli.common import add_common_arguments, configure_logging
from mcpm.content.profiles import create_profile, save_profile


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcpm-new-profile",
        description="Create an empty server profile in the profile store.",
    )
    parser.add_argument("name", help="Server display name (used for {SERVER_NAME} and output file names)")
    add_common_arguments(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        profile = create_profile(args.name)
        path = save_profile(args.data_dir, profile)
        print(f"ok server_id={profile.id} profile_path={path}")
    except Exception as exc:
        print(f"error: {exc}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
