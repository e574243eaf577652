from __future__ import annotations

import argparse
from typing import Sequence

from mcpm.cli.common import add_common_arguments, configure_logging
from mcpm.content.profiles import load_profile, save_profile, update_onboarding
from mcpm.regions.naming import canonical_id
from mcpm.regions.records import OnboardingConfig, Teleport


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mcpm-onboarding",
        description=(
            "Set the start region and first-join teleport of a server profile. "
            "Re-import the start region's world afterwards so it is classified as first_join."
        ),
    )
    parser.add_argument("server_id", help="Profile id")
    parser.add_argument("--start-region", required=True, help="Region id new players start in")
    parser.add_argument("--world", default="", help="Teleport world name")
    parser.add_argument("--x", type=float, required=True, help="Teleport x coordinate")
    parser.add_argument("--z", type=float, required=True, help="Teleport z coordinate")
    parser.add_argument("--y", type=float, help="Teleport y coordinate (default: 64 at build time)")
    parser.add_argument("--yaw", type=float, help="Teleport yaw (used only together with --pitch)")
    parser.add_argument("--pitch", type=float, help="Teleport pitch (used only together with --yaw)")
    add_common_arguments(parser)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        profile = load_profile(args.data_dir, args.server_id)
        onboarding = OnboardingConfig(
            start_region_id=canonical_id(args.start_region),
            teleport=Teleport(world=args.world, x=args.x, z=args.z, y=args.y, yaw=args.yaw, pitch=args.pitch),
        )
        profile = update_onboarding(profile, onboarding)
        save_profile(args.data_dir, profile)
        print(f"ok server_id={profile.id} start_region_id={onboarding.start_region_id}")
    except Exception as exc:
        print(f"error: {exc}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
