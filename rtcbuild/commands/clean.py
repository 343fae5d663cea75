#
# Copyright 2024 rtcbuild Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

import os
import sys
import argparse

from rtcbuild.build_scripts.build_utils import rm_rf
from rtcbuild.utils.config.build_config import load_build_config
from rtcbuild.utils.context.command import CliCommand
from rtcbuild.utils.context.context import CliContext
from rtcbuild.utils.context.namespace import CliNameSpace
from rtcbuild.utils.errors import RtcBuildError


class Clean(CliCommand):
    def description(self) -> str:
        return """
        This is a subcommand to clean build artifacts.

        Cleans the following directories:
        - third_party/webrtc/src/out/<config>/   # gn/ninja output
        - include/                               # harvested headers (--all)
        - lib/                                   # harvested libraries (--all)

        The depot_tools and WebRTC checkouts are never removed.

        Examples:
            rtcbuild clean              # Clean build output (with confirmation)
            rtcbuild clean --all        # Also remove include/ and lib/
            rtcbuild clean --dry-run    # Preview what will be cleaned
            rtcbuild clean -y           # Clean without confirmation
        """

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="rtcbuild clean",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "--all",
            action="store_true",
            help="also remove the harvested include/ and lib/ directories",
        )
        parser.add_argument(
            "--config",
            type=str,
            help="build configuration to clean (default: from RTCBUILD.toml)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be cleaned without actually deleting",
        )
        parser.add_argument(
            "-y", "--yes",
            action="store_true",
            help="Skip confirmation prompts",
        )
        parser.add_argument(
            "--project-dir",
            type=str,
            default=None,
            help="project directory (default: current directory)",
        )
        if argv is None:
            argv = sys.argv[2:]
        args, unknown = parser.parse_known_args(argv, namespace=CliNameSpace())
        return args

    def get_clean_paths(self, config, clean_all) -> list:
        paths = [config.out_dir]
        if clean_all:
            paths += [config.include_dir, config.lib_dir]
        return [p for p in paths if os.path.exists(p)]

    def exec(self, context: CliContext, args: CliNameSpace):
        print("Cleaning build artifacts...\n")

        try:
            config = load_build_config(args.project_dir or context.project_dir)
            config.override(config_name=args.config)
        except RtcBuildError as e:
            print(f"ERROR: {e}")
            sys.exit(1)

        paths = self.get_clean_paths(config, args.all)
        if not paths:
            print("✨ Nothing to clean")
            return

        print("The following will be removed:")
        for path in paths:
            print(f"  - {path}")

        if args.dry_run:
            print("\n[DRY RUN] Nothing was deleted")
            return

        if not args.yes:
            response = input("\nDo you want to continue? (y/N): ")
            if response.lower() != "y":
                print("Aborted.")
                return

        for path in paths:
            rm_rf(path)
            print(f"  ✅ Removed {path}")

        print("\n✅ Clean completed")
