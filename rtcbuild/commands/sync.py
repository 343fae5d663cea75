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

import sys
import argparse

from rtcbuild.build_scripts.source_manager import SourceManager, SyncCancelled
from rtcbuild.utils.config.build_config import load_build_config
from rtcbuild.utils.context.command import CliCommand
from rtcbuild.utils.context.context import CliContext
from rtcbuild.utils.context.namespace import CliNameSpace
from rtcbuild.utils.errors import RtcBuildError


class Sync(CliCommand):
    def description(self) -> str:
        return """
        Fetch depot_tools and WebRTC and check out the pinned commit.

        Nothing is built. Platform dependencies (Android deps, ARM sysroot)
        are installed by `rtcbuild build` for the target being built.

        Examples:
            rtcbuild sync
            rtcbuild sync -y                  # reset local changes without asking
            rtcbuild sync --commit <sha>      # pin a different revision
        """

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="rtcbuild sync",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "--commit",
            type=str,
            help="WebRTC revision to check out instead of the pinned one",
        )
        parser.add_argument(
            "-y", "--yes",
            action="store_true",
            help="reset local changes in the WebRTC checkout without asking",
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

    def exec(self, context: CliContext, args: CliNameSpace):
        try:
            config = load_build_config(args.project_dir or context.project_dir)
            config.override(commit=args.commit)
            manager = SourceManager(config, assume_yes=args.yes)
            manager.sync_all()
        except SyncCancelled as e:
            print(str(e))
            sys.exit(1)
        except RtcBuildError as e:
            print(f"ERROR: {e}")
            sys.exit(1)

        revision, branch, url = manager.revision_info()
        print(f"\n✅ webrtc synced to {revision} ({branch})")
        print(f"   {config.webrtc_src}")
