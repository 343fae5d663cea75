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
import time
import argparse
from typing import Dict, List

from rtcbuild.build_scripts.build_utils import (
    add_path,
    format_elapsed_time,
    print_banner,
    print_build_time,
)
from rtcbuild.build_scripts.build_webrtc import build_webrtc
from rtcbuild.build_scripts.harvest import archive_library, harvest_headers
from rtcbuild.build_scripts.source_manager import SourceManager, SyncCancelled
from rtcbuild.build_scripts.targets import (
    Target,
    TargetError,
    detect_host_target,
    parse_target_list,
    resolve_target,
)
from rtcbuild.utils.config.build_config import BuildConfig, load_build_config
from rtcbuild.utils.context.command import CliCommand
from rtcbuild.utils.context.context import CliContext
from rtcbuild.utils.context.namespace import CliNameSpace
from rtcbuild.utils.context.result import CliResult
from rtcbuild.utils.errors import RtcBuildError


def non_negative_int(value) -> int:
    try:
        jobs = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}")
    if jobs < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater: {jobs}")
    return jobs


class Build(CliCommand):
    def description(self) -> str:
        return """Build the pinned WebRTC revision for one or more targets.

Each target goes through the full pipeline:
    1. depot_tools and WebRTC are fetched or synced (once per run)
    2. platform dependencies are installed (Android deps, ARM sysroot)
    3. the pinned commit is checked out and out/<config> is removed
    4. gn gen + ninja build the fixed set of WebRTC targets
    5. headers are copied to include/ and objects archived into
       lib/libwebrtc-<os>-<arch>-magic.a

TARGETS (Go naming):
    os      linux, darwin, windows, android
    arch    386, amd64, arm

EXAMPLES:
    # Native build (uses `go env GOOS/GOARCH`, or the host platform)
    rtcbuild build

    # Cross compile
    rtcbuild build linux amd64
    rtcbuild build linux arm        # needs binutils-arm-linux-gnueabihf
    rtcbuild build android arm

    # Several targets, one after another
    rtcbuild build --targets linux/amd64,linux/arm,android/arm

    # Rebuild without touching the sources
    rtcbuild build --skip-sync

NOTES:
    darwin/amd64 can only be built natively on macOS.
        """

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="rtcbuild build",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "os",
            nargs="?",
            help="target OS (linux, darwin, windows, android), default: host",
        )
        parser.add_argument(
            "arch",
            nargs="?",
            help="target arch (386, amd64, arm), default: host",
        )
        parser.add_argument(
            "--targets",
            type=str,
            help="comma-separated list of os/arch targets, e.g. linux/amd64,android/arm",
        )
        parser.add_argument(
            "--commit",
            type=str,
            help="WebRTC revision to build instead of the pinned one",
        )
        parser.add_argument(
            "--config",
            type=str,
            help="build configuration, names the out/<config> directory (default: Release)",
        )
        parser.add_argument(
            "-j", "--jobs",
            type=non_negative_int,
            default=None,
            help="parallel jobs passed to ninja, 0 for no limit (default: ninja's own)",
        )
        parser.add_argument(
            "--skip-sync",
            action="store_true",
            help="use the existing checkout as is (no fetch, platform deps or checkout)",
        )
        parser.add_argument(
            "-y", "--yes",
            action="store_true",
            help="reset local changes in the WebRTC checkout without asking",
        )
        parser.add_argument(
            "--no-prune-headers",
            action="store_true",
            help="keep every copied header instead of running `git clean -fd include`",
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

    def resolve_targets(self, args: CliNameSpace) -> List[Target]:
        if args.targets:
            if args.os:
                raise TargetError("Give either os/arch or --targets, not both")
            return parse_target_list(args.targets)
        if args.os:
            if not args.arch:
                raise TargetError("Missing arch, usage: rtcbuild build <os> <arch>")
            return [resolve_target(args.os, args.arch)]
        os_name, arch = detect_host_target()
        return [resolve_target(os_name, arch)]

    def build_target(
        self,
        target: Target,
        config: BuildConfig,
        manager: SourceManager,
        args: CliNameSpace,
    ):
        """Run the per-target stages and return the produced library path."""
        if not args.skip_sync:
            manager.install_platform_deps(target)
            manager.checkout_pinned_commit()
        manager.clean_output()
        build_webrtc(target, config, args.jobs)
        harvest_headers(config, prune=not args.no_prune_headers)
        return archive_library(target, config)

    def _print_summary(self, results: Dict[str, CliResult], manager: SourceManager):
        print_banner("Build Summary")
        revision, branch, url = manager.revision_info()
        print(f"WebRTC: {revision} ({branch}) {url}".rstrip())
        for label, result in results.items():
            elapsed = format_elapsed_time(result.elapsed)
            if result.is_success():
                print(f"  ✅ {label:<16} {result.get_value()} ({elapsed})")
            else:
                print(f"  ❌ {label:<16} {result.get_error()} ({elapsed})")

    def exec(self, context: CliContext, args: CliNameSpace):
        start_time = time.time()

        try:
            config = load_build_config(args.project_dir or context.project_dir)
            config.override(commit=args.commit, config_name=args.config)
            targets = self.resolve_targets(args)
        except RtcBuildError as e:
            print(f"ERROR: {e}")
            sys.exit(1)

        print("=" * 80)
        print(f"Building webrtc {config.commit} ({config.config_name})")
        print(f"Targets: {', '.join(t.label for t in targets)}")
        print("=" * 80)

        manager = SourceManager(config, assume_yes=args.yes)
        try:
            manager.prepare_directories()
            if args.skip_sync:
                add_path(config.depot_tools_dir)
            else:
                manager.sync_depot_tools()
                manager.sync_webrtc()
        except SyncCancelled as e:
            print(str(e))
            sys.exit(1)
        except RtcBuildError as e:
            print(f"ERROR: {e}")
            print_build_time(time.time() - start_time)
            sys.exit(1)

        results = {}
        for index, target in enumerate(targets, 1):
            print_banner(f"build {target.label} ({index}/{len(targets)})")
            target_start = time.time()
            try:
                output = self.build_target(target, config, manager, args)
                results[target.label] = CliResult(
                    value=output, elapsed=time.time() - target_start
                )
            except RtcBuildError as e:
                print(f"\n❌ {target.label} build failed: {e}")
                results[target.label] = CliResult(
                    error=str(e), elapsed=time.time() - target_start
                )
            except KeyboardInterrupt:
                print(f"\n🛑 {target.label} build interrupted by user")
                results[target.label] = CliResult(
                    error="interrupted", elapsed=time.time() - target_start
                )
                break

        self._print_summary(results, manager)
        print_build_time(time.time() - start_time)

        failed = [label for label, result in results.items() if result.is_failure()]
        if failed or len(results) != len(targets):
            sys.exit(1)
        print("Build complete.")
