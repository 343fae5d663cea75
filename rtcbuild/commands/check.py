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
import shutil
import platform

from rtcbuild.build_scripts.harvest import archiver_program
from rtcbuild.build_scripts.targets import (
    Target,
    detect_host_target,
    resolve_target,
)
from rtcbuild.utils.cmd.cmd_util import exec_command_with_timeout_second
from rtcbuild.utils.config.build_config import BuildConfig, load_build_config
from rtcbuild.utils.context.command import CliCommand
from rtcbuild.utils.context.context import CliContext
from rtcbuild.utils.context.namespace import CliNameSpace
from rtcbuild.utils.errors import RtcBuildError


class Check(CliCommand):
    def description(self) -> str:
        return """
        This is a subcommand to check the tools a WebRTC build needs.

        Examples:
            rtcbuild check                # Check for the host target
            rtcbuild check linux arm      # Check the linux/arm cross toolchain
            rtcbuild check android arm
        """

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="rtcbuild check",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument("os", nargs="?", help="target OS, default: host")
        parser.add_argument("arch", nargs="?", help="target arch, default: host")
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="Show detailed information",
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
            if args.os:
                target = resolve_target(args.os, args.arch)
            else:
                target = resolve_target(*detect_host_target())
        except RtcBuildError as e:
            print(f"ERROR: {e}")
            sys.exit(1)

        print(f"🔍 Checking build tools for {target.label}...")

        checker = ToolChecker(config, verbose=args.verbose)
        checker.check_target(target)
        checker.print_summary()
        if checker.errors:
            sys.exit(1)


class ToolChecker:
    def __init__(self, config: BuildConfig, verbose=False):
        self.config = config
        self.verbose = verbose
        self.results = {}
        self.warnings = []
        self.errors = []
        self.current_os = platform.system()

    def _which(self, command):
        """Look up a command on PATH or inside the depot_tools checkout"""
        found = shutil.which(command)
        if found:
            return found
        depot_tools_dir = str(self.config.depot_tools_dir)
        if os.path.isdir(depot_tools_dir):
            return shutil.which(command, path=depot_tools_dir)
        return None

    def check_command_exists(self, command, friendly_name=None, required=True):
        """Check if a command exists in PATH"""
        name = friendly_name or command
        path = self._which(command)

        if path:
            version_str = ""
            if self.verbose:
                err_code, output = exec_command_with_timeout_second([path, "--version"], 10)
                if err_code == 0 and output:
                    version_str = output.strip().split("\n")[0]
            self.print_ok(f"{name}: Found {version_str or path}")
            return True
        if required:
            self.print_error(f"{name}: Not found")
        else:
            self.print_warning(f"{name}: Not found (optional)")
        return False

    def check_file_exists(self, path, friendly_name):
        if os.path.isfile(path):
            self.print_ok(f"{friendly_name}: {path}")
            return True
        self.print_warning(f"{friendly_name}: {path} not present yet (fetched by sync)")
        return False

    def print_ok(self, msg):
        """Print success message"""
        print(f"  ✅ {msg}")

    def print_error(self, msg):
        """Print error message"""
        print(f"  ❌ {msg}")
        self.errors.append(msg)

    def print_warning(self, msg):
        """Print warning message"""
        print(f"  ⚠️  {msg}")
        self.warnings.append(msg)

    def print_info(self, msg):
        """Print info message"""
        print(f"  ℹ️  {msg}")

    def print_section(self, title):
        """Print section header"""
        print(f"\n{'='*60}")
        print(f"  {title}")
        print(f"{'='*60}")

    def check_host_tools(self):
        self.print_section("Host tools")
        checks = {
            "git": self.check_command_exists("git", "Git"),
            "python3": self.check_command_exists("python3", "Python 3"),
        }
        # only used to detect the default target
        self.check_command_exists("go", "Go", required=False)
        return checks

    def check_depot_tools(self):
        self.print_section("depot_tools")
        if not os.path.isdir(self.config.depot_tools_dir):
            self.print_info(f"{self.config.depot_tools_dir} does not exist yet, it is cloned on sync")
            return {"depot_tools": True}
        return {
            "gclient": self.check_command_exists("gclient"),
            "gn": self.check_command_exists("gn"),
            "ninja": self.check_command_exists("ninja"),
        }

    def check_archiver(self, target: Target):
        self.print_section(f"Archiver for {target.label}")
        program = archiver_program(target, self.config)
        checks = {}
        if target.is_android:
            checks["ndk ar"] = self.check_file_exists(program, "NDK ar")
        else:
            checks[program] = self.check_command_exists(program)
        if target.is_darwin:
            checks["strip"] = self.check_command_exists("strip")
            if self.current_os != "Darwin":
                self.print_error("darwin targets can only be built on macOS")
                checks["host"] = False
        if target.needs_arm_sysroot and self.current_os != "Linux":
            self.print_warning("the arm sysroot installer only supports Linux hosts")
        return checks

    def check_target(self, target: Target):
        self.results["host"] = self.check_host_tools()
        self.results["depot_tools"] = self.check_depot_tools()
        self.results[target.label] = self.check_archiver(target)

    def print_summary(self):
        """Print summary of check results"""
        self.print_section("Summary")

        for group, checks in self.results.items():
            if all(checks.values()):
                status = "✅ READY"
            elif any(checks.values()):
                status = "⚠️  PARTIAL"
            else:
                status = "❌ NOT READY"
            print(f"  {group.upper()}: {status}")

            if self.verbose:
                for check, result in checks.items():
                    symbol = "✅" if result else "❌"
                    print(f"    {symbol} {check}")

        print(f"\n  Errors: {len(self.errors)}  Warnings: {len(self.warnings)}")
