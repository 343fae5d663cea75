#!/usr/bin/env python3
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

"""
Source Manager for rtcbuild

Fetches and pins the sources a WebRTC build needs:
- depot_tools (gclient, gn, ninja), cloned or fast-forwarded
- the WebRTC checkout, configured and synced by gclient at a pinned commit
- platform extras (Android build deps, ARM sysroot) through WebRTC's own
  installer scripts
"""

import subprocess
from pathlib import Path
from typing import Callable, Optional

from rtcbuild.build_scripts.build_utils import (
    add_path,
    mkdir_p,
    parse_as_git,
    print_step,
    rm_rf,
)
from rtcbuild.build_scripts.targets import Target
from rtcbuild.utils.cmd.cmd_util import CommandFailedError, run_command
from rtcbuild.utils.config.build_config import BuildConfig
from rtcbuild.utils.errors import RtcBuildError

ANDROID_GCLIENT_TARGET_OS = "target_os = [ 'android' ]"


class SourceSyncError(RtcBuildError):
    """Exception raised when fetching or pinning sources fails"""
    pass


class SyncCancelled(SourceSyncError):
    """The user declined to reset local changes in the WebRTC checkout"""
    pass


class SourceManager:
    """Manages depot_tools and the WebRTC checkout of a project"""

    def __init__(
        self,
        config: BuildConfig,
        assume_yes: bool = False,
        input_func: Optional[Callable[[str], str]] = None,
    ):
        """
        Initialize the source manager.

        Args:
            config: Resolved build configuration
            assume_yes: Reset local changes without asking
            input_func: Prompt function (default: builtin input)
        """
        self.config = config
        self.assume_yes = assume_yes
        self.input_func = input_func or input

    def _run(self, args, cwd=None):
        try:
            run_command(args, cwd=str(cwd) if cwd else None)
        except CommandFailedError as e:
            raise SourceSyncError(str(e)) from e
        except OSError as e:
            raise SourceSyncError(f"Failed to run {args[0]}: {e}") from e

    def _gclient_sync(self):
        args = ["gclient", "sync"]
        if self.config.with_branch_heads:
            args.append("--with_branch_heads")
        args += ["-r", self.config.commit]
        self._run(args, cwd=self.config.webrtc_dir)

    def _gclient_config(self):
        self._run(
            ["gclient", "config", "--name", "src", self.config.webrtc_repo],
            cwd=self.config.webrtc_dir,
        )

    def prepare_directories(self):
        mkdir_p(self.config.third_party_dir)
        mkdir_p(self.config.include_dir)
        mkdir_p(self.config.lib_dir)

    def sync_depot_tools(self):
        """Clone depot_tools, or rebase an existing checkout, and put it on PATH."""
        depot_tools_dir = self.config.depot_tools_dir
        if depot_tools_dir.is_dir():
            print_step("Syncing depot_tools")
            self._run(["git", "pull", "--rebase"], cwd=depot_tools_dir)
        else:
            print_step("Getting depot_tools")
            mkdir_p(depot_tools_dir)
            self._run(["git", "clone", self.config.depot_tools_repo, depot_tools_dir])
        add_path(depot_tools_dir)

    def has_local_changes(self) -> bool:
        """True if tracked files of the WebRTC src checkout differ from HEAD"""
        try:
            result = subprocess.run(
                ["git", "diff-index", "--quiet", "HEAD", "--"],
                cwd=str(self.config.webrtc_src),
            )
        except OSError as e:
            raise SourceSyncError(f"Failed to run git: {e}") from e
        return result.returncode != 0

    def _confirm_reset(self) -> bool:
        if self.assume_yes:
            return True
        try:
            answer = self.input_func(
                f"\nOpen files present in {self.config.webrtc_src}\nReset them? (y/N): "
            )
        except (EOFError, KeyboardInterrupt):
            return False
        return answer.strip() == "y"

    def sync_webrtc(self):
        """Configure (first run) and gclient-sync the WebRTC checkout to the pinned commit."""
        webrtc_dir = self.config.webrtc_dir
        if webrtc_dir.is_dir():
            print_step("Syncing webrtc")
            if not self.config.webrtc_src.is_dir():
                raise SourceSyncError(f"{self.config.webrtc_src} does not exist")
            if self.has_local_changes():
                if not self._confirm_reset():
                    raise SyncCancelled("*** Cancelled ***")
                self._run(["git", "reset", "--hard", "HEAD"], cwd=self.config.webrtc_src)
            self._gclient_sync()
        else:
            print_step("Getting webrtc")
            mkdir_p(webrtc_dir)
            self._gclient_config()
            self._gclient_sync()

    def _ensure_android_target_os(self):
        gclient_file = Path(self.config.webrtc_dir) / ".gclient"
        content = gclient_file.read_text() if gclient_file.is_file() else ""
        if ANDROID_GCLIENT_TARGET_OS in content:
            return
        print("Setting gclient target_os to android")
        with open(gclient_file, "a") as f:
            if content and not content.endswith("\n"):
                f.write("\n")
            f.write(ANDROID_GCLIENT_TARGET_OS + "\n")

    def install_platform_deps(self, target: Target):
        """Run WebRTC's installer scripts for targets that need extra toolchains."""
        src = self.config.webrtc_src
        if target.is_android:
            # gclient config rewrites .gclient, so target_os is added afterwards
            self._gclient_config()
            self._ensure_android_target_os()
            self._gclient_sync()

            print_step("Installing Android build dependencies")
            self._run(["./build/install-build-deps-android.sh"], cwd=src)
            self._run(["gclient", "runhooks"], cwd=src)
        elif target.needs_arm_sysroot:
            print_step("Manually fetching arm sysroot")
            self._run(
                ["./build/linux/sysroot_scripts/install-sysroot.py", "--arch=arm"],
                cwd=src,
            )

    def checkout_pinned_commit(self):
        print_step("Checking out latest tested / compatible version of webrtc")
        self._run(["git", "checkout", self.config.commit], cwd=self.config.webrtc_src)

    def clean_output(self) -> bool:
        print_step("Cleaning webrtc")
        return rm_rf(self.config.out_dir)

    def revision_info(self):
        """(short revision, branch, remote url) of the WebRTC src checkout"""
        return parse_as_git(str(self.config.webrtc_src))

    def sync_all(self):
        """depot_tools and WebRTC fetched and pinned, without platform extras"""
        self.prepare_directories()
        self.sync_depot_tools()
        self.sync_webrtc()
        self.checkout_pinned_commit()
