#!/usr/bin/env python3
# -- coding: utf-8 --
#
# targets.py
# rtcbuild
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
Target OS/CPU resolution.

Targets are named the way Go names them (GOOS/GOARCH) and translated into
the target_os/target_cpu values understood by gn.

Values are from,
  https://github.com/golang/go/blob/master/src/go/build/syslist.go
  https://gn.googlesource.com/gn/+/main/docs/reference.md
"""

import os
import platform
import shutil
from typing import List, Tuple

from rtcbuild.utils.cmd.cmd_util import exec_command_with_timeout_second
from rtcbuild.utils.errors import RtcBuildError

# GOOS -> gn target_os
TARGET_OS_MAP = {
    "linux": "linux",
    "darwin": "mac",
    "windows": "win",
    "android": "android",
}

# GOARCH -> gn target_cpu
TARGET_CPU_MAP = {
    "386": "x86",
    "amd64": "x64",
    "arm": "arm",
}

# platform.system() -> GOOS
HOST_SYSTEM_MAP = {
    "Linux": "linux",
    "Darwin": "darwin",
    "Windows": "windows",
}

# platform.machine() -> GOARCH
HOST_MACHINE_MAP = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "AMD64": "amd64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
    "arm": "arm",
    "aarch64": "arm64",
    "arm64": "arm64",
}


class TargetError(RtcBuildError):
    """Raised for OS/arch names with no counterpart in gn"""
    pass


class Target:
    """A target OS/CPU pair in both naming conventions."""

    def __init__(self, os_name: str, arch: str):
        self.os_name = os_name
        self.arch = arch
        self.target_os = TARGET_OS_MAP[os_name]
        self.target_cpu = TARGET_CPU_MAP[arch]

    @property
    def label(self) -> str:
        return f"{self.os_name}/{self.arch}"

    @property
    def is_android(self) -> bool:
        return self.os_name == "android"

    @property
    def is_darwin(self) -> bool:
        return self.os_name == "darwin"

    @property
    def is_windows(self) -> bool:
        return self.os_name == "windows"

    @property
    def is_arm(self) -> bool:
        return self.arch == "arm"

    @property
    def needs_arm_sysroot(self) -> bool:
        # android brings its own toolchain through the NDK
        return self.is_arm and not self.is_android

    def gn_args(self) -> List[str]:
        return [f'target_os="{self.target_os}"', f'target_cpu="{self.target_cpu}"']

    def library_name(self, suffix: str) -> str:
        return f"libwebrtc-{self.os_name}-{self.arch}-{suffix}.a"

    def __eq__(self, other):
        if not isinstance(other, Target):
            return NotImplemented
        return (self.os_name, self.arch) == (other.os_name, other.arch)

    def __hash__(self):
        return hash((self.os_name, self.arch))

    def __repr__(self):
        return (
            f"Target({self.label}, target_os={self.target_os}, "
            f"target_cpu={self.target_cpu})"
        )


def resolve_target(os_name: str, arch: str) -> Target:
    """
    Map an OS/arch pair to the gn naming convention.

    Args:
        os_name: GOOS-style OS name (linux, darwin, windows, android)
        arch: GOARCH-style CPU name (386, amd64, arm)

    Returns:
        Target with both spellings

    Raises:
        TargetError: if either name is not in the lookup tables
    """
    os_name = (os_name or "").strip().lower()
    arch = (arch or "").strip().lower()
    if os_name not in TARGET_OS_MAP:
        raise TargetError(
            f"Unsupported OS '{os_name}', expected one of: {', '.join(TARGET_OS_MAP)}"
        )
    if arch not in TARGET_CPU_MAP:
        raise TargetError(
            f"Unsupported arch '{arch}', expected one of: {', '.join(TARGET_CPU_MAP)}"
        )
    return Target(os_name, arch)


def parse_target_spec(spec: str) -> Target:
    """Parse an 'os/arch' string such as 'linux/amd64'."""
    parts = spec.strip().split("/")
    if len(parts) != 2:
        raise TargetError(f"Invalid target '{spec}', expected the form os/arch")
    return resolve_target(parts[0], parts[1])


def parse_target_list(specs: str) -> List[Target]:
    """Parse a comma-separated list of targets, dropping duplicates."""
    targets = []
    for spec in specs.split(","):
        if not spec.strip():
            continue
        target = parse_target_spec(spec)
        if target not in targets:
            targets.append(target)
    if not targets:
        raise TargetError("No targets given")
    return targets


def _go_env(name: str) -> str:
    err_code, output = exec_command_with_timeout_second(["go", "env", name], 30)
    if err_code != 0:
        return ""
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    return lines[-1] if lines else ""


def detect_host_target() -> Tuple[str, str]:
    """
    Find the OS/arch to build for when none is given.

    Uses `go env GOOS` / `go env GOARCH` when a Go toolchain is installed,
    so GOOS/GOARCH in the environment are honoured the same way. Without Go
    the environment variables and then the host platform are used.

    Returns:
        tuple: (os_name, arch), not yet validated against the lookup tables
    """
    goos = goarch = ""
    if shutil.which("go"):
        goos = _go_env("GOOS")
        goarch = _go_env("GOARCH")

    if not goos:
        goos = os.environ.get("GOOS") or HOST_SYSTEM_MAP.get(
            platform.system(), platform.system().lower()
        )
    if not goarch:
        goarch = os.environ.get("GOARCH") or HOST_MACHINE_MAP.get(
            platform.machine(), platform.machine().lower()
        )
    return goos, goarch


def get_ndk_host_tag() -> str:
    """
    Get the NDK host platform tag for prebuilt toolchain paths.

    Returns:
        str: Platform tag (e.g., "darwin-x86_64", "linux-x86_64")
    """
    system_str = platform.system().lower()
    if platform.machine().endswith("64"):
        system_str = system_str + "-x86_64"
    return system_str
