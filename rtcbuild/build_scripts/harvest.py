#!/usr/bin/env python3
# -- coding: utf-8 --
#
# harvest.py
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
Artifact harvesting for a finished WebRTC build.

Two outputs are produced in the project directory:
- include/: every header of the WebRTC src tree (generated ones included)
  at its relative path, optionally pruned to the headers the project tracks
- lib/libwebrtc-<os>-<arch>-<suffix>.a: all object files under out/<config>/obj
  archived into one static library with the target's archiver

Archivers:
- darwin: libtool -static, then strip -S -x
- android: the NDK's binutils ar shipped inside the WebRTC checkout
- linux/arm: arm-linux-gnueabihf-ar (binutils-arm-linux-gnueabihf)
- windows: lib.exe
- otherwise: ar
"""

import os
import shutil
from pathlib import Path
from typing import List

from rtcbuild.build_scripts.build_utils import (
    copy_file,
    is_git_work_tree,
    mkdir_p,
    print_step,
    rm_rf,
)
from rtcbuild.build_scripts.targets import Target, get_ndk_host_tag
from rtcbuild.utils.cmd.cmd_util import CommandFailedError, run_command
from rtcbuild.utils.config.build_config import BuildConfig
from rtcbuild.utils.errors import RtcBuildError

FILELIST_NAME = "filelist"

# GOARCH -> (toolchain directory, binutils prefix)
ANDROID_NDK_TOOLCHAINS = {
    "arm": ("arm-linux-androideabi-4.9", "arm-linux-androideabi"),
    "386": ("x86-4.9", "i686-linux-android"),
    "amd64": ("x86_64-4.9", "x86_64-linux-android"),
}

ARM_LINUX_AR = "arm-linux-gnueabihf-ar"


class HarvestError(RtcBuildError):
    """Raised when headers or objects cannot be collected"""
    pass


def copy_headers(src_root, include_dir) -> int:
    """
    Replace include_dir with a copy of every header under src_root.

    Headers keep their path relative to src_root. Symlinked files and
    directories are not followed.

    Returns:
        int: Number of headers copied
    """
    src_root = str(src_root)
    include_dir = str(include_dir)
    if not os.path.isdir(src_root):
        raise HarvestError(f"Header source directory not found: {src_root}")

    rm_rf(include_dir)
    mkdir_p(include_dir)

    count = 0
    for root, dirs, files in os.walk(src_root):
        dirs[:] = sorted(d for d in dirs if d != ".git")
        for name in sorted(files):
            if not name.endswith(".h"):
                continue
            src = os.path.join(root, name)
            if os.path.islink(src):
                continue
            rel_path = os.path.relpath(src, src_root)
            copy_file(src, os.path.join(include_dir, rel_path))
            count += 1
    return count


def prune_untracked_headers(project_dir, include_dir) -> bool:
    """
    Drop copied headers the project does not track in git.

    Returns:
        bool: False when the project is not a git work tree and nothing was done
    """
    if not is_git_work_tree(str(project_dir)):
        print(f"   ⚠️  Warning: {project_dir} is not a git work tree, keeping all headers")
        return False
    try:
        run_command(["git", "clean", "-fd", str(include_dir)], cwd=str(project_dir))
    except CommandFailedError as e:
        raise HarvestError(str(e)) from e
    return True


def collect_objects(out_dir, extension=".o") -> List[str]:
    """
    List compiled objects below out_dir/obj.

    Returns:
        Sorted paths relative to out_dir, with forward slashes
    """
    out_dir = str(out_dir)
    obj_dir = os.path.join(out_dir, "obj")
    objects = []
    for root, dirs, files in os.walk(obj_dir):
        for name in files:
            if name.endswith(extension):
                rel_path = os.path.relpath(os.path.join(root, name), out_dir)
                objects.append(Path(rel_path).as_posix())
    return sorted(objects)


def android_ar_path(target: Target, config: BuildConfig) -> Path:
    toolchain, prefix = ANDROID_NDK_TOOLCHAINS[target.arch]
    return (
        config.webrtc_src
        / "third_party"
        / "android_ndk"
        / "toolchains"
        / toolchain
        / "prebuilt"
        / get_ndk_host_tag()
        / "bin"
        / f"{prefix}-ar"
    )


def archiver_program(target: Target, config: BuildConfig) -> str:
    """The tool that creates the static library for a target."""
    if target.is_darwin:
        return "libtool"
    if target.is_android:
        return str(android_ar_path(target, config))
    if target.is_windows:
        return "lib"
    if target.is_arm:
        return ARM_LINUX_AR
    return "ar"


def archiver_commands(
    target: Target, config: BuildConfig, output_name: str, filelist: str = FILELIST_NAME
) -> List[List[str]]:
    """
    Commands, run inside out/<config>, that archive the objects in filelist.

    ar crs means:
    - r option: add/replace files in the static library
    - c option: create library if it doesn't exist
    - s option: create symbol table for linking
    """
    program = archiver_program(target, config)
    if target.is_darwin:
        return [
            [program, "-static", "-o", output_name, "-filelist", filelist],
            ["strip", "-S", "-x", "-o", output_name, output_name],
        ]
    if target.is_windows:
        return [[program, "/NOLOGO", f"/OUT:{output_name}", f"@{filelist}"]]
    return [[program, "crs", output_name, f"@{filelist}"]]


def archive_library(target: Target, config: BuildConfig) -> Path:
    """
    Archive every object of the build into lib/libwebrtc-<os>-<arch>-<suffix>.a.

    Returns:
        Path of the produced library
    """
    out_dir = config.out_dir
    if not out_dir.is_dir():
        raise HarvestError(f"Build output not found: {out_dir}")

    extension = ".obj" if target.is_windows else ".o"
    objects = collect_objects(out_dir, extension)
    if not objects:
        raise HarvestError(f"No {extension} files found under {out_dir / 'obj'}")

    print_step(f"Concatenating {len(objects)} objects")
    filelist = out_dir / FILELIST_NAME
    filelist.write_text("\n".join(objects) + "\n")

    # ar appends to an existing archive
    temp_name = f"libwebrtc-{config.lib_suffix}.a"
    rm_rf(out_dir / temp_name)

    for cmd in archiver_commands(target, config, temp_name):
        try:
            run_command(cmd, cwd=str(out_dir))
        except CommandFailedError as e:
            raise HarvestError(str(e)) from e
        except OSError as e:
            raise HarvestError(f"Failed to run {cmd[0]}: {e}") from e

    mkdir_p(config.lib_dir)
    output = config.lib_dir / target.library_name(config.lib_suffix)
    rm_rf(output)
    shutil.move(str(out_dir / temp_name), str(output))
    print(f"Built {output}")
    return output


def harvest_headers(config: BuildConfig, prune: bool = True) -> int:
    print_step("Copying headers")
    count = copy_headers(config.webrtc_src, config.include_dir)
    print(f"Copied {count} headers to {config.include_dir}")
    if prune and config.prune_untracked_headers:
        prune_untracked_headers(config.project_dir, config.include_dir)
    return count
