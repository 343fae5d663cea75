#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_utils.py
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
Build utility functions shared by the WebRTC build stages.

This module provides:
- Console banners and timing output
- File operations (copy, remove, directory creation)
- PATH manipulation for depot_tools
- Git integration (revision and remote of a checkout)
"""

import os
import platform
import shutil
import stat
import subprocess

if platform.system() == "Windows":
    PATH_SEPARATOR = ";"
else:
    PATH_SEPARATOR = ":"


def print_banner(title):
    print(f"\n=================={title}========================")


def print_step(message):
    print(f"\n{message} ...")


def format_elapsed_time(elapsed: float) -> str:
    """Format elapsed time in a human-readable format."""
    if elapsed < 60:
        return f"{elapsed:.1f}s"
    elif elapsed < 3600:
        minutes = int(elapsed // 60)
        seconds = elapsed % 60
        return f"{minutes}m {seconds:.0f}s"
    else:
        hours = int(elapsed // 3600)
        minutes = int((elapsed % 3600) // 60)
        return f"{hours}h {minutes}m"


def print_build_time(elapsed: float):
    """Print the build time in a human-readable format."""
    if elapsed < 60:
        print(f"\n⏱ Build completed in {elapsed:.2f} seconds")
    elif elapsed < 3600:
        minutes = int(elapsed // 60)
        seconds = elapsed % 60
        print(f"\n⏱ Build completed in {minutes} min {seconds:.1f} sec")
    else:
        hours = int(elapsed // 3600)
        minutes = int((elapsed % 3600) // 60)
        seconds = elapsed % 60
        print(f"\n⏱ Build completed in {hours} hr {minutes} min {seconds:.0f} sec")


def mkdir_p(path):
    os.makedirs(path, exist_ok=True)


def _on_rmtree_error(func, path, exc_info):
    # read-only files (git objects on Windows)
    if not os.access(path, os.W_OK):
        os.chmod(path, stat.S_IWUSR)
        func(path)
    else:
        raise exc_info[1]


def rm_rf(path):
    """
    Remove a file or a directory tree if it exists.

    Returns:
        bool: True if something was removed
    """
    if os.path.islink(path) or os.path.isfile(path):
        os.remove(path)
        return True
    if os.path.isdir(path):
        shutil.rmtree(path, onerror=_on_rmtree_error)
        return True
    return False


def copy_file(src, dst):
    """
    Copy a file or directory, creating destination directories as needed.

    Args:
        src: Source file or directory path
        dst: Destination file or directory path

    Note:
        If src is a directory, the entire tree is copied recursively.
    """
    if not os.path.exists(src):
        return
    if os.path.isfile(src):
        parent = os.path.dirname(dst)
        if parent:
            os.makedirs(parent, exist_ok=True)
        shutil.copy(src, dst)
    else:
        shutil.copytree(src, dst, dirs_exist_ok=True)


def add_path(path, is_after=True):
    """Add a directory to PATH of this process and its children."""
    path = str(path)
    current = os.environ.get("PATH", "")
    entries = current.split(PATH_SEPARATOR) if current else []
    if path in entries:
        return
    if not current:
        os.environ["PATH"] = path
    elif is_after:
        os.environ["PATH"] = current + PATH_SEPARATOR + path
    else:
        os.environ["PATH"] = path + PATH_SEPARATOR + current


def _git_output(args, cwd):
    try:
        result = subprocess.run(
            ["git"] + args,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=60,
        )
    except (OSError, subprocess.TimeoutExpired):
        return ""
    if result.returncode != 0:
        return ""
    return result.stdout.strip()


def is_git_work_tree(path):
    return _git_output(["rev-parse", "--is-inside-work-tree"], path) == "true"


def parse_as_git(path):
    """
    Extract git repository information (revision, branch, remote URL).

    Args:
        path: Path to git repository directory

    Returns:
        tuple: (revision, branch, url)
            - revision: Short commit hash ("unknown" if not available)
            - branch: Current branch name ("unknown" if not available)
            - url: Remote origin URL ("" if not available, with OAuth2 credentials removed)
    """
    revision = _git_output(["rev-parse", "--short", "HEAD"], path) or "unknown"
    branch = _git_output(["rev-parse", "--abbrev-ref", "HEAD"], path) or "unknown"
    url = _git_output(["remote", "get-url", "origin"], path)

    # Remove OAuth2 credentials from URL for security
    if url:
        pos = url.find("oauth2")
        if pos >= 0:
            pos_to_trim = url.find("@")
            if pos_to_trim >= 0:
                url = "git" + url[pos_to_trim:]

    return revision, branch, url

