#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_webrtc.py
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
WebRTC native build step.

Runs WebRTC's own generator and build executor inside the src checkout:

    gn gen out/<config> --args="target_os=... target_cpu=... is_debug=false ..."
    ninja -C out/<config> webrtc field_trial metrics_default pc_test_utils

Requirements:
- depot_tools on PATH (gn and ninja come from there)
- A synced WebRTC checkout (see source_manager.py)
"""

from typing import List, Optional

from rtcbuild.build_scripts.build_utils import print_step
from rtcbuild.build_scripts.targets import Target
from rtcbuild.utils.cmd.cmd_util import CommandFailedError, run_command
from rtcbuild.utils.config.build_config import BuildConfig
from rtcbuild.utils.errors import RtcBuildError


class BuildError(RtcBuildError):
    """Raised when gn or ninja fail"""
    pass


def gn_args(target: Target, config: BuildConfig) -> List[str]:
    """
    Assemble the gn --args list for a target.

    The OS/CPU pair comes first, followed by the fixed build flags and any
    extra_gn_args from RTCBUILD.toml.
    """
    return target.gn_args() + config.gn_build_args()


def gn_gen_command(target: Target, config: BuildConfig) -> List[str]:
    return [
        "gn",
        "gen",
        f"out/{config.config_name}",
        "--args=" + " ".join(gn_args(target, config)),
    ]


def ninja_command(config: BuildConfig, jobs: Optional[int] = None) -> List[str]:
    cmd = ["ninja", "-C", f"out/{config.config_name}"]
    if jobs is not None:
        cmd += ["-j", str(jobs)]
    return cmd + list(config.ninja_targets)


def _run(args, config: BuildConfig):
    try:
        run_command(args, cwd=str(config.webrtc_src))
    except CommandFailedError as e:
        raise BuildError(str(e)) from e
    except OSError as e:
        raise BuildError(f"Failed to run {args[0]}: {e}") from e


def build_webrtc(target: Target, config: BuildConfig, jobs: Optional[int] = None):
    """
    Generate ninja files and build the configured targets.

    Args:
        target: Target OS/CPU pair
        config: Resolved build configuration
        jobs: Parallel jobs for ninja, ninja's own default if None

    Raises:
        BuildError: if the generator or the build fails
    """
    if not config.webrtc_src.is_dir():
        raise BuildError(f"WebRTC sources not found at {config.webrtc_src}, run sync first")

    print_step(f"Building webrtc for TARGET_OS {target.target_os} and TARGET_CPU {target.target_cpu}")
    _run(gn_gen_command(target, config), config)
    _run(ninja_command(config, jobs), config)
