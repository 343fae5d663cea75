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
Build configuration handler for rtcbuild.

Reads RTCBUILD.toml from the project directory. Every key is optional, the
defaults reproduce the pinned WebRTC build this tool was written for.

Configuration structure:
    [webrtc]
    repo = "https://chromium.googlesource.com/external/webrtc"
    commit = "88f5d9180eae78a6162cccd78850ff416eb82483"
    with_branch_heads = true

    [depot_tools]
    repo = "https://chromium.googlesource.com/chromium/tools/depot_tools.git"

    [build]
    config = "Release"
    ninja_targets = ["webrtc", "field_trial", "metrics_default", "pc_test_utils"]
    is_debug = false
    use_custom_libcxx = false
    extra_gn_args = { rtc_include_tests = false }

    [output]
    third_party_dir = "third_party"
    include_dir = "include"
    lib_dir = "lib"
    lib_suffix = "magic"
    prune_untracked_headers = true
"""

import os
import re
import sys
from pathlib import Path, PurePath
from typing import Any, Dict, List, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from rtcbuild.utils.errors import RtcBuildError

CONFIG_FILE_NAME = "RTCBUILD.toml"

DEFAULT_WEBRTC_REPO = "https://chromium.googlesource.com/external/webrtc"
# branch-heads/64
DEFAULT_WEBRTC_COMMIT = "88f5d9180eae78a6162cccd78850ff416eb82483"
DEFAULT_DEPOT_TOOLS_REPO = (
    "https://chromium.googlesource.com/chromium/tools/depot_tools.git"
)
DEFAULT_BUILD_CONFIG = "Release"
DEFAULT_NINJA_TARGETS = ["webrtc", "field_trial", "metrics_default", "pc_test_utils"]
DEFAULT_LIB_SUFFIX = "magic"


class ConfigError(RtcBuildError):
    """Raised for unreadable or malformed RTCBUILD.toml files"""
    pass


class BuildConfig:
    """Resolved build settings and the project paths derived from them."""

    def __init__(self, config: Dict[str, Any], project_dir):
        """
        Initialize build configuration.

        Args:
            config: Configuration dictionary from RTCBUILD.toml
            project_dir: Directory the outputs are produced in
        """
        self.raw_config = config
        self.project_dir = Path(project_dir).resolve()

        webrtc = config.get("webrtc", {})
        self.webrtc_repo = self._expand_env(webrtc.get("repo", DEFAULT_WEBRTC_REPO))
        self.commit = self._expand_env(webrtc.get("commit", DEFAULT_WEBRTC_COMMIT))
        self.with_branch_heads = webrtc.get("with_branch_heads", True)

        depot_tools = config.get("depot_tools", {})
        self.depot_tools_repo = self._expand_env(
            depot_tools.get("repo", DEFAULT_DEPOT_TOOLS_REPO)
        )

        build = config.get("build", {})
        self.config_name = self._expand_env(build.get("config", DEFAULT_BUILD_CONFIG))
        self.ninja_targets = build.get("ninja_targets", list(DEFAULT_NINJA_TARGETS))
        self.is_debug = build.get("is_debug", False)
        self.use_custom_libcxx = build.get("use_custom_libcxx", False)
        self.extra_gn_args = build.get("extra_gn_args", {})

        output = config.get("output", {})
        self.third_party_name = output.get("third_party_dir", "third_party")
        self.include_name = output.get("include_dir", "include")
        self.lib_name = output.get("lib_dir", "lib")
        self.lib_suffix = output.get("lib_suffix", DEFAULT_LIB_SUFFIX)
        self.prune_untracked_headers = output.get("prune_untracked_headers", True)

        self.validate()

    def _expand_env(self, value: str) -> str:
        """
        Expand environment variables in configuration values.

        Supports ${VAR_NAME} and $VAR_NAME syntax.
        """
        if not isinstance(value, str):
            return value

        # Pattern for ${VAR_NAME}
        pattern1 = re.compile(r'\$\{([^}]+)\}')
        value = pattern1.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)

        # Pattern for $VAR_NAME
        pattern2 = re.compile(r'\$([A-Za-z_][A-Za-z0-9_]*)')
        value = pattern2.sub(lambda m: os.environ.get(m.group(1), m.group(0)), value)

        return value

    def validate(self):
        if not isinstance(self.commit, str) or not self.commit.strip():
            raise ConfigError("webrtc.commit must be a non-empty revision")
        if not _is_plain_name(self.config_name):
            raise ConfigError(f"build.config is not a valid directory name: {self.config_name!r}")
        if not isinstance(self.ninja_targets, list) or not self.ninja_targets:
            raise ConfigError("build.ninja_targets must be a non-empty list of strings")
        if not all(isinstance(t, str) and t for t in self.ninja_targets):
            raise ConfigError("build.ninja_targets must be a non-empty list of strings")
        for key in ("is_debug", "use_custom_libcxx"):
            if not isinstance(getattr(self, key), bool):
                raise ConfigError(f"build.{key} must be true or false")
        if not isinstance(self.extra_gn_args, dict):
            raise ConfigError("build.extra_gn_args must be a table")
        for key, value in self.extra_gn_args.items():
            if not isinstance(value, (bool, int, float, str)):
                raise ConfigError(
                    f"build.extra_gn_args.{key} must be a bool, number or string"
                )
        if not _is_plain_name(self.lib_suffix):
            raise ConfigError(f"output.lib_suffix is not a valid file name part: {self.lib_suffix!r}")
        self._validate_output_dirs()

    def _validate_output_dirs(self):
        """Output directories live inside the project and never overlap."""
        dirs = {
            "output.third_party_dir": self.third_party_name,
            "output.include_dir": self.include_name,
            "output.lib_dir": self.lib_name,
        }
        for key, name in dirs.items():
            if not isinstance(name, str):
                raise ConfigError(f"{key} must be a string")
            path = PurePath(name)
            if path.anchor or not path.parts or ".." in path.parts:
                raise ConfigError(
                    f"{key} must be a relative directory inside the project: {name!r}"
                )

        resolved = {
            "output.third_party_dir": self.third_party_dir,
            "output.include_dir": self.include_dir,
            "output.lib_dir": self.lib_dir,
        }
        keys = list(resolved)
        for i, key in enumerate(keys):
            for other in keys[i + 1:]:
                if _overlaps(resolved[key], resolved[other]):
                    raise ConfigError(f"{key} and {other} must not overlap")

    def override(self, commit: Optional[str] = None, config_name: Optional[str] = None):
        """Apply command line overrides on top of the file values."""
        if commit:
            self.commit = commit
        if config_name:
            self.config_name = config_name
        self.validate()
        return self

    @property
    def third_party_dir(self) -> Path:
        return self.project_dir / self.third_party_name

    @property
    def depot_tools_dir(self) -> Path:
        return self.third_party_dir / "depot_tools"

    @property
    def webrtc_dir(self) -> Path:
        return self.third_party_dir / "webrtc"

    @property
    def webrtc_src(self) -> Path:
        return self.webrtc_dir / "src"

    @property
    def out_dir(self) -> Path:
        return self.webrtc_src / "out" / self.config_name

    @property
    def include_dir(self) -> Path:
        return self.project_dir / self.include_name

    @property
    def lib_dir(self) -> Path:
        return self.project_dir / self.lib_name

    def gn_build_args(self) -> List[str]:
        """Build flags passed to gn after the target OS/CPU pair."""
        args = [
            f"is_debug={format_gn_value(self.is_debug)}",
            f"use_custom_libcxx={format_gn_value(self.use_custom_libcxx)}",
        ]
        for key, value in self.extra_gn_args.items():
            args.append(f"{key}={format_gn_value(value)}")
        return args

    def __repr__(self):
        return (
            f"BuildConfig(project_dir={self.project_dir}, commit={self.commit}, "
            f"config={self.config_name})"
        )


def _is_plain_name(name) -> bool:
    """True for a single path component that is not '.' or '..'."""
    if not isinstance(name, str) or name in ("", ".", ".."):
        return False
    if "/" in name or "\\" in name:
        return False
    return PurePath(name).name == name


def _overlaps(a: Path, b: Path) -> bool:
    return a == b or a in b.parents or b in a.parents


def format_gn_value(value) -> str:
    """Render a TOML scalar the way gn expects it in --args."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return f'"{value}"'


def load_build_config(project_dir=None) -> BuildConfig:
    """
    Load RTCBUILD.toml from the project directory.

    Args:
        project_dir: Project directory (default: current working directory)

    Returns:
        BuildConfig instance, built from defaults when the file is missing
    """
    project_dir = Path(project_dir or os.getcwd())
    config_file = project_dir / CONFIG_FILE_NAME

    if not config_file.is_file():
        print(f"   ⚠️  Warning: {CONFIG_FILE_NAME} not found at {config_file}")
        print("   ⚠️  Using default configuration values")
        return BuildConfig({}, project_dir)

    try:
        with open(config_file, "rb") as f:
            toml_data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Error reading {config_file}: {e}") from e

    return BuildConfig(toml_data, project_dir)
