"""
Build configuration utilities for rtcbuild.
"""

from .build_config import BuildConfig, ConfigError, load_build_config

__all__ = ['BuildConfig', 'ConfigError', 'load_build_config']
