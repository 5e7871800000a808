"""Inventory of installed SDK, build-tools and NDK versions."""

from .scanner import (
    check_build_tools,
    check_ndk_components,
    discover_ndks,
    file_exists,
    find_highest_api_level,
    find_highest_build_tools,
    find_highest_ndk_api_level,
    find_highest_version,
    missing_build_tools,
    path_exists,
    read_ndk_version,
)
from .versions import parse_api_level, parse_major_version, parse_ndk_version, version_sort_key

__all__ = [
    "check_build_tools",
    "check_ndk_components",
    "discover_ndks",
    "file_exists",
    "find_highest_api_level",
    "find_highest_build_tools",
    "find_highest_ndk_api_level",
    "find_highest_version",
    "missing_build_tools",
    "path_exists",
    "read_ndk_version",
    "parse_api_level",
    "parse_major_version",
    "parse_ndk_version",
    "version_sort_key",
]
