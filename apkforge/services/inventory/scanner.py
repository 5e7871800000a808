"""
Inventory scanning of an Android SDK and its NDKs.

Walks installation directories one level deep and reports what versions are
present. A missing directory means "nothing installed there" and is reported
as None or an empty list; deciding whether that is a problem is the resolver's
job.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path

from ...core.logging import get_logger
from ...models.toolchain import (
    DEFAULT_HOST_TAG,
    BuildTool,
    NdkRecord,
    ndk_arch_lib_dir,
    ndk_include_dir,
)
from .versions import parse_api_level, parse_major_version, parse_ndk_version, version_sort_key

logger = get_logger(__name__)

NameParser = Callable[[str], int | None]

# source.properties is a handful of lines; anything larger is not an NDK manifest.
_PROPERTIES_READ_LIMIT = 4096


def path_exists(path: str | os.PathLike[str]) -> bool:
    """Whether an absolute path exists.

    Empty and relative paths are reported as missing without touching the
    filesystem, so a typo never validates against the working directory.
    """
    raw = os.fspath(path)
    if not raw or not os.path.isabs(raw):
        return False
    return os.path.exists(raw)


def file_exists(path: str | os.PathLike[str]) -> bool:
    """Whether an absolute path exists and is a regular file."""
    raw = os.fspath(path)
    if not raw or not os.path.isabs(raw):
        return False
    return os.path.isfile(raw)


def _child_directories(root: Path) -> list[str]:
    if not path_exists(root):
        return []
    try:
        with os.scandir(root) as entries:
            # A link such as ndk/latest points at an installation already listed.
            return [entry.name for entry in entries if entry.is_dir(follow_symlinks=False)]
    except (FileNotFoundError, NotADirectoryError):
        return []


def find_highest_version(root: Path, parser: NameParser) -> int | None:
    """Highest version among the immediate subdirectories of ``root``.

    Args:
        root: Directory to list.
        parser: Turns a directory name into a version, or None to ignore it.

    Returns:
        The maximum parsed version, or None if ``root`` is absent or nothing parses.
    """
    highest: int | None = None
    for name in _child_directories(root):
        version = parser(name)
        if version is not None and (highest is None or version > highest):
            highest = version
    return highest


def find_highest_build_tools(sdk_root: Path) -> str | None:
    """Directory name of the newest build-tools installation.

    The full name (``"35.0.1"``) is returned because tool paths are built from
    it. Installations sharing a major version are ordered by their full dotted
    version.
    """
    best_name: str | None = None
    best_key: tuple[int, tuple[int, ...]] | None = None
    for name in _child_directories(sdk_root / "build-tools"):
        major = parse_major_version(name)
        if major is None:
            continue
        key = (major, version_sort_key(name))
        if best_key is None or key > best_key:
            best_name, best_key = name, key
    return best_name


def find_highest_api_level(sdk_root: Path) -> int | None:
    """Highest API level with a platform installed in the SDK."""
    return find_highest_version(sdk_root / "platforms", parse_api_level)


def find_highest_ndk_api_level(ndk_root: Path, host_tag: str = DEFAULT_HOST_TAG) -> int | None:
    """Highest API level the NDK ships aarch64 libraries for."""
    return find_highest_version(ndk_arch_lib_dir(ndk_root, host_tag), parse_major_version)


def read_ndk_version(ndk_root: Path) -> int | None:
    """Major version declared in an NDK's ``source.properties``."""
    properties = ndk_root / "source.properties"
    if not file_exists(properties):
        return None
    try:
        with open(properties, encoding="utf-8", errors="replace") as f:
            content = f.read(_PROPERTIES_READ_LIMIT)
    except OSError as e:
        logger.debug("Unreadable source.properties", path=str(properties), error=str(e))
        return None
    return parse_ndk_version(content)


def _ndk_record(ndk_root: Path, host_tag: str) -> NdkRecord:
    return NdkRecord(
        path=ndk_root,
        version=read_ndk_version(ndk_root),
        max_api=find_highest_ndk_api_level(ndk_root, host_tag),
    )


def discover_ndks(sdk_root: Path, host_tag: str = DEFAULT_HOST_TAG) -> list[NdkRecord]:
    """All NDK installations under an SDK.

    Covers every directory in ``<sdk>/ndk`` plus the legacy ``<sdk>/ndk-bundle``.
    Records come back in directory-iteration order, which the filesystem does
    not define: treat the result as an unordered collection and never assume
    the first record is the best one.
    """
    ndks: list[NdkRecord] = []

    ndk_dir = sdk_root / "ndk"
    for name in _child_directories(ndk_dir):
        ndks.append(_ndk_record(ndk_dir / name, host_tag))

    bundle = sdk_root / "ndk-bundle"
    if path_exists(bundle):
        ndks.append(_ndk_record(bundle, host_tag))

    logger.debug("Discovered NDKs", sdk_root=str(sdk_root), count=len(ndks))
    return ndks


def missing_build_tools(sdk_root: Path, version: str) -> list[BuildTool]:
    """Required executables absent from one build-tools installation."""
    return [tool for tool in BuildTool if not file_exists(tool.path_in(sdk_root, version))]


def check_build_tools(sdk_root: Path, version: str) -> bool:
    """Whether a build-tools installation has every required executable."""
    return not missing_build_tools(sdk_root, version)


def check_ndk_components(ndk_root: Path, api_level: int, host_tag: str = DEFAULT_HOST_TAG) -> bool:
    """Whether the NDK has JNI headers and aarch64 libraries for ``api_level``."""
    if not file_exists(ndk_include_dir(ndk_root, host_tag) / "jni.h"):
        return False
    return path_exists(ndk_arch_lib_dir(ndk_root, host_tag) / str(api_level))
