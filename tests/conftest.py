"""Test configuration for apkforge."""

import pytest
from pathlib import Path
import tempfile

BUILD_TOOLS = ("aapt2", "d8", "zipalign", "apksigner")
HOST_TAG = "linux-x86_64"


class FakeSdk:
    """Builds an Android SDK/NDK directory layout under a temporary root.

    Only the directories and marker files the scanner looks at are created;
    the "executables" are empty files.
    """

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def add_platform(self, level):
        path = self.root / "platforms" / f"android-{level}"
        path.mkdir(parents=True, exist_ok=True)
        (path / "android.jar").write_bytes(b"")
        return path

    def add_build_tools(self, version, tools=BUILD_TOOLS):
        path = self.root / "build-tools" / version
        path.mkdir(parents=True, exist_ok=True)
        for tool in tools:
            (path / tool).write_text("#!/bin/sh\n")
        return path

    def add_ndk(self, path, revision="27.0.12077973", api_levels=(21, 28, 35), jni=True, key="Pkg.Revision = "):
        path.mkdir(parents=True, exist_ok=True)
        if revision is not None:
            (path / "source.properties").write_text(f"Pkg.Desc = Android NDK\n{key}{revision}\n")
        sysroot = path / "toolchains" / "llvm" / "prebuilt" / HOST_TAG / "sysroot"
        include = sysroot / "usr" / "include"
        include.mkdir(parents=True, exist_ok=True)
        if jni:
            (include / "jni.h").write_text("/* jni */\n")
        for level in api_levels:
            (sysroot / "usr" / "lib" / "aarch64-linux-android" / str(level)).mkdir(parents=True, exist_ok=True)
        return path

    def add_versioned_ndk(self, name, **kwargs):
        return self.add_ndk(self.root / "ndk" / name, **kwargs)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests.

    Yields:
        Path: A Path object pointing to the temporary directory.
            The directory is automatically cleaned up after the test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def fake_sdk(temp_dir):
    """An empty SDK root that tests populate as needed.

    Returns:
        FakeSdk: Builder rooted at ``<temp_dir>/sdk``.
    """
    return FakeSdk(temp_dir / "sdk")


@pytest.fixture
def android_sdk(fake_sdk):
    """A complete, healthy SDK: API 35, build-tools 35.0.0 and NDK r27 up to API 35.

    Returns:
        FakeSdk: Builder with the default installation in place; the NDK lives at
            ``sdk/ndk/27.0.12077973``.
    """
    fake_sdk.add_platform(35)
    fake_sdk.add_build_tools("35.0.0")
    fake_sdk.add_versioned_ndk("27.0.12077973")
    return fake_sdk


@pytest.fixture
def ndk_path(android_sdk):
    """Path of the NDK installed by ``android_sdk``."""
    return android_sdk.root / "ndk" / "27.0.12077973"
