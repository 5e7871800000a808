"""
Toolchain data models.

These models describe what was found on disk (NDK installations), what went
wrong while validating it, and the single configuration the build runs with.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, model_validator

# The one architecture this system builds native code for.
TARGET_TRIPLE = "aarch64-linux-android"
TARGET_ABI = "arm64-v8a"
DEFAULT_HOST_TAG = "linux-x86_64"


def ndk_sysroot(ndk_root: Path, host_tag: str = DEFAULT_HOST_TAG) -> Path:
    """Sysroot of the LLVM prebuilt toolchain inside an NDK."""
    return ndk_root / "toolchains" / "llvm" / "prebuilt" / host_tag / "sysroot"


def ndk_include_dir(ndk_root: Path, host_tag: str = DEFAULT_HOST_TAG) -> Path:
    return ndk_sysroot(ndk_root, host_tag) / "usr" / "include"


def ndk_arch_lib_dir(ndk_root: Path, host_tag: str = DEFAULT_HOST_TAG) -> Path:
    """Per-architecture library tree whose children are API-level directories."""
    return ndk_sysroot(ndk_root, host_tag) / "usr" / "lib" / TARGET_TRIPLE


class BuildTool(str, Enum):
    """Executables every build-tools installation must provide."""

    AAPT2 = "aapt2"
    D8 = "d8"
    ZIPALIGN = "zipalign"
    APKSIGNER = "apksigner"

    @property
    def path_template(self) -> str:
        """SDK-relative location, with the build-tools version left open."""
        return f"build-tools/{{version}}/{self.value}"

    def path_in(self, sdk_root: Path, version: str) -> Path:
        """Fully-qualified path of this tool for one build-tools version."""
        return sdk_root / self.path_template.format(version=version)


class ValidationError(BaseModel):
    """One problem found while validating the installed toolchain."""

    model_config = ConfigDict(frozen=True)

    component: str = Field(description="Toolchain component the problem belongs to")
    message: str = Field(description="What is wrong")
    suggestion: str = Field(description="What the operator can do about it")


class NdkRecord(BaseModel):
    """One discovered NDK installation."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(description="Absolute path of the installation")
    version: int | None = Field(default=None, description="Major version from source.properties")
    max_api: int | None = Field(
        default=None, description="Highest API level with aarch64 libraries, None if there are none"
    )

    @property
    def usable(self) -> bool:
        """Whether the installation ships libraries for the target architecture."""
        return self.max_api is not None


class ResolvedConfiguration(BaseModel):
    """The one consistent toolchain configuration a build runs with."""

    model_config = ConfigDict(frozen=True)

    sdk_root: Path
    ndk_root: Path
    build_tools_version: str = Field(min_length=1)
    api_level: int = Field(ge=1, le=255, description="Effective target API level")
    min_sdk_version: int = Field(ge=1, le=255)
    host_tag: str = Field(default=DEFAULT_HOST_TAG)

    @property
    def target_sdk_version(self) -> int:
        return self.api_level

    @property
    def build_tools_dir(self) -> Path:
        return self.sdk_root / "build-tools" / self.build_tools_version

    def tool(self, tool: BuildTool) -> Path:
        """Fully-qualified path of a build-tools executable."""
        return tool.path_in(self.sdk_root, self.build_tools_version)

    @property
    def platform_dir(self) -> Path:
        return self.sdk_root / "platforms" / f"android-{self.api_level}"

    @property
    def android_jar(self) -> Path:
        return self.platform_dir / "android.jar"

    @property
    def adb(self) -> Path:
        return self.sdk_root / "platform-tools" / "adb"

    @property
    def ndk_sysroot(self) -> Path:
        return ndk_sysroot(self.ndk_root, self.host_tag)

    @property
    def ndk_include_dir(self) -> Path:
        return ndk_include_dir(self.ndk_root, self.host_tag)

    @property
    def ndk_lib_dir(self) -> Path:
        """Library directory for the effective API level."""
        return ndk_arch_lib_dir(self.ndk_root, self.host_tag) / str(self.api_level)


class DetectedConfiguration(BaseModel):
    """Best-effort view of what validation saw; for display only, never for building."""

    model_config = ConfigDict(frozen=True)

    sdk_root: Path | None = None
    ndk_root: Path | None = None
    build_tools_version: str | None = None
    api_level: int | None = None


class Resolution(BaseModel):
    """Either a usable configuration or the list of reasons there is none."""

    model_config = ConfigDict(frozen=True)

    configuration: ResolvedConfiguration | None = None
    detected: DetectedConfiguration = Field(default_factory=DetectedConfiguration)
    errors: tuple[ValidationError, ...] = ()

    @model_validator(mode="after")
    def _check_tag(self) -> Resolution:
        if (self.configuration is None) == (not self.errors):
            raise ValueError("a resolution carries a configuration exactly when it has no errors")
        return self

    @classmethod
    def ok(cls, configuration: ResolvedConfiguration) -> Resolution:
        """Create a successful resolution."""
        detected = DetectedConfiguration(
            sdk_root=configuration.sdk_root,
            ndk_root=configuration.ndk_root,
            build_tools_version=configuration.build_tools_version,
            api_level=configuration.api_level,
        )
        return cls(configuration=configuration, detected=detected)

    @classmethod
    def fail(cls, errors: list[ValidationError], detected: DetectedConfiguration) -> Resolution:
        """Create a failed resolution; the error order is preserved as given."""
        return cls(errors=tuple(errors), detected=detected)

    @property
    def success(self) -> bool:
        return self.configuration is not None

    def has_errors(self) -> bool:
        return bool(self.errors)
