"""
Configuration management for apkforge.

Provides centralized, type-safe configuration with environment variable overrides
and sensible defaults for toolchain discovery and the build pipeline.
"""

from __future__ import annotations

import os
import platform
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr

# Load .env file if it exists (looks in cwd and parent directories)
load_dotenv()

DEFAULT_SDK_ROOT = "/opt/android-sdk"


def detect_host_tag() -> str:
    """Return the NDK prebuilt host directory name for the running machine."""
    system = platform.system().lower()
    if system == "darwin":
        return "darwin-x86_64"
    if system == "windows":
        return "windows-x86_64"
    return "linux-x86_64"


def _env_sdk_root() -> Path:
    return Path(
        os.environ.get("ANDROID_SDK_ROOT")
        or os.environ.get("ANDROID_HOME")
        or DEFAULT_SDK_ROOT
    ).expanduser()


class PolicyConfig(BaseModel):
    """Minimum versions the toolchain must satisfy."""

    min_api_level: int = Field(default=26, ge=21, le=255, description="Lowest acceptable target API level")
    min_ndk_major: int = Field(default=25, ge=21, le=255, description="Lowest acceptable NDK major version")
    min_build_tools_major: int = Field(
        default=30, ge=28, le=255, description="Lowest acceptable build-tools major version"
    )


class AndroidConfig(BaseModel):
    """Where the SDK and NDK live, plus optional pins."""

    sdk_root: Path = Field(default_factory=_env_sdk_root, description="Android SDK root path")
    ndk_root: Path | None = Field(
        default=None, description="Android NDK root path (defaults to <sdk>/ndk-bundle)"
    )
    build_tools_version: str | None = Field(
        default=None, description="Build-tools version (auto-detected if not set)"
    )
    api_level: int | None = Field(
        default=None, ge=1, le=255, description="Target API level (auto-detected if not set)"
    )
    min_sdk: int | None = Field(
        default=None, ge=1, le=255, description="Minimum SDK version (defaults to policy minimum)"
    )
    host_tag: str = Field(default_factory=detect_host_tag, description="NDK prebuilt host directory")

    @property
    def effective_ndk_root(self) -> Path:
        """NDK root to validate, falling back to the legacy bundle location."""
        return self.ndk_root if self.ndk_root is not None else self.sdk_root / "ndk-bundle"


class ProjectConfig(BaseModel):
    """Layout of the application being packaged."""

    project_dir: Path = Field(default_factory=Path.cwd, description="Project root directory")
    build_dir: Path = Field(default=Path("build"), description="Build directory (relative to project)")
    app_name: str = Field(default="helloworld", description="Artifact and native library base name")
    app_label: str = Field(default="Hello World", description="Value of the app_name string resource")
    source_root: Path = Field(default=Path("android"), description="Java source root")
    entry_point: Path = Field(
        default=Path("android/MainActivity.java"), description="Platform entry-point source file"
    )
    manifest: Path = Field(default=Path("android/Manifest.xml"), description="AndroidManifest.xml")
    layout: Path = Field(default=Path("src/ui.xml"), description="Main activity layout")
    native_library: Path = Field(
        default=Path("zig-out/lib/libhelloworld.so"), description="Built native shared library"
    )
    native_build_command: list[str] = Field(
        default_factory=list, description="Command producing the native library (empty: prebuilt)"
    )
    java_release: str = Field(default="11", description="javac -source/-target level")
    keystore_path: Path = Field(
        default_factory=lambda: Path("~/.android/debug.keystore").expanduser(),
        description="Signing keystore",
    )
    key_alias: str = Field(default="androiddebugkey", description="Signing key alias")
    keystore_password: SecretStr = Field(default=SecretStr("android"))
    key_password: SecretStr = Field(default=SecretStr("android"))

    def resolve(self, path: Path) -> Path:
        """Anchor a project-relative path at the project directory."""
        return path if path.is_absolute() else self.project_dir / path

    @property
    def build_path(self) -> Path:
        return self.resolve(self.build_dir)

    @property
    def unsigned_apk(self) -> Path:
        return self.build_path / f"{self.app_name}-unsigned.apk"

    @property
    def aligned_apk(self) -> Path:
        return self.build_path / f"{self.app_name}-aligned.apk"

    @property
    def signed_apk(self) -> Path:
        return self.build_path / f"{self.app_name}.apk"


class PipelineConfig(BaseModel):
    """Pipeline execution configuration."""

    tool_timeout_seconds: int = Field(default=300, ge=1, description="Per-command timeout")
    default_target: Literal["package-artifact", "sign-artifact", "verify-artifact", "deploy-artifact"] = Field(
        default="sign-artifact", description="Step built when no target is named"
    )


class Config(BaseModel):
    """Root configuration for apkforge."""

    project_name: str = Field(default="apkforge", description="Project identifier")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: Literal["auto", "console", "json"] = Field(
        default="auto", description="Log rendering; auto picks console on a terminal, JSON otherwise"
    )
    android: AndroidConfig = Field(default_factory=AndroidConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    model_config = {"extra": "ignore"}

    @property
    def min_sdk(self) -> int:
        """Minimum SDK passed to the resolver and to aapt2."""
        return self.android.min_sdk if self.android.min_sdk is not None else self.policy.min_api_level

    @classmethod
    def from_env(cls) -> Config:
        """Create configuration from environment variables."""
        api_level = os.environ.get("APKFORGE_API_LEVEL")
        min_sdk = os.environ.get("APKFORGE_MIN_SDK")
        ndk_root = os.environ.get("ANDROID_NDK_ROOT")
        return cls(
            log_level=os.environ.get("APKFORGE_LOG_LEVEL", "INFO"),  # type: ignore
            log_format=os.environ.get("APKFORGE_LOG_FORMAT", "auto"),  # type: ignore
            android=AndroidConfig(
                ndk_root=Path(ndk_root).expanduser() if ndk_root else None,
                build_tools_version=os.environ.get("APKFORGE_BUILD_TOOLS") or None,
                api_level=int(api_level) if api_level else None,
                min_sdk=int(min_sdk) if min_sdk else None,
            ),
            pipeline=PipelineConfig(
                tool_timeout_seconds=int(os.environ.get("APKFORGE_TOOL_TIMEOUT", "300")),
            ),
        )


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.from_env()
