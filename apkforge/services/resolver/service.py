"""
Capability Resolver Service.

Reconciles the independently versioned SDK platforms, build-tools and NDK into
one effective configuration, or explains every reason there is none.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from ...core.config import Config, PolicyConfig
from ...core.logging import get_logger
from ...models.toolchain import (
    DEFAULT_HOST_TAG,
    TARGET_TRIPLE,
    DetectedConfiguration,
    Resolution,
    ResolvedConfiguration,
    ValidationError,
    ndk_include_dir,
)
from ..inventory import (
    check_ndk_components,
    file_exists,
    find_highest_api_level,
    find_highest_build_tools,
    find_highest_ndk_api_level,
    missing_build_tools,
    parse_major_version,
    path_exists,
    read_ndk_version,
)

logger = get_logger(__name__)

RECOMMENDED_NDK = "27.2.12479018"
RECOMMENDED_BUILD_TOOLS = "35.0.0"
RECOMMENDED_PLATFORM = 35

Errors = list[ValidationError]


class ResolverInputs(BaseModel):
    """Everything the resolver needs to know about the machine and the user's wishes."""

    sdk_root: Path = Field(description="Android SDK root")
    ndk_root: Path = Field(description="Android NDK root")
    build_tools_version: str | None = Field(default=None, description="Pinned build-tools version")
    api_level: int | None = Field(default=None, ge=1, le=255, description="Pinned target API level")
    min_sdk: int = Field(ge=1, le=255, description="Minimum SDK the app supports")

    @field_validator("build_tools_version")
    @classmethod
    def _blank_pin_is_unset(cls, value: str | None) -> str | None:
        """A blank pin means "auto-detect", never the build-tools directory itself."""
        if value is None or not value.strip():
            return None
        return value.strip()

    @classmethod
    def from_config(cls, config: Config) -> ResolverInputs:
        """Build resolver inputs from the application configuration."""
        return cls(
            sdk_root=config.android.sdk_root,
            ndk_root=config.android.effective_ndk_root,
            build_tools_version=config.android.build_tools_version,
            api_level=config.android.api_level,
            min_sdk=config.min_sdk,
        )


class CapabilityResolver:
    """Turns scanned inventories plus overrides and policy into a Resolution.

    Only a missing SDK stops resolution early. Every other check runs whatever
    the earlier checks found, so one pass reports every problem. Each check
    returns its own errors and ``resolve`` concatenates them in check order.
    """

    def __init__(self, policy: PolicyConfig | None = None, host_tag: str = DEFAULT_HOST_TAG) -> None:
        """Initialize the resolver.

        Args:
            policy: Minimum-version policy; defaults to the built-in minimums.
            host_tag: NDK prebuilt host directory to inspect.
        """
        self.policy = policy or PolicyConfig()
        self.host_tag = host_tag

    def resolve(self, inputs: ResolverInputs) -> Resolution:
        """Validate the toolchain and pick the effective configuration.

        Args:
            inputs: SDK/NDK locations, optional pins and the minimum SDK.

        Returns:
            Resolution holding either a ResolvedConfiguration or the ordered errors.
        """
        sdk_root, ndk_root = inputs.sdk_root, inputs.ndk_root
        logger.info("Resolving toolchain", sdk_root=str(sdk_root), ndk_root=str(ndk_root))

        if not path_exists(sdk_root):
            error = ValidationError(
                component="Android SDK",
                message=f"Not found at: {sdk_root}",
                suggestion="Set ANDROID_SDK_ROOT or ANDROID_HOME environment variable, or use --sdk <path>",
            )
            return Resolution.fail([error], DetectedConfiguration(sdk_root=sdk_root, ndk_root=ndk_root))

        ndk_present = path_exists(ndk_root)
        errors: Errors = []

        errors += self._check_ndk(ndk_root, ndk_present)

        build_tools, found = self._resolve_build_tools(sdk_root, inputs.build_tools_version)
        errors += found

        api_level, found = self._resolve_api_level(sdk_root, ndk_root, ndk_present, inputs)
        errors += found

        errors += self._check_ndk_components(ndk_root, ndk_present, api_level, inputs.api_level is not None)
        errors += self._check_build_tool_executables(sdk_root, build_tools)

        if errors:
            logger.warning("Toolchain validation failed", error_count=len(errors))
            detected = DetectedConfiguration(
                sdk_root=sdk_root,
                ndk_root=ndk_root,
                build_tools_version=build_tools,
                api_level=api_level,
            )
            return Resolution.fail(errors, detected)

        configuration = ResolvedConfiguration(
            sdk_root=sdk_root,
            ndk_root=ndk_root,
            build_tools_version=build_tools,
            api_level=api_level,
            min_sdk_version=inputs.min_sdk,
            host_tag=self.host_tag,
        )
        logger.info(
            "Toolchain resolved",
            build_tools=configuration.build_tools_version,
            api_level=configuration.api_level,
        )
        return Resolution.ok(configuration)

    def _check_ndk(self, ndk_root: Path, ndk_present: bool) -> Errors:
        """NDK presence and minimum version."""
        if not ndk_present:
            return [
                ValidationError(
                    component="Android NDK",
                    message=f"Not found at: {ndk_root}",
                    suggestion=(
                        "Set ANDROID_NDK_ROOT environment variable, or use --ndk <path>. "
                        f'Install with: sdkmanager --install "ndk;{RECOMMENDED_NDK}"'
                    ),
                )
            ]

        version = read_ndk_version(ndk_root)
        if version is not None and version < self.policy.min_ndk_major:
            return [
                ValidationError(
                    component="Android NDK Version",
                    message=f"Version {version} is below minimum required ({self.policy.min_ndk_major})",
                    suggestion=f'Update NDK: sdkmanager --install "ndk;{RECOMMENDED_NDK}"',
                )
            ]
        return []

    def _resolve_build_tools(self, sdk_root: Path, requested: str | None) -> tuple[str | None, Errors]:
        """Pinned build-tools must exist; otherwise take the newest installed."""
        if requested is not None:
            # A pin names one directory; "." or "a/b" would validate some other path.
            single_component = Path(requested).name == requested and requested != ".."
            if not single_component or not path_exists(sdk_root / "build-tools" / requested):
                return None, [
                    ValidationError(
                        component="Build Tools",
                        message=f"Version {requested} not found",
                        suggestion=f'Install with: sdkmanager --install "build-tools;{requested}"',
                    )
                ]
            return requested, []

        detected = find_highest_build_tools(sdk_root)
        if detected is None:
            return None, [
                ValidationError(
                    component="Build Tools",
                    message="No build-tools found in SDK",
                    suggestion=f'Install with: sdkmanager --install "build-tools;{RECOMMENDED_BUILD_TOOLS}"',
                )
            ]

        major = parse_major_version(detected)
        if major is not None and major < self.policy.min_build_tools_major:
            return detected, [
                ValidationError(
                    component="Build Tools",
                    message=(
                        f"Highest available version ({detected}) is below minimum "
                        f"({self.policy.min_build_tools_major}.0.0)"
                    ),
                    suggestion=f'Install newer build-tools: sdkmanager --install "build-tools;{RECOMMENDED_BUILD_TOOLS}"',
                )
            ]
        return detected, []

    def _resolve_api_level(
        self,
        sdk_root: Path,
        ndk_root: Path,
        ndk_present: bool,
        inputs: ResolverInputs,
    ) -> tuple[int | None, Errors]:
        """Pinned level must be installed; otherwise min(SDK highest, NDK highest)."""
        if inputs.api_level is not None:
            level = inputs.api_level
            if not path_exists(sdk_root / "platforms" / f"android-{level}"):
                return level, [
                    ValidationError(
                        component="Android Platform",
                        message=f"API level {level} not found",
                        suggestion=f'Install with: sdkmanager --install "platforms;android-{level}"',
                    )
                ]
            return level, []

        sdk_api = find_highest_api_level(sdk_root)
        ndk_api = find_highest_ndk_api_level(ndk_root, self.host_tag) if ndk_present else None

        if sdk_api is None:
            return None, [
                ValidationError(
                    component="Android Platform",
                    message="No platforms found in SDK",
                    suggestion=f'Install with: sdkmanager --install "platforms;android-{RECOMMENDED_PLATFORM}"',
                )
            ]

        if ndk_api is None:
            if ndk_present:
                # Reported against the SDK level so the operator still sees a number.
                return sdk_api, [self._missing_arch_libraries(ndk_root)]
            # Missing NDK was already reported.
            return sdk_api, []

        effective = min(sdk_api, ndk_api)
        if sdk_api > ndk_api:
            logger.info(
                "NDK limits the target API level",
                sdk_api=sdk_api,
                ndk_api=ndk_api,
                effective_api=effective,
            )

        if effective < inputs.min_sdk:
            return effective, [
                ValidationError(
                    component="API Level",
                    message=f"Effective API level ({effective}) is below minimum SDK ({inputs.min_sdk})",
                    suggestion=(
                        f"SDK highest: {sdk_api}, NDK highest: {ndk_api}. "
                        f"Update NDK or use --min-sdk {effective}"
                    ),
                )
            ]
        return effective, []

    def _missing_arch_libraries(self, ndk_root: Path) -> ValidationError:
        version = read_ndk_version(ndk_root)
        label = f"NDK r{version}" if version is not None else "NDK (version unknown)"
        return ValidationError(
            component="NDK aarch64 Libraries",
            message=f"{label} has no {TARGET_TRIPLE} libraries",
            suggestion=(
                "The NDK may be incomplete or corrupted. Reinstall with: "
                f'sdkmanager --install "ndk;{RECOMMENDED_NDK}"'
            ),
        )

    def _check_ndk_components(
        self,
        ndk_root: Path,
        ndk_present: bool,
        api_level: int | None,
        api_level_pinned: bool,
    ) -> Errors:
        """Re-check the NDK against the level actually chosen."""
        if not ndk_present or not api_level:
            return []

        ndk_max = find_highest_ndk_api_level(ndk_root, self.host_tag)
        if ndk_max is None:
            # An auto-detected level already reported this while resolving.
            return [self._missing_arch_libraries(ndk_root)] if api_level_pinned else []

        if check_ndk_components(ndk_root, api_level, self.host_tag):
            return []

        if not file_exists(ndk_include_dir(ndk_root, self.host_tag) / "jni.h"):
            return [
                ValidationError(
                    component="NDK Components",
                    message="NDK is missing JNI headers (jni.h)",
                    suggestion=f'Reinstall the NDK: sdkmanager --install "ndk;{RECOMMENDED_NDK}"',
                )
            ]
        return [
            ValidationError(
                component="NDK Components",
                message=f"NDK missing {TARGET_TRIPLE} libraries for API {api_level} (NDK supports up to API {ndk_max})",
                suggestion=f"Use --api-level {ndk_max} or lower",
            )
        ]

    def _check_build_tool_executables(self, sdk_root: Path, version: str | None) -> Errors:
        """Whichever way the version was chosen, its executables must be there."""
        if not version:
            return []
        missing = missing_build_tools(sdk_root, version)
        if not missing:
            return []
        return [
            ValidationError(
                component="Build Tools",
                message=f"Missing required tools in {version}: {', '.join(tool.value for tool in missing)}",
                suggestion="Reinstall build-tools or try a different version",
            )
        ]


def resolve_toolchain(config: Config) -> Resolution:
    """Resolve the toolchain described by the application configuration."""
    resolver = CapabilityResolver(config.policy, config.android.host_tag)
    return resolver.resolve(ResolverInputs.from_config(config))
