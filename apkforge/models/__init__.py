"""Data models for apkforge."""

from .toolchain import (
    TARGET_ABI,
    TARGET_TRIPLE,
    BuildTool,
    DetectedConfiguration,
    NdkRecord,
    Resolution,
    ResolvedConfiguration,
    ValidationError,
)

__all__ = [
    "TARGET_ABI",
    "TARGET_TRIPLE",
    "BuildTool",
    "DetectedConfiguration",
    "NdkRecord",
    "Resolution",
    "ResolvedConfiguration",
    "ValidationError",
]
