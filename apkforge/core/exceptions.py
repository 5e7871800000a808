"""
Custom exception hierarchy for apkforge.

All exceptions inherit from ApkForgeError to enable consistent error handling
across the pipeline. Toolchain validation problems are NOT exceptions: the
resolver reports them as values and only ConfigurationError carries them across
the boundary into the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..models.toolchain import ValidationError


@dataclass
class ApkForgeError(Exception):
    """Base exception for all apkforge errors."""

    message: str
    context: dict[str, Any] = field(default_factory=dict)
    cause: Exception | None = None

    def __str__(self) -> str:
        ctx = f" | context: {self.context}" if self.context else ""
        cause = f" | caused by: {self.cause}" if self.cause else ""
        return f"{self.message}{ctx}{cause}"


@dataclass
class ConfigurationError(ApkForgeError):
    """Raised when a build is requested against a toolchain that failed validation."""

    errors: list[ValidationError] = field(default_factory=list)

    def __str__(self) -> str:
        base = super().__str__()
        components = ", ".join(err.component for err in self.errors)
        return f"{base} ({len(self.errors)} problem(s): {components})" if self.errors else base


@dataclass
class PipelineError(ApkForgeError):
    """Raised when the build graph is malformed or cannot be executed."""

    step: str = ""
    pipeline_run_id: str = ""

    def __str__(self) -> str:
        base = super().__str__()
        if self.step:
            return f"Pipeline error at step '{self.step}' (run: {self.pipeline_run_id}): {base}"
        return f"Pipeline error: {base}"


@dataclass
class ToolNotFoundError(ApkForgeError):
    """Raised when a required external tool is not available."""

    tool_name: str = ""
    expected_path: str = ""
    install_hint: str = ""

    def __str__(self) -> str:
        hint = f" Install hint: {self.install_hint}" if self.install_hint else ""
        return f"Tool '{self.tool_name}' not found at '{self.expected_path}'.{hint}"


@dataclass
class ToolInvocationError(ApkForgeError):
    """Raised when an external tool ran but did not succeed."""

    tool_name: str = ""
    returncode: int | None = None

    def __str__(self) -> str:
        code = f" (exit code {self.returncode})" if self.returncode is not None else ""
        return f"[{self.tool_name}]{code}: {super().__str__()}"
