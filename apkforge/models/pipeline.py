"""
Build pipeline data models.

The pipeline has one fixed shape; these types name its steps and describe
what each step carries once the graph is built.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from ..core.types import InvocationResult, StepStatus
from .toolchain import ResolvedConfiguration

StepAction = Callable[[ResolvedConfiguration], InvocationResult]


class StepId(str, Enum):
    """Steps of the APK build, in declaration order."""

    COMPILE_ENTRY_POINT = "compile-entry-point"
    DEX_CONVERT = "dex-convert"
    COMPILE_RESOURCES = "compile-resources"
    INSTALL_NATIVE_LIBRARY = "install-native-library"
    PACKAGE_ARTIFACT = "package-artifact"
    SIGN_ARTIFACT = "sign-artifact"
    VERIFY_ARTIFACT = "verify-artifact"
    DEPLOY_ARTIFACT = "deploy-artifact"


@dataclass
class PipelineStep:
    """One node of the build graph.

    The configuration is fixed when the graph is built; steps never
    re-resolve the toolchain.
    """

    step_id: StepId
    depends_on: frozenset[StepId]
    action: StepAction
    configuration: ResolvedConfiguration
    status: StepStatus = field(default=StepStatus.PENDING)

    @property
    def name(self) -> str:
        return self.step_id.value

    def run(self) -> InvocationResult:
        """Invoke the step's action with its baked-in configuration."""
        return self.action(self.configuration)
