"""
Core type definitions for apkforge.

Provides the status and result types that flow between the tool invoker,
the pipeline executor and the CLI.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StepStatus(str, Enum):
    """Status of a pipeline step."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class InvocationResult:
    """Outcome of running one step's external tools.

    Output is kept for the operator; nothing downstream parses it.
    """

    success: bool
    output: str = ""
    error: str | None = None

    @classmethod
    def ok(cls, output: str = "") -> InvocationResult:
        """Create a successful result."""
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, error: str, output: str = "") -> InvocationResult:
        """Create a failed result."""
        return cls(success=False, output=output, error=error)


class StepResult(BaseModel):
    """Result of a pipeline step execution."""

    step_name: str = Field(description="Identifier of the pipeline step")
    status: StepStatus = Field(default=StepStatus.PENDING, description="Execution status")
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)
    duration_seconds: float = Field(default=0.0)
    output: str = Field(default="", description="Captured tool output")
    error_message: str | None = Field(default=None)

    def mark_running(self) -> None:
        """Mark step as started."""
        self.status = StepStatus.RUNNING
        self.started_at = utcnow()

    def mark_succeeded(self, output: str = "") -> None:
        """Mark step as successfully completed."""
        self.status = StepStatus.SUCCEEDED
        self.output = output
        self._finish()

    def mark_failed(self, error: str, output: str = "") -> None:
        """Mark step as failed."""
        self.status = StepStatus.FAILED
        self.error_message = error
        self.output = output
        self._finish()

    def mark_skipped(self, reason: str) -> None:
        """Mark step as abandoned because an earlier step failed."""
        self.status = StepStatus.SKIPPED
        self.error_message = reason

    def _finish(self) -> None:
        self.completed_at = utcnow()
        if self.started_at:
            self.duration_seconds = (self.completed_at - self.started_at).total_seconds()


class PipelineRun(BaseModel):
    """Represents one execution of the build pipeline."""

    run_id: str = Field(description="Unique run identifier")
    target: str = Field(description="Step the run was asked to reach")
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = Field(default=None)
    steps: list[StepResult] = Field(default_factory=list)
    final_status: StepStatus = Field(default=StepStatus.PENDING)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.final_status == StepStatus.SUCCEEDED

    @property
    def failed_step(self) -> StepResult | None:
        for step in self.steps:
            if step.status == StepStatus.FAILED:
                return step
        return None

    def get_step(self, name: str) -> StepResult | None:
        """Get a step result by name."""
        for step in self.steps:
            if step.step_name == name:
                return step
        return None
