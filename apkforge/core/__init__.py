"""Core infrastructure components for apkforge."""

from .config import Config, get_config
from .exceptions import (
    ApkForgeError,
    ConfigurationError,
    PipelineError,
    ToolInvocationError,
    ToolNotFoundError,
)
from .logging import get_logger, setup_logging
from .types import InvocationResult, PipelineRun, StepResult, StepStatus

__all__ = [
    "Config",
    "get_config",
    "ApkForgeError",
    "ConfigurationError",
    "PipelineError",
    "ToolInvocationError",
    "ToolNotFoundError",
    "get_logger",
    "setup_logging",
    "InvocationResult",
    "PipelineRun",
    "StepResult",
    "StepStatus",
]
