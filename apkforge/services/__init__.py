"""Services package for apkforge."""

from .diagnostics import DiagnosticsReporter
from .invoker import ToolInvoker
from .resolver import CapabilityResolver

__all__ = [
    "CapabilityResolver",
    "DiagnosticsReporter",
    "ToolInvoker",
]
