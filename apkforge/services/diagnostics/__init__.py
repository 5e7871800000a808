"""Operator-facing diagnostics for toolchain resolution."""

from .service import DiagnosticsReporter, format_error, format_ndk_record, select_best_ndk

__all__ = ["DiagnosticsReporter", "format_error", "format_ndk_record", "select_best_ndk"]
