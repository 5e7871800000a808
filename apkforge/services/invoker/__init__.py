"""External tool invocation for pipeline steps."""

from .service import ToolInvoker, render_libc_config, render_strings_xml

__all__ = ["ToolInvoker", "render_libc_config", "render_strings_xml"]
