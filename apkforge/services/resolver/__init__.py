"""Capability resolution of the installed Android toolchain."""

from .service import CapabilityResolver, ResolverInputs, resolve_toolchain

__all__ = ["CapabilityResolver", "ResolverInputs", "resolve_toolchain"]
