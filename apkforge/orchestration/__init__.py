"""Orchestration module for apkforge."""

from .executor import DEFAULT_TARGET, PipelineExecutor, run_step_action
from .graph import PIPELINE_TOPOLOGY, PipelineGraph, build_pipeline_graph

__all__ = [
    "DEFAULT_TARGET",
    "PIPELINE_TOPOLOGY",
    "PipelineExecutor",
    "PipelineGraph",
    "build_pipeline_graph",
    "run_step_action",
]
