"""
Pipeline graph construction.

The APK build is one fixed DAG. A graph only exists for a toolchain that
resolved cleanly: any validation error means no graph at all.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Protocol

from ..core.exceptions import ConfigurationError, PipelineError
from ..core.logging import get_logger
from ..models.pipeline import PipelineStep, StepAction, StepId
from ..models.toolchain import Resolution

logger = get_logger(__name__)

PIPELINE_TOPOLOGY: Mapping[StepId, frozenset[StepId]] = {
    StepId.COMPILE_ENTRY_POINT: frozenset(),
    StepId.DEX_CONVERT: frozenset({StepId.COMPILE_ENTRY_POINT}),
    StepId.COMPILE_RESOURCES: frozenset(),
    StepId.INSTALL_NATIVE_LIBRARY: frozenset(),
    StepId.PACKAGE_ARTIFACT: frozenset(
        {StepId.INSTALL_NATIVE_LIBRARY, StepId.COMPILE_RESOURCES, StepId.DEX_CONVERT}
    ),
    StepId.SIGN_ARTIFACT: frozenset({StepId.PACKAGE_ARTIFACT}),
    StepId.VERIFY_ARTIFACT: frozenset({StepId.SIGN_ARTIFACT}),
    StepId.DEPLOY_ARTIFACT: frozenset({StepId.SIGN_ARTIFACT}),
}


class ActionProvider(Protocol):
    """Anything that can hand out the action for a step (the tool invoker, or a fake)."""

    def action_for(self, step_id: StepId) -> StepAction: ...


class PipelineGraph:
    """Directed acyclic graph of pipeline steps."""

    def __init__(self, steps: list[PipelineStep]) -> None:
        """Initialize and validate the graph.

        Args:
            steps: Steps in declaration order; the order breaks ties when sorting.

        Raises:
            PipelineError: On duplicate steps, unknown predecessors or a cycle.
        """
        self._steps: dict[StepId, PipelineStep] = {}
        for step in steps:
            if step.step_id in self._steps:
                raise PipelineError(message="Duplicate step", step=step.name)
            self._steps[step.step_id] = step

        for step in steps:
            unknown = step.depends_on - self._steps.keys()
            if unknown:
                raise PipelineError(
                    message=f"Unknown predecessor(s): {', '.join(sorted(s.value for s in unknown))}",
                    step=step.name,
                )

        self._order = self._topological_sort()

    def __contains__(self, step_id: object) -> bool:
        return step_id in self._steps

    def __iter__(self) -> Iterator[PipelineStep]:
        return iter(self._steps.values())

    def __len__(self) -> int:
        return len(self._steps)

    def __getitem__(self, step_id: StepId) -> PipelineStep:
        return self._steps[step_id]

    def _topological_sort(self) -> list[StepId]:
        """Kahn's algorithm; among ready steps the earliest declared goes first."""
        declared = list(self._steps)
        remaining = {step_id: set(step.depends_on) for step_id, step in self._steps.items()}
        order: list[StepId] = []
        while remaining:
            ready = [step_id for step_id in declared if step_id in remaining and not remaining[step_id]]
            if not ready:
                cycle = ", ".join(sorted(step_id.value for step_id in remaining))
                raise PipelineError(message=f"Dependency cycle among steps: {cycle}")
            chosen = ready[0]
            order.append(chosen)
            del remaining[chosen]
            for deps in remaining.values():
                deps.discard(chosen)
        return order

    def topological_order(self) -> list[PipelineStep]:
        """All steps, every step after its predecessors."""
        return [self._steps[step_id] for step_id in self._order]

    def closure(self, target: StepId) -> set[StepId]:
        """``target`` and everything it transitively depends on."""
        if target not in self._steps:
            raise PipelineError(message=f"Step not in graph: {target.value}", step=target.value)
        needed: set[StepId] = set()
        stack = [target]
        while stack:
            step_id = stack.pop()
            if step_id in needed:
                continue
            needed.add(step_id)
            stack.extend(self._steps[step_id].depends_on)
        return needed

    def plan(self, target: StepId | None = None) -> list[PipelineStep]:
        """Steps needed to reach ``target`` (or all steps), in execution order."""
        if target is None:
            return self.topological_order()
        needed = self.closure(target)
        return [step for step in self.topological_order() if step.step_id in needed]

    def predecessors(self, step_id: StepId) -> list[PipelineStep]:
        return [self._steps[dep] for dep in self._order if dep in self._steps[step_id].depends_on]


def build_pipeline_graph(resolution: Resolution, actions: ActionProvider) -> PipelineGraph:
    """Build the fixed APK pipeline for a resolved toolchain.

    Args:
        resolution: Resolver output.
        actions: Source of the action each step runs.

    Returns:
        The complete pipeline graph with the configuration baked into every step.

    Raises:
        ConfigurationError: If the resolution carries any error; no graph is built.
    """
    if resolution.has_errors() or resolution.configuration is None:
        raise ConfigurationError(
            message="Toolchain validation failed; refusing to build the pipeline",
            errors=list(resolution.errors),
        )

    configuration = resolution.configuration
    steps = [
        PipelineStep(
            step_id=step_id,
            depends_on=depends_on,
            action=actions.action_for(step_id),
            configuration=configuration,
        )
        for step_id, depends_on in PIPELINE_TOPOLOGY.items()
    ]
    graph = PipelineGraph(steps)
    logger.debug("Pipeline graph built", steps=[step.name for step in graph.topological_order()])
    return graph
