"""
Sequential execution of the pipeline graph.

Steps share the build directory, so they run one at a time in a fixed
topological order. The first failure abandons every step not yet started;
nothing is retried and nothing already written is rolled back.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable

from ..core.exceptions import PipelineError
from ..core.logging import get_logger, log_context
from ..core.types import InvocationResult, PipelineRun, StepResult, StepStatus, utcnow
from ..models.pipeline import PipelineStep, StepId
from .graph import PipelineGraph

logger = get_logger(__name__)

DEFAULT_TARGET = StepId.SIGN_ARTIFACT

StepRunner = Callable[[PipelineStep], InvocationResult]


def run_step_action(step: PipelineStep) -> InvocationResult:
    """Default runner: call the step's own action."""
    return step.run()


class PipelineExecutor:
    """Runs the steps a target needs, in order, stopping at the first failure."""

    def __init__(self, runner: StepRunner = run_step_action) -> None:
        """Initialize the executor.

        Args:
            runner: Callable that executes one step; the Prefect flow passes its task here.
        """
        self.runner = runner

    def run(
        self,
        graph: PipelineGraph,
        target: StepId | None = DEFAULT_TARGET,
        run_id: str | None = None,
    ) -> PipelineRun:
        """Execute the pipeline up to ``target``.

        Args:
            graph: Graph built for a resolved toolchain.
            target: Step to reach; None runs every step in the graph.
            run_id: Identifier for logs and the returned record.

        Returns:
            PipelineRun with one StepResult per planned step.
        """
        plan = graph.plan(target)
        run = PipelineRun(
            run_id=run_id or str(uuid.uuid4())[:8],
            target=target.value if target is not None else "all",
        )
        results: dict[StepId, StepResult] = {}
        for step in plan:
            step.status = StepStatus.PENDING
            results[step.step_id] = StepResult(step_name=step.name)
        run.steps = list(results.values())

        logger.info("Starting pipeline", run_id=run.run_id, target=run.target, steps=len(plan))

        failed: PipelineStep | None = None
        for step in plan:
            result = results[step.step_id]
            if failed is not None:
                step.status = StepStatus.SKIPPED
                result.mark_skipped(f"not attempted because '{failed.name}' failed")
                continue

            blocked = [pred.name for pred in graph.predecessors(step.step_id) if pred.status != StepStatus.SUCCEEDED]
            if blocked:
                raise PipelineError(
                    message=f"Predecessors not complete: {', '.join(blocked)}",
                    step=step.name,
                    pipeline_run_id=run.run_id,
                )

            logger.info("Running step", step=step.name)
            step.status = StepStatus.RUNNING
            result.mark_running()
            try:
                with log_context(step=step.name):
                    outcome = self.runner(step)
            except Exception as e:
                # Any escape from the runner is this step failing, not the run crashing.
                logger.error("Step raised", step=step.name, error_type=type(e).__name__)
                outcome = InvocationResult.fail(str(e) or type(e).__name__)

            if outcome.success:
                step.status = StepStatus.SUCCEEDED
                result.mark_succeeded(outcome.output)
                logger.info("Step succeeded", step=step.name, duration_seconds=round(result.duration_seconds, 2))
            else:
                step.status = StepStatus.FAILED
                result.mark_failed(outcome.error or "step failed", outcome.output)
                logger.error("Step failed", step=step.name, error=outcome.error)
                failed = step

        run.completed_at = utcnow()
        run.final_status = StepStatus.FAILED if failed is not None else StepStatus.SUCCEEDED
        logger.info("Pipeline finished", run_id=run.run_id, status=run.final_status.value)
        return run
