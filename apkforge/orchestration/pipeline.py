"""
Main pipeline orchestration for apkforge.

Implements the build flow using Prefect: resolve the toolchain, build the
fixed step graph, then run it sequentially up to the requested target.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from prefect import flow, get_run_logger
from pydantic import BaseModel, Field

from ..core.config import Config, get_config
from ..core.exceptions import ConfigurationError
from ..core.logging import log_context, setup_logging
from ..core.types import PipelineRun, utcnow
from ..models.pipeline import StepId
from ..models.toolchain import NdkRecord, Resolution
from ..services.invoker import ToolInvoker
from .executor import DEFAULT_TARGET, PipelineExecutor
from .graph import build_pipeline_graph
from .tasks import discover_ndks_task, resolve_toolchain_task, run_pipeline_step


class BuildResult(BaseModel):
    """Result of one build flow run."""

    run_id: str
    success: bool
    started_at: datetime
    completed_at: datetime

    resolution: Resolution
    ndks: list[NdkRecord] = Field(default_factory=list, description="Discovered NDKs (on failure)")
    pipeline_run: PipelineRun | None = None

    error: str | None = None
    failed_step: str | None = None


@flow(
    name="apkforge-build",
    description="Resolve the Android toolchain and build a signed APK",
    version="1.0.0",
    retries=0,
)
def apk_build_flow(config: Config, target: StepId | None = DEFAULT_TARGET) -> BuildResult:
    """Execute the apkforge build.

    Args:
        config: Application configuration
        target: Step to build up to; None builds every step

    Returns:
        BuildResult with the resolution and the per-step outcome
    """
    run_id = str(uuid.uuid4())[:8]
    logger = get_run_logger()
    started_at = utcnow()
    logger.info(f"Starting apkforge build. Run ID: {run_id}")
    logger.info(f"SDK: {config.android.sdk_root}")
    logger.info(f"NDK: {config.android.effective_ndk_root}")

    with log_context(run_id=run_id, target=target.value if target is not None else "all"):
        resolution = resolve_toolchain_task(config)
        try:
            graph = build_pipeline_graph(
                resolution,
                ToolInvoker(config.project, config.pipeline.tool_timeout_seconds),
            )
        except ConfigurationError as e:
            logger.error(str(e))
            return BuildResult(
                run_id=run_id,
                success=False,
                started_at=started_at,
                completed_at=utcnow(),
                resolution=resolution,
                ndks=discover_ndks_task(config),
                error=str(e),
            )

        executor = PipelineExecutor(runner=run_pipeline_step)
        pipeline_run = executor.run(graph, target=target, run_id=run_id)
        failed = pipeline_run.failed_step

        completed_at = utcnow()
        if pipeline_run.success:
            logger.info(f"Build completed in {(completed_at - started_at).total_seconds():.1f}s")
            logger.info(f"APK: {config.project.signed_apk}")
        else:
            logger.error(f"Build failed at step: {failed.step_name if failed else 'unknown'}")

        return BuildResult(
            run_id=run_id,
            success=pipeline_run.success,
            started_at=started_at,
            completed_at=completed_at,
            resolution=resolution,
            pipeline_run=pipeline_run,
            error=failed.error_message if failed else None,
            failed_step=failed.step_name if failed else None,
        )


class ApkForgePipeline:
    """High-level pipeline interface for programmatic use."""

    def __init__(self, config: Config | None = None) -> None:
        """Initialize the pipeline.

        Args:
            config: Configuration to build with; defaults to the environment.
        """
        self.config = config or get_config()
        setup_logging(self.config)

    def run(self, target: StepId | None = DEFAULT_TARGET) -> BuildResult:
        """Run the build up to ``target``.

        Args:
            target: Step to reach; None builds every step

        Returns:
            BuildResult with all outputs
        """
        return apk_build_flow(self.config, target)


def run_pipeline(target: StepId | str | None = DEFAULT_TARGET, config: Config | None = None) -> BuildResult:
    """Convenience function to run the build.

    Args:
        target: Step (or step name) to reach; None builds every step
        config: Configuration; defaults to the environment

    Returns:
        BuildResult with all outputs
    """
    step = StepId(target) if isinstance(target, str) else target
    return ApkForgePipeline(config).run(step)
