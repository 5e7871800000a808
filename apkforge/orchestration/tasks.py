"""
Prefect tasks for the apkforge pipeline.

Each task wraps one service operation with run logging. Caching is disabled:
every build must observe the filesystem as it is now.
"""

from __future__ import annotations

from prefect import task
from prefect.cache_policies import NO_CACHE
from prefect.logging import get_run_logger

from ..core.config import Config
from ..core.types import InvocationResult
from ..models.pipeline import PipelineStep
from ..models.toolchain import NdkRecord, Resolution
from ..services.inventory import discover_ndks
from ..services.resolver import resolve_toolchain


@task(
    name="resolve_toolchain",
    description="Validate the SDK, build-tools and NDK and pick the effective configuration",
    retries=0,
    cache_policy=NO_CACHE,
)
def resolve_toolchain_task(config: Config) -> Resolution:
    """Resolve the toolchain for a build.

    Args:
        config: Application configuration

    Returns:
        Resolution with either a configuration or the validation errors
    """
    logger = get_run_logger()
    resolution = resolve_toolchain(config)
    if resolution.success:
        logger.info(f"Toolchain OK: API {resolution.configuration.api_level}, "
                    f"build-tools {resolution.configuration.build_tools_version}")
    else:
        logger.error(f"Toolchain validation found {len(resolution.errors)} problem(s)")
    return resolution


@task(
    name="discover_ndks",
    description="List NDK installations under the SDK",
    retries=0,
    cache_policy=NO_CACHE,
)
def discover_ndks_task(config: Config) -> list[NdkRecord]:
    """Inventory of NDKs, used for diagnostics when resolution fails."""
    return discover_ndks(config.android.sdk_root, config.android.host_tag)


@task(
    name="run_pipeline_step",
    description="Run one APK build step",
    retries=0,
    cache_policy=NO_CACHE,
)
def run_pipeline_step(step: PipelineStep) -> InvocationResult:
    """Run a single pipeline step.

    Args:
        step: Step with its action and resolved configuration

    Returns:
        InvocationResult of the step's tools
    """
    logger = get_run_logger()
    logger.info(f"Running step: {step.name}")

    result = step.run()

    if result.success:
        logger.info(f"Step {step.name} succeeded")
    else:
        logger.error(f"Step {step.name} failed: {result.error}")
    return result
