"""
apkforge CLI.

Command-line interface for checking the Android toolchain and building APKs.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .core.config import Config, get_config
from .core.logging import setup_logging
from .models.pipeline import StepId
from .services.diagnostics import DiagnosticsReporter
from .services.diagnostics.service import ENVIRONMENT_VARIABLES
from .services.inventory import discover_ndks
from .services.resolver import resolve_toolchain

app = typer.Typer(
    name="apkforge",
    help="Build signed Android APKs from native code without Gradle",
    add_completion=False,
)

console = Console()

BUILD_TARGETS = {
    "package": StepId.PACKAGE_ARTIFACT,
    "sign": StepId.SIGN_ARTIFACT,
    "verify": StepId.VERIFY_ARTIFACT,
    "deploy": StepId.DEPLOY_ARTIFACT,
}


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        from . import __version__
        console.print(f"apkforge v{__version__}")
        raise typer.Exit()


def environment_snapshot() -> dict[str, str | None]:
    """Current values of the toolchain environment variables."""
    return {name: os.environ.get(name) for name in ENVIRONMENT_VARIABLES}


def load_config(
    sdk: Optional[Path] = None,
    ndk: Optional[Path] = None,
    build_tools: Optional[str] = None,
    api_level: Optional[int] = None,
    min_sdk: Optional[int] = None,
    verbose: bool = False,
) -> Config:
    """Environment configuration with command-line overrides applied."""
    config = get_config()
    overrides = {
        key: value
        for key, value in {
            "sdk_root": sdk,
            "ndk_root": ndk,
            "build_tools_version": build_tools,
            "api_level": api_level,
            "min_sdk": min_sdk,
        }.items()
        if value is not None
    }
    android = config.android.model_copy(update=overrides)
    return config.model_copy(
        update={"android": android, "log_level": "DEBUG" if verbose else config.log_level}
    )


SdkOption = typer.Option(None, "--sdk", help="Android SDK path (default: ANDROID_SDK_ROOT / ANDROID_HOME)")
NdkOption = typer.Option(None, "--ndk", help="Android NDK path (default: ANDROID_NDK_ROOT or <sdk>/ndk-bundle)")
BuildToolsOption = typer.Option(None, "--build-tools", help="Build-tools version (auto-detected if omitted)")
ApiLevelOption = typer.Option(None, "--api-level", min=1, max=255, help="Target API level (auto-detected if omitted)")
MinSdkOption = typer.Option(None, "--min-sdk", min=1, max=255, help="Minimum SDK version")
VerboseOption = typer.Option(False, "--verbose", help="Enable verbose logging")


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """apkforge: Android toolchain resolution and APK pipeline."""
    pass


@app.command()
def check(
    sdk: Optional[Path] = SdkOption,
    ndk: Optional[Path] = NdkOption,
    build_tools: Optional[str] = BuildToolsOption,
    api_level: Optional[int] = ApiLevelOption,
    min_sdk: Optional[int] = MinSdkOption,
    verbose: bool = VerboseOption,
) -> None:
    """Validate the Android SDK, build-tools and NDK."""
    config = load_config(sdk, ndk, build_tools, api_level, min_sdk, verbose)
    setup_logging(config)

    resolution = resolve_toolchain(config)
    reporter = DiagnosticsReporter(console)
    ndks = [] if resolution.success else discover_ndks(config.android.sdk_root, config.android.host_tag)
    reporter.render(resolution, ndks, environment_snapshot())

    if not resolution.success:
        raise typer.Exit(1)


@app.command()
def build(
    target: Optional[str] = typer.Argument(
        None,
        help=f"Step to build up to: {', '.join(BUILD_TARGETS)} or all (default: sign)",
    ),
    sdk: Optional[Path] = SdkOption,
    ndk: Optional[Path] = NdkOption,
    build_tools: Optional[str] = BuildToolsOption,
    api_level: Optional[int] = ApiLevelOption,
    min_sdk: Optional[int] = MinSdkOption,
    verbose: bool = VerboseOption,
) -> None:
    """Resolve the toolchain and run the APK pipeline."""
    if target is not None and target != "all" and target not in BUILD_TARGETS:
        console.print(f"Unknown target '{target}'. Choose from: {', '.join(BUILD_TARGETS)}, all", style="red")
        raise typer.Exit(2)

    config = load_config(sdk, ndk, build_tools, api_level, min_sdk, verbose)
    if target is None:
        step: StepId | None = StepId(config.pipeline.default_target)
    else:
        step = BUILD_TARGETS.get(target)

    console.print(Panel.fit(
        "[bold blue]apkforge[/bold blue]\n"
        "compile → link → dex → package → sign",
        border_style="blue",
    ))

    from .orchestration.pipeline import run_pipeline

    result = run_pipeline(step, config)

    if not result.resolution.success:
        DiagnosticsReporter(console).render(result.resolution, result.ndks, environment_snapshot())
        raise typer.Exit(1)

    if result.pipeline_run is not None:
        table = Table(title="Pipeline Steps")
        table.add_column("Step", style="cyan")
        table.add_column("Status")
        table.add_column("Duration")
        for step_result in result.pipeline_run.steps:
            colour = {"succeeded": "green", "failed": "red", "skipped": "yellow"}.get(step_result.status.value, "white")
            table.add_row(
                step_result.step_name,
                f"[{colour}]{step_result.status.value}[/{colour}]",
                f"{step_result.duration_seconds:.1f}s",
            )
        console.print(table)

    if result.success:
        console.print("\n[bold green]✓ BUILD SUCCESSFUL[/bold green]")
        console.print(f"APK: {config.project.signed_apk}")
        console.print("\nTo install on a connected device:")
        console.print("  apkforge build deploy")
    else:
        console.print("\n[bold red]✗ Build failed![/bold red]")
        if result.failed_step:
            console.print(f"Failed at: {result.failed_step}")
        console.print(f"Error: {result.error}", markup=False)
        if result.pipeline_run is not None:
            failed = result.pipeline_run.get_step(result.failed_step or "")
            if failed is not None and failed.output:
                console.print(failed.output, markup=False, highlight=False)
        raise typer.Exit(1)


@app.command()
def ndks(
    sdk: Optional[Path] = SdkOption,
    ndk: Optional[Path] = NdkOption,
) -> None:
    """List NDK installations found under the SDK."""
    config = load_config(sdk=sdk, ndk=ndk)
    found = discover_ndks(config.android.sdk_root, config.android.host_tag)
    if not found:
        console.print(f"No NDKs found under {config.android.sdk_root}", markup=False)
        raise typer.Exit(1)
    DiagnosticsReporter(console).render_inventory(found, config.android.effective_ndk_root)


@app.command()
def config() -> None:
    """Show current configuration."""
    cfg = get_config()

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Log Level", cfg.log_level)
    table.add_row("SDK Root", str(cfg.android.sdk_root))
    table.add_row("NDK Root", str(cfg.android.effective_ndk_root))
    table.add_row("Build Tools", cfg.android.build_tools_version or "(auto)")
    table.add_row("API Level", str(cfg.android.api_level) if cfg.android.api_level else "(auto)")
    table.add_row("Min SDK", str(cfg.min_sdk))
    table.add_row("Host Tag", cfg.android.host_tag)
    table.add_row("Min NDK Major", str(cfg.policy.min_ndk_major))
    table.add_row("Min Build Tools Major", str(cfg.policy.min_build_tools_major))
    table.add_row("Project Dir", str(cfg.project.project_dir))
    table.add_row("Output APK", str(cfg.project.signed_apk))
    table.add_row("Tool Timeout", f"{cfg.pipeline.tool_timeout_seconds}s")

    console.print(table)

    console.print("\n[dim]Configure via environment variables:[/dim]")
    console.print("  ANDROID_SDK_ROOT, ANDROID_HOME, ANDROID_NDK_ROOT")
    console.print("  APKFORGE_BUILD_TOOLS, APKFORGE_API_LEVEL, APKFORGE_MIN_SDK, APKFORGE_LOG_LEVEL")


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
