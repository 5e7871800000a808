"""
Diagnostics Reporter.

Renders resolver output and the discovered NDK inventory for an operator.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

from ...models.toolchain import NdkRecord, Resolution, ValidationError
from ..inventory import path_exists
from ..resolver.service import RECOMMENDED_NDK

ENVIRONMENT_VARIABLES = ("ANDROID_SDK_ROOT", "ANDROID_HOME", "ANDROID_NDK_ROOT")


def format_error(error: ValidationError) -> str:
    """Plain-text rendering of one validation error."""
    return f"ERROR: {error.component}\n  {error.message}\n\n  Suggestion: {error.suggestion}\n"


def format_ndk_record(ndk: NdkRecord) -> str:
    """One-line summary of an NDK installation."""
    version = f"r{ndk.version}" if ndk.version is not None else "unknown"
    api = f"API {ndk.max_api}" if ndk.max_api is not None else "no aarch64 libs"
    return f"{ndk.path} (version {version}, max {api})"


def select_best_ndk(ndks: Sequence[NdkRecord]) -> NdkRecord | None:
    """Best usable NDK: highest version, then highest API level.

    Only installations with aarch64 libraries qualify. Unknown versions rank
    below every known one. The choice does not depend on the order of ``ndks``
    except between records that are identical in version and API level.
    """
    usable = [ndk for ndk in ndks if ndk.usable]
    if not usable:
        return None
    return max(usable, key=lambda ndk: (ndk.version if ndk.version is not None else -1, ndk.max_api))


def _same_path(a: Path, b: Path | None) -> bool:
    return b is not None and str(a).rstrip("/") == str(b).rstrip("/")


class DiagnosticsReporter:
    """Renders resolver errors and inventory summaries to a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize the reporter.

        Args:
            console: Console to write to; defaults to stderr.
        """
        self.console = console or Console(stderr=True)

    def render(
        self,
        resolution: Resolution,
        ndks: Sequence[NdkRecord],
        environment: Mapping[str, str | None] | None = None,
    ) -> None:
        """Render a full report for a resolution.

        Args:
            resolution: Resolver output, failed or not.
            ndks: NDK installations discovered under the SDK.
            environment: Values of the toolchain environment variables, if known.
        """
        if resolution.success:
            self.render_summary(resolution)
            return

        self.console.print(Rule("[bold red]BUILD CONFIGURATION ERRORS[/bold red]", style="red"))
        for error in resolution.errors:
            self.render_error(error)

        self.console.print(Rule(style="dim"))
        self._render_detected(resolution)
        if environment is not None:
            self._render_environment(environment)
        if resolution.detected.sdk_root is not None and path_exists(resolution.detected.sdk_root):
            self.render_ndks(ndks, resolution.detected.ndk_root)
        self.console.print(Rule(style="red"))

    def render_error(self, error: ValidationError) -> None:
        """Render one error with its suggestion."""
        self.console.print(f"\n[bold red]ERROR:[/bold red] [bold]{escape(error.component)}[/bold]")
        self.console.print(f"  {error.message}", markup=False, highlight=False)
        self.console.print(f"\n  [yellow]Suggestion:[/yellow] {escape(error.suggestion)}\n", highlight=False)

    def render_summary(self, resolution: Resolution) -> None:
        """One-line confirmation that the toolchain is usable."""
        config = resolution.configuration
        if config is None:
            return
        self.console.print(
            Panel.fit(
                escape(
                    f"Prerequisites OK: SDK={config.sdk_root}, NDK={config.ndk_root}, "
                    f"build-tools={config.build_tools_version}, API={config.api_level}"
                ),
                border_style="green",
            )
        )

    def render_ndks(self, ndks: Sequence[NdkRecord], configured: Path | None) -> None:
        """List discovered NDKs and suggest a better one if the configured NDK is not among them."""
        self.console.print("\n[bold]NDKs found in SDK:[/bold]")
        if not ndks:
            self.console.print("  (none found)")
            self.console.print("\n  Install an NDK with:")
            self.console.print(f'    sdkmanager --install "ndk;{RECOMMENDED_NDK}"', markup=False, highlight=False)
            return

        for ndk in ndks:
            self.console.print(f"  {format_ndk_record(ndk)}", markup=False, highlight=False)

        if any(_same_path(ndk.path, configured) for ndk in ndks):
            return
        best = select_best_ndk(ndks)
        if best is not None:
            self.console.print("\n  [yellow]Suggestion:[/yellow] Set ANDROID_NDK_ROOT to use an installed NDK:")
            self.console.print(f"    export ANDROID_NDK_ROOT={best.path}", markup=False, highlight=False)

    def render_inventory(self, ndks: Sequence[NdkRecord], configured: Path | None = None) -> None:
        """Tabular listing of NDK installations, marking the best and the configured one."""
        best = select_best_ndk(ndks)
        table = Table(title="Installed NDKs")
        table.add_column("Path", style="cyan")
        table.add_column("Version")
        table.add_column("Max API")
        table.add_column("Notes")
        for ndk in ndks:
            notes = []
            if best is not None and ndk == best:
                notes.append("best")
            if _same_path(ndk.path, configured):
                notes.append("configured")
            table.add_row(
                str(ndk.path),
                f"r{ndk.version}" if ndk.version is not None else "unknown",
                str(ndk.max_api) if ndk.max_api is not None else "no aarch64 libs",
                ", ".join(notes),
            )
        self.console.print(table)

    def _render_detected(self, resolution: Resolution) -> None:
        detected = resolution.detected
        self.console.print("[bold]Detected configuration:[/bold]")
        self.console.print(f"  SDK path: {detected.sdk_root or '(not found)'}", markup=False, highlight=False)
        self.console.print(f"  NDK path: {detected.ndk_root or '(not found)'}", markup=False, highlight=False)
        self.console.print(f"  Build tools: {detected.build_tools_version or '(not found)'}", markup=False, highlight=False)
        api = detected.api_level if detected.api_level is not None else "(not found)"
        self.console.print(f"  API level: {api}", markup=False, highlight=False)

    def _render_environment(self, environment: Mapping[str, str | None]) -> None:
        self.console.print("\n[bold]Environment variables:[/bold]")
        for name in ENVIRONMENT_VARIABLES:
            value = environment.get(name)
            if value is None and name == "ANDROID_HOME":
                continue
            self.console.print(f"  {name}: {value or '(not set)'}", markup=False, highlight=False)
