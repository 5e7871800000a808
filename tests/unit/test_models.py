"""Unit tests for core models."""

from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from apkforge.core.types import InvocationResult, PipelineRun, StepResult, StepStatus
from apkforge.models.pipeline import PipelineStep, StepId
from apkforge.models.toolchain import (
    BuildTool,
    DetectedConfiguration,
    NdkRecord,
    Resolution,
    ResolvedConfiguration,
    ValidationError,
)


@pytest.fixture
def configuration():
    return ResolvedConfiguration(
        sdk_root=Path("/opt/android-sdk"),
        ndk_root=Path("/opt/android-ndk"),
        build_tools_version="35.0.0",
        api_level=34,
        min_sdk_version=26,
    )


class TestToolchainModels:
    """Tests for toolchain models."""

    def test_validation_error_is_immutable(self):
        """Test that recorded errors cannot be altered.

        Verifies that a ValidationError rejects attribute assignment once
        created, so reports always show what the resolver produced.
        """
        error = ValidationError(component="Android SDK", message="Not found at: /x", suggestion="Set it")

        with pytest.raises(PydanticValidationError):
            error.message = "changed"

    def test_build_tool_paths(self):
        """Test tool path templates."""
        assert BuildTool.AAPT2.path_template == "build-tools/{version}/aapt2"
        assert BuildTool.APKSIGNER.path_in(Path("/sdk"), "34.0.0") == Path("/sdk/build-tools/34.0.0/apksigner")
        assert [tool.value for tool in BuildTool] == ["aapt2", "d8", "zipalign", "apksigner"]

    def test_resolved_configuration_paths(self, configuration):
        """Test derived SDK and NDK locations.

        Verifies that every tool and platform path is fully qualified from
        the configuration rather than looked up on PATH.
        """
        assert configuration.target_sdk_version == 34
        assert configuration.build_tools_dir == Path("/opt/android-sdk/build-tools/35.0.0")
        assert configuration.tool(BuildTool.D8) == Path("/opt/android-sdk/build-tools/35.0.0/d8")
        assert configuration.android_jar == Path("/opt/android-sdk/platforms/android-34/android.jar")
        assert configuration.adb == Path("/opt/android-sdk/platform-tools/adb")
        sysroot = Path("/opt/android-ndk/toolchains/llvm/prebuilt/linux-x86_64/sysroot")
        assert configuration.ndk_sysroot == sysroot
        assert configuration.ndk_include_dir == sysroot / "usr/include"
        assert configuration.ndk_lib_dir == sysroot / "usr/lib/aarch64-linux-android/34"

    @pytest.mark.parametrize("api_level", [0, 256])
    def test_api_level_bounds(self, api_level):
        with pytest.raises(PydanticValidationError):
            ResolvedConfiguration(
                sdk_root=Path("/sdk"),
                ndk_root=Path("/ndk"),
                build_tools_version="35.0.0",
                api_level=api_level,
                min_sdk_version=26,
            )

    def test_ndk_record_usable(self):
        assert NdkRecord(path=Path("/ndk"), version=27, max_api=35).usable
        assert not NdkRecord(path=Path("/ndk"), version=27).usable


class TestResolution:
    """Tests for the Resolution result type."""

    def test_ok(self, configuration):
        resolution = Resolution.ok(configuration)

        assert resolution.success
        assert not resolution.has_errors()
        assert resolution.detected.build_tools_version == "35.0.0"
        assert resolution.detected.api_level == 34

    def test_fail_preserves_order(self):
        errors = [
            ValidationError(component=name, message="m", suggestion="s")
            for name in ("Android NDK", "Build Tools", "Android Platform")
        ]

        resolution = Resolution.fail(errors, DetectedConfiguration(api_level=30))

        assert not resolution.success
        assert resolution.configuration is None
        assert [error.component for error in resolution.errors] == ["Android NDK", "Build Tools", "Android Platform"]
        assert resolution.detected.api_level == 30

    def test_configuration_and_errors_are_exclusive(self, configuration):
        """Test the tagged-result invariant.

        Verifies that a resolution can carry neither both a configuration and
        errors nor neither of them.
        """
        error = ValidationError(component="Build Tools", message="m", suggestion="s")

        with pytest.raises(PydanticValidationError):
            Resolution(configuration=configuration, errors=(error,))
        with pytest.raises(PydanticValidationError):
            Resolution()


class TestExecutionRecords:
    """Tests for step and run records."""

    def test_step_result_lifecycle(self):
        result = StepResult(step_name="dex-convert")
        assert result.status == StepStatus.PENDING

        result.mark_running()
        assert result.status == StepStatus.RUNNING
        assert result.started_at is not None

        result.mark_failed("d8 failed", "stack trace")
        assert result.status == StepStatus.FAILED
        assert result.error_message == "d8 failed"
        assert result.output == "stack trace"
        assert result.duration_seconds >= 0

    def test_skipped_step_has_no_timing(self):
        result = StepResult(step_name="sign-artifact")
        result.mark_skipped("not attempted")

        assert result.status == StepStatus.SKIPPED
        assert result.started_at is None
        assert result.completed_at is None

    def test_pipeline_run_lookup(self):
        ok = StepResult(step_name="compile-entry-point")
        ok.mark_running()
        ok.mark_succeeded()
        bad = StepResult(step_name="dex-convert")
        bad.mark_running()
        bad.mark_failed("boom")

        run = PipelineRun(run_id="abc", target="dex-convert", steps=[ok, bad], final_status=StepStatus.FAILED)

        assert not run.success
        assert run.failed_step.step_name == "dex-convert"
        assert run.get_step("compile-entry-point").status == StepStatus.SUCCEEDED
        assert run.get_step("missing") is None

    def test_invocation_result(self):
        assert InvocationResult.ok("out") == InvocationResult(success=True, output="out")
        failed = InvocationResult.fail("bad", "log")
        assert not failed.success
        assert failed.error == "bad"

    def test_pipeline_step_runs_with_its_configuration(self, configuration):
        seen = []
        step = PipelineStep(
            step_id=StepId.DEX_CONVERT,
            depends_on=frozenset({StepId.COMPILE_ENTRY_POINT}),
            action=lambda cfg: seen.append(cfg) or InvocationResult.ok(),
            configuration=configuration,
        )

        assert step.name == "dex-convert"
        assert step.status == StepStatus.PENDING
        assert step.run().success
        assert seen == [configuration]
