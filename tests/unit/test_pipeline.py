"""Unit tests for the Prefect build flow."""

import pytest
from prefect.testing.utilities import prefect_test_harness

from apkforge.core.config import AndroidConfig, Config, ProjectConfig
from apkforge.core.types import StepStatus
from apkforge.models.pipeline import StepId
from apkforge.orchestration.pipeline import ApkForgePipeline, apk_build_flow, run_pipeline
from apkforge.services.invoker import ToolInvoker

HOST_TAG = "linux-x86_64"


@pytest.fixture(autouse=True, scope="module")
def prefect_backend():
    with prefect_test_harness():
        yield


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr("apkforge.orchestration.pipeline.setup_logging", lambda config=None: None)


@pytest.fixture
def project(temp_dir):
    project_dir = temp_dir / "app"
    (project_dir / "android").mkdir(parents=True)
    (project_dir / "src").mkdir()
    (project_dir / "android" / "Manifest.xml").write_text("<manifest/>")
    (project_dir / "android" / "MainActivity.java").write_text("class MainActivity {}")
    (project_dir / "src" / "ui.xml").write_text("<LinearLayout/>")
    return ProjectConfig(project_dir=project_dir, keystore_path=temp_dir / "debug.keystore")


@pytest.fixture
def config(android_sdk, ndk_path, project):
    return Config(
        android=AndroidConfig(sdk_root=android_sdk.root, ndk_root=ndk_path, host_tag=HOST_TAG),
        project=project,
    )


@pytest.fixture
def javac(temp_dir, monkeypatch):
    path = temp_dir / "jdk" / "bin" / "javac"
    path.parent.mkdir(parents=True)
    path.write_text("")
    monkeypatch.setenv("JAVA_HOME", str(temp_dir / "jdk"))
    return path


def tool_exit(returncode, stderr=""):
    def run_command(self, cmd, cwd=None, env=None):
        return returncode, "", stderr

    return run_command


class TestResolutionFailure:
    """Tests for builds refused by toolchain validation."""

    def test_missing_sdk(self, temp_dir, project):
        config = Config(android=AndroidConfig(sdk_root=temp_dir / "missing", host_tag=HOST_TAG), project=project)

        result = apk_build_flow(config)

        assert not result.success
        assert result.pipeline_run is None
        assert result.failed_step is None
        assert [error.component for error in result.resolution.errors] == ["Android SDK"]
        assert "Android SDK" in result.error
        assert result.ndks == []
        assert result.completed_at >= result.started_at

    def test_installed_ndks_listed(self, android_sdk, temp_dir, project):
        config = Config(
            android=AndroidConfig(sdk_root=android_sdk.root, ndk_root=temp_dir / "no-ndk", host_tag=HOST_TAG),
            project=project,
        )

        result = apk_build_flow(config)

        assert not result.success
        assert result.pipeline_run is None
        assert "Android NDK" in [error.component for error in result.resolution.errors]
        assert [ndk.path.name for ndk in result.ndks] == ["27.0.12077973"]
        assert result.ndks[0].version == 27
        assert result.ndks[0].max_api == 35


class TestStepFailure:
    """Tests for builds that stop at a failing step."""

    def test_failed_step_reported(self, config, javac, monkeypatch):
        monkeypatch.setattr(ToolInvoker, "_run_command", tool_exit(2, "javac: error: invalid source release"))

        result = apk_build_flow(config)

        assert not result.success
        assert result.resolution.success
        assert result.ndks == []
        assert result.failed_step == "compile-entry-point"
        assert "invalid source release" in result.error

        run = result.pipeline_run
        assert run.final_status == StepStatus.FAILED
        assert run.get_step("compile-entry-point").status == StepStatus.FAILED
        for name in ("dex-convert", "compile-resources", "install-native-library", "package-artifact", "sign-artifact"):
            assert run.get_step(name).status == StepStatus.SKIPPED

    def test_missing_jdk(self, config, temp_dir, monkeypatch):
        monkeypatch.setenv("JAVA_HOME", str(temp_dir / "no-jdk"))
        monkeypatch.setattr("apkforge.services.invoker.service.shutil.which", lambda name: None)
        monkeypatch.setattr(ToolInvoker, "_run_command", tool_exit(0))

        result = apk_build_flow(config)

        assert result.failed_step == "compile-entry-point"
        assert "javac" in result.error


class TestPipelineEntryPoints:
    """Tests for ApkForgePipeline and run_pipeline."""

    def test_run_to_named_step(self, config, javac, monkeypatch):
        monkeypatch.setattr(ToolInvoker, "_run_command", tool_exit(0))

        result = run_pipeline("compile-entry-point", config)

        assert result.success
        assert result.error is None
        assert result.failed_step is None
        assert result.pipeline_run.target == "compile-entry-point"
        assert [step.step_name for step in result.pipeline_run.steps] == ["compile-entry-point"]

    def test_unknown_step_name(self, config):
        with pytest.raises(ValueError):
            run_pipeline("install", config)

    def test_pipeline_uses_given_config(self, config, javac, monkeypatch):
        monkeypatch.setattr(ToolInvoker, "_run_command", tool_exit(0))
        pipeline = ApkForgePipeline(config)

        result = pipeline.run(StepId.COMPILE_ENTRY_POINT)

        assert pipeline.config is config
        assert result.success
        assert result.resolution.configuration.sdk_root == config.android.sdk_root
