"""Unit tests for the command-line interface."""

import pytest
from typer.testing import CliRunner

from apkforge.cli import app, load_config
from apkforge.core.config import get_config

runner = CliRunner()


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    for name in ("ANDROID_SDK_ROOT", "ANDROID_HOME", "ANDROID_NDK_ROOT", "APKFORGE_BUILD_TOOLS", "APKFORGE_API_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("apkforge.cli.setup_logging", lambda config=None: None)
    get_config.cache_clear()
    yield
    get_config.cache_clear()


class TestLoadConfig:
    """Tests for command-line overrides."""

    def test_overrides_applied(self, temp_dir):
        config = load_config(sdk=temp_dir, build_tools="34.0.0", api_level=33, min_sdk=28, verbose=True)

        assert config.android.sdk_root == temp_dir
        assert config.android.build_tools_version == "34.0.0"
        assert config.android.api_level == 33
        assert config.min_sdk == 28
        assert config.log_level == "DEBUG"

    def test_unset_options_keep_environment(self, monkeypatch):
        monkeypatch.setenv("APKFORGE_BUILD_TOOLS", "35.0.0")
        get_config.cache_clear()

        assert load_config().android.build_tools_version == "35.0.0"


class TestCheckCommand:
    """Tests for `apkforge check`."""

    def test_missing_sdk_fails(self, temp_dir):
        result = runner.invoke(app, ["check", "--sdk", str(temp_dir / "missing")])

        assert result.exit_code == 1
        assert "Android SDK" in result.output

    def test_healthy_toolchain(self, android_sdk, ndk_path):
        result = runner.invoke(app, ["check", "--sdk", str(android_sdk.root), "--ndk", str(ndk_path)])

        assert result.exit_code == 0, result.output
        assert "Prerequisites OK" in result.output


class TestOtherCommands:
    """Tests for the remaining commands."""

    def test_unknown_build_target(self):
        result = runner.invoke(app, ["build", "install"])

        assert result.exit_code == 2
        assert "Unknown target" in result.output

    def test_ndks_lists_installations(self, android_sdk):
        result = runner.invoke(app, ["ndks", "--sdk", str(android_sdk.root)])

        assert result.exit_code == 0, result.output
        assert "Installed NDKs" in result.output

    def test_ndks_none_found(self, fake_sdk):
        result = runner.invoke(app, ["ndks", "--sdk", str(fake_sdk.root)])

        assert result.exit_code == 1

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "apkforge v1.0.0" in result.output
