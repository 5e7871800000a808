"""
Tool Invoker Service.

Runs the external Android tools behind each pipeline step with fully-qualified
paths taken from the resolved configuration. Tool output is captured for the
operator and otherwise only judged by exit status.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import zipfile
from collections.abc import Callable
from pathlib import Path
from xml.sax.saxutils import escape

from ...core.config import ProjectConfig
from ...core.exceptions import ApkForgeError, ToolInvocationError, ToolNotFoundError
from ...core.logging import get_logger
from ...core.types import InvocationResult
from ...models.pipeline import StepAction, StepId
from ...models.toolchain import TARGET_ABI, TARGET_TRIPLE, BuildTool, ResolvedConfiguration
from ..inventory import file_exists

logger = get_logger(__name__)

# resources.arsc must stay uncompressed for Android R+ to map it.
UNCOMPRESSED_ENTRIES = frozenset({"resources.arsc"})

StepBody = Callable[[ResolvedConfiguration, list[str]], None]


def render_libc_config(configuration: ResolvedConfiguration) -> str:
    """libc description file pointing the native compiler at the NDK sysroot."""
    include_dir = configuration.ndk_include_dir
    return (
        "# Auto-generated Android NDK libc configuration\n"
        f"# Target: {TARGET_TRIPLE} API {configuration.api_level}\n"
        f"# NDK: {configuration.ndk_root}\n"
        "\n"
        f"include_dir={include_dir}\n"
        f"sys_include_dir={include_dir}\n"
        f"crt_dir={configuration.ndk_lib_dir}\n"
        "msvc_lib_dir=\n"
        "kernel32_lib_dir=\n"
        "gcc_dir=\n"
    )


def render_strings_xml(app_label: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        f'<resources><string name="app_name">{escape(app_label)}</string></resources>\n'
    )


class ToolInvoker:
    """Supplies the action for every pipeline step.

    Each action takes the resolved configuration and returns an
    InvocationResult; tool failures, timeouts and missing tools become failed
    results rather than exceptions.
    """

    def __init__(self, project: ProjectConfig, timeout_seconds: int = 300) -> None:
        """Initialize the invoker.

        Args:
            project: Layout of the application being built.
            timeout_seconds: Upper bound for any single external command.
        """
        self.project = project
        self.timeout_seconds = timeout_seconds
        self._bodies: dict[StepId, StepBody] = {
            StepId.COMPILE_ENTRY_POINT: self._compile_entry_point,
            StepId.DEX_CONVERT: self._dex_convert,
            StepId.COMPILE_RESOURCES: self._compile_resources,
            StepId.INSTALL_NATIVE_LIBRARY: self._install_native_library,
            StepId.PACKAGE_ARTIFACT: self._package_artifact,
            StepId.SIGN_ARTIFACT: self._sign_artifact,
            StepId.VERIFY_ARTIFACT: self._verify_artifact,
            StepId.DEPLOY_ARTIFACT: self._deploy_artifact,
        }

    def action_for(self, step_id: StepId) -> StepAction:
        """Action running ``step_id`` against a resolved configuration."""
        body = self._bodies[step_id]

        def action(configuration: ResolvedConfiguration) -> InvocationResult:
            transcript: list[str] = []
            try:
                body(configuration, transcript)
            except ApkForgeError as e:
                logger.error("Step failed", step=step_id.value, error=str(e))
                return InvocationResult.fail(str(e), "\n".join(transcript))
            except (OSError, zipfile.BadZipFile) as e:
                logger.error("Step failed on filesystem operation", step=step_id.value, error=str(e))
                return InvocationResult.fail(f"{step_id.value}: {e}", "\n".join(transcript))
            return InvocationResult.ok("\n".join(transcript))

        return action

    def invoke(self, step_id: StepId, configuration: ResolvedConfiguration) -> InvocationResult:
        """Run one step immediately."""
        return self.action_for(step_id)(configuration)

    @property
    def build_dir(self) -> Path:
        return self.project.build_path

    @property
    def classes_dir(self) -> Path:
        return self.build_dir / "classes"

    @property
    def apk_dir(self) -> Path:
        """Staging tree whose contents become the APK."""
        return self.build_dir / "apk"

    def _run_command(
        self,
        cmd: list[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> tuple[int, str, str]:
        """Run a command to completion and return (returncode, stdout, stderr)."""
        logger.info("Running command", command=" ".join(cmd), cwd=str(cwd) if cwd else None)
        result = subprocess.run(
            cmd,
            cwd=cwd,
            env=env,
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=self.timeout_seconds,
        )
        logger.debug("Command completed", returncode=result.returncode)
        return result.returncode, result.stdout, result.stderr

    def _run_tool(
        self,
        cmd: list[str | Path],
        transcript: list[str],
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        """Run an external tool, recording its output and raising on failure."""
        argv = [str(arg) for arg in cmd]
        tool_name = Path(argv[0]).name
        transcript.append(f"$ {' '.join(argv)}")
        try:
            returncode, stdout, stderr = self._run_command(argv, cwd=cwd or self.project.project_dir, env=env)
        except FileNotFoundError as e:
            raise ToolNotFoundError(
                message=f"Executable not found: {argv[0]}",
                tool_name=tool_name,
                expected_path=argv[0],
                cause=e,
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ToolInvocationError(
                message=f"Timed out after {self.timeout_seconds}s",
                tool_name=tool_name,
                cause=e,
            ) from e

        for stream in (stdout, stderr):
            if stream.strip():
                transcript.append(stream.rstrip())
        if returncode != 0:
            tail = (stderr or stdout).strip()[-500:]
            raise ToolInvocationError(
                message=tail or "command failed without output",
                tool_name=tool_name,
                returncode=returncode,
            )

    def _build_tool(self, configuration: ResolvedConfiguration, tool: BuildTool) -> Path:
        path = configuration.tool(tool)
        if not file_exists(path):
            raise ToolNotFoundError(
                message=f"Build tool missing: {tool.value}",
                tool_name=tool.value,
                expected_path=str(path),
                install_hint=f'sdkmanager --install "build-tools;{configuration.build_tools_version}"',
            )
        return path

    def _find_java_tool(self, name: str) -> Path:
        """Locate a JDK executable via JAVA_HOME, then PATH."""
        java_home = os.environ.get("JAVA_HOME")
        if java_home:
            candidate = Path(java_home) / "bin" / name
            if file_exists(candidate):
                return candidate
        found = shutil.which(name)
        if found:
            return Path(found)
        raise ToolNotFoundError(
            message=f"JDK tool not found: {name}",
            tool_name=name,
            expected_path="JAVA_HOME/bin or PATH",
            install_hint="Install a JDK (11 or newer) and set JAVA_HOME",
        )

    def _compile_entry_point(self, configuration: ResolvedConfiguration, transcript: list[str]) -> None:
        self.classes_dir.mkdir(parents=True, exist_ok=True)
        release = self.project.java_release
        self._run_tool(
            [
                self._find_java_tool("javac"),
                "-d", self.classes_dir,
                "-cp", configuration.android_jar,
                "-sourcepath", self.project.resolve(self.project.source_root),
                "-Xlint:-options",
                "-source", release,
                "-target", release,
                self.project.resolve(self.project.entry_point),
            ],
            transcript,
        )

    def _dex_convert(self, configuration: ResolvedConfiguration, transcript: list[str]) -> None:
        class_files = sorted(self.classes_dir.rglob("*.class")) if self.classes_dir.is_dir() else []
        if not class_files:
            raise ToolInvocationError(
                message=f"No compiled classes found in {self.classes_dir}",
                tool_name=BuildTool.D8.value,
            )
        self._run_tool(
            [
                self._build_tool(configuration, BuildTool.D8),
                "--lib", configuration.android_jar,
                "--min-api", str(configuration.min_sdk_version),
                "--output", self.build_dir,
                *class_files,
            ],
            transcript,
        )

    def _compile_resources(self, configuration: ResolvedConfiguration, transcript: list[str]) -> None:
        res_dir = self.build_dir / "res"
        (res_dir / "layout").mkdir(parents=True, exist_ok=True)
        (res_dir / "values").mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.project.resolve(self.project.layout), res_dir / "layout" / "activity_main.xml")
        (res_dir / "values" / "strings.xml").write_text(render_strings_xml(self.project.app_label), encoding="utf-8")

        aapt2 = self._build_tool(configuration, BuildTool.AAPT2)
        compiled = self.build_dir / "compiled_res.zip"
        self._run_tool([aapt2, "compile", "--dir", res_dir, "-o", compiled], transcript)
        self._run_tool(
            [
                aapt2, "link",
                "-I", configuration.android_jar,
                "-o", self.build_dir / "resources.apk",
                "--manifest", self.project.resolve(self.project.manifest),
                "--min-sdk-version", str(configuration.min_sdk_version),
                "--target-sdk-version", str(configuration.target_sdk_version),
                compiled,
            ],
            transcript,
        )

    def _install_native_library(self, configuration: ResolvedConfiguration, transcript: list[str]) -> None:
        self.build_dir.mkdir(parents=True, exist_ok=True)
        libc_file = self.build_dir / "android-libc.conf"
        libc_file.write_text(render_libc_config(configuration), encoding="utf-8")
        transcript.append(f"wrote {libc_file}")

        if self.project.native_build_command:
            env = dict(os.environ, ZIG_LIBC=str(libc_file))
            self._run_tool(list(self.project.native_build_command), transcript, env=env)

        library = self.project.resolve(self.project.native_library)
        if not file_exists(library):
            raise ToolInvocationError(
                message=f"Native library not found: {library}",
                tool_name="native-library",
            )
        abi_dir = self.apk_dir / "lib" / TARGET_ABI
        abi_dir.mkdir(parents=True, exist_ok=True)
        shutil.copy2(library, abi_dir / library.name)
        transcript.append(f"installed {library.name} into lib/{TARGET_ABI}")

    def _package_artifact(self, configuration: ResolvedConfiguration, transcript: list[str]) -> None:
        resources_apk = self.build_dir / "resources.apk"
        classes_dex = self.build_dir / "classes.dex"
        for required in (resources_apk, classes_dex):
            if not required.is_file():
                raise ToolInvocationError(message=f"Missing build input: {required}", tool_name="package")

        self.apk_dir.mkdir(parents=True, exist_ok=True)
        with zipfile.ZipFile(resources_apk) as zf:
            zf.extractall(self.apk_dir)
        shutil.copy2(classes_dex, self.apk_dir / "classes.dex")

        unsigned = self.project.unsigned_apk
        files = sorted(path for path in self.apk_dir.rglob("*") if path.is_file())
        with zipfile.ZipFile(unsigned, "w") as zf:
            for path in files:
                arcname = path.relative_to(self.apk_dir).as_posix()
                compress = zipfile.ZIP_STORED if arcname in UNCOMPRESSED_ENTRIES else zipfile.ZIP_DEFLATED
                zf.write(path, arcname, compress_type=compress)
        transcript.append(f"packaged {len(files)} entries into {unsigned}")

    def _sign_artifact(self, configuration: ResolvedConfiguration, transcript: list[str]) -> None:
        project = self.project
        self._run_tool(
            [
                self._build_tool(configuration, BuildTool.ZIPALIGN),
                "-f", "4",
                project.unsigned_apk,
                project.aligned_apk,
            ],
            transcript,
        )

        keystore = project.keystore_path
        if not file_exists(keystore):
            raise ToolNotFoundError(
                message="Signing keystore not found",
                tool_name="keystore",
                expected_path=str(keystore),
                install_hint=(
                    f"keytool -genkey -v -keystore {keystore} -storepass android "
                    f"-alias {project.key_alias} -keypass android -keyalg RSA -keysize 2048 "
                    '-validity 10000 -dname "CN=Android Debug,O=Android,C=US"'
                ),
            )

        self._run_tool(
            [
                self._build_tool(configuration, BuildTool.APKSIGNER),
                "sign",
                "--ks-type", "jks",
                "--ks", keystore,
                "--ks-key-alias", project.key_alias,
                "--ks-pass", f"pass:{project.keystore_password.get_secret_value()}",
                "--key-pass", f"pass:{project.key_password.get_secret_value()}",
                "--out", project.signed_apk,
                project.aligned_apk,
            ],
            transcript,
        )

    def _verify_artifact(self, configuration: ResolvedConfiguration, transcript: list[str]) -> None:
        signed = self.project.signed_apk
        if not signed.is_file():
            raise ToolInvocationError(message=f"Signed APK not found: {signed}", tool_name="verify")

        self._run_tool([self._build_tool(configuration, BuildTool.AAPT2), "dump", "badging", signed], transcript)
        self._run_tool([self._build_tool(configuration, BuildTool.APKSIGNER), "verify", signed], transcript)

        required = {
            "AndroidManifest.xml",
            "classes.dex",
            f"lib/{TARGET_ABI}/{self.project.native_library.name}",
        }
        with zipfile.ZipFile(signed) as zf:
            missing = sorted(required - set(zf.namelist()))
        if missing:
            raise ToolInvocationError(
                message=f"APK missing required components: {', '.join(missing)}",
                tool_name="verify",
            )
        transcript.append("APK contains manifest, dex and native library")

    def _deploy_artifact(self, configuration: ResolvedConfiguration, transcript: list[str]) -> None:
        adb = configuration.adb
        if not file_exists(adb):
            raise ToolNotFoundError(
                message="adb not found",
                tool_name="adb",
                expected_path=str(adb),
                install_hint='sdkmanager --install "platform-tools"',
            )
        self._run_tool([adb, "install", "-r", self.project.signed_apk], transcript)
