"""Unit tests for pipeline graph construction."""

from pathlib import Path

import pytest

from apkforge.core.exceptions import ConfigurationError, PipelineError
from apkforge.core.types import InvocationResult, StepStatus
from apkforge.models.pipeline import PipelineStep, StepId
from apkforge.models.toolchain import (
    DetectedConfiguration,
    Resolution,
    ResolvedConfiguration,
    ValidationError,
)
from apkforge.orchestration.graph import PIPELINE_TOPOLOGY, PipelineGraph, build_pipeline_graph


class RecordingActions:
    """Action provider whose actions only record that they ran."""

    def __init__(self):
        self.calls = []

    def action_for(self, step_id):
        def action(configuration):
            self.calls.append((step_id, configuration))
            return InvocationResult.ok()

        return action


@pytest.fixture
def configuration():
    return ResolvedConfiguration(
        sdk_root=Path("/opt/android-sdk"),
        ndk_root=Path("/opt/android-sdk/ndk/27.0.12077973"),
        build_tools_version="35.0.0",
        api_level=35,
        min_sdk_version=26,
    )


@pytest.fixture
def graph(configuration):
    return build_pipeline_graph(Resolution.ok(configuration), RecordingActions())


def make_step(step_id, depends_on=(), configuration=None):
    return PipelineStep(
        step_id=step_id,
        depends_on=frozenset(depends_on),
        action=lambda cfg: InvocationResult.ok(),
        configuration=configuration,
    )


class TestTopology:
    """Tests for the fixed shape of the APK pipeline."""

    def test_every_step_declared(self):
        assert list(PIPELINE_TOPOLOGY) == list(StepId)

    def test_edges(self):
        assert PIPELINE_TOPOLOGY[StepId.COMPILE_ENTRY_POINT] == frozenset()
        assert PIPELINE_TOPOLOGY[StepId.COMPILE_RESOURCES] == frozenset()
        assert PIPELINE_TOPOLOGY[StepId.INSTALL_NATIVE_LIBRARY] == frozenset()
        assert PIPELINE_TOPOLOGY[StepId.DEX_CONVERT] == {StepId.COMPILE_ENTRY_POINT}
        assert PIPELINE_TOPOLOGY[StepId.PACKAGE_ARTIFACT] == {
            StepId.INSTALL_NATIVE_LIBRARY,
            StepId.COMPILE_RESOURCES,
            StepId.DEX_CONVERT,
        }
        assert PIPELINE_TOPOLOGY[StepId.SIGN_ARTIFACT] == {StepId.PACKAGE_ARTIFACT}
        assert PIPELINE_TOPOLOGY[StepId.VERIFY_ARTIFACT] == {StepId.SIGN_ARTIFACT}
        assert PIPELINE_TOPOLOGY[StepId.DEPLOY_ARTIFACT] == {StepId.SIGN_ARTIFACT}


class TestBuildPipelineGraph:
    """Tests for building the graph from a resolution."""

    def test_builds_all_steps(self, graph, configuration):
        assert len(graph) == len(StepId)
        for step_id in StepId:
            assert step_id in graph
            assert graph[step_id].status == StepStatus.PENDING
            assert graph[step_id].configuration == configuration

    def test_actions_receive_baked_configuration(self, configuration):
        actions = RecordingActions()
        graph = build_pipeline_graph(Resolution.ok(configuration), actions)

        assert graph[StepId.SIGN_ARTIFACT].run().success
        assert actions.calls == [(StepId.SIGN_ARTIFACT, configuration)]

    def test_refuses_failed_resolution(self):
        errors = [
            ValidationError(component="Android NDK", message="Not found at: /x", suggestion="install"),
            ValidationError(component="Build Tools", message="No build-tools found in SDK", suggestion="install"),
        ]
        resolution = Resolution.fail(errors, DetectedConfiguration())
        actions = RecordingActions()

        with pytest.raises(ConfigurationError) as exc_info:
            build_pipeline_graph(resolution, actions)

        assert exc_info.value.errors == errors
        assert "Android NDK, Build Tools" in str(exc_info.value)
        assert actions.calls == []


class TestOrdering:
    """Tests for topological ordering and planning."""

    def test_topological_order_follows_declaration(self, graph):
        assert [step.step_id for step in graph.topological_order()] == list(StepId)

    def test_predecessors_come_first(self, graph):
        position = {step.step_id: index for index, step in enumerate(graph.topological_order())}
        for step in graph:
            for dep in step.depends_on:
                assert position[dep] < position[step.step_id]

    def test_declaration_order_breaks_ties(self, configuration):
        steps = [
            make_step(StepId.COMPILE_RESOURCES, configuration=configuration),
            make_step(StepId.PACKAGE_ARTIFACT, [StepId.COMPILE_RESOURCES, StepId.DEX_CONVERT], configuration),
            make_step(StepId.DEX_CONVERT, configuration=configuration),
        ]

        order = [step.step_id for step in PipelineGraph(steps).topological_order()]

        assert order == [StepId.COMPILE_RESOURCES, StepId.DEX_CONVERT, StepId.PACKAGE_ARTIFACT]

    def test_plan_for_package(self, graph):
        plan = [step.step_id for step in graph.plan(StepId.PACKAGE_ARTIFACT)]
        assert plan == [
            StepId.COMPILE_ENTRY_POINT,
            StepId.DEX_CONVERT,
            StepId.COMPILE_RESOURCES,
            StepId.INSTALL_NATIVE_LIBRARY,
            StepId.PACKAGE_ARTIFACT,
        ]

    def test_plan_for_deploy_skips_verify(self, graph):
        plan = [step.step_id for step in graph.plan(StepId.DEPLOY_ARTIFACT)]
        assert StepId.VERIFY_ARTIFACT not in plan
        assert plan[-2:] == [StepId.SIGN_ARTIFACT, StepId.DEPLOY_ARTIFACT]

    def test_plan_without_target_is_everything(self, graph):
        assert len(graph.plan()) == len(StepId)

    def test_closure(self, graph):
        assert graph.closure(StepId.DEX_CONVERT) == {StepId.DEX_CONVERT, StepId.COMPILE_ENTRY_POINT}
        assert graph.closure(StepId.COMPILE_RESOURCES) == {StepId.COMPILE_RESOURCES}

    def test_predecessors(self, graph):
        names = [step.step_id for step in graph.predecessors(StepId.PACKAGE_ARTIFACT)]
        assert names == [StepId.DEX_CONVERT, StepId.COMPILE_RESOURCES, StepId.INSTALL_NATIVE_LIBRARY]


class TestGraphValidation:
    """Tests for malformed graphs."""

    def test_cycle_detected(self, configuration):
        steps = [
            make_step(StepId.PACKAGE_ARTIFACT, [StepId.SIGN_ARTIFACT], configuration),
            make_step(StepId.SIGN_ARTIFACT, [StepId.PACKAGE_ARTIFACT], configuration),
        ]

        with pytest.raises(PipelineError, match="cycle"):
            PipelineGraph(steps)

    def test_unknown_predecessor(self, configuration):
        with pytest.raises(PipelineError, match="dex-convert"):
            PipelineGraph([make_step(StepId.PACKAGE_ARTIFACT, [StepId.DEX_CONVERT], configuration)])

    def test_duplicate_step(self, configuration):
        steps = [make_step(StepId.DEX_CONVERT, configuration=configuration)] * 2
        with pytest.raises(PipelineError, match="Duplicate"):
            PipelineGraph(steps)

    def test_closure_of_missing_step(self, configuration):
        graph = PipelineGraph([make_step(StepId.DEX_CONVERT, configuration=configuration)])
        with pytest.raises(PipelineError):
            graph.closure(StepId.SIGN_ARTIFACT)
