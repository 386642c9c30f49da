"""Tests for the workflow graph schema and validate_graph()."""

import pydantic
import pytest

from flowsmith.core.graph_schema import (
    NodeType,
    RetryStrategy,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
)


class TestEditorFormat:
    """Tests for reading the editor's camelCase JSON."""

    def test_camel_case_keys_are_accepted(self):
        node = WorkflowNode.model_validate(
            {
                "id": "a1",
                "type": "activity",
                "data": {
                    "label": "Send",
                    "componentName": "sendEmail",
                    "retryPolicy": {"strategy": "fail-after-x", "maxAttempts": 4},
                },
            }
        )
        assert node.data.component_name == "sendEmail"
        assert node.data.retry_policy.strategy == RetryStrategy.FAIL_AFTER_X
        assert node.data.retry_policy.max_attempts == 4

    def test_snake_case_names_are_accepted(self):
        edge = WorkflowEdge(source="c", target="a", source_handle="true")
        assert edge.source_handle == "true"

    def test_position_is_optional(self):
        node = WorkflowNode.model_validate({"id": "t", "type": "trigger"})
        assert node.position.x == 0
        assert node.data.config == {}

    def test_settings_keep_pass_through_keys(self):
        definition = WorkflowDefinition.model_validate(
            {"id": "w", "name": "W", "settings": {"taskQueue": "orders", "owner": "team-a"}}
        )
        assert definition.settings.task_queue == "orders"
        assert definition.settings.model_extra == {"owner": "team-a"}

    def test_definition_is_immutable(self, linear_definition):
        with pytest.raises(pydantic.ValidationError):
            linear_definition.name = "Other"

    def test_invalid_retry_strategy_rejected(self):
        with pytest.raises(pydantic.ValidationError):
            WorkflowNode.model_validate(
                {"id": "a", "type": "activity", "data": {"retryPolicy": {"strategy": "forever"}}}
            )


class TestNodeType:
    """Tests for node type resolution."""

    def test_known_type(self):
        node = WorkflowNode(id="c", type="child-workflow")
        assert node.node_type == NodeType.CHILD_WORKFLOW

    def test_unknown_type_is_kept(self):
        node = WorkflowNode(id="w", type="custom-widget")
        assert node.node_type is None
        assert node.type == "custom-widget"

    def test_display_label_falls_back_to_id(self):
        assert WorkflowNode(id="n1", type="trigger").display_label == "n1"


class TestValidateGraph:
    """Tests for structural diagnostics."""

    def test_valid_graph_has_no_errors(self, linear_definition):
        issues = linear_definition.validate_graph()
        assert [i for i in issues if i.severity == "error"] == []

    def test_empty_graph(self):
        issues = WorkflowDefinition(id="w", name="W").validate_graph()
        assert len(issues) == 1
        assert issues[0].severity == "error"

    def test_duplicate_node_and_dangling_edge(self, make_definition, make_node, make_edge):
        definition = make_definition(
            [make_node("start", "trigger"), make_node("start", "activity")],
            [make_edge("start", "ghost")],
        )
        messages = [str(i) for i in definition.validate_graph()]
        assert any("Duplicate node ID" in m for m in messages)
        assert any("'ghost' not found" in m for m in messages)

    def test_self_loop_is_error(self, make_definition, make_node, make_edge):
        definition = make_definition(
            [make_node("start", "trigger"), make_node("a", "activity", componentName="x")],
            [make_edge("start", "a"), make_edge("a", "a")],
        )
        errors = [i for i in definition.validate_graph() if i.severity == "error"]
        assert any("self-loop" in i.message for i in errors)

    def test_missing_trigger(self, make_definition, make_node):
        definition = make_definition([make_node("a", "activity", componentName="x")])
        assert any("trigger" in i.message for i in definition.validate_graph())

    def test_cycle_is_warning(self, cyclic_definition):
        issues = cyclic_definition.validate_graph()
        cycles = [i for i in issues if "Cycle detected" in i.message]
        assert cycles
        assert all(i.severity == "warning" for i in cycles)

    def test_orphaned_node_warning(self, make_definition, make_node):
        definition = make_definition(
            [make_node("start", "trigger"), make_node("lonely", "activity", componentName="x")]
        )
        issues = definition.validate_graph()
        assert any(i.node_id == "lonely" and "Orphaned" in i.message for i in issues)

    def test_type_specific_requirements(self, make_definition, make_node, make_edge):
        definition = make_definition(
            [
                make_node("start", "trigger"),
                make_node("sig", "signal"),
                make_node("child", "child-workflow"),
            ],
            [make_edge("start", "sig"), make_edge("sig", "child")],
        )
        errors = {i.node_id for i in definition.validate_graph() if i.severity == "error"}
        assert {"sig", "child"} <= errors

    def test_unhandled_condition_edge_warning(self, make_definition, make_node, make_edge):
        definition = make_definition(
            [
                make_node("start", "trigger"),
                make_node("cond", "condition"),
                make_node("a", "activity", componentName="x"),
            ],
            [make_edge("start", "cond"), make_edge("cond", "a")],
        )
        assert any(
            i.node_id == "cond" and "handle" in i.message for i in definition.validate_graph()
        )

    def test_terminal_nodes(self, branching_definition):
        assert branching_definition.get_terminal_nodes() == {"approve", "reject"}
