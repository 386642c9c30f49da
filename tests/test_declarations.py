"""Tests for import resolution and state declarations."""

from flowsmith.core.declarations import (
    ImportDeclaration,
    generate_state_declarations,
    render_imports,
    resolve_imports,
)


class TestImports:
    """Tests for the workflow module's import block."""

    def test_base_primitives_always_imported(self, make_definition, make_node):
        definition = make_definition([make_node("start", "trigger")])
        assert render_imports(definition) == (
            "import { proxyActivities, startChild, executeChild, sleep, condition, workflowInfo }"
            " from '@temporalio/workflow';"
        )

    def test_activity_namespace_import(self, linear_definition):
        assert "import type * as activities from './activities';" in render_imports(
            linear_definition
        )

    def test_retry_with_capability_imports_activities(self, make_definition, make_node):
        definition = make_definition(
            [make_node("start", "trigger"), make_node("r", "retry", componentName="charge")]
        )
        assert "./activities" in render_imports(definition)

    def test_retry_without_capability_does_not(self, make_definition, make_node):
        definition = make_definition([make_node("start", "trigger"), make_node("r", "retry")])
        assert "./activities" not in render_imports(definition)

    def test_signal_primitives_merge_into_one_statement(self, make_definition, make_node):
        definition = make_definition(
            [make_node("start", "trigger"), make_node("s", "signal", signalName="go")]
        )
        imports = resolve_imports(definition)
        workflow = [d for d in imports if d.module == "@temporalio/workflow"]
        assert len(workflow) == 1
        assert workflow[0].names[-2:] == ["defineSignal", "setHandler"]

    def test_unreachable_nodes_still_contribute(self, make_definition, make_node):
        definition = make_definition(
            [make_node("start", "trigger"), make_node("island", "agent", componentName="x")]
        )
        assert "./activities" in render_imports(definition)

    def test_names_are_not_duplicated(self):
        declaration = ImportDeclaration("m")
        declaration.add("a", "b")
        declaration.add("b", "c")
        assert declaration.render() == "import { a, b, c } from 'm';"


class TestStateDeclarations:
    """Tests for top-level let declarations."""

    def test_no_state_no_lines(self, linear_definition):
        assert generate_state_declarations(linear_definition) == []

    def test_workflow_variables_first(self, make_definition, make_node):
        definition = make_definition(
            [
                make_node(
                    "sv", "state-variable", config={"name": "counter", "operation": "increment"}
                )
            ],
            variables=[
                {"name": "status", "type": "string"},
                {"name": "items", "type": "array", "initialValue": [1]},
            ],
        )
        assert generate_state_declarations(definition) == [
            "  // State variables",
            "  let status: any = '';",
            "  let items: any = [1];",
            "  let counter: any = 0;",
        ]

    def test_each_name_declared_once(self, make_definition, make_node):
        definition = make_definition(
            [
                make_node("s1", "state-variable", config={"name": "n", "initialValue": 5}),
                make_node("s2", "state-variable", config={"name": "n", "operation": "increment"}),
            ],
            variables=[{"name": "n", "type": "number"}],
        )
        lines = generate_state_declarations(definition)
        assert [line for line in lines if "let n" in line] == ["  let n: any = 0;"]

    def test_initial_value_by_operation(self, make_definition, make_node):
        definition = make_definition(
            [
                make_node("a", "state-variable", config={"name": "log", "operation": "append"}),
                make_node("b", "state-variable", config={"name": "flag", "initialValue": True}),
                make_node("c", "state-variable", config={"name": "other"}),
            ]
        )
        lines = generate_state_declarations(definition)
        assert "  let log: any = [];" in lines
        assert "  let flag: any = true;" in lines
        assert "  let other: any = null;" in lines

    def test_invalid_variable_name_skipped(self, make_definition):
        definition = make_definition([], variables=[{"name": "not valid"}])
        assert generate_state_declarations(definition) == []

    def test_names_bound_by_the_function_are_skipped(self, make_definition, make_node):
        definition = make_definition(
            [make_node("s", "state-variable", config={"name": "input", "operation": "increment"})],
            variables=[{"name": "input"}, {"name": "class"}],
        )
        assert generate_state_declarations(definition) == [
            "  // State variables",
            "  let _input: any = 0;",
        ]
