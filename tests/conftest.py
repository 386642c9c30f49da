# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the Flowsmith test suite.

This module provides:
- Factories for nodes, edges and definitions in the editor's camelCase format
- Sample graphs (linear, branching, cyclic) used across test modules
- Compiler options and compilation context helpers

Usage:
    Import fixtures implicitly via pytest's fixture discovery.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from flowsmith.core.config import CompilerOptions
from flowsmith.core.context import CompilationContext
from flowsmith.core.graph_schema import WorkflowDefinition, WorkflowNode

# =============================================================================
# Factories
# =============================================================================


def _node(node_id: str, node_type: str, label: str | None = None, **data: Any) -> dict:
    payload = {"label": label if label is not None else node_id, **data}
    return {"id": node_id, "type": node_type, "position": {"x": 0, "y": 0}, "data": payload}


def _edge(source: str, target: str, handle: str | None = None) -> dict:
    edge = {"id": f"{source}->{target}", "source": source, "target": target}
    if handle is not None:
        edge["sourceHandle"] = handle
    return edge


@pytest.fixture
def make_node() -> Callable[..., dict]:
    """Build a node dict: make_node("a1", "activity", componentName="sendEmail")."""
    return _node


@pytest.fixture
def make_edge() -> Callable[..., dict]:
    """Build an edge dict: make_edge("c", "a", "true")."""
    return _edge


@pytest.fixture
def make_definition() -> Callable[..., WorkflowDefinition]:
    """Validate a definition from node/edge dicts."""

    def factory(
        nodes: list[dict],
        edges: list[dict] | None = None,
        name: str = "TestWorkflow",
        **extra: Any,
    ) -> WorkflowDefinition:
        return WorkflowDefinition.model_validate(
            {"id": "wf-1", "name": name, "nodes": nodes, "edges": edges or [], **extra}
        )

    return factory


@pytest.fixture
def options() -> CompilerOptions:
    return CompilerOptions()


@pytest.fixture
def make_context(options: CompilerOptions) -> Callable[..., CompilationContext]:
    """Compilation context for driving generators directly."""

    def factory(
        definition: WorkflowDefinition | None = None, **option_overrides: Any
    ) -> CompilationContext:
        definition = definition or WorkflowDefinition(id="wf-1", name="TestWorkflow")
        opts = options.model_copy(update=option_overrides) if option_overrides else options
        return CompilationContext.create(definition, opts)

    return factory


@pytest.fixture
def node_from() -> Callable[..., WorkflowNode]:
    """Validate a single node: node_from("a1", "activity", componentName="x")."""

    def factory(node_id: str, node_type: str, **data: Any) -> WorkflowNode:
        return WorkflowNode.model_validate(_node(node_id, node_type, **data))

    return factory


# =============================================================================
# Sample Graphs
# =============================================================================


@pytest.fixture
def linear_definition(make_definition) -> WorkflowDefinition:
    """trigger -> activity(sendEmail)."""
    return make_definition(
        [
            _node("start", "trigger", label="Start"),
            _node("send", "activity", label="Send email", componentName="sendEmail"),
        ],
        [_edge("start", "send")],
    )


@pytest.fixture
def branching_definition(make_definition) -> WorkflowDefinition:
    """trigger -> check -> condition -> (true: approve | false: reject)."""
    return make_definition(
        [
            _node("start", "trigger", label="Start"),
            _node("check", "activity", label="Check", componentName="checkValue"),
            _node(
                "is-valid",
                "condition",
                label="Is Valid?",
                config={"expression": "result_check.success === true"},
            ),
            _node("approve", "activity", label="Approve", componentName="handleSuccess"),
            _node("reject", "activity", label="Reject", componentName="handleFailure"),
        ],
        [
            _edge("start", "check"),
            _edge("check", "is-valid"),
            _edge("is-valid", "approve", "true"),
            _edge("is-valid", "reject", "false"),
        ],
    )


@pytest.fixture
def cyclic_definition(make_definition) -> WorkflowDefinition:
    """trigger -> a -> b -> a (cycle among non-condition nodes)."""
    return make_definition(
        [
            _node("start", "trigger"),
            _node("a", "activity", componentName="stepA"),
            _node("b", "activity", componentName="stepB"),
        ],
        [_edge("start", "a"), _edge("a", "b"), _edge("b", "a")],
    )


@pytest.fixture
def definition_file(tmp_path: Path, linear_definition: WorkflowDefinition) -> Path:
    """The linear definition written as editor JSON."""
    path = tmp_path / "workflow.json"
    path.write_text(json.dumps(linear_definition.model_dump(by_alias=True, mode="json")))
    return path
