"""Workflow graph schema definitions using Pydantic models.

This module defines the node/edge graph that the visual editor produces and the
compiler consumes. Definitions are serialized with the editor's camelCase keys
(``componentName``, ``sourceHandle``, ``retryPolicy``); snake_case attribute
names are accepted as well.

Design notes:
- Models are frozen: a definition never changes during a compilation pass
- Unknown node types are accepted so that newer editors never break compilation
- validate_graph() reports issues but never blocks compilation
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class NodeType(str, Enum):
    """Node types understood by the compiler"""

    TRIGGER = "trigger"  # Entry point of the workflow
    ACTIVITY = "activity"  # Call an external capability
    AGENT = "agent"  # Call a model-backed capability
    CONDITION = "condition"  # Boolean split with true/false handles
    CHILD_WORKFLOW = "child-workflow"  # Start or execute a nested workflow
    PHASE = "phase"  # Grouping marker, optionally concurrent
    RETRY = "retry"  # Explicit retry loop
    STATE_VARIABLE = "state-variable"  # Mutate a workflow-level variable
    SIGNAL = "signal"  # External signal marker
    API_ENDPOINT = "api-endpoint"  # Gateway-registered endpoint marker


class RetryStrategy(str, Enum):
    """Abstract retry strategies offered by the editor"""

    NONE = "none"
    KEEP_TRYING = "keep-trying"
    FAIL_AFTER_X = "fail-after-x"
    EXPONENTIAL_BACKOFF = "exponential-backoff"


class BranchHandle(str, Enum):
    """Source handles used on condition node edges"""

    TRUE = "true"
    FALSE = "false"


class _EditorModel(BaseModel):
    """Base for models read from editor JSON (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class RetryPolicy(_EditorModel):
    """Retry strategy plus optional timing overrides.

    Missing fields stay None here; defaults are filled in by the retry
    synthesizer at generation time.
    """

    strategy: RetryStrategy = RetryStrategy.NONE
    max_attempts: int | None = None
    initial_interval: str | None = None
    max_interval: str | None = None
    backoff_coefficient: float | None = None


class Position(_EditorModel):
    """Canvas position (editor only, ignored by the compiler)"""

    x: float = 0
    y: float = 0


class NodeData(_EditorModel):
    """Node payload: label, capability reference and per-type config"""

    label: str = ""
    component_name: str | None = None  # Activity/agent capability or child workflow type
    activity_name: str | None = None
    signal_name: str | None = None
    timeout: str | None = None
    retry_policy: RetryPolicy | None = None
    config: dict[str, Any] = Field(default_factory=dict)


class WorkflowNode(_EditorModel):
    """Generic graph node; ``type`` is kept as raw text so unknown tags survive."""

    id: str
    type: str
    position: Position = Field(default_factory=Position)
    data: NodeData = Field(default_factory=NodeData)

    @property
    def node_type(self) -> NodeType | None:
        """Known node type, or None for tags the compiler does not recognize."""
        try:
            return NodeType(self.type)
        except ValueError:
            return None

    @property
    def config(self) -> dict[str, Any]:
        return self.data.config

    @property
    def display_label(self) -> str:
        return self.data.label or self.id


class WorkflowEdge(_EditorModel):
    """Directed control-flow arc; ``source_handle`` selects condition branches"""

    id: str = ""
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None
    label: str | None = None


class WorkflowVariable(_EditorModel):
    """Named workflow-level variable declared before the workflow body"""

    name: str
    type: Literal["string", "number", "boolean", "array", "object"] = "object"
    initial_value: Any = None
    description: str | None = None


class WorkflowSettings(_EditorModel):
    """Settings bag; unknown keys are kept as pass-through extras"""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True, extra="allow"
    )

    timeout: str | None = None
    description: str | None = None
    version: str | None = None
    task_queue: str | None = None
    retry_policy: RetryPolicy | None = None  # Default for nodes without their own policy


@dataclass(frozen=True)
class GraphIssue:
    """Single finding from validate_graph()."""

    severity: Literal["error", "warning"]
    message: str
    node_id: str | None = None

    def __str__(self) -> str:
        return self.message


class WorkflowDefinition(_EditorModel):
    """Complete compilation unit: nodes, edges, variables and settings"""

    id: str = ""
    name: str = ""
    nodes: list[WorkflowNode] = Field(default_factory=list)
    edges: list[WorkflowEdge] = Field(default_factory=list)
    variables: list[WorkflowVariable] = Field(default_factory=list)
    settings: WorkflowSettings = Field(default_factory=WorkflowSettings)

    def node_map(self) -> dict[str, WorkflowNode]:
        """Map node id to node; the first occurrence of a duplicate id wins."""
        node_map: dict[str, WorkflowNode] = {}
        for node in self.nodes:
            node_map.setdefault(node.id, node)
        return node_map

    def validate_graph(self) -> list[GraphIssue]:
        """
        Validate graph structure using NetworkX.
        Returns list of issues; errors describe graphs the editor should not
        produce, warnings describe suspicious but compilable graphs.
        """
        issues: list[GraphIssue] = []

        def error(message: str, node_id: str | None = None) -> None:
            issues.append(GraphIssue("error", message, node_id))

        def warning(message: str, node_id: str | None = None) -> None:
            issues.append(GraphIssue("warning", message, node_id))

        if not self.nodes:
            error("Workflow must have at least one node")
            return issues

        seen_node_ids: set[str] = set()
        for node in self.nodes:
            if node.id in seen_node_ids:
                error(f"Duplicate node ID: '{node.id}'", node.id)
            seen_node_ids.add(node.id)
        node_ids = seen_node_ids

        seen_edge_ids: set[str] = set()
        for edge in self.edges:
            if edge.id and edge.id in seen_edge_ids:
                error(f"Duplicate edge ID: '{edge.id}'")
            seen_edge_ids.add(edge.id)

            if edge.source not in node_ids:
                error(f"Edge {edge.id}: source '{edge.source}' not found")
            if edge.target not in node_ids:
                error(f"Edge {edge.id}: target '{edge.target}' not found")
            if edge.source == edge.target:
                error(f"Edge {edge.id} creates a self-loop on node '{edge.source}'", edge.source)

        targets = {e.target for e in self.edges}
        if not any(n.node_type == NodeType.TRIGGER and n.id not in targets for n in self.nodes):
            error("Workflow must have a trigger node without incoming edges")

        connected = {e.source for e in self.edges} | targets
        for node in self.nodes:
            if node.node_type != NodeType.TRIGGER and node.id not in connected:
                warning(f"Orphaned node: '{node.id}' has no incoming or outgoing edges", node.id)

        for node in self.nodes:
            issues.extend(self._validate_node(node))

        handles = {h.value for h in BranchHandle}
        for node in self.nodes:
            if node.node_type != NodeType.CONDITION:
                continue
            for edge in self.edges:
                if edge.source == node.id and edge.source_handle not in handles:
                    warning(
                        f"Condition node '{node.id}': edge to '{edge.target}' has no "
                        f"true/false handle and is ignored",
                        node.id,
                    )

        G = self._to_networkx()

        # Limit cycle enumeration to keep validation cheap on large graphs
        MAX_CYCLES_TO_REPORT = 20
        try:
            for cycle_count, cycle in enumerate(nx.simple_cycles(G), start=1):
                if cycle_count > MAX_CYCLES_TO_REPORT:
                    warning(f"More than {MAX_CYCLES_TO_REPORT} cycles found; stopped reporting")
                    break
                warning(
                    f"Cycle detected: {' -> '.join(cycle)} (cyclic edges are not re-entered)",
                    cycle[0],
                )
        except nx.NetworkXError as e:
            warning(f"Could not perform cycle detection: {e}")

        return issues

    @staticmethod
    def _validate_node(node: WorkflowNode) -> list[GraphIssue]:
        """Type-specific requirements for a single node."""
        issues: list[GraphIssue] = []
        data = node.data
        config = data.config
        node_type = node.node_type

        if node_type is None:
            issues.append(
                GraphIssue("warning", f"Node '{node.id}' has unknown type '{node.type}'", node.id)
            )
        elif node_type in (NodeType.ACTIVITY, NodeType.AGENT):
            if not data.component_name:
                issues.append(
                    GraphIssue(
                        "warning",
                        f"{node.type} node '{node.id}' has no componentName; "
                        f"the capability name is derived from its id",
                        node.id,
                    )
                )
        elif node_type == NodeType.SIGNAL:
            if not data.signal_name and not config.get("signalName"):
                issues.append(
                    GraphIssue("error", f"Signal node '{node.id}' must have signalName", node.id)
                )
        elif node_type == NodeType.CHILD_WORKFLOW:
            if not data.component_name and not config.get("workflowType"):
                issues.append(
                    GraphIssue(
                        "error", f"Child workflow node '{node.id}' must have workflowType", node.id
                    )
                )
        elif node_type == NodeType.STATE_VARIABLE:
            if not config.get("name"):
                issues.append(
                    GraphIssue(
                        "warning",
                        f"State variable node '{node.id}' has no name; derived from its id",
                        node.id,
                    )
                )
        return issues

    def _to_networkx(self) -> nx.DiGraph:
        """Convert to NetworkX DiGraph for analysis (dangling edges are dropped)"""
        G = nx.DiGraph()
        for node in self.nodes:
            G.add_node(node.id)
        for edge in self.edges:
            if edge.source in G and edge.target in G:
                G.add_edge(edge.source, edge.target)
        return G

    def get_terminal_nodes(self) -> set[str]:
        """Find nodes with no outgoing edges"""
        G = self._to_networkx()
        return {n for n in G.nodes() if G.out_degree(n) == 0}
