"""Per-call compilation state.

One CompilationContext is created for each compile call and threaded through
traversal and the node generators. Nothing here is shared between calls, so
concurrent compilations never interfere.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flowsmith.core.config import CompilerOptions
from flowsmith.core.graph_schema import WorkflowDefinition, WorkflowEdge, WorkflowNode
from flowsmith.core.utils import result_var_name

INDENT = "  "


@dataclass
class CompilationContext:
    """Graph lookups plus the mutable traversal state of one pass."""

    definition: WorkflowDefinition
    options: CompilerOptions
    node_map: dict[str, WorkflowNode] = field(default_factory=dict)
    outgoing: dict[str, list[WorkflowEdge]] = field(default_factory=dict)
    visited: set[str] = field(default_factory=set)
    result_vars: dict[str, str] = field(default_factory=dict)  # node id -> variable name
    used_names: set[str] = field(default_factory=set)  # result variables already declared
    lines: list[str] = field(default_factory=list)

    @classmethod
    def create(cls, definition: WorkflowDefinition, options: CompilerOptions) -> CompilationContext:
        """Build lookups once; outgoing edges keep edge-list order."""
        outgoing: dict[str, list[WorkflowEdge]] = {n.id: [] for n in definition.nodes}
        for edge in definition.edges:
            outgoing.setdefault(edge.source, []).append(edge)
        return cls(
            definition=definition,
            options=options,
            node_map=definition.node_map(),
            outgoing=outgoing,
        )

    @property
    def include_comments(self) -> bool:
        return self.options.include_comments

    def allocate_result_var(self, node_id: str) -> str:
        """Result variable for a node, suffixed when another node already took the name.

        Nodes are allocated in traversal order, so the suffixes are deterministic.
        """
        base = result_var_name(node_id)
        name = base
        counter = 1
        while name in self.used_names:
            counter += 1
            name = f"{base}_{counter}"
        self.used_names.add(name)
        return name

    def bind(self, node_id: str, var_name: str) -> None:
        """Register the variable holding a node's result."""
        self.result_vars[node_id] = var_name

    def emit(self, lines: list[str]) -> None:
        self.lines.extend(lines)


def pad(indent: int) -> str:
    return INDENT * indent
