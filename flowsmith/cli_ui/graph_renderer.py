"""Terminal rendering for workflow graphs and validation results.

Provides tree-based visualization of workflow graphs using Rich.
"""

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from flowsmith.core.errors import NoStartNodeError
from flowsmith.core.graph_schema import (
    GraphIssue,
    NodeType,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
)
from flowsmith.core.traversal import resolve_start_node


class TerminalGraphRenderer:
    """
    Renders workflow graphs as a Rich Tree in the terminal.

    The tree starts at the node the compiler would start from. Nodes already
    shown on the current path are marked as loops; condition edges are
    labelled with their branch handle.
    """

    # Node type symbols and colors
    NODE_STYLES = {
        NodeType.TRIGGER: ("[>]", "green"),
        NodeType.ACTIVITY: ("[ ]", "cyan"),
        NodeType.AGENT: ("[A]", "bright_cyan"),
        NodeType.CONDITION: ("[?]", "magenta"),
        NodeType.CHILD_WORKFLOW: ("[C]", "blue"),
        NodeType.PHASE: ("[P]", "white"),
        NodeType.RETRY: ("[R]", "yellow"),
        NodeType.STATE_VARIABLE: ("[=]", "bright_black"),
        NodeType.SIGNAL: ("[S]", "red"),
        NodeType.API_ENDPOINT: ("[E]", "bright_magenta"),
    }

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def _build_edge_map(self, workflow: WorkflowDefinition) -> dict[str, list[WorkflowEdge]]:
        """Outgoing edges by source node ID, in edge-list order."""
        edge_map: dict[str, list[WorkflowEdge]] = {n.id: [] for n in workflow.nodes}
        for edge in workflow.edges:
            if edge.source in edge_map:
                edge_map[edge.source].append(edge)
        return edge_map

    def render_as_tree(self, workflow: WorkflowDefinition, max_depth: int = 50) -> Tree:
        """
        Render workflow as a Rich Tree (hierarchical view).

        Returns a tree with an error message if the workflow has no nodes.
        """
        # SECURITY: Escape user-controlled names to prevent Rich markup injection
        safe_name = escape(workflow.name or workflow.id or "Workflow")
        safe_version = escape(workflow.settings.version or "1.0.0")
        tree = Tree(f"[bold]{safe_name}[/] (v{safe_version})")

        try:
            start = resolve_start_node(workflow.nodes, workflow.edges)
        except NoStartNodeError:
            tree.add("[red]Error: Workflow has no nodes[/]")
            return tree

        self._add_node_to_tree(
            tree,
            start,
            workflow.node_map(),
            self._build_edge_map(workflow),
            visited=set(),
            depth=0,
            max_depth=max_depth,
        )
        return tree

    def _add_node_to_tree(
        self,
        parent: Tree,
        node: WorkflowNode,
        node_map: dict[str, WorkflowNode],
        edge_map: dict[str, list[WorkflowEdge]],
        visited: set,
        depth: int = 0,
        max_depth: int = 50,
    ):
        """Recursively add nodes to tree with depth limiting."""
        if depth >= max_depth:
            parent.add("[dim]... (max depth reached)[/]")
            return
        safe_label = escape(node.display_label)
        safe_id = escape(node.id)

        if node.id in visited:
            parent.add(f"[dim]↩ {safe_id} (loop)[/]")
            return

        visited.add(node.id)

        symbol, color = self.NODE_STYLES.get(node.node_type, ("[~]", "dim"))
        if node.node_type is None:
            node_text = f"[{color}]{symbol} {safe_label} ({escape(node.type)})[/]"
        else:
            node_text = f"[{color}]{symbol} {safe_label}[/]"
        branch = parent.add(node_text)

        for edge in edge_map.get(node.id, []):
            child_node = node_map.get(edge.target)
            if child_node is None:
                branch.add(f"[red]✗ missing node {escape(edge.target)}[/]")
                continue
            target_parent = branch
            if edge.source_handle:
                target_parent = branch.add(f"[dim]({escape(edge.source_handle)})[/]")
            self._add_node_to_tree(
                target_parent,
                child_node,
                node_map,
                edge_map,
                visited.copy(),
                depth + 1,
                max_depth,
            )


class DiagnosticsTableRenderer:
    """Renders validate_graph() issues as a Rich table.

    SECURITY: All user-controlled strings are escaped to prevent Rich markup injection.
    """

    SEVERITY_STYLES = {
        "error": "[red]✗ Error[/]",
        "warning": "[yellow]⚠ Warning[/]",
    }

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def render_issues(self, workflow: WorkflowDefinition, issues: list[GraphIssue]) -> Table:
        table = Table(title=f"Diagnostics: {escape(workflow.name or workflow.id)}")
        table.add_column("Severity", justify="center")
        table.add_column("Node", style="cyan")
        table.add_column("Message")

        for issue in issues:
            table.add_row(
                self.SEVERITY_STYLES.get(issue.severity, escape(issue.severity)),
                escape(issue.node_id or "-"),
                escape(issue.message),
            )
        return table
