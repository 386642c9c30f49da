"""Graph traversal: start-node resolution and ordered code emission.

The walk is a depth-first pre-order traversal from the start node:
- A visited set guarantees each node is emitted at most once, so cyclic
  edges are never re-entered and traversal always terminates
- Condition nodes emit their true/false successors as two explicit branches,
  one nesting level deeper
- Every other node follows its outgoing edges in edge-list order at the
  same depth

The walk runs on an explicit work stack, so graph size is not bounded by the
interpreter's recursion limit.

A node reachable from both branches of a condition (a diamond join) is only
emitted under whichever branch reaches it first.
"""

from __future__ import annotations

import logging

from flowsmith.core.context import CompilationContext, pad
from flowsmith.core.errors import NoStartNodeError
from flowsmith.core.generators import generate_node
from flowsmith.core.graph_schema import (
    BranchHandle,
    NodeType,
    WorkflowEdge,
    WorkflowNode,
)

logger = logging.getLogger(__name__)

BODY_INDENT = 1  # Inside the exported workflow function

# A node to visit at a nesting depth, or lines to emit when the stack reaches them
WorkItem = tuple[WorkflowNode, int] | list[str]


def resolve_start_node(nodes: list[WorkflowNode], edges: list[WorkflowEdge]) -> WorkflowNode:
    """Return the entry node of the graph.

    Preference order: the first trigger without incoming edges, the first
    trigger, the first node.

    Raises:
        NoStartNodeError: If there are no nodes at all.
    """
    if not nodes:
        raise NoStartNodeError("No start node found in workflow: the node set is empty")

    targets = {edge.target for edge in edges}
    triggers = [n for n in nodes if n.node_type == NodeType.TRIGGER]

    for node in triggers:
        if node.id not in targets:
            return node

    if triggers:
        logger.warning("Every trigger node has incoming edges; starting at '%s'", triggers[0].id)
        return triggers[0]

    logger.warning("No trigger node found; starting at first node '%s'", nodes[0].id)
    return nodes[0]


def traverse(ctx: CompilationContext, node: WorkflowNode, indent: int = BODY_INDENT) -> None:
    """Emit code for ``node`` and everything reachable from it."""
    stack: list[WorkItem] = [(node, indent)]
    while stack:
        item = stack.pop()
        if isinstance(item, list):
            ctx.emit(item)
            continue

        current, depth = item
        if current.id in ctx.visited:
            continue
        ctx.visited.add(current.id)

        result_var = ctx.allocate_result_var(current.id)
        ctx.emit(generate_node(current, result_var, ctx, depth))

        outgoing = ctx.outgoing.get(current.id, [])
        if current.node_type == NodeType.CONDITION:
            items = _branch_items(ctx, current, result_var, outgoing, depth)
        else:
            items = _successor_items(ctx, outgoing, depth)
        # Pushed in reverse so the first item's subtree is emitted first
        stack.extend(reversed(items))


def _successor_items(
    ctx: CompilationContext, outgoing: list[WorkflowEdge], depth: int
) -> list[WorkItem]:
    items: list[WorkItem] = []
    for edge in outgoing:
        next_node = ctx.node_map.get(edge.target)
        if next_node is None:
            logger.warning("Edge %s: target '%s' not found, skipping", edge.id, edge.target)
            continue
        items.append((next_node, depth))
    return items


def _branch_target(
    ctx: CompilationContext, node: WorkflowNode, outgoing: list[WorkflowEdge], handle: BranchHandle
) -> WorkflowNode | None:
    edge = next((e for e in outgoing if e.source_handle == handle.value), None)
    if edge is None:
        logger.debug("Condition node '%s' has no %s branch", node.id, handle.value)
        return None
    target = ctx.node_map.get(edge.target)
    if target is None:
        logger.warning(
            "Condition node '%s': %s branch target '%s' not found",
            node.id,
            handle.value,
            edge.target,
        )
    return target


def _branch_items(
    ctx: CompilationContext,
    node: WorkflowNode,
    result_var: str,
    outgoing: list[WorkflowEdge],
    depth: int,
) -> list[WorkItem]:
    """``if (result) { true } else { false }`` around the two successors."""
    p = pad(depth)
    inner = pad(depth + 1)
    true_node = _branch_target(ctx, node, outgoing, BranchHandle.TRUE)
    false_node = _branch_target(ctx, node, outgoing, BranchHandle.FALSE)

    items: list[WorkItem] = []
    if true_node is not None:
        items.append([f"{p}if ({result_var}) {{", f"{inner}// True branch"])
        items.append((true_node, depth + 1))
        if false_node is not None:
            items.append([f"{p}}} else {{", f"{inner}// False branch"])
            items.append((false_node, depth + 1))
        items.append([f"{p}}}"])
    elif false_node is not None:
        items.append([f"{p}if (!{result_var}) {{", f"{inner}// False branch"])
        items.append((false_node, depth + 1))
        items.append([f"{p}}}"])
    return items


def generate_workflow_body(ctx: CompilationContext) -> str:
    """Walk the graph from its start node and return the function body."""
    start = resolve_start_node(ctx.definition.nodes, ctx.definition.edges)
    logger.debug("Starting traversal at '%s'", start.id)
    traverse(ctx, start)

    skipped = [n.id for n in ctx.definition.nodes if n.id not in ctx.visited]
    if skipped:
        logger.info("Nodes unreachable from '%s' were not emitted: %s", start.id, skipped)
    return "\n".join(ctx.lines)
