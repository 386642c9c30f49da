"""Import resolution and top-level variable declarations.

Both are decided by a single pass over the whole node set, independent of
traversal order, so unreachable nodes still contribute their declarations.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from flowsmith.core.generators import (
    FUNCTION_SCOPE_NAMES,
    retry_capability,
    state_variable_name,
)
from flowsmith.core.graph_schema import NodeType, WorkflowDefinition, WorkflowNode
from flowsmith.core.utils import is_identifier, ts_literal

logger = logging.getLogger(__name__)

WORKFLOW_MODULE = "@temporalio/workflow"
ACTIVITIES_MODULE = "./activities"

BASE_PRIMITIVES = (
    "proxyActivities",
    "startChild",
    "executeChild",
    "sleep",
    "condition",
    "workflowInfo",
)
SIGNAL_PRIMITIVES = ("defineSignal", "setHandler")

# Initial values for workflow variables without an explicit one
_VARIABLE_TYPE_DEFAULTS = {
    "string": "''",
    "number": "0",
    "boolean": "false",
    "array": "[]",
    "object": "null",
}


@dataclass
class ImportDeclaration:
    """One import statement; named imports are merged per module path."""

    module: str
    names: list[str] = field(default_factory=list)
    namespace: str | None = None  # ``import type * as <namespace>``
    type_only: bool = False

    def add(self, *names: str) -> None:
        for name in names:
            if name not in self.names:
                self.names.append(name)

    def render(self) -> str:
        keyword = "import type" if self.type_only else "import"
        if self.namespace:
            return f"{keyword} * as {self.namespace} from '{self.module}';"
        return f"{keyword} {{ {', '.join(self.names)} }} from '{self.module}';"


def uses_activities(nodes: list[WorkflowNode]) -> bool:
    return any(
        n.node_type in (NodeType.ACTIVITY, NodeType.AGENT)
        or (n.node_type == NodeType.RETRY and retry_capability(n) is not None)
        for n in nodes
    )


def resolve_imports(definition: WorkflowDefinition) -> list[ImportDeclaration]:
    """Decide which imports the generated workflow module needs."""
    declarations: dict[str, ImportDeclaration] = {}

    def declare(module: str, *names: str, **kwargs) -> None:
        declaration = declarations.setdefault(module, ImportDeclaration(module, **kwargs))
        declaration.add(*names)

    declare(WORKFLOW_MODULE, *BASE_PRIMITIVES)

    if uses_activities(definition.nodes):
        declare(ACTIVITIES_MODULE, namespace="activities", type_only=True)

    if any(n.node_type == NodeType.SIGNAL for n in definition.nodes):
        declare(WORKFLOW_MODULE, *SIGNAL_PRIMITIVES)

    return list(declarations.values())


def render_imports(definition: WorkflowDefinition) -> str:
    return "\n".join(d.render() for d in resolve_imports(definition))


def _state_initial_value(node: WorkflowNode) -> str:
    config = node.config
    if "initialValue" in config:
        return ts_literal(config["initialValue"])
    operation = config.get("operation")
    if operation in ("increment", "decrement"):
        return "0"
    if operation == "append":
        return "[]"
    return "null"


def generate_state_declarations(definition: WorkflowDefinition, indent: str = "  ") -> list[str]:
    """``let`` declarations for workflow variables and state-variable nodes.

    A name is declared once; later nodes that reuse it mutate the existing
    declaration.
    """
    declared: set[str] = set()
    lines: list[str] = []

    for variable in definition.variables:
        if not is_identifier(variable.name) or variable.name in FUNCTION_SCOPE_NAMES:
            logger.warning("Skipping workflow variable with unusable name '%s'", variable.name)
            continue
        if variable.name in declared:
            continue
        declared.add(variable.name)
        if variable.initial_value is not None:
            initial = ts_literal(variable.initial_value)
        else:
            initial = _VARIABLE_TYPE_DEFAULTS[variable.type]
        lines.append(f"{indent}let {variable.name}: any = {initial};")

    for node in definition.nodes:
        if node.node_type != NodeType.STATE_VARIABLE:
            continue
        name = state_variable_name(node)
        if name in declared:
            logger.debug("State variable '%s' already declared, skipping node '%s'", name, node.id)
            continue
        declared.add(name)
        lines.append(f"{indent}let {name}: any = {_state_initial_value(node)};")

    if lines:
        lines.insert(0, f"{indent}// State variables")
    return lines
