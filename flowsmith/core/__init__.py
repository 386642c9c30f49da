"""Core modules for the Flowsmith compiler."""

from flowsmith.core.compiler import CompiledWorkflow, compile_workflow
from flowsmith.core.config import CompilerOptions, load_compiler_options, load_definition
from flowsmith.core.errors import CompilerConfigError, CompilerError, NoStartNodeError
from flowsmith.core.graph_schema import (
    NodeType,
    RetryPolicy,
    RetryStrategy,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
)

__all__ = [
    "CompiledWorkflow",
    "CompilerConfigError",
    "CompilerError",
    "CompilerOptions",
    "NoStartNodeError",
    "NodeType",
    "RetryPolicy",
    "RetryStrategy",
    "WorkflowDefinition",
    "WorkflowEdge",
    "WorkflowNode",
    "compile_workflow",
    "load_compiler_options",
    "load_definition",
]
