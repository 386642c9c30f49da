"""Workflow compiler: assemble the five generated artifacts.

compile_workflow() is a pure function of its input. It produces:
- workflow_code: orchestration module exporting the workflow function
- activities_code: one stub per distinct capability
- worker_code: worker bootstrap bound to both modules
- package_json / tsconfig: project manifests

Compilation either returns all five artifacts or raises NoStartNodeError.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from jinja2 import FileSystemLoader, StrictUndefined
from jinja2.sandbox import SandboxedEnvironment

from flowsmith.core.config import CompilerOptions
from flowsmith.core.context import CompilationContext
from flowsmith.core.declarations import generate_state_declarations, render_imports
from flowsmith.core.generators import capability_name, retry_capability
from flowsmith.core.graph_schema import NodeType, WorkflowDefinition
from flowsmith.core.traversal import generate_workflow_body
from flowsmith.core.utils import comment_text, to_kebab_case, to_pascal_case, ts_string

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates"

DEFAULT_FUNCTION_NAME = "Workflow"
DEFAULT_PACKAGE_NAME = "workflow"
DEFAULT_TASK_QUEUE = "default"
DEFAULT_DESCRIPTION = "Generated Temporal workflow from node-based definition"
TEMPORAL_SDK_VERSION = "^1.10.0"


@dataclass(frozen=True)
class Capability:
    """Activity stub to export from the capabilities module."""

    name: str
    description: str
    is_agent: bool = False


@dataclass(frozen=True)
class CompiledWorkflow:
    """The five text artifacts of one compilation."""

    workflow_code: str
    activities_code: str
    worker_code: str
    package_json: str
    tsconfig: str

    def files(self) -> dict[str, str]:
        """Artifacts keyed by their path inside the generated project."""
        return {
            "src/workflows.ts": self.workflow_code,
            "src/activities.ts": self.activities_code,
            "src/worker.ts": self.worker_code,
            "package.json": self.package_json,
            "tsconfig.json": self.tsconfig,
        }


@lru_cache(maxsize=1)
def _template_env() -> SandboxedEnvironment:
    return SandboxedEnvironment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        undefined=StrictUndefined,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def _render(template_name: str, **context) -> str:
    return _template_env().get_template(template_name).render(**context)


def workflow_function_name(definition: WorkflowDefinition) -> str:
    """Exported function name; the runtime matches it against the workflow type."""
    name = to_pascal_case(definition.name)
    if not name:
        return DEFAULT_FUNCTION_NAME
    if name[0].isdigit():
        return f"{DEFAULT_FUNCTION_NAME}{name}"
    return name


def collect_capabilities(definition: WorkflowDefinition) -> list[Capability]:
    """Distinct capabilities referenced by the graph, in node order."""
    found: dict[str, Capability] = {}
    for node in definition.nodes:
        node_type = node.node_type
        if node_type in (NodeType.ACTIVITY, NodeType.AGENT):
            name = capability_name(node)
        elif node_type == NodeType.RETRY:
            name = retry_capability(node)
            if name is None:
                continue
        else:
            continue

        is_agent = node_type == NodeType.AGENT
        existing = found.get(name)
        if existing is None:
            found[name] = Capability(name, comment_text(node.display_label), is_agent)
        elif is_agent and not existing.is_agent:
            found[name] = Capability(name, existing.description, True)
    return list(found.values())


def generate_workflow_code(definition: WorkflowDefinition, options: CompilerOptions) -> str:
    """Orchestration module: imports, state declarations and traversal output."""
    ctx = CompilationContext.create(definition, options)
    body = generate_workflow_body(ctx)
    declarations = generate_state_declarations(definition)

    return _render(
        "workflows.ts.j2",
        imports=render_imports(definition),
        include_comments=options.include_comments,
        display_name=comment_text(definition.name or DEFAULT_FUNCTION_NAME),
        description=comment_text(definition.settings.description or DEFAULT_DESCRIPTION),
        function_name=workflow_function_name(definition),
        declarations="\n".join(declarations),
        body=body,
    )


def generate_activities_code(definition: WorkflowDefinition, options: CompilerOptions) -> str:
    return _render(
        "activities.ts.j2",
        capabilities=collect_capabilities(definition),
        include_comments=options.include_comments,
    )


def generate_worker_code(definition: WorkflowDefinition, options: CompilerOptions) -> str:
    task_queue = options.task_queue or definition.settings.task_queue or DEFAULT_TASK_QUEUE
    return _render(
        "worker.ts.j2",
        include_comments=options.include_comments,
        display_name=comment_text(definition.name or DEFAULT_FUNCTION_NAME),
        task_queue=ts_string(task_queue),
    )


def generate_package_json(definition: WorkflowDefinition, options: CompilerOptions) -> str:
    package_name = (
        options.package_name or to_kebab_case(definition.name) or DEFAULT_PACKAGE_NAME
    )
    manifest = {
        "name": package_name,
        "version": definition.settings.version or "1.0.0",
        "description": f"Temporal workflow: {definition.name or DEFAULT_FUNCTION_NAME}",
        "main": "dist/worker.js",
        "scripts": {
            "build": "tsc",
            "start.watch": "nodemon dist/worker.js",
            "start": "node dist/worker.js",
        },
        "dependencies": {
            "@temporalio/worker": TEMPORAL_SDK_VERSION,
            "@temporalio/workflow": TEMPORAL_SDK_VERSION,
            "@temporalio/activity": TEMPORAL_SDK_VERSION,
        },
        "devDependencies": {
            "@types/node": "^20.0.0",
            "nodemon": "^3.0.0",
            "typescript": "^5.0.0",
        },
    }
    return json.dumps(manifest, indent=2)


def generate_tsconfig(strict_mode: bool) -> str:
    config = {
        "compilerOptions": {
            "target": "es2020",
            "module": "commonjs",
            "lib": ["es2020"],
            "outDir": "./dist",
            "rootDir": "./src",
            "strict": strict_mode,
            "esModuleInterop": True,
            "skipLibCheck": True,
            "forceConsistentCasingInFileNames": True,
            "resolveJsonModule": True,
            "declaration": True,
        },
        "include": ["src/**/*"],
        "exclude": ["node_modules", "dist"],
    }
    return json.dumps(config, indent=2)


def compile_workflow(
    definition: WorkflowDefinition, options: CompilerOptions | None = None
) -> CompiledWorkflow:
    """Compile a node graph into the five project artifacts.

    Raises:
        NoStartNodeError: If the definition has no nodes.
    """
    options = options or CompilerOptions()
    logger.info(
        "Compiling workflow '%s' (%d nodes, %d edges)",
        definition.name or definition.id,
        len(definition.nodes),
        len(definition.edges),
    )
    workflow_code = generate_workflow_code(definition, options)
    return CompiledWorkflow(
        workflow_code=workflow_code,
        activities_code=generate_activities_code(definition, options),
        worker_code=generate_worker_code(definition, options),
        package_json=generate_package_json(definition, options),
        tsconfig=generate_tsconfig(options.strict_mode),
    )
