"""Per-node-type code generators.

Each generator turns one node into lines of workflow TypeScript. Generators
receive the node, its derived result variable name, the compilation context
(which holds the result-binding table) and the current nesting depth.

Dispatch is a closed mapping keyed by NodeType. Tags outside the enum are
rendered as a comment instead of failing the compilation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from flowsmith.core.context import CompilationContext, pad
from flowsmith.core.graph_schema import NodeType, RetryPolicy, RetryStrategy, WorkflowNode
from flowsmith.core.retry import RetrySettings, synthesize_retry_policy
from flowsmith.core.utils import (
    comment_text,
    is_identifier,
    parse_duration_ms,
    to_camel_case,
    to_identifier,
    ts_key,
    ts_literal,
    ts_number,
    ts_string,
)

logger = logging.getLogger(__name__)

NodeGenerator = Callable[[WorkflowNode, str, CompilationContext, int], list[str]]

DEFAULT_CHILD_WORKFLOW_TYPE = "ChildWorkflow"
DEFAULT_MAX_CONCURRENCY = 4
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_BACKOFF_INTERVAL = "1s"
DEFAULT_BACKOFF_MULTIPLIER = 2
DEFAULT_RETRY_CONDITION = "result.success === false"

# Bindings that already exist in the workflow function scope
FUNCTION_SCOPE_NAMES = frozenset({"input"})


# ========== Naming helpers shared with the assembler ==========


def _identifier(name: str) -> str:
    if is_identifier(name):
        return name
    return to_identifier(to_camel_case(name))


def capability_name(node: WorkflowNode) -> str:
    """Exported capability function called by an activity/agent node."""
    name = node.data.component_name or node.data.activity_name or to_camel_case(node.id)
    return _identifier(name)


def retry_capability(node: WorkflowNode) -> str | None:
    """Capability protected by a retry node, if one is named."""
    name = node.data.component_name or node.data.activity_name or node.config.get("activityName")
    return _identifier(name) if name else None


def state_variable_name(node: WorkflowNode) -> str:
    name = _identifier(node.config.get("name") or to_camel_case(node.id))
    if name in FUNCTION_SCOPE_NAMES:
        logger.warning(
            "State variable node '%s': '%s' is already bound, using '_%s'", node.id, name, name
        )
        return f"_{name}"
    return name


# ========== Shared fragments ==========


def _label_comment(node: WorkflowNode, ctx: CompilationContext, p: str) -> list[str]:
    if not ctx.include_comments:
        return []
    return [f"{p}// {comment_text(node.display_label)}"]


def _activity_options(timeout: str, retry: RetrySettings | None, inner: str) -> list[str]:
    lines = [f"{inner}startToCloseTimeout: {ts_string(timeout)},"]
    if retry is not None:
        lines.extend(retry.render(inner))
    return lines


def _proxy_call(
    prefix: str, capability: str, option_lines: list[str], argument: str, p: str
) -> list[str]:
    """``<prefix>await proxyActivities<...>({ options }).<capability>(<argument>);``"""
    return [
        f"{p}{prefix}await proxyActivities<typeof activities>({{",
        *option_lines,
        f"{p}}}).{capability}({argument});",
    ]


# ========== Generators ==========


def generate_trigger(
    node: WorkflowNode, result_var: str, ctx: CompilationContext, indent: int
) -> list[str]:
    p = pad(indent)
    lines = _label_comment(node, ctx, p)
    cron = node.config.get("cronSchedule")
    if cron:
        # Scheduling is applied by the deployment side, not by workflow code
        lines.append(f"{p}// Cron-scheduled workflow: {comment_text(cron)}")
    else:
        lines.append(f"{p}// Workflow started")
    return lines


def generate_activity(
    node: WorkflowNode, result_var: str, ctx: CompilationContext, indent: int
) -> list[str]:
    p = pad(indent)
    lines = _label_comment(node, ctx, p)
    if node.node_type == NodeType.AGENT:
        lines.append(f"{p}// Agent: model-backed capability")

    policy = node.data.retry_policy or ctx.definition.settings.retry_policy
    retry = None
    if policy is not None and policy.strategy != RetryStrategy.NONE:
        retry = synthesize_retry_policy(policy)

    timeout = node.data.timeout or ctx.options.default_activity_timeout
    options = _activity_options(timeout, retry, p + "  ")
    # Activity input is always the workflow input; only child workflows map fields
    lines.extend(
        _proxy_call(f"const {result_var} = ", capability_name(node), options, "input", p)
    )
    ctx.bind(node.id, result_var)
    return lines


def _input_mapping(mapping: dict[str, Any], ctx: CompilationContext) -> str:
    entries = []
    for key, value in mapping.items():
        if isinstance(value, str) and value in ctx.result_vars:
            entries.append(f"{ts_key(key)}: {ctx.result_vars[value]}")
        else:
            entries.append(f"{ts_key(key)}: {ts_literal(value)}")
    return "{ " + ", ".join(entries) + " }"


def generate_child_workflow(
    node: WorkflowNode, result_var: str, ctx: CompilationContext, indent: int
) -> list[str]:
    p = pad(indent)
    inner = p + "  "
    config = node.config
    workflow_type = config.get("workflowType") or node.data.component_name
    workflow_type = workflow_type or DEFAULT_CHILD_WORKFLOW_TYPE

    execution_type = config.get("executionType", "startChild")
    if execution_type not in ("startChild", "executeChild"):
        logger.warning(
            "Child workflow node '%s': unknown executionType '%s', using startChild",
            node.id,
            execution_type,
        )
        execution_type = "startChild"

    mapping = config.get("inputMapping")
    child_input = "input"
    if isinstance(mapping, dict) and mapping:
        child_input = _input_mapping(mapping, ctx)

    lines = _label_comment(node, ctx, p)
    lines.append(f"{p}const {result_var} = await {execution_type}({ts_string(workflow_type)}, {{")
    if config.get("taskQueue"):
        lines.append(f"{inner}taskQueue: {ts_string(str(config['taskQueue']))},")
    lines.append(f"{inner}workflowId: workflowInfo().workflowId + {ts_string('-' + node.id)},")
    lines.append(f"{inner}args: [{child_input}],")
    lines.append(f"{p}}});")
    ctx.bind(node.id, result_var)
    return lines


def generate_condition(
    node: WorkflowNode, result_var: str, ctx: CompilationContext, indent: int
) -> list[str]:
    p = pad(indent)
    expression = node.config.get("expression") or "true"
    lines = _label_comment(node, ctx, p)
    lines.append(f"{p}const {result_var} = {expression};")
    ctx.bind(node.id, result_var)
    return lines


def _int_config(node: WorkflowNode, key: str, default: int) -> int:
    value = node.config.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Node '%s': invalid %s %r, using %d", node.id, key, value, default)
        return default


def generate_phase(
    node: WorkflowNode, result_var: str, ctx: CompilationContext, indent: int
) -> list[str]:
    p = pad(indent)
    name = node.config.get("name") or node.data.label or "Phase"
    lines = [f"{p}// Phase: {comment_text(name)}"]

    if node.config.get("sequential") is not False:
        lines.append(f"{p}// Sequential execution")
        return lines

    max_concurrent = _int_config(node, "maxConcurrency", DEFAULT_MAX_CONCURRENCY)
    suffix = result_var.removeprefix("result_")
    lines.append(f"{p}// Concurrent execution (max {max_concurrent})")
    lines.append(f"{p}const activeTasks_{suffix} = new Map<string, Promise<any>>();")
    lines.append(f"{p}const maxConcurrent_{suffix} = {max_concurrent};")
    return lines


def _retry_attempts(node: WorkflowNode) -> tuple[int | None, RetrySettings | None]:
    """Attempt limit (None = unbounded) and the strategy settings, if any."""
    settings = None
    strategy = node.config.get("strategy")
    if strategy:
        try:
            settings = synthesize_retry_policy(RetryPolicy(strategy=RetryStrategy(strategy)))
        except ValueError:
            logger.warning("Retry node '%s': unknown strategy '%s'", node.id, strategy)

    if node.config.get("maxAttempts") is not None:
        attempts = _int_config(node, "maxAttempts", DEFAULT_RETRY_ATTEMPTS)
        if attempts < 1:
            logger.warning("Retry node '%s': maxAttempts %d is below 1, using 1", node.id, attempts)
            attempts = 1
        return attempts, settings
    if settings is not None:
        return settings.maximum_attempts, settings
    return DEFAULT_RETRY_ATTEMPTS, settings


def _backoff_lines(node: WorkflowNode, settings: RetrySettings | None, p: str) -> list[str]:
    backoff = node.config.get("backoff") or {}
    backoff_type = backoff.get("type", "exponential")
    if backoff_type == "none":
        return []

    # Explicit backoff fields win over the strategy's timing defaults
    initial = backoff.get("initialInterval")
    if initial is None and settings is not None:
        initial = settings.initial_interval
    initial = initial or DEFAULT_BACKOFF_INTERVAL
    base_ms = parse_duration_ms(initial)
    if base_ms is None:
        logger.warning(
            "Retry node '%s': cannot parse interval %r, using %s",
            node.id,
            initial,
            DEFAULT_BACKOFF_INTERVAL,
        )
        initial = DEFAULT_BACKOFF_INTERVAL
        base_ms = parse_duration_ms(DEFAULT_BACKOFF_INTERVAL)

    multiplier = backoff.get("multiplier")
    if multiplier is None and settings is not None:
        multiplier = settings.backoff_coefficient
    if multiplier is None:
        multiplier = DEFAULT_BACKOFF_MULTIPLIER

    if backoff_type == "exponential":
        comment = f"// Exponential backoff: {initial} * {multiplier}^(attempts-1)"
        delay = f"Math.pow({ts_number(multiplier)}, attempts - 1) * {base_ms}"
    elif backoff_type == "linear":
        comment = f"// Linear backoff: {initial} * attempts"
        delay = f"attempts * {base_ms}"
    else:
        if backoff_type != "fixed":
            logger.warning(
                "Retry node '%s': unknown backoff type '%s', using fixed", node.id, backoff_type
            )
        comment = f"// Fixed backoff: {initial}"
        delay = str(base_ms)

    cap = backoff.get("maxInterval")
    if cap is None and settings is not None:
        cap = settings.maximum_interval
    cap_ms = parse_duration_ms(cap)
    if cap is not None and cap_ms is None:
        logger.warning("Retry node '%s': cannot parse maxInterval %r, no cap", node.id, cap)
    if cap_ms is not None:
        delay = f"Math.min({delay}, {cap_ms})"

    return [f"{p}{comment_text(comment)}", f"{p}await sleep({delay});"]


def generate_retry(
    node: WorkflowNode, result_var: str, ctx: CompilationContext, indent: int
) -> list[str]:
    p = pad(indent)
    p1, p2, p3, p4 = (pad(indent + i) for i in range(1, 5))
    max_attempts, settings = _retry_attempts(node)
    attempts_literal = "Infinity" if max_attempts is None else str(max_attempts)
    condition_mode = node.config.get("retryOn") == "condition"

    capability = retry_capability(node)
    op_pad = p2 if condition_mode else p3
    if capability:
        # Runtime retries are disabled so this loop owns every attempt
        single_attempt = synthesize_retry_policy(RetryPolicy())
        timeout = node.data.timeout or ctx.options.default_activity_timeout
        options = _activity_options(timeout, single_attempt, op_pad + "  ")
        operation = _proxy_call("const result: any = ", capability, options, "input", op_pad)
    else:
        operation = [f"{op_pad}const result: any = input;"]

    lines = [f"{p}// Retry loop: {comment_text(node.data.label or 'Retry')}"]
    lines.append(f"{p}let {result_var}: any = null;")
    lines.append(f"{p}{{")
    lines.append(f"{p1}let attempts = 0;")
    lines.append(f"{p1}const maxAttempts = {attempts_literal};")
    lines.append(f"{p1}let lastError: Error | null = null;")
    lines.append("")
    lines.append(f"{p1}while (attempts < maxAttempts) {{")

    if condition_mode:
        condition = node.config.get("condition") or DEFAULT_RETRY_CONDITION
        lines.extend(operation)
        lines.append(f"{p2}if (!({condition})) {{")
        lines.append(f"{p3}{result_var} = result;")
        lines.append(f"{p3}break;")
        lines.append(f"{p2}}}")
    else:
        lines.append(f"{p2}try {{")
        lines.extend(operation)
        lines.append(f"{p3}if (result?.success !== false) {{")
        lines.append(f"{p4}{result_var} = result;")
        lines.append(f"{p4}break;")
        lines.append(f"{p3}}}")
        lines.append(f"{p2}}} catch (error) {{")
        lines.append(f"{p3}lastError = error as Error;")
        lines.append(f"{p2}}}")

    lines.append("")
    lines.append(f"{p2}attempts++;")
    lines.append(f"{p2}if (attempts >= maxAttempts) {{")
    lines.append(f"{p3}throw lastError || new Error('Max retry attempts reached');")
    lines.append(f"{p2}}}")
    lines.extend(_backoff_lines(node, settings, p2))
    lines.append(f"{p1}}}")
    lines.append(f"{p}}}")

    ctx.bind(node.id, result_var)
    return lines


def generate_state_variable(
    node: WorkflowNode, result_var: str, ctx: CompilationContext, indent: int
) -> list[str]:
    p = pad(indent)
    name = state_variable_name(node)
    operation = node.config.get("operation") or "set"
    value = ts_literal(node.config["value"]) if "value" in node.config else "null"

    lines = [f"{p}// State variable: {name}"]
    if operation == "set":
        lines.append(f"{p}{name} = {value};")
    elif operation == "append":
        lines.append(f"{p}{name}.push({value});")
    elif operation == "increment":
        lines.append(f"{p}{name}++;")
    elif operation == "decrement":
        lines.append(f"{p}{name}--;")
    elif operation == "get":
        lines.append(f"{p}// Get {name}: {name}")
    else:
        logger.warning("State variable node '%s': unknown operation '%s'", node.id, operation)
        lines.append(f"{p}// Unsupported state operation: {comment_text(operation)}")
    return lines


def generate_signal(
    node: WorkflowNode, result_var: str, ctx: CompilationContext, indent: int
) -> list[str]:
    p = pad(indent)
    signal_name = node.data.signal_name or node.config.get("signalName") or "signal"
    lines = _label_comment(node, ctx, p)
    lines.append(f"{p}// Signal handler: {comment_text(signal_name)}")
    return lines


def generate_api_endpoint(
    node: WorkflowNode, result_var: str, ctx: CompilationContext, indent: int
) -> list[str]:
    p = pad(indent)
    lines = _label_comment(node, ctx, p)
    path = node.config.get("endpointPath")
    if path:
        lines.append(f"{p}// API endpoint {comment_text(path)} registered externally")
    else:
        lines.append(f"{p}// API endpoint registered externally")
    return lines


def generate_unknown(
    node: WorkflowNode, result_var: str, ctx: CompilationContext, indent: int
) -> list[str]:
    p = pad(indent)
    logger.warning("Node '%s' has unknown type '%s'; emitting a comment", node.id, node.type)
    lines = _label_comment(node, ctx, p)
    lines.append(f"{p}// Node type: {comment_text(node.type)}")
    return lines


GENERATORS: dict[NodeType, NodeGenerator] = {
    NodeType.TRIGGER: generate_trigger,
    NodeType.ACTIVITY: generate_activity,
    NodeType.AGENT: generate_activity,
    NodeType.CHILD_WORKFLOW: generate_child_workflow,
    NodeType.CONDITION: generate_condition,
    NodeType.PHASE: generate_phase,
    NodeType.RETRY: generate_retry,
    NodeType.STATE_VARIABLE: generate_state_variable,
    NodeType.SIGNAL: generate_signal,
    NodeType.API_ENDPOINT: generate_api_endpoint,
}


def generate_node(
    node: WorkflowNode, result_var: str, ctx: CompilationContext, indent: int
) -> list[str]:
    """Generate the code fragment for one node."""
    node_type = node.node_type
    generator = GENERATORS[node_type] if node_type is not None else generate_unknown
    return generator(node, result_var, ctx, indent)
