"""Compiler options and definition file loading.

Options come from a ``flowsmith.yaml`` file (``compiler:`` section) and may be
overridden per invocation. Workflow definitions are read from JSON (the
editor's storage format) or YAML.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import pydantic
import yaml
from pydantic import BaseModel, ConfigDict

from flowsmith.core.errors import CompilerConfigError
from flowsmith.core.graph_schema import WorkflowDefinition

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "flowsmith.yaml"


class CompilerOptions(BaseModel):
    """Options controlling artifact generation"""

    model_config = ConfigDict(frozen=True, extra="forbid")

    package_name: str | None = None  # Defaults to the kebab-cased workflow name
    include_comments: bool = True
    strict_mode: bool = True  # tsconfig "strict"
    default_activity_timeout: str = "5 minutes"  # startToCloseTimeout when a node sets none
    task_queue: str | None = None  # Overrides settings.taskQueue for the worker


def load_compiler_options(path: Path | None = None) -> CompilerOptions:
    """Load options from YAML.

    With no path, ``flowsmith.yaml`` in the current directory is used when it
    exists; otherwise defaults are returned.

    Raises:
        CompilerConfigError: If the file is unreadable, not a mapping, or has
            unknown/invalid option values.
    """
    explicit = path is not None
    path = path or Path(DEFAULT_CONFIG_FILE)
    if not path.exists():
        if explicit:
            raise CompilerConfigError(f"Config file not found: {path}")
        return CompilerOptions()

    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise CompilerConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise CompilerConfigError(
            f"Invalid config in {path}: expected a mapping, got {type(raw).__name__}"
        )

    section = raw.get("compiler", {}) or {}
    if not isinstance(section, dict):
        raise CompilerConfigError(f"Invalid 'compiler' section in {path}: expected a mapping")

    try:
        options = CompilerOptions(**section)
    except pydantic.ValidationError as e:
        raise CompilerConfigError(f"Invalid compiler options in {path}: {e}") from e

    logger.debug("Loaded compiler options from %s", path)
    return options


def load_definition(path: Path) -> WorkflowDefinition:
    """Read a workflow definition from a JSON or YAML file.

    Raises:
        CompilerConfigError: If the file cannot be parsed or is not a mapping.
        pydantic.ValidationError: If the content does not match the schema.
    """
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                data: Any = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise CompilerConfigError(f"Could not parse workflow definition '{path}': {e}") from e

    if not isinstance(data, dict):
        raise CompilerConfigError(
            f"Invalid workflow definition in '{path}'. "
            f"Expected a mapping, got {type(data).__name__}."
        )

    return WorkflowDefinition.model_validate(data)
