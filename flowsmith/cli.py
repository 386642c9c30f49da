"""CLI entry point for the Flowsmith compiler.

Commands:
- flowsmith compile: Compile a workflow definition into a TypeScript project
- flowsmith validate: Report structural issues in a workflow definition
- flowsmith visualize: Show a workflow graph as a tree
- flowsmith version: Show version information
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
import pydantic
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from flowsmith.cli_ui.graph_renderer import DiagnosticsTableRenderer, TerminalGraphRenderer
from flowsmith.core.compiler import compile_workflow
from flowsmith.core.config import load_compiler_options, load_definition
from flowsmith.core.errors import CompilerConfigError, NoStartNodeError
from flowsmith.core.graph_schema import WorkflowDefinition

console = Console()


def _load_or_exit(definition_file: str) -> WorkflowDefinition:
    """Load a definition file, printing errors and exiting on failure."""
    try:
        return load_definition(Path(definition_file))
    except CompilerConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)
    except pydantic.ValidationError as e:
        console.print("[red]Error validating workflow schema:[/red]")
        for err in e.errors():
            loc = ".".join(str(x) for x in err["loc"])
            console.print(f"  - {escape(loc)}: {escape(err['msg'])}")
        sys.exit(1)


@click.group()
@click.version_option(version="0.1.0")
def main() -> None:
    """Flowsmith - workflow graph compiler.

    Turns node/edge workflow graphs into Temporal TypeScript projects.
    """
    pass


@main.command(name="compile")
@click.argument("definition_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--out",
    "-o",
    "out_dir",
    type=click.Path(file_okay=False),
    default="generated",
    show_default=True,
    help="Directory to write the generated project to",
)
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="Compiler options file (default: ./flowsmith.yaml if present)",
)
@click.option("--package-name", help="Override the generated package name")
@click.option("--no-comments", is_flag=True, help="Omit descriptive comments")
@click.option("--no-strict", is_flag=True, help="Disable strict mode in tsconfig.json")
@click.option("--dry-run", is_flag=True, help="List files without writing them")
def compile_cmd(
    definition_file: str,
    out_dir: str,
    config_file: str | None,
    package_name: str | None,
    no_comments: bool,
    no_strict: bool,
    dry_run: bool,
) -> None:
    """Compile DEFINITION_FILE (JSON or YAML) into a TypeScript project."""
    try:
        options = load_compiler_options(Path(config_file) if config_file else None)
    except CompilerConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        sys.exit(1)

    overrides: dict[str, object] = {}
    if package_name:
        overrides["package_name"] = package_name
    if no_comments:
        overrides["include_comments"] = False
    if no_strict:
        overrides["strict_mode"] = False
    if overrides:
        options = options.model_copy(update=overrides)

    definition = _load_or_exit(definition_file)

    try:
        compiled = compile_workflow(definition, options)
    except NoStartNodeError as e:
        console.print(f"[red]Compilation failed:[/red] {escape(str(e))}")
        sys.exit(1)

    out_path = Path(out_dir)
    table = Table(title="Generated Files")
    table.add_column("File", style="cyan")
    table.add_column("Lines", justify="right", style="green")

    for relative, content in compiled.files().items():
        target = out_path / relative
        if not dry_run:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        table.add_row(escape(str(target)), str(content.count("\n") + 1))

    console.print(table)
    if dry_run:
        console.print("[yellow]Dry run - no files written[/yellow]")
    else:
        console.print(
            Panel(
                f"[green]Compiled {escape(definition.name or definition.id)}[/green]\n\n"
                f"Output: {escape(str(out_path))}",
                title="Compilation Complete",
            )
        )


@main.command()
@click.argument("definition_file", type=click.Path(exists=True, dir_okay=False))
def validate(definition_file: str) -> None:
    """Report structural issues in DEFINITION_FILE."""
    definition = _load_or_exit(definition_file)
    issues = definition.validate_graph()

    console.print(f"[bold]Nodes:[/] {len(definition.nodes)}")
    console.print(f"[bold]Edges:[/] {len(definition.edges)}")

    if not issues:
        console.print("\n[green]✓ Graph is valid[/]")
        return

    console.print(DiagnosticsTableRenderer(console).render_issues(definition, issues))
    if any(issue.severity == "error" for issue in issues):
        sys.exit(1)


@main.command()
@click.argument("definition_file", type=click.Path(exists=True, dir_okay=False))
def visualize(definition_file: str) -> None:
    """Visualize a workflow graph in the terminal."""
    definition = _load_or_exit(definition_file)
    renderer = TerminalGraphRenderer(console)
    console.print(renderer.render_as_tree(definition))

    # SECURITY: escape user-controlled values
    console.print()
    console.print(f"[bold]Nodes:[/] {len(definition.nodes)}")
    console.print(f"[bold]Edges:[/] {len(definition.edges)}")
    terminals = sorted(definition.get_terminal_nodes())
    console.print(f"[bold]Exits:[/] {', '.join(escape(t) for t in terminals) or '-'}")


@main.command()
def version() -> None:
    """Show version information."""
    from flowsmith import __version__

    console.print(f"Flowsmith v{__version__}")
    console.print("Workflow graph compiler")


if __name__ == "__main__":
    main()
