"""Command-line interface for templater."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import click
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from templater import __version__
from templater.config import TemplaterConfig, load_config
from templater.console import console, err_console
from templater.definition import TemplateDefinition, load_definition
from templater.errors import TemplaterError
from templater.runner import CommandRunner, parse_env_overrides
from templater.store import TemplateStore, TemplateSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppState:
    """Per-invocation state shared by all subcommands."""

    config: TemplaterConfig
    store: TemplateStore


@contextmanager
def _exit_on_error() -> Iterator[None]:
    """Report templater and filesystem errors on stderr and exit with status 1."""
    try:
        yield
    except (TemplaterError, OSError) as e:
        logger.debug("Command failed", exc_info=True)
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise SystemExit(1) from None


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _format_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "kB", "MB", "GB"):
        if value < 1000 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1000
    return f"{size} B"


def _print_summaries(summaries: list[TemplateSummary]) -> None:
    table = Table()
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("Size", justify="right")
    table.add_column("Created")
    table.add_column("Last Used")
    for summary in summaries:
        table.add_row(
            escape(summary.name),
            escape(summary.description) or "[dim]No description[/dim]",
            _format_size(summary.size),
            summary.created.strftime("%Y-%m-%d %H:%M"),
            (
                summary.last_used.strftime("%Y-%m-%d %H:%M")
                if summary.last_used
                else "[dim]Never[/dim]"
            ),
        )
    console.print(table)


def _print_commands(commands: tuple[str, ...] | None) -> None:
    console.print("[bold]Commands:[/bold]")
    if not commands:
        console.print("  [dim](none)[/dim]")
        return
    for i, command in enumerate(commands, 1):
        console.print(f"  {i}. {escape(command)}")


def version_callback(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    console.print(f"templater [bold cyan]{__version__}[/bold cyan]")
    ctx.exit()


@click.group()
@click.option(
    "--version",
    is_flag=True,
    callback=version_callback,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log progress information.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Templater - capture directories as reusable project templates."""
    _configure_logging(verbose)
    config = load_config()
    ctx.obj = AppState(config=config, store=TemplateStore.from_config(config))


@main.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--name", "-n", help="Template name (default: directory name).")
@click.option("--description", "-d", help="Template description.")
@click.option(
    "--command",
    "-c",
    "commands",
    multiple=True,
    help="Command to run after expanding (repeatable, runs in order).",
)
@click.option(
    "--ignore",
    "-i",
    multiple=True,
    help="Glob of paths to leave out, e.g. '**/*.log' (repeatable).",
)
@click.option(
    "--definition",
    "-r",
    "definition_file",
    type=click.Path(path_type=Path, dir_okay=False),
    help="YAML/JSON file with name, description, commands and ignore.",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing template.")
@click.pass_obj
def create(
    state: AppState,
    path: Path,
    name: str | None,
    description: str | None,
    commands: tuple[str, ...],
    ignore: tuple[str, ...],
    definition_file: Path | None,
    force: bool,
) -> None:
    """Capture the directory PATH as a new template."""
    with _exit_on_error():
        base = load_definition(definition_file) if definition_file else TemplateDefinition()
        resolved = base.overlay(
            TemplateDefinition(
                name=name,
                description=description,
                commands=commands,
                ignore=ignore,
            )
        )
        template_name = resolved.name or path.resolve().name

        summary = state.store.create(
            template_name,
            resolved.description or "",
            resolved.commands,
            path,
            resolved.ignore,
            force=force,
        )

    console.print(
        f"[green]Created template [bold]{escape(summary.name)}[/bold][/green] "
        f"[dim]({_format_size(summary.size)}, "
        f"{len(summary.commands or ())} command(s))[/dim]"
    )


@main.command()
@click.argument("name")
@click.option("--as", "-a", "alias", help="Directory name for the new project.")
@click.option(
    "--path",
    "-p",
    type=click.Path(path_type=Path, file_okay=False),
    help="Parent directory to expand into (default: current directory).",
)
@click.option(
    "--env",
    "-e",
    "envs",
    multiple=True,
    help="KEY=VALUE environment override for commands (repeatable).",
)
@click.option("--no-exec", "-n", is_flag=True, help="Do not run recorded commands.")
@click.pass_obj
def expand(
    state: AppState,
    name: str,
    alias: str | None,
    path: Path | None,
    envs: tuple[str, ...],
    no_exec: bool,
) -> None:
    """Create a new project from template NAME."""
    try:
        env_overrides = parse_env_overrides(envs)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--env") from None

    with _exit_on_error():
        project_dir, metadata = state.store.expand(name, path, alias=alias)
        console.print(
            f"[green]Expanded [bold]{escape(name)}[/bold] into "
            f"{escape(str(project_dir))}[/green]"
        )

        if no_exec or not metadata.commands:
            return

        runner = CommandRunner(
            env_overrides, stop_on_failure=bool(state.config.stop_on_failure)
        )
        results = runner.run_all(metadata.commands, project_dir)

    for result in results:
        if not result.success:
            err_console.print(
                f"[yellow]Warning: command exited with code {result.returncode}: "
                f"{escape(result.command)}[/yellow]"
            )


@main.command("list")
@click.option("--name", "-n", help="Show only the template with this name.")
@click.option("--commands", "-c", is_flag=True, help="Show the template's commands.")
@click.option("--tree", "-t", "file_tree", is_flag=True, help="Show the file tree.")
@click.pass_obj
def list_templates(
    state: AppState, name: str | None, commands: bool, file_tree: bool
) -> None:
    """List stored templates."""
    if name is None and commands:
        raise click.UsageError(
            "You can only list commands for a specific template, please provide --name"
        )
    if name is None and file_tree:
        raise click.UsageError(
            "You can only display file tree for a specific template, "
            "please provide --name"
        )

    with _exit_on_error():
        summaries = state.store.list(name, with_commands=commands)
        if not summaries:
            console.print("[dim]No templates found.[/dim]")
            return

        _print_summaries(summaries)
        if commands:
            _print_commands(summaries[0].commands)
        if file_tree and name is not None:
            console.print("[bold]File tree:[/bold]")
            console.print(state.store.tree(name), markup=False, highlight=False)


@main.command()
@click.argument("name")
@click.pass_obj
def delete(state: AppState, name: str) -> None:
    """Delete template NAME."""
    with _exit_on_error():
        state.store.delete(name)
    console.print(f"[green]Deleted template {escape(name)}[/green]")


@main.command()
@click.argument("name")
@click.pass_obj
def edit(state: AppState, name: str) -> None:
    """Edit the name, description and commands of template NAME."""
    with _exit_on_error():
        summary = state.store.edit(name)
    _print_summaries([summary])
    _print_commands(summary.commands)
