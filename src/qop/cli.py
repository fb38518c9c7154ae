"""CLI for qop."""

import logging
import shutil
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from . import QOP_DIR, __version__
from .config import QopConfig, get_qop_dir, load_config, save_config
from .diff import diff_tree
from .errors import QopError
from .patch import apply_patch, read_patch, reverse_patch
from .store import Store

console = Console()
error_console = Console(stderr=True)


def get_project_root() -> Path:
    """Get the project root directory (current working directory)."""
    return Path.cwd()


def is_initialized(project_root: Path) -> bool:
    """Check if qop is initialized in the project."""
    return get_qop_dir(project_root).exists()


def require_initialized(project_root: Path) -> None:
    """Exit with an error if qop is not initialized."""
    if not is_initialized(project_root):
        error_console.print(
            "[red]Error:[/red] Not initialized. Run [bold]qop init[/bold] first."
        )
        sys.exit(1)


def configure_logging(verbose: bool) -> None:
    """Send qop's log records to stderr through rich."""
    logger = logging.getLogger("qop")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.addHandler(
        RichHandler(console=error_console, show_path=False, show_time=verbose)
    )
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


@contextmanager
def reporting_errors() -> Iterator[None]:
    """Turn qop and I/O failures into an error message and exit status 1."""
    try:
        yield
    except (QopError, OSError) as err:
        error_console.print(f"[red]Error:[/red] {escape(str(err))}", highlight=False)
        sys.exit(1)


def _emit(text: str, output: str | None) -> None:
    """Write patch text to ``output``, or stdout when not given."""
    if output is None:
        click.echo(text, nl=False)
    else:
        Path(output).write_text(text, encoding="utf-8")


@click.group()
@click.version_option(version=__version__, prog_name="qop")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
def main(verbose: bool) -> None:
    """qop - snapshot a directory and exchange line patches against it."""
    configure_logging(verbose)


@main.command()
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(force: bool) -> None:
    """Initialize qop in the current directory and take a snapshot."""
    project_root = get_project_root()
    qop_dir = get_qop_dir(project_root)

    if qop_dir.exists() and not force:
        error_console.print(
            f"[yellow]Warning:[/yellow] {QOP_DIR}/ already exists. Use --force to reinitialize."
        )
        sys.exit(1)

    qop_dir.mkdir(parents=True, exist_ok=True)

    config = QopConfig()
    save_config(config, project_root)

    with reporting_errors():
        store = Store(project_root, config)
        index = store.snapshot()

    console.print(
        Panel(
            f"[green]Initialized qop[/green]\n\n"
            f"Tracked files: [bold]{len(index.files)}[/bold]\n"
            f"Store directory: [dim]{store.store_dir}[/dim]\n\n"
            f"Next steps:\n"
            f"  1. Edit files, then run [bold]qop diff > changes.patch[/bold]\n"
            f"  2. Run [bold]qop checkpoint[/bold] to take a new snapshot",
            title="qop init",
        )
    )


@main.command()
def checkpoint() -> None:
    """Replace the snapshot with the current working tree."""
    project_root = get_project_root()
    require_initialized(project_root)

    with reporting_errors():
        store = Store(project_root)
        index = store.snapshot()

    stats = store.last_stats
    table = Table(title="Checkpoint Complete")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")

    table.add_row("Files stored", str(len(index.files)))
    table.add_row("Directories walked", str(stats.directories_processed))
    table.add_row("Entries ignored", str(stats.entries_ignored))
    table.add_row("Entries skipped", str(stats.entries_skipped))

    console.print(table)


@main.command()
@click.option("--reverse", is_flag=True, help="Patch from the working tree back to the snapshot")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the patch to a file")
def diff(reverse: bool, output: str | None) -> None:
    """Print a patch from the snapshot to the working tree."""
    project_root = get_project_root()
    require_initialized(project_root)

    with reporting_errors():
        patch = diff_tree(Store(project_root), reverse=reverse)
        _emit(patch.to_json(), output)


@main.command()
@click.argument("patch_file", metavar="FILE")
@click.option(
    "--strict/--lenient",
    default=None,
    help="Fail on anchors past the end of a file instead of truncating",
)
def apply(patch_file: str, strict: bool | None) -> None:
    """Apply a patch FILE (or - for stdin) to the working tree."""
    project_root = get_project_root()

    with reporting_errors():
        config = load_config(project_root)
        policy = config.anchor_policy
        if strict is not None:
            policy = "strict" if strict else "truncate"

        patch = read_patch(patch_file)
        written = apply_patch(patch, project_root, policy)

    error_console.print(f"[green]Patched {len(written)} file(s).[/green]")


@main.command()
@click.argument("patch_file", metavar="FILE")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Write the patch to a file")
def reverse(patch_file: str, output: str | None) -> None:
    """Print the inverse of a patch FILE (or - for stdin)."""
    with reporting_errors():
        patch = read_patch(patch_file)
        _emit(reverse_patch(patch).to_json(), output)


@main.command()
def status() -> None:
    """Show snapshot status and modified files."""
    project_root = get_project_root()
    require_initialized(project_root)

    with reporting_errors():
        store = Store(project_root)
        index = store.load_index()
        changed = store.changed_files(index)

    table = Table(title="qop Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Project root", str(project_root))
    table.add_row("Anchor policy", store.config.anchor_policy)
    table.add_row("Tracked files", str(len(index.files)))
    table.add_row("Modified files", str(len(changed)))
    for path in changed:
        table.add_row("", f"[yellow]{path}[/yellow]")

    console.print(table)


@main.command()
@click.option("--force", "-f", is_flag=True, help="Skip confirmation prompt")
def clean(force: bool) -> None:
    """Remove the .qop directory."""
    project_root = get_project_root()
    qop_dir = get_qop_dir(project_root)

    if not qop_dir.exists():
        console.print(f"[dim]Nothing to clean - {QOP_DIR}/ does not exist.[/dim]")
        return

    if not force:
        if not click.confirm(f"Remove {qop_dir}?"):
            console.print("[dim]Cancelled.[/dim]")
            return

    shutil.rmtree(qop_dir)
    console.print(f"[green]Removed {QOP_DIR}/[/green]")


if __name__ == "__main__":
    main()
