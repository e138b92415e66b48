import difflib
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from aliasync import __version__
from aliasync.errors import AliasSyncError
from aliasync.log import setup_logging
from aliasync.manager import AliasManager
from aliasync.models import ShellAlias
from aliasync.porter import AliasPorter
from aliasync.shell_detector import ShellType
from aliasync.tasks import BackgroundRunner
from aliasync.views import AliasView

console = Console()

SHELL_CHOICE = click.Choice([shell.value for shell in ShellType])


def load_manager(scan_commands: bool = False) -> AliasManager:
    """Build a manager and scan configs (and PATH) in the background"""
    manager = AliasManager()
    with BackgroundRunner(int(manager.config.get("background_workers", 2))) as runner:
        with console.status("[dim]Scanning shell configuration...[/]"):
            pending = [runner.load_aliases(manager)]
            if scan_commands:
                pending.append(runner.scan_commands(manager))
            for future in pending:
                future.result()
    return manager


def fail(message: str) -> None:
    console.print(f"[red]✗[/] {message}")
    sys.exit(1)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.version_option(version=__version__, prog_name="aliasync")
def main(verbose):
    """aliasync - keep your shell aliases in sync across bash, zsh and fish"""
    setup_logging(verbose)


@main.command()
def shells():
    """Show detected shells and their config files"""
    manager = AliasManager()
    if not manager.detected_shells:
        console.print("[yellow]No supported shells found on PATH.[/]")
        return

    home = manager.env.home_dir()
    table = Table(title="Detected shells")
    table.add_column("Shell", style="cyan", no_wrap=True)
    table.add_column("Writes to", style="green")
    table.add_column("Also scans", style="dim")

    for shell in manager.detected_shells:
        name = shell.display_name
        if shell == manager.default_shell:
            name += " (default)"
        primary = shell.dialect.primary_config_path(home)
        others = [
            pattern
            for pattern, path in manager.detector.find_config_files(shell).items()
            if path != primary
        ]
        table.add_row(name, str(primary), ", ".join(others) or "-")

    console.print(table)


@main.command(name="list")
@click.option("--all", "show_all", is_flag=True, help="Include aliases not managed by aliasync")
@click.option("--shell", "-s", type=SHELL_CHOICE, help="Only aliases for this shell")
@click.option("--search", "-q", default="", help="Filter by name or command")
def list_aliases(show_all, shell, search):
    """List aliases in a table"""
    manager = load_manager()
    view = AliasView(
        manager,
        search_query=search,
        show_existing=show_all,
        filter_shell=ShellType(shell) if shell else None,
    )
    aliases = view.filtered_aliases()
    if not aliases:
        console.print("[yellow]No aliases found.[/] Add one with 'aliasync add'")
        return

    table = Table(title=f"📋 Aliases ({len(aliases)} total)")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Command", style="green")
    table.add_column("Shells", style="yellow")
    if show_all:
        table.add_column("Source", style="dim")

    for alias in sorted(aliases, key=lambda a: a.name):
        row = [alias.name, alias.command, alias.shells_display()]
        if show_all:
            row.append("managed" if alias.managed else str(alias.source_file or ""))
        table.add_row(*row)

    console.print(table)


@main.command()
@click.option("--name", "-n", prompt=True, help="Alias name")
@click.option("--command", "-c", prompt=True, help="Command to alias")
@click.option("--description", "-d", help="Description of the alias")
@click.option("--shell", "-s", "shell_names", type=SHELL_CHOICE, multiple=True,
              help="Shell to add the alias to (repeatable, default: all detected)")
def add(name, command, description, shell_names):
    """Add a managed alias and write it to your shell configs"""
    manager = load_manager()
    if not manager.detected_shells:
        fail("No supported shells found on PATH")

    shells = {ShellType(value) for value in shell_names} or set(manager.detected_shells)
    missing = shells - set(manager.detected_shells)
    if missing:
        fail(f"Shell not installed: {', '.join(sorted(s.value for s in missing))}")

    if manager.conflicts_with_command(name):
        console.print(f"[yellow]⚠[/] '{name}' shadows an existing command on your PATH")

    existing = manager.get_alias(name)
    if existing is not None and not existing.managed:
        console.print(f"[yellow]⚠[/] '{name}' is already defined in {existing.source_file}")

    alias = ShellAlias(name=name, command=command, shells=shells, description=description)
    try:
        manager.add_alias(alias)
    except AliasSyncError as e:
        fail(f"Failed to create alias: {e}")

    console.print(f"[green]✔[/] Added alias: [cyan]{name}[/] = '{command}'")
    console.print("[dim]💡 Restart your terminal or source your shell config to use it[/]")


@main.command()
@click.argument("name")
def remove(name):
    """Remove a managed alias from every shell config"""
    manager = load_manager()
    if all(alias.name != name for alias in manager.managed_aliases):
        fail(f"Alias '{name}' is not managed by aliasync")

    try:
        manager.delete_alias(name)
    except AliasSyncError as e:
        fail(f"Failed to delete alias: {e}")

    console.print(f"[green]✔[/] Deleted alias: [cyan]{name}[/]")


@main.command()
@click.option("--dry-run", is_flag=True, help="Show what would change without writing")
def sync(dry_run):
    """Rewrite the managed block of every detected shell"""
    manager = load_manager()
    if dry_run:
        show_pending_changes(manager)
        return

    try:
        written = manager.write_aliases_to_shells()
    except AliasSyncError as e:
        fail(str(e))

    if not written:
        console.print("[dim]Nothing to update.[/]")
        return
    for shell in written:
        console.print(f"[green]✔[/] Synced {shell.display_name}")


def show_pending_changes(manager: AliasManager) -> None:
    try:
        changes = manager.preview_shells()
    except AliasSyncError as e:
        fail(str(e))

    if not changes:
        console.print("[dim]Nothing to update.[/]")
        return
    for shell, path, current, proposed in changes:
        diff = "".join(difflib.unified_diff(
            current.splitlines(keepends=True),
            proposed.splitlines(keepends=True),
            fromfile=path.name,
            tofile=f"{path.name} (synced)",
        ))
        console.print(f"[yellow]~[/] Would update {shell.display_name}: {path}")
        console.print(Syntax(diff, "diff", theme="ansi_dark"))


@main.command()
@click.argument("name")
def check(name):
    """Check whether an alias name would shadow a command"""
    manager = AliasManager()
    path = manager.env.which(name)
    if path is not None:
        console.print(f"[yellow]⚠[/] '{name}' shadows {path}")
    else:
        console.print(f"[green]✔[/] '{name}' is free")


@main.command()
@click.argument("query", required=False, default="")
def commands(query):
    """Search executables on your PATH"""
    manager = load_manager(scan_commands=True)
    matches = AliasView(manager, search_query=query).filtered_commands()
    if not matches:
        console.print("[yellow]No matching commands.[/]")
        return
    for name in matches:
        console.print(name)


@main.command(name="export")
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--format", "-f", "fmt", type=click.Choice(["json", "yaml"]), default="json")
def export_aliases(file, fmt):
    """Export managed aliases to a file"""
    porter = AliasPorter(load_manager())
    success, message = porter.export_to_file(Path(file), format=fmt)
    if not success:
        fail(message)
    console.print(f"[green]✔[/] {message}")


@main.command(name="import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def import_aliases(file):
    """Import aliases from a file and write them to your shell configs"""
    porter = AliasPorter(load_manager())
    success, message = porter.import_from_file(Path(file))
    if not success:
        fail(message)
    console.print(f"[green]✔[/] {message}")


if __name__ == "__main__":
    main()
