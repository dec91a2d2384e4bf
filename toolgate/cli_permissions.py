"""Permissions CLI"""

import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(name="permissions", help="Inspect and test the permissions policy")
console = Console()

BaseDirOption = typer.Option(None, "--base-dir", "-b", help="Base directory (default: config or cwd)")
PermissionsOption = typer.Option(None, "--permissions", "-p", help="Permissions file path")


def _load(base_dir: Optional[Path], permissions: Optional[str]):
    from toolgate.config import load_config
    from toolgate.permission import PermissionStore

    config = load_config(base_dir=base_dir)
    store = PermissionStore(config.base_dir, permissions or config.permissions_path)
    return config, store


def _print_list(title: str, items, style: str) -> None:
    table = Table(title=title)
    table.add_column("Entry", style=style)
    for item in items:
        table.add_row(item)
    console.print(table)
    console.print()


@app.command("show")
def show_permissions(
    base_dir: Optional[Path] = BaseDirOption,
    permissions: Optional[str] = PermissionsOption,
):
    """Show the policy that would be loaded"""
    config, store = _load(base_dir, permissions)
    perms = store.permissions

    console.print(f"[bold]Base directory:[/bold] {config.base_dir}")
    if store.source is None:
        console.print("[yellow]No permissions file found. Everything is denied.[/yellow]")
        return
    console.print(f"[bold]Loaded from:[/bold] {store.source}")
    console.print()

    if not (perms.allow_paths or perms.allow_commands or perms.require_confirmation_for or perms.deny_tools):
        console.print("[yellow]Policy is empty or invalid. Everything is denied.[/yellow]")
        return

    if perms.allow_paths:
        _print_list("Allowed Paths", perms.allow_paths, "green")
    if perms.allow_commands:
        _print_list("Allowed Commands", perms.allow_commands, "green")
    if perms.require_confirmation_for:
        _print_list("Require Confirmation", perms.require_confirmation_for, "yellow")
    if perms.deny_tools:
        _print_list("Denied Tools", perms.deny_tools, "red")


@app.command("test-path")
def test_path(
    path: str = typer.Argument(..., help="Path relative to the base directory"),
    op: str = typer.Option("read", "--op", help="Operation: read, write or list"),
    base_dir: Optional[Path] = BaseDirOption,
    permissions: Optional[str] = PermissionsOption,
):
    """Test if a path is allowed or blocked"""
    from toolgate.permission import AllowlistMatcher, PathResolver

    if op not in ("read", "write", "list"):
        console.print(f"[red]Invalid op: {op}. Use 'read', 'write', or 'list'.[/red]")
        raise typer.Exit(2)

    config, store = _load(base_dir, permissions)
    resolver = PathResolver(config.base_dir)
    resolved = resolver.resolve(path)
    if not resolved.ok:
        console.print(f"[red]BLOCKED[/red]: {resolved.error.message}")
        raise typer.Exit(1)

    matcher = AllowlistMatcher.from_policy(
        resolver, store.permissions.allow_paths, case_insensitive=config.case_insensitive_paths
    )
    if matcher.is_allowed(resolved.value, op):
        console.print(f"[green]ALLOWED[/green]: {resolved.value}")
        return
    if matcher.is_blocked_segment(resolved.value):
        console.print(f"[red]BLOCKED[/red]: {resolved.value} is inside a protected directory")
    else:
        console.print(f"[red]BLOCKED[/red]: {resolved.value} is not covered by allow_paths in {store.display_path}")
    raise typer.Exit(1)


@app.command("test-command")
def test_command(
    command: str = typer.Argument(..., help="Command to test"),
    base_dir: Optional[Path] = BaseDirOption,
    permissions: Optional[str] = PermissionsOption,
):
    """Test if a command is allowed, without running it"""
    from toolgate.sandbox.shell import parse_shell_args

    _, store = _load(base_dir, permissions)
    parsed = parse_shell_args(command.strip())
    if not parsed.ok:
        console.print(f"[red]INVALID[/red]: {parsed.error.message}")
        raise typer.Exit(2)
    if not parsed.value:
        console.print("[red]INVALID[/red]: Empty command.")
        raise typer.Exit(2)

    cmd = parsed.value[0]
    if cmd in store.permissions.allow_commands:
        console.print(f"[green]ALLOWED[/green]: {cmd}")
        return
    allowed = ", ".join(store.permissions.allow_commands) or "(none)"
    console.print(f"[red]BLOCKED[/red]: '{cmd}' is not in allow_commands ({allowed})")
    raise typer.Exit(1)


@app.command("check")
def check_config(
    base_dir: Optional[Path] = BaseDirOption,
    permissions: Optional[str] = PermissionsOption,
):
    """Validate the config and permissions files and report risky settings"""
    from toolgate.config import ConfigValidator, get_config_file

    config_file = get_config_file()
    config_dict: dict = {}
    if config_file.exists():
        try:
            config_dict = json.loads(config_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            console.print(f"[red]Cannot read {config_file}: {e}[/red]")
            raise typer.Exit(1)
        if not isinstance(config_dict, dict):
            console.print(f"[red]{config_file} is not a JSON object[/red]")
            raise typer.Exit(1)

    _, store = _load(base_dir, permissions)
    permissions_dict = None
    if store.source is not None:
        try:
            permissions_dict = json.loads(store.source.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            console.print(f"[red]Cannot read {store.source}: {e}[/red]")
            raise typer.Exit(1)
    else:
        console.print("[yellow]No permissions file found. Everything is denied.[/yellow]")

    results = ConfigValidator.test_configuration(config_dict, permissions_dict)

    table = Table(title="Configuration Check")
    table.add_column("Check", style="cyan")
    table.add_column("Status")
    table.add_column("Messages")
    for name, outcome in results["tests"].items():
        status = "[green]OK[/green]" if outcome["valid"] else "[red]FAIL[/red]"
        messages = outcome.get("errors") or outcome.get("warnings_errors") or []
        table.add_row(name, status, "\n".join(messages) or "-")
    console.print(table)

    if not results["overall_valid"]:
        raise typer.Exit(1)
