"""toolgate command line.

`toolgate run` reads one tool-call envelope from stdin and writes one
result envelope to stdout. Logs go to stderr so stdout stays parseable.

Exit status: 0 when the call succeeded, 1 when the tool returned an
error, 2 when the input could not be parsed or something unexpected
failed.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from toolgate import __version__
from toolgate.cli_permissions import app as permissions_app
from toolgate.errors import ErrorCode, ToolgateError, make_error
from toolgate.tool.base import ToolResult, make_debug, now_ms

app = typer.Typer(name="toolgate", help="Capability-gated tool execution sandbox")
app.add_typer(permissions_app, name="permissions")
console = Console()

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TOOL_ERROR = 1
EXIT_FATAL = 2

NO_AGENT = "none"


def setup_logging(verbose: bool = False) -> None:
    """Send logs to stderr through rich; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=verbose)],
        force=True,
    )


def _emit(result: ToolResult, tool_name: Optional[str], exit_code: int) -> None:
    envelope: dict[str, Any] = {"ok": result.ok, "tool_name": tool_name}
    envelope.update(result.to_dict())
    try:
        text = json.dumps(envelope, default=str)
    except (TypeError, ValueError) as e:
        logger.error(f"Could not serialize result of {tool_name}: {e}")
        fallback = ToolResult.failure(ErrorCode.EXEC_ERROR, "Result could not be serialized.", debug=result.debug)
        envelope = {"ok": False, "tool_name": tool_name}
        envelope.update(fallback.to_dict())
        text = json.dumps(envelope, default=str)
        exit_code = EXIT_FATAL
    typer.echo(text)
    raise typer.Exit(exit_code)


def _fatal(code: ErrorCode, message: str, start: float, tool_name: Optional[str] = None) -> None:
    _emit(ToolResult.from_error(make_error(code, message), make_debug(start)), tool_name, EXIT_FATAL)


def _read_call(raw: str, start: float) -> tuple[str, Any]:
    text = raw.strip()
    if not text:
        _fatal(ErrorCode.PARSE_ERROR, "Missing JSON input.", start)
    try:
        payload = json.loads(text)
    except json.JSONDecodeError:
        _fatal(ErrorCode.PARSE_ERROR, "Invalid JSON input.", start)
    if not isinstance(payload, dict):
        _fatal(ErrorCode.PARSE_ERROR, "Input must be a JSON object with 'tool_name' and 'args'.", start)
    tool_name = payload.get("tool_name")
    if not isinstance(tool_name, str) or not tool_name.strip():
        _fatal(ErrorCode.PARSE_ERROR, "Input is missing a 'tool_name' string.", start)
    return tool_name.strip(), payload.get("args", {})


@app.command()
def run(
    agent: str = typer.Option("system", "--agent", "-a", help=f"Agent to act as, or '{NO_AGENT}'"),
    base_dir: Optional[Path] = typer.Option(None, "--base-dir", "-b", help="Base directory (default: config or cwd)"),
    permissions: Optional[str] = typer.Option(None, "--permissions", "-p", help="Permissions file path"),
    confirm: bool = typer.Option(False, "--confirm", help="Confirm tools listed in require_confirmation_for"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
):
    """Execute one tool call read as JSON from stdin"""
    from toolgate.agent import get_agent
    from toolgate.config import load_config
    from toolgate.gate import ExecutionGate

    start = now_ms()
    setup_logging(verbose)

    try:
        raw = sys.stdin.read()
    except (OSError, UnicodeDecodeError) as e:
        _fatal(ErrorCode.EXEC_ERROR, f"Failed to read stdin: {e}", start)
    tool_name, args = _read_call(raw, start)

    selected = None
    if agent.lower() != NO_AGENT:
        selected = get_agent(agent)
        if selected is None:
            _fatal(ErrorCode.VALIDATION_ERROR, f"Unknown agent '{agent}'.", start, tool_name)

    try:
        config = load_config(base_dir=base_dir)
        gate = ExecutionGate.from_config(config, permissions_path=permissions, agent=selected)
        result = asyncio.run(gate.execute(tool_name, args, confirm=confirm))
    except ToolgateError as e:
        _fatal(e.code, e.message, start, tool_name)
    except Exception as e:
        logger.exception("Tool execution failed")
        _fatal(ErrorCode.EXEC_ERROR, f"Internal error: {e}", start, tool_name)

    _emit(result, tool_name, EXIT_OK if result.ok else EXIT_TOOL_ERROR)


@app.command("tools")
def list_tools(
    agent: Optional[str] = typer.Option(None, "--agent", "-a", help="Only tools this agent may use"),
):
    """List registered tools"""
    from toolgate.agent import SAFE_TOOLS, get_agent
    from toolgate.tool import create_default_registry

    registry = create_default_registry()
    selected = None
    if agent:
        selected = get_agent(agent)
        if selected is None:
            console.print(f"[red]Unknown agent: {agent}[/red]")
            raise typer.Exit(EXIT_FATAL)

    table = Table(title="Tools")
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    table.add_column("No-agent", style="green")
    for schema in registry.get_schemas():
        if selected is not None and not selected.can_use(schema["name"]):
            continue
        table.add_row(schema["name"], schema["description"], "yes" if schema["name"] in SAFE_TOOLS else "")
    console.print(table)


@app.command("version")
def version():
    """Show the installed version"""
    typer.echo(__version__)


def main():
    app()


if __name__ == "__main__":
    main()
