"""Developer CLI for the agent runtime.

This module provides a Typer-based command-line interface for inspecting the
tool registry and trying commands against the shell safety policy.
"""

import asyncio
import json
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from agent_runtime.config import load_app_config
from agent_runtime.governance import (
    ShellPolicyConfig,
    check_command_permissions,
    get_command_roots,
    is_command_allowed,
    strip_shell_wrapper,
)
from agent_runtime.tools import ToolRegistry, create_tool_registry

app = typer.Typer(help="Agent runtime - tool registry and shell policy tools")
console = Console()

tools_app = typer.Typer(help="Inspect registered and discovered tools")
app.add_typer(tools_app, name="tools")

shell_app = typer.Typer(help="Check commands against the shell safety policy")
app.add_typer(shell_app, name="shell")


async def _discover() -> ToolRegistry:
    registry = await create_tool_registry(load_app_config())
    # Connections are only needed to list tools here.
    await registry.close()
    return registry


@tools_app.command("list")
def tools_list(
    server: Optional[str] = typer.Option(
        None, "--server", "-s", help="Only show tools from this tool server"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="Output function declarations as JSON"
    ),
) -> None:
    """Discover tools and list them.

    Examples:
        agent-runtime tools list
        agent-runtime tools list --server files
        agent-runtime tools list --json
    """
    try:
        registry = asyncio.run(_discover())
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1) from e

    tools = registry.get_tools_by_server(server) if server else registry.get_all_tools()

    if json_output:
        # Plain echo: rich would wrap long descriptions and break the JSON.
        typer.echo(json.dumps([tool.schema for tool in tools], indent=2))
        return

    if not tools:
        console.print("[yellow]No tools registered.[/yellow]")
        return

    table = Table(title=f"Tools ({len(tools)})")
    table.add_column("Name", style="green")
    table.add_column("Display Name", style="cyan")
    table.add_column("Kind", style="blue")
    table.add_column("Description", style="white", overflow="fold")

    for tool in tools:
        description = tool.description.strip().splitlines()[0] if tool.description.strip() else ""
        table.add_row(tool.name, tool.display_name, type(tool).__name__, description[:100])

    console.print(table)


@shell_app.command("check")
def shell_check(
    command: str = typer.Argument(..., help="Shell command to evaluate"),
    session: Optional[list[str]] = typer.Option(
        None, "--session", help="Session allowlist prefix (repeatable); enables default deny"
    ),
) -> None:
    """Evaluate a command against the configured allow and block lists.

    Examples:
        agent-runtime shell check "git status && ls"
        agent-runtime shell check "rm -rf build" --session "rm -rf build"
    """
    policy = ShellPolicyConfig.from_app_config(load_app_config())
    roots = get_command_roots(strip_shell_wrapper(command))
    verdict = is_command_allowed(command, policy)

    console.print(f"[bold]Command roots:[/bold] {', '.join(roots) or '(none)'}")
    if verdict.allowed:
        console.print("[green]Allowed[/green]")
    else:
        console.print(f"[red]Rejected:[/red] {verdict.reason}")

    if session:
        report = check_command_permissions(command, policy, set(session))
        if report.all_allowed:
            console.print("[green]Session check: all segments allowed[/green]")
        else:
            kind = "hard denial" if report.is_hard_denial else "needs approval"
            console.print(f"[yellow]Session check ({kind}):[/yellow] {report.block_reason}")
            for segment in report.disallowed_commands:
                console.print(f"  - {segment}")

    if not verdict.allowed:
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
