"""agentchat CLI: API server and terminal chat client.

Usage:
    agentchat serve                  Start the API server
    agentchat chat                   Start an interactive chat
    agentchat bots                   List available bots
    agentchat conversations          List your conversations
    agentchat fingerprint EMAIL      Show the contact fingerprint for an email
    agentchat config show            Show resolved configuration
"""

import asyncio
import os
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console

from agentchat.cli.config import AgentChatConfig, get_config, load_config
from agentchat.cli.http_client import HttpClient
from agentchat.cli.output import format_bot_table, format_config, format_conversation_table
from agentchat.cli.protocol import AgentChatClientError
from agentchat.errors import AgentChatError, format_error
from agentchat.services.fingerprint import derive_fingerprint

app = typer.Typer(
    name="agentchat",
    help="Chat with hosted AI agents; conversations are saved server-side",
    no_args_is_help=True,
)
config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")

console = Console()

# --- Global state ---
_config_path: str | None = None


@app.callback()
def main(
    config: Optional[str] = typer.Option(
        None, "--config", help="Path to agentchat.yaml config file"
    ),
):
    """agentchat: conversational front end for hosted AI agents."""
    global _config_path
    _config_path = config
    if config:
        # The API process resolves the same file through get_config().
        os.environ["AGENTCHAT_CONFIG_PATH"] = config
        get_config.cache_clear()


def _load() -> AgentChatConfig:
    try:
        return load_config(config_path=_config_path)
    except (FileNotFoundError, ValidationError) as e:
        error = AgentChatError.from_code("E-4002", details=str(e))
        console.print(format_error(error), style="red", markup=False)
        raise typer.Exit(1)


def _client(cfg: AgentChatConfig, email: str | None, name: str | None) -> HttpClient:
    user_email = email or cfg.client.email
    if not user_email:
        console.print("[red]No user email. Pass --email or set client.email in the config.[/red]")
        raise typer.Exit(1)
    return HttpClient(
        base_url=cfg.client.api_url,
        email=user_email,
        name=name or cfg.client.name,
        email_header=cfg.auth.email_header,
        name_header=cfg.auth.name_header,
    )


# --- Version ---


@app.command()
def version():
    """Show agentchat version."""
    from agentchat import __version__

    console.print(f"[bold]agentchat[/bold] v{__version__}")


@app.command()
def fingerprint(email: str = typer.Argument(help="Email address")):
    """Print the contact fingerprint derived from an email."""
    console.print(derive_fingerprint(email))


# --- Server ---


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port"),
):
    """Start the API server with uvicorn."""
    import uvicorn

    cfg = _load()
    final_host = host or cfg.server.host
    final_port = port or cfg.server.port
    console.print(f"[bold]Starting agentchat API on {final_host}:{final_port}[/bold]")
    uvicorn.run(
        "agentchat.api.main:app",
        host=final_host,
        port=final_port,
        log_level=cfg.server.log_level,
    )


# --- Config commands ---


@config_app.command("show")
def config_show():
    """Display resolved configuration (secrets masked)."""
    cfg = _load()
    for line in format_config(cfg):
        console.print(line)


# --- Client commands ---


@app.command()
def bots(
    email: Optional[str] = typer.Option(None, "--email", help="Act as this user"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List the bots available to you."""
    cfg = _load()

    async def _run():
        async with _client(cfg, email, None) as client:
            return await client.list_bots()

    try:
        result = asyncio.run(_run())
    except AgentChatClientError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)
    console.print(format_bot_table(result, as_json=json_output))


@app.command()
def conversations(
    email: Optional[str] = typer.Option(None, "--email", help="Act as this user"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List your conversations, newest first."""
    cfg = _load()

    async def _run():
        async with _client(cfg, email, None) as client:
            contact_id = await client.ensure_contact()
            return await client.list_conversations(contact_id)

    try:
        result = asyncio.run(_run())
    except AgentChatClientError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(1)
    console.print(format_conversation_table(result, as_json=json_output))


@app.command()
def chat(
    email: Optional[str] = typer.Option(None, "--email", help="Act as this user"),
    name: Optional[str] = typer.Option(None, "--name", help="Your display name"),
):
    """Start an interactive chat against a running API."""
    from agentchat.cli.repl import run_repl

    cfg = _load()

    async def _run():
        async with _client(cfg, email, name) as client:
            await run_repl(client)

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\n[dim]Session ended.[/dim]")


if __name__ == "__main__":
    app()
