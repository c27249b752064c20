"""CLI output formatters for Rich tables and JSON.

Provides human-readable Rich table output (default) and machine-parseable
JSON output (--json flag).
"""

import dataclasses
import json

from rich.table import Table

from agentchat.cli.config import AgentChatConfig
from agentchat.cli.protocol import BotSummary, ConversationSummary, Message
from agentchat.utils.redaction import mask_email

MESSAGE_STYLES = {
    "user": "bold green",
    "bot": "cyan",
}


def mask_secret(value: str) -> str:
    """Mask a secret, keeping the last four characters of long values."""
    if not value:
        return "(not set)"
    return "***" + value[-4:] if len(value) > 8 else "***"


def format_bot_table(bots: list[BotSummary], selected_id: str | None = None, as_json: bool = False):
    """Format bots as a numbered Rich table or JSON.

    Args:
        bots: Bots to display.
        selected_id: Bot marked as selected.
        as_json: If True, return a JSON string instead of a table.
    """
    if as_json:
        return json.dumps([dataclasses.asdict(b) for b in bots], indent=2)
    if not bots:
        return "No bots available."

    table = Table(title="Bots")
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Description")
    for index, bot in enumerate(bots, start=1):
        marker = " *" if bot.id == selected_id else ""
        table.add_row(str(index), bot.id, f"{bot.name}{marker}", bot.description)
    return table


def format_conversation_table(
    conversations: list[ConversationSummary],
    active_id: str | None = None,
    as_json: bool = False,
):
    """Format conversations (newest first) as a numbered Rich table or JSON."""
    if as_json:
        return json.dumps([dataclasses.asdict(c) for c in conversations], indent=2)
    if not conversations:
        return "No conversations yet."

    table = Table(title="Conversations")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="white")
    table.add_column("Created", style="dim")
    table.add_column("ID", style="cyan", no_wrap=True)
    for index, conv in enumerate(conversations, start=1):
        name = conv.name or "New conversation"
        if conv.id == active_id:
            name = f"[bold]{name}[/bold]"
        table.add_row(str(index), name, conv.created_at or "—", conv.id)
    return table


def format_message(message: Message, user_label: str = "You", bot_label: str = "Bot") -> str:
    """Render one transcript line with Rich markup."""
    label = user_label if message.type == "user" else bot_label
    style = MESSAGE_STYLES.get(message.type, "white")
    return f"[{style}]{label}:[/{style}] {message.text}"


def format_config(cfg: AgentChatConfig) -> list[str]:
    """Render the resolved configuration with secrets masked."""
    bot_ids = ", ".join(cfg.chatbotkit.bot_ids) if cfg.chatbotkit.bot_ids else "(all bots)"
    return [
        "[bold]Server:[/bold]",
        f"  host: {cfg.server.host}",
        f"  port: {cfg.server.port}",
        f"  log_level: {cfg.server.log_level}",
        "",
        "[bold]ChatBotKit:[/bold]",
        f"  api_secret: {mask_secret(cfg.chatbotkit.api_secret)}",
        f"  base_url: {cfg.chatbotkit.base_url}",
        f"  bot_ids: {bot_ids}",
        f"  timeout_seconds: {cfg.chatbotkit.timeout_seconds}",
        f"  conversation_page_size: {cfg.chatbotkit.conversation_page_size}",
        "",
        "[bold]Persona:[/bold]",
        f"  model: {cfg.persona.model}",
        "",
        "[bold]Auth:[/bold]",
        f"  api_key: {mask_secret(cfg.auth.api_key)}",
        f"  email_header: {cfg.auth.email_header}",
        f"  name_header: {cfg.auth.name_header}",
        "",
        "[bold]Client:[/bold]",
        f"  api_url: {cfg.client.api_url}",
        f"  email: {mask_email(cfg.client.email)}",
        f"  name: {cfg.client.name or '(not set)'}",
    ]
