"""Interactive terminal chat driven by the session state machine.

Plain input is sent as a chat turn. Slash commands manage the session:

    /new          start a fresh conversation
    /list         show your conversations
    /open N       switch to conversation N from the last listing
    /delete N     delete conversation N from the last listing
    /bots         show available bots
    /bot N        chat with bot N
    /quit         leave (Ctrl+D works too)
"""

from rich.console import Console

from agentchat.cli.output import format_bot_table, format_conversation_table, format_message
from agentchat.cli.protocol import AgentChatClient, AgentChatClientError
from agentchat.cli.session import SessionController

console = Console()

HELP_TEXT = __doc__.split("\n\n", 1)[1]


def _pick(items: list, arg: str):
    try:
        index = int(arg)
    except ValueError:
        return None
    if 1 <= index <= len(items):
        return items[index - 1]
    return None


async def _handle_command(controller: SessionController, line: str) -> bool:
    """Run a slash command. Returns False when the REPL should exit."""
    command, _, arg = line[1:].partition(" ")
    arg = arg.strip()

    if command in ("quit", "exit"):
        return False
    if command == "help":
        console.print(HELP_TEXT)
    elif command == "new":
        controller.new_conversation()
        console.print("[dim]Started a new conversation.[/dim]")
    elif command == "list":
        await controller.refresh_conversations()
        console.print(format_conversation_table(controller.conversations, controller.state.active_conversation_id))
    elif command == "open":
        conv = _pick(controller.conversations, arg)
        if conv is None:
            console.print("[yellow]Usage: /open N (see /list)[/yellow]")
        elif await controller.select_conversation(conv.id):
            console.print(f"[dim]Opened: {conv.name or conv.id}[/dim]")
            for message in controller.state.visible_transcript:
                console.print(format_message(message))
        else:
            console.print("[red]Could not load that conversation.[/red]")
    elif command == "delete":
        conv = _pick(controller.conversations, arg)
        if conv is None:
            console.print("[yellow]Usage: /delete N (see /list)[/yellow]")
        elif await controller.delete_conversation(conv.id):
            console.print(f"[dim]Deleted: {conv.name or conv.id}[/dim]")
        else:
            console.print("[red]Could not delete that conversation.[/red]")
    elif command == "bots":
        await controller.load_bots()
        if controller.bot_error:
            console.print(f"[red]{controller.bot_error}[/red]")
        else:
            console.print(format_bot_table(controller.bots, controller.state.bot_id))
    elif command == "bot":
        bot = _pick(controller.bots, arg)
        if bot is None:
            console.print("[yellow]Usage: /bot N (see /bots)[/yellow]")
        else:
            controller.choose_bot(bot.id)
            console.print(f"[dim]Now chatting with {bot.name}.[/dim]")
    else:
        console.print(f"[yellow]Unknown command /{command}. Try /help.[/yellow]")
    return True


async def _send(controller: SessionController, text: str) -> None:
    """Stream one turn to the terminal."""
    console.print("[cyan]Bot:[/cyan] ", end="")
    try:
        async for event in controller.submit_turn(text):
            if event.event_type == "token":
                console.print(event.data.get("token", ""), end="", markup=False, highlight=False)
            elif event.event_type == "error":
                console.print(f"\n[red]Error: {event.data.get('message', 'Turn failed')}[/red]", end="")
    except AgentChatClientError as e:
        console.print(f"\n[red]Error: {e.message}[/red]", end="")
    console.print()
    if controller.pending_input:
        console.print("[yellow]Message not saved. Press Enter to resend it.[/yellow]")


async def run_repl(client: AgentChatClient) -> None:
    """Run the interactive chat.

    Args:
        client: An open AgentChatClient.
    """
    controller = SessionController(client)
    if await controller.resolve_contact() is None:
        console.print("[yellow]Could not resolve your contact; conversations will not be saved.[/yellow]")
    await controller.load_bots()
    if controller.bot_error:
        console.print(f"[red]{controller.bot_error}[/red]")
    elif controller.bots:
        console.print(f"[dim]Bot: {controller.bots[0].name}[/dim]")

    console.print()
    console.print("[bold]agentchat[/bold]: type a message, /help for commands, Ctrl+D to exit.")
    console.print()

    while True:
        try:
            line = console.input("[bold green]> [/bold green]")
        except EOFError:
            break

        text = line.strip()
        if not text:
            if controller.pending_input:
                await _send(controller, controller.pending_input)
            continue
        if text.startswith("/"):
            if not await _handle_command(controller, text):
                break
            continue
        await _send(controller, text)

    console.print("\n[dim]Session ended.[/dim]")
