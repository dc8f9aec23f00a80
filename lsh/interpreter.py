from __future__ import annotations
from typing import List, Optional

from rich.console import Console
from rich.markup import escape

from shared.message import ChatMessage, Greeting, Message

_MISSING = "<unknown>"


def interpret(message: Message, console: Console) -> List[Message]:
    """
    React to one inbound message.

    Prints a line for it and returns the messages to send in reply. Neither
    greetings nor chat text produce replies today, so the list is empty.
    """
    if isinstance(message, Greeting):
        console.print("[bold green]Hello![/]")
    elif isinstance(message, ChatMessage):
        console.print(
            f"[bold cyan]{_field(message.user)}[/] say: {_field(message.text)} "
            f"in channel: [yellow]{_field(message.channel)}[/]",
            emoji=False,
            highlight=False,
        )
    else:
        console.print(f"[dim]Unknown action happens: {escape(message.type)}[/]", emoji=False, highlight=False)
    return []


def _field(value: Optional[str]) -> str:
    return escape(value) if value is not None else _MISSING
