#!/usr/bin/env python3

from __future__ import annotations
import asyncio
import signal
from contextlib import suppress
from typing import Optional

import typer
from rich.console import Console

from shared.config import ClientConfig
from shared.log import configure_root_logging, get_logger
from .handshake import AuthError, HandshakeClient, HandshakeError
from .prompt import Prompt
from .session import CloseReason, Session
from .ws_client import ConnectError, TransportSession

app = typer.Typer(help="lsh: minimal Slack RTM client", add_completion=False)
console = Console()
logger = get_logger(__name__)

USAGE = "Usage: lsh <slack-api-token>"


def _is_placeholder(token: Optional[str]) -> bool:
    if token is None or not token.strip():
        return True
    token = token.strip()
    return token.startswith("<") and token.endswith(">")


@app.command()
def run(
    token_arg: Optional[str] = typer.Argument(None, metavar="TOKEN", help="Slack bot token"),
    token: Optional[str] = typer.Option(None, "--token", help="Slack bot token"),
    interactive: bool = typer.Option(False, "--interactive", "-i", help="Read '<channel> <text>' lines from stdin and send them"),
    api_base: Optional[str] = typer.Option(None, help="Web API base URL"),
    origin: Optional[str] = typer.Option(None, help="Origin header for the WebSocket handshake"),
    keepalive_interval: Optional[float] = typer.Option(None, help="Seconds between keepalive pings"),
    log_level: Optional[str] = typer.Option(None, help="DEBUG, INFO, WARNING or ERROR"),
):
    """Authorize with a bot token, open the RTM socket and print what arrives."""
    credential = token or token_arg
    if _is_placeholder(credential):
        console.print(USAGE)
        console.print()
        raise typer.Exit(0)

    configure_root_logging(log_level)
    try:
        config = ClientConfig.from_env().with_overrides(
            api_base=api_base,
            origin=origin,
            keepalive_interval=keepalive_interval,
        )
    except ValueError as e:
        console.print(f"[red]Invalid configuration[/]: {e}")
        raise typer.Exit(2)

    try:
        with HandshakeClient(config) as client:
            url = client.rtm_start(credential)
    except AuthError as e:
        logger.error("Authorization failed: %s", e.reason)
        console.print(f"[red]Authorization failed[/]: {e.reason}")
        raise typer.Exit(1)
    except HandshakeError as e:
        logger.error("Handshake failed: %s", e)
        console.print(f"[red]Handshake failed[/]: {e}")
        raise typer.Exit(1)

    try:
        reason = asyncio.run(_run_session(url, config, interactive))
    except ConnectError as e:
        logger.error("%s", e)
        console.print(f"[red]Connection failed[/]: {e}")
        raise typer.Exit(1)

    if reason.is_error:
        raise typer.Exit(1)


async def _run_session(url: str, config: ClientConfig, interactive: bool) -> CloseReason:
    transport = TransportSession(url, origin=config.origin, open_timeout=config.open_timeout)
    session = Session(transport, config=config, console=console)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows event loops
        with suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, session.request_quit, CloseReason.INTERRUPTED)

    prompt_task: Optional[asyncio.Task] = None
    if interactive:
        prompt_task = asyncio.create_task(Prompt(session).run(), name="prompt")
    try:
        return await session.run()
    finally:
        if prompt_task is not None:
            prompt_task.cancel()
            with suppress(asyncio.CancelledError):
                await prompt_task
        for sig in (signal.SIGINT, signal.SIGTERM):
            with suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(sig)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
