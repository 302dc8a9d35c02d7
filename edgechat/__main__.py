"""CLI entry point for EdgeChat.

Usage:
    python -m edgechat "Your message here"
    python -m edgechat                      # interactive REPL
    python -m edgechat --session work "Hi"
    python -m edgechat --config /path/to/config.yaml
    python -m edgechat --api                # start the HTTP server
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import uuid

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from edgechat import __app_name__, __version__
from edgechat.ai.providers.base import ProviderError
from edgechat.core.config import ConfigError, EdgeChatConfig, load_config
from edgechat.core.log import configure_logging
from edgechat.core.router import SessionRouter
from edgechat.memory.session_store import StoreError

console = Console()


def _print_banner(session_id: str) -> None:
    console.print(
        Panel(
            f"[bold green]{__app_name__} v{__version__}[/bold green]\n"
            f"[dim]session: {session_id}[/dim]\n"
            "[dim]Type 'exit' or 'quit' to leave.[/dim]",
            border_style="cyan",
        )
    )


async def _run_single(router: SessionRouter, message: str, session_id: str) -> None:
    """Send a single message and print the reply."""
    with console.status("[bold cyan]Thinking…[/bold cyan]", spinner="dots"):
        result = await router.handle_message(session_id, message)

    console.print()
    console.print(
        Panel(
            Text(result.reply, style="green"),
            title=f"[dim]{len(result.history)} turns in context[/dim]",
            border_style="green",
        )
    )


async def _repl(router: SessionRouter, session_id: str) -> None:
    """Interactive REPL mode."""
    _print_banner(session_id)

    while True:
        try:
            user_input = console.input("[bold cyan]You:[/bold cyan] ").strip()
        except (EOFError, KeyboardInterrupt):
            console.print("\n[dim]Goodbye![/dim]")
            break

        if not user_input:
            continue

        if user_input.lower() in {"exit", "quit"}:
            console.print("[dim]Goodbye![/dim]")
            break

        try:
            await _run_single(router, user_input, session_id)
        except (ProviderError, StoreError) as exc:
            console.print(f"[red]error: {exc}[/red]")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edgechat",
        description=f"{__app_name__} — session-backed chat front-end",
    )
    parser.add_argument("message", nargs="?", help="Message to send (optional; omit for REPL)")
    parser.add_argument("--session", metavar="ID", help="Session id (default: new random id)")
    parser.add_argument("--config", metavar="PATH", help="Path to edgechat_config.yaml")
    parser.add_argument("--api", action="store_true", help="Start the FastAPI server")
    parser.add_argument("--host", help="Server host (overrides config)")
    parser.add_argument("--port", type=int, help="Server port (overrides config)")
    return parser


def _serve(config: EdgeChatConfig, host: str | None, port: int | None) -> None:
    import uvicorn

    from edgechat.api.main import create_app

    uvicorn.run(
        create_app(config=config),
        host=host or config.server.host,
        port=port or config.server.port,
        log_config=None,
    )


def main() -> None:
    parser = _build_parser()
    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        console.print(f"[red]Invalid configuration: {exc}[/red]")
        sys.exit(2)
    configure_logging(debug=config.system.debug)

    if args.api:
        _serve(config, args.host, args.port)
        return

    from edgechat.api.main import build_router

    router = build_router(config)
    session_id = args.session or str(uuid.uuid4())

    async def _run() -> None:
        if args.message:
            message = args.message.strip()
            if not message:
                console.print("[red]error: empty message[/red]")
                sys.exit(1)
            await _run_single(router, message, session_id)
        else:
            await _repl(router, session_id)

    try:
        asyncio.run(_run())
    except (ProviderError, StoreError) as exc:
        console.print(f"[red]error: {exc}[/red]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted. Goodbye![/dim]")
        sys.exit(0)


if __name__ == "__main__":
    main()
