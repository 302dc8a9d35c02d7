"""Logging setup shared by the CLI and the API server."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

_configured = False


def configure_logging(debug: bool = False) -> None:
    """Route stdlib logging through rich; safe to call more than once."""
    global _configured
    level = logging.DEBUG if debug else logging.INFO
    if _configured:
        logging.getLogger("edgechat").setLevel(level)
        return
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    logging.getLogger("edgechat").setLevel(level)
    _configured = True
