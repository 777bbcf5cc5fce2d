"""Logging configuration.

Modules log through ``logging.getLogger(__name__)``; this module only
decides where records go. Console output is rendered with Rich so log
lines and the chat transcript share one terminal without clobbering.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

_CONFIGURED = False


def configure_logging(level: str | int = "WARNING", console: Console | None = None) -> None:
    """Install a Rich handler on the ``khadija`` logger.

    Args:
        level: Logging level name or number
        console: Console to write to (defaults to stderr)
    """
    global _CONFIGURED

    logger = logging.getLogger("khadija")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logger.setLevel(level)

    if _CONFIGURED:
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    _CONFIGURED = True
