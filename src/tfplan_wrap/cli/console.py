"""CLI console helpers with optional Rich support.

This module intentionally avoids module-level imports of optional UI
dependencies so bootstrap paths (``--help``, ``--version``) remain
functional even when Rich is not installed.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from tfplan_wrap.exceptions import EnvironmentError


def _load_rich_console_class() -> type[Any]:
    """Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
    try:
        from rich.console import Console
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    return Console


def get_rich_console() -> Any:
    """Create a Rich console instance targeting stderr."""
    console_class = _load_rich_console_class()
    return console_class(stderr=True)


def get_rich_log_handler(level: int = logging.DEBUG) -> logging.Handler:
    """Create a ``RichHandler`` writing to the stderr console."""
    try:
        from rich.logging import RichHandler
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "rich is not installed. Install with: pip install rich",
        ) from exc
    handler = RichHandler(console=get_rich_console(), show_path=False)
    handler.setLevel(level)
    return handler


class _ConsoleProxy:
    """Minimal ``print``-compatible proxy with Rich fallback."""

    def print(self, *objects: object) -> None:
        """Render with Rich when available, else plain stderr print."""
        try:
            rich_console = get_rich_console()
        except EnvironmentError:
            print(*objects, file=sys.stderr)
            return
        rich_console.print(*objects)

    def escape(self, text: str) -> str:
        """Neutralise markup in external text such as terraform output.

        The plain fallback prints text verbatim, so it is returned as is.
        """
        try:
            from rich.markup import escape
        except ModuleNotFoundError:
            return text
        return escape(text)


console = _ConsoleProxy()
