"""Operator console output — timestamped, coloured lines via Rich.

Colour conventions:
- white (gray): supervisor log
- red: critical error
- bright_black: insignificant info
- bright_cyan: header or important tip
- bright_yellow: warning
- green: success
- relay lines: the colour their tag selects
"""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.text import Text

from consolewarden import __version__
from consolewarden.relay.line import DEFAULT_TAG

# Indexed like the 16 classic console colours (0 black … 7 gray … 15 white)
TAG_COLORS: tuple[str, ...] = (
    "black",
    "blue",
    "green",
    "cyan",
    "red",
    "magenta",
    "yellow",
    "white",
    "bright_black",
    "bright_blue",
    "bright_green",
    "bright_cyan",
    "bright_red",
    "bright_magenta",
    "bright_yellow",
    "bright_white",
)


def tag_color(tag: int) -> str:
    """Rich colour name for a relay tag, falling back to the default tag's colour."""
    if 0 <= tag < len(TAG_COLORS):
        return TAG_COLORS[tag]
    return TAG_COLORS[DEFAULT_TAG]


class OperatorConsole:
    """Thread-safe writer for everything the operator sees."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(highlight=False)

    @property
    def rich(self) -> Console:
        return self._console

    def write_line(self, text: str, color: str = "white") -> None:
        """Print *text* verbatim (no markup) with a time prefix."""
        stamp = datetime.now().strftime("%H:%M:%S")
        self._console.print(Text(f"[{stamp}] {text}", style=color), soft_wrap=True)

    def write_tagged(self, text: str, tag: int) -> None:
        self.write_line(text, tag_color(tag))

    def info(self, text: str) -> None:
        self.write_line(text, "white")

    def success(self, text: str) -> None:
        self.write_line(text, "green")

    def warning(self, text: str) -> None:
        self.write_line(text, "bright_yellow")

    def error(self, text: str) -> None:
        self.write_line(text, "red")

    def hint(self, text: str) -> None:
        self.write_line(text, "bright_cyan")

    def dim(self, text: str) -> None:
        self.write_line(text, "bright_black")

    def echo_input(self, text: str) -> None:
        self.write_line(f">>> {text}", "magenta")

    def blank(self) -> None:
        self._console.print()

    def clear(self) -> None:
        self._console.clear()

    def set_title(self, title: str) -> None:
        self._console.set_window_title(title)

    def banner(self) -> None:
        """Header shown at the start of every session."""
        self.clear()
        self.hint(f"consolewarden v{__version__}")
        self.blank()
        self.hint('Licensed under The MIT License (use command "license" to get license text).')
        self.blank()
        self.hint("Type 'help' to get list of available commands.")
        self.blank()
