"""Tagged, optionally coloured console output shared by the workspace tools."""

from __future__ import annotations

import os
import sys
from typing import TextIO

RED = "\033[0;31m"
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
BLUE = "\033[0;34m"
RESET = "\033[0m"


class Console:
    def __init__(self, stream: TextIO | None = None, color: bool | None = None) -> None:
        self.stream = stream or sys.stdout
        if color is None:
            isatty = getattr(self.stream, "isatty", None)
            color = bool(isatty and isatty()) and not os.environ.get("NO_COLOR")
        self.color = color

    def _tagged(self, tag: str, colour: str, message: str) -> None:
        if self.color:
            self.line(f"{colour}[{tag}]{RESET} {message}")
        else:
            self.line(f"[{tag}] {message}")

    def line(self, message: str = "") -> None:
        self.stream.write(message + "\n")

    def info(self, message: str) -> None:
        self._tagged("INFO", BLUE, message)

    def success(self, message: str) -> None:
        self._tagged("SUCCESS", GREEN, message)

    def warning(self, message: str) -> None:
        self._tagged("WARNING", YELLOW, message)

    def error(self, message: str) -> None:
        self._tagged("ERROR", RED, message)


class NullConsole(Console):
    """Console that discards everything (used for --json runs)."""

    def __init__(self) -> None:
        super().__init__(stream=sys.stdout, color=False)

    def line(self, message: str = "") -> None:
        return None
