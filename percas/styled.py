"""Terminal styles for command-line help and error output."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

_RESET = "\x1b[0m"


class _Color(IntEnum):
    RED = 31
    GREEN = 32
    CYAN = 36
    BRIGHT_GREEN = 92
    BRIGHT_CYAN = 96


@dataclass(frozen=True)
class Style:
    """Text effects plus an optional ANSI foreground colour code."""

    bold: bool = False
    underline: bool = False
    fg: int | None = None

    def render(self, text: str) -> str:
        codes = []
        if self.bold:
            codes.append("1")
        if self.underline:
            codes.append("4")
        if self.fg is not None:
            codes.append(str(int(self.fg)))
        if not codes:
            return text
        return f"\x1b[{';'.join(codes)}m{text}{_RESET}"


def styled() -> dict[str, Style]:
    """Styles for each part of the command-line help, keyed by role."""
    return {
        "usage": Style(bold=True, underline=True, fg=_Color.BRIGHT_GREEN),
        "header": Style(bold=True, underline=True, fg=_Color.BRIGHT_GREEN),
        "literal": Style(bold=True, fg=_Color.BRIGHT_CYAN),
        "invalid": Style(bold=True, fg=_Color.RED),
        "error": Style(bold=True, fg=_Color.RED),
        "valid": Style(bold=True, underline=True, fg=_Color.GREEN),
        "placeholder": Style(fg=_Color.CYAN),
    }