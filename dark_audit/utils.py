"""Terminal output helpers for the CLI: colors, tables, boxes."""

import os
import sys

COLORS = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "cyan": "\033[36m",
}

SEVERITY_COLORS = {
    "high": "red",
    "medium": "yellow",
    "low": "green",
    "unknown": "dim",
}

NO_COLOR = os.environ.get("NO_COLOR") is not None


def c(text: str, color: str) -> str:
    if NO_COLOR or not sys.stdout.isatty():
        return str(text)
    return f"{COLORS.get(color, '')}{text}{COLORS['reset']}"


def severity_badge(severity: str) -> str:
    return c(severity.upper(), SEVERITY_COLORS.get(severity, "dim"))


def parse_viewport(value: str) -> tuple[float, float]:
    """Parse 'WIDTHxHEIGHT' (e.g. 1280x800)."""
    width, sep, height = value.lower().partition("x")
    if not sep:
        raise ValueError(f"Viewport must look like 1280x800, got {value!r}")
    return float(width), float(height)


def print_table(headers: list[str], rows: list[list[str]], widths: list[int] | None = None):
    if not rows:
        return
    if not widths:
        widths = [max(len(str(h)), *(len(str(r[i])) for r in rows)) for i, h in enumerate(headers)]
    print(c("  ".join(h.ljust(w) for h, w in zip(headers, widths)), "bold"))
    rule = sum(widths) + 2 * (len(widths) - 1)
    try:
        print(c("─" * rule, "dim"))
    except UnicodeEncodeError:
        print(c("-" * rule, "dim"))
    for row in rows:
        print("  ".join(str(v)[:w].ljust(w) for v, w in zip(row, widths)))


def print_box(lines: list[str], width: int = 50):
    """Print a box around lines of text."""
    try:
        print("┌" + "─" * width + "┐")
        for line in lines:
            print(f"│ {line.ljust(width - 2)[:width - 2]} │")
        print("└" + "─" * width + "┘")
    except UnicodeEncodeError:
        print("+" + "-" * width + "+")
        for line in lines:
            print(f"| {line.ljust(width - 2)[:width - 2]} |")
        print("+" + "-" * width + "+")
