"""Plain-text banners, sections and tables shared by the commands."""
from __future__ import annotations

import sys
from typing import Callable, List, Optional, Sequence

WIDTH = 61
RULE = "─" * WIDTH


def center(text: str, width: int) -> str:
    if len(text) >= width:
        return text
    padding = width - len(text)
    left = padding // 2
    return " " * left + text + " " * (padding - left)


def banner(title: str, subtitle: str = "") -> None:
    print()
    print("┌" + "─" * WIDTH + "┐")
    print("│ " + center(title, WIDTH - 2) + " │")
    if subtitle:
        print("│ " + center(subtitle, WIDTH - 2) + " │")
    print("└" + "─" * WIDTH + "┘")
    print()


def success_banner(message: str = "Operation completed successfully!") -> None:
    print()
    print(f"✅ {message}")
    print("━" * WIDTH)
    print()


def section(title: str) -> None:
    print()
    print(f"╭─── {title} ───╮")
    print()


def separator() -> None:
    print(RULE)
    print()


def item(text: str) -> None:
    print(f"    │ {text}")


def table(headers: Sequence[str], rows: Sequence[Sequence[object]], widths: Optional[Sequence[int]] = None) -> None:
    if widths is None:
        widths = [
            max([len(str(header))] + [len(str(row[idx])) for row in rows])
            for idx, header in enumerate(headers)
        ]
    line = "+" + "+".join("-" * (w + 2) for w in widths) + "+"
    print(line)
    print("| " + " | ".join(f"{str(h):<{w}}" for h, w in zip(headers, widths)) + " |")
    print(line)
    for row in rows:
        print("| " + " | ".join(f"{str(c):<{w}}" for c, w in zip(row, widths)) + " |")
    print(line)


def confirm(message: str, reader: Callable[[str], str] = input) -> bool:
    """Ask a yes/no question; anything but y/yes means no."""
    try:
        answer = reader(f"{message} [y/N] ")
    except EOFError:
        print(file=sys.stderr)
        return False
    return answer.strip().lower() in {"y", "yes"}


def status_label(enabled: bool) -> str:
    return "✅ Enabled" if enabled else "❌ Disabled"


def module_rows(names: Sequence[str], is_enabled: Callable[[str], bool], will_enable: Optional[Sequence[str]] = None) -> List[List[str]]:
    rows: List[List[str]] = []
    for name in names:
        row = [name, status_label(is_enabled(name))]
        if will_enable is not None:
            row.append("✅ Yes" if name in will_enable else "—")
        rows.append(row)
    return rows
