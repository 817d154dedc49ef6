# seo_pilot/utils/display.py

from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.theme import Theme

# ========== UI Theme ==========
custom_theme = Theme({
    "ok":   "bold green",
    "warn": "bold yellow",
    "err":  "bold red",
    "info": "bold cyan",
})
console = Console(theme=custom_theme, highlight=False)
err_console = Console(theme=custom_theme, highlight=False, stderr=True)


def info(msg: str) -> None:
    console.print(msg, markup=False)


def success(msg: str) -> None:
    console.print(f"[ok]✓[/ok] {escape(msg)}")


def warn(msg: str) -> None:
    console.print(f"[warn]⚠[/warn] {escape(msg)}")


def error(msg: str) -> None:
    err_console.print(f"[err]✗[/err] {escape(msg)}")


def table(headers: Sequence[str], rows: Sequence[Sequence[str]], title: Optional[str] = None) -> None:
    t = Table(title=title, box=box.SIMPLE_HEAD, show_lines=False)
    for h in headers:
        t.add_column(h, overflow="fold")
    for row in rows:
        t.add_row(*[str(c) for c in row])
    console.print(t)


def print_rule(title: Optional[str] = None) -> None:
    if title:
        console.rule(f"[info]{escape(title)}[/info]")
    else:
        console.rule()
