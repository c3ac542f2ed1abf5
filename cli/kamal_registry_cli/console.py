from __future__ import annotations

from rich.console import Console
from rich.markup import escape

console = Console()


def info(msg: str) -> None:
    console.print(f"[bold cyan]•[/] {escape(msg)}")


def ok(msg: str) -> None:
    console.print(f"[bold green]OK[/] {msg}")


def warn(msg: str) -> None:
    console.print(f"[bold yellow]WARN[/] {msg}")


def err(msg: str) -> None:
    console.print(f"[bold red]ERR[/] {msg}")


def step(msg: str) -> None:
    console.print(f"[bold magenta]==>[/] [bold]{escape(msg)}[/]")


def print(*args, **kwargs):
    """Proxy to underlying rich Console.print()."""
    console.print(*args, **kwargs)


def rule(*args, **kwargs):
    """Proxy to underlying rich Console.rule()."""
    console.rule(*args, **kwargs)


def raw(text: str) -> None:
    """Print tool output verbatim, without rich markup parsing."""
    console.print(text, markup=False, highlight=False)
