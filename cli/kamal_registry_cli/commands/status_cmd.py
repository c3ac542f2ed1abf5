from __future__ import annotations

from .. import console
from ..config import load_config
from ..kamal import APP_DETAILS, PROXY_DETAILS, KamalRunner
from .common import make_runner, require_descriptor


def _report(runner: KamalRunner, args: tuple[str, ...], *, title: str, fallback: str) -> bool:
    console.rule(f"[bold]{title}[/]")
    res = runner.capture(args)
    if res.returncode != 0:
        console.warn(fallback)
        detail = (res.stderr or "").strip()
        if detail:
            console.raw(detail)
        return False
    output = (res.stdout or "").rstrip()
    console.raw(output or "(no output)")
    return True


def status() -> None:
    """Show Kamal app details and kamal-proxy status."""
    cfg = load_config()
    require_descriptor(cfg)
    runner = make_runner(cfg)
    _report(runner, APP_DETAILS, title="App details", fallback="Could not fetch app details.")
    _report(runner, PROXY_DETAILS, title="Proxy status", fallback="Could not fetch proxy status.")
