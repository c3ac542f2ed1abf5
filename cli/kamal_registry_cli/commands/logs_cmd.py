from __future__ import annotations

import typer

from .. import console
from ..config import load_config
from ..errors import KamalRegistryError
from ..kamal import ACCESSORY_LOGS
from .common import fail, make_runner, require_descriptor

# 130 = terminated by SIGINT
_INTERRUPT_CODES = {0, 130, -2}


def logs() -> None:
    """Follow the registry accessory logs (Ctrl-C to stop)."""
    cfg = load_config()
    require_descriptor(cfg)
    runner = make_runner(cfg)
    try:
        runner.ensure_available()
    except KamalRegistryError as exc:
        fail(exc)

    console.info("Streaming registry logs. Press Ctrl-C to stop.")
    try:
        code = runner.follow(ACCESSORY_LOGS)
    except KeyboardInterrupt:
        console.print("")
        return
    if code not in _INTERRUPT_CODES:
        console.err(f"Log stream ended with exit code {code}.")
        raise typer.Exit(code=1)
