from __future__ import annotations

from typing import NoReturn

import typer

from .. import console
from ..config import AppConfig
from ..descriptor import RegistryDescriptor, load_descriptor
from ..errors import KamalRegistryError
from ..kamal import KamalRunner


def fail(exc: KamalRegistryError) -> NoReturn:
    console.err(str(exc))
    stderr = exc.stderr.strip()
    if stderr:
        console.raw(stderr)
    raise typer.Exit(code=1)


def require_descriptor(cfg: AppConfig) -> RegistryDescriptor:
    try:
        return load_descriptor(cfg.deploy_path)
    except KamalRegistryError as exc:
        fail(exc)


def make_runner(cfg: AppConfig, *, dry_run: bool = False) -> KamalRunner:
    return KamalRunner(kamal_bin=cfg.kamal_bin, config_file=cfg.deploy_path, dry_run=dry_run)
