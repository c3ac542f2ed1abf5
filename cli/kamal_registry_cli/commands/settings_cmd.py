from __future__ import annotations

import os

import typer

from .. import console
from ..config import (
    SETTING_KEYS,
    config_path,
    default_config,
    load_config,
    load_file_config,
    save_config,
    set_value,
    to_toml,
)

app = typer.Typer(help="Manage local CLI settings (~/.config/kamal-registry/config.toml).")


@app.command("init")
def init_settings(
        force: bool = typer.Option(False, "--force", help="Overwrite existing settings."),
):
    path = config_path()
    if os.path.exists(path) and not force:
        console.info(f"Settings already exist: {path}")
        console.info("Use --force to overwrite.")
        return
    saved = save_config(default_config())
    console.ok(f"Settings written: {saved}")


@app.command("show")
def show_settings():
    """Show effective settings, including environment overrides."""
    cfg = load_config()
    for key, value in to_toml(cfg).items():
        console.print(f"{key}={value}", markup=False)


@app.command("get")
def get_setting(
        key: str = typer.Argument(..., help=f"Setting key ({', '.join(SETTING_KEYS)})."),
):
    values = to_toml(load_config())
    k = key.strip().lower()
    if k not in values:
        console.err(f"Unknown setting: {key}")
        raise typer.Exit(code=2)
    console.print(str(values[k]), markup=False)


@app.command("set")
def set_setting(
        key: str = typer.Argument(..., help=f"Setting key ({', '.join(SETTING_KEYS)})."),
        value: str = typer.Argument(..., help="New value."),
):
    cfg = load_file_config()
    try:
        set_value(cfg, key, value)
    except KeyError:
        console.err(f"Unknown setting: {key}")
        raise typer.Exit(code=2)
    except ValueError as exc:
        console.err(f"Invalid value for {key}: {exc}")
        raise typer.Exit(code=2)
    saved = save_config(cfg)
    console.ok(f"Settings updated: {saved}")
