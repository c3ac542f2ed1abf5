from __future__ import annotations

import os

import typer

from .. import console
from ..config import AppConfig, load_config
from ..descriptor import DeploymentTarget, RegistrySecrets, render_descriptor, write_descriptor
from ..errors import KamalRegistryError
from ..htpasswd import ensure_htpasswd, generate_entry, write_htpasswd
from ..validators import (
    has_out_of_range_octet,
    is_valid_domain,
    is_valid_ipv4,
    prompt_domain,
    prompt_ip,
    prompt_ssh_user,
)
from .common import fail


def _generate_secret(nbytes: int = 16) -> str:
    return os.urandom(nbytes).hex()


def collect_target(
        *,
        ip: str | None,
        domain: str | None,
        ssh_user: str | None,
        default_ssh_user: str,
        non_interactive: bool,
) -> DeploymentTarget:
    ip = (ip or "").strip() or None
    domain = (domain or "").strip() or None
    ssh_user = (ssh_user or "").strip() or None

    if ip is not None and not is_valid_ipv4(ip):
        console.err(f"Invalid IPv4 address: {ip}")
        raise typer.Exit(code=2)
    if domain is not None and not is_valid_domain(domain):
        console.err(f"Invalid domain: {domain}")
        raise typer.Exit(code=2)

    if non_interactive:
        missing = [flag for flag, value in (("--ip", ip), ("--domain", domain)) if not value]
        if missing:
            console.err(f"Missing required flags: {', '.join(missing)}")
            raise typer.Exit(code=2)

    if ip is None:
        ip = prompt_ip()
    elif has_out_of_range_octet(ip):
        console.warn(f"{ip} has an octet above 255; continuing as entered.")
    if domain is None:
        domain = prompt_domain()
    if ssh_user is None:
        ssh_user = default_ssh_user if non_interactive else prompt_ssh_user(default_ssh_user)

    return DeploymentTarget(ip=ip, domain=domain.lower(), ssh_user=ssh_user)


def write_configuration(cfg: AppConfig, target: DeploymentTarget) -> RegistrySecrets:
    """Render deploy.yml and htpasswd for ``target``; both are overwritten."""
    htpasswd_bin = ensure_htpasswd()
    secrets = RegistrySecrets(
        registry_username=cfg.registry_username,
        registry_password=_generate_secret(),
        bootstrap_password=_generate_secret(),
    )
    entry = generate_entry(secrets.registry_username, secrets.registry_password, htpasswd_bin=htpasswd_bin)
    content = render_descriptor(
        target,
        secrets,
        bootstrap_registry=cfg.bootstrap_registry,
        htpasswd_path=cfg.htpasswd_path.as_posix(),
    )
    write_descriptor(cfg.deploy_path, content)
    write_htpasswd(cfg.htpasswd_path, entry)
    return secrets


def setup(
        ip: str | None = typer.Option(None, "--ip", help="Public IPv4 address of the registry server."),
        domain: str | None = typer.Option(None, "--domain", help="Domain that will serve the registry."),
        ssh_user: str | None = typer.Option(None, "--ssh-user", help="SSH user Kamal connects as."),
        non_interactive: bool = typer.Option(False, "--non-interactive", help="Fail if required flags are missing."),
):
    """Collect the target and write config/deploy.yml and config/htpasswd."""
    console.rule("[bold]Kamal Registry Setup[/]")
    cfg = load_config()

    target = collect_target(
        ip=ip,
        domain=domain,
        ssh_user=ssh_user,
        default_ssh_user=cfg.ssh_user,
        non_interactive=non_interactive,
    )

    if cfg.deploy_path.exists():
        console.warn(f"Overwriting existing {cfg.deploy_path} and {cfg.htpasswd_path}.")

    try:
        secrets = write_configuration(cfg, target)
    except KamalRegistryError as exc:
        fail(exc)

    console.ok(f"Config written: {cfg.deploy_path}")
    console.ok(f"Credentials written: {cfg.htpasswd_path}")
    console.info(f"Server: {target.ssh_user}@{target.ip}")
    console.info(f"Registry: https://{target.domain}")
    console.print("")
    console.print("[bold]Registry login (shown once, not stored):[/]")
    console.print(f"  username: {secrets.registry_username}", markup=False)
    console.print(f"  password: {secrets.registry_password}", markup=False)
    console.print("")
    console.info(f"Point an A record for {target.domain} at {target.ip}, then run `kamal-registry deploy`.")
